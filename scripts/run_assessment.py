# scripts/run_assessment.py

import logging
import sys

import pandas as pd

from microanon.core.dp import add_laplace_noise
from microanon.core.kanon import enforce_k_anonymity
from microanon.core.profiler import DataProfiler
from microanon.core.risk import RiskAssessor, compute_risk_metrics
from microanon.core.synthetic import generate_synthetic
from microanon.core.utility import measure_utility


def print_block(title: str, data) -> None:
    print(f"\n--- {title} ---")
    for k, v in data.items():
        print(f"  {k}: {v}")


def run_for_qids(
    df: pd.DataFrame,
    qids,
    mode_label: str,
    k_value: int = 5,
    suppression_limit: float = 0.1,
    epsilon: float = 1.0,
    synthetic_pct: float = 100.0,
) -> None:
    """
    Run full pipeline for a given set of QIDs:
    - raw risk under the three attack models
    - k-anonymity (suppression budget, then generalisation)
    - risk after k-anonymity
    - Laplace noise and synthetic sampling
    - utility of every release against the raw data
    """
    print(f"\n=== {mode_label} ===")
    print("Using QIDs:")
    print("  ", qids)

    if not qids:
        print("[ERROR] No QIDs provided for this mode.")
        return

    # 1) Raw risk
    metrics = compute_risk_metrics(df, qids, k_threshold=k_value)
    print_block("RE-IDENTIFICATION RISK (RAW DATA)", {
        "prosecutor_risk": f"{metrics.prosecutor_risk:.4f}",
        "journalist_risk": f"{metrics.journalist_risk:.4f}",
        "marketer_risk": f"{metrics.marketer_risk:.4f}",
        "risk_level": metrics.risk_level,
        "unique_records": metrics.unique_records,
        "small_groups": metrics.small_groups,
        "class_size_histogram": metrics.histogram,
    })
    print("\nRecommendations:")
    for rec in metrics.recommendations:
        print(f"  - {rec}")

    # 2) K-anonymity
    kres = enforce_k_anonymity(df, qids=qids, k=k_value, suppression_limit=suppression_limit)
    print_block(f"K-ANONYMITY (k={k_value}, suppression limit={suppression_limit})", {
        "suppressed": kres.suppressed_count,
        "generalised": kres.generalized_count,
        "information_loss": f"{kres.information_loss:.4f}",
    })
    print_block("RISK AFTER K-ANONYMITY", RiskAssessor(kres.processed, qids=qids).risk_report())

    # 3) Differential privacy and synthetic data
    dres = add_laplace_noise(df, None, epsilon)
    sres = generate_synthetic(df, target_size_pct=synthetic_pct)

    # 4) Utility of each release
    for label, res in (("k-anonymity", kres), ("laplace noise", dres), ("synthetic", sres)):
        u = measure_utility(df, res.processed, information_loss=res.information_loss)
        print_block(f"UTILITY ({label.upper()})", {
            "overall_utility": f"{u.overall_utility:.4f}",
            "utility_level": u.utility_level,
            "statistical_similarity": f"{u.statistical_similarity:.4f}",
            "correlation_preservation": f"{u.correlation_preservation:.4f}",
            "distribution_similarity": f"{u.distribution_similarity:.4f}",
        })

    print("\n=== END OF MODE RUN ===\n")


def main(argv=None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    argv = sys.argv[1:] if argv is None else argv

    path = argv[0] if argv else "data/adult.csv"
    df = pd.read_csv(path)

    # ---------- 1. DATA PROFILE ----------
    summary = DataProfiler(df).summary_dict()
    print("=== DATA PROFILE ===")
    print(f"Rows: {summary['rows']}, Columns: {summary['cols']}")
    print_block("QUALITY SCORES", summary["scores"])

    # ---------- 2. QID SELECTION ----------
    if len(argv) > 1:
        user_input = argv[1]
    else:
        print("\nColumns:", list(df.columns))
        user_input = input(
            "Enter QID column names separated by commas "
            "(e.g., age, sex, education, native-country): "
        ).strip()

    qids = [c.strip() for c in user_input.split(",") if c.strip()]
    qids = [q for q in qids if q in df.columns]

    if not qids:
        print("[ERROR] None of the entered QIDs exist in the dataset.")
        return

    run_for_qids(df, qids, mode_label="CUSTOM-QID VIEW")


if __name__ == "__main__":
    main()
