# microanon/core/utility.py

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import DEFAULT_CONFIG, EngineConfig, UtilityConfig
from .dataset import is_missing, is_number, numeric_columns, numeric_values
from .errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

EXCELLENT = "Excellent"
GOOD = "Good"
FAIR = "Fair"
POOR = "Poor"


def suppression_rate(df_raw: pd.DataFrame, df_anon: pd.DataFrame) -> float:
    """
    Fraction of records removed by anonymisation/suppression.

    0.0  -> no rows removed (or rows added, e.g. oversampling)
    0.5  -> half the rows suppressed
    """
    n_raw = len(df_raw)
    n_anon = len(df_anon)
    if n_raw == 0:
        return 0.0
    return max(0.0, 1.0 - (n_anon / n_raw))


def categorical_tv_distance(
    df_raw: pd.DataFrame,
    df_anon: pd.DataFrame,
    col: str,
) -> float:
    """
    Total variation distance between categorical distributions of a column.

    TV = 0      -> identical distributions
    TV -> 1     -> completely different

    We treat missing values as a separate category, if present.
    An empty side against a non-empty one is maximally distant.
    """
    if col not in df_raw.columns or col not in df_anon.columns:
        return 0.0

    raw_counts = df_raw[col].map(_category).value_counts(dropna=False)
    anon_counts = df_anon[col].map(_category).value_counts(dropna=False)

    n_raw = raw_counts.sum()
    n_anon = anon_counts.sum()
    if n_raw == 0 and n_anon == 0:
        return 0.0
    if n_raw == 0 or n_anon == 0:
        return 1.0

    # Align indices
    all_values = raw_counts.index.union(anon_counts.index)

    p_raw = (raw_counts.reindex(all_values, fill_value=0) / n_raw).to_numpy()
    p_anon = (anon_counts.reindex(all_values, fill_value=0) / n_anon).to_numpy()

    tv = 0.5 * np.abs(p_raw - p_anon).sum()
    return float(tv)


def numeric_tv_distance(
    df_raw: pd.DataFrame,
    df_anon: pd.DataFrame,
    col: str,
    bins: int = DEFAULT_CONFIG.utility.histogram_bins,
) -> float:
    """
    Total variation distance between histograms of a numeric column.

    Bin edges come from the raw column; anonymised values outside that
    range are counted in the outermost bins.
    """
    if col not in df_raw.columns or col not in df_anon.columns:
        return 0.0

    raw = numeric_values(df_raw[col])
    anon = numeric_values(df_anon[col])
    if raw.size == 0 and anon.size == 0:
        return 0.0
    if raw.size == 0 or anon.size == 0:
        return 1.0

    edges = np.histogram_bin_edges(raw, bins=bins)
    anon = np.clip(anon, edges[0], edges[-1])

    p_raw = np.histogram(raw, bins=edges)[0] / raw.size
    p_anon = np.histogram(anon, bins=edges)[0] / anon.size
    return float(0.5 * np.abs(p_raw - p_anon).sum())


def numeric_mean_std_error(
    df_raw: pd.DataFrame,
    df_anon: pd.DataFrame,
    col: str,
) -> Dict[str, float]:
    """
    Relative error in mean and standard deviation of a numeric column.

    Returns a dict with:
      - mean_rel_error
      - std_rel_error

    Values are in [0, +inf), but in practice should be small if utility is good.
    """
    if col not in df_raw.columns or col not in df_anon.columns:
        return {"mean_rel_error": 0.0, "std_rel_error": 0.0}

    raw = numeric_values(df_raw[col])
    anon = numeric_values(df_anon[col])

    if raw.size == 0 or anon.size == 0:
        return {"mean_rel_error": 0.0, "std_rel_error": 0.0}

    mu_raw = float(raw.mean())
    mu_anon = float(anon.mean())
    std_raw = float(raw.std(ddof=1)) if raw.size > 1 else 0.0
    std_anon = float(anon.std(ddof=1)) if anon.size > 1 else 0.0

    eps = 1e-9

    mean_rel_error = abs(mu_raw - mu_anon) / max(abs(mu_raw), eps)
    std_rel_error = abs(std_raw - std_anon) / max(abs(std_raw), eps)

    return {
        "mean_rel_error": float(mean_rel_error),
        "std_rel_error": float(std_rel_error),
    }


def column_mean(df: pd.DataFrame, col: str) -> float:
    """Mean over the numeric cells of a column; 0.0 when there are none."""
    if col not in df.columns:
        return 0.0
    vals = numeric_values(df[col])
    return float(vals.mean()) if vals.size else 0.0


def mean_preservation(df_raw: pd.DataFrame, df_anon: pd.DataFrame, col: str) -> Optional[float]:
    """
    1 - |mu_raw - mu_anon| / |mu_raw|, floored at 0.

    None when the raw mean is 0: there is no scale to measure the
    deviation against, so the column is not scored.
    """
    mu_raw = column_mean(df_raw, col)
    if mu_raw == 0:
        return None
    mu_anon = column_mean(df_anon, col)
    return max(0.0, 1.0 - abs(mu_raw - mu_anon) / abs(mu_raw))


def correlation_preservation(
    df_raw: pd.DataFrame,
    df_anon: pd.DataFrame,
    columns: Sequence[str],
) -> float:
    """
    1 - mean |r_raw - r_anon| / 2 over every pair of numeric columns.

    Undefined correlations (constant columns, fewer than two rows) count
    as 0. Fewer than two columns leaves nothing to preserve (1.0); an
    anonymised set cut below two rows from a raw set with at least two
    preserves nothing (0.0).
    """
    columns = list(columns)
    if len(columns) < 2:
        return 1.0
    if len(df_anon) < 2 <= len(df_raw):
        return 0.0

    r_raw = _numeric_frame(df_raw, columns).corr().fillna(0.0).to_numpy()
    r_anon = _numeric_frame(df_anon, columns).corr().fillna(0.0).to_numpy()

    upper = np.triu_indices(len(columns), k=1)
    diff = np.abs(r_raw[upper] - r_anon[upper])
    return float(max(0.0, 1.0 - diff.mean() / 2.0))


def distribution_similarity(
    df_raw: pd.DataFrame,
    df_anon: pd.DataFrame,
    numeric_cols: Sequence[str],
    bins: int = DEFAULT_CONFIG.utility.histogram_bins,
) -> float:
    """Mean of 1 - TV distance over the columns both datasets share."""
    shared = [c for c in df_raw.columns if c in df_anon.columns]
    if not shared:
        return 1.0 if len(df_anon) == len(df_raw) == 0 else 0.0

    numeric = set(numeric_cols)
    scores = []
    for col in shared:
        if col in numeric:
            tv = numeric_tv_distance(df_raw, df_anon, col, bins=bins)
        else:
            tv = categorical_tv_distance(df_raw, df_anon, col)
        scores.append(1.0 - tv)
    return float(np.mean(scores))


def utility_level(score: float, config: UtilityConfig = DEFAULT_CONFIG.utility) -> str:
    if score >= config.excellent_threshold:
        return EXCELLENT
    if score >= config.good_threshold:
        return GOOD
    if score >= config.fair_threshold:
        return FAIR
    return POOR


@dataclass(frozen=True)
class UtilityMeasurement:
    overall_utility: float
    utility_level: str
    statistical_similarity: float
    correlation_preservation: float
    distribution_similarity: float
    information_loss: float
    column_metrics: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallUtility": self.overall_utility,
            "utilityLevel": self.utility_level,
            "statisticalSimilarity": self.statistical_similarity,
            "correlationPreservation": self.correlation_preservation,
            "distributionSimilarity": self.distribution_similarity,
            "informationLoss": self.information_loss,
            "columnMetrics": [dict(m) for m in self.column_metrics],
        }


def measure_utility(
    df_raw: pd.DataFrame,
    df_anon: pd.DataFrame,
    numeric_cols: Optional[Sequence[str]] = None,
    correlation: Optional[float] = None,
    distribution: Optional[float] = None,
    information_loss: Optional[float] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> UtilityMeasurement:
    """
    Compare an anonymised dataset with its original.

    Statistical similarity is the worst per-column mean preservation, so
    one badly kept column drags the whole score down. Correlation,
    distribution and information-loss terms are computed unless the
    caller already has them. Overall utility is the mean of
    (statistical, correlation, distribution, 1 - information loss).
    """
    cols = numeric_columns(df_raw) if numeric_cols is None else list(numeric_cols)

    column_metrics = []
    for col in cols:
        err = numeric_mean_std_error(df_raw, df_anon, col)
        column_metrics.append({
            "column": col,
            "preservation": mean_preservation(df_raw, df_anon, col),
            "originalMean": column_mean(df_raw, col),
            "processedMean": column_mean(df_anon, col),
            "stdRelError": err["std_rel_error"],
        })

    statistical = min(
        (m["preservation"] for m in column_metrics if m["preservation"] is not None),
        default=1.0,
    )
    if correlation is None:
        correlation = correlation_preservation(df_raw, df_anon, cols)
    if distribution is None:
        distribution = distribution_similarity(df_raw, df_anon, cols, bins=config.utility.histogram_bins)
    if information_loss is None:
        information_loss = suppression_rate(df_raw, df_anon)

    for name, value in (("correlation", correlation), ("distribution", distribution),
                        ("information_loss", information_loss)):
        if not 0.0 <= value <= 1.0:
            raise InvalidConfigurationError(f"{name} must lie in [0, 1]", parameter=name, value=value)

    overall = (statistical + correlation + distribution + (1.0 - information_loss)) / 4.0
    level = utility_level(overall, config.utility)

    logger.debug(
        "Utility: statistical=%.4f correlation=%.4f distribution=%.4f loss=%.4f -> %.4f (%s)",
        statistical, correlation, distribution, information_loss, overall, level,
    )

    return UtilityMeasurement(
        overall_utility=overall,
        utility_level=level,
        statistical_similarity=statistical,
        correlation_preservation=correlation,
        distribution_similarity=distribution,
        information_loss=information_loss,
        column_metrics=column_metrics,
    )


def _category(value: Any):
    return np.nan if is_missing(value) else str(value)


def _numeric_frame(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    data = {}
    for col in columns:
        if col in df.columns:
            data[col] = [float(v) if is_number(v) else np.nan for v in df[col]]
        else:
            data[col] = [np.nan] * len(df)
    return pd.DataFrame(data, columns=list(columns), dtype=float)
