# microanon/core/operations.py
"""
Entry points for callers that hold plain records.

Each function takes a record set (a sequence of row mappings, or a
DataFrame) plus parameters, works on its own copy and returns a result
object. Nothing is cached between calls.
"""

from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd

from . import diversity, dp, kanon, risk, synthetic, utility
from .config import DEFAULT_CONFIG, EngineConfig
from .dataset import RecordsLike, to_frame
from .equivalence import check_qids
from .errors import InvalidConfigurationError
from .profiler import DataProfiler
from .results import AnonymizationResult, KAnonymityResult


def _frame(
    records: RecordsLike,
    columns: Optional[Sequence[str]],
    referenced: Sequence[str],
) -> pd.DataFrame:
    """
    Working frame for a call. An empty record list carries no column
    names, so it takes the columns the call refers to.
    """
    if columns is None and not isinstance(records, pd.DataFrame) and len(records) == 0:
        columns = list(dict.fromkeys(referenced))
    return to_frame(records, columns)


def compute_risk_metrics(
    records: RecordsLike,
    quasi_identifiers: Sequence[str],
    k_threshold: int,
    sample_size_pct: float = 100.0,
    population_multiplier: Optional[float] = None,
    columns: Optional[Sequence[str]] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> risk.RiskMetrics:
    qids = list(quasi_identifiers or [])
    df = _frame(records, columns, qids)
    if qids and not df.empty:
        check_qids(df, qids)
    return risk.compute_risk_metrics(
        df,
        qids,
        k_threshold,
        sample_size_pct=sample_size_pct,
        population_multiplier=population_multiplier,
        config=config,
    )


def apply_k_anonymity(
    records: RecordsLike,
    quasi_identifiers: Sequence[str],
    k_value: int,
    suppression_limit: float,
    columns: Optional[Sequence[str]] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> KAnonymityResult:
    qids = list(quasi_identifiers or [])
    df = _frame(records, columns, qids)
    return kanon.enforce_k_anonymity(df, qids, k_value, suppression_limit, config=config)


def apply_l_diversity(
    records: RecordsLike,
    quasi_identifiers: Sequence[str],
    sensitive_attribute: str,
    l_value: int,
    method: str = "distinct",
    c: float = 1.0,
    columns: Optional[Sequence[str]] = None,
) -> AnonymizationResult:
    qids = list(quasi_identifiers or [])
    df = _frame(records, columns, qids + ([sensitive_attribute] if sensitive_attribute else []))
    return diversity.enforce_l_diversity(
        df, qids, sensitive_attribute, l_value, method=method, c=c
    )


def apply_t_closeness(
    records: RecordsLike,
    quasi_identifiers: Sequence[str],
    sensitive_attribute: str,
    t_value: float,
    columns: Optional[Sequence[str]] = None,
) -> AnonymizationResult:
    qids = list(quasi_identifiers or [])
    df = _frame(records, columns, qids + ([sensitive_attribute] if sensitive_attribute else []))
    return diversity.enforce_t_closeness(df, qids, sensitive_attribute, t_value)


def apply_differential_privacy(
    records: RecordsLike,
    epsilon: float,
    numeric_columns: Optional[Sequence[str]] = None,
    mechanism: str = "laplace",
    delta: Optional[float] = None,
    rng: Optional[np.random.Generator] = None,
    columns: Optional[Sequence[str]] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AnonymizationResult:
    if mechanism not in dp.MECHANISMS:
        raise InvalidConfigurationError(
            f"Unknown mechanism '{mechanism}', expected one of {dp.MECHANISMS}",
            parameter="mechanism",
            value=mechanism,
        )
    df = _frame(records, columns, numeric_columns or [])
    if mechanism == "gaussian":
        return dp.add_gaussian_noise(df, numeric_columns, epsilon, delta=delta, rng=rng, config=config)
    return dp.add_laplace_noise(df, numeric_columns, epsilon, rng=rng, config=config)


def generate_synthetic(
    records: RecordsLike,
    target_size_pct: float,
    columns: Optional[Sequence[str]] = None,
    rng: Optional[np.random.Generator] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AnonymizationResult:
    df = _frame(records, None, columns or [])
    return synthetic.generate_synthetic(df, columns, target_size_pct, rng=rng, config=config)


def measure_utility(
    original_records: RecordsLike,
    processed_records: RecordsLike,
    numeric_columns: Optional[Sequence[str]] = None,
    correlation_preservation: Optional[float] = None,
    distribution_similarity: Optional[float] = None,
    information_loss: Optional[float] = None,
    columns: Optional[Sequence[str]] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> utility.UtilityMeasurement:
    original = _frame(original_records, columns, numeric_columns or [])
    processed = _frame(processed_records, columns, list(original.columns))
    return utility.measure_utility(
        original,
        processed,
        numeric_columns,
        correlation=correlation_preservation,
        distribution=distribution_similarity,
        information_loss=information_loss,
        config=config,
    )


def profile_dataset(records: RecordsLike, columns: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    return DataProfiler(to_frame(records, columns)).summary_dict()
