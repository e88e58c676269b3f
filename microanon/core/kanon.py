# microanon/core/kanon.py

import logging
import math
from typing import Any, List, Sequence

import pandas as pd

from .config import DEFAULT_CONFIG, EngineConfig
from .dataset import is_number
from .equivalence import build_equivalence_classes, check_qids
from .errors import InvalidConfigurationError
from .results import KAnonymityResult

logger = logging.getLogger(__name__)


def generalise_value(value: Any, unit: int = 10, wildcard: str = "*") -> Any:
    """
    Coarsen one quasi-identifier value.

    Numbers are floored to a multiple of `unit` (37 -> 30, -3 -> -10);
    anything else, missing values included, becomes the wildcard.
    """
    if is_number(value) and math.isfinite(value):
        return int(math.floor(value / unit) * unit)
    return wildcard


def _generalise_rows(
    df: pd.DataFrame,
    qids: Sequence[str],
    positions: List[int],
    unit: int,
    wildcard: str,
) -> pd.DataFrame:
    if not positions:
        return df
    for col in qids:
        series = df[col].astype(object)
        series.iloc[positions] = [
            generalise_value(v, unit, wildcard) for v in series.iloc[positions]
        ]
        df[col] = series
    return df


def enforce_k_anonymity(
    df: pd.DataFrame,
    qids: List[str],
    k: int,
    suppression_limit: float = 0.0,
    config: EngineConfig = DEFAULT_CONFIG,
) -> KAnonymityResult:
    """
    K-anonymity pipeline:
    1) Suppression of small equivalence classes while the budget
       floor(suppression_limit * records) still covers the whole class
    2) Generalisation of every small class left once the budget runs out

    Classes of size >= k pass through unchanged and row order is kept.
    """
    qids = check_qids(df, qids)
    if k < 1:
        raise InvalidConfigurationError("k must be at least 1", parameter="k", value=k)
    if not 0.0 <= suppression_limit <= 1.0:
        raise InvalidConfigurationError(
            "suppression_limit must lie in [0, 1]",
            parameter="suppression_limit",
            value=suppression_limit,
        )

    n = len(df)
    budget = int(math.floor(suppression_limit * n))
    params = {"k": k, "suppression_limit": suppression_limit, "quasi_identifiers": list(qids)}

    suppressed: List[int] = []
    generalised: List[int] = []
    exhausted = False

    for ec in build_equivalence_classes(df, qids):
        if ec.size >= k:
            continue
        if not exhausted and ec.size <= budget:
            suppressed.extend(ec.indices)
            budget -= ec.size
        else:
            exhausted = True
            generalised.extend(ec.indices)

    out = _generalise_rows(
        df.copy(),
        qids,
        sorted(generalised),
        config.transform.generalisation_unit,
        config.transform.wildcard,
    )

    if suppressed:
        dropped = set(suppressed)
        keep = [i for i in range(n) if i not in dropped]
        out = out.iloc[keep]
    out = out.reset_index(drop=True)

    loss = len(suppressed) / n if n else 0.0

    logger.info(
        "k-anonymity (k=%d): %d records in, %d out, %d suppressed, %d generalised",
        k, n, len(out), len(suppressed), len(generalised),
    )

    return KAnonymityResult(
        technique="k-anonymity",
        processed=out,
        information_loss=loss,
        suppressed_count=len(suppressed),
        parameters=params,
        generalized_count=len(generalised),
    )


def is_k_anonymous(df: pd.DataFrame, qids: List[str], k: int) -> bool:
    """True when every equivalence class holds at least k records."""
    return all(ec.size >= k for ec in build_equivalence_classes(df, qids))
