# microanon/core/diversity.py
"""
l-diversity and t-closeness by class suppression.

Both work on the same equivalence classes as k-anonymity and drop whole
classes whose sensitive-attribute distribution fails the criterion:

- l-diversity
    distinct   : at least l distinct sensitive values
    entropy    : entropy of the sensitive distribution >= ln(l)
    recursive  : (c, l) rule r_1 < c * (r_l + ... + r_m), counts sorted
                 in descending order
- t-closeness
    Earth Mover's Distance between the class distribution and the
    whole-table distribution is at most t. Numeric attributes use the
    ordered distance over sorted distinct values, categorical ones the
    equal distance (half the L1 difference).
"""

import logging
import math
from collections import Counter
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from .dataset import is_missing, is_number
from .equivalence import EquivalenceClass, build_equivalence_classes, check_qids, render_value
from .errors import InvalidConfigurationError, UnknownColumnError
from .results import AnonymizationResult

logger = logging.getLogger(__name__)

L_DIVERSITY_METHODS = ("distinct", "entropy", "recursive")


def _check_sensitive(df: pd.DataFrame, qids: Sequence[str], sensitive: str) -> None:
    if sensitive not in df.columns:
        raise UnknownColumnError([sensitive], parameter="sensitive_attribute")
    if sensitive in qids:
        raise InvalidConfigurationError(
            "The sensitive attribute cannot also be a quasi-identifier.",
            parameter="sensitive_attribute",
            value=sensitive,
        )


def _value_counts(values: Sequence) -> Counter:
    return Counter(render_value(v) for v in values)


def distinct_l(counts: Counter) -> int:
    return len(counts)


def entropy_l(counts: Counter) -> float:
    """exp(entropy): the largest l for which entropy l-diversity holds."""
    total = sum(counts.values())
    if total == 0:
        return 0.0
    h = 0.0
    for c in counts.values():
        p = c / total
        h -= p * math.log(p)
    return math.exp(h)


def satisfies_recursive(counts: Counter, l: int, c: float) -> bool:
    ordered = sorted(counts.values(), reverse=True)
    if len(ordered) < l:
        return False
    if l == 1:
        return True
    return ordered[0] < c * sum(ordered[l - 1:])


def _satisfies_l(counts: Counter, l: int, method: str, c: float) -> bool:
    if method == "distinct":
        return distinct_l(counts) >= l
    if method == "entropy":
        # tolerance for ln rounding when the distribution is exactly uniform
        return entropy_l(counts) >= l - 1e-9
    return satisfies_recursive(counts, l, c)


def _suppress(df: pd.DataFrame, failing: Sequence[EquivalenceClass]) -> pd.DataFrame:
    dropped = {i for ec in failing for i in ec.indices}
    keep = [i for i in range(len(df)) if i not in dropped]
    return df.iloc[keep].reset_index(drop=True)


def enforce_l_diversity(
    df: pd.DataFrame,
    qids: List[str],
    sensitive: str,
    l: int,
    method: str = "distinct",
    c: float = 1.0,
) -> AnonymizationResult:
    """Suppress every equivalence class that is not l-diverse."""
    qids = check_qids(df, qids)
    _check_sensitive(df, qids, sensitive)
    if l < 1:
        raise InvalidConfigurationError("l must be at least 1", parameter="l", value=l)
    if method not in L_DIVERSITY_METHODS:
        raise InvalidConfigurationError(
            f"Unknown l-diversity method '{method}', expected one of {L_DIVERSITY_METHODS}",
            parameter="method",
            value=method,
        )
    if method == "recursive" and c <= 0:
        raise InvalidConfigurationError("c must be positive", parameter="c", value=c)

    classes = build_equivalence_classes(df, qids)
    values = df[sensitive].tolist()
    failing = [
        ec for ec in classes
        if not _satisfies_l(_value_counts([values[i] for i in ec.indices]), l, method, c)
    ]
    out = _suppress(df, failing)
    suppressed = len(df) - len(out)
    loss = suppressed / len(df) if len(df) else 0.0

    logger.info(
        "l-diversity (l=%d, %s): %d of %d classes suppressed (%d records)",
        l, method, len(failing), len(classes), suppressed,
    )
    params = {"l": l, "method": method, "sensitive_attribute": sensitive, "quasi_identifiers": qids}
    if method == "recursive":
        params["c"] = c
    return AnonymizationResult(
        technique="l-diversity",
        processed=out,
        information_loss=loss,
        suppressed_count=suppressed,
        parameters=params,
    )


def _distribution(labels: Sequence, support: Sequence) -> np.ndarray:
    counts = Counter(labels)
    total = sum(counts[s] for s in support)
    if total == 0:
        return np.zeros(len(support))
    return np.array([counts[s] / total for s in support], dtype=float)


def ordered_emd(p: np.ndarray, q: np.ndarray) -> float:
    """EMD with ordered ground distance |i - j| / (m - 1)."""
    m = len(p)
    if m <= 1:
        return 0.0
    return float(np.abs(np.cumsum(p - q)).sum() / (m - 1))


def equal_emd(p: np.ndarray, q: np.ndarray) -> float:
    """EMD with equal ground distance: half the L1 difference."""
    return float(0.5 * np.abs(p - q).sum())


def class_distances(df: pd.DataFrame, qids: List[str], sensitive: str) -> Dict[str, float]:
    """EMD of every equivalence class to the whole table, keyed by class key."""
    classes = build_equivalence_classes(df, qids)
    return {ec.key: d for ec, d in zip(classes, _distances(df, classes, sensitive))}


def _distances(df: pd.DataFrame, classes: Sequence[EquivalenceClass], sensitive: str) -> List[float]:
    raw = df[sensitive].tolist()
    present = [v for v in raw if not is_missing(v)]
    numeric = bool(present) and all(is_number(v) for v in present)

    if numeric:
        labels = [float(v) if is_number(v) else None for v in raw]
        support = sorted({x for x in labels if x is not None})
        emd = ordered_emd
    else:
        labels = [render_value(v) for v in raw]
        support = sorted(set(labels))
        emd = equal_emd

    overall = _distribution(labels, support)
    out = []
    for ec in classes:
        local = _distribution([labels[i] for i in ec.indices], support)
        if not local.any():
            out.append(0.0 if not overall.any() else 1.0)
        else:
            out.append(emd(local, overall))
    return out


def enforce_t_closeness(
    df: pd.DataFrame,
    qids: List[str],
    sensitive: str,
    t: float,
) -> AnonymizationResult:
    """Suppress every equivalence class whose EMD to the table exceeds t."""
    qids = check_qids(df, qids)
    _check_sensitive(df, qids, sensitive)
    if t is None or math.isnan(t) or not 0.0 <= t <= 1.0:
        raise InvalidConfigurationError("t must lie in [0, 1]", parameter="t", value=t)

    classes = build_equivalence_classes(df, qids)
    distances = _distances(df, classes, sensitive)
    failing = [ec for ec, d in zip(classes, distances) if d > t + 1e-12]

    out = _suppress(df, failing)
    suppressed = len(df) - len(out)
    loss = suppressed / len(df) if len(df) else 0.0

    logger.info(
        "t-closeness (t=%s): %d of %d classes suppressed (%d records), max EMD %.4f",
        t, len(failing), len(classes), suppressed, max(distances) if distances else 0.0,
    )
    return AnonymizationResult(
        technique="t-closeness",
        processed=out,
        information_loss=loss,
        suppressed_count=suppressed,
        parameters={"t": t, "method": "emd", "sensitive_attribute": sensitive, "quasi_identifiers": qids},
    )
