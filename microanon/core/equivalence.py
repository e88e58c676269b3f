# microanon/core/equivalence.py

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .dataset import is_missing, is_number, python_scalar
from .errors import InvalidConfigurationError, UnknownColumnError

logger = logging.getLogger(__name__)

HISTOGRAM_BUCKETS = ("1", "2-4", "5-10", ">10")


@dataclass
class EquivalenceClass:
    """
    Records sharing identical quasi-identifier values.

    `indices` are row positions in the DataFrame the class was built
    from, in row order.
    """

    key: str
    values: Tuple[Any, ...]
    indices: List[int] = field(default_factory=list)
    risk_score: Optional[float] = None

    @property
    def size(self) -> int:
        return len(self.indices)

    def records(self, df: pd.DataFrame) -> pd.DataFrame:
        return df.iloc[self.indices]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "values": [None if is_missing(v) else python_scalar(v) for v in self.values],
            "size": self.size,
            "riskScore": self.risk_score,
        }


def render_value(value: Any) -> str:
    """Text form used for grouping; integral floats render like ints (30.0 -> "30")."""
    if is_missing(value):
        return ""
    if is_number(value) and math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return str(value)


def class_key(values: Sequence[Any]) -> str:
    """
    Composite key for one row's quasi-identifier values.

    Each part is length-prefixed ("3:abc"), so no value can
    imitate a separator.
    """
    parts = []
    for v in values:
        text = render_value(v)
        parts.append(f"{len(text)}:{text}")
    return "|".join(parts)


def check_qids(df: pd.DataFrame, qids: Sequence[str]) -> List[str]:
    """Reject an empty QID list or QIDs missing from the dataset."""
    qids = list(qids or [])
    if not qids:
        raise InvalidConfigurationError(
            "At least one quasi-identifier is required.",
            parameter="quasi_identifiers",
            value=qids,
        )
    missing = [q for q in qids if q not in df.columns]
    if missing:
        raise UnknownColumnError(missing)
    return qids


def build_equivalence_classes(df: pd.DataFrame, qids: Sequence[str]) -> List[EquivalenceClass]:
    """
    Partition every row of `df` by its quasi-identifier tuple.

    Classes come back in first-seen order. An empty QID list or an
    empty frame gives no classes.
    """
    qids = list(qids)
    if not qids or df.empty:
        return []

    missing = [q for q in qids if q not in df.columns]
    if missing:
        raise UnknownColumnError(missing)

    rendered = rendered_frame(df, qids)
    # sort=False numbers groups in first-seen order
    codes = rendered.groupby(qids, sort=False).ngroup().to_numpy()
    positions = pd.Series(codes).groupby(codes).indices

    classes: List[EquivalenceClass] = []
    for code in range(len(positions)):
        indices = positions[code].tolist()
        values = tuple(df[q].iat[indices[0]] for q in qids)
        classes.append(EquivalenceClass(key=class_key(values), values=values, indices=indices))

    logger.debug("Built %d equivalence classes over %d records", len(classes), len(df))
    return classes


def rendered_frame(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """`columns` of `df` as grouping text, positionally indexed."""
    return pd.DataFrame(
        {col: df[col].map(render_value).to_numpy() for col in columns},
        columns=list(columns),
    )


def class_sizes(classes: Sequence[EquivalenceClass]) -> List[int]:
    return [ec.size for ec in classes]


def class_size_histogram(classes: Sequence[EquivalenceClass]) -> Dict[str, int]:
    """Class counts bucketed by size: 1, 2-4, 5-10, >10."""
    hist = {bucket: 0 for bucket in HISTOGRAM_BUCKETS}
    for ec in classes:
        if ec.size == 1:
            hist["1"] += 1
        elif ec.size <= 4:
            hist["2-4"] += 1
        elif ec.size <= 10:
            hist["5-10"] += 1
        else:
            hist[">10"] += 1
    return hist
