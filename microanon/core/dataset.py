# microanon/core/dataset.py

import math
import numbers
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

RecordsLike = Union[pd.DataFrame, Sequence[Mapping[str, Any]]]


def is_missing(value: Any) -> bool:
    """None and NaN both count as an absent value."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_number(value: Any) -> bool:
    """
    Per-cell numeric check.

    Real numbers (python or numpy) count; bools, strings and missing
    values do not. Numeric-looking strings are left as text.
    """
    if isinstance(value, (bool, np.bool_)):
        return False
    if not isinstance(value, numbers.Real):
        return False
    return not math.isnan(float(value))


def to_frame(records: RecordsLike, columns: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """
    Build the working DataFrame for a record set.

    Record input is loaded with dtype=object so every cell keeps the
    python type the caller supplied. A DataFrame is copied, optionally
    restricted to `columns`.
    """
    if isinstance(records, pd.DataFrame):
        df = records.copy()
        if columns is not None:
            df = df.loc[:, list(columns)]
        return df.reset_index(drop=True)

    rows = [dict(r) for r in records]
    if columns is None:
        cols: List[str] = []
        seen = set()
        for row in rows:
            for col in row:
                if col not in seen:
                    seen.add(col)
                    cols.append(col)
    else:
        cols = list(columns)

    if not rows:
        return pd.DataFrame(columns=cols, dtype=object)

    return pd.DataFrame(rows, columns=cols, dtype=object)


def to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Rows as plain dicts, missing cells reported as None."""
    out: List[Dict[str, Any]] = []
    cols = list(df.columns)
    for values in df.itertuples(index=False, name=None):
        out.append({
            col: (None if is_missing(v) else python_scalar(v))
            for col, v in zip(cols, values)
        })
    return out


def numeric_values(series: pd.Series) -> np.ndarray:
    """Float array of the finite numeric cells of a column."""
    vals = series[numeric_mask(series)].astype(float).to_numpy()
    return vals[np.isfinite(vals)]


def numeric_mask(series: pd.Series) -> pd.Series:
    if pd.api.types.is_bool_dtype(series):
        return pd.Series(False, index=series.index)
    if pd.api.types.is_numeric_dtype(series):
        return series.notna()
    return series.map(is_number).astype(bool)


def python_scalar(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def numeric_columns(df: pd.DataFrame) -> List[str]:
    """Columns whose present cells are all numeric (and at least one is present)."""
    cols = []
    for col in df.columns:
        series = df[col]
        present = series.notna()
        if not present.any():
            continue
        if numeric_mask(series)[present].all():
            cols.append(col)
    return cols
