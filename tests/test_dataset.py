import numpy as np
import pandas as pd

from microanon.core.dataset import numeric_columns, numeric_mask, numeric_values, to_frame, to_records


def test_numeric_columns_across_dtypes():
    df = pd.DataFrame({
        "ints": [1, 2, 3],
        "floats": [1.5, np.nan, 2.0],
        "flags": [True, False, True],
        "text": ["a", "b", "c"],
        "empty": [None, None, None],
    })

    assert numeric_columns(df) == ["ints", "floats"]


def test_numeric_columns_on_object_records():
    df = to_frame([{"a": 1, "b": "x"}, {"a": None, "b": 2}, {"a": 2.5, "b": 3}])

    assert numeric_columns(df) == ["a"]
    assert list(numeric_mask(df["b"])) == [False, True, True]


def test_numeric_values_drop_non_finite():
    series = to_frame([{"x": 1}, {"x": float("inf")}, {"x": "2"}, {"x": 3.0}])["x"]

    assert list(numeric_values(series)) == [1.0, 3.0]


def test_records_round_trip_missing_as_none():
    df = pd.DataFrame({"a": [1, np.nan], "b": ["x", None]})

    assert to_records(df) == [{"a": 1.0, "b": "x"}, {"a": None, "b": None}]
