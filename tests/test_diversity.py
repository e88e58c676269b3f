from collections import Counter

import numpy as np
import pandas as pd
import pytest

from microanon.core.dataset import to_frame
from microanon.core.diversity import (
    class_distances,
    enforce_l_diversity,
    enforce_t_closeness,
    entropy_l,
    equal_emd,
    ordered_emd,
    satisfies_recursive,
)
from microanon.core.errors import InvalidConfigurationError, UnknownColumnError

# example classes by diagnosis:
#   (31, 10001): Flu
#   (43, 10002): Flu, Cold, Flu, Asthma
#   (57, 10003): Cold, Cold, Flu, Asthma, Diabetes


def test_distinct_l_suppresses_single_valued_class(example_df, qids):
    res = enforce_l_diversity(example_df, qids, "diagnosis", l=3)

    assert res.suppressed_count == 1
    assert res.information_loss == pytest.approx(0.1)
    assert 31 not in set(res.processed["age"])


def test_distinct_l_four(example_df, qids):
    res = enforce_l_diversity(example_df, qids, "diagnosis", l=4)

    assert res.suppressed_count == 5
    assert set(res.processed["age"]) == {57}


def test_entropy_l(example_df, qids):
    res = enforce_l_diversity(example_df, qids, "diagnosis", l=3, method="entropy")

    # the 43 class has exp(H) ~ 2.83 and fails, the 57 class ~ 3.79 passes
    assert res.suppressed_count == 5
    assert set(res.processed["age"]) == {57}


def test_entropy_of_uniform_class_equals_distinct_count():
    assert entropy_l(Counter({"a": 3, "b": 3, "c": 3})) == pytest.approx(3.0)


@pytest.mark.parametrize("c,suppressed", [(1.0, 5), (2.0, 1)])
def test_recursive_l(example_df, qids, c, suppressed):
    res = enforce_l_diversity(example_df, qids, "diagnosis", l=2, method="recursive", c=c)

    assert res.suppressed_count == suppressed
    assert res.parameters["c"] == c


def test_satisfies_recursive():
    assert satisfies_recursive(Counter({"a": 2, "b": 1, "c": 1, "d": 1}), 2, 1.0)
    assert not satisfies_recursive(Counter({"a": 2, "b": 1, "c": 1}), 2, 1.0)
    assert not satisfies_recursive(Counter({"a": 5}), 2, 10.0)


def test_l_one_keeps_everything(example_df, qids):
    res = enforce_l_diversity(example_df, qids, "diagnosis", l=1)

    assert res.suppressed_count == 0
    pd.testing.assert_frame_equal(res.processed, example_df)


def test_ordered_emd_extremes():
    assert ordered_emd(np.array([1.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.0])) == pytest.approx(1.0)
    assert ordered_emd(np.array([1.0]), np.array([1.0])) == 0.0


def test_equal_emd():
    assert equal_emd(np.array([1.0, 0.0]), np.array([0.0, 1.0])) == pytest.approx(1.0)
    assert equal_emd(np.array([0.5, 0.5]), np.array([0.5, 0.5])) == 0.0


def test_class_distances_categorical(example_df, qids):
    d = list(class_distances(example_df, qids, "diagnosis").values())

    assert d == pytest.approx([0.6, 0.15, 0.2])


@pytest.mark.parametrize("t,suppressed", [(0.5, 1), (0.1, 10), (1.0, 0)])
def test_t_closeness_categorical(example_df, qids, t, suppressed):
    res = enforce_t_closeness(example_df, qids, "diagnosis", t=t)

    assert res.suppressed_count == suppressed
    assert res.technique == "t-closeness"


def test_t_closeness_numeric_uses_ordered_distance():
    df = to_frame([
        {"g": "a", "s": 1},
        {"g": "a", "s": 2},
        {"g": "b", "s": 3},
        {"g": "b", "s": 4},
    ])

    assert list(class_distances(df, ["g"], "s").values()) == pytest.approx([1 / 3, 1 / 3])
    assert enforce_t_closeness(df, ["g"], "s", t=0.3).processed.empty
    assert enforce_t_closeness(df, ["g"], "s", t=0.34).suppressed_count == 0


@pytest.mark.parametrize("call", [
    lambda df: enforce_l_diversity(df, ["age", "zip"], "diagnosis", l=0),
    lambda df: enforce_l_diversity(df, ["age", "zip"], "diagnosis", l=2, method="unknown"),
    lambda df: enforce_l_diversity(df, ["age", "zip"], "diagnosis", l=2, method="recursive", c=0),
    lambda df: enforce_l_diversity(df, ["age", "zip"], "zip", l=2),
    lambda df: enforce_l_diversity(df, [], "diagnosis", l=2),
    lambda df: enforce_t_closeness(df, ["age", "zip"], "diagnosis", t=1.5),
    lambda df: enforce_t_closeness(df, ["age", "zip"], "diagnosis", t=float("nan")),
])
def test_invalid_configuration(example_df, call):
    with pytest.raises(InvalidConfigurationError):
        call(example_df)


def test_unknown_sensitive_attribute(example_df, qids):
    with pytest.raises(UnknownColumnError):
        enforce_t_closeness(example_df, qids, "salary", t=0.2)
