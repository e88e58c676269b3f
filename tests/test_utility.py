import pandas as pd
import pytest

from microanon.core.errors import InvalidConfigurationError
from microanon.core.utility import (
    categorical_tv_distance,
    correlation_preservation,
    mean_preservation,
    measure_utility,
    numeric_tv_distance,
    suppression_rate,
    utility_level,
)


def test_identical_datasets_score_full_utility(example_df):
    m = measure_utility(example_df, example_df.copy())

    assert m.statistical_similarity == pytest.approx(1.0)
    assert m.correlation_preservation == pytest.approx(1.0)
    assert m.distribution_similarity == pytest.approx(1.0)
    assert m.information_loss == 0.0
    assert m.overall_utility == pytest.approx(1.0)
    assert m.utility_level == "Excellent"


@pytest.mark.parametrize("score,level", [
    (1.0, "Excellent"),
    (0.9, "Excellent"),
    (0.8999, "Good"),
    (0.75, "Good"),
    (0.7499, "Fair"),
    (0.5, "Fair"),
    (0.4999, "Poor"),
    (0.0, "Poor"),
])
def test_level_boundaries(score, level):
    assert utility_level(score) == level


def test_mean_preservation():
    raw = pd.DataFrame({"x": [10, 10]})

    assert mean_preservation(raw, pd.DataFrame({"x": [12, 12]}), "x") == pytest.approx(0.8)
    assert mean_preservation(raw, pd.DataFrame({"x": [100]}), "x") == 0.0


def test_zero_mean_column_is_not_scored():
    raw = pd.DataFrame({"x": [-1, 1], "y": [10, 10]})
    anon = pd.DataFrame({"x": [5, 5], "y": [9, 9]})

    assert mean_preservation(raw, anon, "x") is None

    m = measure_utility(raw, anon)
    assert m.statistical_similarity == pytest.approx(0.9)
    assert m.column_metrics[0]["preservation"] is None


@pytest.mark.parametrize("records", [
    [{"age": 30, "income": 50000}],
    [],
])
def test_small_datasets_compared_with_themselves(records):
    df = pd.DataFrame(records, columns=["age", "income"])
    m = measure_utility(df, df.copy(), numeric_cols=["age", "income"])

    assert m.correlation_preservation == 1.0
    assert m.overall_utility == pytest.approx(1.0)
    assert m.utility_level == "Excellent"


def test_infinite_cells_are_ignored():
    raw = pd.DataFrame({"x": [1.0, 2.0, float("inf")]})

    assert numeric_tv_distance(raw, raw, "x") == 0.0
    assert mean_preservation(raw, raw, "x") == 1.0


def test_statistical_similarity_is_worst_column():
    raw = pd.DataFrame({"a": [10, 10], "b": [100, 100]})
    anon = pd.DataFrame({"a": [10, 10], "b": [50, 50]})

    m = measure_utility(raw, anon)

    assert m.statistical_similarity == pytest.approx(0.5)
    assert [c["column"] for c in m.column_metrics] == ["a", "b"]
    assert m.column_metrics[1]["processedMean"] == pytest.approx(50.0)


def test_fully_suppressed_output_is_poor(example_df):
    empty = example_df.iloc[0:0]
    m = measure_utility(example_df, empty)

    assert m.statistical_similarity == 0.0
    assert m.correlation_preservation == 0.0
    assert m.distribution_similarity == 0.0
    assert m.information_loss == 1.0
    assert m.overall_utility == 0.0
    assert m.utility_level == "Poor"


def test_supplied_terms_override_computed_ones(example_df):
    m = measure_utility(
        example_df,
        example_df.copy(),
        correlation=0.5,
        distribution=0.5,
        information_loss=0.5,
    )

    assert m.overall_utility == pytest.approx(0.625)
    assert m.utility_level == "Fair"


@pytest.mark.parametrize("kwargs", [
    {"correlation": 1.5},
    {"distribution": -0.1},
    {"information_loss": 2.0},
])
def test_out_of_range_terms_rejected(example_df, kwargs):
    with pytest.raises(InvalidConfigurationError):
        measure_utility(example_df, example_df, **kwargs)


def test_reversed_correlation_scores_zero():
    raw = pd.DataFrame({"x": [1, 2, 3], "y": [1, 2, 3]})
    anon = pd.DataFrame({"x": [1, 2, 3], "y": [3, 2, 1]})

    assert correlation_preservation(raw, anon, ["x", "y"]) == pytest.approx(0.0)


def test_correlation_needs_two_columns():
    raw = pd.DataFrame({"x": [1, 2, 3]})

    assert correlation_preservation(raw, raw, ["x"]) == 1.0


def test_categorical_tv_distance():
    raw = pd.DataFrame({"c": ["a", "a", "b", "b"]})

    assert categorical_tv_distance(raw, raw, "c") == 0.0
    assert categorical_tv_distance(raw, pd.DataFrame({"c": ["a"] * 4}), "c") == pytest.approx(0.5)
    assert categorical_tv_distance(raw, pd.DataFrame({"c": []}), "c") == 1.0


def test_numeric_tv_distance():
    raw = pd.DataFrame({"x": list(range(100))})

    assert numeric_tv_distance(raw, raw, "x") == 0.0
    assert numeric_tv_distance(raw, pd.DataFrame({"x": [0] * 100}), "x") == pytest.approx(0.9)


def test_suppression_rate():
    raw = pd.DataFrame({"x": range(10)})

    assert suppression_rate(raw, raw.iloc[:7]) == pytest.approx(0.3)
    assert suppression_rate(raw, pd.concat([raw, raw])) == 0.0
    assert suppression_rate(raw.iloc[0:0], raw) == 0.0


def test_to_dict_keys(example_df):
    out = measure_utility(example_df, example_df).to_dict()

    assert set(out) == {
        "overallUtility",
        "utilityLevel",
        "statisticalSimilarity",
        "correlationPreservation",
        "distributionSimilarity",
        "informationLoss",
        "columnMetrics",
    }
