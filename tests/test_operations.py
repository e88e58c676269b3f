import numpy as np
import pytest

from microanon.core import operations
from microanon.core.errors import InvalidConfigurationError, UnknownColumnError


def test_risk_metrics_from_records(example_records, qids):
    out = operations.compute_risk_metrics(example_records, qids, k_threshold=5).to_dict()

    assert out["prosecutorRisk"] == pytest.approx(0.3)
    assert out["riskLevel"] == "Medium"
    assert out["uniqueRecords"] == 1
    assert out["smallGroups"] == 1
    assert out["totalClasses"] == 3
    assert set(out["models"]) == {"prosecutor", "journalist", "marketer"}


def test_risk_metrics_rejects_unknown_qid(example_records):
    with pytest.raises(UnknownColumnError) as exc:
        operations.compute_risk_metrics(example_records, ["age", "postcode"], k_threshold=5)

    assert exc.value.columns == ["postcode"]


def test_risk_metrics_column_restriction(example_records):
    m = operations.compute_risk_metrics(example_records, ["age"], k_threshold=2, columns=["age", "zip"])

    assert m.records == 10
    assert m.unique_records == 1


def test_journalist_never_exceeds_prosecutor(example_records, qids):
    for k in (1, 2, 5, 10):
        m = operations.compute_risk_metrics(example_records, qids, k_threshold=k)
        assert m.journalist_risk <= m.prosecutor_risk


def test_k_anonymity_returns_plain_records(example_records, qids):
    out = operations.apply_k_anonymity(example_records, qids, k_value=5, suppression_limit=0.1).to_dict()

    assert out["suppressedCount"] == 1
    assert out["generalizedCount"] == 4
    assert out["processedRecords"][0] == {"age": 40, "zip": "*", "income": 61000, "diagnosis": "Flu"}
    assert len(out["processedRecords"]) == 9


def test_k_anonymity_requires_qids(example_records):
    with pytest.raises(InvalidConfigurationError):
        operations.apply_k_anonymity(example_records, [], k_value=5, suppression_limit=0.1)


def test_missing_values_reported_as_none():
    records = [{"v": 1.0, "c": "a"}, {"v": None, "c": None}, {"v": 3.0, "c": "b"}]
    res = operations.apply_differential_privacy(records, 1.0, ["v"], rng=np.random.default_rng(0))

    assert res.processed_records[1] == {"v": None, "c": None}


def test_unknown_mechanism_rejected(example_records):
    with pytest.raises(InvalidConfigurationError):
        operations.apply_differential_privacy(example_records, 1.0, mechanism="exponential")


def test_gaussian_mechanism(example_records):
    res = operations.apply_differential_privacy(
        example_records, 1.0, ["income"], mechanism="gaussian", rng=np.random.default_rng(0)
    )

    assert res.parameters["mechanism"] == "gaussian"
    assert res.processed_records[0]["zip"] == "10001"


def test_l_diversity_and_t_closeness(example_records, qids):
    l_res = operations.apply_l_diversity(example_records, qids, "diagnosis", 3)
    t_res = operations.apply_t_closeness(example_records, qids, "diagnosis", 0.5)

    assert l_res.suppressed_count == 1
    assert t_res.suppressed_count == 1


def test_synthetic(example_records):
    res = operations.generate_synthetic(example_records, 50, rng=np.random.default_rng(0))

    assert len(res.processed_records) == 5


def test_utility_of_unchanged_records(example_records):
    m = operations.measure_utility(example_records, example_records)

    assert m.overall_utility == pytest.approx(1.0)
    assert m.to_dict()["utilityLevel"] == "Excellent"


def test_utility_after_k_anonymity(example_records, qids):
    res = operations.apply_k_anonymity(example_records, qids, k_value=5, suppression_limit=0.1)
    m = operations.measure_utility(
        example_records, res.processed_records, information_loss=res.information_loss
    )

    assert 0.0 < m.overall_utility < 1.0
    assert m.information_loss == pytest.approx(0.1)


def test_profile_dataset(example_records):
    summary = operations.profile_dataset(example_records)

    assert summary["rows"] == 10
    assert summary["scores"]["completeness"] == 1.0


def test_empty_records_take_the_referenced_columns():
    k_res = operations.apply_k_anonymity([], ["age", "zip"], k_value=5, suppression_limit=0.1)
    assert k_res.processed.empty
    assert list(k_res.processed.columns) == ["age", "zip"]
    assert k_res.information_loss == 0.0

    dp_res = operations.apply_differential_privacy([], 1.0, numeric_columns=["age"])
    assert dp_res.processed_records == []

    syn = operations.generate_synthetic([], 100, columns=["age"])
    assert list(syn.processed.columns) == ["age"]
    assert syn.processed.empty

    l_res = operations.apply_l_diversity([], ["age"], "diagnosis", 2)
    assert l_res.suppressed_count == 0

    m = operations.compute_risk_metrics([], ["age"], k_threshold=5)
    assert m.prosecutor_risk == 0.0


def test_empty_processed_records_measured_against_original(example_records):
    m = operations.measure_utility(example_records, [])

    assert m.information_loss == 1.0
    assert m.utility_level == "Poor"


def test_synthetic_respects_columns(example_records):
    res = operations.generate_synthetic(example_records, 100, columns=["age"], rng=np.random.default_rng(0))

    assert list(res.processed.columns) == ["age"]
