import pytest

from microanon.core.dataset import to_frame


def _rows(age, zip_code, count, incomes, diagnoses):
    return [
        {"age": age, "zip": zip_code, "income": inc, "diagnosis": diag}
        for inc, diag in zip(incomes[:count], diagnoses[:count])
    ]


@pytest.fixture
def example_records():
    """10 records, (age, zip) classes of sizes 1, 4 and 5 in that order."""
    return (
        _rows(31, "10001", 1, [52000], ["Flu"])
        + _rows(43, "10002", 4, [61000, 58000, 64000, 70000], ["Flu", "Cold", "Flu", "Asthma"])
        + _rows(57, "10003", 5, [45000, 47000, 51000, 49000, 53000],
                ["Cold", "Cold", "Flu", "Asthma", "Diabetes"])
    )


@pytest.fixture
def example_df(example_records):
    return to_frame(example_records)


@pytest.fixture
def qids():
    return ["age", "zip"]
