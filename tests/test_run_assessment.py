import pytest

from scripts.run_assessment import main, run_for_qids


@pytest.fixture
def csv_path(tmp_path, example_df):
    path = tmp_path / "people.csv"
    example_df.to_csv(path, index=False)
    return str(path)


def test_run_for_qids_prints_every_stage(capsys, example_df, qids):
    run_for_qids(example_df, qids, mode_label="TEST VIEW")
    out = capsys.readouterr().out

    assert "=== TEST VIEW ===" in out
    assert "RE-IDENTIFICATION RISK (RAW DATA)" in out
    assert "prosecutor_risk: 0.3000" in out
    assert "K-ANONYMITY (k=5, suppression limit=0.1)" in out
    assert "UTILITY (SYNTHETIC)" in out
    assert "=== END OF MODE RUN ===" in out


def test_run_for_qids_without_qids(capsys, example_df):
    run_for_qids(example_df, [], mode_label="EMPTY")

    assert "[ERROR] No QIDs provided" in capsys.readouterr().out


def test_main_with_qids_argument(capsys, csv_path):
    main([csv_path, "age, zip"])
    out = capsys.readouterr().out

    assert "Rows: 10, Columns: 4" in out
    assert "CUSTOM-QID VIEW" in out


def test_main_prompts_for_qids(capsys, monkeypatch, csv_path):
    monkeypatch.setattr("builtins.input", lambda prompt="": "age")
    main([csv_path])

    assert "CUSTOM-QID VIEW" in capsys.readouterr().out


def test_main_rejects_unknown_qids(capsys, csv_path):
    main([csv_path, "salary"])

    assert "[ERROR] None of the entered QIDs exist" in capsys.readouterr().out
