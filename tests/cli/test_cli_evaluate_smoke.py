# tests/cli/test_cli_evaluate_smoke.py
from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest
from typer.testing import CliRunner

from pfe.cli import app, load_records

runner = CliRunner()


@pytest.fixture()
def records_csv(tmp_path: Path, record_factory) -> Path:
    rows = record_factory(300, seed=5)
    rows[0]["outcome"] = None  # one pending market
    path = tmp_path / "records.csv"
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def test_load_records_from_csv(records_csv: Path) -> None:
    recs = load_records(records_csv)
    assert len(recs) == 300
    assert recs[0].outcome is None
    assert sum(r.resolved for r in recs) == 299
    assert recs[1].created is not None


def test_evaluate_summary(records_csv: Path) -> None:
    res = runner.invoke(app, ["evaluate", str(records_csv)])
    assert res.exit_code == 0, res.output
    summary = json.loads(res.stdout)
    assert summary["dataset"]["records"] == 299
    assert summary["crossValidation"]["folds"] == 5


def test_evaluate_json_with_config(records_csv: Path, config_dir: Path) -> None:
    res = runner.invoke(
        app,
        ["evaluate", str(records_csv), "--config", str(config_dir / "evaluation.yaml"), "--format", "json"],
    )
    assert res.exit_code == 0, res.output
    payload = json.loads(res.stdout)
    assert payload["seed"] == 42
    assert payload["schema_version"] == "1.0"


def test_evaluate_markdown_strict(records_csv: Path) -> None:
    res = runner.invoke(
        app, ["evaluate", str(records_csv), "--scenario", "strict", "--format", "markdown", "--name", "Smoke"]
    )
    assert res.exit_code == 0, res.output
    assert "# Model Evaluation Report: Smoke" in res.stdout
    assert "## Cross-Validation (10 folds)" in res.stdout


def test_evaluate_failure_exit_code(tmp_path: Path) -> None:
    path = tmp_path / "pending.csv"
    pd.DataFrame({"probability": [0.5, 0.6], "outcome": [None, None]}).to_csv(path, index=False)
    res = runner.invoke(app, ["evaluate", str(path)])
    assert res.exit_code == 1


def test_split_and_calibrate(records_csv: Path) -> None:
    res = runner.invoke(app, ["split", str(records_csv), "--seed", "7"])
    assert res.exit_code == 0, res.output
    meta = json.loads(res.stdout)
    assert meta["seed"] == 7
    assert meta["totalRecords"] == 299
    assert "indices" not in meta

    res = runner.invoke(app, ["calibrate", str(records_csv), "--bins", "5"])
    assert res.exit_code == 0, res.output
    lines = res.stdout.strip().splitlines()
    assert all(line.startswith("[calibration]") for line in lines)
    assert "n=299" in lines[-1]


def test_missing_columns_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bad.csv"
    pd.DataFrame({"p": [0.1]}).to_csv(path, index=False)
    res = runner.invoke(app, ["calibrate", str(path)])
    assert res.exit_code != 0


def test_bad_config_is_a_usage_error(records_csv: Path, tmp_path: Path) -> None:
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("evaluation:\n  k_folds: five\n", encoding="utf-8")
    res = runner.invoke(app, ["evaluate", str(records_csv), "--config", str(cfg)])
    assert res.exit_code == 2
    assert not isinstance(res.exception, TypeError)

    cfg.write_text("evaluation:\n  folds: 5\n", encoding="utf-8")
    res = runner.invoke(app, ["evaluate", str(records_csv), "--config", str(cfg)])
    assert res.exit_code == 2


def test_unknown_scenario_rejected(records_csv: Path) -> None:
    res = runner.invoke(app, ["evaluate", str(records_csv), "--scenario", "strcit"])
    assert res.exit_code == 2
