# tests/test_report.py
from __future__ import annotations

import copy
import re
from typing import Any

import pytest
from pydantic import ValidationError

from pfe.eval.engine import EvaluationEngine
from pfe.eval.report import SCHEMA_VERSION, Report, compile_report
from pfe.eval.run import RunResult


def _engine_with_run(records: list[dict[str, Any]]) -> EvaluationEngine:
    eng = EvaluationEngine()
    eng.partition(records)
    eng.evaluate_splits()
    eng.calibrate()
    eng.cross_validate(records)
    return eng


def test_report_contents(records_400: list[dict[str, Any]]) -> None:
    eng = _engine_with_run(records_400)
    rep = eng.compile_report("Nightly")
    assert rep.name == "Nightly"
    assert rep.schema_version == SCHEMA_VERSION == "1.0"
    assert rep.seed == 42
    assert re.fullmatch(r"report_\d+_[0-9a-f]{6}", rep.report_id)
    assert rep.dataset["totalRecords"] == 400
    assert rep.dataset_version == eng.run.partition.dataset_version
    assert rep.test_metrics["sampleSize"] == 80
    assert len(rep.folds) == 5
    assert [f["fold"] for f in rep.folds] == [1, 2, 3, 4, 5]
    assert "brierScore" in rep.cv_avg_metrics
    assert rep.calibration is not None and rep.calibration["binCount"] == 10
    assert rep.readiness.ready
    assert "seed=42" in rep.notes
    assert eng.report is rep


def test_report_is_frozen(records_100: list[dict[str, Any]]) -> None:
    rep = _engine_with_run(records_100).compile_report()
    with pytest.raises(ValidationError):
        rep.name = "changed"  # type: ignore[misc]


def test_later_runs_do_not_touch_compiled_report(record_factory) -> None:
    eng = _engine_with_run(record_factory(200, seed=1))
    first = eng.compile_report("first")
    before = first.model_dump()

    eng.partition(record_factory(300, seed=2))
    eng.evaluate_splits()
    second = eng.compile_report("second")

    assert first.model_dump() == before
    assert second.dataset["totalRecords"] == 300
    assert first.report_id != second.report_id
    # second run has no folds or calibration of its own
    assert second.folds == ()
    assert second.calibration is None


def test_report_contents_are_read_only(records_100: list[dict[str, Any]]) -> None:
    eng = _engine_with_run(records_100)
    rep = eng.compile_report()
    with pytest.raises(TypeError):
        rep.test_metrics["brierScore"] = 99.0
    with pytest.raises(TypeError):
        rep.dataset["splits"]["test"].update(size=0)
    with pytest.raises(TypeError):
        rep.folds[0]["metrics"].pop("brierScore")
    with pytest.raises(AttributeError):
        rep.folds[0]["trainIndices"].append(1)  # tuple
    assert eng.run.metrics_for("test")["brierScore"] != 99.0
    assert rep.test_metrics == dict(eng.run.metrics_for("test"))


def test_read_only_report_still_serializes(records_100: list[dict[str, Any]]) -> None:
    rep = _engine_with_run(records_100).compile_report()
    dumped = rep.model_dump()
    assert dumped["test_metrics"]["sampleSize"] == 20
    assert copy.deepcopy(rep.dataset) == rep.dataset
    back = Report.model_validate_json(rep.model_dump_json())
    with pytest.raises(TypeError):
        back.cv_avg_metrics["brierScore"] = 0.0


def test_empty_run_compiles_not_ready() -> None:
    rep = compile_report(RunResult(seed=3))
    assert not rep.readiness.ready
    assert rep.dataset == {}
    assert rep.dataset_version is None
    assert rep.summary["testBrierScore"] is None
    assert rep.summary["modelReadiness"]["ready"] is False
