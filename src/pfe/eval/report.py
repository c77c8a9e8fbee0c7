# src/pfe/eval/report.py
# -----------------------------------------------------------------------------
# Write-once evaluation report.
#
# compile_report() snapshots a RunResult into a frozen pydantic model: split
# metadata, per-split MetricSets, the calibration table, fold results with
# CV aggregates, and the readiness verdict. Everything is deep-copied into
# plain JSON-friendly structures, so later engine runs cannot reach back into
# a compiled report. Nested dicts and lists are frozen into ReadOnlyDict /
# tuples, so a compiled report cannot be edited in place either. A new run
# produces a new Report.
# -----------------------------------------------------------------------------
from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from pfe.config import ReadinessPolicy
from pfe.eval.readiness import ReadinessVerdict, assess_readiness
from pfe.eval.run import RunResult

SCHEMA_VERSION = "1.0"


class ReadOnlyDict(dict):
    """dict that refuses mutation after construction (still serializes as a dict)."""

    def _readonly(self, *args: Any, **kwargs: Any) -> Any:
        raise TypeError("Report contents are read-only")

    __setitem__ = _readonly
    __delitem__ = _readonly
    __ior__ = _readonly
    clear = _readonly
    pop = _readonly
    popitem = _readonly
    setdefault = _readonly
    update = _readonly

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (dict(self),))


def freeze(value: Any) -> Any:
    """Recursively turn dicts into ReadOnlyDict and lists into tuples."""
    if isinstance(value, dict):
        return ReadOnlyDict({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


class Report(BaseModel):
    model_config = ConfigDict(frozen=True, validate_default=True)

    report_id: str
    name: str
    created_at: str
    schema_version: str = SCHEMA_VERSION
    seed: int
    dataset_version: str | None = None
    dataset_hash: str | None = None
    dataset: dict[str, Any] = {}
    train_metrics: dict[str, Any] = {}
    validation_metrics: dict[str, Any] = {}
    test_metrics: dict[str, Any] = {}
    calibration: dict[str, Any] | None = None
    folds: tuple[dict[str, Any], ...] = ()
    cv_avg_metrics: dict[str, float] = {}
    cv_std_metrics: dict[str, float] = {}
    readiness: ReadinessVerdict
    notes: str = ""

    @field_validator(
        "dataset",
        "train_metrics",
        "validation_metrics",
        "test_metrics",
        "calibration",
        "folds",
        "cv_avg_metrics",
        "cv_std_metrics",
        mode="after",
    )
    @classmethod
    def _read_only(cls, v: Any) -> Any:
        return freeze(v)

    @property
    def summary(self) -> dict[str, Any]:
        return {
            "testBrierScore": self.test_metrics.get("brierScore"),
            "testLogScore": self.test_metrics.get("logScore"),
            "testCalibrationError": self.test_metrics.get("ece"),
            "modelReadiness": self.readiness.model_dump(),
        }


def new_report_id(now: datetime | None = None) -> str:
    ts = now or datetime.now(timezone.utc)
    return f"report_{int(ts.timestamp() * 1000)}_{uuid.uuid4().hex[:6]}"


def compile_report(
    run: RunResult,
    *,
    name: str = "Model Evaluation",
    policy: ReadinessPolicy | None = None,
) -> Report:
    """Assemble a RunResult and its readiness verdict into a Report."""
    now = datetime.now(timezone.utc)
    verdict = assess_readiness(run, policy)

    dataset: dict[str, Any] = {}
    version: str | None = None
    digest: str | None = None
    if run.partition is not None:
        dataset = run.partition.metadata()
        version = run.partition.dataset_version
        digest = run.partition.dataset_hash

    folds: list[dict[str, Any]] = []
    cv_avg: dict[str, float] = {}
    cv_std: dict[str, float] = {}
    if run.cross_validation is not None:
        folds = [f.to_dict() for f in run.cross_validation.folds]
        cv_avg = dict(run.cross_validation.avg_metrics)
        cv_std = dict(run.cross_validation.std_metrics)

    calibration = run.calibration.to_dict() if run.calibration is not None else None

    return Report(
        report_id=new_report_id(now),
        name=name,
        created_at=now.isoformat(),
        seed=run.seed,
        dataset_version=version,
        dataset_hash=digest,
        dataset=copy.deepcopy(dataset),
        train_metrics=copy.deepcopy(dict(run.metrics_for("train"))),
        validation_metrics=copy.deepcopy(dict(run.metrics_for("validation"))),
        test_metrics=copy.deepcopy(dict(run.metrics_for("test"))),
        calibration=copy.deepcopy(calibration),
        folds=copy.deepcopy(folds),
        cv_avg_metrics=cv_avg,
        cv_std_metrics=cv_std,
        readiness=verdict,
        notes=(
            "All metrics computed on deterministic dataset splits with seeded "
            f"randomness (seed={run.seed}) for reproducibility"
        ),
    )
