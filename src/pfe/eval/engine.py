# src/pfe/eval/engine.py
# -----------------------------------------------------------------------------
# Evaluation Engine
#
# Purpose
# -------
# One object per evaluation run that wires the stages together with a single
# EvaluatorConfig:
#   partition → evaluate_splits → cross_validate → calibrate → compile_report
#
# Notes
# -----
# - State is a RunResult value. Each stage computes the next RunResult first and
#   only then assigns it, so a stage that raises leaves the engine unchanged.
# - partition() and cross_validate() reject unresolved records. partition()
#   starts a fresh run; cross_validate() replaces earlier folds and scores
#   each fold with the configured num_bins.
# - Partition and cross-validation each use their own SeededStream(seed), so
#   k-fold results do not depend on whether a partition ran first.
# - Runs on one instance are sequential; use one engine per concurrent run.
# -----------------------------------------------------------------------------
from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from functools import partial
from typing import Any

from pfe.common.checks import ensure_resolved
from pfe.common.contracts import RecordLike, predictions_and_outcomes
from pfe.common.rng import SeededStream
from pfe.config import EvaluatorConfig, evaluator_config
from pfe.eval.calibration import CalibrationResult, analyze_calibration
from pfe.eval.report import Report, compile_report
from pfe.eval.run import SPLITS, RunResult
from pfe.scoring.metrics import MetricSet, evaluate_predictions
from pfe.split.kfold import CrossValidationResult, MetricsFn, kfold_cross_validation
from pfe.split.partition import Partition, partition_dataset


def validation_fold_metrics(
    train: Sequence[RecordLike], val: Sequence[RecordLike], *, num_bins: int = 10
) -> MetricSet:
    """Default fold scorer: the MetricSet of the fold's validation slice."""
    preds, outs = predictions_and_outcomes(val)
    return evaluate_predictions(preds, outs, num_bins)


class EvaluationEngine:
    """Single-run-at-a-time evaluator over an in-memory labeled dataset."""

    def __init__(self, config: EvaluatorConfig | None = None) -> None:
        self.config = config or EvaluatorConfig()
        self._run = RunResult(seed=self.config.seed)
        self._report: Report | None = None

    @property
    def seed(self) -> int:
        return self.config.seed

    @property
    def run(self) -> RunResult:
        return self._run

    @property
    def report(self) -> Report | None:
        return self._report

    # ------------------------------ stages ---------------------------------
    def partition(
        self, records: Sequence[RecordLike], *, stream: SeededStream | None = None
    ) -> Partition:
        ensure_resolved(records)
        part = partition_dataset(
            records,
            seed=self.config.seed,
            test_fraction=self.config.test_fraction,
            val_fraction=self.config.val_fraction,
            stream=stream,
        )
        self._run = self._run.with_partition(part)
        return part

    def evaluate_splits(self) -> dict[str, MetricSet]:
        """Score train / validation / test of the current partition."""
        part = self._run.partition
        if part is None:
            raise RuntimeError("No partition yet; call partition() first")
        chunks = {"train": part.train, "validation": part.validation, "test": part.test}
        metrics: dict[str, MetricSet] = {}
        for name in SPLITS:
            preds, outs = predictions_and_outcomes(chunks[name])
            metrics[name] = evaluate_predictions(preds, outs, self.config.num_bins)
        self._run = self._run.with_split_metrics(metrics)
        return metrics

    def record_metrics(self, split: str, metrics: Mapping[str, Any]) -> None:
        """Store an externally computed MetricSet for one split."""
        if split not in SPLITS:
            raise ValueError(f"Unknown split {split!r}; expected one of {SPLITS}")
        self._run = self._run.with_split_metrics({split: dict(metrics)})  # type: ignore[dict-item]

    def cross_validate(
        self,
        records: Sequence[RecordLike],
        metrics_fn: MetricsFn | None = None,
        *,
        k: int | None = None,
        stream: SeededStream | None = None,
    ) -> CrossValidationResult:
        ensure_resolved(records)
        scorer = metrics_fn or partial(validation_fold_metrics, num_bins=self.config.num_bins)
        cv = kfold_cross_validation(
            records,
            k or self.config.k_folds,
            scorer,
            seed=self.config.seed,
            stream=stream,
        )
        self._run = self._run.with_cross_validation(cv)
        return cv

    def calibrate(
        self,
        predictions: Sequence[float] | None = None,
        outcomes: Sequence[float] | None = None,
        num_bins: int | None = None,
    ) -> CalibrationResult:
        """
        Calibration table for the given pairs, or for the test split when
        called without arguments. An error result is returned as-is and not
        stored.
        """
        if predictions is None or outcomes is None:
            part = self._run.partition
            if part is None:
                raise RuntimeError("No partition yet; pass predictions/outcomes explicitly")
            predictions, outcomes = predictions_and_outcomes(part.test)
        result = analyze_calibration(predictions, outcomes, num_bins or self.config.num_bins)
        if result.ok:
            self._run = self._run.with_calibration(result)
        return result

    def compile_report(self, name: str = "Model Evaluation") -> Report:
        report = compile_report(self._run, name=name, policy=self.config.readiness)
        self._report = report
        return report

    def artifact_bundle(self) -> dict[str, Any]:
        """Everything the current run produced, as plain data."""
        run = self._run
        return {
            "splits": run.partition.metadata() if run.partition is not None else None,
            "foldMetrics": (
                [f.to_dict() for f in run.cross_validation.folds]
                if run.cross_validation is not None
                else []
            ),
            "calibration": run.calibration.to_dict() if run.calibration is not None else None,
            "report": self._report.model_dump() if self._report is not None else None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "seed": self.seed,
        }


def create_engine(scenario: str = "default") -> EvaluationEngine:
    """Engine preset: "default" (5 folds), "strict" (10 folds, 25% test), "quick"."""
    return EvaluationEngine(evaluator_config(scenario))
