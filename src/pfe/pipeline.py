# src/pfe/pipeline.py
# -----------------------------------------------------------------------------
# End-to-end evaluation pipeline
#
#   resolved records → partition → per-split scores → calibration (test)
#   → k-fold CV → rolling backtest → accuracy by confidence → Report
#
# Every step is written to an execution log (also echoed to stdout unless
# verbose=False). Any failure ends the run with PipelineResult(success=False)
# carrying the message and the log so far; the backtest is optional and only
# logged as skipped when there is not enough timestamped history.
# -----------------------------------------------------------------------------
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from pfe.common.contracts import RecordLike, is_resolved, predictions_and_outcomes
from pfe.common.errors import EvaluationError
from pfe.common.logging import Timed, log_stdout
from pfe.config import BacktestConfig, EvaluatorConfig
from pfe.eval.backtest import (
    BacktestResult,
    ConfidenceBucket,
    accuracy_by_confidence,
    rolling_window_backtest,
)
from pfe.eval.calibration import CalibrationResult
from pfe.eval.engine import EvaluationEngine
from pfe.eval.report import Report
from pfe.scoring.metrics import MetricSet, evaluate_predictions
from pfe.split.kfold import CrossValidationResult

QUICK_MIN_RECORDS = 10


@dataclass(frozen=True)
class PipelineResult:
    success: bool
    report: Report | None = None
    cross_validation: CrossValidationResult | None = None
    backtest: BacktestResult | None = None
    confidence: tuple[ConfidenceBucket, ...] = ()
    execution_log: tuple[str, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class QuickResult:
    success: bool
    metrics: MetricSet | None = None
    calibration: CalibrationResult | None = None
    sample_size: int = 0
    error: str | None = None


def _fmt(v: object) -> str:
    return f"{v:.4f}" if isinstance(v, float) else "N/A"


@dataclass
class EvaluationPipeline:
    config: EvaluatorConfig = field(default_factory=EvaluatorConfig)
    backtest_config: BacktestConfig = field(default_factory=BacktestConfig)
    verbose: bool = True
    execution_log: list[str] = field(default_factory=list)

    def _log(self, msg: str) -> None:
        log_stdout(msg, sink=self.execution_log, echo=self.verbose)

    def run(self, records: Sequence[RecordLike], name: str = "Prediction Market Evaluation") -> PipelineResult:
        self.execution_log = []
        engine = EvaluationEngine(self.config)
        try:
            with Timed() as t:
                result = self._run(engine, records, name)
            self._log(f"Evaluation pipeline complete in {t.elapsed:.2f}s")
            return PipelineResult(
                success=True,
                report=result[0],
                cross_validation=result[1],
                backtest=result[2],
                confidence=result[3],
                execution_log=tuple(self.execution_log),
            )
        except (EvaluationError, ValueError, RuntimeError) as exc:
            self._log(f"Pipeline failed: {exc}")
            return PipelineResult(success=False, error=str(exc), execution_log=tuple(self.execution_log))

    def _run(
        self, engine: EvaluationEngine, records: Sequence[RecordLike], name: str
    ) -> tuple[Report, CrossValidationResult, BacktestResult | None, tuple[ConfidenceBucket, ...]]:
        self._log(f"Starting evaluation pipeline: {name}")

        resolved = [r for r in records if is_resolved(r)]
        dropped = len(records) - len(resolved)
        self._log(f"Step 1: {len(resolved)} resolved records ({dropped} unresolved excluded)")

        part = engine.partition(resolved)
        self._log(
            f"Step 2: split train={part.train_size}, val={part.val_size}, test={part.test_size} "
            f"(dataset {part.dataset_version})"
        )

        metrics = engine.evaluate_splits()
        for split in ("train", "validation", "test"):
            m = metrics[split]
            self._log(
                f"Step 3: {split} metrics Brier={_fmt(m.get('brierScore'))}, "
                f"LogScore={_fmt(m.get('logScore'))}"
            )

        calibration = engine.calibrate()
        self._log(f"Step 4: calibration ECE={_fmt(calibration.ece)}")

        cv = engine.cross_validate(resolved)
        self._log(
            f"Step 5: {cv.k}-fold CV avg Brier={_fmt(cv.avg_metrics.get('brierScore'))} "
            f"± {_fmt(cv.std_metrics.get('brierScore'))}"
        )

        backtest: BacktestResult | None = None
        try:
            backtest = rolling_window_backtest(resolved, self.backtest_config)
            self._log(f"Step 6: backtest {backtest.window_count} windows")
        except EvaluationError as exc:
            self._log(f"Step 6: backtest skipped: {exc}")

        confidence = accuracy_by_confidence(resolved, self.config.num_bins)
        self._log(f"Step 7: accuracy by confidence over {len(confidence)} buckets")

        report = engine.compile_report(name)
        self._log(f"Step 8: report {report.report_id} ready={report.readiness.ready}")
        for w in report.readiness.warnings:
            self._log(f"  warning: {w}")
        for i in report.readiness.issues:
            self._log(f"  issue: {i}")
        return report, cv, backtest, confidence

    def quick_evaluate(self, records: Sequence[RecordLike]) -> QuickResult:
        """Score and calibrate all resolved records without splitting."""
        resolved = [r for r in records if is_resolved(r)]
        if len(resolved) < QUICK_MIN_RECORDS:
            return QuickResult(success=False, error="Insufficient resolved records")
        preds, outs = predictions_and_outcomes(resolved)
        engine = EvaluationEngine(self.config)
        calibration = engine.calibrate(preds, outs)
        return QuickResult(
            success=True,
            metrics=evaluate_predictions(preds, outs, self.config.num_bins),
            calibration=calibration,
            sample_size=len(resolved),
        )


def run_full_evaluation(
    records: Sequence[RecordLike],
    config: EvaluatorConfig | None = None,
    backtest_config: BacktestConfig | None = None,
    *,
    name: str = "Prediction Market Evaluation",
    verbose: bool = True,
) -> PipelineResult:
    pipeline = EvaluationPipeline(
        config=config or EvaluatorConfig(),
        backtest_config=backtest_config or BacktestConfig(),
        verbose=verbose,
    )
    return pipeline.run(records, name=name)
