# src/pfe/eval/run.py
# -----------------------------------------------------------------------------
# Immutable per-run state.
#
# Each stage (partition → split scoring → cross-validation → calibration)
# returns a new RunResult via dataclasses.replace; nothing is updated in place,
# so a stage that raises leaves the previous value untouched.
# -----------------------------------------------------------------------------
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from pfe.eval.calibration import CalibrationResult
from pfe.scoring.metrics import MetricSet
from pfe.split.kfold import CrossValidationResult
from pfe.split.partition import Partition

SPLITS: tuple[str, ...] = ("train", "validation", "test")


def _empty_metrics() -> Mapping[str, MetricSet]:
    return MappingProxyType({})


@dataclass(frozen=True)
class RunResult:
    seed: int
    partition: Partition | None = None
    split_metrics: Mapping[str, MetricSet] = field(default_factory=_empty_metrics)
    cross_validation: CrossValidationResult | None = None
    calibration: CalibrationResult | None = None

    def metrics_for(self, split: str) -> MetricSet:
        return self.split_metrics.get(split, {})

    @property
    def test_size(self) -> int | None:
        return self.partition.test_size if self.partition is not None else None

    def with_partition(self, partition: Partition) -> RunResult:
        """A new partition starts a fresh run: earlier scores no longer apply."""
        return RunResult(seed=partition.seed, partition=partition)

    def with_split_metrics(self, metrics: Mapping[str, MetricSet]) -> RunResult:
        merged: dict[str, Any] = dict(self.split_metrics)
        merged.update({k: dict(v) for k, v in metrics.items()})
        return replace(self, split_metrics=MappingProxyType(merged))

    def with_cross_validation(self, cv: CrossValidationResult) -> RunResult:
        return replace(self, cross_validation=cv)

    def with_calibration(self, calibration: CalibrationResult) -> RunResult:
        return replace(self, calibration=calibration)
