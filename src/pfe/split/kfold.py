# src/pfe/split/kfold.py
# -----------------------------------------------------------------------------
# Rotating k-fold cross-validation over a seeded shuffle.
#
# One Fisher–Yates shuffle of 0..n-1 (fresh SeededStream(seed), independent of
# the train/val/test partition's stream), then contiguous validation blocks:
#
#   fold_size = floor(n / k)
#   fold i    : validation = shuffled[i*fold_size : (i+1)*fold_size]
#   last fold : validation = shuffled[(k-1)*fold_size : n]   (absorbs remainder)
#   training  = every other shuffled index, order preserved
#
# The caller's metrics_fn(train_records, val_records) is opaque to the runner.
# Aggregation keeps the keys of fold 0's metrics; for each key the finite,
# non-bool numeric values across folds give mean and sample std. Keys with no
# numeric observation are omitted (never reported as 0).
# -----------------------------------------------------------------------------
from __future__ import annotations

import math
import numbers
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pfe.common.checks import assert_fold_coverage
from pfe.common.contracts import RecordLike
from pfe.common.errors import InsufficientDataError
from pfe.common.rng import SeededStream
from pfe.scoring.metrics import mean, standard_deviation

MetricsFn = Callable[[Sequence[RecordLike], Sequence[RecordLike]], Mapping[str, Any]]


@dataclass(frozen=True)
class FoldResult:
    index: int
    train_indices: tuple[int, ...]
    val_indices: tuple[int, ...]
    metrics: Mapping[str, Any]

    @property
    def train_size(self) -> int:
        return len(self.train_indices)

    @property
    def val_size(self) -> int:
        return len(self.val_indices)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fold": self.index + 1,
            "trainSize": self.train_size,
            "valSize": self.val_size,
            "trainIndices": list(self.train_indices),
            "valIndices": list(self.val_indices),
            "metrics": dict(self.metrics),
        }


@dataclass(frozen=True)
class CrossValidationResult:
    folds: tuple[FoldResult, ...]
    avg_metrics: Mapping[str, float]
    std_metrics: Mapping[str, float]
    seed: int

    @property
    def k(self) -> int:
        return len(self.folds)

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "k": self.k,
            "folds": [f.to_dict() for f in self.folds],
            "avgMetrics": dict(self.avg_metrics),
            "stdMetrics": dict(self.std_metrics),
        }


def fold_bounds(n: int, k: int) -> list[tuple[int, int]]:
    """[start, end) validation bounds per fold; the last fold ends at n."""
    size = n // k
    return [(i * size, n if i == k - 1 else (i + 1) * size) for i in range(k)]


def _is_number(v: object) -> bool:
    if isinstance(v, bool) or not isinstance(v, numbers.Real):
        return False
    return math.isfinite(float(v))


def aggregate_fold_metrics(
    fold_metrics: Sequence[Mapping[str, Any]],
) -> tuple[dict[str, float], dict[str, float]]:
    """Mean / sample std per metric key over folds (keys taken from fold 0)."""
    if not fold_metrics:
        return {}, {}
    avg: dict[str, float] = {}
    std: dict[str, float] = {}
    for key in fold_metrics[0]:
        values = [float(m[key]) for m in fold_metrics if key in m and _is_number(m[key])]
        if values:
            avg[key] = mean(values)
            std[key] = standard_deviation(values)
    return avg, std


def kfold_cross_validation(
    records: Sequence[RecordLike],
    k: int,
    metrics_fn: MetricsFn,
    *,
    seed: int,
    stream: SeededStream | None = None,
) -> CrossValidationResult:
    """
    Run k rotating folds and aggregate the per-fold metrics.

    Raises
    ------
    ValueError
        k < 2.
    InsufficientDataError
        Fewer records than folds.
    """
    if int(k) < 2:
        raise ValueError("k must be >= 2")
    n = len(records)
    if n < k:
        raise InsufficientDataError(f"Dataset too small for {k}-fold CV (n={n})")

    rng = stream if stream is not None else SeededStream(seed)
    shuffled = rng.shuffled_indices(n)
    bounds = fold_bounds(n, int(k))
    assert_fold_coverage([shuffled[a:b] for a, b in bounds], n)

    folds: list[FoldResult] = []
    for i, (start, end) in enumerate(bounds):
        val_idx = tuple(shuffled[start:end])
        train_idx = tuple(shuffled[:start] + shuffled[end:])
        train = [records[j] for j in train_idx]
        val = [records[j] for j in val_idx]
        metrics = metrics_fn(train, val)
        folds.append(
            FoldResult(
                index=i,
                train_indices=train_idx,
                val_indices=val_idx,
                metrics=dict(metrics or {}),
            )
        )

    avg, std = aggregate_fold_metrics([f.metrics for f in folds])
    return CrossValidationResult(folds=tuple(folds), avg_metrics=avg, std_metrics=std, seed=int(seed))
