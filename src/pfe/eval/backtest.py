# src/pfe/eval/backtest.py
# -----------------------------------------------------------------------------
# Historical Backtest over Resolved Forecasts
#
# Purpose
# -------
# Measure how forecast quality moves over time and across confidence levels:
#   - rolling_window_backtest: fixed-length windows over `created`, advanced by
#     a fixed step; each window with enough events gets a metric row.
#   - interval_backtest: non-overlapping calendar buckets, metrics per bucket.
#   - sequential_backtest: walk forward one event at a time after a warm-up,
#     with running Brier / log averages.
#   - backtest_split: metrics over a fixed held-out test set.
#   - accuracy_by_confidence: equal-width probability buckets with predicted
#     vs realised rate and per-bucket Brier.
#
# Windows
# -------
#   start_0 = min(created), window = W days, step = S days
#   window j covers [start_0 + j·S, start_0 + j·S + W)
#   iterate while start + W <= max(created)
#
# Drawdown
# --------
# Brier is lower-is-better, so drawdown_j = brier_j − min(brier_0..j); a
# positive value is degradation against the best window so far.
#
# Only resolved records (outcome present) with a parseable `created` take part.
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from pfe.common.contracts import (
    RecordLike,
    is_resolved,
    predictions_and_outcomes,
    record_field,
)
from pfe.common.errors import InsufficientDataError
from pfe.config import BacktestConfig
from pfe.eval.calibration import build_bins
from pfe.scoring.metrics import (
    brier_score,
    expected_calibration_error,
    log_score,
    mean,
    spherical_score,
    valid_pairs,
)

SEQUENTIAL_WARMUP = 10


@dataclass(frozen=True)
class WindowResult:
    window: int
    window_start: pd.Timestamp
    window_end: pd.Timestamp
    event_count: int
    metrics: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        return {
            "windowNum": self.window,
            "windowStart": self.window_start.isoformat(),
            "windowEnd": self.window_end.isoformat(),
            "eventCount": self.event_count,
            "metrics": dict(self.metrics),
        }


@dataclass(frozen=True)
class DrawdownPoint:
    window: int
    score: float
    best_score: float
    drawdown: float


@dataclass(frozen=True)
class BacktestResult:
    windows: tuple[WindowResult, ...]
    total_events: int
    summary: dict[str, Any]
    drawdown: tuple[DrawdownPoint, ...]

    @property
    def window_count(self) -> int:
        return len(self.windows)


@dataclass(frozen=True)
class ConfidenceBucket:
    bucket: int
    lower_bound: float
    upper_bound: float
    sample_count: int
    predicted_probability: float
    actual_accuracy: float
    calibration_error: float
    brier: float


@dataclass(frozen=True)
class SplitBacktestResult:
    success: bool
    test_set_size: int = 0
    metrics: dict[str, float] = field(default_factory=dict)
    error: str | None = None


@dataclass(frozen=True)
class IntervalBucket:
    bucket: int
    interval_start: pd.Timestamp
    interval_end: pd.Timestamp
    event_count: int
    metrics: dict[str, float]

    @property
    def label(self) -> str:
        return f"{self.interval_start.date().isoformat()} to {self.interval_end.date().isoformat()}"


@dataclass(frozen=True)
class SequentialStep:
    step: int
    created: pd.Timestamp
    prediction: float
    outcome: int
    brier: float
    log: float
    cumulative_brier: float
    cumulative_log: float


@dataclass(frozen=True)
class SequentialBacktestResult:
    steps: tuple[SequentialStep, ...]
    final_metrics: dict[str, float]

    @property
    def step_count(self) -> int:
        return len(self.steps)


def window_metrics(predictions: Sequence[float], outcomes: Sequence[float]) -> dict[str, float]:
    """Metric row for one window; {} when there is nothing valid to score."""
    preds, outs = valid_pairs(predictions, outcomes)
    if not preds:
        return {}
    return {
        "brierScore": brier_score(preds, outs),
        "logScore": log_score(preds, outs),
        "ece": expected_calibration_error(preds, outs),
        "sphericalScore": spherical_score(preds, outs),
        "accuracy": mean(outs),
        "sampleSize": float(len(preds)),
    }


def _resolved_frame(records: Sequence[RecordLike]) -> pd.DataFrame:
    rows = [
        {
            "created": record_field(r, "created"),
            "probability": record_field(r, "probability"),
            "outcome": 1 if int(record_field(r, "outcome")) == 1 else 0,
        }
        for r in records
        if is_resolved(r)
    ]
    df = pd.DataFrame(rows, columns=["created", "probability", "outcome"])
    df["created"] = pd.to_datetime(df["created"], errors="coerce", utc=True)
    df["probability"] = pd.to_numeric(df["probability"], errors="coerce")
    df = df.dropna(subset=["created"])
    return df.sort_values("created", kind="mergesort").reset_index(drop=True)


def _min_max_avg(values: list[float]) -> dict[str, float] | None:
    arr = np.asarray([v for v in values if np.isfinite(v)], dtype=float)
    if arr.size == 0:
        return None
    return {"min": float(arr.min()), "max": float(arr.max()), "avg": float(arr.mean())}


def _summarize(windows: Sequence[WindowResult]) -> dict[str, Any]:
    if not windows:
        return {"windows": 0}
    counts = [w.event_count for w in windows]
    return {
        "windows": len(windows),
        "totalEvents": int(sum(counts)),
        "eventsPerWindow": {
            "min": int(min(counts)),
            "max": int(max(counts)),
            "avg": float(sum(counts)) / len(counts),
        },
        "brierScore": _min_max_avg([w.metrics.get("brierScore", np.nan) for w in windows]),
        "logScore": _min_max_avg([w.metrics.get("logScore", np.nan) for w in windows]),
        "ece": _min_max_avg([w.metrics.get("ece", np.nan) for w in windows]),
        "timeRange": {
            "start": windows[0].window_start.isoformat(),
            "end": windows[-1].window_end.isoformat(),
        },
    }


def brier_drawdown(windows: Sequence[WindowResult]) -> tuple[DrawdownPoint, ...]:
    points: list[DrawdownPoint] = []
    best: float | None = None
    for w in windows:
        score = w.metrics.get("brierScore")
        if score is None or not np.isfinite(score):
            continue
        best = score if best is None else min(best, score)
        points.append(DrawdownPoint(window=w.window, score=score, best_score=best, drawdown=score - best))
    return tuple(points)


def rolling_window_backtest(
    records: Sequence[RecordLike], config: BacktestConfig | None = None
) -> BacktestResult:
    """
    Score resolved forecasts in rolling time windows.

    Raises
    ------
    InsufficientDataError
        When fewer resolved, timestamped records exist than
        `config.min_events_per_window`.
    """
    cfg = config or BacktestConfig()
    df = _resolved_frame(records)
    if len(df) < cfg.min_events_per_window or len(df) == 0:
        raise InsufficientDataError(f"Insufficient resolved events ({len(df)})")

    window = pd.Timedelta(days=cfg.window_days)
    step = pd.Timedelta(days=cfg.step_days)
    if step <= pd.Timedelta(0):
        raise ValueError("step_days must be > 0")

    first = df["created"].iloc[0]
    last = df["created"].iloc[-1]

    results: list[WindowResult] = []
    start = first
    while start + window <= last:
        end = start + window
        sel = df[(df["created"] >= start) & (df["created"] < end)]
        if len(sel) >= cfg.min_events_per_window:
            results.append(
                WindowResult(
                    window=len(results),
                    window_start=start,
                    window_end=end,
                    event_count=int(len(sel)),
                    metrics=window_metrics(
                        sel["probability"].tolist(), sel["outcome"].tolist()
                    ),
                )
            )
        start = start + step

    return BacktestResult(
        windows=tuple(results),
        total_events=int(len(df)),
        summary=_summarize(results),
        drawdown=brier_drawdown(results),
    )


def backtest_split(test_records: Sequence[RecordLike]) -> SplitBacktestResult:
    """
    Window metrics over a fixed held-out test set.

    Never raises for empty or unresolved input; the result carries `error`
    instead so callers can compare several test sets in a loop.
    """
    if len(test_records) == 0:
        return SplitBacktestResult(success=False, error="No test records")
    resolved = [r for r in test_records if is_resolved(r)]
    if not resolved:
        return SplitBacktestResult(success=False, error="No resolved test events")
    preds, outs = predictions_and_outcomes(resolved)
    return SplitBacktestResult(
        success=True,
        test_set_size=len(resolved),
        metrics=window_metrics(preds, outs),
    )


def interval_backtest(
    records: Sequence[RecordLike], interval_days: float = 30.0
) -> tuple[IntervalBucket, ...]:
    """
    Non-overlapping calendar buckets of `interval_days` from the first
    resolved event; buckets without events are left out.

    Raises
    ------
    InsufficientDataError
        No resolved, timestamped records.
    """
    if interval_days <= 0:
        raise ValueError("interval_days must be > 0")
    df = _resolved_frame(records)
    if df.empty:
        raise InsufficientDataError("No resolved events")

    interval = pd.Timedelta(days=interval_days)
    start = df["created"].iloc[0]
    last = df["created"].iloc[-1]

    buckets: list[IntervalBucket] = []
    index = 0
    # the bucket holding the final event is always visited
    while start <= last:
        end = start + interval
        sel = df[(df["created"] >= start) & (df["created"] < end)]
        if len(sel):
            buckets.append(
                IntervalBucket(
                    bucket=index,
                    interval_start=start,
                    interval_end=end,
                    event_count=int(len(sel)),
                    metrics=window_metrics(sel["probability"].tolist(), sel["outcome"].tolist()),
                )
            )
        index += 1
        start = end
    return tuple(buckets)


def sequential_backtest(
    records: Sequence[RecordLike], warmup: int = SEQUENTIAL_WARMUP
) -> SequentialBacktestResult:
    """
    Walk forward through resolved events in time order, scoring one event per
    step after the first `warmup` events, with running averages.

    Events with an invalid probability are skipped before the walk.

    Raises
    ------
    InsufficientDataError
        Not more than `warmup` usable events.
    """
    df = _resolved_frame(records)
    df = df[df["probability"].between(0.0, 1.0)].reset_index(drop=True)
    if len(df) <= warmup:
        raise InsufficientDataError(f"Insufficient resolved events ({len(df)} <= {warmup})")

    steps: list[SequentialStep] = []
    total_brier = 0.0
    total_log = 0.0
    for i in range(warmup, len(df)):
        p = float(df["probability"].iloc[i])
        y = int(df["outcome"].iloc[i])
        b = brier_score([p], [y])
        lg = log_score([p], [y])
        total_brier += b
        total_log += lg
        seen = i - warmup + 1
        steps.append(
            SequentialStep(
                step=i,
                created=df["created"].iloc[i],
                prediction=p,
                outcome=y,
                brier=b,
                log=lg,
                cumulative_brier=total_brier / seen,
                cumulative_log=total_log / seen,
            )
        )
    return SequentialBacktestResult(
        steps=tuple(steps),
        final_metrics={"brierScore": total_brier / len(steps), "logScore": total_log / len(steps)},
    )


def accuracy_by_confidence(
    records: Sequence[RecordLike], num_buckets: int = 10
) -> tuple[ConfidenceBucket, ...]:
    """Populated equal-width probability buckets over resolved records."""
    if int(num_buckets) < 1:
        raise ValueError("num_buckets must be >= 1")
    resolved = [r for r in records if is_resolved(r)]
    if not resolved:
        raise InsufficientDataError("No resolved events")

    preds, outs = valid_pairs(*predictions_and_outcomes(resolved))

    out: list[ConfidenceBucket] = []
    for b in build_bins(preds, outs, int(num_buckets)):
        if b.size == 0:
            continue
        out.append(
            ConfidenceBucket(
                bucket=b.index,
                lower_bound=b.lower_bound,
                upper_bound=b.upper_bound,
                sample_count=b.size,
                predicted_probability=b.conf_mean,
                actual_accuracy=b.acc_mean,
                calibration_error=abs(b.gap),
                brier=brier_score(b.predictions, b.outcomes),
            )
        )
    return tuple(out)
