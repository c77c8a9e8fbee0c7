# src/pfe/scoring/metrics.py
# -----------------------------------------------------------------------------
# Scoring library for binary probability forecasts.
#
# All functions take parallel sequences (predictions p_i, outcomes y_i ∈ {0,1}):
#   Brier      = (1/N) Σ (p_i − y_i)²                           (lower is better)
#   Log score  = (1/N) Σ [y_i ln p_i + (1 − y_i) ln(1 − p_i)]   (higher is better)
#                with p clipped to [1e-15, 1 − 1e-15]
#   Spherical  = (1/N) Σ p(y_i) / sqrt(p_i² + (1 − p_i)²)        (higher is better)
#   ECE        = Σ_b (n_b / N) |mean(p)_b − mean(y)_b| over equal-width bins,
#                bin = min(floor(p·B), B − 1)
#   Murphy     = reliability − resolution + uncertainty over 0.1-wide bins
#
# Length mismatch raises MismatchedLengthError. Empty input yields NaN; callers
# are expected to guard (evaluate_predictions does).
# -----------------------------------------------------------------------------
from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TypedDict

import numpy as np
from numpy.typing import NDArray

from pfe.common.errors import InsufficientSampleError, MismatchedLengthError

__all__ = [
    "MetricSet",
    "BrierDecomposition",
    "METRIC_KEYS",
    "brier_score",
    "log_score",
    "spherical_score",
    "expected_calibration_error",
    "brier_decomposition",
    "mean",
    "standard_deviation",
    "valid_pairs",
    "evaluate_predictions",
]

_EPS = 1e-15
MIN_SAMPLE = 2


class MetricSet(TypedDict, total=False):
    brierScore: float | None
    logScore: float | None
    ece: float | None
    sphericalScore: float | None
    reliability: float | None
    resolution: float | None
    uncertainty: float | None
    sampleSize: int | None
    note: str


class BrierDecomposition(TypedDict):
    brierScore: float
    reliability: float
    resolution: float
    uncertainty: float


METRIC_KEYS: tuple[str, ...] = (
    "brierScore",
    "logScore",
    "ece",
    "sphericalScore",
    "reliability",
    "resolution",
    "uncertainty",
    "sampleSize",
)


def _pair(
    predictions: Sequence[float], outcomes: Sequence[float]
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    if len(predictions) != len(outcomes):
        raise MismatchedLengthError(
            f"predictions and outcomes differ in length ({len(predictions)} vs {len(outcomes)})"
        )
    p = np.asarray(predictions, dtype=np.float64).reshape(-1)
    y = np.asarray(outcomes, dtype=np.float64).reshape(-1)
    return p, y


def brier_score(predictions: Sequence[float], outcomes: Sequence[float]) -> float:
    p, y = _pair(predictions, outcomes)
    if p.size == 0:
        return float("nan")
    return float(np.mean((p - y) ** 2))


def log_score(predictions: Sequence[float], outcomes: Sequence[float]) -> float:
    p, y = _pair(predictions, outcomes)
    if p.size == 0:
        return float("nan")
    pc = np.clip(p, _EPS, 1 - _EPS)
    return float(np.mean(y * np.log(pc) + (1 - y) * np.log(1 - pc)))


def spherical_score(predictions: Sequence[float], outcomes: Sequence[float]) -> float:
    p, y = _pair(predictions, outcomes)
    if p.size == 0:
        return float("nan")
    norm = np.sqrt(p * p + (1 - p) * (1 - p))
    return float(np.mean((y * p + (1 - y) * (1 - p)) / norm))


def _bin_indices(p: NDArray[np.float64], num_bins: int) -> NDArray[np.int_]:
    idx = np.floor(p * num_bins).astype(np.int_)
    return np.minimum(idx, num_bins - 1)


def expected_calibration_error(
    predictions: Sequence[float], outcomes: Sequence[float], num_bins: int = 10
) -> float:
    """Weighted mean |confidence − accuracy| over `num_bins` equal-width bins."""
    if num_bins < 1:
        raise ValueError("num_bins must be >= 1")
    p, y = _pair(predictions, outcomes)
    n = p.size
    if n == 0:
        return float("nan")
    idx = _bin_indices(p, num_bins)
    ece = 0.0
    for b in np.unique(idx):
        sel = idx == b
        weight = float(np.count_nonzero(sel)) / n
        ece += weight * abs(float(np.mean(p[sel])) - float(np.mean(y[sel])))
    return float(ece)


def brier_decomposition(
    predictions: Sequence[float], outcomes: Sequence[float]
) -> BrierDecomposition:
    """
    Murphy decomposition with 0.1-wide forecast bins (bin key = floor(10·p)/10).

    reliability = Σ_b (n_b/N) (mean(p)_b − mean(y)_b)²
    resolution  = Σ_b (n_b/N) (mean(y)_b − ȳ)²
    uncertainty = ȳ (1 − ȳ)
    """
    p, y = _pair(predictions, outcomes)
    n = p.size
    if n == 0:
        nan = float("nan")
        return {"brierScore": nan, "reliability": nan, "resolution": nan, "uncertainty": nan}

    base_rate = float(np.mean(y))
    keys = np.floor(p * 10)
    reliability = 0.0
    resolution = 0.0
    for k in np.unique(keys):
        sel = keys == k
        w = float(np.count_nonzero(sel)) / n
        pm = float(np.mean(p[sel]))
        ym = float(np.mean(y[sel]))
        reliability += w * (pm - ym) ** 2
        resolution += w * (ym - base_rate) ** 2
    uncertainty = base_rate * (1 - base_rate)
    return {
        "brierScore": reliability - resolution + uncertainty,
        "reliability": reliability,
        "resolution": resolution,
        "uncertainty": uncertainty,
    }


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return float("nan")
    return float(np.mean(np.asarray(values, dtype=np.float64)))


def standard_deviation(values: Sequence[float]) -> float:
    """Sample standard deviation (ddof=1); a single value has zero spread."""
    n = len(values)
    if n == 0:
        return float("nan")
    if n == 1:
        return 0.0
    return float(np.std(np.asarray(values, dtype=np.float64), ddof=1))


def valid_pairs(
    predictions: Sequence[float], outcomes: Sequence[float]
) -> tuple[list[float], list[float]]:
    """
    Keep (p, y) pairs whose prediction is a finite number in [0, 1] and whose
    outcome is present (None / NaN marks an unresolved event).

    Both sides are dropped in lockstep so the two lists stay aligned.
    """
    if len(predictions) != len(outcomes):
        raise MismatchedLengthError(
            f"predictions and outcomes differ in length ({len(predictions)} vs {len(outcomes)})"
        )
    keep_p: list[float] = []
    keep_y: list[float] = []
    for p, y in zip(predictions, outcomes):
        try:
            pf = float(p)
        except (TypeError, ValueError):
            continue
        if y is None or not (math.isfinite(pf) and 0.0 <= pf <= 1.0):
            continue
        yf = float(y)
        if math.isnan(yf):
            continue
        keep_p.append(pf)
        keep_y.append(yf)
    return keep_p, keep_y


def _null_metrics(note: str) -> MetricSet:
    return {
        "brierScore": None,
        "logScore": None,
        "ece": None,
        "sphericalScore": None,
        "reliability": None,
        "resolution": None,
        "uncertainty": None,
        "sampleSize": None,
        "note": note,
    }


def _require_sample(preds: Sequence[float]) -> None:
    if len(preds) < MIN_SAMPLE:
        raise InsufficientSampleError(
            f"Insufficient valid predictions ({len(preds)} < {MIN_SAMPLE})"
        )


def evaluate_predictions(
    predictions: Sequence[float], outcomes: Sequence[float], num_bins: int = 10
) -> MetricSet:
    """
    Full metric suite for one split.

    Returns a MetricSet with every score, or a MetricSet of None values plus a
    `note` when the input is mismatched, empty, or has fewer than two valid
    predictions. Never raises for data-quality problems so batch callers can
    keep going.
    """
    if len(predictions) != len(outcomes) or len(predictions) == 0:
        return _null_metrics("Insufficient data for evaluation")

    preds, outs = valid_pairs(predictions, outcomes)
    try:
        _require_sample(preds)
    except InsufficientSampleError as exc:
        return _null_metrics(str(exc))

    decomp = brier_decomposition(preds, outs)
    return {
        "brierScore": brier_score(preds, outs),
        "logScore": log_score(preds, outs),
        "ece": expected_calibration_error(preds, outs, num_bins),
        "sphericalScore": spherical_score(preds, outs),
        "reliability": decomp["reliability"],
        "resolution": decomp["resolution"],
        "uncertainty": decomp["uncertainty"],
        "sampleSize": len(preds),
    }
