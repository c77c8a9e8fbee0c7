# -----------------------------------------------------------------------------
# Public surface for forecast scoring rules.
# - evaluate_predictions: full MetricSet for one split (None-valued on failure)
# - brier_score / log_score / spherical_score / expected_calibration_error
# - brier_decomposition, mean, standard_deviation, valid_pairs
# -----------------------------------------------------------------------------
from __future__ import annotations

from .metrics import (
    METRIC_KEYS,
    MetricSet,
    brier_decomposition,
    brier_score,
    evaluate_predictions,
    expected_calibration_error,
    log_score,
    mean,
    spherical_score,
    standard_deviation,
    valid_pairs,
)

__all__ = [
    "METRIC_KEYS",
    "MetricSet",
    "brier_decomposition",
    "brier_score",
    "evaluate_predictions",
    "expected_calibration_error",
    "log_score",
    "mean",
    "spherical_score",
    "standard_deviation",
    "valid_pairs",
]
