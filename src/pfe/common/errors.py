# src/pfe/common/errors.py
# -----------------------------------------------------------------------------
# Error taxonomy for the evaluation engine.
#
# Structural problems (empty dataset, too few rows for k folds, bad fractions)
# are raised immediately. Data-quality problems (NaN or out-of-range
# predictions) are filtered and only show up as smaller sample sizes.
#
# Every class also derives from ValueError so callers that already catch
# ValueError around the splitting/scoring helpers keep working.
# -----------------------------------------------------------------------------
from __future__ import annotations

__all__ = [
    "EvaluationError",
    "EmptyDatasetError",
    "InsufficientDataError",
    "MismatchedLengthError",
    "InsufficientSampleError",
    "InvalidFractionError",
]


class EvaluationError(ValueError):
    """Base class for all engine errors."""


class EmptyDatasetError(EvaluationError):
    """Zero-length input handed to the partitioner."""


class InsufficientDataError(EvaluationError):
    """Dataset smaller than the requested fold count (or backtest window)."""


class MismatchedLengthError(EvaluationError):
    """Predictions and outcomes are not parallel sequences."""


class InsufficientSampleError(EvaluationError):
    """Fewer than two valid predictions; reported as a MetricSet note."""


class InvalidFractionError(EvaluationError):
    """Split fractions outside [0, 1] or summing to more than 1."""
