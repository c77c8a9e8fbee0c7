# src/pfe/__init__.py
# -----------------------------------------------------------------------------
# Probabilistic Forecast Evaluation
#
# Deterministic evaluation of probability forecasts against binary outcomes:
#   seeded split → per-split scoring → k-fold CV → calibration → readiness
#   → write-once report.
# -----------------------------------------------------------------------------
from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
