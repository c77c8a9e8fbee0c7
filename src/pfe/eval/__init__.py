# -----------------------------------------------------------------------------
# Evaluation Package
#
# Purpose:
# - Calibration tables, readiness rules and the write-once Report.
# - EvaluationEngine: the run object tying partition, scoring, CV and
#   calibration together under one EvaluatorConfig.
# - Backtest helpers and read-only renderers live in backtest.py / render.py
#   and can be imported directly.
#
# Public surface (re-exported):
# - EvaluationEngine, create_engine
# - analyze_calibration, assess_readiness, compile_report, Report
# -----------------------------------------------------------------------------
from __future__ import annotations

from .calibration import CalibrationResult, analyze_calibration
from .engine import EvaluationEngine, create_engine
from .readiness import ReadinessVerdict, assess_readiness
from .report import Report, compile_report
from .run import RunResult

__all__ = [
    "CalibrationResult",
    "EvaluationEngine",
    "ReadinessVerdict",
    "Report",
    "RunResult",
    "analyze_calibration",
    "assess_readiness",
    "compile_report",
    "create_engine",
]
