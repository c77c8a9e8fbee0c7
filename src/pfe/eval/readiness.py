# src/pfe/eval/readiness.py
# -----------------------------------------------------------------------------
# Purpose
# -------
# Rule-based deployment-readiness judgment over already computed metrics.
# Pure function: no I/O, no randomness.
#
# Rules (independent; several may fire at once)
# ---------------------------------------------
#   issue    test Brier absent (None / NaN)          → not ready
#   warning  test Brier  > policy.brier_warn  (0.5)
#   warning  calib ECE   > policy.ece_warn    (0.15)
#   warning  test size   < policy.min_test_size (100)
#
# ready is False iff at least one issue is present; warnings never change it.
# -----------------------------------------------------------------------------
from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict

from pfe.config import ReadinessPolicy
from pfe.eval.run import RunResult

__all__ = ["ReadinessVerdict", "assess_readiness"]


class ReadinessVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    ready: bool
    issues: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


def _finite(v: Any) -> float | None:
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def assess_readiness(run: RunResult, policy: ReadinessPolicy | None = None) -> ReadinessVerdict:
    policy = policy or ReadinessPolicy()
    issues: list[str] = []
    warnings: list[str] = []

    brier = _finite(run.metrics_for("test").get("brierScore"))
    if brier is None:
        issues.append("No test metrics available")
    elif brier > policy.brier_warn:
        warnings.append(
            f"Brier score {brier:.4f} > {policy.brier_warn} indicates poor calibration"
        )

    if run.calibration is not None:
        ece = _finite(run.calibration.ece)
        if ece is not None and ece > policy.ece_warn:
            warnings.append(f"ECE {ece:.4f} > {policy.ece_warn} suggests model needs recalibration")

    test_size = run.test_size
    if test_size is not None and test_size < policy.min_test_size:
        warnings.append(
            f"Test set has {test_size} < {policy.min_test_size} samples; "
            "increase data for stability"
        )

    return ReadinessVerdict(ready=not issues, issues=tuple(issues), warnings=tuple(warnings))
