# src/pfe/eval/calibration.py
# -----------------------------------------------------------------------------
# Calibration Diagnostics
#
# Purpose
# -------
# Given parallel predictions p_i and outcomes y_i, produce an equal-width
# reliability table:
#   bin_b = [b/B, (b+1)/B),  last bin closed at 1.0
#   index = min(floor(p·B), B − 1)
# with per-bin confMean (mean p), accMean (mean y) and size.
#
# Design Notes
# ------------
# - Non-finite or out-of-[0,1] predictions are dropped together with their
#   outcome; they only show up as a smaller `sample_size`.
# - Empty bins stay in `bins` with zeroed stats but are never counted as over-
#   or under-confident.
# - A populated bin counts as overconfident when confMean − accMean exceeds the
#   tolerance (default: half a bin width), underconfident when accMean −
#   confMean does. Gaps inside the bin's own resolution are treated as
#   calibrated.
# - ECE comes from pfe.scoring.metrics.expected_calibration_error with the same
#   B, so the number always matches the scoring layer.
# - A length mismatch returns a result with `error` set instead of raising.
# -----------------------------------------------------------------------------

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from pfe.common.errors import MismatchedLengthError
from pfe.scoring.metrics import expected_calibration_error, mean, valid_pairs

# float slack so that e.g. |0.95 − 1.0| is not pushed over 0.05 by rounding
_TOL_SLACK = 1e-9


@dataclass(frozen=True)
class CalibrationBin:
    index: int
    lower_bound: float
    upper_bound: float
    predictions: tuple[float, ...] = ()
    outcomes: tuple[float, ...] = ()
    conf_mean: float = 0.0
    acc_mean: float = 0.0

    @property
    def size(self) -> int:
        return len(self.predictions)

    @property
    def gap(self) -> float:
        return self.conf_mean - self.acc_mean

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "lowerBound": self.lower_bound,
            "upperBound": self.upper_bound,
            "confMean": self.conf_mean,
            "accMean": self.acc_mean,
            "size": self.size,
        }


@dataclass(frozen=True)
class CalibrationResult:
    bins: tuple[CalibrationBin, ...]
    ece: float | None
    overconfidence_count: int
    underconfidence_count: int
    num_bins: int
    sample_size: int = 0
    error: str | None = None
    tolerance: float = field(default=0.0)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def populated_bins(self) -> tuple[CalibrationBin, ...]:
        return tuple(b for b in self.bins if b.size > 0)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "bins": [b.to_dict() for b in self.populated_bins],
            "ece": self.ece,
            "overconfidenceCount": self.overconfidence_count,
            "underconfidenceCount": self.underconfidence_count,
            "binCount": self.num_bins,
            "sampleSize": self.sample_size,
        }
        if self.error is not None:
            out["error"] = self.error
        return out


def bin_index(p: float, num_bins: int) -> int:
    """Equal-width bin for p in [0, 1]; p == 1.0 is clamped into the last bin."""
    return min(int(math.floor(p * num_bins)), num_bins - 1)


def _bin_members(
    preds: Sequence[float], outs: Sequence[float], num_bins: int
) -> list[tuple[list[float], list[float]]]:
    members: list[tuple[list[float], list[float]]] = [([], []) for _ in range(num_bins)]
    for p, y in zip(preds, outs):
        b = bin_index(p, num_bins)
        members[b][0].append(p)
        members[b][1].append(y)
    return members


def build_bins(
    preds: Sequence[float], outs: Sequence[float], num_bins: int
) -> tuple[CalibrationBin, ...]:
    """All `num_bins` bins (empty ones included) for already-valid pairs."""
    bins: list[CalibrationBin] = []
    for idx, (bp, by) in enumerate(_bin_members(preds, outs, num_bins)):
        lower = idx / num_bins
        upper = (idx + 1) / num_bins
        if bp:
            bins.append(
                CalibrationBin(
                    index=idx,
                    lower_bound=lower,
                    upper_bound=upper,
                    predictions=tuple(bp),
                    outcomes=tuple(by),
                    conf_mean=mean(bp),
                    acc_mean=mean(by),
                )
            )
        else:
            bins.append(CalibrationBin(index=idx, lower_bound=lower, upper_bound=upper))
    return tuple(bins)


def _error_result(message: str, num_bins: int) -> CalibrationResult:
    return CalibrationResult(
        bins=(),
        ece=None,
        overconfidence_count=0,
        underconfidence_count=0,
        num_bins=num_bins,
        error=message,
    )


def analyze_calibration(
    predictions: Sequence[float],
    outcomes: Sequence[float],
    num_bins: int = 10,
    *,
    tolerance: float | None = None,
) -> CalibrationResult:
    """
    Binned confidence vs accuracy comparison.

    Parameters
    ----------
    predictions : forecast probabilities (invalid entries are dropped).
    outcomes    : 0/1 outcomes, parallel to predictions.
    num_bins    : number of equal-width bins on [0, 1].
    tolerance   : gap allowed before a bin counts as over/underconfident;
                  defaults to half a bin width.

    Returns
    -------
    CalibrationResult; `error` is set (and bins empty) on length mismatch.
    """
    if int(num_bins) < 1:
        raise ValueError("num_bins must be >= 1")
    num_bins = int(num_bins)
    tol = 0.5 / num_bins if tolerance is None else float(tolerance)

    try:
        preds, outs = valid_pairs(predictions, outcomes)
    except MismatchedLengthError as exc:
        return _error_result(f"Mismatched arrays: {exc}", num_bins)

    bins = build_bins(preds, outs, num_bins)
    populated = [b for b in bins if b.size > 0]
    over = sum(1 for b in populated if b.gap > tol + _TOL_SLACK)
    under = sum(1 for b in populated if -b.gap > tol + _TOL_SLACK)
    ece = expected_calibration_error(preds, outs, num_bins) if preds else None

    return CalibrationResult(
        bins=bins,
        ece=ece,
        overconfidence_count=over,
        underconfidence_count=under,
        num_bins=num_bins,
        sample_size=len(preds),
        tolerance=tol,
    )
