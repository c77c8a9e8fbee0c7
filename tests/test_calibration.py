# tests/test_calibration.py
from __future__ import annotations

import math

import numpy as np
import pytest

from pfe.eval.calibration import analyze_calibration, bin_index
from pfe.scoring.metrics import expected_calibration_error


def test_two_point_perfect_extremes() -> None:
    res = analyze_calibration([0.05, 0.95], [0, 1], num_bins=10)
    populated = res.populated_bins
    assert [b.index for b in populated] == [0, 9]
    assert res.overconfidence_count == 0
    assert res.underconfidence_count == 0
    assert len(res.bins) == 10  # empty bins retained
    assert populated[0].conf_mean == pytest.approx(0.05)
    assert populated[0].acc_mean == 0.0
    assert populated[1].acc_mean == 1.0
    assert res.ece == pytest.approx(0.05)


@pytest.mark.parametrize("p", [0.0, 0.05, 0.1, 0.33, 0.5, 0.89, 0.9, 0.99, 1.0])
def test_bin_containment(p: float) -> None:
    expected = 9 if p == 1.0 else math.floor(p * 10)
    assert bin_index(p, 10) == expected
    res = analyze_calibration([p], [1], num_bins=10)
    assert [b.index for b in res.populated_bins] == [expected]


def test_upper_edge_clamped_into_last_bin() -> None:
    res = analyze_calibration([1.0, 1.0, 0.95], [1, 1, 1], num_bins=10)
    last = res.bins[-1]
    assert last.size == 3
    assert last.upper_bound == 1.0


def test_invalid_predictions_dropped_in_lockstep() -> None:
    res = analyze_calibration([0.2, float("nan"), 1.5, -0.1, 0.8, float("inf")], [0, 1, 1, 0, 1, 1])
    assert res.sample_size == 2
    sizes = {b.index: b.size for b in res.populated_bins}
    assert sizes == {2: 1, 8: 1}
    assert res.bins[2].acc_mean == 0.0
    assert res.bins[8].acc_mean == 1.0


def test_mismatched_lengths_return_error_result() -> None:
    res = analyze_calibration([0.1, 0.2], [1], num_bins=10)
    assert not res.ok
    assert res.error is not None and "Mismatched" in res.error
    assert res.ece is None
    assert res.bins == ()


def test_over_and_underconfidence_counts() -> None:
    preds = [0.85, 0.85, 0.85, 0.85, 0.15, 0.15, 0.15, 0.15, 0.55, 0.55]
    outs = [0, 0, 0, 1, 1, 1, 1, 0, 1, 0]
    res = analyze_calibration(preds, outs, num_bins=10)
    # bin 8: conf .85 vs acc .25 → over; bin 1: conf .15 vs acc .75 → under; bin 5: .55 vs .5 → ok
    assert res.overconfidence_count == 1
    assert res.underconfidence_count == 1


def test_empty_bins_never_counted() -> None:
    res = analyze_calibration([0.45, 0.45], [0, 1], num_bins=10)
    assert res.overconfidence_count == 0
    assert res.underconfidence_count == 0
    assert sum(1 for b in res.bins if b.size == 0) == 9
    assert all(b.conf_mean == 0.0 and b.acc_mean == 0.0 for b in res.bins if b.size == 0)


def test_ece_matches_scoring_library() -> None:
    rng = np.random.default_rng(3)
    preds = rng.uniform(size=200).tolist()
    outs = (rng.uniform(size=200) < 0.5).astype(int).tolist()
    for bins in (5, 10, 15):
        res = analyze_calibration(preds, outs, num_bins=bins)
        assert res.ece == pytest.approx(expected_calibration_error(preds, outs, bins))


def test_no_valid_predictions_gives_null_ece() -> None:
    res = analyze_calibration([float("nan")], [1])
    assert res.ok
    assert res.ece is None
    assert res.sample_size == 0


def test_bins_must_be_positive() -> None:
    with pytest.raises(ValueError):
        analyze_calibration([0.5], [1], num_bins=0)


def test_to_dict_lists_populated_bins_only() -> None:
    out = analyze_calibration([0.05, 0.95], [0, 1]).to_dict()
    assert [b["index"] for b in out["bins"]] == [0, 9]
    assert out["binCount"] == 10
    assert "error" not in out
