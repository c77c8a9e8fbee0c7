# src/pfe/common/checks.py
# -----------------------------------------------------------------------------
# Lightweight, reusable assertions for:
#  - split integrity (train/validation/test cover 0..n-1 exactly once),
#  - fold coverage (validation slices partition the index space),
#  - resolved-only inputs (no outcome=None rows inside a partition).
#
# These helpers are small and side-effect free so they can be used inside the
# splitters, the engine, or tests without pulling in the rest of the package.
# -----------------------------------------------------------------------------
from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from pfe.common.contracts import RecordLike, is_resolved


def assert_exact_cover(index_sets: Sequence[Iterable[int]], n: int, *, what: str = "splits") -> None:
    """
    Assert that the given index sets are pairwise disjoint and their union is
    exactly {0, ..., n-1}.
    """
    counts = np.zeros(n, dtype=np.int64)
    for idx in index_sets:
        arr = np.fromiter((int(i) for i in idx), dtype=np.int64)
        if arr.size and (arr.min() < 0 or arr.max() >= n):
            raise AssertionError(f"{what}: index out of range [0, {n}).")
        np.add.at(counts, arr, 1)
    if n and int(counts.max()) > 1:
        dupes = np.flatnonzero(counts > 1)[:10].tolist()
        raise AssertionError(f"{what}: overlap detected at indices {dupes}.")
    if int(counts.sum()) != n:
        missing = np.flatnonzero(counts == 0)[:10].tolist()
        raise AssertionError(f"{what}: indices not covered exactly once (missing {missing}).")


def assert_fold_coverage(validation_slices: Sequence[Sequence[int]], n: int) -> None:
    """Each index must land in exactly one validation slice across all folds."""
    total = sum(len(v) for v in validation_slices)
    if total != n:
        raise AssertionError(f"Validation folds hold {total} indices, expected {n}.")
    assert_exact_cover(validation_slices, n, what="validation folds")


def unresolved_positions(records: Sequence[RecordLike]) -> list[int]:
    return [i for i, r in enumerate(records) if not is_resolved(r)]


def ensure_resolved(records: Sequence[RecordLike]) -> None:
    """
    Reject datasets carrying unresolved records (outcome missing).

    Raises
    ------
    ValueError
        With up to 10 offending positions.
    """
    bad = unresolved_positions(records)
    if bad:
        extra = "" if len(bad) <= 10 else f" (+{len(bad) - 10} more)"
        raise ValueError(f"Unresolved records present at positions {bad[:10]}{extra}")
