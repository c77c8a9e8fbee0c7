# src/pfe/split/partition.py
# -----------------------------------------------------------------------------
# Seeded train / validation / test partitioning.
#
# Algorithm:
#   1) indices = [0, ..., n-1]
#   2) Fisher–Yates shuffle driven by an explicit SeededStream(seed)
#   3) slice the shuffled array in this order:
#        test       = first floor(n * test_fraction)
#        validation = next  floor(n * val_fraction)
#        train      = remainder
#
# Guarantees:
#   - identical (records, seed, fractions) → identical index assignments
#   - the three index sets are disjoint and cover 0..n-1 exactly once
#
# Fractions are validated up front (each in [0, 1], sum ≤ 1); a degenerate
# request is rejected instead of silently producing an empty train split.
# -----------------------------------------------------------------------------
from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from pfe.common.checks import assert_exact_cover
from pfe.common.contracts import RecordLike
from pfe.common.errors import EmptyDatasetError, InvalidFractionError
from pfe.common.logging import dataset_version, sha256_records
from pfe.common.rng import SeededStream


@dataclass(frozen=True)
class Partition:
    train: tuple[RecordLike, ...]
    validation: tuple[RecordLike, ...]
    test: tuple[RecordLike, ...]
    train_indices: tuple[int, ...]
    val_indices: tuple[int, ...]
    test_indices: tuple[int, ...]
    seed: int
    dataset_hash: str
    dataset_version: str

    @property
    def total_records(self) -> int:
        return len(self.train_indices) + len(self.val_indices) + len(self.test_indices)

    @property
    def train_size(self) -> int:
        return len(self.train_indices)

    @property
    def val_size(self) -> int:
        return len(self.val_indices)

    @property
    def test_size(self) -> int:
        return len(self.test_indices)

    def metadata(self) -> dict[str, Any]:
        """Split summary used by reports (sizes, fractions and identity)."""
        n = self.total_records

        def _entry(size: int) -> dict[str, Any]:
            return {"size": size, "fraction": size / n if n else 0.0}

        return {
            "seed": self.seed,
            "datasetVersion": self.dataset_version,
            "datasetHash": self.dataset_hash,
            "totalRecords": n,
            "splits": {
                "train": _entry(self.train_size),
                "validation": _entry(self.val_size),
                "test": _entry(self.test_size),
            },
            "indices": {
                "trainIndices": list(self.train_indices),
                "valIndices": list(self.val_indices),
                "testIndices": list(self.test_indices),
            },
        }


def validate_fractions(test_fraction: float, val_fraction: float) -> None:
    for name, v in (("test_fraction", test_fraction), ("val_fraction", val_fraction)):
        if not (math.isfinite(v) and 0.0 <= v <= 1.0):
            raise InvalidFractionError(f"{name} must be within [0, 1] (got {v!r})")
    if test_fraction + val_fraction > 1.0:
        raise InvalidFractionError(
            f"test_fraction + val_fraction must not exceed 1 "
            f"(got {test_fraction} + {val_fraction})"
        )


def split_sizes(n: int, test_fraction: float, val_fraction: float) -> tuple[int, int, int]:
    """(train, validation, test) sizes for n records."""
    test_size = int(math.floor(n * test_fraction))
    val_size = int(math.floor(n * val_fraction))
    return n - test_size - val_size, val_size, test_size


def partition_dataset(
    records: Sequence[RecordLike],
    *,
    seed: int,
    test_fraction: float = 0.2,
    val_fraction: float = 0.15,
    stream: SeededStream | None = None,
) -> Partition:
    """
    Deterministic shuffle-and-split of `records` into train/validation/test.

    Parameters
    ----------
    records        : resolved records (unresolved rows must be dropped upstream).
    seed           : integer seed; also recorded on the Partition.
    test_fraction  : share of records in the test split (floored).
    val_fraction   : share of records in the validation split (floored).
    stream         : optional pre-built SeededStream; defaults to SeededStream(seed).

    Raises
    ------
    EmptyDatasetError, InvalidFractionError
    """
    n = len(records)
    if n == 0:
        raise EmptyDatasetError("Dataset is empty")
    validate_fractions(float(test_fraction), float(val_fraction))

    rng = stream if stream is not None else SeededStream(seed)
    train_size, val_size, test_size = split_sizes(n, test_fraction, val_fraction)
    shuffled = rng.shuffled_indices(n)

    test_idx = tuple(shuffled[:test_size])
    val_idx = tuple(shuffled[test_size : test_size + val_size])
    train_idx = tuple(shuffled[test_size + val_size :])
    assert_exact_cover((train_idx, val_idx, test_idx), n)

    digest = sha256_records(records)
    return Partition(
        train=tuple(records[i] for i in train_idx),
        validation=tuple(records[i] for i in val_idx),
        test=tuple(records[i] for i in test_idx),
        train_indices=train_idx,
        val_indices=val_idx,
        test_indices=test_idx,
        seed=int(seed),
        dataset_hash=digest,
        dataset_version=dataset_version(digest),
    )
