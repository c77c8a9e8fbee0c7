# tests/test_partition.py
from __future__ import annotations

import re
from typing import Any

import pytest

from pfe.common.checks import assert_exact_cover
from pfe.common.errors import EmptyDatasetError, InvalidFractionError
from pfe.common.rng import SeededStream
from pfe.split.partition import partition_dataset, split_sizes


def test_scenario_sizes_100_records(records_100: list[dict[str, Any]]) -> None:
    part = partition_dataset(records_100, seed=42, test_fraction=0.2, val_fraction=0.15)
    assert part.test_size == 20
    assert part.val_size == 15
    assert part.train_size == 65
    assert len(part.test) == 20 and len(part.validation) == 15 and len(part.train) == 65


def test_reproducibility_same_indices(records_100: list[dict[str, Any]]) -> None:
    p1 = partition_dataset(records_100, seed=42, test_fraction=0.2, val_fraction=0.15)
    p2 = partition_dataset(records_100, seed=42, test_fraction=0.2, val_fraction=0.15)
    assert p1.train_indices == p2.train_indices
    assert p1.val_indices == p2.val_indices
    assert p1.test_indices == p2.test_indices
    assert p1.dataset_hash == p2.dataset_hash


def test_different_seed_changes_assignment(records_100: list[dict[str, Any]]) -> None:
    p1 = partition_dataset(records_100, seed=42)
    p2 = partition_dataset(records_100, seed=43)
    assert p1.test_indices != p2.test_indices


@pytest.mark.parametrize(
    "n,test_fraction,val_fraction",
    [(1, 0.2, 0.15), (7, 0.0, 0.0), (37, 0.3, 0.3), (50, 0.5, 0.5), (64, 1.0, 0.0)],
)
def test_split_covers_all_indices_once(n: int, test_fraction: float, val_fraction: float) -> None:
    records = [{"probability": 0.5, "outcome": i % 2} for i in range(n)]
    part = partition_dataset(records, seed=3, test_fraction=test_fraction, val_fraction=val_fraction)
    all_idx = part.train_indices + part.val_indices + part.test_indices
    assert sorted(all_idx) == list(range(n))
    assert part.total_records == n
    assert_exact_cover((part.train_indices, part.val_indices, part.test_indices), n)


def test_test_slice_is_taken_first_from_shuffle(records_100: list[dict[str, Any]]) -> None:
    shuffled = SeededStream(42).shuffled_indices(100)
    part = partition_dataset(records_100, seed=42, test_fraction=0.2, val_fraction=0.15)
    assert list(part.test_indices) == shuffled[:20]
    assert list(part.val_indices) == shuffled[20:35]
    assert list(part.train_indices) == shuffled[35:]


def test_records_follow_indices(records_100: list[dict[str, Any]]) -> None:
    part = partition_dataset(records_100, seed=42)
    for rec, idx in zip(part.test, part.test_indices):
        assert rec is records_100[idx]
    for rec, idx in zip(part.train, part.train_indices):
        assert rec is records_100[idx]


def test_explicit_stream_matches_seed(records_100: list[dict[str, Any]]) -> None:
    a = partition_dataset(records_100, seed=42)
    b = partition_dataset(records_100, seed=42, stream=SeededStream(42))
    assert a.test_indices == b.test_indices


def test_empty_dataset_raises() -> None:
    with pytest.raises(EmptyDatasetError):
        partition_dataset([], seed=42)


@pytest.mark.parametrize("test_fraction,val_fraction", [(0.7, 0.4), (-0.1, 0.2), (0.2, 1.5)])
def test_invalid_fractions_rejected(test_fraction: float, val_fraction: float) -> None:
    records = [{"probability": 0.5, "outcome": 1}] * 10
    with pytest.raises(InvalidFractionError):
        partition_dataset(records, seed=1, test_fraction=test_fraction, val_fraction=val_fraction)


def test_metadata_identity(records_100: list[dict[str, Any]]) -> None:
    part = partition_dataset(records_100, seed=42)
    meta = part.metadata()
    assert meta["seed"] == 42
    assert meta["totalRecords"] == 100
    assert meta["splits"]["test"] == {"size": 20, "fraction": 0.2}
    assert re.fullmatch(r"v\d+_[0-9a-f]{8}", part.dataset_version)
    assert part.dataset_version.endswith(part.dataset_hash[:8])


def test_split_sizes_floor() -> None:
    assert split_sizes(100, 0.2, 0.15) == (65, 15, 20)
    assert split_sizes(9, 0.25, 0.25) == (5, 2, 2)
