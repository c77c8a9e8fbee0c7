# tests/test_contracts.py
from __future__ import annotations

import math
import re

import numpy as np
import pytest
from pydantic import ValidationError

from pfe.common.contracts import (
    LabeledRecord,
    is_resolved,
    predictions_and_outcomes,
    record_field,
    to_plain,
)
from pfe.common.logging import dataset_version, log_stdout, sha256_records
from pfe.common.rng import SeededStream


@pytest.mark.parametrize(
    "raw,expected",
    [
        (1, 1),
        (0, 0),
        (True, 1),
        (1.0, 1),
        (np.int64(1), 1),
        ("yes", 1),
        ("0", 0),
        ("", None),
        (None, None),
        (float("nan"), None),
    ],
)
def test_outcome_coercion(raw, expected) -> None:
    rec = LabeledRecord(probability=0.4, outcome=raw)
    assert rec.outcome == expected
    assert rec.resolved is (expected is not None)


@pytest.mark.parametrize("raw", [2, -1, "maybe", 0.5])
def test_outcome_rejects_non_binary(raw) -> None:
    with pytest.raises(ValidationError):
        LabeledRecord(probability=0.4, outcome=raw)


def test_probability_blank_is_nan_and_extras_kept() -> None:
    rec = LabeledRecord.model_validate({"probability": "", "outcome": 1, "market_id": "M1"})
    assert math.isnan(rec.probability)
    assert record_field(rec, "market_id") == "M1"
    assert to_plain(rec)["market_id"] == "M1"


def test_created_blank_or_nat_is_none() -> None:
    assert LabeledRecord(probability=0.5, created="").created is None
    assert LabeledRecord(probability=0.5, created=float("nan")).created is None
    rec = LabeledRecord(probability=0.5, created="2024-03-01T00:00:00Z")
    assert rec.created is not None and rec.created.year == 2024


def test_helpers_accept_mappings_and_models() -> None:
    rows = [
        {"probability": 0.2, "outcome": 0},
        LabeledRecord(probability=0.9, outcome=1),
        {"probability": None, "outcome": 1},
    ]
    assert all(is_resolved(r) for r in rows)
    assert not is_resolved({"probability": 0.2, "outcome": float("nan")})
    preds, outs = predictions_and_outcomes(rows)
    assert preds[:2] == [0.2, 0.9] and math.isnan(preds[2])
    assert outs == [0, 1, 1]


def test_dataset_hash_and_version() -> None:
    a = [{"probability": 0.2, "outcome": 0}, {"outcome": 1, "probability": 0.7}]
    b = [{"outcome": 0, "probability": 0.2}, {"probability": 0.7, "outcome": 1}]
    assert sha256_records(a) == sha256_records(b)
    assert sha256_records(a) != sha256_records(a[::-1])
    assert re.fullmatch(r"v\d+_[0-9a-f]{8}", dataset_version(sha256_records(a)))


def test_log_stdout_collects_lines(capsys: pytest.CaptureFixture[str]) -> None:
    sink: list[str] = []
    line = log_stdout("hello", sink=sink)
    log_stdout("quiet", sink=sink, echo=False)
    out = capsys.readouterr().out
    assert "hello" in out and "quiet" not in out
    assert sink[0] == line and sink[1].endswith("quiet")


def test_seeded_stream_is_reproducible() -> None:
    a, b = SeededStream(42), SeededStream(42)
    assert [a.random() for _ in range(5)] == [b.random() for _ in range(5)]
    s = SeededStream(1)
    perm = s.shuffled_indices(50)
    assert sorted(perm) == list(range(50))
    assert s.draws == 49
    assert SeededStream(3).shuffled_indices(0) == []


@pytest.mark.parametrize("pending", [None, float("nan")])
def test_unresolved_rows_are_not_scored(pending) -> None:
    rows = [{"probability": 0.3, "outcome": 1}, {"probability": 0.6, "outcome": pending}]
    with pytest.raises(ValueError, match="position 1"):
        predictions_and_outcomes(rows)
