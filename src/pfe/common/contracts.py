# src/pfe/common/contracts.py
# -----------------------------------------------------------------------------
# Pydantic contract for a single forecast/outcome pair, plus tiny accessors so
# the engine can take either validated LabeledRecord objects or plain mappings
# (e.g. rows from DataFrame.to_dict("records")).
#
# The engine itself never re-validates probabilities: callers filter. The
# contract only normalizes the outcome to 0/1/None and the timestamp type.
# -----------------------------------------------------------------------------
from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, field_validator

SEED: int = 42  # central place to share a default seed for reproducibility

_TRUE_STRINGS = {"1", "true", "yes", "y"}
_FALSE_STRINGS = {"0", "false", "no", "n"}


class LabeledRecord(BaseModel):
    """
    One forecast-outcome pair.

    outcome=None means "not yet resolved"; such records must be excluded
    before they reach a partition. Extra fields (market id, platform, ...)
    are kept as-is.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    probability: float
    outcome: int | None = None
    created: datetime | None = None

    @field_validator("probability", mode="before")
    @classmethod
    def _float_or_nan(cls, v: object) -> float:
        if v is None:
            return float("nan")
        if isinstance(v, str):
            s = v.strip()
            return float(s) if s else float("nan")
        return float(v)  # type: ignore[arg-type]

    @field_validator("outcome", mode="before")
    @classmethod
    def _binary_or_none(cls, v: object) -> int | None:
        if v is None:
            return None
        if isinstance(v, np.generic):
            v = v.item()  # numpy scalars from DataFrame rows
        if isinstance(v, bool):
            return int(v)
        if isinstance(v, str):
            s = v.strip().lower()
            if s == "":
                return None
            if s in _TRUE_STRINGS:
                return 1
            if s in _FALSE_STRINGS:
                return 0
            raise ValueError(f"Cannot coerce outcome {v!r} to 0/1")
        if isinstance(v, (int, float)):
            if isinstance(v, float) and math.isnan(v):
                return None
            if v in (0, 1):
                return int(v)
        raise ValueError(f"Outcome must be 0, 1 or empty (got {v!r})")

    @field_validator("created", mode="before")
    @classmethod
    def _empty_created(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        if v is not None and not isinstance(v, str) and v != v:  # NaN / NaT
            return None
        return v

    @property
    def resolved(self) -> bool:
        return self.outcome is not None


RecordLike = Union[LabeledRecord, Mapping[str, Any]]


def record_field(record: RecordLike, name: str, default: Any = None) -> Any:
    """Read a field from a LabeledRecord or a plain mapping."""
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def is_resolved(record: RecordLike) -> bool:
    outcome = record_field(record, "outcome")
    if outcome is None:
        return False
    if isinstance(outcome, float) and math.isnan(outcome):
        return False
    return True


def predictions_and_outcomes(records: Sequence[RecordLike]) -> tuple[list[float], list[int]]:
    """
    Parallel (probability, outcome) lists for a record sequence.

    Every record must be resolved; an unresolved one (outcome None / NaN)
    raises ValueError instead of being scored. Probabilities are passed through
    untouched so the scoring layer can filter them and report the reduced
    sample size.
    """
    preds: list[float] = []
    outs: list[int] = []
    for i, r in enumerate(records):
        if not is_resolved(r):
            raise ValueError(f"Unresolved record at position {i}")
        p = record_field(r, "probability")
        preds.append(float("nan") if p is None else float(p))
        outs.append(1 if int(record_field(r, "outcome")) == 1 else 0)
    return preds, outs


def to_plain(record: RecordLike) -> dict[str, Any]:
    """JSON-friendly dict view of a record (used for hashing and reports)."""
    if isinstance(record, LabeledRecord):
        return record.model_dump(mode="json")
    return dict(record)
