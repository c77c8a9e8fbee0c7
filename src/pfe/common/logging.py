# src/pfe/common/logging.py
# -----------------------------------------------------------------------------
# Simple, dependency-light logging & provenance utilities used by the engine.
# - log_stdout: timestamped console output (optionally collected in a list)
# - sha256_records: content hash of an in-memory dataset for provenance
# - dataset_version: "v<epoch_ms>_<hash prefix>" identity string
# - Timed: minimal context manager for durations
# -----------------------------------------------------------------------------
from __future__ import annotations

import hashlib
import json
import sys
import time
from collections.abc import Sequence
from datetime import datetime
from types import TracebackType

from pfe.common.contracts import RecordLike, to_plain


def sha256_records(records: Sequence[RecordLike]) -> str:
    """SHA-256 over the canonical JSON of every record (key-sorted)."""
    h = hashlib.sha256()
    for r in records:
        line = json.dumps(to_plain(r), sort_keys=True, default=str, allow_nan=True)
        h.update(line.encode("utf-8"))
        h.update(b"\n")
    return h.hexdigest()


def dataset_version(dataset_hash: str, now: datetime | None = None) -> str:
    """Traceability tag: epoch milliseconds plus the first 8 hash chars."""
    ts = now or datetime.now()
    return f"v{int(ts.timestamp() * 1000)}_{dataset_hash[:8]}"


def log_stdout(msg: str, *, sink: list[str] | None = None, echo: bool = True) -> str:
    """
    Timestamped line to stdout (no external logging dependency).

    The formatted line is returned and, when `sink` is given, appended to it
    so orchestrators can hand back an execution log with their result.
    """
    ts = datetime.now().isoformat(timespec="seconds")
    line = f"[{ts}] {msg}"
    if sink is not None:
        sink.append(line)
    if echo:
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    return line


class Timed:
    """Context manager to measure durations of small blocks."""

    def __init__(self) -> None:
        self.start: float | None = None
        self.elapsed: float | None = None

    def __enter__(self) -> Timed:
        self.start = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        end = time.perf_counter()
        self.elapsed = end - (self.start or end)
