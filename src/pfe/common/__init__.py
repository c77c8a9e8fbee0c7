# -----------------------------------------------------------------------------
# Shared building blocks: record contracts, error taxonomy, seeded streams,
# logging helpers and integrity checks. Import concrete modules directly.
# -----------------------------------------------------------------------------
from __future__ import annotations

__all__: list[str] = []
