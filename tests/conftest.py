# tests/conftest.py
from __future__ import annotations

import sys
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import numpy as np
import pytest
import yaml

# Ensure src/ is on sys.path for test runtime
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def make_records(n: int, seed: int = 7, *, skill: float = 0.8) -> list[dict[str, Any]]:
    """Synthetic resolved forecasts: outcomes drawn from a noisy version of p."""
    rng = np.random.default_rng(seed)
    t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    rows: list[dict[str, Any]] = []
    for i in range(n):
        p_true = float(rng.uniform(0.05, 0.95))
        p = float(np.clip(skill * p_true + (1 - skill) * rng.uniform(), 0.0, 1.0))
        rows.append(
            {
                "market_id": f"M{i:04d}",
                "probability": p,
                "outcome": int(rng.uniform() < p_true),
                "created": t0 + timedelta(hours=12 * i),
            }
        )
    return rows


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Repository root (one level above tests/)."""
    return ROOT


@pytest.fixture(scope="session")
def config_dir(project_root: Path) -> Path:
    """Path to configs/ directory."""
    return project_root / "configs"


@pytest.fixture(scope="session")
def loaded_configs(config_dir: Path) -> dict[str, dict[str, Any]]:
    """Loaded YAML content keyed by filename."""
    out: dict[str, dict[str, Any]] = {}
    for p in sorted(config_dir.glob("*.yaml")):
        with p.open("r", encoding="utf-8") as fh:
            out[p.name] = yaml.safe_load(fh) or {}
    return out


@pytest.fixture(scope="session")
def record_factory() -> Callable[..., list[dict[str, Any]]]:
    return make_records


@pytest.fixture()
def records_100() -> list[dict[str, Any]]:
    return make_records(100)


@pytest.fixture()
def records_400() -> list[dict[str, Any]]:
    return make_records(400, seed=11)
