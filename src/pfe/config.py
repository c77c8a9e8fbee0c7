# src/pfe/config.py
# -----------------------------------------------------------------------------
# Configuration for the evaluation engine and the backtest.
#
# Three frozen dataclasses carry every tunable:
#   EvaluatorConfig  seed, split fractions, fold count, calibration bins
#   ReadinessPolicy  thresholds behind the pass/warn/fail judgment
#   BacktestConfig   rolling-window size, step and minimum events per window
#
# Named scenarios ("default", "strict", "quick" / "default", "shortTerm",
# "longTerm") give common presets; load_config() reads the YAML surface:
#
#   evaluation:
#     scenario: default        # optional preset applied before overrides
#     seed: 42
#     test_fraction: 0.2
#     val_fraction: 0.15
#     k_folds: 5
#     num_bins: 10
#   readiness:
#     brier_warn: 0.5
#     ece_warn: 0.15
#     min_test_size: 100
#   backtest:
#     scenario: default
#     window_days: 30
#     step_days: 7
#     min_events_per_window: 10
# -----------------------------------------------------------------------------
from __future__ import annotations

import numbers
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from pfe.common.contracts import SEED


@dataclass(frozen=True)
class ReadinessPolicy:
    brier_warn: float = 0.5
    ece_warn: float = 0.15
    min_test_size: int = 100


@dataclass(frozen=True)
class EvaluatorConfig:
    seed: int = SEED
    test_fraction: float = 0.2
    val_fraction: float = 0.15
    k_folds: int = 5
    num_bins: int = 10
    readiness: ReadinessPolicy = field(default_factory=ReadinessPolicy)


@dataclass(frozen=True)
class BacktestConfig:
    window_days: float = 30.0
    step_days: float = 7.0
    min_events_per_window: int = 10


EVALUATION_SCENARIOS: dict[str, EvaluatorConfig] = {
    "default": EvaluatorConfig(seed=SEED, k_folds=5),
    "strict": EvaluatorConfig(seed=SEED, k_folds=10, test_fraction=0.25),
    "quick": EvaluatorConfig(seed=SEED, k_folds=3, test_fraction=0.15),
}

BACKTEST_SCENARIOS: dict[str, BacktestConfig] = {
    "default": BacktestConfig(window_days=30, step_days=7, min_events_per_window=10),
    "shortTerm": BacktestConfig(window_days=7, step_days=1, min_events_per_window=5),
    "longTerm": BacktestConfig(window_days=90, step_days=30, min_events_per_window=50),
}


def evaluator_config(scenario: str = "default") -> EvaluatorConfig:
    """Preset evaluator config; unknown names fall back to "default"."""
    return EVALUATION_SCENARIOS.get(scenario, EVALUATION_SCENARIOS["default"])


def backtest_config(scenario: str = "default") -> BacktestConfig:
    return BACKTEST_SCENARIOS.get(scenario, BACKTEST_SCENARIOS["default"])


def _require_float(name: str, value: object) -> float:
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return float(value)
    raise TypeError(f"Config '{name}' must be a float (got {type(value).__name__}).")


def _require_int(name: str, value: object) -> int:
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        return int(value)
    raise TypeError(f"Config '{name}' must be an int (got {type(value).__name__}).")


def _section(cfg: Mapping[str, Any], name: str) -> dict[str, Any]:
    raw = cfg.get(name) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Config section '{name}' must be a mapping.")
    return dict(raw)


_EVAL_FLOATS = ("test_fraction", "val_fraction")
_EVAL_INTS = ("seed", "k_folds", "num_bins")
_READY_FLOATS = ("brier_warn", "ece_warn")
_READY_INTS = ("min_test_size",)
_BT_FLOATS = ("window_days", "step_days")
_BT_INTS = ("min_events_per_window",)


def _overrides(
    section: Mapping[str, Any], floats: tuple[str, ...], ints: tuple[str, ...]
) -> dict[str, Any]:
    known = set(floats) | set(ints) | {"scenario"}
    unknown = sorted(k for k in section if k not in known)
    if unknown:
        raise ValueError(f"Unknown config keys: {unknown}")
    out: dict[str, Any] = {}
    for k in floats:
        if k in section:
            out[k] = _require_float(k, section[k])
    for k in ints:
        if k in section:
            out[k] = _require_int(k, section[k])
    return out


def parse_config(cfg: Mapping[str, Any]) -> tuple[EvaluatorConfig, BacktestConfig]:
    """Build (EvaluatorConfig, BacktestConfig) from an already-loaded mapping."""
    ev = _section(cfg, "evaluation")
    rd = _section(cfg, "readiness")
    bt = _section(cfg, "backtest")

    base_eval = evaluator_config(str(ev.get("scenario", "default")))
    policy = replace(base_eval.readiness, **_overrides(rd, _READY_FLOATS, _READY_INTS))
    evaluator = replace(base_eval, readiness=policy, **_overrides(ev, _EVAL_FLOATS, _EVAL_INTS))

    base_bt = backtest_config(str(bt.get("scenario", "default")))
    backtest = replace(base_bt, **_overrides(bt, _BT_FLOATS, _BT_INTS))
    return evaluator, backtest


def load_config(path: str | Path) -> tuple[EvaluatorConfig, BacktestConfig]:
    """Read a YAML config file; an empty file yields the defaults."""
    cfg_any: Any = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(cfg_any, Mapping):
        raise ValueError(f"Config root must be a mapping: {path}")
    return parse_config(cast(Mapping[str, Any], cfg_any))
