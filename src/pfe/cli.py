# src/pfe/cli.py
# -----------------------------------------------------------------------------
# Probabilistic Forecast Evaluation – Command Line Interface (Typer)
#
# Thin wrapper around the engine for local files (csv / json / parquet) with
# at least `probability` and `outcome` columns (`created` for backtests):
#   evaluate   full pipeline → report as json / markdown / summary
#   split      seeded train/validation/test sizes and dataset identity
#   calibrate  reliability table over every resolved row
#
# Everything is printed to stdout; nothing is written to disk.
# -----------------------------------------------------------------------------

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import typer
import yaml
from pydantic import ValidationError

from pfe.common.contracts import LabeledRecord, is_resolved, predictions_and_outcomes
from pfe.common.errors import EvaluationError
from pfe.config import (
    EVALUATION_SCENARIOS,
    EvaluatorConfig,
    backtest_config,
    evaluator_config,
    load_config,
)
from pfe.eval.calibration import analyze_calibration
from pfe.eval.render import report_summary, report_to_json, report_to_markdown
from pfe.pipeline import run_full_evaluation
from pfe.split.partition import partition_dataset

app = typer.Typer(add_completion=False, no_args_is_help=True)

_FORMATS = ("json", "markdown", "summary")


# ------------------------------ helpers ---------------------------------
def _read_frame(path: Path) -> pd.DataFrame:
    """Load a records table; the reader is picked from the file suffix."""
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix in {".json", ".jsonl"}:
        return pd.read_json(path, lines=suffix == ".jsonl")
    if suffix in {".parquet", ".pq"}:
        return pd.read_parquet(path)
    raise typer.BadParameter(f"Unsupported file type: {path.suffix}")


def load_records(path: Path) -> list[LabeledRecord]:
    """Read a file and validate every row through LabeledRecord."""
    if not path.exists():
        raise typer.BadParameter(f"File not found: {path}")
    df = _read_frame(path)
    missing = [c for c in ("probability", "outcome") if c not in df.columns]
    if missing:
        raise typer.BadParameter(f"Missing required columns: {missing}")
    rows: list[dict[str, Any]] = df.to_dict(orient="records")
    try:
        return [LabeledRecord.model_validate(r) for r in rows]
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid record: {exc}") from exc


def _resolve_config(config: Optional[str], scenario: str) -> tuple[EvaluatorConfig, Any]:
    if scenario not in EVALUATION_SCENARIOS:
        raise typer.BadParameter(
            f"Unknown scenario {scenario!r}; expected one of {sorted(EVALUATION_SCENARIOS)}"
        )
    if config:
        try:
            return load_config(Path(config))
        except (OSError, yaml.YAMLError, TypeError, ValueError) as exc:
            raise typer.BadParameter(f"Invalid config {config}: {exc}") from exc
    return evaluator_config(scenario), backtest_config("default")


# ------------------------------ commands --------------------------------
@app.command()
def evaluate(
    path: Path = typer.Argument(..., help="Records file (csv/json/parquet)"),
    config: Optional[str] = typer.Option(None, help="YAML config (configs/evaluation.yaml)"),
    scenario: str = typer.Option("default", help="Preset: default | strict | quick"),
    name: str = typer.Option("Prediction Market Evaluation", help="Report name"),
    fmt: str = typer.Option("summary", "--format", help="json | markdown | summary"),
    verbose: bool = typer.Option(False, help="Echo the execution log"),
) -> None:
    """Run the full evaluation pipeline and print the report."""
    if fmt not in _FORMATS:
        raise typer.BadParameter(f"--format must be one of {_FORMATS}")
    records = load_records(path)
    ev_cfg, bt_cfg = _resolve_config(config, scenario)
    result = run_full_evaluation(records, ev_cfg, bt_cfg, name=name, verbose=verbose)
    if not result.success or result.report is None:
        typer.echo(f"[evaluate] failed: {result.error}", err=True)
        raise typer.Exit(code=1)

    if fmt == "json":
        typer.echo(report_to_json(result.report))
    elif fmt == "markdown":
        typer.echo(report_to_markdown(result.report))
    else:
        typer.echo(json.dumps(report_summary(result.report), indent=2))


@app.command()
def split(
    path: Path = typer.Argument(..., help="Records file (csv/json/parquet)"),
    seed: int = typer.Option(42, help="Shuffle seed"),
    test_fraction: float = typer.Option(0.2, help="Test share"),
    val_fraction: float = typer.Option(0.15, help="Validation share"),
) -> None:
    """Show the seeded train/validation/test split for resolved rows."""
    records = [r for r in load_records(path) if is_resolved(r)]
    try:
        part = partition_dataset(
            records, seed=seed, test_fraction=test_fraction, val_fraction=val_fraction
        )
    except EvaluationError as exc:
        typer.echo(f"[split] failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    meta = part.metadata()
    meta.pop("indices")
    typer.echo(json.dumps(meta, indent=2))


@app.command()
def calibrate(
    path: Path = typer.Argument(..., help="Records file (csv/json/parquet)"),
    bins: int = typer.Option(10, help="Number of equal-width bins"),
) -> None:
    """Reliability table (confidence vs accuracy) over all resolved rows."""
    records = [r for r in load_records(path) if is_resolved(r)]
    preds, outs = predictions_and_outcomes(records)
    result = analyze_calibration(preds, outs, bins)
    typer.echo("[calibration] bin  lower  upper   size  conf    acc")
    for b in result.populated_bins:
        typer.echo(
            f"[calibration] {b.index:>3}  {b.lower_bound:0.2f}   {b.upper_bound:0.2f}  "
            f"{b.size:>5}  {b.conf_mean:0.3f}  {b.acc_mean:0.3f}"
        )
    ece = "N/A" if result.ece is None else f"{result.ece:0.5f}"
    typer.echo(
        f"[calibration] ECE={ece} over={result.overconfidence_count} "
        f"under={result.underconfidence_count} n={result.sample_size}"
    )


if __name__ == "__main__":
    app()
