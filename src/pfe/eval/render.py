# src/pfe/eval/render.py
# -----------------------------------------------------------------------------
# Read-only renderers for a compiled Report: JSON, markdown and a compact
# summary dict. None of these touch the Report itself.
# -----------------------------------------------------------------------------
from __future__ import annotations

from typing import Any

from pfe.eval.report import Report


def _fmt(v: Any, digits: int = 4) -> str:
    if isinstance(v, (int, float)) and not isinstance(v, bool) and v == v:
        return f"{float(v):.{digits}f}"
    return "N/A"


def _pct(split: dict[str, Any]) -> str:
    return f"{round(float(split.get('fraction', 0.0)) * 100)}%"


def report_to_json(report: Report, indent: int = 2) -> str:
    return report.model_dump_json(indent=indent)


def report_summary(report: Report) -> dict[str, Any]:
    splits = report.dataset.get("splits", {})
    return {
        "name": report.name,
        "reportId": report.report_id,
        "timestamp": report.created_at,
        "dataset": {
            "version": report.dataset_version,
            "records": report.dataset.get("totalRecords"),
            "splits": {k: v.get("size") for k, v in splits.items()},
        },
        "keyMetrics": {
            "testBrier": _fmt(report.test_metrics.get("brierScore")),
            "testLogScore": _fmt(report.test_metrics.get("logScore")),
            "testCalibrationError": _fmt(report.test_metrics.get("ece")),
            "testSpherical": _fmt(report.test_metrics.get("sphericalScore")),
        },
        "crossValidation": {
            "folds": len(report.folds),
            "avgBrier": _fmt(report.cv_avg_metrics.get("brierScore")),
            "stdBrier": _fmt(report.cv_std_metrics.get("brierScore")),
        },
        "readiness": report.readiness.model_dump(),
    }


def report_to_markdown(report: Report) -> str:
    lines: list[str] = [
        f"# Model Evaluation Report: {report.name}",
        "",
        f"**Report ID:** `{report.report_id}`",
        f"**Generated:** {report.created_at}",
        f"**Schema:** {report.schema_version}",
        "",
        "## Dataset",
        f"- **Version:** {report.dataset_version or 'N/A'}",
        f"- **Total Records:** {report.dataset.get('totalRecords', 'N/A')}",
    ]
    splits = report.dataset.get("splits")
    if splits:
        lines.append(
            "- **Train/Val/Test Split:** "
            f"{_pct(splits['train'])} / {_pct(splits['validation'])} / {_pct(splits['test'])}"
        )
    lines += [
        f"- **Seed:** {report.seed}",
        "",
        "## Performance Summary",
        "| Metric | Train | Validation | Test |",
        "|--------|-------|------------|------|",
    ]
    for label, key in (("Brier Score", "brierScore"), ("Log Score", "logScore"), ("ECE", "ece")):
        lines.append(
            f"| **{label}** | {_fmt(report.train_metrics.get(key))} | "
            f"{_fmt(report.validation_metrics.get(key))} | {_fmt(report.test_metrics.get(key))} |"
        )

    if report.folds:
        lines += ["", f"## Cross-Validation ({len(report.folds)} folds)", "| Metric | Mean | Std |", "|---|---|---|"]
        for key, avg in report.cv_avg_metrics.items():
            lines.append(f"| {key} | {_fmt(avg)} | {_fmt(report.cv_std_metrics.get(key))} |")

    if report.calibration:
        cal = report.calibration
        lines += [
            "",
            "## Calibration Analysis",
            f"- **Expected Calibration Error:** {_fmt(cal.get('ece'))}",
            f"- **Overconfident Bins:** {cal.get('overconfidenceCount')}",
            f"- **Underconfident Bins:** {cal.get('underconfidenceCount')}",
        ]

    verdict = report.readiness
    lines += [
        "",
        "## Model Readiness",
        f"- **Ready for Deployment:** {'Yes' if verdict.ready else 'No'}",
    ]
    if verdict.issues:
        lines.append(f"- **Issues:** {'; '.join(verdict.issues)}")
    if verdict.warnings:
        lines.append(f"- **Warnings:** {'; '.join(verdict.warnings)}")
    lines += ["", "---", f"*{report.notes}*", ""]
    return "\n".join(lines)
