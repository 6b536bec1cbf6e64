"""Export benchmark results to CSV and Markdown formats.

CSV format: one row per trial (long format for pandas/R/plotting
tools).  This is the raw data: every measurement, warm-up and failed
trials included and marked.

CSV summary: one row per unit with the report statistics.

Markdown format: the summary table, suitable for reports, README
files and issues.
"""

from __future__ import annotations

import csv
import io

from trialbench.bench.display import REPORT_COLUMNS, UNIT_NAMES, report_rows
from trialbench.bench.results import BenchResult


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def export_csv(result: BenchResult) -> str:
    """Export every trial as CSV (long format).

    Rows follow each unit's execution order; units appear in input
    order.

    Columns:
        label, trial, warmup, duration_ns, failed, error, outlier
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["label", "trial", "warmup", "duration_ns", "failed", "error", "outlier"])

    for label, run in result.runs.items():
        # Outlier flags are aligned with the successful measured trials.
        flags = iter(run.outliers())
        for trial in run.trials:
            counted = not trial.warmup and not trial.failed
            writer.writerow(
                [
                    label,
                    trial.index,
                    trial.warmup,
                    trial.duration_ns,
                    trial.failed,
                    trial.error,
                    next(flags) if counted else False,
                ]
            )

    return output.getvalue()


def export_csv_summary(result: BenchResult, unit: str | None = None) -> str:
    """Export the report table as CSV, one row per unit.

    Statistics are written in *unit* (auto-selected when None), which
    is repeated in a ``unit`` column.
    """
    unit, rows = report_rows(result, unit)
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([REPORT_COLUMNS[0], "unit", *REPORT_COLUMNS[1:]])
    for row in rows:
        writer.writerow([row[0], unit, *("" if cell == "N/A" else cell for cell in row[1:])])
    return output.getvalue()


def raw_durations(result: BenchResult) -> dict[str, list[int]]:
    """Label → successful measured durations in nanoseconds."""
    return result.raw_durations()


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------


def export_markdown(result: BenchResult, unit: str | None = None) -> str:
    """Export the result as a Markdown report."""
    meta = result.meta
    lines: list[str] = [f"# {result.title}", ""]
    if meta.description:
        lines.extend([meta.description, ""])

    sys_p = meta.system
    lines.append("## System")
    lines.append("")
    lines.append(f"- **CPU:** {sys_p.cpu_model} ({sys_p.cpu_cores_logical} logical cores)")
    lines.append(f"- **OS:** {sys_p.os_name} {sys_p.os_release}".rstrip())
    lines.append(f"- **Python:** {sys_p.python_implementation} {sys_p.python_version}")
    lines.append("")

    if meta.units:
        lines.append("## Units")
        lines.append("")
        for label, description in meta.units.items():
            lines.append(f"- **{label}**: `{description}`" if description else f"- **{label}**")
        lines.append("")

    cfg = meta.config
    unit, rows = report_rows(result, unit or cfg.get("time_unit"))
    lines.append("## Results")
    lines.append("")
    lines.append(
        f"{cfg.get('trials', '?')} trials per unit, order {cfg.get('order', '?')}. "
        f"Unit: {UNIT_NAMES[unit]}."
    )
    lines.append("")
    lines.append("| " + " | ".join(REPORT_COLUMNS) + " |")
    lines.append("|---|" + "---:|" * (len(REPORT_COLUMNS) - 1))
    for row in rows:
        lines.append("| " + " | ".join(row) + " |")

    lines.append("")
    lines.append(f"*Generated by trialbench on {meta.start_time or 'unknown'}*")
    return "\n".join(lines)
