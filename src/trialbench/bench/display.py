"""Terminal display formatting for benchmark results.

Produces the summary table (one row per unit, sorted by median), the
full ``show`` view with context and measurement quality, and the
comparison summary.  Uses Unicode box-drawing characters for rules.
"""

from __future__ import annotations

import math
import statistics as _stats

from trialbench.bench.compare import ComparisonReport
from trialbench.bench.results import BenchResult
from trialbench.bench.stats import Summary
from trialbench.bench.system import format_system_profile

# Nanoseconds per unit.
UNIT_SCALE: dict[str, float] = {"ns": 1.0, "us": 1e3, "ms": 1e6, "s": 1e9}
UNIT_NAMES: dict[str, str] = {
    "ns": "nanoseconds",
    "us": "microseconds",
    "ms": "milliseconds",
    "s": "seconds",
    "relative": "relative to fastest median",
}

REPORT_COLUMNS = ["label", "min", "lq", "mean", "median", "uq", "max", "neval", "failures"]


# ---------------------------------------------------------------------------
# Units and number formatting
# ---------------------------------------------------------------------------


def choose_unit(summaries: list[Summary | None]) -> str:
    """Pick the largest unit in which the smallest median is at least 1.

    Falls back to nanoseconds when nothing has data or everything is
    below one nanosecond.
    """
    medians = [s.median for s in summaries if s is not None]
    if not medians:
        return "ns"
    smallest = min(medians)
    for unit in ("s", "ms", "us"):
        if smallest >= UNIT_SCALE[unit]:
            return unit
    return "ns"


def _format_value(value: float) -> str:
    """Four-ish significant digits without scientific notation."""
    if math.isnan(value):
        return "N/A"
    if math.isinf(value):
        return "inf"
    magnitude = abs(value)
    if magnitude >= 1000:
        return f"{value:.0f}"
    if magnitude >= 100:
        return f"{value:.1f}"
    if magnitude >= 10:
        return f"{value:.2f}"
    return f"{value:.3f}"


def _format_pct(value: float, precision: int = 1) -> str:
    """Format a percentage with sign."""
    if math.isnan(value):
        return "N/A"
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.{precision}f}%"


def _format_table(headers: list[str], rows: list[list[str]], right: set[int]) -> list[str]:
    """Align *rows* under *headers*; columns in *right* are right-aligned."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def _line(cells: list[str]) -> str:
        parts = [
            cell.rjust(widths[i]) if i in right else cell.ljust(widths[i])
            for i, cell in enumerate(cells)
        ]
        return "  ".join(parts).rstrip()

    lines = [_line(headers), "─" * (sum(widths) + 2 * (len(widths) - 1))]
    lines.extend(_line(row) for row in rows)
    return lines


# ---------------------------------------------------------------------------
# Report table
# ---------------------------------------------------------------------------


def report_rows(result: BenchResult, unit: str | None = None) -> tuple[str, list[list[str]]]:
    """Build the report table rows, sorted by ascending median.

    Returns:
        Tuple of (resolved unit, rows).  Each row follows
        :data:`REPORT_COLUMNS`; units without successful trials have
        ``N/A`` statistics and come last.
    """
    summaries = result.summaries()
    unit = unit or choose_unit(list(summaries.values()))

    divisor = 1.0
    if unit == "relative":
        medians = [s.median for s in summaries.values() if s is not None]
        if medians and min(medians) > 0:
            divisor = min(medians)
        elif medians:
            # A zero median cannot be a reference; report raw nanoseconds.
            unit = "ns"
    if unit != "relative":
        divisor = UNIT_SCALE[unit]

    rows: list[list[str]] = []
    for run in result.by_median():
        summary = summaries[run.label]
        if summary is None:
            stats = ["N/A"] * 6
        else:
            s = summary.scaled(divisor)
            stats = [_format_value(v) for v in (s.min, s.lq, s.mean, s.median, s.uq, s.max)]
        rows.append([run.label, *stats, str(run.neval), str(run.n_failures)])
    return unit, rows


def format_report(result: BenchResult, unit: str | None = None) -> str:
    """Format the summary table of a benchmark result.

    Args:
        result: The benchmark result.
        unit: One of ``ns``, ``us``, ``ms``, ``s``, ``relative``;
            None picks by magnitude.
    """
    unit, rows = report_rows(result, unit)
    lines = [f"Unit: {UNIT_NAMES[unit]}"]
    lines.extend(_format_table(REPORT_COLUMNS, rows, right=set(range(1, len(REPORT_COLUMNS)))))
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Full result display
# ---------------------------------------------------------------------------


def format_bench_show(result: BenchResult, unit: str | None = None) -> str:
    """Format a complete benchmark run for display.

    Shows the system and clock, configuration, the summary table,
    failures, and measurement quality.
    """
    meta = result.meta
    lines: list[str] = []

    title = result.title
    lines.append(title)
    lines.append("─" * len(title))
    if meta.description:
        lines.append(meta.description)
    lines.append("")

    lines.append(format_system_profile(meta.system))
    clock = meta.clock
    if clock.implementation:
        lines.append(
            f"  Clock:   {clock.implementation} "
            f"(resolution {clock.resolution_ns:.0f} ns, read overhead {clock.overhead_ns} ns)"
        )
    lines.append("")

    cfg = meta.config
    order = cfg.get("order", "?")
    if cfg.get("seed") is not None:
        order = f"{order} (seed {cfg['seed']})"
    lines.append(
        f"Trials: {cfg.get('trials', '?')} per unit + {cfg.get('warmup', '?')} warm-up, "
        f"order {order}"
    )
    if cfg.get("check"):
        lines.append(f"Result check: {cfg['check']}")
    if meta.start_time and meta.end_time:
        lines.append(f"Time: {meta.start_time} → {meta.end_time}")
    lines.append("")

    lines.append(format_report(result, unit or cfg.get("time_unit")))

    failures = _format_failures(result)
    if failures:
        lines.append("")
        lines.append(failures)

    lines.append("")
    lines.append(_format_quality_summary(result))

    return "\n".join(lines)


def _format_failures(result: BenchResult) -> str:
    """List failed trials per unit, grouped by error."""
    failing = [run for run in result.runs.values() if run.n_failures]
    if not failing:
        return ""

    lines = ["Failures", "─" * 8]
    for run in failing:
        lines.append(f"  {run.label}: {run.n_failures} of {run.requested_trials} trials")
        for error, count in run.errors.items():
            lines.append(f"    {count:>5d} × {error}")
        if run.neval == 0:
            lines.append("    no successful trials; statistics unavailable")
    return "\n".join(lines)


def _format_quality_summary(result: BenchResult) -> str:
    """Format measurement quality metrics."""
    lines = ["Measurement Quality", "─" * 19]

    cvs: list[float] = []
    for label, run in result.runs.items():
        summary = run.summary()
        if summary is None:
            continue
        cvs.append(summary.cv)
        n_outliers = sum(run.outliers())
        lines.append(
            f"  {label}: CV {summary.cv:.3f}, outliers {n_outliers} / {summary.n}"
        )

    if cvs:
        overall = _stats.median(cvs)
        if overall < 0.03:
            quality = "Excellent (CV < 3%)"
        elif overall < 0.05:
            quality = "Good (CV < 5%)"
        elif overall < 0.10:
            quality = "Acceptable (CV < 10%)"
        else:
            quality = "Noisy (CV ≥ 10%); consider more trials or a quieter machine"
        lines.append(f"  Overall: {quality}")
    else:
        lines.append("  No successful trials.")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Comparison summary
# ---------------------------------------------------------------------------


def format_comparison_report(report: ComparisonReport) -> str:
    """Format a ComparisonReport for terminal display."""
    lines: list[str] = [f"Baseline: {report.baseline}"]

    if not report.candidates:
        lines.append("No comparable units.")
    else:
        headers = ["label", "ratio", "diff", "95% CI (median diff)", "effect", "note"]
        rows: list[list[str]] = []
        base_median = report.candidates[0].comparison.baseline.median
        for c in report.candidates:
            ci = c.comparison.ci
            if base_median > 0 and not math.isnan(ci.lower):
                ci_text = (
                    f"[{_format_pct(ci.lower / base_median * 100)}, "
                    f"{_format_pct(ci.upper / base_median * 100)}]"
                )
            else:
                ci_text = "[N/A]"
            notes = []
            if c.comparison.significant:
                notes.append("significant")
            if c.high_cv:
                notes.append("high CV")
            rows.append(
                [
                    c.label,
                    f"{c.ratio:.3f}x",
                    _format_pct(c.diff_pct),
                    ci_text,
                    c.comparison.effect_size.classification,
                    ", ".join(notes),
                ]
            )
        lines.extend(_format_table(headers, rows, right={1, 2, 3}))

        fastest = report.fastest
        lines.append("")
        if fastest is not None and fastest.ratio > 0:
            speedup = 1 / fastest.ratio
            lines.append(f"Fastest: {fastest.label} ({speedup:.2f}x faster than {report.baseline})")
        elif fastest is not None:
            lines.append(f"Fastest: {fastest.label}")
        else:
            lines.append(f"No unit is faster than {report.baseline}.")

    if report.skipped:
        lines.append(f"Skipped (no successful trials): {', '.join(report.skipped)}")

    return "\n".join(lines)
