"""Benchmark comparison analysis.

Compares every unit of a benchmark against a baseline unit, producing
median ratios, bootstrap intervals, effect sizes and reliability
flags.  Results from separate benchmark runs can be merged first so the
same machinery compares runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from trialbench.bench.results import BenchMeta, BenchmarkRun, BenchResult
from trialbench.bench.stats import SampleComparison, compare_samples

log = logging.getLogger("trialbench")


# ---------------------------------------------------------------------------
# Per-unit comparison result
# ---------------------------------------------------------------------------


@dataclass
class UnitComparison:
    """One candidate unit against the baseline."""

    label: str
    comparison: SampleComparison
    high_cv: bool = False  # candidate or baseline CV above threshold

    @property
    def ratio(self) -> float:
        return self.comparison.ratio

    @property
    def diff_pct(self) -> float:
        return self.comparison.diff_pct

    @property
    def faster(self) -> bool:
        """True if the candidate's median is below the baseline's."""
        return self.ratio < 1.0

    @property
    def reliable(self) -> bool:
        return not self.high_cv


# ---------------------------------------------------------------------------
# Aggregate comparison
# ---------------------------------------------------------------------------


@dataclass
class ComparisonReport:
    """Every candidate unit compared to one baseline unit."""

    title: str
    baseline: str
    candidates: list[UnitComparison] = field(default_factory=list)  # fastest first
    skipped: list[str] = field(default_factory=list)  # no successful trials

    @property
    def fastest(self) -> UnitComparison | None:
        """The candidate with the lowest ratio, if any is faster than baseline."""
        faster = [c for c in self.candidates if c.faster]
        return faster[0] if faster else None

    @property
    def significant(self) -> list[UnitComparison]:
        return [c for c in self.candidates if c.comparison.significant]


# ---------------------------------------------------------------------------
# Comparison logic
# ---------------------------------------------------------------------------


def compare_units(
    result: BenchResult,
    baseline: str | None = None,
    *,
    cv_threshold: float = 0.10,
    ci_seed: int = 42,
    ci_bootstrap_n: int = 2000,
) -> ComparisonReport:
    """Compare every unit in *result* against *baseline*.

    Args:
        result: A benchmark result with at least one unit.
        baseline: Label of the baseline unit (default: the first unit).
        cv_threshold: CV above this flags a comparison as unreliable.
        ci_seed: Random seed for the bootstrap CI (reproducibility).
        ci_bootstrap_n: Number of bootstrap resamples.

    Raises:
        ValueError: If *baseline* is not a unit of *result*.
        EmptyDistributionError: If the baseline has no successful trials.
    """
    if not result.runs:
        raise ValueError("Benchmark result has no units to compare.")

    baseline = baseline or result.labels[0]
    if baseline not in result.runs:
        raise ValueError(
            f"Baseline '{baseline}' not found. Available: {', '.join(result.labels)}"
        )

    base_run = result.runs[baseline]
    base_summary = base_run.require_summary()
    base_values = base_run.durations_ns

    report = ComparisonReport(title=result.title, baseline=baseline)
    for label, run in result.runs.items():
        if label == baseline:
            continue
        values = run.durations_ns
        if not values:
            log.debug("Skipping '%s': no successful trials", label)
            report.skipped.append(label)
            continue

        comparison = compare_samples(
            base_values,
            values,
            n_bootstrap=ci_bootstrap_n,
            seed=ci_seed,
        )
        report.candidates.append(
            UnitComparison(
                label=label,
                comparison=comparison,
                high_cv=(
                    base_summary.cv > cv_threshold or comparison.candidate.cv > cv_threshold
                ),
            )
        )

    report.candidates.sort(key=lambda c: c.ratio)
    return report


def merge_results(results: list[BenchResult]) -> BenchResult:
    """Merge runs from several benchmark results into one result.

    Labels are qualified as ``prefix:label`` when more than one result
    is given.  The prefix is the result's title; if titles repeat (the
    same profile run before and after a change) it is the bench id, and
    if those repeat too (the same run passed twice) it is ``title#n``.
    """
    if not results:
        raise ValueError("Nothing to merge.")
    if len(results) == 1:
        return results[0]

    prefixes = _run_prefixes(results)
    merged = BenchResult(
        meta=BenchMeta(
            bench_id="merged",
            name=" vs ".join(prefixes),
            config=dict(results[0].meta.config),
            state="completed",
        )
    )
    for prefix, result in zip(prefixes, results):
        for label, run in result.runs.items():
            qualified = f"{prefix}:{label}"
            merged.runs[qualified] = BenchmarkRun(
                label=qualified,
                requested_trials=run.requested_trials,
                trials=run.trials,
            )
            merged.meta.units[qualified] = result.meta.units.get(label, "")
    return merged


def _run_prefixes(results: list[BenchResult]) -> list[str]:
    """One distinct label prefix per result, in order."""
    for candidates in (
        [r.title for r in results],
        [r.meta.bench_id for r in results],
    ):
        if len(set(candidates)) == len(candidates):
            return candidates
    return [f"{r.title}#{i}" for i, r in enumerate(results, 1)]
