"""Statistical functions for benchmark summaries and comparisons.

Provides the five-number summary used in reports, IQR outlier
detection, and the pairwise comparison measures (ratio of medians,
bootstrap confidence interval, Cohen's d effect size).  Pure Python on
top of the :mod:`statistics` module.

References:
    Quantiles: Hyndman, R. J. & Fan, Y. (1996). "Sample quantiles in
        statistical packages." The American Statistician 50(4), type 7.
    Cohen's d: Cohen, J. (1988). "Statistical Power Analysis for
        the Behavioral Sciences." 2nd ed.
    Bootstrap CI: Efron, B. & Tibshirani, R. J. (1993). "An
        Introduction to the Bootstrap."
"""

from __future__ import annotations

import math
import random
import statistics
from dataclasses import dataclass
from typing import Sequence


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Summary:
    """Distribution summary of one benchmark run's durations.

    All statistics are in the unit of the input values (nanoseconds
    for trial durations).  Instances are immutable; recompute with
    :func:`summarize` instead of editing them.
    """

    n: int
    min: float
    lq: float  # 25th percentile
    mean: float
    median: float
    uq: float  # 75th percentile
    max: float
    stdev: float
    cv: float  # coefficient of variation (stdev/mean)

    @property
    def iqr(self) -> float:
        return self.uq - self.lq

    def five_numbers(self) -> tuple[float, float, float, float, float]:
        """(min, lq, median, uq, max)."""
        return (self.min, self.lq, self.median, self.uq, self.max)

    def scaled(self, divisor: float) -> Summary:
        """Return a copy with every location statistic divided by *divisor*.

        Used for unit conversion and relative reports; ``n`` and ``cv``
        are scale-free and carried over unchanged.
        """
        return Summary(
            n=self.n,
            min=self.min / divisor,
            lq=self.lq / divisor,
            mean=self.mean / divisor,
            median=self.median / divisor,
            uq=self.uq / divisor,
            max=self.max / divisor,
            stdev=self.stdev / divisor,
            cv=self.cv,
        )

    def to_dict(self) -> dict[str, float | int]:
        """Serialize to a dict with rounded values."""
        return {
            "n": self.n,
            "min": round(self.min, 3),
            "lq": round(self.lq, 3),
            "mean": round(self.mean, 3),
            "median": round(self.median, 3),
            "uq": round(self.uq, 3),
            "max": round(self.max, 3),
            "stdev": round(self.stdev, 3),
            "cv": round(self.cv, 6),
        }


def summarize(values: Sequence[float]) -> Summary | None:
    """Compute the summary of a sample.

    Returns None for an empty sample: there is no distribution to
    describe, and fabricated zeros or NaNs would leak into reports and
    sort orders.  For a single value, stdev and CV are 0.
    """
    if not values:
        return None

    ordered = sorted(values)
    n = len(ordered)
    mean = statistics.fmean(ordered)
    if n >= 2:
        stdev = statistics.stdev(ordered)
        if mean != 0:
            cv = stdev / mean
        else:
            cv = float("inf") if stdev else 0.0
    else:
        stdev = 0.0
        cv = 0.0

    return Summary(
        n=n,
        min=float(ordered[0]),
        lq=quantile(ordered, 0.25),
        mean=mean,
        median=quantile(ordered, 0.5),
        uq=quantile(ordered, 0.75),
        max=float(ordered[-1]),
        stdev=stdev,
        cv=cv,
    )


def quantile(sorted_values: Sequence[float], p: float) -> float:
    """The p-th quantile of an ascending sample, linearly interpolated.

    Position ``(n - 1) * p`` between order statistics (type 7), so the
    result is monotone in *p* and bounded by the sample extremes.
    """
    n = len(sorted_values)
    if n == 0:
        return float("nan")
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"quantile probability must be in [0, 1], got {p}")

    pos = (n - 1) * p
    lo = math.floor(pos)
    hi = min(lo + 1, n - 1)
    frac = pos - lo
    if frac == 0:
        return float(sorted_values[lo])
    return sorted_values[lo] + (sorted_values[hi] - sorted_values[lo]) * frac


# ---------------------------------------------------------------------------
# Outlier detection
# ---------------------------------------------------------------------------


def detect_outliers(
    values: Sequence[float],
    *,
    factor: float = 1.5,
) -> list[bool]:
    """Flag values outside ``[lq - factor*IQR, uq + factor*IQR]``.

    Samples with fewer than 4 values have no meaningful quartiles and
    are never flagged.  The returned list is aligned with *values*.
    """
    if len(values) < 4:
        return [False] * len(values)

    ordered = sorted(values)
    lq = quantile(ordered, 0.25)
    uq = quantile(ordered, 0.75)
    spread = uq - lq
    low = lq - factor * spread
    high = uq + factor * spread
    return [v < low or v > high for v in values]


# ---------------------------------------------------------------------------
# Pairwise comparison
# ---------------------------------------------------------------------------


def relative_to(values: Sequence[float], baseline: Sequence[float]) -> float:
    """Ratio of the median of *values* to the median of *baseline*.

    1.0 means equally fast; 2.0 means *values* take twice as long.
    NaN if either sample is empty; inf if the baseline median is 0.
    """
    if not values or not baseline:
        return float("nan")
    base = statistics.median(baseline)
    if base == 0:
        return float("inf") if statistics.median(values) > 0 else 1.0
    return statistics.median(values) / base


@dataclass
class EffectSize:
    """Cohen's d with its conventional classification."""

    d: float
    classification: str  # negligible, small, medium, large, unknown

    @staticmethod
    def classify(d: float) -> str:
        """|d| < 0.2 negligible, < 0.5 small, < 0.8 medium, else large."""
        magnitude = abs(d)
        if magnitude < 0.2:
            return "negligible"
        if magnitude < 0.5:
            return "small"
        if magnitude < 0.8:
            return "medium"
        return "large"


def cohens_d(baseline: Sequence[float], candidate: Sequence[float]) -> EffectSize:
    """Effect size of *candidate* against *baseline* (pooled stdev).

    Positive when the candidate is slower.  Needs two values per side.
    """
    na, nb = len(baseline), len(candidate)
    if na < 2 or nb < 2:
        return EffectSize(d=float("nan"), classification="unknown")

    mean_a = statistics.fmean(baseline)
    mean_b = statistics.fmean(candidate)
    var_a = statistics.variance(baseline)
    var_b = statistics.variance(candidate)
    pooled = ((na - 1) * var_a + (nb - 1) * var_b) / (na + nb - 2)
    if pooled == 0:
        if mean_a == mean_b:
            return EffectSize(d=0.0, classification="negligible")
        return EffectSize(d=math.copysign(float("inf"), mean_b - mean_a), classification="large")

    d = (mean_b - mean_a) / math.sqrt(pooled)
    return EffectSize(d=d, classification=EffectSize.classify(d))


@dataclass
class BootstrapCI:
    """Percentile bootstrap interval for ``median(candidate) - median(baseline)``."""

    lower: float
    upper: float
    point_estimate: float
    confidence_level: float
    n_bootstrap: int

    def contains_zero(self) -> bool:
        return self.lower <= 0 <= self.upper


def bootstrap_ci(
    baseline: Sequence[float],
    candidate: Sequence[float],
    *,
    confidence: float = 0.95,
    n_bootstrap: int = 2000,
    seed: int | None = None,
) -> BootstrapCI:
    """Bootstrap the difference of medians between two samples.

    Each resample draws both samples with replacement; the interval is
    read from the sorted resampled differences at the ``alpha / 2``
    and ``1 - alpha / 2`` positions.
    """
    if not baseline or not candidate or n_bootstrap < 1:
        return BootstrapCI(
            lower=float("nan"),
            upper=float("nan"),
            point_estimate=float("nan"),
            confidence_level=confidence,
            n_bootstrap=0,
        )

    rng = random.Random(seed)
    base = list(baseline)
    cand = list(candidate)
    point = statistics.median(cand) - statistics.median(base)

    diffs = sorted(
        statistics.median(rng.choices(cand, k=len(cand)))
        - statistics.median(rng.choices(base, k=len(base)))
        for _ in range(n_bootstrap)
    )

    alpha = 1.0 - confidence
    lo_idx = min(max(int(math.floor(alpha / 2 * n_bootstrap)), 0), n_bootstrap - 1)
    hi_idx = min(max(int(math.ceil((1 - alpha / 2) * n_bootstrap)) - 1, 0), n_bootstrap - 1)

    return BootstrapCI(
        lower=diffs[lo_idx],
        upper=diffs[hi_idx],
        point_estimate=point,
        confidence_level=confidence,
        n_bootstrap=n_bootstrap,
    )


@dataclass
class SampleComparison:
    """Everything known about one candidate against the baseline."""

    baseline: Summary
    candidate: Summary
    ratio: float  # candidate median / baseline median
    effect_size: EffectSize
    ci: BootstrapCI

    @property
    def diff_pct(self) -> float:
        """Median difference as a percentage of the baseline median."""
        return (self.ratio - 1.0) * 100

    @property
    def significant(self) -> bool:
        """True when the CI excludes zero and the effect is not negligible."""
        return not self.ci.contains_zero() and self.effect_size.classification not in (
            "negligible",
            "unknown",
        )


def compare_samples(
    baseline: Sequence[float],
    candidate: Sequence[float],
    *,
    confidence: float = 0.95,
    n_bootstrap: int = 2000,
    seed: int | None = None,
) -> SampleComparison:
    """Compare two non-empty samples.

    Raises:
        ValueError: If either sample is empty.
    """
    base_summary = summarize(baseline)
    cand_summary = summarize(candidate)
    if base_summary is None or cand_summary is None:
        raise ValueError("compare_samples needs two non-empty samples")

    return SampleComparison(
        baseline=base_summary,
        candidate=cand_summary,
        ratio=relative_to(candidate, baseline),
        effect_size=cohens_d(baseline, candidate),
        ci=bootstrap_ci(
            baseline,
            candidate,
            confidence=confidence,
            n_bootstrap=n_bootstrap,
            seed=seed,
        ),
    )
