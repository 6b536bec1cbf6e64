"""Shared test fixtures for benchmark tests."""

from __future__ import annotations

from trialbench.bench.results import BenchMeta, BenchmarkRun, BenchResult
from trialbench.bench.system import SystemProfile
from trialbench.bench.timing import ClockInfo, Trial


def make_trials(
    label: str,
    durations_ns: list[int],
    *,
    warmup_count: int = 0,
    failed: set[int] | None = None,
    error: str = "RuntimeError: boom",
) -> list[Trial]:
    """Create back-to-back Trials with the given durations.

    The first *warmup_count* trials are warm-up; positions listed in
    *failed* (0-based) are failures.
    """
    failed = failed or set()
    trials = []
    start = 1_000
    for i, duration in enumerate(durations_ns):
        trials.append(
            Trial(
                index=i + 1,
                label=label,
                start_ns=start,
                end_ns=start + duration,
                failed=i in failed,
                error=error if i in failed else "",
                warmup=i < warmup_count,
            )
        )
        start += duration + 10
    return trials


def make_run(
    label: str,
    durations_ns: list[int],
    *,
    warmup_count: int = 0,
    failed: set[int] | None = None,
) -> BenchmarkRun:
    """Create a BenchmarkRun whose requested trial count excludes warm-up."""
    return BenchmarkRun(
        label=label,
        requested_trials=len(durations_ns) - warmup_count,
        trials=make_trials(label, durations_ns, warmup_count=warmup_count, failed=failed),
    )


def make_meta(
    *,
    name: str = "Test Benchmark",
    units: list[str] | None = None,
    trials: int = 5,
) -> BenchMeta:
    """Create a minimal completed BenchMeta."""
    labels = units or ["baseline"]
    return BenchMeta(
        bench_id="bench_test_001",
        name=name,
        config={
            "trials": trials,
            "warmup": 0,
            "order": "random",
            "seed": 1,
            "time_unit": None,
            "check": None,
        },
        units={label: f"tests:{label}" for label in labels},
        system=SystemProfile(
            cpu_model="Test CPU",
            cpu_cores_logical=8,
            cpu_architecture="x86_64",
            os_name="Linux",
            os_release="6.0",
            python_version="3.12.0",
            python_implementation="CPython",
            hostname="testhost",
        ),
        clock=ClockInfo(implementation="clock_gettime(CLOCK_MONOTONIC)", resolution_ns=1.0),
        start_time="2026-03-01T10:00:00+0000",
        end_time="2026-03-01T10:00:05+0000",
        state="completed",
        total_trials=trials * len(labels),
    )


def make_result(
    runs: dict[str, list[int]],
    *,
    name: str = "Test Benchmark",
    failed: dict[str, set[int]] | None = None,
) -> BenchResult:
    """Create a BenchResult from label -> measured durations (ns)."""
    failed = failed or {}
    trials = max((len(d) for d in runs.values()), default=0)
    result = BenchResult(meta=make_meta(name=name, units=list(runs), trials=trials))
    for label, durations in runs.items():
        result.runs[label] = make_run(label, durations, failed=failed.get(label))
    return result
