"""Benchmark execution engine.

Orchestrates:
1. Configuration validation (nothing runs on an invalid config)
2. Optional result check (every unit must return equivalent values)
3. System and clock profiling
4. Warm-up calls
5. Measured trials
6. Result assembly and optional persistence

Execution orders:
- Random (default): the trials of all units are shuffled together, so
  slow drifts in machine state (frequency scaling, thermal throttling,
  cache and allocator warm-up) spread evenly over every unit instead of
  favouring whichever ran first.
- In order: round-robin, one trial of each unit per round.
- Block: all trials of the first unit, then the next, and so on.

The measurement loop does nothing but read the clock, call the unit
and store two integers.  Trial objects, logging and progress reporting
all happen outside it.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from trialbench.bench import timing as _timing
from trialbench.bench.config import (
    BenchConfig,
    CheckError,
    CheckSpec,
    Unit,
    UnitsInput,
    normalize_units,
    raise_for_errors,
    resolve_check,
    validate_config,
)
from trialbench.bench.results import BenchMeta, BenchmarkRun, BenchResult, save_bench_run
from trialbench.bench.system import capture_system_profile
from trialbench.bench.timing import Trial, clock_info, describe_error, time_call
from trialbench.logging import get_logger

log = get_logger("runner")


# ---------------------------------------------------------------------------
# Schedule
# ---------------------------------------------------------------------------


def build_schedule(
    labels: Sequence[str],
    trials: int,
    order: str = "random",
    rng: random.Random | None = None,
) -> list[str]:
    """Build the execution order for *trials* runs of every label.

    The schedule always has ``len(labels) * trials`` entries and every
    label appears exactly *trials* times; *order* only decides the
    arrangement.

    Raises:
        ValueError: If *order* is unknown.
    """
    if order == "block":
        return [label for label in labels for _ in range(trials)]

    schedule = [label for _ in range(trials) for label in labels]
    if order == "inorder":
        return schedule
    if order == "random":
        (rng or random.Random()).shuffle(schedule)
        return schedule
    raise ValueError(f"Unknown order: {order!r}")


# ---------------------------------------------------------------------------
# Progress callback
# ---------------------------------------------------------------------------


@dataclass
class BenchProgress:
    """Progress info passed to the callback at phase boundaries."""

    phase: str  # "check", "warmup", "measure", "done"
    units: int
    trials: int  # scheduled trials in this phase
    elapsed_s: float = 0.0
    failures: int = 0
    detail: str = ""


ProgressCallback = Optional[Callable[[BenchProgress], None]]


# ---------------------------------------------------------------------------
# BenchRunner
# ---------------------------------------------------------------------------


class BenchRunner:
    """Executes one benchmark according to a BenchConfig.

    A runner moves through ``idle → running → completed`` exactly once.

    Usage::

        config = BenchConfig(trials=200, seed=1)
        runner = BenchRunner(config, {"sqrt": f, "pow": g})
        result = runner.run()
    """

    def __init__(
        self,
        config: BenchConfig,
        units: UnitsInput,
        progress_callback: ProgressCallback = None,
    ) -> None:
        self.config = config
        self.units: list[Unit] = normalize_units(units)
        self.progress: Callable[[BenchProgress], None] = (
            progress_callback or self._default_progress
        )
        self.state = "idle"
        self._result: BenchResult | None = None

    @property
    def result(self) -> BenchResult | None:
        """The completed result, or None before :meth:`run` finishes."""
        return self._result

    def run(self, *, save: bool = False) -> BenchResult:
        """Execute the full benchmark.

        Args:
            save: Write the result to ``config.output_dir`` when done.

        Returns:
            BenchResult with one BenchmarkRun per unit, in unit order.

        Raises:
            ConfigurationError: If the configuration is invalid.  No unit
                has been called when this is raised.
            CheckError: If the result check fails (before any timing).
            RuntimeError: If this runner already ran.
        """
        if self.state != "idle":
            raise RuntimeError(f"BenchRunner is {self.state}; create a new runner to run again.")

        # Phase 1: Validate configuration.
        raise_for_errors(validate_config(self.config, self.units))

        config = self.config
        labels = [u.label for u in self.units]
        fns = {u.label: u.fn for u in self.units}

        # Phase 2: Result check, before any timing.
        check = resolve_check(config.check)
        if check is not None:
            self.progress(BenchProgress(phase="check", units=len(labels), trials=len(labels)))
            self._check_results(check, config.check)

        self.state = "running"

        # Phase 3: System and clock profiling.
        log.debug("Capturing system profile...")
        meta = BenchMeta(
            bench_id=config.bench_id,
            name=config.name,
            description=config.description,
            config=config.to_dict(),
            units={u.label: u.description for u in self.units},
            system=capture_system_profile(),
            clock=clock_info(),
            cli_args=config.cli_args,
            start_time=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            state="running",
            total_trials=len(labels) * config.trials,
        )
        log.debug(
            "Clock: %s, resolution %.1f ns, read overhead %d ns",
            meta.clock.implementation,
            meta.clock.resolution_ns,
            meta.clock.overhead_ns,
        )
        result = BenchResult(
            meta=meta,
            runs={
                label: BenchmarkRun(label=label, requested_trials=config.trials)
                for label in labels
            },
        )
        rng = random.Random(config.seed)

        # Phase 4: Warm-up.
        index = 1
        if config.warmup:
            schedule = build_schedule(labels, config.warmup, config.order, rng)
            self.progress(BenchProgress(phase="warmup", units=len(labels), trials=len(schedule)))
            for trial in self._execute(schedule, fns, first_index=index, warmup=True):
                result.runs[trial.label].trials.append(trial)
            index += len(schedule)

        # Phase 5: Measured trials.
        schedule = build_schedule(labels, config.trials, config.order, rng)
        self.progress(BenchProgress(phase="measure", units=len(labels), trials=len(schedule)))
        started = time.monotonic()
        for trial in self._execute(schedule, fns, first_index=index, warmup=False):
            result.runs[trial.label].trials.append(trial)
        elapsed = time.monotonic() - started

        # Phase 6: Finalize.
        self.state = "completed"
        meta.state = "completed"
        meta.end_time = time.strftime("%Y-%m-%dT%H:%M:%S%z")
        self._report_failures(result)
        self.progress(
            BenchProgress(
                phase="done",
                units=len(labels),
                trials=len(schedule),
                elapsed_s=elapsed,
                failures=result.n_failures,
            )
        )

        if save:
            save_bench_run(config.output_dir, result)
            log.info("Benchmark saved: %s", config.output_dir)

        self._result = result
        return result

    def _execute(
        self,
        schedule: list[str],
        fns: dict[str, Callable[[], Any]],
        *,
        first_index: int,
        warmup: bool,
    ) -> list[Trial]:
        """Run every scheduled call and return its Trials in order.

        Start/end timestamps go into preallocated lists; exceptions are
        kept aside and turned into failed Trials after the loop.
        """
        n = len(schedule)
        calls = [fns[label] for label in schedule]
        starts = [0] * n
        ends = [0] * n
        failures: dict[int, BaseException] = {}
        clock = _timing.clock_ns

        for i, fn in enumerate(calls):
            start = clock()
            try:
                fn()
            except Exception as exc:  # noqa: BLE001
                ends[i] = clock()
                failures[i] = exc
            else:
                ends[i] = clock()
            starts[i] = start

        trials: list[Trial] = []
        for i, label in enumerate(schedule):
            exc = failures.get(i)
            trials.append(
                Trial(
                    index=first_index + i,
                    label=label,
                    start_ns=starts[i],
                    end_ns=ends[i],
                    failed=exc is not None,
                    error=describe_error(exc) if exc is not None else "",
                    warmup=warmup,
                )
            )
        return trials

    def _check_results(
        self,
        check: Callable[[list[Any]], bool],
        spec: CheckSpec,
    ) -> None:
        """Call each unit once and verify the return values agree."""
        values: list[Any] = []
        for unit in self.units:
            _, _, value, exc = time_call(unit.fn)
            if exc is not None:
                raise CheckError(
                    f"Unit '{unit.label}' raised during the result check: {describe_error(exc)}"
                ) from exc
            values.append(value)

        try:
            ok = check(values)
        except Exception as exc:
            raise CheckError(f"Result check raised: {describe_error(exc)}") from exc
        if not ok:
            shown = ", ".join(
                f"{u.label}={_short_repr(v)}" for u, v in zip(self.units, values)
            )
            name = spec if isinstance(spec, str) else "custom"
            raise CheckError(f"Units failed the '{name}' result check: {shown}")
        log.debug("Result check passed for %d units", len(values))

    @staticmethod
    def _report_failures(result: BenchResult) -> None:
        """Log one line per unit with failed trials."""
        for run in result.runs.values():
            if not run.n_failures:
                continue
            top_error = next(iter(run.errors))
            if run.neval == 0:
                log.warning(
                    "Unit '%s': all %d trials failed (%s); no summary available",
                    run.label,
                    run.n_failures,
                    top_error,
                )
            else:
                log.warning(
                    "Unit '%s': %d of %d trials failed (%s)",
                    run.label,
                    run.n_failures,
                    run.requested_trials,
                    top_error,
                )

    @staticmethod
    def _default_progress(progress: BenchProgress) -> None:
        """Default progress callback: log phase transitions."""
        if progress.phase == "check":
            log.info("Checking results of %d units...", progress.units)
        elif progress.phase == "warmup":
            log.info("Warming up: %d calls...", progress.trials)
        elif progress.phase == "measure":
            log.info(
                "Measuring: %d units x %d trials...",
                progress.units,
                progress.trials // max(progress.units, 1),
            )
        elif progress.phase == "done":
            log.info(
                "Done: %d trials in %.2fs (%d failed)",
                progress.trials,
                progress.elapsed_s,
                progress.failures,
            )


def _short_repr(value: Any, limit: int = 40) -> str:
    text = repr(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."


# ---------------------------------------------------------------------------
# Convenience entry point
# ---------------------------------------------------------------------------


def run_benchmark(
    units: UnitsInput,
    trials: int = 100,
    *,
    warmup: int = 2,
    order: str = "random",
    seed: int | None = None,
    check: CheckSpec = None,
    time_unit: str | None = None,
    name: str = "",
    save_to: Path | None = None,
    progress_callback: ProgressCallback = None,
) -> BenchResult:
    """Benchmark *units* and return the result.

    *units* is a mapping of label to zero-argument callable, or a
    sequence of ``(label, callable)`` pairs.  When *save_to* is given,
    the run is written to ``save_to/<bench_id>``.

    Example::

        result = run_benchmark(
            {"sqrt": lambda: math.sqrt(x), "pow_half": lambda: x ** 0.5},
            trials=100,
        )
        print(format_report(result))
    """
    config = BenchConfig(
        name=name,
        trials=trials,
        warmup=warmup,
        order=order,
        seed=seed,
        check=check,
        time_unit=time_unit,
    )
    if save_to is not None:
        config.results_dir = Path(save_to)
    runner = BenchRunner(config, units, progress_callback=progress_callback)
    return runner.run(save=save_to is not None)
