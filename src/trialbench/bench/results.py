"""Benchmark result data structures and serialization.

Hierarchy::

    BenchResult (one benchmark execution)
      → meta: BenchMeta (config, units, system, clock, timestamps)
      → runs: dict[label, BenchmarkRun]
        → trials: list[Trial]  (execution order, warm-up included)
        → summary(): Summary | None  (measured successful trials)

Files produced::

    bench_meta.json       — BenchMeta
    bench_results.jsonl   — one BenchmarkRun per line
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from trialbench.bench.stats import Summary, detect_outliers, summarize
from trialbench.bench.system import SystemProfile
from trialbench.bench.timing import ClockInfo, Trial

log = logging.getLogger("trialbench")


class EmptyDistributionError(LookupError):
    """A unit has no successful trials where a distribution is required."""


# ---------------------------------------------------------------------------
# Per-unit run
# ---------------------------------------------------------------------------


@dataclass
class BenchmarkRun:
    """All trials of one named unit of work."""

    label: str
    requested_trials: int
    trials: list[Trial] = field(default_factory=list)

    @property
    def measured_trials(self) -> list[Trial]:
        """Non-warm-up trials, in execution order."""
        return [t for t in self.trials if not t.warmup]

    @property
    def durations_ns(self) -> list[int]:
        """Durations of successful measured trials, in execution order."""
        return [t.duration_ns for t in self.trials if not t.warmup and not t.failed]

    @property
    def all_durations_ns(self) -> list[int]:
        """Durations of every measured trial, failed ones included."""
        return [t.duration_ns for t in self.measured_trials]

    @property
    def neval(self) -> int:
        """Number of successful measured trials."""
        return sum(1 for t in self.trials if not t.warmup and not t.failed)

    @property
    def n_failures(self) -> int:
        return sum(1 for t in self.trials if not t.warmup and t.failed)

    @property
    def errors(self) -> dict[str, int]:
        """Distinct failure descriptions with their counts, most common first."""
        counts = Counter(t.error for t in self.trials if not t.warmup and t.failed)
        return dict(counts.most_common())

    def summary(self) -> Summary | None:
        """Summary of successful measured durations, or None if there are none."""
        return summarize(self.durations_ns)

    def require_summary(self) -> Summary:
        """Like :meth:`summary`, but raise if there is nothing to summarize.

        Raises:
            EmptyDistributionError: If every measured trial failed.
        """
        summary = self.summary()
        if summary is None:
            raise EmptyDistributionError(
                f"Unit '{self.label}' has no successful trials "
                f"({self.n_failures} failed of {self.requested_trials})"
            )
        return summary

    def outliers(self) -> list[bool]:
        """IQR outlier flags aligned with :attr:`durations_ns`."""
        return detect_outliers(self.durations_ns)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict.

        The summary is included for readers of the raw file but is
        ignored on load.
        """
        d: dict[str, Any] = {
            "label": self.label,
            "requested_trials": self.requested_trials,
            "trials": [t.to_dict() for t in self.trials],
        }
        summary = self.summary()
        if summary is not None:
            d["summary_ns"] = summary.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchmarkRun:
        """Deserialize from a dict.  Summaries are recomputed, not read."""
        label = data["label"]
        return cls(
            label=label,
            requested_trials=data.get("requested_trials", 0),
            trials=[Trial.from_dict(t, label) for t in data.get("trials", [])],
        )

    def to_jsonl_line(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_jsonl_line(cls, line: str) -> BenchmarkRun:
        return cls.from_dict(json.loads(line))


# ---------------------------------------------------------------------------
# Run-level metadata
# ---------------------------------------------------------------------------


@dataclass
class BenchMeta:
    """Metadata for a complete benchmark run."""

    bench_id: str
    name: str = ""
    description: str = ""
    config: dict[str, Any] = field(default_factory=dict)
    units: dict[str, str] = field(default_factory=dict)  # label -> description
    system: SystemProfile = field(default_factory=SystemProfile)
    clock: ClockInfo = field(default_factory=ClockInfo)
    cli_args: list[str] = field(default_factory=list)
    start_time: str = ""
    end_time: str = ""
    state: str = "idle"  # idle, running, completed
    total_trials: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "bench_id": self.bench_id,
            "name": self.name,
            "description": self.description,
            "config": self.config,
            "units": self.units,
            "system": self.system.to_dict(),
            "clock": self.clock.to_dict(),
            "cli_args": self.cli_args,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "state": self.state,
            "total_trials": self.total_trials,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchMeta:
        return cls(
            bench_id=data["bench_id"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            config=data.get("config", {}),
            units=data.get("units", {}),
            system=SystemProfile.from_dict(data.get("system", {})),
            clock=ClockInfo.from_dict(data.get("clock", {})),
            cli_args=data.get("cli_args", []),
            start_time=data.get("start_time", ""),
            end_time=data.get("end_time", ""),
            state=data.get("state", "completed"),
            total_trials=data.get("total_trials", 0),
        )


# ---------------------------------------------------------------------------
# Comparison set
# ---------------------------------------------------------------------------


@dataclass
class BenchResult:
    """Every unit's run from one benchmark, keyed by label in input order."""

    meta: BenchMeta
    runs: dict[str, BenchmarkRun] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return self.meta.name or self.meta.bench_id

    @property
    def labels(self) -> list[str]:
        return list(self.runs)

    def summaries(self) -> dict[str, Summary | None]:
        """Label → summary (None for units without successful trials)."""
        return {label: run.summary() for label, run in self.runs.items()}

    def by_median(self) -> list[BenchmarkRun]:
        """Runs sorted by ascending median; runs without data go last."""
        summaries = self.summaries()

        def _key(run: BenchmarkRun) -> tuple[int, float]:
            s = summaries[run.label]
            return (1, 0.0) if s is None else (0, s.median)

        return sorted(self.runs.values(), key=_key)

    def raw_durations(self) -> dict[str, list[int]]:
        """Label → successful measured durations (ns), for plotting."""
        return {label: run.durations_ns for label, run in self.runs.items()}

    @property
    def n_failures(self) -> int:
        return sum(run.n_failures for run in self.runs.values())


# ---------------------------------------------------------------------------
# I/O functions
# ---------------------------------------------------------------------------


def save_bench_run(output_dir: Path, result: BenchResult) -> None:
    """Write ``bench_meta.json`` and ``bench_results.jsonl`` to *output_dir*."""
    output_dir.mkdir(parents=True, exist_ok=True)

    meta_path = output_dir / "bench_meta.json"
    meta_path.write_text(json.dumps(result.meta.to_dict(), indent=2) + "\n")
    log.info("Wrote %s", meta_path)

    results_path = output_dir / "bench_results.jsonl"
    with open(results_path, "w") as f:
        for run in result.runs.values():
            f.write(run.to_jsonl_line() + "\n")
    log.info("Wrote %d unit results to %s", len(result.runs), results_path)


def load_bench_run(run_dir: Path) -> BenchResult:
    """Load a benchmark run from disk.

    Raises:
        FileNotFoundError: If ``bench_meta.json`` is missing.
    """
    meta_path = run_dir / "bench_meta.json"
    if not meta_path.exists():
        raise FileNotFoundError(f"No bench_meta.json in {run_dir}")

    meta = BenchMeta.from_dict(json.loads(meta_path.read_text()))
    result = BenchResult(meta=meta)

    results_path = run_dir / "bench_results.jsonl"
    if results_path.exists():
        for line in results_path.read_text().splitlines():
            line = line.strip()
            if line:
                run = BenchmarkRun.from_jsonl_line(line)
                result.runs[run.label] = run

    return result
