"""Timing capture for benchmark trials.

Each trial is bracketed by two reads of ``time.perf_counter_ns``, the
highest-resolution monotonic clock Python exposes.  Nothing else
happens between the two reads except the call itself, so the measured
duration includes only the unit of work and the call overhead.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

# Bound once so the hot loop does a local lookup instead of an
# attribute lookup on the time module.
clock_ns: Callable[[], int] = time.perf_counter_ns


# ---------------------------------------------------------------------------
# Trial
# ---------------------------------------------------------------------------


@dataclass
class Trial:
    """One timed execution of a unit of work."""

    index: int  # 1-based position in the execution schedule
    label: str
    start_ns: int
    end_ns: int
    failed: bool = False
    error: str = ""  # "Type: message", see describe_error()
    warmup: bool = False

    @property
    def duration_ns(self) -> int:
        """Elapsed nanoseconds; never negative."""
        return max(self.end_ns - self.start_ns, 0)

    @property
    def duration_s(self) -> float:
        return self.duration_ns / 1e9

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict (sparse for ok trials)."""
        d: dict[str, Any] = {
            "index": self.index,
            "start_ns": self.start_ns,
            "end_ns": self.end_ns,
        }
        if self.failed:
            d["failed"] = True
            d["error"] = self.error
        if self.warmup:
            d["warmup"] = True
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any], label: str) -> Trial:
        """Deserialize from a dict produced by :meth:`to_dict`."""
        return cls(
            index=data["index"],
            label=label,
            start_ns=data["start_ns"],
            end_ns=data["end_ns"],
            failed=data.get("failed", False),
            error=data.get("error", ""),
            warmup=data.get("warmup", False),
        )


# ---------------------------------------------------------------------------
# Single-call timing
# ---------------------------------------------------------------------------


def time_call(
    fn: Callable[[], Any],
) -> tuple[int, int, Any, BaseException | None]:
    """Call *fn* once between two clock reads.

    Exceptions derived from :class:`Exception` are captured and
    returned instead of propagating; the end timestamp is then taken
    at the point the exception surfaced.  ``KeyboardInterrupt`` and
    ``SystemExit`` propagate.

    Returns:
        ``(start_ns, end_ns, return_value, exception)`` where exactly
        one of *return_value* and *exception* is meaningful.
    """
    start = clock_ns()
    try:
        value = fn()
    except Exception as exc:  # noqa: BLE001
        end = clock_ns()
        return start, end, None, exc
    end = clock_ns()
    return start, end, value, None


def describe_error(exc: BaseException) -> str:
    """Compact, stable description of a trial failure."""
    return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__


# ---------------------------------------------------------------------------
# Clock characterization
# ---------------------------------------------------------------------------


@dataclass
class ClockInfo:
    """Properties of the clock used for a benchmark run."""

    name: str = "perf_counter"
    implementation: str = ""
    resolution_ns: float = 0.0
    monotonic: bool = True
    overhead_ns: int = 0  # median cost of two back-to-back reads

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "implementation": self.implementation,
            "resolution_ns": self.resolution_ns,
            "monotonic": self.monotonic,
            "overhead_ns": self.overhead_ns,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClockInfo:
        """Deserialize from a dict, ignoring unknown fields."""
        known = {f.name for f in cls.__dataclass_fields__.values()}
        return cls(**{k: v for k, v in data.items() if k in known})


def clock_info(samples: int = 101) -> ClockInfo:
    """Describe the benchmark clock and estimate its read overhead.

    The overhead estimate is the median gap between two consecutive
    clock reads over *samples* attempts.  It is reported alongside
    results so sub-overhead durations can be recognized as noise.
    """
    info = time.get_clock_info("perf_counter")
    gaps = []
    for _ in range(max(samples, 1)):
        a = clock_ns()
        b = clock_ns()
        gaps.append(b - a)
    gaps.sort()
    return ClockInfo(
        implementation=info.implementation,
        resolution_ns=info.resolution * 1e9,
        monotonic=info.monotonic,
        overhead_ns=gaps[len(gaps) // 2],
    )
