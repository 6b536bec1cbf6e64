"""Benchmarking subsystem for trialbench.

Times named units of work over many randomly interleaved trials and
summarizes, compares, stores and exports the resulting distributions.
"""

from __future__ import annotations

from trialbench.bench.runner import run_benchmark

__all__ = ["run_benchmark"]
