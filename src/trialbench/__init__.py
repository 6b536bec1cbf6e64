"""trialbench: repeated-trial microbenchmarks for Python callables.

Runs several candidate implementations of the same unit of work in a
randomly interleaved schedule and summarizes the timing distribution of
each one.
"""

from __future__ import annotations

__version__ = "0.3.0"
