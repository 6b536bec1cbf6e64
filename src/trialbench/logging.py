"""Logging for trialbench.

Console output goes to stderr so that report and export text written to
stdout can be piped without log lines mixed in.  A log file, when
requested, captures everything at DEBUG, including the per-phase
timings and configuration warnings the console hides in quiet mode.

Nothing is logged from inside the measurement loop; see
:mod:`trialbench.bench.runner`.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT = "trialbench"

_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"
_FILE_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s: %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def console_level(*, verbose: bool = False, quiet: bool = False) -> int:
    """Console level for the CLI flags; ``--verbose`` beats ``--quiet``."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Attach console (and optionally file) handlers to the ``trialbench`` logger.

    Calling it again replaces the previous handlers, closing any open
    log file.  The parent directory of *log_file* is created if needed.
    """
    logger = logging.getLogger(ROOT)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level(verbose=verbose, quiet=quiet))
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        logger.addHandler(fh)
        logger.debug("Logging to %s", log_file)

    return logger


def get_logger(name: str) -> logging.Logger:
    """``trialbench.<name>``; records propagate to the handlers set up above."""
    return logging.getLogger(f"{ROOT}.{name}")
