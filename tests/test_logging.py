"""Tests for trialbench.logging."""

from __future__ import annotations

import logging
import sys
import tempfile
import unittest
from pathlib import Path

from trialbench.logging import console_level, get_logger, setup_logging


class TestSetupLogging(unittest.TestCase):
    def tearDown(self) -> None:
        logger = logging.getLogger("trialbench")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def _console_level(self, logger: logging.Logger) -> int:
        console = [
            h
            for h in logger.handlers
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(len(console), 1)
        return console[0].level

    def test_default_level(self) -> None:
        logger = setup_logging()
        self.assertEqual(logger.name, "trialbench")
        self.assertEqual(self._console_level(logger), logging.INFO)

    def test_verbose_wins_over_quiet(self) -> None:
        self.assertEqual(self._console_level(setup_logging(quiet=True)), logging.WARNING)
        self.assertEqual(
            self._console_level(setup_logging(verbose=True, quiet=True)), logging.DEBUG
        )

    def test_reconfigure_does_not_stack_handlers(self) -> None:
        setup_logging()
        logger = setup_logging()
        self.assertEqual(len(logger.handlers), 1)

    def test_log_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bench.log"
            logger = setup_logging(quiet=True, log_file=path)
            get_logger("runner").debug("hello from the runner")
            for handler in logger.handlers:
                handler.flush()
            self.assertIn("hello from the runner", path.read_text())

    def test_log_file_parent_created(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "logs" / "nested" / "bench.log"
            setup_logging(log_file=path)
            self.assertTrue(path.exists())

    def test_console_writes_to_stderr(self) -> None:
        logger = setup_logging()
        self.assertIs(logger.handlers[0].stream, sys.stderr)  # type: ignore[attr-defined]

    def test_console_level(self) -> None:
        self.assertEqual(console_level(), logging.INFO)
        self.assertEqual(console_level(quiet=True), logging.WARNING)
        self.assertEqual(console_level(verbose=True, quiet=True), logging.DEBUG)

    def test_get_logger_is_child(self) -> None:
        self.assertEqual(get_logger("runner").name, "trialbench.runner")


if __name__ == "__main__":
    unittest.main()
