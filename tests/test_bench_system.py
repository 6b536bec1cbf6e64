"""Tests for trialbench.bench.system — machine characterization."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from trialbench.bench.system import (
    SystemProfile,
    _cpu_model_linux,
    capture_system_profile,
    format_system_profile,
)


class TestCaptureSystemProfile(unittest.TestCase):
    def test_capture_populates_interpreter(self) -> None:
        profile = capture_system_profile()
        self.assertTrue(profile.python_version)
        self.assertTrue(profile.python_implementation)
        self.assertTrue(profile.os_name)
        self.assertGreaterEqual(profile.cpu_cores_logical, 1)
        self.assertTrue(profile.timestamp)

    def test_capture_survives_failing_lookup(self) -> None:
        with patch("trialbench.bench.system.os.getloadavg", side_effect=OSError):
            profile = capture_system_profile()
        self.assertEqual(profile.load_avg_1m, 0.0)


class TestCpuModel(unittest.TestCase):
    def test_linux_cpuinfo(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cpuinfo = Path(tmp) / "cpuinfo"
            cpuinfo.write_text(
                "processor\t: 0\nvendor_id\t: GenuineIntel\n"
                "model name\t: Intel(R) Xeon(R) Test CPU @ 2.00GHz\n"
            )
            self.assertEqual(_cpu_model_linux(cpuinfo), "Intel(R) Xeon(R) Test CPU @ 2.00GHz")

    def test_linux_missing_file(self) -> None:
        with patch("trialbench.bench.system.platform.processor", return_value=""):
            self.assertEqual(_cpu_model_linux(Path("/nonexistent/cpuinfo")), "unknown")


class TestSystemProfileSerialization(unittest.TestCase):
    def test_roundtrip(self) -> None:
        profile = SystemProfile(cpu_model="X", cpu_cores_logical=4, hostname="h")
        self.assertEqual(SystemProfile.from_dict(json.loads(profile.to_json())), profile)

    def test_from_dict_ignores_unknown(self) -> None:
        profile = SystemProfile.from_dict({"cpu_model": "X", "gpu": "none"})
        self.assertEqual(profile.cpu_model, "X")


class TestFormatSystemProfile(unittest.TestCase):
    def test_format(self) -> None:
        text = format_system_profile(
            SystemProfile(
                cpu_model="Test CPU",
                cpu_cores_logical=8,
                os_name="Linux",
                os_release="6.0",
                python_implementation="CPython",
                python_version="3.12.0",
                hostname="box",
            )
        )
        self.assertTrue(text.startswith("System"))
        self.assertIn("Test CPU (8 logical cores", text)
        self.assertIn("CPython 3.12.0", text)
        self.assertIn("Host:    box", text)


if __name__ == "__main__":
    unittest.main()
