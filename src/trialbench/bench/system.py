"""System characterization for benchmark reproducibility.

Captures the hardware, OS and interpreter a benchmark ran on so that
stored results can be put in context later.  Capture is best effort:
every lookup that fails leaves its field at the default instead of
raising.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import socket
import subprocess
import sys
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

log = logging.getLogger("trialbench")


# ---------------------------------------------------------------------------
# SystemProfile
# ---------------------------------------------------------------------------


@dataclass
class SystemProfile:
    """Characterization of the machine running a benchmark."""

    # CPU
    cpu_model: str = "unknown"
    cpu_cores_logical: int = 0
    cpu_architecture: str = ""

    # OS
    os_name: str = ""
    os_release: str = ""

    # Interpreter running the benchmark
    python_version: str = ""
    python_implementation: str = ""
    python_compiler: str = ""

    # State at capture time
    load_avg_1m: float = 0.0

    hostname: str = ""
    timestamp: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SystemProfile:
        """Deserialize from a dict, ignoring unknown fields."""
        known = {f.name for f in cls.__dataclass_fields__.values()}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------


def capture_system_profile() -> SystemProfile:
    """Capture a profile of the current machine and interpreter."""
    profile = SystemProfile(
        cpu_cores_logical=os.cpu_count() or 0,
        cpu_architecture=platform.machine(),
        os_name=platform.system(),
        os_release=platform.release(),
        python_version=platform.python_version(),
        python_implementation=platform.python_implementation(),
        python_compiler=platform.python_compiler(),
        hostname=socket.gethostname(),
        timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
    )
    profile.cpu_model = _cpu_model()

    try:
        profile.load_avg_1m = round(os.getloadavg()[0], 2)
    except (AttributeError, OSError):
        log.debug("Load average not available on %s", sys.platform)

    return profile


def _cpu_model() -> str:
    """Best-effort CPU model name."""
    if sys.platform.startswith("linux"):
        return _cpu_model_linux(Path("/proc/cpuinfo"))
    if sys.platform == "darwin":
        return _cpu_model_darwin()
    return platform.processor() or "unknown"


def _cpu_model_linux(cpuinfo: Path) -> str:
    """Read the first ``model name`` line of /proc/cpuinfo."""
    try:
        text = cpuinfo.read_text()
    except OSError:
        return platform.processor() or "unknown"
    for line in text.splitlines():
        # x86 uses "model name", some ARM kernels only expose "Model".
        if line.startswith(("model name", "Model")) and ":" in line:
            return line.split(":", 1)[1].strip()
    return platform.processor() or "unknown"


def _cpu_model_darwin() -> str:
    try:
        proc = subprocess.run(
            ["sysctl", "-n", "machdep.cpu.brand_string"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return "unknown"
    return proc.stdout.strip() if proc.returncode == 0 and proc.stdout.strip() else "unknown"


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_system_profile(profile: SystemProfile) -> str:
    """Format a system profile as a short block of text."""
    lines = [
        "System",
        "─" * 6,
        f"  CPU:     {profile.cpu_model} ({profile.cpu_cores_logical} logical cores, "
        f"{profile.cpu_architecture or '?'})",
        f"  OS:      {profile.os_name} {profile.os_release}".rstrip(),
        f"  Python:  {profile.python_implementation} {profile.python_version}"
        + (f" [{profile.python_compiler}]" if profile.python_compiler else ""),
        f"  Load:    {profile.load_avg_1m:.2f} (1m)",
    ]
    if profile.hostname:
        lines.append(f"  Host:    {profile.hostname}")
    return "\n".join(lines)
