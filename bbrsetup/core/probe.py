"""
Access to live operating system state.

The Configurator only talks to the host through a ``SystemProbe``, so its
decision logic can be exercised with an in-memory fake.
"""

from __future__ import annotations

import gzip
import os
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from loguru import logger

from bbrsetup.core.detector import MissingTool, SystemDetector
from bbrsetup.core.executor import CommandRunner


@runtime_checkable
class SystemProbe(Protocol):
    """Kernel, module and sysctl operations needed to configure BBR."""

    def is_privileged(self) -> bool:
        """True when running with administrative privileges."""

    def os_type(self) -> str:
        """Operating system name, e.g. ``Linux``."""

    def kernel_release(self) -> str:
        """Kernel release string, e.g. ``5.15.0-91-generic``."""

    def distro(self) -> str:
        """Distribution identifier or ``unknown``."""

    def missing_tools(self) -> List[MissingTool]:
        """System tools the probe relies on that are not installed."""

    def module_loaded(self, name: str) -> bool:
        """True when the kernel module is currently loaded."""

    def module_loadable(self, name: str) -> bool:
        """True when a dry-run modprobe of the module succeeds."""

    def kernel_config_has(self, option: str) -> bool:
        """True when the kernel build config contains ``option`` verbatim."""

    def sysctl_get(self, key: str) -> Optional[str]:
        """Live value of a sysctl key, or None if it cannot be read."""

    def load_module(self, name: str) -> bool:
        """Load a kernel module. Returns success."""

    def sysctl_load(self, path: Path) -> bool:
        """Load sysctl settings from a file into the kernel. Returns success."""


class LinuxSystemProbe:
    """``SystemProbe`` backed by the running Linux host."""

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        detector: Optional[SystemDetector] = None,
        kernel_config_paths: Sequence[Path] = (Path("/proc/config.gz"),),
    ):
        self.runner = runner or CommandRunner()
        self.detector = detector or SystemDetector()
        self.kernel_config_paths = list(kernel_config_paths)

    def is_privileged(self) -> bool:
        return os.geteuid() == 0

    def os_type(self) -> str:
        return self.detector.detect_system().os_type

    def kernel_release(self) -> str:
        return self.detector.detect_system().kernel_release

    def distro(self) -> str:
        return self.detector.detect_distro()

    def missing_tools(self) -> List[MissingTool]:
        return self.detector.check_required_tools()

    def module_loaded(self, name: str) -> bool:
        result = self.runner.run_command(["lsmod"])
        if not result.success:
            return False
        # First column of every line after the header is the module name
        return any(
            line.split()[0] == name
            for line in result.stdout.splitlines()[1:]
            if line.strip()
        )

    def module_loadable(self, name: str) -> bool:
        return self.runner.run_command(["modprobe", "-n", name]).success

    def kernel_config_has(self, option: str) -> bool:
        for path in self._kernel_config_candidates():
            if not path.is_file():
                continue
            try:
                opener = gzip.open if path.suffix == ".gz" else open
                with opener(path, "rt", encoding="utf-8", errors="replace") as f:
                    if any(line.strip() == option for line in f):
                        logger.debug(f"Found {option} in {path}")
                        return True
            except (OSError, EOFError) as e:
                logger.debug(f"Could not read kernel config {path}: {e}")
        return False

    def _kernel_config_candidates(self) -> List[Path]:
        candidates = list(self.kernel_config_paths)
        boot_config = Path("/boot") / f"config-{self.kernel_release()}"
        if boot_config not in candidates:
            candidates.append(boot_config)
        return candidates

    def sysctl_get(self, key: str) -> Optional[str]:
        result = self.runner.run_command(["sysctl", "-n", key])
        if not result.success:
            return None
        value = result.stdout.strip()
        return value or None

    def load_module(self, name: str) -> bool:
        return self.runner.run_command(["modprobe", name]).success

    def sysctl_load(self, path: Path) -> bool:
        result = self.runner.run_command(["sysctl", "-p", str(path)])
        if not result.success:
            logger.debug(f"sysctl -p {path} failed: {result.stderr.strip()}")
        return result.success
