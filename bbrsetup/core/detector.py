"""
System and tool detection.
"""

import platform
import shutil
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

REQUIRED_TOOLS = ["sysctl", "modprobe", "lsmod"]


class SystemInfo(BaseModel):
    """System information model."""

    os_type: str  # 'Linux', 'Darwin', ...
    kernel_release: str
    distro: str


class MissingTool(BaseModel):
    """Information about a missing tool."""

    name: str
    suggestion: str


class SystemDetector:
    """Detect system information and tool availability."""

    def __init__(self, etc_dir: Path = Path("/etc")):
        self.etc_dir = etc_dir

    def detect_system(self) -> SystemInfo:
        """Detect current system information."""
        return SystemInfo(
            os_type=platform.system(),
            kernel_release=platform.release(),
            distro=self.detect_distro(),
        )

    def detect_distro(self) -> str:
        """
        Identify the Linux distribution.

        Reads ``ID`` from os-release, falling back to the RHEL and Alpine
        release marker files.
        """
        os_release = self.etc_dir / "os-release"
        if os_release.is_file():
            distro_id = self._read_os_release_id(os_release)
            if distro_id:
                return distro_id
            return "unknown"
        if (self.etc_dir / "redhat-release").is_file():
            return "rhel"
        if (self.etc_dir / "alpine-release").is_file():
            return "alpine"
        return "unknown"

    def _read_os_release_id(self, path: Path) -> Optional[str]:
        """Return the unquoted ID field of an os-release file."""
        try:
            lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError:
            return None
        for line in lines:
            key, sep, value = line.strip().partition("=")
            if sep and key == "ID":
                return value.strip().strip("\"'") or None
        return None

    def check_required_tools(self, tools: List[str] = None) -> List[MissingTool]:
        """Check if required tools are available."""
        missing = []
        distro = self.detect_distro()

        for tool in tools or REQUIRED_TOOLS:
            if not self._is_tool_available(tool):
                missing.append(MissingTool(
                    name=tool,
                    suggestion=self._get_installation_suggestion(tool, distro),
                ))

        return missing

    def _is_tool_available(self, tool: str) -> bool:
        """Check if a tool is available in PATH or the sbin directories."""
        if shutil.which(tool) is not None:
            return True
        return shutil.which(tool, path="/usr/local/sbin:/usr/sbin:/sbin") is not None

    def _get_installation_suggestion(self, tool: str, distro: str) -> str:
        """Get installation suggestion for a missing tool."""
        packages = {
            "sysctl": "procps",
            "modprobe": "kmod",
            "lsmod": "kmod",
        }
        installers = {
            "debian": "sudo apt-get install",
            "ubuntu": "sudo apt-get install",
            "fedora": "sudo dnf install",
            "rhel": "sudo yum install",
            "centos": "sudo yum install",
            "alpine": "apk add",
            "arch": "sudo pacman -S",
        }

        package = packages.get(tool)
        if package is None:
            return f"Please install {tool} manually"
        if distro in installers:
            return f"{installers[distro]} {package}"
        return f"Install the '{package}' package with your package manager"
