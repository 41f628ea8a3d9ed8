"""
sysctl configuration file handling.
"""

import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from loguru import logger

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
HEADER_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_setting(key: str, value: str) -> str:
    """Render one parameter the way it is persisted."""
    return f"{key} = {value}"


class SysctlFile:
    """Read, back up and append to a sysctl configuration file.

    Existing lines are never rewritten or removed.
    """

    def __init__(self, path: Path):
        """
        Initialize sysctl file handler.

        Args:
            path: Path to the configuration file (need not exist yet)
        """
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def contains_key(self, key: str) -> bool:
        """
        Check if ``key`` is assigned in the file, whatever its value.

        The key must start the line; whitespace around ``=`` is allowed.
        """
        if not self.exists():
            return False

        pattern = re.compile(rf"^{re.escape(key)}\s*=")
        with open(self.path, "r", encoding="utf-8", errors="replace") as f:
            return any(pattern.match(line) for line in f)

    def missing_keys(self, keys: Iterable[str]) -> List[str]:
        """Return the keys from ``keys`` that the file does not assign."""
        return [key for key in keys if not self.contains_key(key)]

    def backup(self, now: Optional[datetime] = None) -> Optional[Path]:
        """
        Copy the file to ``<path>.bak.<YYYYmmdd_HHMMSS>``.

        Returns:
            Backup path, or None when there is nothing to back up
        """
        if not self.exists():
            return None

        stamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
        backup_path = self.path.with_name(f"{self.path.name}.bak.{stamp}")
        shutil.copy2(self.path, backup_path)

        logger.info(f"Backup created: {backup_path}")
        return backup_path

    def append_settings(self, settings: Dict[str, str], header: str) -> None:
        """
        Append a commented block of settings.

        Args:
            settings: Ordered key/value pairs to write, one line each
            header: Comment text written above the settings
        """
        lines = ["", f"# {header}"]
        lines.extend(format_setting(key, value) for key, value in settings.items())

        with open(self.path, "a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

        logger.debug(f"Appended {', '.join(settings)} to {self.path}")


def header_line(tool: str, version: str, now: Optional[datetime] = None) -> str:
    """Comment header identifying an appended block."""
    stamp = (now or datetime.now()).strftime(HEADER_TIMESTAMP_FORMAT)
    return f"TCP BBR - added by {tool} {version} on {stamp}"
