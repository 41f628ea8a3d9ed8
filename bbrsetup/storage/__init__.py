"""
Storage and logging components.
"""

from bbrsetup.storage.logger import setup_logging
from bbrsetup.storage.sysctl_file import SysctlFile

__all__ = [
    "setup_logging",
    "SysctlFile",
]
