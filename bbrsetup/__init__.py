"""
bbr-setup - enable TCP BBR congestion control on Linux hosts.
"""

from bbrsetup.__version__ import __version__
from bbrsetup.core.config import AppConfig
from bbrsetup.core.configurator import Configurator, RunReport
from bbrsetup.core.probe import LinuxSystemProbe, SystemProbe

__all__ = [
    "AppConfig",
    "Configurator",
    "RunReport",
    "LinuxSystemProbe",
    "SystemProbe",
    "__version__",
]
