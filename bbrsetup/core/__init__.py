"""
Core functionality components.
"""

from bbrsetup.core.config import AppConfig, build_config
from bbrsetup.core.configurator import Configurator, ObservedState, Outcome, RunMode, RunReport
from bbrsetup.core.detector import SystemDetector, SystemInfo
from bbrsetup.core.executor import CommandResult, CommandRunner
from bbrsetup.core.probe import LinuxSystemProbe, SystemProbe

__all__ = [
    "AppConfig",
    "build_config",
    "Configurator",
    "ObservedState",
    "Outcome",
    "RunMode",
    "RunReport",
    "SystemDetector",
    "SystemInfo",
    "CommandResult",
    "CommandRunner",
    "LinuxSystemProbe",
    "SystemProbe",
]
