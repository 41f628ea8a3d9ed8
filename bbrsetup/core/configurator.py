"""
BBR configuration workflow.

A single pass: check privileges, verify kernel and module prerequisites,
read the live state, then (in apply mode) persist the missing parameters,
reload them and verify the result.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from bbrsetup.__version__ import __version__
from bbrsetup.core.config import AppConfig
from bbrsetup.core.errors import (
    BBRSetupError,
    ModuleUnavailableError,
    PrivilegeError,
    UnsupportedKernelError,
    UsageError,
    VerificationError,
)
from bbrsetup.core.probe import SystemProbe
from bbrsetup.core.state_machine import RunEvent, RunState, RunStateMachine
from bbrsetup.storage.sysctl_file import SysctlFile, format_setting, header_line
from bbrsetup.utils.kernel import MIN_KERNEL_VERSION, meets_minimum

TOOL_NAME = "bbr-setup"

QDISC_KEY = "net.core.default_qdisc"
CONGESTION_CONTROL_KEY = "net.ipv4.tcp_congestion_control"
AVAILABLE_CONGESTION_CONTROL_KEY = "net.ipv4.tcp_available_congestion_control"

TARGET_SETTINGS: Dict[str, str] = {
    QDISC_KEY: "fq",
    CONGESTION_CONTROL_KEY: "bbr",
}
TARGET_CONGESTION_CONTROL = TARGET_SETTINGS[CONGESTION_CONTROL_KEY]
COMPATIBLE_QDISCS = ("fq", "fq_codel")

BBR_MODULE = "tcp_bbr"
BBR_KERNEL_OPTION = "CONFIG_TCP_CONG_BBR=y"
UNKNOWN = "unknown"


class RunMode(str, Enum):
    APPLY = "apply"
    CHECK_ONLY = "check"
    DRY_RUN = "dry_run"

    @classmethod
    def from_flags(cls, check: bool = False, dry_run: bool = False) -> "RunMode":
        if check and dry_run:
            raise UsageError("--check and --dry-run cannot be used together")
        if check:
            return cls.CHECK_ONLY
        if dry_run:
            return cls.DRY_RUN
        return cls.APPLY


class Outcome(str, Enum):
    ALREADY_ENABLED = "already_enabled"
    NOT_ENABLED = "not_enabled"
    DRY_RUN = "dry_run"
    APPLIED = "applied"


class ObservedState(BaseModel):
    """Live values of the two managed parameters."""

    model_config = ConfigDict(frozen=True)

    congestion_control: str
    default_qdisc: str

    @property
    def is_satisfied(self) -> bool:
        return (
            self.congestion_control == TARGET_CONGESTION_CONTROL
            and self.default_qdisc in COMPATIBLE_QDISCS
        )


class RunReport(BaseModel):
    """Outcome of one invocation."""

    mode: RunMode
    outcome: Outcome
    state: str
    kernel_release: str
    distro: str
    before: ObservedState
    after: Optional[ObservedState] = None
    target_file: Optional[Path] = None
    planned_lines: List[str] = Field(default_factory=list)
    written_keys: List[str] = Field(default_factory=list)
    backup_path: Optional[Path] = None
    warnings: List[str] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.outcome == Outcome.NOT_ENABLED else 0


class Configurator:
    """Detect, verify and (optionally) enable BBR on the local host."""

    def __init__(
        self,
        probe: SystemProbe,
        config: AppConfig,
        mode: RunMode = RunMode.APPLY,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.probe = probe
        self.config = config
        self.mode = mode
        self.clock = clock
        self.machine = RunStateMachine()
        self.warnings: List[str] = []
        self._kernel_release = UNKNOWN
        self._distro = UNKNOWN

    @property
    def state(self) -> RunState:
        return self.machine.state

    def run(self) -> RunReport:
        """
        Execute the workflow.

        Returns:
            RunReport describing what was found and done

        Raises:
            BBRSetupError: on any fatal condition; the state machine is
                left in FAILED
        """
        try:
            return self._run()
        except BBRSetupError:
            if not self.machine.is_terminal:
                self.machine.transition(RunEvent.ERROR)
            raise

    def _run(self) -> RunReport:
        self.check_privileges()
        self.machine.transition(RunEvent.PRIVILEGE_OK)

        self.detect_environment()
        self.check_kernel()
        self.check_bbr_module()
        self.machine.transition(RunEvent.PREREQUISITES_OK)

        before = self.read_state()
        self.machine.transition(RunEvent.STATE_READ)
        logger.info(f"Current congestion control : {before.congestion_control}")
        logger.info(f"Current default qdisc      : {before.default_qdisc}")

        if before.is_satisfied:
            self.machine.transition(RunEvent.ALREADY_CONFIGURED)
            logger.success("BBR is already enabled. Nothing to do.")
            return self._report(Outcome.ALREADY_ENABLED, before, after=before)

        self.machine.transition(RunEvent.CHANGES_NEEDED)

        if self.mode == RunMode.CHECK_ONLY:
            logger.warning("BBR is NOT currently enabled")
            return self._report(Outcome.NOT_ENABLED, before)

        target = self.select_target_file()

        if self.mode == RunMode.DRY_RUN:
            logger.warning("Dry-run mode: no changes will be made")
            missing = self.missing_settings(target)
            return self._report(
                Outcome.DRY_RUN,
                before,
                target_file=target,
                planned_lines=[format_setting(k, v) for k, v in missing.items()],
            )

        logger.info("Configuring BBR...")
        backup_path = SysctlFile(target).backup(self.clock())
        written = self.write_settings(target)
        self.machine.transition(RunEvent.CHANGES_APPLIED)

        after = self.apply_and_verify(target, backup_path)
        self.machine.transition(RunEvent.VERIFICATION_PASSED)

        return self._report(
            Outcome.APPLIED,
            before,
            after=after,
            target_file=target,
            written_keys=written,
            backup_path=backup_path,
        )

    def _report(self, outcome: Outcome, before: ObservedState, **kwargs) -> RunReport:
        return RunReport(
            mode=self.mode,
            outcome=outcome,
            state=self.state.name,
            kernel_release=self._kernel_release,
            distro=self._distro,
            before=before,
            warnings=list(self.warnings),
            **kwargs,
        )

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    # Prerequisites

    def check_privileges(self) -> None:
        if not self.probe.is_privileged():
            raise PrivilegeError("This command must be run as root (use sudo)")

    def detect_environment(self) -> None:
        self._distro = self.probe.distro()
        logger.info(f"Detected distro: {self._distro}")

        for tool in self.probe.missing_tools():
            self._warn(f"Missing tool '{tool.name}': {tool.suggestion}")

    def check_kernel(self) -> None:
        os_type = self.probe.os_type()
        if os_type != "Linux":
            raise UnsupportedKernelError(f"BBR requires a Linux kernel, this system runs {os_type}")

        release = self.probe.kernel_release()
        self._kernel_release = release
        logger.info(f"Kernel version: {release}")

        minimum = "{}.{}".format(*MIN_KERNEL_VERSION)
        if not meets_minimum(release, MIN_KERNEL_VERSION):
            raise UnsupportedKernelError(
                f"Kernel {release} is too old. BBR requires {minimum}+"
            )
        logger.info(f"Kernel {release} meets minimum requirement ({minimum}+)")

    def check_bbr_module(self) -> str:
        """
        Confirm BBR can be used. Any one signal is enough.

        Returns:
            Short description of the signal that succeeded
        """
        if self.probe.module_loaded(BBR_MODULE):
            logger.info(f"Module {BBR_MODULE} is loaded")
            return "loaded"

        if self.probe.module_loadable(BBR_MODULE):
            logger.info(f"Module {BBR_MODULE} is available (not yet loaded)")
            return "loadable"

        if self.probe.kernel_config_has(BBR_KERNEL_OPTION):
            logger.info("BBR is built into the kernel")
            return "built-in"

        available = self.probe.sysctl_get(AVAILABLE_CONGESTION_CONTROL_KEY) or ""
        if TARGET_CONGESTION_CONTROL in available.split():
            logger.info("BBR is listed as available congestion control")
            return "available"

        raise ModuleUnavailableError(f"{BBR_MODULE} module is not available on this system")

    # State

    def read_state(self) -> ObservedState:
        """Read both managed parameters from the live kernel."""
        values = {}
        for key in (CONGESTION_CONTROL_KEY, QDISC_KEY):
            value = self.probe.sysctl_get(key)
            if value is None:
                self._warn(f"Could not read {key}; treating it as '{UNKNOWN}'")
                value = UNKNOWN
            values[key] = value

        return ObservedState(
            congestion_control=values[CONGESTION_CONTROL_KEY],
            default_qdisc=values[QDISC_KEY],
        )

    # Persistence

    def select_target_file(self) -> Path:
        """Prefer the drop-in file when the drop-in directory exists."""
        if self.config.sysctl_dropin_dir.is_dir():
            return self.config.sysctl_dropin
        return self.config.sysctl_main

    def missing_settings(self, target: Path) -> Dict[str, str]:
        """
        Target settings not yet assigned in the target file.

        When the target is the drop-in file the main file is consulted
        too; a key found in either place counts as present.
        """
        missing = set(SysctlFile(target).missing_keys(TARGET_SETTINGS))
        if target != self.config.sysctl_main:
            missing &= set(SysctlFile(self.config.sysctl_main).missing_keys(TARGET_SETTINGS))

        return {key: value for key, value in TARGET_SETTINGS.items() if key in missing}

    def write_settings(self, target: Path) -> List[str]:
        """
        Append the missing settings to ``target``.

        Returns:
            Keys that were written, empty if nothing changed
        """
        missing = self.missing_settings(target)
        if not missing:
            logger.info(f"Parameters already present in {target}; nothing changed")
            return []

        SysctlFile(target).append_settings(
            missing, header_line(TOOL_NAME, __version__, self.clock())
        )
        logger.info(f"Parameters written to {target}")
        return list(missing)

    def apply_and_verify(self, target: Path, backup_path: Optional[Path] = None) -> ObservedState:
        """
        Load the module and settings into the kernel and check the result.

        Raises:
            VerificationError: if congestion control is not BBR afterwards
        """
        if not self.probe.module_loaded(BBR_MODULE):
            if not self.probe.load_module(BBR_MODULE):
                logger.info(f"Could not load {BBR_MODULE}; it may be built into the kernel")

        if not self.probe.sysctl_load(target):
            self._warn(f"Reloading sysctl settings from {target} reported an error")

        main = self.config.sysctl_main
        if target != main and main.is_file():
            self.probe.sysctl_load(main)

        after = self.read_state()

        if after.congestion_control != TARGET_CONGESTION_CONTROL:
            message = (
                f"Verification failed: congestion control is '{after.congestion_control}', "
                f"expected '{TARGET_CONGESTION_CONTROL}'"
            )
            if backup_path is not None:
                message += f". Backup saved to {backup_path}"
            raise VerificationError(message)
        logger.info(f"Verification passed: congestion control = {after.congestion_control}")

        if after.default_qdisc in COMPATIBLE_QDISCS:
            logger.info(f"Verification passed: default qdisc = {after.default_qdisc}")
        else:
            self._warn(
                f"Qdisc is '{after.default_qdisc}' (expected 'fq'). "
                "This may still work but fq is recommended."
            )

        return after
