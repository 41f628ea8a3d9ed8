"""Shared fixtures: an in-memory system probe and temporary sysctl paths."""
from datetime import datetime
from pathlib import Path

import pytest
from loguru import logger

from bbrsetup.core.config import AppConfig
from bbrsetup.core.detector import MissingTool

CC_KEY = "net.ipv4.tcp_congestion_control"
QDISC_KEY = "net.core.default_qdisc"
AVAILABLE_KEY = "net.ipv4.tcp_available_congestion_control"

FIXED_NOW = datetime(2026, 3, 14, 15, 9, 26)


class FakeProbe:
    """SystemProbe stand-in.

    ``sysctl_load`` parses the file like the kernel would, unless a key is
    listed in ``stuck`` in which case the live value never changes.
    """

    def __init__(
        self,
        privileged=True,
        os_type="Linux",
        kernel_release="5.15.0-91-generic",
        distro="ubuntu",
        loaded=True,
        loadable=False,
        builtin=False,
        sysctl=None,
        stuck=(),
        load_ok=True,
        sysctl_load_ok=True,
        missing=(),
    ):
        self.privileged = privileged
        self._os_type = os_type
        self._kernel_release = kernel_release
        self._distro = distro
        self.loaded = loaded
        self.loadable = loadable
        self.builtin = builtin
        self.sysctl = dict(sysctl if sysctl is not None else {CC_KEY: "cubic", QDISC_KEY: "pfifo_fast"})
        self.stuck = set(stuck)
        self.load_ok = load_ok
        self.sysctl_load_ok = sysctl_load_ok
        self.missing = list(missing)
        self.calls = []
        self.loaded_files = []

    def is_privileged(self):
        self.calls.append("is_privileged")
        return self.privileged

    def os_type(self):
        self.calls.append("os_type")
        return self._os_type

    def kernel_release(self):
        self.calls.append("kernel_release")
        return self._kernel_release

    def distro(self):
        self.calls.append("distro")
        return self._distro

    def missing_tools(self):
        self.calls.append("missing_tools")
        return [MissingTool(name=name, suggestion="install it") for name in self.missing]

    def module_loaded(self, name):
        self.calls.append("module_loaded")
        return self.loaded

    def module_loadable(self, name):
        self.calls.append("module_loadable")
        return self.loadable

    def kernel_config_has(self, option):
        self.calls.append("kernel_config_has")
        return self.builtin

    def sysctl_get(self, key):
        self.calls.append(f"sysctl_get:{key}")
        return self.sysctl.get(key)

    def load_module(self, name):
        self.calls.append("load_module")
        if self.load_ok:
            self.loaded = True
        return self.load_ok

    def sysctl_load(self, path):
        self.calls.append("sysctl_load")
        self.loaded_files.append(Path(path))
        if not self.sysctl_load_ok:
            return False
        for line in Path(path).read_text().splitlines():
            key, sep, value = line.partition("=")
            key = key.strip()
            if not sep or key.startswith("#") or key in self.stuck:
                continue
            self.sysctl[key] = value.strip()
        return True


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    logger.remove()


@pytest.fixture
def fake_probe():
    return FakeProbe()


@pytest.fixture
def sysctl_dir(tmp_path):
    """A temporary /etc/sysctl.d that exists."""
    path = tmp_path / "sysctl.d"
    path.mkdir()
    return path


@pytest.fixture
def app_config(tmp_path, sysctl_dir):
    return AppConfig(
        sysctl_dropin_dir=sysctl_dir,
        sysctl_main=tmp_path / "sysctl.conf",
        kernel_config_paths=[tmp_path / "config.gz"],
    )


@pytest.fixture
def legacy_config(tmp_path):
    """Configuration for a host without a drop-in directory."""
    return AppConfig(
        sysctl_dropin_dir=tmp_path / "missing.d",
        sysctl_main=tmp_path / "sysctl.conf",
        kernel_config_paths=[tmp_path / "config.gz"],
    )


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
