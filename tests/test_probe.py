"""Tests for the Linux system probe and system detector (mocked commands)."""
import gzip
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from bbrsetup.core.detector import SystemDetector
from bbrsetup.core.executor import CommandResult
from bbrsetup.core.probe import LinuxSystemProbe, SystemProbe
from conftest import FakeProbe

LSMOD_OUTPUT = """Module                  Size  Used by
tcp_bbr                20480  12
sch_fq                 20480  2
tcp_bbr2_extra          4096  0
"""


def _result(stdout="", return_code=0):
    return CommandResult(
        command="cmd",
        return_code=return_code,
        stdout=stdout,
        stderr="" if return_code == 0 else "error",
        duration=0.01,
        success=(return_code == 0),
    )


@pytest.fixture
def runner():
    return MagicMock()


@pytest.fixture
def detector():
    detector = MagicMock(spec=SystemDetector)
    detector.detect_system.return_value = MagicMock(os_type="Linux", kernel_release="6.1.0-test")
    return detector


@pytest.fixture
def probe(runner, detector, tmp_path):
    return LinuxSystemProbe(runner=runner, detector=detector, kernel_config_paths=[tmp_path / "config.gz"])


def test_implements_protocol(probe):
    assert isinstance(probe, SystemProbe)
    assert isinstance(FakeProbe(), SystemProbe)


def test_module_loaded_matches_exact_name(probe, runner):
    runner.run_command.return_value = _result(LSMOD_OUTPUT)
    assert probe.module_loaded("tcp_bbr") is True
    assert probe.module_loaded("tcp_bbr2") is False
    assert probe.module_loaded("Module") is False
    runner.run_command.assert_called_with(["lsmod"])


def test_module_loaded_when_lsmod_fails(probe, runner):
    runner.run_command.return_value = _result(return_code=-1)
    assert probe.module_loaded("tcp_bbr") is False


def test_module_loadable_uses_dry_run(probe, runner):
    runner.run_command.return_value = _result()
    assert probe.module_loadable("tcp_bbr") is True
    runner.run_command.assert_called_once_with(["modprobe", "-n", "tcp_bbr"])


def test_sysctl_get(probe, runner):
    runner.run_command.return_value = _result("bbr\n")
    assert probe.sysctl_get("net.ipv4.tcp_congestion_control") == "bbr"
    runner.run_command.assert_called_once_with(["sysctl", "-n", "net.ipv4.tcp_congestion_control"])


@pytest.mark.parametrize("stdout,code", [("", 0), ("bbr\n", 255)])
def test_sysctl_get_failure_is_none(probe, runner, stdout, code):
    runner.run_command.return_value = _result(stdout, code)
    assert probe.sysctl_get("net.core.default_qdisc") is None


def test_sysctl_load_and_load_module(probe, runner, tmp_path):
    runner.run_command.return_value = _result(return_code=1)
    assert probe.sysctl_load(tmp_path / "99-bbr.conf") is False
    runner.run_command.assert_called_with(["sysctl", "-p", str(tmp_path / "99-bbr.conf")])

    runner.run_command.return_value = _result()
    assert probe.load_module("tcp_bbr") is True
    runner.run_command.assert_called_with(["modprobe", "tcp_bbr"])


def test_kernel_config_gz(probe, tmp_path):
    with gzip.open(tmp_path / "config.gz", "wt") as f:
        f.write("CONFIG_TCP_CONG_CUBIC=y\nCONFIG_TCP_CONG_BBR=y\n")
    assert probe.kernel_config_has("CONFIG_TCP_CONG_BBR=y") is True
    assert probe.kernel_config_has("CONFIG_TCP_CONG_VEGAS=y") is False


def test_kernel_config_module_is_not_builtin(probe, tmp_path):
    with gzip.open(tmp_path / "config.gz", "wt") as f:
        f.write("CONFIG_TCP_CONG_BBR=m\n")
    assert probe.kernel_config_has("CONFIG_TCP_CONG_BBR=y") is False


def test_kernel_config_plain_file(runner, detector, tmp_path):
    config = tmp_path / "config-6.1.0"
    config.write_text("# comment\nCONFIG_TCP_CONG_BBR=y\n")
    probe = LinuxSystemProbe(runner=runner, detector=detector, kernel_config_paths=[config])
    assert probe.kernel_config_has("CONFIG_TCP_CONG_BBR=y") is True


def test_kernel_config_corrupt_gz(probe, tmp_path):
    (tmp_path / "config.gz").write_bytes(b"not gzip")
    assert probe.kernel_config_has("CONFIG_TCP_CONG_BBR=y") is False


def test_kernel_release_and_os_from_detector(probe):
    assert probe.os_type() == "Linux"
    assert probe.kernel_release() == "6.1.0-test"


class TestSystemDetector:
    """Distro detection from /etc marker files."""

    def test_os_release_id(self, tmp_path):
        (tmp_path / "os-release").write_text('NAME="Ubuntu"\nVERSION="22.04"\nID=ubuntu\nID_LIKE=debian\n')
        assert SystemDetector(etc_dir=tmp_path).detect_distro() == "ubuntu"

    def test_os_release_quoted_id(self, tmp_path):
        (tmp_path / "os-release").write_text('ID="rocky"\n')
        assert SystemDetector(etc_dir=tmp_path).detect_distro() == "rocky"

    def test_redhat_release(self, tmp_path):
        (tmp_path / "redhat-release").write_text("CentOS release 6.10\n")
        assert SystemDetector(etc_dir=tmp_path).detect_distro() == "rhel"

    def test_alpine_release(self, tmp_path):
        (tmp_path / "alpine-release").write_text("3.19.0\n")
        assert SystemDetector(etc_dir=tmp_path).detect_distro() == "alpine"

    def test_unknown(self, tmp_path):
        assert SystemDetector(etc_dir=tmp_path).detect_distro() == "unknown"

    def test_check_required_tools(self, tmp_path, monkeypatch):
        (tmp_path / "os-release").write_text("ID=debian\n")
        monkeypatch.setattr("bbrsetup.core.detector.shutil.which", lambda tool, path=None: None)

        missing = SystemDetector(etc_dir=tmp_path).check_required_tools(["sysctl"])

        assert [m.name for m in missing] == ["sysctl"]
        assert missing[0].suggestion == "sudo apt-get install procps"

    def test_all_tools_present(self, monkeypatch):
        monkeypatch.setattr("bbrsetup.core.detector.shutil.which", lambda tool, path=None: f"/usr/sbin/{tool}")
        assert SystemDetector().check_required_tools() == []
