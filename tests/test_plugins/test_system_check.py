"""Tests for the system_check plugin."""

import subprocess
from collections import namedtuple
from unittest.mock import MagicMock, patch

import pytest

from kopsai.core.errors import UnknownAction
from kopsai.plugins.system_check import SystemCheck

Mem = namedtuple("Mem", "total available")
Part = namedtuple("Part", "device mountpoint")
Usage = namedtuple("Usage", "total used free percent")


@pytest.fixture
def plugin(context):
    return SystemCheck(context)


class TestCpu:
    @patch("kopsai.plugins.system_check.psutil")
    def test_check_cpu(self, mock_psutil, plugin):
        mock_psutil.cpu_percent.return_value = 12.3456
        mock_psutil.cpu_count.return_value = 8
        mock_psutil.getloadavg.return_value = (0.5, 0.25, 1.126)

        assert plugin.execute("cpu", {}) == {
            "usage_percent": 12.35,
            "cores": 8,
            "load_average": [0.5, 0.25, 1.13],
        }

    @patch("kopsai.plugins.system_check.psutil")
    def test_load_average_unsupported(self, mock_psutil, plugin):
        mock_psutil.cpu_percent.return_value = 1.0
        mock_psutil.cpu_count.return_value = 2
        mock_psutil.getloadavg.side_effect = OSError("unsupported")
        assert plugin.check_cpu()["load_average"] == []


class TestMemory:
    @patch("kopsai.plugins.system_check.psutil")
    def test_check_memory(self, mock_psutil, plugin):
        mock_psutil.virtual_memory.return_value = Mem(total=4096 * 1024, available=1024 * 1024)
        assert plugin.execute("memory", {}) == {
            "total_kb": 4096,
            "used_kb": 3072,
            "available_kb": 1024,
            "usage_percent": 75.0,
        }


class TestDisk:
    @patch("kopsai.plugins.system_check.psutil")
    def test_check_disk_keyed_by_mount(self, mock_psutil, plugin):
        mock_psutil.disk_partitions.return_value = [
            Part("/dev/sda1", "/"),
            Part("C:", "C:\\"),
        ]
        mock_psutil.disk_usage.return_value = Usage(100, 40, 60, 40.0)

        assert plugin.execute("disk", {}) == {
            "/": {
                "filesystem": "/dev/sda1",
                "total_bytes": 100,
                "used_bytes": 40,
                "available_bytes": 60,
                "usage_percent": 40.0,
            }
        }

    @patch("kopsai.plugins.system_check.psutil")
    def test_unreadable_mount_skipped(self, mock_psutil, plugin):
        mock_psutil.disk_partitions.return_value = [Part("/dev/sdb1", "/mnt/gone")]
        mock_psutil.disk_usage.side_effect = PermissionError("denied")
        assert plugin.check_disk() == {}


class TestServices:
    @patch("kopsai.plugins.system_check.subprocess.run")
    def test_active_and_stopped(self, mock_run, plugin):
        mock_run.side_effect = [MagicMock(returncode=0), MagicMock(returncode=3)]
        result = plugin.execute("services", {"services": ["nginx", "redis"]})
        assert result == {
            "nginx": {"name": "nginx", "status": "running", "active": True},
            "redis": {"name": "redis", "status": "stopped", "active": False},
        }
        assert mock_run.call_args_list[0][0][0] == ["systemctl", "is-active", "--quiet", "nginx"]

    @patch("kopsai.plugins.system_check.subprocess.run", side_effect=FileNotFoundError("systemctl"))
    def test_no_systemctl(self, mock_run, plugin):
        status = plugin.check_services(["nginx"])["nginx"]
        assert status["status"] == "unknown"
        assert status["active"] is False

    @patch(
        "kopsai.plugins.system_check.subprocess.run",
        side_effect=subprocess.TimeoutExpired("systemctl", 5),
    )
    def test_timeout(self, mock_run, plugin):
        assert plugin.check_services(["nginx"])["nginx"]["status"] == "unknown"


class TestAll:
    def test_all_combines_checks(self, plugin):
        with patch.object(plugin, "check_cpu", return_value={"c": 1}), patch.object(
            plugin, "check_memory", return_value={"m": 1}
        ), patch.object(plugin, "check_disk", return_value={}), patch.object(
            plugin, "check_services", return_value={}
        ):
            result = plugin.execute(None, {})
        assert result["cpu"] == {"c": 1}
        assert result["memory"] == {"m": 1}
        assert set(result) == {"cpu", "memory", "disk", "services", "timestamp"}

    def test_unknown_check(self, plugin):
        with pytest.raises(UnknownAction):
            plugin.execute("gpu", {})

    def test_always_available(self, plugin):
        assert plugin.available() is True
