"""System resource checks: CPU, memory, disk and services."""

import subprocess
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import psutil

from kopsai.core.plugin import Plugin

DEFAULT_SERVICES = ("nginx", "apache2", "mysql", "postgresql", "redis", "docker", "kubelet")


class CheckType(str, Enum):
    CPU = "cpu"
    MEMORY = "memory"
    DISK = "disk"
    SERVICES = "services"
    ALL = "all"


class SystemCheck(Plugin):
    """Check local system resources."""

    name = "system_check"
    description = "Check system resources (CPU, memory, disk, services)"
    version = "1.0.0"

    def execute(self, action: Any = CheckType.ALL, options: Mapping[str, Any] | None = None) -> Any:
        options = options or {}
        check = self.parse_action(action or CheckType.ALL, CheckType)
        if check is CheckType.CPU:
            return self.check_cpu()
        if check is CheckType.MEMORY:
            return self.check_memory()
        if check is CheckType.DISK:
            return self.check_disk()
        if check is CheckType.SERVICES:
            return self.check_services(options.get("services"))
        return self.check_all()

    def check_all(self) -> dict[str, Any]:
        return {
            "cpu": self.check_cpu(),
            "memory": self.check_memory(),
            "disk": self.check_disk(),
            "services": self.check_services(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def check_cpu(self) -> dict[str, Any]:
        try:
            load_average = [round(v, 2) for v in psutil.getloadavg()]
        except (AttributeError, OSError):
            load_average = []
        return {
            "usage_percent": round(psutil.cpu_percent(interval=0.1), 2),
            "cores": psutil.cpu_count(logical=True) or 0,
            "load_average": load_average,
        }

    def check_memory(self) -> dict[str, Any]:
        mem = psutil.virtual_memory()
        used = mem.total - mem.available
        return {
            "total_kb": mem.total // 1024,
            "used_kb": used // 1024,
            "available_kb": mem.available // 1024,
            "usage_percent": round(used / mem.total * 100, 2) if mem.total else 0.0,
        }

    def check_disk(self) -> dict[str, dict[str, Any]]:
        disks: dict[str, dict[str, Any]] = {}
        for part in psutil.disk_partitions(all=False):
            if not part.mountpoint.startswith("/"):
                continue
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except OSError as e:
                self.logger.warn(
                    "Failed to check disk usage", mount_point=part.mountpoint, error=str(e)
                )
                continue
            disks[part.mountpoint] = {
                "filesystem": part.device,
                "total_bytes": usage.total,
                "used_bytes": usage.used,
                "available_bytes": usage.free,
                "usage_percent": round(usage.percent, 2),
            }
        return disks

    def check_services(self, services: Any = None) -> dict[str, dict[str, Any]]:
        names = services or DEFAULT_SERVICES
        return {name: self._service_status(name) for name in names}

    def _service_status(self, service: str) -> dict[str, Any]:
        try:
            result = subprocess.run(
                ["systemctl", "is-active", "--quiet", service],
                capture_output=True,
                timeout=5,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            return {"name": service, "status": "unknown", "active": False, "error": str(e)}
        active = result.returncode == 0
        return {"name": service, "status": "running" if active else "stopped", "active": active}
