"""Cron-based scheduling of task files."""

import json
import logging
import re
import subprocess
import sys
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

MARKER = "kopsai-schedule"


def _without_entry(crontab: str, schedule_id: str) -> list[str]:
    return [line for line in crontab.splitlines() if f"{MARKER}:{schedule_id}" not in line]


class CronScheduler:
    """Register task files in the user crontab.

    Each schedule is also recorded as JSON under ``config_dir`` so it can
    be listed when ``crontab`` is not installed.
    """

    CRON_PATTERN = re.compile(
        r"^(\*|[0-9,\-/*]+)\s+"
        r"(\*|[0-9,\-/*]+)\s+"
        r"(\*|[0-9,\-/*]+)\s+"
        r"(\*|[0-9,\-/*]+)\s+"
        r"(\*|[0-9,\-/*]+)$"
    )

    def __init__(self, config_dir: Path | None = None) -> None:
        self.config_dir = config_dir or Path.home() / ".kopsai" / "schedules"
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def command_for(self, task_file: str) -> str:
        return f"{sys.executable} -m kopsai run {task_file}"

    def schedule(self, task_file: str, cron_expr: str, schedule_id: str | None = None) -> bool:
        """Run ``task_file`` on a cron schedule.

        Args:
            task_file: Path to a YAML or script task file.
            cron_expr: Five-field cron expression (e.g. "*/5 * * * *").
            schedule_id: Identifier for this schedule; defaults to the
                task file's stem.

        Returns:
            True if the schedule was recorded.
        """
        cron_expr = cron_expr.strip()
        if not self.CRON_PATTERN.match(cron_expr):
            logger.error(f"Invalid cron expression: {cron_expr}")
            return False

        schedule_id = schedule_id or Path(task_file).stem
        task_path = str(Path(task_file).resolve())
        record = {
            "schedule_id": schedule_id,
            "task_file": task_path,
            "cron_expr": cron_expr,
            "enabled": True,
        }
        (self.config_dir / f"{schedule_id}.json").write_text(json.dumps(record, indent=2))

        cron_line = f"{cron_expr} {self.command_for(task_path)} # {MARKER}:{schedule_id}"
        try:
            current = subprocess.run(["crontab", "-l"], capture_output=True, text=True)
            existing = current.stdout if current.returncode == 0 else ""
            lines = _without_entry(existing, schedule_id)
            lines.append(cron_line)
            proc = subprocess.run(
                ["crontab", "-"],
                input="\n".join(lines) + "\n",
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            logger.warning("crontab not available, schedule saved to config only")
            return True

        if proc.returncode != 0:
            logger.error(f"Failed to set crontab: {proc.stderr}")
            return False
        logger.info(f"Scheduled {schedule_id}: {cron_expr}")
        return True

    def unschedule(self, schedule_id: str) -> bool:
        """Remove a schedule.

        Returns:
            True if a schedule record existed.
        """
        record = self.config_dir / f"{schedule_id}.json"
        existed = record.exists()
        if existed:
            record.unlink()

        try:
            current = subprocess.run(["crontab", "-l"], capture_output=True, text=True)
            if current.returncode == 0:
                lines = _without_entry(current.stdout, schedule_id)
                subprocess.run(
                    ["crontab", "-"],
                    input="\n".join(lines) + "\n",
                    capture_output=True,
                    text=True,
                )
        except FileNotFoundError:
            logger.debug("crontab not available, removed config record only")

        logger.info(f"Unscheduled {schedule_id}")
        return existed

    def list_scheduled(self) -> list[dict[str, Any]]:
        """List recorded schedules, skipping unreadable records."""
        schedules = []
        for path in sorted(self.config_dir.glob("*.json")):
            try:
                schedules.append(json.loads(path.read_text()))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable schedule {path.name}: {e}")
        return schedules
