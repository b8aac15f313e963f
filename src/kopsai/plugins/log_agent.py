"""Local log file analysis."""

import re
from collections import Counter
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from kopsai.core.errors import TaskValidationError
from kopsai.core.plugin import Plugin

DEFAULT_PATTERNS = {
    "errors": r"ERROR|FATAL|CRITICAL",
    "warnings": r"WARN",
    "info": r"INFO",
    "exceptions": r"Exception|Error",
    "timeouts": r"timeout",
    "connections": r"connection",
    "requests": r"request",
}

ERROR_PATTERN = re.compile(r"ERROR|FATAL|CRITICAL|Exception|failed|timeout", re.IGNORECASE)

TIMESTAMP_FORMATS = (
    (re.compile(r"\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}"), ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S")),
    (re.compile(r"\d{2}/\d{2}/\d{4} \d{2}:\d{2}:\d{2}"), ("%m/%d/%Y %H:%M:%S",)),
    (re.compile(r"[A-Z][a-z]{2} +\d{1,2} \d{2}:\d{2}:\d{2}"), ("%b %d %H:%M:%S",)),
)

MAX_MATCHES = 10


class LogAction(str, Enum):
    ANALYZE = "analyze"
    SEARCH = "search"
    EXTRACT_ERRORS = "extract_errors"
    SUMMARY = "summary"


def extract_timestamp(line: str, now: datetime | None = None) -> datetime | None:
    """Return the first recognised timestamp in ``line`` (naive, local time)."""
    for pattern, formats in TIMESTAMP_FORMATS:
        match = pattern.search(line)
        if not match:
            continue
        text = re.sub(" +", " ", match.group(0))
        for fmt in formats:
            if "%Y" not in fmt:
                # syslog-style stamps carry no year
                text, fmt = f"{(now or datetime.now()).year} {text}", f"%Y {fmt}"
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
    return None


def error_level(line: str) -> str:
    upper = line.upper()
    if "FATAL" in upper or "CRITICAL" in upper:
        return "fatal"
    if "ERROR" in upper:
        return "error"
    if "WARN" in upper:
        return "warning"
    if "INFO" in upper:
        return "info"
    return "unknown"


class LogAgent(Plugin):
    """Analyze log files and extract insights."""

    name = "log_agent"
    description = "Analyze logs and extract insights"
    version = "1.0.0"

    def execute(self, action: Any, options: Mapping[str, Any]) -> dict[str, Any]:
        log_action = self.parse_action(action, LogAction)
        log_file = options.get("log_file")
        if not log_file:
            raise TaskValidationError(f"log {log_action.value} requires 'log_file'")
        path = Path(log_file)
        if not path.is_file():
            raise FileNotFoundError(f"Log file not found: {log_file}")

        if log_action is LogAction.ANALYZE:
            return self.analyze(path, options.get("patterns"))
        if log_action is LogAction.SEARCH:
            query = options.get("query")
            if not query:
                raise TaskValidationError("log search requires 'query'")
            return self.search(path, query, int(options.get("lines") or 100))
        if log_action is LogAction.EXTRACT_ERRORS:
            return self.extract_errors(path, float(options.get("hours") or 24))
        return self.summary(path, float(options.get("hours") or 24))

    def analyze(self, path: Path, patterns: Mapping[str, str] | None = None) -> dict[str, Any]:
        content = path.read_text(errors="replace")
        analysis = {}
        for name, pattern in (patterns or DEFAULT_PATTERNS).items():
            matches = re.findall(pattern, content, re.IGNORECASE)
            analysis[name] = {"count": len(matches), "matches": matches[:MAX_MATCHES]}
        return {
            "file": str(path),
            "total_lines": len(content.splitlines()),
            "analysis": analysis,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def search(self, path: Path, query: str, lines: int = 100) -> dict[str, Any]:
        matching = [line.rstrip("\n") for line in self._lines(path) if query in line]
        matching = matching[-lines:] if lines > 0 else []
        return {"file": str(path), "query": query, "matches": len(matching), "lines": matching}

    def extract_errors(self, path: Path, hours: float = 24) -> dict[str, Any]:
        cutoff = datetime.now() - timedelta(hours=hours)
        errors = []
        for line in self._lines(path):
            if not ERROR_PATTERN.search(line):
                continue
            timestamp = extract_timestamp(line)
            if timestamp and timestamp < cutoff:
                continue
            errors.append(
                {
                    "line": line.strip(),
                    "timestamp": timestamp.isoformat() if timestamp else None,
                    "level": error_level(line),
                }
            )
        return {"file": str(path), "hours": hours, "error_count": len(errors), "errors": errors}

    def summary(self, path: Path, hours: float = 24) -> dict[str, Any]:
        cutoff = datetime.now() - timedelta(hours=hours)
        levels: Counter[str] = Counter()
        unique_errors: set[str] = set()
        hourly: Counter[str] = Counter()
        total = 0

        for line in self._lines(path):
            total += 1
            timestamp = extract_timestamp(line)
            if timestamp and timestamp < cutoff:
                continue
            level = error_level(line)
            levels[level] += 1
            if level in ("error", "fatal"):
                unique_errors.add(line.strip())
            if timestamp:
                hourly[timestamp.strftime("%Y-%m-%d %H:00")] += 1

        return {
            "file": str(path),
            "hours": hours,
            "summary": {
                "total_lines": total,
                "error_count": levels["error"] + levels["fatal"],
                "warning_count": levels["warning"],
                "info_count": levels["info"],
                "unique_errors": len(unique_errors),
                "hourly_distribution": dict(sorted(hourly.items())),
            },
        }

    @staticmethod
    def _lines(path: Path) -> list[str]:
        with open(path, errors="replace") as f:
            return f.readlines()
