"""Task descriptors and run results."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any

from kopsai.core.errors import UnknownTaskType


class TaskType(str, Enum):
    """Closed set of task kinds a batch may contain."""

    SYSTEM_CHECK = "system_check"
    SSH = "ssh"
    K8S = "k8s"
    NOTIFY = "notify"
    GPT = "gpt"
    COMMAND = "command"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class TaskDescriptor:
    """One declarative unit of work; read-only once built."""

    type: TaskType
    fields: Mapping[str, Any]

    @classmethod
    def from_mapping(cls, raw: Any) -> "TaskDescriptor":
        """Build a descriptor from a parsed task mapping.

        Raises:
            UnknownTaskType: If ``raw`` is not a mapping, has no ``type``, or
                its type is outside :class:`TaskType`.
        """
        if not isinstance(raw, Mapping):
            raise UnknownTaskType(None)
        task_type = raw.get("type")
        try:
            parsed = TaskType(task_type)
        except ValueError:
            raise UnknownTaskType(task_type) from None
        return cls(type=parsed, fields=MappingProxyType({str(k): v for k, v in raw.items()}))

    def get(self, key: str, default: Any = None) -> Any:
        value = self.fields.get(key)
        return default if value is None else value

    def options(self) -> dict[str, Any]:
        """The task's free-form ``options`` mapping (empty when absent)."""
        value = self.fields.get("options")
        return dict(value) if isinstance(value, Mapping) else {}


@dataclass
class TaskResult:
    """Outcome of one task: a success payload or a failure record."""

    ok: bool
    payload: Any = None
    error: str = ""
    task: Any = None
    fault: BaseException | None = field(default=None, repr=False, compare=False)

    @classmethod
    def success(cls, payload: Any) -> "TaskResult":
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(cls, fault: BaseException, task: Any) -> "TaskResult":
        return cls(ok=False, error=str(fault), task=task, fault=fault)

    def to_dict(self) -> Any:
        if self.ok:
            return self.payload
        return {"error": self.error, "task": self.task}


@dataclass
class RunSummary:
    """Top-level result of one runner invocation.

    ``success`` is False only for a batch-level fault (missing source,
    unsupported format, unparsable document, aborted script). Individual
    task failures are recorded in ``results`` and leave it True.
    """

    success: bool = True
    results: list[TaskResult] = field(default_factory=list)
    result: Any = None
    error: str = ""
    script: bool = False
    timestamp: str = field(default_factory=_utc_now)

    @classmethod
    def fault(cls, error: BaseException | str) -> "RunSummary":
        return cls(success=False, error=str(error))

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {"error": self.error}
        if self.script:
            return {"success": True, "result": self.result, "timestamp": self.timestamp}
        return {
            "success": True,
            "results": [r.to_dict() for r in self.results],
            "timestamp": self.timestamp,
        }
