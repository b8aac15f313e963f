"""Task runner and script DSL."""

from .dsl import ScriptContext, evaluate_script
from .models import RunSummary, TaskDescriptor, TaskResult, TaskType
from .task_runner import TaskRunner

__all__ = [
    "RunSummary",
    "ScriptContext",
    "TaskDescriptor",
    "TaskResult",
    "TaskRunner",
    "TaskType",
    "evaluate_script",
]
