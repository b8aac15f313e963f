"""Exception hierarchy for the kops-ai core."""

from typing import Any


class KopsError(Exception):
    """Base class for all kops-ai errors."""


class PluginNotFound(KopsError):
    """Raised when no plugin is registered under the requested name."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        message = f"Plugin '{name}' not found"
        if available is not None:
            message += f". Available plugins: {', '.join(available) or 'none'}"
        super().__init__(message)


class PluginUnavailable(KopsError):
    """Raised when a plugin exists but its readiness probe returned False."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Plugin '{name}' is not available")


class UnknownAction(KopsError, ValueError):
    """Raised when a plugin receives an action outside its action set."""

    def __init__(self, plugin: str, action: Any, choices: list[str]) -> None:
        self.plugin = plugin
        self.action = action
        super().__init__(
            f"Unknown action for {plugin}: {action}. "
            f"Valid actions: {', '.join(choices)}"
        )


class UnknownTaskType(KopsError):
    """Raised when a task descriptor has a missing or unrecognised type."""

    def __init__(self, task_type: Any) -> None:
        self.task_type = task_type
        super().__init__(f"Unknown task type: {task_type}")


class UnsupportedFormat(KopsError):
    """Raised when a task source has an unrecognised format."""

    def __init__(self, extension: str) -> None:
        self.extension = extension
        super().__init__(f"Unsupported file format: {extension or '(none)'}")


class SourceNotFound(KopsError):
    """Raised when a task source does not exist."""

    def __init__(self, path: Any) -> None:
        self.path = path
        super().__init__(f"File not found: {path}")


class TaskValidationError(KopsError):
    """Raised when a task descriptor lacks a required field."""


class ScriptError(KopsError):
    """Raised when a task script uses a construct the DSL does not allow."""


class TaskExecutionFault(KopsError):
    """Wraps a fault raised while executing a single task.

    The message is the original fault's message; the original exception
    is available as ``__cause__``.
    """

    def __init__(self, message: str, task: Any = None) -> None:
        self.task = task
        super().__init__(message)
