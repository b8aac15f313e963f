"""Run task batches from YAML documents or DSL scripts."""

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml

from kopsai.core.context import AgentContext
from kopsai.core.errors import (
    KopsError,
    SourceNotFound,
    TaskExecutionFault,
    TaskValidationError,
    UnsupportedFormat,
)
from kopsai.core.log import get_trace_id, trace_context
from kopsai.core.registry import PluginRegistry, create_agent

from .dsl import ScriptContext, evaluate_script
from .models import RunSummary, TaskDescriptor, TaskResult, TaskType

YAML_SUFFIXES = (".yml", ".yaml")
SCRIPT_SUFFIXES = (".py", ".kops")

SSH_OPTION_KEYS = ("username", "password", "key_path", "timeout")


def _require(task: TaskDescriptor, key: str) -> Any:
    value = task.get(key)
    if value is None or value == "":
        raise TaskValidationError(f"{task.type.value} task requires '{key}'")
    return value


def _options(task: TaskDescriptor, *reserved: str) -> dict[str, Any]:
    """The task's ``options`` mapping without keys set from top-level fields."""
    options = task.options()
    for key in reserved:
        options.pop(key, None)
    return options


class TaskRunner:
    """Executes task sources against a plugin registry.

    A batch never stops on a failing task: each failure is logged with the
    offending task attached and recorded in the summary, and the remaining
    tasks still run. Only faults of the batch itself (missing source,
    unsupported format, unparsable YAML, an aborted script) produce a
    failed :class:`RunSummary`.

    The variable store used by ``set_variable``/``get_variable`` belongs to
    the runner instance; scheduled runs each create their own runner.
    """

    def __init__(
        self,
        registry: PluginRegistry | None = None,
        context: AgentContext | None = None,
    ) -> None:
        if registry is None:
            registry = create_agent(context)
        self.registry = registry
        self.context = context or registry.context
        self.logger = self.context.get_logger("runner")
        self.variables: dict[str, Any] = {}
        self.dsl = ScriptContext(self)
        self._dispatch: dict[TaskType, Callable[[TaskDescriptor], Any]] = {
            TaskType.SYSTEM_CHECK: self._system_check,
            TaskType.SSH: self._ssh,
            TaskType.K8S: self._k8s,
            TaskType.NOTIFY: self._notify,
            TaskType.GPT: self._gpt,
            TaskType.COMMAND: self._command,
        }

    # -- sources -------------------------------------------------------------

    def run(self, source: str | Path) -> RunSummary:
        """Run a task file, choosing the data or script path by suffix.

        A file that cannot be read or decoded is a batch fault.
        """
        path = Path(source)
        with trace_context(get_trace_id()):
            if not path.exists():
                return self._batch_fault(SourceNotFound(path), source=str(path))

            suffix = path.suffix.lower()
            if suffix not in YAML_SUFFIXES + SCRIPT_SUFFIXES:
                return self._batch_fault(UnsupportedFormat(suffix), source=str(path))

            self.logger.info("Running task file", event="run_started", source=str(path))
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                return self._batch_fault(e, source=str(path))
            if suffix in YAML_SUFFIXES:
                return self.run_yaml(content)
            return self.run_script(content, filename=str(path))

    run_file = run

    def run_yaml(self, content: str) -> RunSummary:
        """Run a YAML document holding one task mapping or a list of tasks."""
        with trace_context(get_trace_id()):
            try:
                document = yaml.safe_load(content)
            except yaml.YAMLError as e:
                return self._batch_fault(e)

            if document is None:
                tasks: list[Any] = []
            elif isinstance(document, Mapping):
                tasks = [document]
            elif isinstance(document, list):
                tasks = document
            else:
                return self._batch_fault(
                    TaskValidationError(
                        f"Task document must be a mapping or a list, got {type(document).__name__}"
                    )
                )

            summary = RunSummary(results=[self.execute_task(task) for task in tasks])
            self.logger.info(
                "Task batch completed",
                event="run_completed",
                total=summary.total,
                succeeded=summary.succeeded,
                failed=summary.failed,
            )
            return summary

    def run_script(self, content: str, filename: str = "<task-script>") -> RunSummary:
        """Evaluate a DSL script; its final value is the run's payload.

        Any exception raised by the script aborts the run.
        """
        with trace_context(get_trace_id()):
            try:
                result = evaluate_script(content, self.dsl, filename=filename)
            except Exception as e:
                return self._batch_fault(e, source=filename)
            self.logger.info("Script completed", event="run_completed", source=filename)
            return RunSummary(result=result, script=True)

    def _batch_fault(self, error: BaseException, **context: Any) -> RunSummary:
        self.logger.error("Task run failed", event="run_failed", error=error, **context)
        return RunSummary.fault(error)

    # -- tasks ---------------------------------------------------------------

    def execute_task(self, task: Any) -> TaskResult:
        """Execute one raw task; never raises."""
        try:
            descriptor = TaskDescriptor.from_mapping(task)
            self.logger.debug("Executing task", event="task_started", type=descriptor.type.value)
            try:
                payload = self._dispatch[descriptor.type](descriptor)
            except KopsError:
                raise
            except Exception as e:
                raise TaskExecutionFault(str(e), task) from e
        except Exception as e:
            self.logger.error("Task failed", event="task_failed", task=task, error=e)
            return TaskResult.failure(e, task)
        self.logger.info("Task completed", event="task_completed", type=descriptor.type.value)
        return TaskResult.success(payload)

    def run_command(self, command: str, timeout: float | None = None) -> bool:
        """Run a local shell command outside the plugin registry."""
        return self.dsl.run(command, timeout=timeout)

    def _system_check(self, task: TaskDescriptor) -> Any:
        return self.dsl.check("system", check_type=task.get("check_type", "all"))

    def _ssh(self, task: TaskDescriptor) -> Any:
        host = _require(task, "host")
        command = _require(task, "command")
        options = {key: task.get(key) for key in SSH_OPTION_KEYS}
        return self.dsl.ssh_exec(host, command, **options)

    def _k8s(self, task: TaskDescriptor) -> Any:
        return self.dsl.k8s(_require(task, "action"), **_options(task, "action"))

    def _notify(self, task: TaskDescriptor) -> Any:
        message = _require(task, "message")
        options = _options(task, "message")
        # A top-level platform wins over options.platform
        option_platform = options.pop("platform", None)
        platform = task.get("platform") or option_platform or "webhook"
        return self.dsl.notify(message, platform=platform, **options)

    def _gpt(self, task: TaskDescriptor) -> Any:
        return self.dsl.gpt_analyze(_require(task, "content"), **_options(task, "content", "log_content"))

    def _command(self, task: TaskDescriptor) -> bool:
        return self.run_command(_require(task, "command"), timeout=task.get("timeout"))
