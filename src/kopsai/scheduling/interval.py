"""In-process periodic execution of a task file."""

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from kopsai.core.context import AgentContext
from kopsai.core.registry import PluginRegistry, create_agent
from kopsai.runner.models import RunSummary
from kopsai.runner.task_runner import TaskRunner

logger = logging.getLogger(__name__)


class IntervalRunner(threading.Thread):
    """Daemon thread that runs a task file every ``interval_s`` seconds.

    The plugin registry is built once and shared by every run; a new
    :class:`TaskRunner` is built for each run, so script variables never
    leak between runs. A run that raises is logged and the loop
    continues.
    """

    def __init__(
        self,
        task_file: str | Path,
        interval_s: float,
        context: AgentContext | None = None,
        registry: PluginRegistry | None = None,
        runner_factory: Callable[[], TaskRunner] | None = None,
        on_result: Callable[[RunSummary], None] | None = None,
        max_runs: int | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError(f"Interval must be positive, got {interval_s}")
        super().__init__(daemon=True, name="kopsai-interval")
        self.task_file = Path(task_file)
        self.interval_s = interval_s
        if context is None:
            context = registry.context if registry is not None else AgentContext()
        self.context = context
        if registry is None and runner_factory is None:
            registry = create_agent(context)
        self.registry = registry
        self.runner_factory = runner_factory or self._new_runner
        self.on_result = on_result
        self.max_runs = max_runs
        self.runs = 0
        self._stop_event = threading.Event()

    def _new_runner(self) -> TaskRunner:
        return TaskRunner(registry=self.registry, context=self.context)

    def run(self) -> None:
        while not self._stop_event.is_set():
            self.run_once()
            if self.max_runs is not None and self.runs >= self.max_runs:
                break
            self._stop_event.wait(self.interval_s)

    def run_once(self) -> RunSummary | None:
        """Execute the task file once with a fresh runner."""
        self.runs += 1
        try:
            summary = self.runner_factory().run(self.task_file)
        except Exception as e:
            logger.error(f"Scheduled run of {self.task_file} failed: {e}")
            return None
        if self.on_result:
            try:
                self.on_result(summary)
            except Exception as e:
                logger.warning(f"Result handler failed: {e}")
        return summary

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()
