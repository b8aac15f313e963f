"""Verbs available to task scripts, and the restricted script evaluator.

A task script is a small Python program evaluated with only the DSL verbs
and a handful of safe builtins in scope::

    with task("K8sMonitor"):
        pods = k8s("pods", namespace="production")
        failed = [p for p in pods if p["status"] == "Failed"]
        if failed:
            notify(f"{len(failed)} failed pods in production", level="warning")

    check("memory")

A ``result`` variable assigned by the script becomes the run's payload;
without one, the value of the final expression statement is used.
Imports, ``global``/``nonlocal``, dunder names and underscore-prefixed
attributes are rejected before evaluation.
This keeps scripts to the verb set; it is not a security boundary.
"""

import ast
import builtins
import subprocess
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from kopsai.core.errors import ScriptError

if TYPE_CHECKING:
    from .task_runner import TaskRunner

SAFE_BUILTINS = {
    name: getattr(builtins, name)
    for name in (
        "abs", "all", "any", "bool", "dict", "enumerate", "filter", "float",
        "int", "isinstance", "len", "list", "map", "max", "min", "print",
        "range", "reversed", "round", "set", "sorted", "str", "sum", "tuple",
        "zip", "Exception", "KeyError", "RuntimeError", "ValueError",
    )
}

RESULT_VARIABLE = "result"

CHECK_TYPES = ("cpu", "memory", "disk", "services")


class ScriptContext:
    """DSL verbs bound to one :class:`TaskRunner`.

    Every capability verb resolves to exactly one ``registry.execute``
    call; :meth:`run` is the exception and runs a local shell command.
    """

    def __init__(self, runner: "TaskRunner") -> None:
        self.runner = runner
        self.logger = runner.logger
        self._hosts: list[str] = []

    @property
    def registry(self):
        return self.runner.registry

    # -- scoping ---------------------------------------------------------

    @contextmanager
    def _scope(self, kind: str, **fields: Any) -> Iterator[None]:
        self.logger.info(f"Executing {kind}", event=f"{kind}_started", **fields)
        try:
            yield
        except Exception as e:
            self.logger.error(f"{kind.capitalize()} failed", event=f"{kind}_failed", error=e, **fields)
            raise
        self.logger.info(f"{kind.capitalize()} completed", event=f"{kind}_completed", **fields)

    def _scoped(self, kind: str, block: Callable[[], Any] | None, **fields: Any) -> Any:
        scope = self._scope(kind, **fields)
        if block is None:
            return scope
        with scope:
            return block()

    def task(self, name: str, block: Callable[[], Any] | None = None) -> Any:
        """Group work under a named task for logging.

        With ``block``, calls it and returns its value; without, returns a
        context manager for ``with task(name): ...``.
        """
        return self._scoped("task", block, name=name)

    def on(self, host: str, block: Callable[[], Any] | None = None) -> Any:
        """Group work under a host; :meth:`ssh_exec` defaults to that host."""
        if block is None:
            return self._host_scope(host)
        with self._host_scope(host):
            return block()

    @contextmanager
    def _host_scope(self, host: str) -> Iterator[None]:
        self._hosts.append(host)
        try:
            with self._scope("host", host=host):
                yield
        finally:
            self._hosts.pop()

    def if_over_threshold(self, block: Callable[[], Any] | None = None) -> Any:
        """Evaluate ``block``.

        No threshold is checked: the block always runs, and any condition
        belongs in the block body.
        """
        return self._scoped("threshold", block)

    # -- capability shortcuts ----------------------------------------------

    def check(self, type: str = "system", check_type: str | None = None) -> Any:
        """Run a system check: ``system`` (all, or ``check_type``), ``cpu``,
        ``memory``, ``disk`` or ``services``."""
        kind = str(type)
        if kind == "system":
            return self.registry.execute("system_check", check_type or "all", {})
        if kind in CHECK_TYPES or kind == "all":
            return self.registry.execute("system_check", kind, {})
        raise ValueError(f"Unknown check type: {type}")

    def ssh_exec(self, host: str | None = None, command: str | None = None, **options: Any) -> Any:
        host = host or (self._hosts[-1] if self._hosts else None)
        opts = {k: v for k, v in options.items() if v is not None}
        return self.registry.execute("ssh_remote", "exec", {"host": host, "command": command, **opts})

    def k8s(self, action: str, **options: Any) -> Any:
        return self.registry.execute("k8s_agent", action, options)

    def notify(self, message: str, platform: str = "webhook", **options: Any) -> Any:
        return self.registry.execute("notifier", platform, {"message": message, **options})

    def gpt_analyze(self, content: str, **options: Any) -> Any:
        return self.registry.execute("gpt_support", "analyze_log", {"log_content": content, **options})

    def prometheus(self, action: str, **options: Any) -> Any:
        return self.registry.execute("prometheus_agent", action, options)

    def jenkins(self, action: str, **options: Any) -> Any:
        return self.registry.execute("jenkins_agent", action, options)

    def logs(self, action: str, **options: Any) -> Any:
        return self.registry.execute("log_agent", action, options)

    # -- local commands and variables -------------------------------------

    def run(self, command: str, timeout: float | None = None) -> bool:
        """Run a shell command synchronously; True if it exited with 0.

        Bypasses the plugin registry.
        """
        timeout = timeout or self.runner.context.config.command_timeout
        self.logger.info("Executing command", event="command_started", command=command)
        try:
            completed = subprocess.run(command, shell=True, timeout=timeout)
        except subprocess.TimeoutExpired:
            self.logger.error(
                "Command timed out", event="command_failed", command=command, timeout=timeout
            )
            return False
        success = completed.returncode == 0
        self.logger.info(
            "Command completed",
            event="command_completed",
            command=command,
            exit_code=completed.returncode,
            success=success,
        )
        return success

    def set_variable(self, name: Any, value: Any) -> Any:
        self.runner.variables[str(name)] = value
        return value

    def get_variable(self, name: Any, default: Any = None) -> Any:
        return self.runner.variables.get(str(name), default)

    def log(self, message: str, **context: Any) -> None:
        self.logger.info(message, event="script_log", **context)

    def namespace(self) -> dict[str, Any]:
        """Names visible to a script."""
        verbs = (
            "task", "on", "if_over_threshold", "check", "ssh_exec", "k8s",
            "notify", "gpt_analyze", "prometheus", "jenkins", "logs", "run",
            "set_variable", "get_variable", "log",
        )
        ns: dict[str, Any] = {name: getattr(self, name) for name in verbs}
        ns["__builtins__"] = dict(SAFE_BUILTINS)
        return ns


class _ScriptValidator(ast.NodeVisitor):
    def _reject(self, node: ast.AST, what: str) -> None:
        line = getattr(node, "lineno", "?")
        raise ScriptError(f"{what} is not allowed in task scripts (line {line})")

    def visit_Import(self, node: ast.Import) -> None:
        self._reject(node, "import")

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        self._reject(node, "import")

    def visit_Global(self, node: ast.Global) -> None:
        self._reject(node, "global")

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        self._reject(node, "nonlocal")

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("__"):
            self._reject(node, f"name '{node.id}'")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("_"):
            self._reject(node, f"attribute '{node.attr}'")
        self.generic_visit(node)


def compile_script(source: str, filename: str = "<task-script>") -> ast.Module:
    """Parse and validate a task script.

    Raises:
        ScriptError: On a syntax error or a disallowed construct.
    """
    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as e:
        raise ScriptError(f"Invalid task script: {e}") from e
    _ScriptValidator().visit(tree)
    return tree


def evaluate_script(source: str, context: ScriptContext, filename: str = "<task-script>") -> Any:
    """Evaluate ``source`` with the verbs of ``context`` in scope.

    Returns:
        The ``result`` variable if the script assigned one, else the value
        of the final expression statement, else None.
    """
    tree = compile_script(source, filename)
    namespace = context.namespace()

    tail = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        tail = ast.Expression(body=tree.body.pop().value)

    exec(compile(tree, filename, "exec"), namespace)
    value = eval(compile(tail, filename, "eval"), namespace) if tail is not None else None
    return namespace.get(RESULT_VARIABLE, value)
