"""Plugin registration, lookup and execution."""

from collections.abc import Mapping
from typing import Any

from .context import AgentContext
from .errors import PluginNotFound, PluginUnavailable
from .log import get_trace_id, trace_context
from .plugin import Plugin, PluginInfo

SENSITIVE_KEYS = frozenset({"password", "token", "api_key", "bot_token", "secret"})


def mask_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``options`` with credential values masked."""
    return {
        str(key): "***" if str(key).lower() in SENSITIVE_KEYS and value else value
        for key, value in options.items()
    }


class PluginRegistry:
    """Owns plugin instances and executes them on behalf of callers.

    Every execution goes through :meth:`execute`, which probes the plugin,
    logs start/completion/failure and re-raises plugin faults unchanged.
    Registration is expected to finish before concurrent use; lookups and
    executions never mutate the plugin map.
    """

    def __init__(self, context: AgentContext | None = None) -> None:
        self.context = context or AgentContext()
        self.logger = self.context.get_logger("agent")
        self._plugins: dict[str, Plugin] = {}

    def register(self, plugin: Plugin) -> None:
        """Register a plugin, replacing any plugin with the same name."""
        self._plugins[plugin.name] = plugin
        self.logger.info(
            "Plugin registered",
            event="plugin_registered",
            name=plugin.name,
            version=plugin.version,
        )

    def get(self, name: str) -> Plugin | None:
        """Get a plugin by exact name, returning None if not found."""
        return self._plugins.get(name)

    lookup = get

    def get_plugin(self, name: str) -> Plugin:
        """Get a plugin by name.

        Raises:
            PluginNotFound: If no plugin is registered under ``name``.
        """
        plugin = self._plugins.get(name)
        if plugin is None:
            raise PluginNotFound(name, self.list_all())
        return plugin

    def info(self, name: str) -> PluginInfo | None:
        """Return the descriptor of a plugin, or None if not registered."""
        plugin = self.get(name)
        return plugin.info() if plugin else None

    def list_plugins(self) -> list[PluginInfo]:
        """Describe all plugins in registration order, probing each now."""
        return [plugin.info() for plugin in self._plugins.values()]

    def list_all(self) -> list[str]:
        """List all registered plugin names (available or not)."""
        return list(self._plugins.keys())

    def list_available(self) -> list[str]:
        """List the names of plugins whose probe currently succeeds."""
        return [name for name, plugin in self._plugins.items() if plugin.available()]

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def execute(
        self,
        name: str,
        action: Any = None,
        options: Mapping[str, Any] | None = None,
        trace_id: str | None = None,
    ) -> Any:
        """Execute ``action`` on the named plugin.

        Args:
            name: Registered plugin name.
            action: Action the plugin interprets (string or action enum).
            options: Action options.
            trace_id: Correlation id for the log events of this call. The
                current thread's trace id is kept when omitted, and a fresh
                one is bound for the call when the thread has none.

        Returns:
            The plugin's return value, unchanged.

        Raises:
            PluginNotFound: If ``name`` is not registered.
            PluginUnavailable: If the plugin's probe returns False. The
                plugin's ``execute`` is not called in that case.
            Exception: Any fault raised by the plugin, re-raised after logging.
        """
        options = dict(options or {})
        plugin = self._plugins.get(name)
        if plugin is None:
            self.logger.error("Plugin not found", event="plugin_not_found", plugin=name)
            raise PluginNotFound(name, self.list_all())

        if not plugin.available():
            self.logger.error(
                "Plugin not available", event="plugin_unavailable", plugin=name
            )
            raise PluginUnavailable(name)

        with trace_context(trace_id or get_trace_id()):
            self.logger.info(
                "Executing plugin",
                event="execution_started",
                plugin=name,
                action=getattr(action, "value", action),
                options=mask_options(options),
            )
            try:
                result = plugin.execute(action, options)
            except Exception as e:
                self.logger.error(
                    "Plugin execution failed",
                    event="execution_failed",
                    plugin=name,
                    error=e,
                )
                raise
            self.logger.info(
                "Plugin execution completed", event="execution_completed", plugin=name
            )
            return result

    def auto_discover(self) -> None:
        """Register the built-in plugins, then external entry-point plugins.

        External plugin classes are constructed with this registry's
        context; one that fails to load or construct is logged and skipped.
        """
        from kopsai.plugins import BUILTIN_PLUGINS
        from kopsai.plugins.discovery import discover_external_plugins

        for plugin_cls in BUILTIN_PLUGINS:
            self.register(plugin_cls(self.context))

        for plugin_cls in discover_external_plugins():
            try:
                self.register(plugin_cls(self.context))
            except Exception as e:
                self.logger.warn(
                    "Failed to construct external plugin",
                    plugin=getattr(plugin_cls, "name", repr(plugin_cls)),
                    error=str(e),
                )

    def clear(self) -> None:
        """Remove all registered plugins (for testing)."""
        self._plugins.clear()


def create_agent(context: AgentContext | None = None) -> PluginRegistry:
    """Create a registry populated with all discoverable plugins."""
    registry = PluginRegistry(context)
    registry.auto_discover()
    return registry
