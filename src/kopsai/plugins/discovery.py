"""Plugin discovery via Python entry points."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Entry point group name
PLUGIN_GROUP = "kopsai.plugins"


def _load_entry_points(group: str) -> list[Any]:
    """Load entry points for a given group."""
    try:
        from importlib.metadata import entry_points

        return list(entry_points(group=group))
    except Exception as e:
        logger.debug(f"Could not load entry points for {group}: {e}")
        return []


def discover_external_plugins() -> list[type]:
    """Discover and load external plugin classes.

    Third-party packages expose plugins with::

        [project.entry-points."kopsai.plugins"]
        my_plugin = "my_package.plugin:MyPlugin"

    Returns:
        List of plugin classes found via entry points.
    """
    from kopsai.core.plugin import Plugin

    plugins = []
    for ep in _load_entry_points(PLUGIN_GROUP):
        try:
            cls = ep.load()
        except Exception as e:
            logger.warning(f"Failed to load plugin '{ep.name}': {e}")
            continue
        if not (isinstance(cls, type) and issubclass(cls, Plugin)):
            logger.warning(f"Entry point '{ep.name}' is not a Plugin subclass")
            continue
        plugins.append(cls)
        logger.info(f"Discovered external plugin: {ep.name}")
    return plugins
