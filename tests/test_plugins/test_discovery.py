"""Tests for plugin discovery."""

from unittest.mock import MagicMock, patch

from kopsai.core.plugin import Plugin
from kopsai.plugins.discovery import PLUGIN_GROUP, _load_entry_points, discover_external_plugins


class ExamplePlugin(Plugin):
    name = "example"

    def execute(self, action, options):
        return None


def _entry_point(name, loaded=None, error=None):
    ep = MagicMock()
    ep.name = name
    if error is not None:
        ep.load.side_effect = error
    else:
        ep.load.return_value = loaded
    return ep


class TestLoadEntryPoints:
    def test_returns_list_when_no_plugins(self):
        # In a test env there are no kopsai plugins installed
        assert isinstance(_load_entry_points(PLUGIN_GROUP), list)

    def test_returns_empty_on_exception(self):
        with patch("importlib.metadata.entry_points", side_effect=Exception("fail")):
            assert _load_entry_points(PLUGIN_GROUP) == []


class TestDiscoverExternalPlugins:
    def test_loads_plugin_class(self):
        with patch(
            "kopsai.plugins.discovery._load_entry_points",
            return_value=[_entry_point("example", ExamplePlugin)],
        ):
            assert discover_external_plugins() == [ExamplePlugin]

    def test_skips_load_failure(self):
        with patch(
            "kopsai.plugins.discovery._load_entry_points",
            return_value=[_entry_point("broken", error=ImportError("missing"))],
        ):
            assert discover_external_plugins() == []

    def test_skips_non_plugin_objects(self):
        eps = [
            _entry_point("not_a_class", loaded=lambda: None),
            _entry_point("wrong_base", loaded=type("Other", (), {})),
            _entry_point("example", loaded=ExamplePlugin),
        ]
        with patch("kopsai.plugins.discovery._load_entry_points", return_value=eps):
            assert discover_external_plugins() == [ExamplePlugin]
