"""Shared fixtures for kops-ai tests."""

import logging

import pytest

from kopsai.config.models import AgentConfig
from kopsai.core.context import AgentContext
from kopsai.core.log import ROOT_LOGGER, clear_trace_id
from kopsai.core.plugin import Plugin
from kopsai.core.registry import PluginRegistry


class StubPlugin(Plugin):
    """Plugin with a scripted probe and result that records its calls."""

    name = "stub"
    description = "Stub plugin"

    def __init__(self, context=None, name=None, result=None, probe=True, fault=None, version=None):
        if name:
            self.name = name
        if version:
            self.version = version
        super().__init__(context)
        self.result = result
        self.probe = probe
        self.fault = fault
        self.calls = []
        self.probe_calls = 0

    def _probe(self):
        self.probe_calls += 1
        if isinstance(self.probe, BaseException):
            raise self.probe
        return self.probe

    def execute(self, action, options):
        self.calls.append((action, dict(options)))
        if self.fault is not None:
            raise self.fault
        if callable(self.result):
            return self.result(action, options)
        return self.result


@pytest.fixture(autouse=True)
def _reset_kopsai_logging():
    yield
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        if getattr(handler, "_kopsai_handler", False):
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
    clear_trace_id()


@pytest.fixture
def config():
    return AgentConfig()


@pytest.fixture
def context(config):
    return AgentContext(config=config)


@pytest.fixture
def registry(context):
    return PluginRegistry(context)


@pytest.fixture
def make_plugin(context):
    """Build StubPlugin instances bound to the test context."""

    def _make(name="stub", **kwargs):
        return StubPlugin(context, name=name, **kwargs)

    return _make


@pytest.fixture
def log_events(caplog):
    """Capture kopsai log records and return their ``event`` fields."""
    caplog.set_level(logging.DEBUG, logger=ROOT_LOGGER)

    def _events(event=None):
        found = [
            record.context
            for record in caplog.records
            if isinstance(getattr(record, "context", None), dict) and "event" in record.context
        ]
        if event is None:
            return [c["event"] for c in found]
        return [c for c in found if c["event"] == event]

    return _events
