"""Orchestration core: plugin contract, registry, logging and errors."""

from .context import AgentContext
from .errors import (
    KopsError,
    PluginNotFound,
    PluginUnavailable,
    ScriptError,
    SourceNotFound,
    TaskExecutionFault,
    TaskValidationError,
    UnknownAction,
    UnknownTaskType,
    UnsupportedFormat,
)
from .plugin import Plugin, PluginInfo
from .registry import PluginRegistry, create_agent

__all__ = [
    "AgentContext",
    "KopsError",
    "Plugin",
    "PluginInfo",
    "PluginNotFound",
    "PluginRegistry",
    "PluginUnavailable",
    "ScriptError",
    "SourceNotFound",
    "TaskExecutionFault",
    "TaskValidationError",
    "UnknownAction",
    "UnknownTaskType",
    "UnsupportedFormat",
    "create_agent",
]
