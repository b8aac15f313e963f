"""Configuration loading for kops-ai."""

from .loader import ConfigError, ConfigFileError, load_agent_config, load_config, load_yaml
from .models import AgentConfig

__all__ = [
    "AgentConfig",
    "ConfigError",
    "ConfigFileError",
    "load_agent_config",
    "load_config",
    "load_yaml",
]
