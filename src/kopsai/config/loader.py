"""YAML configuration file loading with Pydantic validation."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .models import AgentConfig

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_CONFIG_PATH = Path("config") / "kops.yml"
CONFIG_ENV_VAR = "KOPS_CONFIG"

# Environment variable -> AgentConfig field
ENV_VARS = {
    "LOG_LEVEL": "log_level",
    "SERVICE_NAME": "service_name",
    "OPENAI_API_KEY": "openai_api_key",
    "OPENAI_MODEL": "openai_model",
    "OPENAI_BASE_URL": "openai_base_url",
    "PROMETHEUS_URL": "prometheus_url",
    "JENKINS_URL": "jenkins_url",
    "JENKINS_USERNAME": "jenkins_username",
    "JENKINS_TOKEN": "jenkins_token",
    "K8S_CONFIG_PATH": "k8s_config_path",
    "K8S_CONTEXT": "k8s_context",
    "NOTIFICATION_WEBHOOK": "notification_webhook",
    "DINGTALK_WEBHOOK": "dingtalk_webhook",
    "FEISHU_WEBHOOK": "feishu_webhook",
    "TELEGRAM_BOT_TOKEN": "telegram_bot_token",
    "TELEGRAM_CHAT_ID": "telegram_chat_id",
    "SSH_USERNAME": "ssh_username",
    "SSH_TIMEOUT": "ssh_timeout",
    "SSH_RETRIES": "ssh_retries",
    "COMMAND_TIMEOUT": "command_timeout",
    "HTTP_TIMEOUT": "http_timeout",
}


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""


class ConfigFileError(ConfigError):
    """Raised when a config file exists but cannot be read or parsed."""


def load_yaml(path: Path) -> dict:
    """Load a YAML file and return its contents as a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML contents.

    Raises:
        ConfigError: If the file does not exist.
        ConfigFileError: If the file cannot be read or parsed.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}") from None
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigFileError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError(f"Expected a mapping at the top of {path}")
    return data


def load_config(
    path: Path | None,
    model_class: type[T],
    overrides: Mapping[str, Any] | None = None,
) -> T:
    """Load and validate a YAML config file against a Pydantic model.

    Args:
        path: YAML file, or None to validate ``overrides`` alone.
        model_class: Pydantic model to build.
        overrides: Values applied on top of the file contents.

    Raises:
        ConfigError: If the file is missing, unparsable or fails validation.
    """
    data = load_yaml(path) if path is not None else {}
    data.update(overrides or {})
    try:
        return model_class(**data)
    except ValidationError as e:
        source = f" for {path}" if path is not None else ""
        raise ConfigError(f"Configuration validation failed{source}: {e}") from e


def _from_env(env: Mapping[str, str]) -> dict[str, Any]:
    return {
        field: env[var]
        for var, field in ENV_VARS.items()
        if env.get(var) not in (None, "")
    }


def load_agent_config(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> AgentConfig:
    """Build the agent configuration.

    Sources are merged in order of increasing precedence: model defaults,
    the YAML file, then environment variables. A file that exists but
    cannot be parsed is logged and skipped.

    Args:
        path: Config file. Defaults to ``$KOPS_CONFIG`` or ``config/kops.yml``.
            An explicitly given path must exist; the default may be absent.
        env: Environment mapping, ``os.environ`` when omitted.

    Raises:
        ConfigError: If an explicit path is missing or the merged values
            fail validation.
    """
    env = os.environ if env is None else env
    explicit = path is not None
    config_path: Path | None = Path(path or env.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    overrides = _from_env(env)

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Configuration file not found: {config_path}")
        config_path = None

    try:
        return load_config(config_path, AgentConfig, overrides)
    except ConfigFileError as e:
        logger.warning(f"Failed to load config file: {e}")
        return load_config(None, AgentConfig, overrides)
