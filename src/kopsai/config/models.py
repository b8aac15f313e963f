"""Pydantic models for kops-ai configuration."""

from typing import Any

from pydantic import BaseModel, Field


class AgentConfig(BaseModel):
    """Settings shared by the agent, the task runner and the built-in plugins."""

    log_level: str = "info"
    service_name: str = "kops-ai"

    # AI assistant
    openai_api_key: str | None = None
    openai_model: str = "gpt-4"
    openai_base_url: str = "https://api.openai.com"

    # Metrics / CI
    prometheus_url: str | None = None
    jenkins_url: str | None = None
    jenkins_username: str | None = None
    jenkins_token: str | None = None

    # Kubernetes
    k8s_config_path: str | None = None
    k8s_context: str | None = None

    # Notifications
    notification_webhook: str | None = None
    dingtalk_webhook: str | None = None
    feishu_webhook: str | None = None
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None

    # Remote execution
    ssh_username: str | None = None
    ssh_timeout: int = Field(default=30, ge=1)
    ssh_retries: int = Field(default=3, ge=0)

    command_timeout: float | None = None
    http_timeout: float = Field(default=10.0, gt=0)

    def get(self, key: str, default: Any = None) -> Any:
        """Key-based accessor; unknown or unset keys return ``default``."""
        value = getattr(self, key, None)
        return default if value is None else value
