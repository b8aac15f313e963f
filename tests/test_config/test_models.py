"""Tests for configuration models."""

import pytest
from pydantic import ValidationError

from kopsai.config.models import AgentConfig


class TestAgentConfig:
    def test_defaults(self):
        config = AgentConfig()
        assert config.openai_model == "gpt-4"
        assert config.openai_base_url == "https://api.openai.com"
        assert config.ssh_retries == 3
        assert config.command_timeout is None
        assert config.http_timeout == 10.0

    def test_get(self):
        config = AgentConfig(jenkins_url="http://ci")
        assert config.get("jenkins_url") == "http://ci"
        assert config.get("jenkins_token", "none") == "none"
        assert config.get("no_such_key", 1) == 1

    @pytest.mark.parametrize("field,value", [("ssh_timeout", 0), ("ssh_retries", -1), ("http_timeout", 0)])
    def test_bounds(self, field, value):
        with pytest.raises(ValidationError):
            AgentConfig(**{field: value})
