"""Tests for the HTTP-backed plugins: prometheus_agent, jenkins_agent, gpt_support.

Requests are served by an ``httpx.MockTransport`` swapped in through each
plugin's ``_client`` factory.
"""

import json
from unittest.mock import patch

import httpx
import pytest

from kopsai.config.models import AgentConfig
from kopsai.core.context import AgentContext
from kopsai.core.errors import TaskValidationError
from kopsai.plugins.gpt_support import GPTSupport
from kopsai.plugins.jenkins_agent import JenkinsAgent
from kopsai.plugins.prometheus_agent import PrometheusAgent


def mock_transport(plugin, handler):
    """Route the plugin's HTTP calls to ``handler``; returns captured requests."""
    requests = []

    def _handle(request):
        requests.append(request)
        return handler(request)

    def _client(timeout=None):
        return httpx.Client(
            base_url=(plugin.base_url() or "").rstrip("/"),
            headers=plugin._headers(),
            auth=plugin._auth(),
            transport=httpx.MockTransport(_handle),
        )

    return patch.object(plugin, "_client", side_effect=_client), requests


def _ctx(**config):
    return AgentContext(config=AgentConfig(**config))


class TestPrometheusAgent:
    @pytest.fixture
    def plugin(self):
        return PrometheusAgent(_ctx(prometheus_url="http://prom:9090/"))

    def test_query(self, plugin):
        body = {"status": "success", "data": {"result": [{"value": [0, "1"]}]}}
        patcher, requests = mock_transport(plugin, lambda r: httpx.Response(200, json=body))
        with patcher:
            result = plugin.execute("query", {"query": "up"})

        assert result == {"query": "up", "result": [{"value": [0, "1"]}], "status": "success"}
        assert requests[0].url.path == "/api/v1/query"
        assert requests[0].url.params["query"] == "up"

    def test_query_range_defaults_step(self, plugin):
        body = {"status": "success", "data": {"result": []}}
        patcher, requests = mock_transport(plugin, lambda r: httpx.Response(200, json=body))
        with patcher:
            plugin.execute("query_range", {"query": "up", "start": "1", "end": "2"})
        params = requests[0].url.params
        assert requests[0].url.path == "/api/v1/query_range"
        assert (params["start"], params["end"], params["step"]) == ("1", "2", "60s")

    def test_query_requires_query(self, plugin):
        with pytest.raises(TaskValidationError):
            plugin.execute("query", {})

    @pytest.mark.parametrize(
        "action,path,data,key",
        [
            ("alerts", "/api/v1/alerts", {"alerts": [{"name": "HighCPU"}]}, "alerts"),
            ("targets", "/api/v1/targets", {"activeTargets": [{"health": "up"}]}, "targets"),
            ("rules", "/api/v1/rules", {"groups": [{"name": "node"}]}, "rules"),
        ],
    )
    def test_listing_actions(self, plugin, action, path, data, key):
        body = {"status": "success", "data": data}
        patcher, requests = mock_transport(plugin, lambda r: httpx.Response(200, json=body))
        with patcher:
            result = plugin.execute(action, {})
        assert requests[0].url.path == path
        assert result[key] == next(iter(data.values()))

    def test_http_error_raises(self, plugin):
        patcher, _ = mock_transport(plugin, lambda r: httpx.Response(503))
        with patcher, pytest.raises(httpx.HTTPStatusError):
            plugin.execute("alerts", {})

    def test_probe(self, plugin):
        body = {"status": "success", "data": {"result": []}}
        patcher, requests = mock_transport(plugin, lambda r: httpx.Response(200, json=body))
        with patcher:
            assert plugin.available() is True
        assert requests[0].url.params["query"] == "up"

    def test_probe_failure(self, plugin):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        patcher, _ = mock_transport(plugin, refuse)
        with patcher:
            assert plugin.available() is False

    def test_unconfigured_is_unavailable(self):
        assert PrometheusAgent(_ctx()).available() is False


class TestJenkinsAgent:
    @pytest.fixture
    def plugin(self):
        return JenkinsAgent(
            _ctx(jenkins_url="http://ci:8080", jenkins_username="bot", jenkins_token="t0k")
        )

    def test_jobs(self, plugin):
        body = {"jobs": [{"name": "deploy", "url": "u", "color": "blue", "builds": [{"number": 7}]}]}
        patcher, requests = mock_transport(plugin, lambda r: httpx.Response(200, json=body))
        with patcher:
            result = plugin.execute("jobs", {})
        assert result == {
            "jobs": [{"name": "deploy", "url": "u", "status": "blue", "last_build": {"number": 7}}]
        }
        assert requests[0].headers["authorization"].startswith("Basic ")

    def test_build_triggered(self, plugin):
        patcher, requests = mock_transport(plugin, lambda r: httpx.Response(201))
        with patcher:
            result = plugin.execute("build", {"job_name": "deploy"})
        assert result["success"] is True
        assert requests[0].method == "POST"
        assert requests[0].url.path == "/job/deploy/build"

    def test_build_with_parameters(self, plugin):
        patcher, requests = mock_transport(plugin, lambda r: httpx.Response(201))
        with patcher:
            plugin.execute("build", {"job_name": "deploy", "parameters": {"ENV": "prod"}})
        assert requests[0].url.path == "/job/deploy/buildWithParameters"
        assert requests[0].content == b"ENV=prod"

    def test_build_rejected(self, plugin):
        patcher, _ = mock_transport(plugin, lambda r: httpx.Response(403, text="denied"))
        with patcher:
            result = plugin.execute("build", {"job_name": "deploy"})
        assert result == {"success": False, "job_name": "deploy", "error": "HTTP 403: denied"}

    def test_status_defaults_to_last_build(self, plugin):
        body = {"number": 12, "result": "SUCCESS", "timestamp": 1, "duration": 2, "url": "u"}
        patcher, requests = mock_transport(plugin, lambda r: httpx.Response(200, json=body))
        with patcher:
            result = plugin.execute("status", {"job_name": "deploy"})
        assert requests[0].url.path == "/job/deploy/lastBuild/api/json"
        assert result["build_number"] == 12
        assert result["result"] == "SUCCESS"

    def test_logs(self, plugin):
        patcher, requests = mock_transport(plugin, lambda r: httpx.Response(200, text="Finished"))
        with patcher:
            result = plugin.execute("logs", {"job_name": "deploy", "build_number": 3})
        assert requests[0].url.path == "/job/deploy/3/consoleText"
        assert result["logs"] == "Finished"

    def test_requires_job_name(self, plugin):
        with pytest.raises(TaskValidationError, match="job_name"):
            plugin.execute("status", {})


class TestGPTSupport:
    @pytest.fixture
    def plugin(self):
        return GPTSupport(_ctx(openai_api_key="sk-test", openai_model="gpt-4o"))

    @staticmethod
    def _completion(content="All good", tokens=42):
        return httpx.Response(
            200,
            json={"choices": [{"message": {"content": content}}], "usage": {"total_tokens": tokens}},
        )

    def test_analyze_log(self, plugin):
        patcher, requests = mock_transport(plugin, lambda r: self._completion())
        with patcher:
            result = plugin.execute("analyze_log", {"log_content": "OOMKilled", "context": "api"})

        assert result == {"analysis": "All good", "model": "gpt-4o", "tokens_used": 42}
        request = requests[0]
        assert request.url.path == "/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        payload = json.loads(request.content)
        assert payload["model"] == "gpt-4o"
        assert "OOMKilled" in payload["messages"][0]["content"]

    def test_generate_script_includes_language(self, plugin):
        patcher, requests = mock_transport(plugin, lambda r: self._completion("echo hi"))
        with patcher:
            result = plugin.execute("generate_script", {"task": "rotate logs", "language": "python"})
        assert result["script"] == "echo hi"
        assert result["language"] == "python"
        assert json.loads(requests[0].content)["max_tokens"] == 1500

    @pytest.mark.parametrize(
        "action,key", [("suggest_fix", "suggestion"), ("explain_command", "explanation")]
    )
    def test_result_keys(self, plugin, action, key):
        required = {"suggest_fix": "issue", "explain_command": "command"}[action]
        patcher, _ = mock_transport(plugin, lambda r: self._completion())
        with patcher:
            result = plugin.execute(action, {required: "x"})
        assert result[key] == "All good"

    def test_missing_input(self, plugin):
        with pytest.raises(TaskValidationError, match="log_content"):
            plugin.execute("analyze_log", {})

    def test_api_error(self, plugin):
        patcher, _ = mock_transport(plugin, lambda r: httpx.Response(401, text="bad key"))
        with patcher, pytest.raises(RuntimeError, match="401"):
            plugin.execute("analyze_log", {"log_content": "x"})

    def test_probe_needs_only_api_key(self, plugin):
        with patch.object(plugin, "_client", side_effect=AssertionError("no network")):
            assert plugin.available() is True
        assert GPTSupport(_ctx()).available() is False
