"""Tests for the k8s_agent plugin. kubectl is faked via subprocess.run."""

import json
from unittest.mock import MagicMock, patch

import pytest

from kopsai.config.models import AgentConfig
from kopsai.core.context import AgentContext
from kopsai.core.errors import TaskValidationError, UnknownAction
from kopsai.plugins.k8s_agent import K8sAgent, KubectlError

PODS = {
    "items": [
        {
            "metadata": {"name": "api-0", "namespace": "prod", "creationTimestamp": None},
            "status": {
                "phase": "Running",
                "containerStatuses": [
                    {"ready": True, "restartCount": 1},
                    {"ready": True, "restartCount": 2},
                ],
            },
        },
        {
            "metadata": {"name": "job-1", "namespace": "prod"},
            "status": {"phase": "Failed", "containerStatuses": [{"ready": False, "restartCount": 0}]},
        },
    ]
}

NODES = {
    "items": [
        {
            "metadata": {"name": "node-a"},
            "status": {
                "conditions": [{"type": "Ready", "status": "True"}],
                "capacity": {"cpu": "4"},
                "allocatable": {"cpu": "3800m"},
            },
        },
        {"metadata": {"name": "node-b"}, "status": {"conditions": [{"type": "Ready", "status": "False"}]}},
    ]
}


def _kubectl_output(payload, returncode=0, stderr=""):
    stdout = payload if isinstance(payload, str) else json.dumps(payload)
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def plugin(context):
    return K8sAgent(context)


class TestActions:
    @patch("subprocess.run")
    def test_pods(self, mock_run, plugin):
        mock_run.return_value = _kubectl_output(PODS)
        pods = plugin.execute("pods", {"namespace": "prod"})

        assert [p["name"] for p in pods] == ["api-0", "job-1"]
        assert pods[0]["ready"] is True
        assert pods[0]["restart_count"] == 3
        assert pods[1]["status"] == "Failed"
        assert pods[1]["ready"] is False
        assert mock_run.call_args[0][0] == ["kubectl", "get", "pods", "-n", "prod", "-o", "json"]

    @patch("subprocess.run")
    def test_namespace_defaults(self, mock_run, plugin):
        mock_run.return_value = _kubectl_output({"items": []})
        plugin.execute("services", {})
        assert mock_run.call_args[0][0][:5] == ["kubectl", "get", "services", "-n", "default"]

    @patch("subprocess.run")
    def test_nodes(self, mock_run, plugin):
        mock_run.return_value = _kubectl_output(NODES)
        nodes = plugin.execute("nodes", {})
        assert [(n["name"], n["status"]) for n in nodes] == [("node-a", "True"), ("node-b", "False")]
        assert nodes[0]["capacity"] == {"cpu": "4"}

    @patch("subprocess.run")
    def test_logs(self, mock_run, plugin):
        mock_run.return_value = _kubectl_output("line1\nline2\n")
        result = plugin.execute("logs", {"pod": "api-0", "namespace": "prod", "tail": 5})
        assert result == {"pod": "api-0", "namespace": "prod", "logs": "line1\nline2\n", "tail_lines": 5}
        assert mock_run.call_args[0][0] == ["kubectl", "logs", "api-0", "-n", "prod", "--tail=5"]

    def test_logs_requires_pod(self, plugin):
        with pytest.raises(TaskValidationError):
            plugin.execute("logs", {})

    @patch("subprocess.run")
    def test_status(self, mock_run, plugin):
        mock_run.side_effect = [_kubectl_output(NODES), _kubectl_output(PODS)]
        assert plugin.execute("status", {}) == {
            "nodes": {"total": 2, "ready": 1},
            "pods": {"total": 2, "running": 1, "pending": 0, "failed": 1},
        }

    def test_unknown_action(self, plugin):
        with pytest.raises(UnknownAction):
            plugin.execute("deployments", {})


class TestKubectl:
    @patch("subprocess.run")
    def test_kubeconfig_and_context(self, mock_run):
        config = AgentConfig(k8s_config_path="/etc/kube/config", k8s_context="staging")
        plugin = K8sAgent(AgentContext(config=config))
        mock_run.return_value = _kubectl_output({"items": []})
        plugin.execute("nodes", {})
        assert mock_run.call_args[0][0][:5] == [
            "kubectl",
            "--kubeconfig",
            "/etc/kube/config",
            "--context",
            "staging",
        ]

    @patch("subprocess.run")
    def test_failure_raises(self, mock_run, plugin):
        mock_run.return_value = _kubectl_output("", returncode=1, stderr="Forbidden\n")
        with pytest.raises(KubectlError, match="Forbidden"):
            plugin.execute("pods", {})

    @patch("subprocess.run", side_effect=FileNotFoundError)
    def test_missing_binary(self, mock_run, plugin):
        with pytest.raises(KubectlError, match="not found"):
            plugin.execute("pods", {})


class TestProbe:
    def test_unavailable_without_kubectl(self, plugin):
        with patch("kopsai.plugins.k8s_agent.shutil.which", return_value=None):
            assert plugin.available() is False

    @patch("subprocess.run")
    def test_available_when_version_succeeds(self, mock_run, plugin):
        mock_run.return_value = _kubectl_output({"clientVersion": {}})
        with patch("kopsai.plugins.k8s_agent.shutil.which", return_value="/usr/bin/kubectl"):
            assert plugin.available() is True

    @patch("subprocess.run")
    def test_unavailable_when_cluster_unreachable(self, mock_run, plugin):
        mock_run.return_value = _kubectl_output("", returncode=1, stderr="connection refused")
        with patch("kopsai.plugins.k8s_agent.shutil.which", return_value="/usr/bin/kubectl"):
            assert plugin.available() is False
