"""Kubernetes cluster inspection through the kubectl CLI."""

import json
import shutil
import subprocess
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from kopsai.core.errors import KopsError, TaskValidationError
from kopsai.core.plugin import Plugin


class KubectlError(KopsError):
    """Raised when a kubectl invocation fails."""


class K8sAction(str, Enum):
    PODS = "pods"
    NODES = "nodes"
    SERVICES = "services"
    LOGS = "logs"
    STATUS = "status"


def _age_seconds(timestamp: str | None) -> float:
    if not timestamp:
        return 0.0
    created = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    return round((datetime.now(timezone.utc) - created).total_seconds(), 1)


def _node_ready(node: dict[str, Any]) -> str:
    for condition in node.get("status", {}).get("conditions", []):
        if condition.get("type") == "Ready":
            return condition.get("status", "Unknown")
    return "Unknown"


class K8sAgent(Plugin):
    """Query Kubernetes cluster status, pods and resources.

    All calls shell out to ``kubectl`` with ``-o json``; no Kubernetes SDK
    dependency is required.
    """

    name = "k8s_agent"
    description = "Query Kubernetes cluster status, pods, and resources"
    version = "1.0.0"

    def _probe(self) -> bool:
        if shutil.which("kubectl") is None:
            return False
        self._kubectl(["version", "--request-timeout=5s"], as_json=True)
        return True

    def execute(self, action: Any, options: Mapping[str, Any]) -> Any:
        k8s_action = self.parse_action(action, K8sAction)
        namespace = options.get("namespace") or "default"

        if k8s_action is K8sAction.PODS:
            return self.list_pods(namespace)
        if k8s_action is K8sAction.NODES:
            return self.list_nodes()
        if k8s_action is K8sAction.SERVICES:
            return self.list_services(namespace)
        if k8s_action is K8sAction.LOGS:
            pod = options.get("pod")
            if not pod:
                raise TaskValidationError("k8s logs requires 'pod'")
            return self.get_pod_logs(namespace, pod, int(options.get("tail") or 100))
        return self.cluster_status()

    def _base_args(self) -> list[str]:
        args = ["kubectl"]
        if self.config.k8s_config_path:
            args.extend(["--kubeconfig", self.config.k8s_config_path])
        if self.config.k8s_context:
            args.extend(["--context", self.config.k8s_context])
        return args

    def _kubectl(self, args: list[str], as_json: bool = True) -> Any:
        cmd = self._base_args() + args
        if as_json:
            cmd.extend(["-o", "json"])
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.config.http_timeout * 6,
            )
        except FileNotFoundError:
            raise KubectlError("kubectl not found") from None
        except subprocess.TimeoutExpired:
            raise KubectlError(f"kubectl timed out: {' '.join(args)}") from None
        if result.returncode != 0:
            raise KubectlError(f"kubectl {' '.join(args)} failed: {result.stderr.strip()}")
        return json.loads(result.stdout) if as_json else result.stdout

    def list_pods(self, namespace: str | None = "default") -> list[dict[str, Any]]:
        scope = ["--all-namespaces"] if namespace is None else ["-n", namespace]
        items = self._kubectl(["get", "pods", *scope]).get("items", [])
        pods = []
        for pod in items:
            statuses = pod.get("status", {}).get("containerStatuses") or []
            pods.append(
                {
                    "name": pod["metadata"]["name"],
                    "namespace": pod["metadata"].get("namespace"),
                    "status": pod.get("status", {}).get("phase"),
                    "ready": bool(statuses) and all(cs.get("ready") for cs in statuses),
                    "restart_count": sum(cs.get("restartCount", 0) for cs in statuses),
                    "age": _age_seconds(pod["metadata"].get("creationTimestamp")),
                }
            )
        return pods

    def list_nodes(self) -> list[dict[str, Any]]:
        items = self._kubectl(["get", "nodes"]).get("items", [])
        return [
            {
                "name": node["metadata"]["name"],
                "status": _node_ready(node),
                "capacity": node.get("status", {}).get("capacity", {}),
                "allocatable": node.get("status", {}).get("allocatable", {}),
                "age": _age_seconds(node["metadata"].get("creationTimestamp")),
            }
            for node in items
        ]

    def list_services(self, namespace: str = "default") -> list[dict[str, Any]]:
        items = self._kubectl(["get", "services", "-n", namespace]).get("items", [])
        return [
            {
                "name": svc["metadata"]["name"],
                "namespace": svc["metadata"].get("namespace"),
                "type": svc.get("spec", {}).get("type"),
                "cluster_ip": svc.get("spec", {}).get("clusterIP"),
                "ports": [
                    {"port": p.get("port"), "target_port": p.get("targetPort")}
                    for p in svc.get("spec", {}).get("ports") or []
                ],
            }
            for svc in items
        ]

    def get_pod_logs(self, namespace: str, pod: str, tail: int = 100) -> dict[str, Any]:
        logs = self._kubectl(
            ["logs", pod, "-n", namespace, f"--tail={tail}"], as_json=False
        )
        return {"pod": pod, "namespace": namespace, "logs": logs, "tail_lines": tail}

    def cluster_status(self) -> dict[str, Any]:
        nodes = self._kubectl(["get", "nodes"]).get("items", [])
        pods = self._kubectl(["get", "pods", "--all-namespaces"]).get("items", [])
        phases = [p.get("status", {}).get("phase") for p in pods]
        return {
            "nodes": {
                "total": len(nodes),
                "ready": sum(1 for n in nodes if _node_ready(n) == "True"),
            },
            "pods": {
                "total": len(pods),
                "running": phases.count("Running"),
                "pending": phases.count("Pending"),
                "failed": phases.count("Failed"),
            },
        }
