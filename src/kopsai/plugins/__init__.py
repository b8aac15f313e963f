"""Built-in capability plugins."""

from .gpt_support import GPTSupport
from .jenkins_agent import JenkinsAgent
from .k8s_agent import K8sAgent
from .log_agent import LogAgent
from .notifier import Notifier
from .prometheus_agent import PrometheusAgent
from .ssh_remote import SSHRemote
from .system_check import SystemCheck

# Registration order used by PluginRegistry.auto_discover()
BUILTIN_PLUGINS = (
    SystemCheck,
    SSHRemote,
    K8sAgent,
    PrometheusAgent,
    JenkinsAgent,
    LogAgent,
    GPTSupport,
    Notifier,
)

__all__ = [
    "BUILTIN_PLUGINS",
    "GPTSupport",
    "JenkinsAgent",
    "K8sAgent",
    "LogAgent",
    "Notifier",
    "PrometheusAgent",
    "SSHRemote",
    "SystemCheck",
]
