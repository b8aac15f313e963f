"""Remote command execution over the OpenSSH client."""

import getpass
import os
import shutil
import subprocess
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from kopsai.core.errors import KopsError, TaskValidationError
from kopsai.core.plugin import Plugin

DEFAULT_KEYS = ("~/.ssh/id_rsa", "~/.ssh/id_ed25519", "~/.ssh/id_ecdsa")

# ssh exits with 255 when the connection itself fails
SSH_CONNECTION_ERROR = 255


class SSHError(KopsError):
    """Raised when an SSH session cannot be established."""


class SSHConnection:
    """Wrapper around ssh subprocess calls for one remote target."""

    def __init__(
        self,
        host: str,
        user: str | None = None,
        port: int = 22,
        key_path: str | None = None,
        password: str | None = None,
        connect_timeout: int = 30,
        strict_host_key: bool = False,
    ) -> None:
        self.host = host
        self.user = user
        self.port = port
        self.key_path = key_path
        self.password = password
        self.connect_timeout = connect_timeout
        self.strict_host_key = strict_host_key

    @property
    def target(self) -> str:
        """Return user@host or host."""
        if self.user:
            return f"{self.user}@{self.host}"
        return self.host

    def _ssh_base_args(self) -> list[str]:
        """Build common SSH arguments."""
        args = []
        if self.password:
            # sshpass reads the password from $SSHPASS
            args.extend(["sshpass", "-e"])
        args.extend(
            [
                "ssh",
                "-o",
                "BatchMode=no" if self.password else "BatchMode=yes",
                "-o",
                "StrictHostKeyChecking=yes"
                if self.strict_host_key
                else "StrictHostKeyChecking=accept-new",
                "-o",
                f"ConnectTimeout={self.connect_timeout}",
                "-p",
                str(self.port),
            ]
        )
        if self.key_path:
            args.extend(["-i", self.key_path])
        return args

    def _env(self) -> dict[str, str] | None:
        if not self.password:
            return None
        return {**os.environ, "SSHPASS": self.password}

    def run_command(self, command: str, timeout: int | None = None) -> tuple[int, str, str]:
        """Execute a command on the remote host.

        Returns:
            Tuple of (return_code, stdout, stderr).
        """
        args = self._ssh_base_args() + [self.target, command]
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=self._env(),
            )
            return result.returncode, result.stdout, result.stderr
        except subprocess.TimeoutExpired:
            return -1, "", "Command timed out"
        except FileNotFoundError:
            return -1, "", f"{args[0]} not found"


class SSHAction(str, Enum):
    EXEC = "exec"


class SSHRemote(Plugin):
    """Execute commands on remote servers via SSH."""

    name = "ssh_remote"
    description = "Execute commands on remote servers via SSH"
    version = "1.0.0"

    def _probe(self) -> bool:
        return shutil.which("ssh") is not None

    def execute(self, action: Any, options: Mapping[str, Any]) -> dict[str, Any]:
        self.parse_action(action or SSHAction.EXEC, SSHAction)
        host = options.get("host")
        command = options.get("command")
        if not host or not command:
            raise TaskValidationError("ssh requires 'host' and 'command'")

        username = options.get("username") or self.config.ssh_username or getpass.getuser()
        timeout = options.get("timeout") or self.config.ssh_timeout
        conn = SSHConnection(
            host=host,
            user=username,
            port=int(options.get("port") or 22),
            key_path=options.get("key_path") or self._default_key(),
            password=options.get("password"),
            connect_timeout=int(timeout),
        )

        self.logger.info("Executing SSH command", host=host, command=command, username=username)

        attempts = self.config.ssh_retries + 1
        for attempt in range(1, attempts + 1):
            rc, stdout, stderr = conn.run_command(command, timeout=int(timeout))
            if rc == -1:
                raise SSHError(f"SSH execution failed for {host}: {stderr}")
            if rc != SSH_CONNECTION_ERROR:
                break
            self.logger.warn(
                "SSH attempt failed", host=host, attempt=attempt, error=stderr.strip()
            )
        else:
            raise SSHError(f"SSH execution failed for {host}: {stderr.strip()}")

        return {
            "host": host,
            "command": command,
            "exit_code": rc,
            "stdout": stdout,
            "stderr": stderr,
            "success": rc == 0,
        }

    @staticmethod
    def _default_key() -> str | None:
        for key in DEFAULT_KEYS:
            path = Path(key).expanduser()
            if path.exists():
                return str(path)
        return None
