"""SSH client implementation."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field
from typing import Any

import paramiko

from netlocations.core.errors import ConnectivityError, ProbeTimeoutError


class SshClientError(ConnectivityError):
    """Base exception for SSH client errors."""


class SshAuthenticationError(SshClientError):
    """Raised when SSH authentication fails."""


class SshCommandError(SshClientError):
    """Raised when a command cannot be executed successfully."""


@dataclass(slots=True)
class SshClient:
    """Non-interactive SSH access with either a password or a key file."""

    host: str
    username: str
    port: int = 22
    password: str | None = field(default=None, repr=False)
    key_path: str | None = None
    timeout: float = 5.0

    def run_noop(self, logger: logging.Logger, log_extra: dict[str, Any]) -> None:
        """Open a session and run ``exit``; raises unless it exits with status 0."""

        client = self._connect(logger, log_extra)
        try:
            logger.debug("executing ssh command='exit'", extra=log_extra)
            _, error_output, exit_status = self._run_command(client, "exit")
            if exit_status != 0:
                raise SshCommandError(error_output or f"exit_status={exit_status}")
        finally:
            client.close()

    def path_exists(self, remote_path: str, logger: logging.Logger, log_extra: dict[str, Any]) -> bool:
        """Return True when ``remote_path`` can be stat'ed over SFTP."""

        client = self._connect(logger, log_extra)
        sftp: paramiko.SFTPClient | None = None
        try:
            try:
                sftp = client.open_sftp()
                sftp.get_channel().settimeout(self.timeout)
            except (socket.timeout, TimeoutError) as exc:
                raise ProbeTimeoutError(f"SFTP session to {self.host}:{self.port} timed out") from exc
            except (paramiko.SSHException, OSError) as exc:
                raise SshClientError("Unable to open SFTP session") from exc

            try:
                sftp.stat(remote_path)
            except FileNotFoundError:
                logger.debug("remote path missing path=%s", remote_path, extra=log_extra)
                return False
            except (socket.timeout, TimeoutError) as exc:
                raise ProbeTimeoutError(f"SFTP stat of {remote_path} timed out") from exc
            except (paramiko.SSHException, OSError) as exc:
                raise SshClientError(f"Unable to access {remote_path}: {exc}") from exc

            logger.debug("remote path present path=%s", remote_path, extra=log_extra)
            return True
        finally:
            if sftp is not None:
                sftp.close()
            client.close()

    def _connect(self, logger: logging.Logger, log_extra: dict[str, Any]) -> paramiko.SSHClient:
        ssh = paramiko.SSHClient()
        ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        if self.key_path:
            auth_kwargs: dict[str, Any] = {"key_filename": self.key_path}
        else:
            auth_kwargs = {"password": self.password}

        try:
            logger.debug("opening ssh session host=%s port=%s", self.host, self.port, extra=log_extra)
            ssh.connect(
                self.host,
                port=self.port,
                username=self.username,
                look_for_keys=False,
                allow_agent=False,
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
                **auth_kwargs,
            )
            logger.debug("ssh ok host=%s port=%s", self.host, self.port, extra=log_extra)
            return ssh
        except paramiko.AuthenticationException as exc:
            ssh.close()
            raise SshAuthenticationError("SSH authentication failed") from exc
        except (socket.timeout, TimeoutError) as exc:
            ssh.close()
            raise ProbeTimeoutError(f"SSH connection to {self.host}:{self.port} timed out") from exc
        except (paramiko.SSHException, OSError) as exc:
            ssh.close()
            raise SshClientError(f"SSH connection failed: {exc}") from exc

    def _run_command(self, client: paramiko.SSHClient, command: str) -> tuple[str, str, int]:
        try:
            _, stdout, stderr = client.exec_command(command, timeout=self.timeout)
            output = stdout.read().decode("utf-8", errors="replace")
            error_output = stderr.read().decode("utf-8", errors="replace")
            exit_status = stdout.channel.recv_exit_status()
        except (socket.timeout, TimeoutError) as exc:
            raise ProbeTimeoutError(f"SSH command '{command}' timed out") from exc
        except (paramiko.SSHException, OSError) as exc:
            raise SshCommandError(f"Unable to execute command '{command}'") from exc
        return output, error_output, exit_status
