"""SMB client implementation backed by the ``smbclient`` command."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import Any, Callable

from netlocations.core.errors import ConnectivityError, ProbeTimeoutError

Runner = Callable[..., subprocess.CompletedProcess]

_NOT_FOUND_MARKERS = (
    "NT_STATUS_NO_SUCH_FILE",
    "NT_STATUS_OBJECT_NAME_NOT_FOUND",
    "NT_STATUS_OBJECT_PATH_NOT_FOUND",
)


class SmbClientError(ConnectivityError):
    """Raised when smbclient cannot be run or reports a failure."""


@dataclass(slots=True)
class SmbResult:
    """Exit status and combined output of one smbclient invocation."""

    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(slots=True)
class SmbClient:
    """Run commands against ``//server/share`` with username/password auth."""

    server: str
    share: str
    username: str
    password: str = field(repr=False)
    timeout: float = 5.0
    binary: str = "smbclient"
    runner: Runner = subprocess.run

    @property
    def service(self) -> str:
        return f"//{self.server}/{self.share}"

    def run(self, command: str, logger: logging.Logger, log_extra: dict[str, Any]) -> SmbResult:
        """Execute an smbclient ``-c`` command and return its status and output."""

        args = [self.binary, self.service, "-U", self.username, "-t", str(int(self.timeout) or 1), "-c", command]
        # smbclient reads PASSWD so the secret stays out of the process arguments
        env = {**os.environ, "PASSWD": self.password}
        logger.debug("executing smbclient service=%s command='%s'", self.service, command, extra=log_extra)
        try:
            completed = self.runner(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=env,
                timeout=self.timeout * 3,
                check=False,
            )
        except FileNotFoundError as exc:
            raise SmbClientError(f"{self.binary} not found; install samba client tools.") from exc
        except subprocess.TimeoutExpired as exc:
            raise ProbeTimeoutError(f"smbclient timed out after {self.timeout * 3:.0f}s for {self.service}") from exc

        output = completed.stdout
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        return SmbResult(returncode=completed.returncode, output=(output or "").strip())

    def list_root(self, logger: logging.Logger, log_extra: dict[str, Any]) -> SmbResult:
        return self.run("ls", logger, log_extra)

    def path_exists(self, remote_path: str, logger: logging.Logger, log_extra: dict[str, Any]) -> bool:
        """Return True when ``remote_path`` is present on the share."""

        quoted = remote_path.replace('"', '\\"')
        result = self.run(f'ls "{quoted}"', logger, log_extra)
        if result.ok:
            return True
        if any(marker in result.output for marker in _NOT_FOUND_MARKERS):
            return False
        raise SmbClientError(result.output or f"smbclient exit_status={result.returncode}")
