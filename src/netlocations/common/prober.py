"""Protocol dispatch for location connectivity checks.

All checks are synchronous and bounded by the client connect timeout. Nothing
here retries; wrap calls with :func:`netlocations.common.retry.with_retry` when
retries are wanted.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import Iterable

from netlocations.core.errors import ConnectivityError, DecryptionError
from netlocations.core.models import Location, ProbeResult
from netlocations.core.vault import CredentialVault
from netlocations.smb import probe as smb_probe
from netlocations.smb.client import SmbClient
from netlocations.ssh import probe as ssh_probe
from netlocations.ssh.client import SshClient

DEFAULT_TIMEOUT = 5.0


class Prober:
    """Reachability and artifact checks for configured locations."""

    def __init__(
        self,
        vault: CredentialVault,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        smb_client_factory: smb_probe.SmbClientFactory = SmbClient,
        ssh_client_factory: ssh_probe.SshClientFactory = SshClient,
        logger: logging.Logger | None = None,
    ) -> None:
        self.vault = vault
        self.timeout = timeout
        self.smb_client_factory = smb_client_factory
        self.ssh_client_factory = ssh_client_factory
        self.logger = logger or logging.getLogger(__name__)

    def test(self, location: Location) -> ProbeResult:
        """Return a valid result when ``location`` accepts a trivial remote command."""

        log_extra = {"location": location.type}
        self.logger.debug(
            "testing location protocol=%s server=%s auth=%s",
            location.protocol,
            location.server,
            location.auth_type,
            extra=log_extra,
        )
        try:
            password = self._password(location)
        except DecryptionError as exc:
            self.logger.error("credential unavailable reason=\"%s\"", exc, extra=log_extra)
            return ProbeResult.failure(f"Failed to decrypt credentials: {exc.reason}")

        if location.protocol == "smb":
            client = smb_probe.build_client(location, password or "", self.timeout, self.smb_client_factory)
            return smb_probe.check_connection(client, self.logger, log_extra)

        ssh_client = ssh_probe.build_client(location, password, self.timeout, self.ssh_client_factory)
        return ssh_probe.check_connection(ssh_client, self.logger, log_extra)

    def artifact_exists(self, location: Location, expected_path: str) -> bool:
        """Check that a previously produced artifact is present on the remote side.

        Relative paths are resolved against the location's configured ``path``.
        Raises :class:`ConnectivityError` when the remote side cannot be asked,
        and :class:`DecryptionError` when the credential cannot be read.
        """

        log_extra = {"location": location.type}
        remote_path = resolve_remote_path(location, expected_path)
        password = self._password(location)

        if location.protocol == "smb":
            client = smb_probe.build_client(location, password or "", self.timeout, self.smb_client_factory)
            return smb_probe.artifact_exists(client, remote_path, self.logger, log_extra)

        ssh_client = ssh_probe.build_client(location, password, self.timeout, self.ssh_client_factory)
        return ssh_probe.artifact_exists(ssh_client, remote_path, self.logger, log_extra)

    def test_all(self, locations: Iterable[Location]) -> dict[str, ProbeResult]:
        """Test every location, keyed by location type."""

        return {location.type: self.test(location) for location in locations}

    def verify(self, location: Location) -> None:
        """Raise :class:`ConnectivityError` unless ``location`` tests valid."""

        result = self.test(location)
        if not result.valid:
            raise ConnectivityError(f"{location.protocol.upper()} connection failed: {result.reason}")

    def _password(self, location: Location) -> str | None:
        if location.credential_file is None:
            return None
        return self.vault.decrypt(Path(location.credential_file))


def resolve_remote_path(location: Location, expected_path: str) -> str:
    """Join ``expected_path`` onto the location's base path unless it is absolute."""

    if expected_path.startswith("/") or not location.path:
        joined = expected_path
    else:
        joined = posixpath.join(location.path, expected_path)
    if location.protocol == "smb":
        # smbclient paths are relative to the share root
        joined = joined.lstrip("/")
    return joined
