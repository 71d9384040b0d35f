"""Connectivity checks for SSH locations."""

from __future__ import annotations

import logging
from typing import Any, Callable

from netlocations.core.errors import ConnectivityError
from netlocations.core.models import KeyAuth, Location, ProbeResult, SshEndpoint
from netlocations.ssh.client import SshClient

SshClientFactory = Callable[..., SshClient]


def build_client(
    location: Location, password: str | None, timeout: float, factory: SshClientFactory = SshClient
) -> SshClient:
    """Create an SSH client; key locations ignore ``password`` and use their key file."""

    endpoint = location.endpoint
    if not isinstance(endpoint, SshEndpoint):
        raise ValueError(f"location '{location.type}' is not an ssh location")

    if isinstance(endpoint.auth, KeyAuth):
        return factory(
            host=location.server,
            username=location.username,
            port=endpoint.port,
            key_path=endpoint.auth.key_path,
            timeout=timeout,
        )
    return factory(
        host=location.server,
        username=location.username,
        port=endpoint.port,
        password=password,
        timeout=timeout,
    )


def check_connection(client: SshClient, logger: logging.Logger, log_extra: dict[str, Any]) -> ProbeResult:
    """Run a remote no-op; valid only when it exits with status 0 within the timeout."""

    try:
        client.run_noop(logger, log_extra)
    except ConnectivityError as exc:
        logger.warning(
            "ssh check failed host=%s port=%s reason=\"%s\"", client.host, client.port, exc, extra=log_extra
        )
        return ProbeResult.failure(exc.reason)

    logger.info("ssh ok host=%s port=%s", client.host, client.port, extra=log_extra)
    return ProbeResult.ok()


def artifact_exists(
    client: SshClient, remote_path: str, logger: logging.Logger, log_extra: dict[str, Any]
) -> bool:
    present = client.path_exists(remote_path, logger, log_extra)
    logger.info("ssh artifact path=%s present=%s", remote_path, present, extra=log_extra)
    return present
