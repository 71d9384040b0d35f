"""Connectivity checks for SMB locations."""

from __future__ import annotations

import logging
from typing import Any, Callable

from netlocations.core.errors import ConnectivityError
from netlocations.core.models import Location, ProbeResult, SmbEndpoint
from netlocations.smb.client import SmbClient

SmbClientFactory = Callable[..., SmbClient]


def build_client(
    location: Location, password: str, timeout: float, factory: SmbClientFactory = SmbClient
) -> SmbClient:
    """Create an SMB client for ``location`` using the decrypted password."""

    endpoint = location.endpoint
    if not isinstance(endpoint, SmbEndpoint):
        raise ValueError(f"location '{location.type}' is not an smb location")
    return factory(
        server=location.server,
        share=endpoint.share,
        username=location.username,
        password=password,
        timeout=timeout,
    )


def check_connection(client: SmbClient, logger: logging.Logger, log_extra: dict[str, Any]) -> ProbeResult:
    """List the share root; valid only when smbclient exits successfully."""

    try:
        result = client.list_root(logger, log_extra)
    except ConnectivityError as exc:
        logger.warning("smb check failed service=%s reason=\"%s\"", client.service, exc, extra=log_extra)
        return ProbeResult.failure(exc.reason)

    if result.ok:
        logger.info("smb ok service=%s", client.service, extra=log_extra)
        return ProbeResult.ok()

    logger.warning(
        "smb check failed service=%s status=%s", client.service, result.returncode, extra=log_extra
    )
    return ProbeResult.failure(result.output or f"smbclient exit_status={result.returncode}")


def artifact_exists(
    client: SmbClient, remote_path: str, logger: logging.Logger, log_extra: dict[str, Any]
) -> bool:
    present = client.path_exists(remote_path, logger, log_extra)
    logger.info("smb artifact path=%s present=%s", remote_path, present, extra=log_extra)
    return present
