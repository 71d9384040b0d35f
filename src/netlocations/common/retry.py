"""Fixed-delay retry helpers for network dependent operations."""

from __future__ import annotations

import logging
import socket
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from netlocations.core.errors import ConnectivityError, ProbeTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HOST = "github.com"
DEFAULT_PORT = 443


def tcp_check(host: str, port: int = DEFAULT_PORT, timeout: float = 5.0) -> bool:
    """Return True when a TCP connection to ``host:port`` can be opened."""

    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def check_connectivity(
    host: str = DEFAULT_HOST,
    timeout: float = 5.0,
    retries: int = 3,
    delay: float = 2.0,
    *,
    port: int = DEFAULT_PORT,
    probe: Callable[[str, int, float], bool] | None = None,
    sleep: Callable[[float], None] | None = None,
) -> bool:
    """Probe ``host`` up to ``retries`` times, waiting ``delay`` seconds between attempts."""

    probe = probe or tcp_check
    sleep = sleep or time.sleep

    for attempt in range(1, retries + 1):
        if probe(host, port, timeout):
            logger.debug("connectivity ok host=%s port=%s attempt=%d", host, port, attempt)
            return True

        if attempt < retries:
            logger.warning(
                "Network check attempt %d failed host=%s. Retrying in %s seconds...", attempt, host, delay
            )
            sleep(delay)

    logger.debug("connectivity failed host=%s port=%s attempts=%d", host, port, retries)
    return False


def with_retry(
    operation: Callable[[], T],
    error_msg: str = "Network operation failed",
    retries: int = 3,
    delay: float = 5.0,
    *,
    connectivity: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] | None = None,
) -> T:
    """Run ``operation`` once the network is reachable, retrying with a fixed delay.

    Missing connectivity and a failing operation both use up one of the
    ``retries`` attempts. Returns the operation's result on the first success;
    raises :class:`ConnectivityError` (or :class:`ProbeTimeoutError` when the
    last failure was a timeout) once every attempt is used.
    """

    connectivity = connectivity or check_connectivity
    sleep = sleep or time.sleep
    last_error: BaseException | None = None

    for attempt in range(1, retries + 1):
        if not connectivity():
            logger.warning("No network connectivity. Checking again in %s seconds...", delay)
            last_error = None
            if attempt < retries:
                sleep(delay)
            continue

        try:
            return operation()
        except Exception as exc:  # noqa: BLE001
            last_error = exc
            logger.warning(
                "Attempt %d of %d failed reason=\"%s\". Retrying in %s seconds...", attempt, retries, exc, delay
            )
            if attempt < retries:
                sleep(delay)

    message = f"{error_msg} after {retries} attempts"
    logger.error("%s", message)
    if isinstance(last_error, (TimeoutError, socket.timeout, ProbeTimeoutError)):
        raise ProbeTimeoutError(message, attempts=retries) from last_error
    raise ConnectivityError(message, attempts=retries) from last_error


@dataclass(slots=True)
class RetryPolicy:
    """Retry settings shared by callers of :func:`with_retry`."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = 5.0
    retries: int = 3
    delay: float = 5.0
    connectivity_retries: int = 3
    connectivity_delay: float = 2.0

    def is_online(self) -> bool:
        return check_connectivity(
            self.host, self.timeout, self.connectivity_retries, self.connectivity_delay, port=self.port
        )

    def run(self, operation: Callable[[], T], error_msg: str = "Network operation failed") -> T:
        return with_retry(operation, error_msg, self.retries, self.delay, connectivity=self.is_online)
