"""Error kinds raised by the registry, vault, store and prober."""

from __future__ import annotations

from typing import Any


class NetLocationsError(RuntimeError):
    """Base exception carrying a human-readable reason."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConfigNotFoundError(NetLocationsError):
    """Raised when the location store file does not exist."""


class ConfigCorruptError(NetLocationsError):
    """Raised when the location store cannot be parsed.

    Fatal for the calling session: nothing attempts to repair the file.
    """


class ConflictExistsError(NetLocationsError):
    """Raised when a location of the requested type is already configured."""

    def __init__(self, reason: str, existing: Any) -> None:
        super().__init__(reason)
        self.existing = existing


class NotFoundError(NetLocationsError):
    """Raised when no location matches a type or id."""


class EncryptionError(NetLocationsError):
    """Raised when a secret cannot be encrypted or written."""


class DecryptionError(NetLocationsError):
    """Raised when a credential file cannot be read or decrypted."""


class ConnectivityError(NetLocationsError):
    """Raised when a remote location or host cannot be reached."""

    def __init__(self, reason: str, attempts: int | None = None) -> None:
        super().__init__(reason)
        self.attempts = attempts


class ProbeTimeoutError(ConnectivityError):
    """Raised when a remote operation exceeds its connect timeout."""


class LocationValidationError(ValueError):
    """Raised when location fields are missing or inconsistent."""
