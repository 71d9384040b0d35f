"""Data models for configured network locations."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Any, Literal, Mapping, Union

from netlocations.core.errors import LocationValidationError

LocationProtocol = Literal["smb", "ssh"]
AuthType = Literal["password", "key"]

DEFAULT_SSH_PORT = 22

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True, slots=True)
class PasswordAuth:
    """Password authentication backed by an encrypted credential file."""

    credential_file: str


@dataclass(frozen=True, slots=True)
class KeyAuth:
    """Key authentication using an existing private key on the device."""

    key_path: str


@dataclass(frozen=True, slots=True)
class SmbEndpoint:
    """SMB share details. SMB access is always password based."""

    share: str
    credential_file: str


@dataclass(frozen=True, slots=True)
class SshEndpoint:
    """SSH host details."""

    auth: Union[PasswordAuth, KeyAuth]
    port: int = DEFAULT_SSH_PORT

    @property
    def auth_type(self) -> AuthType:
        return "key" if isinstance(self.auth, KeyAuth) else "password"


@dataclass(frozen=True, slots=True)
class Location:
    """A remote destination playing one role (``type``) for backup or sync."""

    location_id: str
    type: str
    label: str
    server: str
    username: str
    endpoint: Union[SmbEndpoint, SshEndpoint]
    path: str = ""

    @property
    def protocol(self) -> LocationProtocol:
        return "smb" if isinstance(self.endpoint, SmbEndpoint) else "ssh"

    @property
    def credential_file(self) -> str | None:
        """Path of the owned credential file, if the location uses password auth."""

        endpoint = self.endpoint
        if isinstance(endpoint, SmbEndpoint):
            return endpoint.credential_file
        if isinstance(endpoint.auth, PasswordAuth):
            return endpoint.auth.credential_file
        return None

    @property
    def key_path(self) -> str | None:
        endpoint = self.endpoint
        if isinstance(endpoint, SshEndpoint) and isinstance(endpoint.auth, KeyAuth):
            return endpoint.auth.key_path
        return None

    @property
    def auth_type(self) -> AuthType:
        if isinstance(self.endpoint, SshEndpoint):
            return self.endpoint.auth_type
        return "password"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "location_id": self.location_id,
            "type": self.type,
            "protocol": self.protocol,
            "label": self.label,
            "server": self.server,
        }
        endpoint = self.endpoint
        if isinstance(endpoint, SmbEndpoint):
            data["share"] = endpoint.share
        else:
            data["port"] = endpoint.port
        data["path"] = self.path
        data["username"] = self.username
        if self.credential_file is not None:
            data["credential_file"] = self.credential_file
        if self.key_path is not None:
            data["key_path"] = self.key_path
        if isinstance(endpoint, SshEndpoint):
            data["auth_type"] = endpoint.auth_type
        return data

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], context: str = "location") -> "Location":
        """Build a location from a stored JSON record, validating field combinations."""

        location_type = require_string(raw, "type", context)
        context = f"{context} '{location_type}'"
        protocol = validate_protocol(require_string(raw, "protocol", context), context)
        server = require_string(raw, "server", context)
        username = require_string(raw, "username", context)
        label = optional_string(raw, "label", context)
        path = optional_string(raw, "path", context)

        if protocol == "smb":
            if raw.get("key_path"):
                raise LocationValidationError(f"{context}: smb locations cannot use key_path.")
            endpoint: Union[SmbEndpoint, SshEndpoint] = SmbEndpoint(
                share=require_string(raw, "share", context),
                credential_file=require_string(raw, "credential_file", context),
            )
            discriminator = endpoint.share
        else:
            port = validate_port(raw.get("port"), context)
            auth_type = raw.get("auth_type") or ("key" if raw.get("key_path") else "password")
            if auth_type == "key":
                if raw.get("credential_file"):
                    raise LocationValidationError(
                        f"{context}: key authentication cannot reference a credential_file."
                    )
                auth: Union[PasswordAuth, KeyAuth] = KeyAuth(key_path=require_string(raw, "key_path", context))
            elif auth_type == "password":
                if raw.get("key_path"):
                    raise LocationValidationError(
                        f"{context}: password authentication cannot reference a key_path."
                    )
                auth = PasswordAuth(credential_file=require_string(raw, "credential_file", context))
            else:
                raise LocationValidationError(
                    f"{context}: invalid auth_type '{auth_type}'. Allowed values: password, key."
                )
            endpoint = SshEndpoint(auth=auth, port=port)
            discriminator = str(port)

        stored_id = raw.get("location_id")
        if stored_id is not None and not isinstance(stored_id, str):
            raise LocationValidationError(f"{context}: field 'location_id' must be a string.")

        return cls(
            location_id=stored_id or generate_location_id(server, discriminator, label, location_type),
            type=location_type,
            label=label,
            server=server,
            username=username,
            endpoint=endpoint,
            path=path,
        )


def generate_location_id(server: str, share_or_port: str | int, label: str, location_type: str) -> str:
    """Deterministic id for the stable identifying fields of a location."""

    seed = f"{server}_{share_or_port}_{label}_{location_type}"
    return hashlib.md5(seed.encode("utf-8")).hexdigest()


def credential_filename(protocol: str, location_type: str, server: str, share_or_port: str | int) -> str:
    """Name of the credential file owned by a password-authenticated location."""

    raw = f"{protocol}_{location_type}_{server}_{share_or_port}"
    return _UNSAFE_FILENAME_CHARS.sub("_", raw)


def require_string(mapping: Mapping[str, Any], field: str, context: str) -> str:
    value = mapping.get(field)
    if value is None or value == "":
        raise LocationValidationError(f"{context}: missing required field '{field}'.")
    if not isinstance(value, str):
        raise LocationValidationError(f"{context}: field '{field}' must be a string.")
    return value


def optional_string(mapping: Mapping[str, Any], field: str, context: str) -> str:
    value = mapping.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise LocationValidationError(f"{context}: field '{field}' must be a string.")
    return value


def validate_protocol(value: str, context: str) -> LocationProtocol:
    if value not in ("smb", "ssh"):
        raise LocationValidationError(f"{context}: invalid protocol '{value}'. Allowed values: smb, ssh.")
    return value  # type: ignore[return-value]


def validate_port(value: Any, context: str) -> int:
    if value is None or value == "":
        return DEFAULT_SSH_PORT
    # older stores kept the port as text
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise LocationValidationError(f"{context}: port must be an integer.")
    if value <= 0 or value > 65535:
        raise LocationValidationError(f"{context}: port must be between 1 and 65535.")
    return value


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Outcome of a connectivity test against one location."""

    valid: bool
    reason: str = ""

    @classmethod
    def ok(cls) -> "ProbeResult":
        return cls(valid=True, reason="Valid")

    @classmethod
    def failure(cls, reason: str) -> "ProbeResult":
        return cls(valid=False, reason=reason or "Connection failed")

    def __bool__(self) -> bool:
        return self.valid
