"""Location registry: one configured location per type, with its credential."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from netlocations.core.errors import (
    ConflictExistsError,
    DecryptionError,
    EncryptionError,
    LocationValidationError,
    NotFoundError,
)
from netlocations.core.models import (
    KeyAuth,
    Location,
    PasswordAuth,
    SmbEndpoint,
    SshEndpoint,
    credential_filename,
    generate_location_id,
    validate_port,
    validate_protocol,
)
from netlocations.core.store import ConfigStore
from netlocations.core.vault import CredentialVault

logger = logging.getLogger(__name__)


class LocationRegistry:
    """CRUD over configured locations, keeping credentials in step with the store."""

    def __init__(self, store: ConfigStore, vault: CredentialVault, credentials_dir: Path) -> None:
        self.store = store
        self.vault = vault
        self.credentials_dir = Path(credentials_dir)

    def add(
        self,
        location_type: str,
        protocol: str,
        *,
        server: str,
        username: str,
        label: str = "",
        path: str = "",
        share: str | None = None,
        port: int | str | None = None,
        password: str | None = None,
        key_path: str | None = None,
        replace: bool = False,
    ) -> Location:
        """Configure the location for ``location_type``.

        Raises :class:`ConflictExistsError` without touching anything when the
        type is already configured and ``replace`` is false. When replacing, the
        previous credential is only deleted once the new location is stored.
        """

        log_extra = {"location": location_type or "-"}
        if not location_type:
            raise LocationValidationError("location type must not be empty.")

        existing = self._find(self.store.read(), location_type)
        if existing is not None and not replace:
            raise ConflictExistsError(
                f"A '{location_type}' location is already configured "
                f"(server={existing.server} label={existing.label or '-'}).",
                existing,
            )

        location = self._build_location(
            location_type,
            protocol,
            server=server,
            username=username,
            label=label,
            path=path,
            share=share,
            port=port,
            password=password,
            key_path=key_path,
        )
        new_credential = location.credential_file
        old_credential = existing.credential_file if existing is not None else None

        # the credential in use stays untouched until the store holds the new location
        overwrites_old = new_credential is not None and new_credential == old_credential
        staged: Path | None = None
        if new_credential is not None and password is not None:
            target = Path(new_credential)
            staged = target.with_name(f".{target.name}.pending") if overwrites_old else target
            self._write_credential(password, staged)

        try:
            self.store.replace(
                lambda locations: [item for item in locations if item.type != location_type] + [location]
            )
        except Exception:
            if staged is not None:
                self.vault.remove(staged)
            raise

        if staged is not None and overwrites_old:
            self.vault.install(staged, Path(new_credential))
        if old_credential is not None and old_credential != new_credential:
            self.vault.remove(Path(old_credential))

        logger.info(
            "location %s protocol=%s server=%s id=%s",
            "replaced" if existing is not None else "added",
            location.protocol,
            location.server,
            location.location_id,
            extra=log_extra,
        )
        return location

    def remove(self, location_type: str) -> Location:
        """Delete the location of ``location_type`` and its credential file."""

        existing = self.get(location_type)
        self.store.replace(lambda locations: [item for item in locations if item.type != location_type])
        if existing.credential_file is not None:
            self.vault.remove(Path(existing.credential_file))
        logger.info("location removed id=%s", existing.location_id, extra={"location": location_type})
        return existing

    def get(self, location_type: str) -> Location:
        location = self._find(self.store.read(), location_type)
        if location is None:
            raise NotFoundError(f"No location configured for {location_type}.")
        return location

    def get_by_id(self, location_id: str) -> Location:
        for location in self.store.read():
            if location.location_id == location_id:
                return location
        raise NotFoundError(f"Network location not found: {location_id}.")

    def list(self) -> list[Location]:
        return self.store.read()

    def resolve(self, location_type: str | None = None) -> Union[Location, list[Location]]:
        """Return the location for ``location_type``, or every location so the caller can choose."""

        if location_type:
            return self.get(location_type)
        return self.list()

    def label_for(self, location_id: str) -> str:
        return self.get_by_id(location_id).label

    def _build_location(
        self,
        location_type: str,
        protocol: str,
        *,
        server: str,
        username: str,
        label: str,
        path: str,
        share: str | None,
        port: int | str | None,
        password: str | None,
        key_path: str | None,
    ) -> Location:
        context = f"location '{location_type}'"
        protocol = validate_protocol(protocol, context)
        if not server:
            raise LocationValidationError(f"{context}: missing required field 'server'.")
        if not username:
            raise LocationValidationError(f"{context}: missing required field 'username'.")

        endpoint: Union[SmbEndpoint, SshEndpoint]
        if protocol == "smb":
            if not share:
                raise LocationValidationError(f"{context}: missing required field 'share'.")
            if key_path:
                raise LocationValidationError(f"{context}: smb locations cannot use key_path.")
            if port is not None:
                raise LocationValidationError(f"{context}: smb locations do not take a port.")
            if password is None:
                raise LocationValidationError(f"{context}: smb locations require a password.")
            discriminator: str | int = share
            endpoint = SmbEndpoint(
                share=share,
                credential_file=self._credential_path(protocol, location_type, server, share),
            )
        else:
            if share:
                raise LocationValidationError(f"{context}: ssh locations do not take a share.")
            port_value = validate_port(port, context)
            discriminator = port_value
            if key_path and password is not None:
                raise LocationValidationError(f"{context}: use either a password or key_path, not both.")
            if key_path:
                auth: Union[PasswordAuth, KeyAuth] = KeyAuth(key_path=key_path)
            elif password is not None:
                auth = PasswordAuth(
                    credential_file=self._credential_path(protocol, location_type, server, port_value)
                )
            else:
                raise LocationValidationError(f"{context}: ssh locations require a password or key_path.")
            endpoint = SshEndpoint(auth=auth, port=port_value)

        return Location(
            location_id=generate_location_id(server, discriminator, label, location_type),
            type=location_type,
            label=label,
            server=server,
            username=username,
            endpoint=endpoint,
            path=path,
        )

    def _write_credential(self, password: str, path: Path) -> None:
        """Encrypt ``password`` to ``path`` and read it back; nothing is left behind on failure."""

        self.vault.encrypt(password, path)
        try:
            verified = self.vault.verify(password, path)
        except DecryptionError as exc:
            self.vault.remove(path)
            raise EncryptionError(f"Credential verification failed for {path}: {exc.reason}") from exc
        if not verified:
            self.vault.remove(path)
            raise EncryptionError(f"Credential verification failed for {path}.")

    def _credential_path(self, protocol: str, location_type: str, server: str, share_or_port: str | int) -> str:
        return str(self.credentials_dir / credential_filename(protocol, location_type, server, share_or_port))

    @staticmethod
    def _find(locations: list[Location], location_type: str) -> Location | None:
        for location in locations:
            if location.type == location_type:
                return location
        return None
