"""Encrypted credential files for password-authenticated locations.

Each secret is stored in its own file. The Fernet key (AES-128-CBC +
HMAC-SHA256) is derived with PBKDF2-HMAC-SHA256 from key material that lives on
the device, using a random salt stored alongside the token::

    b"NLV1" | salt (16 bytes) | fernet token

Confidentiality only holds at rest: decrypted secrets are plain ``str``
objects in process memory and are handed to SSH/SMB clients as such.
"""

from __future__ import annotations

import base64
import logging
import os
import tempfile
from pathlib import Path

from cryptography.exceptions import InvalidKey
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from netlocations.core.errors import DecryptionError, EncryptionError

logger = logging.getLogger(__name__)

DEFAULT_KEY_FILE = Path("/data/params/d/GithubSshKeys")
MAGIC = b"NLV1"
SALT_SIZE = 16
DEFAULT_ITERATIONS = 100_000


class CredentialVault:
    """Encrypt and decrypt secrets using device-bound key material."""

    def __init__(self, key_file: Path = DEFAULT_KEY_FILE, iterations: int = DEFAULT_ITERATIONS) -> None:
        self.key_file = Path(key_file)
        self.iterations = iterations

    def encrypt(self, secret: str, path: Path) -> Path:
        """Write an encrypted blob of ``secret`` to ``path``."""

        path = Path(path)
        try:
            key_material = self._key_material()
        except OSError as exc:
            raise EncryptionError(f"Key material unavailable at {self.key_file}: {exc}") from exc

        salt = os.urandom(SALT_SIZE)
        try:
            token = Fernet(self._derive_key(key_material, salt)).encrypt(secret.encode("utf-8"))
        except (ValueError, InvalidKey) as exc:  # pragma: no cover - cipher backend failure
            raise EncryptionError(f"Unable to encrypt credential for {path}: {exc}") from exc

        try:
            _write_private(path, MAGIC + salt + token)
        except OSError as exc:
            raise EncryptionError(f"Unable to write credential file {path}: {exc}") from exc

        logger.debug("credential written path=%s", path)
        return path

    def decrypt(self, path: Path) -> str:
        """Return the secret stored in ``path``."""

        path = Path(path)
        try:
            blob = path.read_bytes()
        except FileNotFoundError as exc:
            raise DecryptionError(f"Credential file not found: {path}") from exc
        except OSError as exc:
            raise DecryptionError(f"Unable to read credential file {path}: {exc}") from exc

        header_size = len(MAGIC) + SALT_SIZE
        if len(blob) <= header_size or not blob.startswith(MAGIC):
            raise DecryptionError(f"Credential file {path} has an unrecognized format.")

        try:
            key_material = self._key_material()
        except OSError as exc:
            raise DecryptionError(f"Key material unavailable at {self.key_file}: {exc}") from exc

        salt = blob[len(MAGIC):header_size]
        token = blob[header_size:]
        try:
            plaintext = Fernet(self._derive_key(key_material, salt)).decrypt(token)
        except InvalidToken as exc:
            raise DecryptionError(f"Failed to decrypt credentials in {path}: integrity check failed.") from exc

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError(f"Credential in {path} is not valid UTF-8.") from exc

    def verify(self, secret: str, path: Path) -> bool:
        """Check that ``path`` decrypts back to exactly ``secret``."""

        return self.decrypt(path) == secret

    def install(self, staged: Path, path: Path) -> Path:
        """Move a staged credential over ``path`` in one rename."""

        staged, path = Path(staged), Path(path)
        try:
            os.replace(staged, path)
        except OSError as exc:
            staged.unlink(missing_ok=True)
            raise EncryptionError(f"Unable to install credential file {path}: {exc}") from exc
        logger.debug("credential installed path=%s", path)
        return path

    def remove(self, path: Path) -> None:
        """Delete a credential file; missing files are ignored."""

        path = Path(path)
        path.unlink(missing_ok=True)
        logger.debug("credential removed path=%s", path)

    def _key_material(self) -> bytes:
        material = self.key_file.read_bytes()
        if not material:
            raise OSError("key file is empty")
        return material

    def _derive_key(self, key_material: bytes, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=self.iterations,
        )
        return base64.urlsafe_b64encode(kdf.derive(key_material))


def _write_private(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
