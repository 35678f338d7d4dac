"""refreshcache.storage.encrypted_file

Fernet-encrypted snapshot file.

The key is derived from a password (PBKDF2-SHA256) and a per-file salt stored next to
the snapshot. Cached values can be as sensitive as their source; store them like it.
"""

from __future__ import annotations

import base64
import contextlib
import os
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from refreshcache.core.exceptions import ConfigurationError, StorageError
from refreshcache.storage.base import Snapshot

PASSWORD_ENV = "REFRESHCACHE_STORAGE_PASSWORD"

_ITERATIONS = 480_000
_SALT_SIZE = 32


def _derive_fernet_key(password: str, salt: bytes, iterations: int = _ITERATIONS) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(password.encode("utf-8")))


def _require_password(env_var: str = PASSWORD_ENV) -> str:
    pw = os.environ.get(env_var)
    if pw:
        return pw
    raise ConfigurationError(f"Missing storage password. Set {env_var} or pass password explicitly.")


class EncryptedFileStorage:
    def __init__(
        self,
        path: str | Path,
        *,
        password: str | None = None,
        salt_path: str | Path | None = None,
        iterations: int = _ITERATIONS,
    ) -> None:
        self.path = Path(path)
        self.salt_path = Path(salt_path) if salt_path else self.path.with_suffix(self.path.suffix + ".salt")
        self._password = password or _require_password()
        self._iterations = int(iterations)
        self._cached: Fernet | None = None

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with contextlib.suppress(OSError):
            os.chmod(self.path.parent, 0o700)

    def _get_or_create_salt(self) -> bytes:
        if self.salt_path.exists():
            return self.salt_path.read_bytes()
        self._ensure_dir()
        salt = os.urandom(_SALT_SIZE)
        self.salt_path.write_bytes(salt)
        with contextlib.suppress(OSError):
            os.chmod(self.salt_path, 0o600)
        return salt

    def _fernet(self) -> Fernet:
        # Key derivation is deliberately slow; do it once per instance.
        if self._cached is None:
            salt = self._get_or_create_salt()
            self._cached = Fernet(_derive_fernet_key(self._password, salt, self._iterations))
        return self._cached

    def load(self) -> Snapshot | None:
        if not self.path.exists():
            return None
        try:
            encrypted = self.path.read_bytes()
            data = self._fernet().decrypt(encrypted)
        except InvalidToken as e:
            raise StorageError("Invalid password or corrupted snapshot") from e
        except OSError as e:
            raise StorageError(f"Cannot read snapshot {self.path}: {e}") from e
        return Snapshot.from_json(data)

    def save(self, snapshot: Snapshot) -> None:
        data = snapshot.to_json().encode("utf-8")
        try:
            self._ensure_dir()
            self.path.write_bytes(self._fernet().encrypt(data))
        except OSError as e:
            raise StorageError(f"Cannot write snapshot {self.path}: {e}") from e
        with contextlib.suppress(OSError):
            os.chmod(self.path, 0o600)
