"""
VaultStore — the single source of truth for the encrypted vault file.

Provides the public API of the vault engine:
- ``exists()``: is there a vault file
- ``load(password)`` / ``save(document, password)``: whole-document cycle
- ``add_key`` / ``get_key`` / ``list_keys`` / ``delete_key``: record CRUD
- ``change_password(old, new)``: re-encrypt under a new master password

Every call is a self-contained load → mutate → save cycle; there is no
persistent unlocked state between calls. Cycles hold ``locked()``: an
in-process RLock for threads plus ``flock`` on a sidecar ``.lock`` file
for other processes opening the same vault (POSIX only).

Security Note:
    Never log secret values or passwords. Only log provider names,
    key names and counts.
"""
import os
import fcntl
import logging
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

import orjson
import pydantic

from ..data import KeyRecord, VaultDocument, utcnow
from ..exceptions import (
    DecryptionError,
    DisabledKeyError,
    ExpiredKeyError,
    NotFoundError,
    StorageError,
    ValidationError,
    VaultUnlockError,
)
from .config import VaultConfig
from .crypto import VaultCipher, VaultEnvelope
from .key_rotation import rotate_master_password

logger = logging.getLogger("apikey_vault.vault")


class VaultStore:
    """Encrypted key-record storage in one envelope file.

    Args:
        path: Vault file location.
        cipher: VaultCipher used for every save/load.
    """

    def __init__(
        self,
        path: Union[str, Path],
        cipher: Optional[VaultCipher] = None,
    ):
        self.path = Path(path)
        self.cipher = cipher or VaultCipher()
        self._lock = threading.RLock()
        self._depth = 0

    @classmethod
    def from_config(cls, config: VaultConfig) -> "VaultStore":
        return cls(
            config.vault_file,
            cipher=VaultCipher(config.cipher, config.kdf_iterations),
        )

    def __repr__(self) -> str:
        return f"<VaultStore path={str(self.path)!r} cipher={self.cipher.cipher}>"

    # ------------------------------------------------------------------
    # Document cycle
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        """Check if the vault file is present. Nothing is decrypted."""
        return self.path.is_file()

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(f"{self.path.name}.lock")

    @contextmanager
    def locked(self, shared: bool = False) -> Iterator["VaultStore"]:
        """Hold the vault lock for one load/mutate/save cycle.

        Re-entrant within the owning thread: only the outermost call
        takes the file lock, nested calls run under it.

        Args:
            shared: Take a shared (read) file lock instead of an
                exclusive one. Ignored for nested calls.

        Raises:
            StorageError: If the lock file cannot be opened or locked.
        """
        with self._lock:
            fd = self._acquire_file_lock(shared) if self._depth == 0 else None
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
                if fd is not None:
                    os.close(fd)

    def _acquire_file_lock(self, shared: bool) -> int:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as err:
            raise StorageError(f"Failed to open vault lock: {err}") from err
        try:
            fcntl.flock(fd, fcntl.LOCK_SH if shared else fcntl.LOCK_EX)
        except OSError as err:
            os.close(fd)
            raise StorageError(f"Failed to lock vault: {err}") from err
        return fd

    def load(self, password: str) -> VaultDocument:
        """Decrypt and parse the vault document.

        A missing file yields a fresh empty document.

        Raises:
            VaultUnlockError: On any read, parse or decrypt failure.
        """
        if not self.exists():
            return VaultDocument()
        with self.locked(shared=True):
            try:
                envelope = VaultEnvelope.from_json(self.path.read_bytes())
                plaintext = self.cipher.decrypt(envelope, password)
                return VaultDocument.from_json(plaintext)
            except (
                OSError,
                orjson.JSONDecodeError,
                pydantic.ValidationError,
                DecryptionError,
                UnicodeDecodeError,
            ) as err:
                logger.debug("Unable to unlock vault %s: %s", self.path, type(err).__name__)
                raise VaultUnlockError() from err

    def save(self, document: VaultDocument, password: str) -> None:
        """Encrypt the whole document and atomically replace the file.

        Raises:
            StorageError: If the envelope cannot be written.
        """
        envelope = self.cipher.encrypt(document.to_json(), password)
        with self.locked():
            self._write_atomic(envelope.to_json())
        logger.debug("Vault saved: %s (%d keys)", self.path, document.count())

    def _write_atomic(self, data: bytes) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
        except OSError as err:
            raise StorageError(f"Failed to save encrypted data: {err}") from err
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except OSError as err:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StorageError(f"Failed to save encrypted data: {err}") from err

    def initialize(self, password: str) -> VaultDocument:
        """Create the vault file with an empty document if none exists."""
        with self.locked():
            document = self.load(password)
            if not self.exists():
                self.save(document, password)
                logger.info("Vault created at %s", self.path)
            return document

    # ------------------------------------------------------------------
    # Key records
    # ------------------------------------------------------------------

    def add_key(
        self,
        provider: str,
        key_name: str,
        secret: str,
        password: str,
        metadata: Optional[dict] = None,
    ) -> KeyRecord:
        """Insert or overwrite a key record.

        Overwriting resets ``lastUsed`` and ``usageCount``.

        Raises:
            ValidationError: If provider, key name or secret is empty, or
                the metadata holds an unreadable expiration date.
        """
        if not provider or not key_name or not secret:
            raise ValidationError("Provider, keyName, and apiKey are required")
        try:
            record = KeyRecord.from_metadata(secret, metadata)
        except pydantic.ValidationError as err:
            raise ValidationError(f"Invalid key metadata: {err.errors()[0]['msg']}") from err
        if record.expiration_unreadable:
            raise ValidationError(
                f"Invalid key metadata: unrecognized expirationDate {record.expiration_date!r}"
            )
        with self.locked():
            document = self.load(password)
            document.put_record(provider, key_name, record)
            document.mark_modified()
            self.save(document, password)
        logger.info("Vault add: provider=%s key=%s", provider, key_name)
        return record

    def get_key(self, provider: str, key_name: str, password: str) -> str:
        """Return a secret and record the retrieval.

        Raises:
            NotFoundError: No such provider/key name.
            DisabledKeyError: The record is inactive.
            ExpiredKeyError: Its expiration date has passed.
        """
        with self.locked():
            document = self.load(password)
            record = document.get_record(provider, key_name)
            if record is None:
                raise NotFoundError(provider, key_name)
            # disabled wins over expired
            if not record.is_active:
                raise DisabledKeyError(key_name)
            now = utcnow()
            if record.is_expired(now):
                raise ExpiredKeyError(key_name, record.expiration_date)
            record.touch(now)
            self.save(document, password)
        logger.debug(
            "Vault get: provider=%s key=%s uses=%d",
            provider, key_name, record.usage_count,
        )
        return record.secret

    def list_keys(self, password: str) -> dict[str, list[dict]]:
        """Project every record to ``{name, created, lastUsed, metadata}``."""
        document = self.load(password)
        return {
            provider: [record.summary(name) for name, record in records.items()]
            for provider, records in document.keys.items()
        }

    def delete_key(self, provider: str, key_name: str, password: str) -> bool:
        """Remove a record. Returns whether anything was removed."""
        with self.locked():
            document = self.load(password)
            if not document.remove_record(provider, key_name):
                return False
            document.mark_modified()
            self.save(document, password)
        logger.info("Vault delete: provider=%s key=%s", provider, key_name)
        return True

    def change_password(self, old_password: str, new_password: str) -> dict:
        """Re-encrypt the whole vault under ``new_password``.

        Raises:
            VaultUnlockError: If ``old_password`` does not unlock the vault.
        """
        return rotate_master_password(self, old_password, new_password)
