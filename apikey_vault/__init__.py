"""API Key Vault.

Stores provider API keys in one file encrypted under a master password.
"""
from .version import (
    __title__,
    __description__,
    __version__,
    __author__,
    __license__,
)
from .data import KeyRecord, VaultDocument
from .exceptions import (
    VaultError,
    VaultUnlockError,
    DecryptionError,
    NotFoundError,
    ExpiredKeyError,
    DisabledKeyError,
    AuthenticationError,
    SessionExpiredError,
    ValidationError,
    StorageError,
)
from .session import SessionRegistry
from .vault import VaultCipher, VaultConfig, VaultStore

__all__ = (
    "KeyRecord",
    "VaultDocument",
    "VaultStore",
    "VaultCipher",
    "VaultConfig",
    "SessionRegistry",
    "VaultError",
    "VaultUnlockError",
    "DecryptionError",
    "NotFoundError",
    "ExpiredKeyError",
    "DisabledKeyError",
    "AuthenticationError",
    "SessionExpiredError",
    "ValidationError",
    "StorageError",
)
