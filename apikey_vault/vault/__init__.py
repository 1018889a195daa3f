"""Vault — Encrypted API key storage in a single master-password file.

Security Note (Threat Model):
    The decrypted vault document lives in process memory for the duration
    of one operation. A memory dump taken during that window exposes every
    stored key. The master password itself is held in memory by the HTTP
    session registry for the session lifetime.
    With the default AES-CBC cipher a tampered file cannot be told apart
    from a wrong password; switch to ``aes-gcm`` for integrity checking.
"""

from .crypto import VaultCipher, VaultEnvelope, derive_key, generate_secure_key
from .store import VaultStore
from .key_rotation import rotate_master_password
from .config import VaultConfig

__all__ = [
    "VaultCipher",
    "VaultEnvelope",
    "VaultStore",
    "VaultConfig",
    "derive_key",
    "generate_secure_key",
    "rotate_master_password",
]
