"""
Vault Crypto Core — Key derivation, envelope encryption/decryption.

The whole vault document is encrypted as one blob:
- Key derivation: PBKDF2-HMAC-SHA256(master_password, salt 32B) → 32-byte key
- Cipher: AES-256-CBC + PKCS7 (default) or AES-256-GCM (authenticated)
- Envelope: {"encrypted": hex, "salt": hex, "iv": hex}

The CBC envelope is byte-compatible with vault files written by earlier
releases. CBC carries no integrity tag, so a bad padding is the only
signal of a wrong password; AES-GCM detects both tampering and wrong
keys through its tag.

Security Note:
    Never log plaintext, derived keys or passwords.
    Salt and IV are freshly random on every encryption.
"""
import os
import secrets
import logging

import orjson
from pydantic import BaseModel, ConfigDict, field_validator
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..exceptions import DecryptionError

logger = logging.getLogger("apikey_vault.vault")

SALT_SIZE = 32  # bytes
IV_SIZE = 16  # AES block size
KEY_LENGTH = 32  # AES-256
KDF_ITERATIONS = 100000

CIPHER_CBC = "aes-cbc"
CIPHER_GCM = "aes-gcm"


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(password: str, salt: bytes, iterations: int = KDF_ITERATIONS) -> bytes:
    """Derive a 32-byte encryption key from the master password.

    Args:
        password: Master password.
        salt: Random salt stored next to the ciphertext.
        iterations: PBKDF2 iteration count.

    Returns:
        32-byte derived key.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def generate_secure_key(length: int = 64) -> str:
    """Return ``length`` random bytes as a hex string."""
    return secrets.token_hex(length)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

class VaultEnvelope(BaseModel):
    """Encrypted, on-disk form of the vault document."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    encrypted: str
    salt: str
    iv: str

    @field_validator("encrypted", "salt", "iv")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        """Envelope fields must be hex strings."""
        try:
            bytes.fromhex(v)
        except ValueError as err:
            raise ValueError("envelope fields must be hex-encoded") from err
        return v

    def to_json(self) -> bytes:
        """Serialize to the pretty-printed JSON written to disk."""
        return orjson.dumps(self.model_dump(), option=orjson.OPT_INDENT_2)

    @classmethod
    def from_json(cls, raw: bytes) -> "VaultEnvelope":
        """Parse the on-disk JSON representation."""
        return cls.model_validate(orjson.loads(raw))


# ---------------------------------------------------------------------------
# Cipher
# ---------------------------------------------------------------------------

class VaultCipher:
    """Encrypts and decrypts opaque payloads under a master password.

    Args:
        cipher: ``aes-cbc`` (default, interoperable) or ``aes-gcm``.
        iterations: PBKDF2 iteration count.
    """

    def __init__(self, cipher: str = CIPHER_CBC, iterations: int = KDF_ITERATIONS):
        if cipher not in (CIPHER_CBC, CIPHER_GCM):
            raise ValueError(f"Unsupported cipher backend: {cipher}")
        self.cipher = cipher
        self.iterations = iterations

    def __repr__(self) -> str:
        return f"<VaultCipher {self.cipher} iterations={self.iterations}>"

    def encrypt(self, plaintext: bytes, password: str) -> VaultEnvelope:
        """Encrypt ``plaintext`` with a fresh salt and IV.

        Args:
            plaintext: Bytes to encrypt.
            password: Master password.

        Returns:
            VaultEnvelope with hex-encoded fields.
        """
        salt = os.urandom(SALT_SIZE)
        iv = os.urandom(IV_SIZE)
        key = derive_key(password, salt, self.iterations)
        if self.cipher == CIPHER_GCM:
            ct = AESGCM(key).encrypt(iv, plaintext, None)
        else:
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(plaintext) + padder.finalize()
            encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
            ct = encryptor.update(padded) + encryptor.finalize()
        return VaultEnvelope(encrypted=ct.hex(), salt=salt.hex(), iv=iv.hex())

    def decrypt(self, envelope: VaultEnvelope, password: str) -> bytes:
        """Decrypt an envelope with the key re-derived from its salt.

        Raises:
            DecryptionError: On padding, tag or format mismatch. With CBC a
                wrong password usually surfaces here as a padding error.
        """
        try:
            salt = bytes.fromhex(envelope.salt)
            iv = bytes.fromhex(envelope.iv)
            ct = bytes.fromhex(envelope.encrypted)
            key = derive_key(password, salt, self.iterations)
            if self.cipher == CIPHER_GCM:
                return AESGCM(key).decrypt(iv, ct, None)
            decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ct) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except (ValueError, InvalidTag) as err:
            raise DecryptionError("Unable to decrypt vault payload") from err
