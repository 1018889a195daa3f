"""
Vault Configuration — validated settings for the vault engine and server.

Reads its values from environment variables:
    APIKEY_VAULT_FILE = <path to the encrypted vault file>
    APIKEY_VAULT_CIPHER = aes-cbc | aes-gcm
    APIKEY_VAULT_KDF_ITERATIONS = <integer, at least 100000>
    APIKEY_VAULT_SESSION_TTL = <seconds>

Security Note:
    Never log key material or master passwords. Only log file paths,
    cipher names and iteration counts.
"""
import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .. import conf

logger = logging.getLogger("apikey_vault.vault")

SUPPORTED_CIPHERS = ("aes-cbc", "aes-gcm")
MIN_KDF_ITERATIONS = 100000


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    vault_file: Path = Field(default_factory=lambda: Path(conf.VAULT_FILE))
    cipher: str = Field(default="aes-cbc")
    kdf_iterations: int = Field(default=MIN_KDF_ITERATIONS, ge=MIN_KDF_ITERATIONS)
    session_ttl: int = Field(default=3600, ge=60)
    sweep_interval: int = Field(default=60, ge=1)
    min_password_length: int = Field(default=8, ge=1)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000, ge=0, le=65535)

    @field_validator("cipher")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in SUPPORTED_CIPHERS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @field_validator("vault_file")
    @classmethod
    def expand_vault_file(cls, v: Path) -> Path:
        """Expand ``~`` so the store always sees an absolute-ish path."""
        return v.expanduser()

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig from the values read in ``conf``.

        Returns:
            Populated VaultConfig instance.
        """
        config = cls(
            vault_file=Path(conf.VAULT_FILE),
            cipher=conf.VAULT_CIPHER,
            kdf_iterations=conf.KDF_ITERATIONS,
            session_ttl=conf.SESSION_TTL,
            sweep_interval=conf.SESSION_SWEEP_INTERVAL,
            min_password_length=conf.MIN_PASSWORD_LENGTH,
            host=conf.SERVER_HOST,
            port=conf.SERVER_PORT,
        )
        logger.debug(
            "Vault config: file=%s cipher=%s iterations=%d",
            config.vault_file, config.cipher, config.kdf_iterations,
        )
        return config
