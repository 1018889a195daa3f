"""
Vault Key Rotation — Re-encryption of the vault under a new master password.

The vault is a single document, so rotation is one load under the old
password followed by one save under the new one. The save generates a
fresh salt and IV; nothing of the old envelope survives. Rotation is
idempotent: rotating to the password already in use just re-encrypts.

Security Note:
    Plaintext exists in memory only between the load and the save.
    Never log plaintext, ciphertext or passwords.
"""
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .store import VaultStore

logger = logging.getLogger("apikey_vault.vault")


def rotate_master_password(store: "VaultStore", old_password: str, new_password: str) -> dict:
    """Re-encrypt the vault held by ``store`` under ``new_password``.

    Args:
        store: VaultStore owning the vault file.
        old_password: Master password currently protecting the vault.
        new_password: Master password to protect the vault with.

    Returns:
        Stats dict with keys: providers, keys.

    Raises:
        VaultUnlockError: If ``old_password`` does not unlock the vault.
        StorageError: If the re-encrypted envelope cannot be written.
    """
    with store.locked():
        document = store.load(old_password)
        stats = {"providers": len(document.keys), "keys": document.count()}
        logger.info(
            "Starting master password rotation for %s (%d keys)",
            store.path, stats["keys"],
        )
        store.save(document, new_password)
    logger.info("Master password rotation complete: %s", stats)
    return stats
