"""
Error kinds raised by the vault engine and its front ends.

Each kind carries a stable ``code`` and the HTTP ``status`` the web
layer answers with.
"""
from datetime import datetime


class VaultError(Exception):
    """Base exception for API Key Vault."""
    status: int = 500
    default_code: str = "VAULT_ERROR"

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(self.message)


class StorageError(VaultError):
    """Raised when the vault file cannot be read or written."""
    default_code = "STORAGE_ERROR"


class DecryptionError(VaultError):
    """Raised when a ciphertext cannot be decrypted (bad key, padding or tag)."""
    status = 401
    default_code = "DECRYPTION_ERROR"


class VaultUnlockError(VaultError):
    """Wrong master password or corrupted vault file.

    Both causes are reported the same way on purpose.
    """
    status = 401
    default_code = "VAULT_LOCKED"

    def __init__(self, message: str = "Invalid master password or corrupted file"):
        super().__init__(message)


class NotFoundError(VaultError):
    """Raised when a provider/key name pair is not in the vault."""
    status = 404
    default_code = "NOT_FOUND"

    def __init__(self, provider: str, key_name: str):
        self.provider = provider
        self.key_name = key_name
        super().__init__(f'API key "{key_name}" not found for {provider}')


class ExpiredKeyError(VaultError):
    """Raised when a key is retrieved after its expiration date."""
    status = 403
    default_code = "KEY_EXPIRED"

    def __init__(self, key_name: str, expired_at):
        self.key_name = key_name
        self.expired_at = expired_at
        when = f"{expired_at:%Y-%m-%d}" if isinstance(expired_at, datetime) else expired_at
        super().__init__(f'API key "{key_name}" has expired on {when}')


class DisabledKeyError(VaultError):
    """Raised when an inactive key is retrieved."""
    status = 403
    default_code = "KEY_DISABLED"

    def __init__(self, key_name: str):
        self.key_name = key_name
        super().__init__(f'API key "{key_name}" is currently disabled')


class AuthenticationError(VaultError):
    """Raised when a login attempt fails."""
    status = 401
    default_code = "AUTHENTICATION_FAILED"

    def __init__(self, message: str = "Invalid master password"):
        super().__init__(message)


class SessionExpiredError(VaultError):
    """Raised when a session token is unknown or past its expiry."""
    status = 401
    default_code = "SESSION_EXPIRED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ValidationError(VaultError):
    """Raised on missing required fields or a key-format mismatch."""
    status = 400
    default_code = "VALIDATION_ERROR"
