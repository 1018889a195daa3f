"""
Runtime settings read from the environment.

Every value can be overridden through ``VaultConfig`` or explicit
constructor arguments; these are only the process-wide defaults.
"""
import os
from pathlib import Path

VAULT_FILENAME = "keys.encrypted.json"

VAULT_FILE = os.environ.get(
    "APIKEY_VAULT_FILE",
    str(Path.cwd() / VAULT_FILENAME)
)
VAULT_CIPHER = os.environ.get("APIKEY_VAULT_CIPHER", "aes-cbc").lower()
KDF_ITERATIONS = int(os.environ.get("APIKEY_VAULT_KDF_ITERATIONS", 100000))

SESSION_TTL = int(os.environ.get("APIKEY_VAULT_SESSION_TTL", 3600))
SESSION_SWEEP_INTERVAL = int(
    os.environ.get("APIKEY_VAULT_SWEEP_INTERVAL", 60)
)

SERVER_HOST = os.environ.get("APIKEY_VAULT_HOST", "127.0.0.1")
SERVER_PORT = int(os.environ.get("APIKEY_VAULT_PORT", 3000))

MIN_PASSWORD_LENGTH = int(os.environ.get("APIKEY_VAULT_MIN_PASSWORD", 8))

# name of the env var holding the master password for non-interactive use
PASSWORD_ENV = "APIKEY_VAULT_PASSWORD"
