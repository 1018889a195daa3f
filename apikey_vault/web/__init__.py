"""aiohttp front end: bearer-token sessions in front of the VaultStore."""

from .app import create_app, run
from .middleware import VAULT_KEY
from .service import AsyncVault

__all__ = ["create_app", "run", "VAULT_KEY", "AsyncVault"]
