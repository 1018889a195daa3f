"""
AsyncVault — asyncio facade over the blocking VaultStore.

PBKDF2 is deliberately slow, so every store call runs in a worker
thread. The store's own lock still serializes load-mutate-save cycles
across threads. A call already handed to a thread runs to completion
even if the awaiting request is cancelled, so a started save is never
cut short.
"""
import asyncio
from typing import Optional

from ..providers import export_for_shell
from ..session import SessionRegistry
from ..vault.store import VaultStore


class AsyncVault:
    """Awaitable versions of the VaultStore and SessionRegistry calls."""

    def __init__(self, store: VaultStore, registry: SessionRegistry):
        self.store = store
        self.registry = registry

    def exists(self) -> bool:
        return self.store.exists()

    async def login(self, password: str) -> str:
        return await asyncio.to_thread(self.registry.login, password)

    async def add_key(
        self,
        provider: str,
        key_name: str,
        secret: str,
        password: str,
        metadata: Optional[dict] = None,
    ):
        return await asyncio.to_thread(
            self.store.add_key, provider, key_name, secret, password, metadata
        )

    async def get_key(self, provider: str, key_name: str, password: str) -> str:
        return await asyncio.to_thread(self.store.get_key, provider, key_name, password)

    async def list_keys(self, password: str) -> dict:
        return await asyncio.to_thread(self.store.list_keys, password)

    async def delete_key(self, provider: str, key_name: str, password: str) -> bool:
        return await asyncio.to_thread(self.store.delete_key, provider, key_name, password)

    async def export_for_shell(self, password: str) -> str:
        return await asyncio.to_thread(export_for_shell, self.store, password)
