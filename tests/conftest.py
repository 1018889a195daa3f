import pytest

from apikey_vault.vault import VaultCipher, VaultConfig, VaultStore


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def vault_path(tmp_path):
    return tmp_path / "keys.encrypted.json"


@pytest.fixture
def store(vault_path):
    """An empty, not yet initialized vault."""
    return VaultStore(vault_path)


@pytest.fixture
def gcm_store(tmp_path):
    return VaultStore(tmp_path / "gcm.encrypted.json", cipher=VaultCipher("aes-gcm"))


@pytest.fixture
def config(vault_path):
    return VaultConfig(vault_file=vault_path)


@pytest.fixture
def clock():
    return FakeClock()
