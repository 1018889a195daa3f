"""Tests for apikey_vault.cli — command line interface."""
import stat

import pytest

from apikey_vault.cli import main
from apikey_vault.vault import VaultStore

PASSWORD = "correct horse battery"


@pytest.fixture
def vault_file(tmp_path):
    return str(tmp_path / "keys.encrypted.json")


@pytest.fixture
def unlocked(vault_file, monkeypatch):
    """An initialized vault, with its password exported to the environment."""
    monkeypatch.setenv("APIKEY_VAULT_PASSWORD", PASSWORD)
    VaultStore(vault_file).initialize(PASSWORD)
    return vault_file


def _answers(monkeypatch, *values):
    it = iter(values)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(it))


def _passwords(monkeypatch, *values):
    it = iter(values)
    monkeypatch.setattr("apikey_vault.cli.getpass.getpass", lambda prompt="": next(it))


class TestCli:
    def test_version_flag(self, capsys):
        rc = main(["--version"])
        assert rc == 0
        out = capsys.readouterr().out
        assert "apikey_vault" in out
        assert "0.3.0" in out

    def test_providers(self, capsys):
        rc = main(["providers"])
        assert rc == 0
        out = capsys.readouterr().out
        assert "OPENAI_API_KEY" in out
        assert "Anthropic" in out

    def test_missing_vault(self, vault_file, capsys, monkeypatch):
        monkeypatch.setenv("APIKEY_VAULT_PASSWORD", PASSWORD)
        rc = main(["--vault", vault_file, "list"])
        assert rc == 1
        assert "No vault found" in capsys.readouterr().out

    def test_wrong_password(self, unlocked, capsys, monkeypatch):
        monkeypatch.setenv("APIKEY_VAULT_PASSWORD", "not the password")
        rc = main(["--vault", unlocked, "list"])
        assert rc == 1
        assert "Invalid master password." in capsys.readouterr().out

    def test_invalid_setting(self, unlocked, capsys, monkeypatch):
        monkeypatch.setattr("apikey_vault.conf.KDF_ITERATIONS", 1000)
        rc = main(["--vault", unlocked, "list"])
        assert rc == 1
        out = capsys.readouterr().out
        assert out.startswith("Error: invalid setting kdf_iterations")

    def test_unwritable_export_path(self, unlocked, tmp_path, capsys):
        target = tmp_path / "missing" / "api_keys.sh"
        rc = main(["--vault", unlocked, "export", "-o", str(target)])
        assert rc == 1
        assert capsys.readouterr().out.startswith("Error: ")
        assert not target.exists()


class TestInit:
    def test_init_from_env(self, vault_file, capsys, monkeypatch):
        monkeypatch.setenv("APIKEY_VAULT_PASSWORD", PASSWORD)
        rc = main(["--vault", vault_file, "init"])
        assert rc == 0
        assert "Vault created" in capsys.readouterr().out
        assert VaultStore(vault_file).load(PASSWORD).count() == 0

    def test_init_prompts(self, vault_file, monkeypatch):
        monkeypatch.delenv("APIKEY_VAULT_PASSWORD", raising=False)
        _passwords(monkeypatch, PASSWORD, PASSWORD)
        assert main(["--vault", vault_file, "init"]) == 0
        assert VaultStore(vault_file).exists()

    def test_init_short_password(self, vault_file, capsys, monkeypatch):
        monkeypatch.delenv("APIKEY_VAULT_PASSWORD", raising=False)
        _passwords(monkeypatch, "short")
        assert main(["--vault", vault_file, "init"]) == 1
        assert "at least 8 characters" in capsys.readouterr().out
        assert not VaultStore(vault_file).exists()

    def test_init_mismatch(self, vault_file, capsys, monkeypatch):
        monkeypatch.delenv("APIKEY_VAULT_PASSWORD", raising=False)
        _passwords(monkeypatch, PASSWORD, "something else")
        assert main(["--vault", vault_file, "init"]) == 1
        assert "do not match" in capsys.readouterr().out

    def test_init_refuses_existing(self, unlocked, capsys):
        assert main(["--vault", unlocked, "init"]) == 1
        assert "already exists" in capsys.readouterr().out


class TestKeyCommands:
    def test_add_get_list(self, unlocked, capsys):
        rc = main([
            "--vault", unlocked, "add", "OpenAI", "prod",
            "--api-key", "sk-abc123", "--tag", "a", "--tag", "b",
        ])
        assert rc == 0
        capsys.readouterr()

        assert main(["--vault", unlocked, "get", "OpenAI", "prod"]) == 0
        assert capsys.readouterr().out.strip() == "sk-abc123"

        assert main(["--vault", unlocked, "list"]) == 0
        out = capsys.readouterr().out
        assert "OpenAI:" in out
        assert "prod" in out
        assert "sk-abc123" not in out

        record = VaultStore(unlocked).load(PASSWORD).get_record("OpenAI", "prod")
        assert record.tags == ["a", "b"]
        assert record.usage_count == 1

    def test_add_prompts_for_key(self, unlocked, monkeypatch):
        _passwords(monkeypatch, "sk-prompted")
        assert main(["--vault", unlocked, "add", "OpenAI", "dev"]) == 0
        assert VaultStore(unlocked).get_key("OpenAI", "dev", PASSWORD) == "sk-prompted"

    def test_add_bad_format(self, unlocked, capsys):
        rc = main(["--vault", unlocked, "add", "OpenAI", "prod", "--api-key", "nope"])
        assert rc == 1
        assert "Invalid API key format" in capsys.readouterr().out

    def test_add_no_validate(self, unlocked):
        rc = main([
            "--vault", unlocked, "add", "OpenAI", "prod", "--api-key", "nope", "--no-validate",
        ])
        assert rc == 0

    def test_list_empty(self, unlocked, capsys):
        assert main(["--vault", unlocked, "list"]) == 0
        assert "No API keys stored yet." in capsys.readouterr().out

    def test_get_missing(self, unlocked, capsys):
        assert main(["--vault", unlocked, "get", "OpenAI", "prod"]) == 1
        assert "not found" in capsys.readouterr().out

    def test_get_expired(self, unlocked, capsys):
        main([
            "--vault", unlocked, "add", "OpenAI", "old",
            "--api-key", "sk-old", "--expires", "2000-01-01",
        ])
        capsys.readouterr()
        assert main(["--vault", unlocked, "get", "OpenAI", "old"]) == 1
        assert "has expired" in capsys.readouterr().out

    def test_get_inactive(self, unlocked, capsys):
        main(["--vault", unlocked, "add", "OpenAI", "off", "--api-key", "sk-off", "--inactive"])
        capsys.readouterr()
        assert main(["--vault", unlocked, "get", "OpenAI", "off"]) == 1
        assert "disabled" in capsys.readouterr().out

    def test_delete_confirmed(self, unlocked, capsys):
        main(["--vault", unlocked, "add", "OpenAI", "prod", "--api-key", "sk-abc"])
        assert main(["--vault", unlocked, "delete", "OpenAI", "prod", "-y"]) == 0
        assert "deleted" in capsys.readouterr().out
        assert VaultStore(unlocked).list_keys(PASSWORD) == {}

    def test_delete_cancelled(self, unlocked, capsys, monkeypatch):
        main(["--vault", unlocked, "add", "OpenAI", "prod", "--api-key", "sk-abc"])
        _answers(monkeypatch, "n")
        assert main(["--vault", unlocked, "delete", "OpenAI", "prod"]) == 0
        assert "cancelled" in capsys.readouterr().out
        assert "OpenAI" in VaultStore(unlocked).list_keys(PASSWORD)

    def test_delete_missing(self, unlocked, capsys):
        assert main(["--vault", unlocked, "delete", "OpenAI", "prod", "-y"]) == 1
        assert "Key not found." in capsys.readouterr().out

    def test_change_password(self, unlocked, monkeypatch):
        main(["--vault", unlocked, "add", "OpenAI", "prod", "--api-key", "sk-abc"])
        _passwords(monkeypatch, "a brand new password", "a brand new password")
        assert main(["--vault", unlocked, "change-password"]) == 0

        store = VaultStore(unlocked)
        assert store.get_key("OpenAI", "prod", "a brand new password") == "sk-abc"
        monkeypatch.setenv("APIKEY_VAULT_PASSWORD", PASSWORD)
        assert main(["--vault", unlocked, "list"]) == 1

    def test_export_stdout(self, unlocked, capsys):
        main(["--vault", unlocked, "add", "OpenAI", "prod", "--api-key", "sk-abc"])
        capsys.readouterr()
        assert main(["--vault", unlocked, "export"]) == 0
        assert "export OPENAI_API_KEY_PROD=sk-abc" in capsys.readouterr().out

    def test_export_file(self, unlocked, tmp_path):
        main(["--vault", unlocked, "add", "OpenAI", "prod", "--api-key", "sk-abc"])
        target = tmp_path / "api_keys.sh"
        assert main(["--vault", unlocked, "export", "-o", str(target)]) == 0
        assert "OPENAI_API_KEY_PROD" in target.read_text()
        assert stat.S_IMODE(target.stat().st_mode) == 0o600


class TestShell:
    def test_exit(self, unlocked, capsys, monkeypatch):
        _answers(monkeypatch, "6")
        assert main(["--vault", unlocked]) == 0
        out = capsys.readouterr().out
        assert "Vault unlocked successfully!" in out
        assert "Goodbye!" in out

    def test_creates_vault(self, vault_file, capsys, monkeypatch):
        monkeypatch.delenv("APIKEY_VAULT_PASSWORD", raising=False)
        _passwords(monkeypatch, PASSWORD, PASSWORD)
        _answers(monkeypatch, "6")
        assert main(["--vault", vault_file, "shell"]) == 0
        assert "Vault created successfully!" in capsys.readouterr().out
        assert VaultStore(vault_file).load(PASSWORD).count() == 0

    def test_add_then_get(self, unlocked, capsys, monkeypatch):
        _passwords(monkeypatch, "sk-from-shell")
        _answers(monkeypatch, "1", "OpenAI", "prod", "3", "1", "6")
        assert main(["--vault", unlocked, "shell"]) == 0
        out = capsys.readouterr().out
        assert 'API Key "prod" added for OpenAI' in out
        assert "API Key: sk-from-shell" in out

    def test_errors_keep_looping(self, unlocked, capsys, monkeypatch):
        _answers(monkeypatch, "9", "2", "3", "6")
        assert main(["--vault", unlocked, "shell"]) == 0
        out = capsys.readouterr().out
        assert "Unknown choice." in out
        assert out.count("No API keys stored yet.") == 2

    def test_delete_from_menu(self, unlocked, monkeypatch):
        VaultStore(unlocked).add_key("OpenAI", "prod", "sk-abc", PASSWORD)
        _answers(monkeypatch, "4", "1", "y", "6")
        assert main(["--vault", unlocked, "shell"]) == 0
        assert VaultStore(unlocked).list_keys(PASSWORD) == {}

    def test_change_password_wrong_current(self, unlocked, capsys, monkeypatch):
        _passwords(monkeypatch, "wrong current")
        _answers(monkeypatch, "5", "6")
        assert main(["--vault", unlocked, "shell"]) == 0
        assert "Current password is incorrect." in capsys.readouterr().out
        assert VaultStore(unlocked).load(PASSWORD).count() == 0
