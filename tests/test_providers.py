"""
Tests for the provider catalogue.
"""
import pytest

from apikey_vault.providers import (
    PROVIDERS,
    check_key_length,
    env_var_name,
    export_env_name,
    export_for_shell,
    get_provider,
    key_template,
    provider_names,
    validate_format,
)

PASSWORD = "correct horse battery"


class TestCatalogue:

    def test_catalogue_is_read_only(self):
        with pytest.raises(TypeError):
            PROVIDERS["New"] = None

    def test_names(self):
        names = provider_names()
        assert "OpenAI" in names
        assert "Other" in names

    def test_get_provider(self):
        info = get_provider("Groq")
        assert info.env_var == "GROQ_API_KEY"
        assert get_provider("Nope") is None

    def test_env_var_name(self):
        assert env_var_name("Anthropic") == "ANTHROPIC_API_KEY"
        assert env_var_name("Nope") is None

    def test_key_template(self):
        template = key_template("OpenAI")
        assert template["provider"] == "OpenAI"
        assert template["baseUrl"] == "https://api.openai.com/v1"
        assert template["example"].startswith("sk-")
        assert key_template("Nope") is None

    def test_examples_match_formats(self):
        for name, info in PROVIDERS.items():
            assert validate_format(name, info.example), name


class TestValidateFormat:

    @pytest.mark.parametrize("provider, key, expected", [
        ("OpenAI", "sk-abc_DEF-123", True),
        ("OpenAI", "pk-abc", False),
        ("Anthropic", "sk-ant-api03-abc", True),
        ("Anthropic", "sk-ant-abc", False),
        ("AWS Bedrock", "AKIA1234567890ABCDEF", True),
        ("AWS Bedrock", "AKIA123", False),
        ("Cohere", "a" * 40, True),
        ("Cohere", "a" * 39, False),
    ])
    def test_known_providers(self, provider, key, expected):
        assert validate_format(provider, key) is expected

    def test_unknown_provider_passes(self):
        assert validate_format("Someone Else", "anything at all") is True

    def test_provider_without_pattern_passes(self):
        assert validate_format("Other", "whatever") is True

    def test_trailing_newline_rejected(self):
        assert validate_format("OpenAI", "sk-abc\n") is False


class TestCheckKeyLength:

    def test_too_short(self):
        valid, reason = check_key_length("short")
        assert valid is False
        assert "Too short" in reason

    def test_too_long(self):
        valid, reason = check_key_length("x" * 501)
        assert valid is False
        assert "Too long" in reason

    def test_valid(self):
        assert check_key_length("  sk-1234567890  ") == (True, "Valid")


class TestShellExport:

    def test_env_name(self):
        assert export_env_name("OpenAI", "prod-key 1") == "OPENAI_API_KEY_PROD_KEY_1"

    def test_export(self, store):
        store.add_key("OpenAI", "prod", "sk-123", PASSWORD)
        store.add_key("Unlisted", "x", "secret", PASSWORD)
        script = export_for_shell(store, PASSWORD)
        assert script.startswith("#!/bin/bash\n")
        assert "export OPENAI_API_KEY_PROD=sk-123" in script
        assert "Unlisted" not in script
        assert "=secret" not in script
        assert store.load(PASSWORD).get_record("OpenAI", "prod").usage_count == 1

    def test_export_quotes_values(self, store):
        store.add_key("Other", "odd", "a b$c", PASSWORD)
        script = export_for_shell(store, PASSWORD)
        assert "export CUSTOM_API_KEY_ODD='a b$c'" in script

    def test_export_empty_vault(self, store):
        script = export_for_shell(store, PASSWORD)
        assert "export " not in script
