"""
API Key Vault CLI — manage the encrypted vault from a terminal.

Usage:
    apikey-vault init                       # Create a new vault
    apikey-vault add OpenAI prod            # Store a key (prompts for it)
    apikey-vault list                       # List stored keys
    apikey-vault get OpenAI prod            # Print a key
    apikey-vault delete OpenAI prod         # Remove a key
    apikey-vault change-password            # Rotate the master password
    apikey-vault providers                  # Show the provider catalogue
    apikey-vault export -o api_keys.sh      # Shell script of export lines
    apikey-vault serve                      # Start the HTTP API
    apikey-vault shell                      # Interactive menu (default)

The master password is read from APIKEY_VAULT_PASSWORD when set,
otherwise prompted for.
"""
from __future__ import annotations

import os
import sys
import getpass
import logging
import argparse
from pathlib import Path

import pydantic

from . import conf
from .exceptions import VaultError, VaultUnlockError
from .providers import get_provider, provider_names, export_for_shell, validate_format
from .vault.config import VaultConfig
from .vault.store import VaultStore
from .version import __title__, __version__

logger = logging.getLogger("apikey_vault.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apikey-vault",
        description="API Key Vault — encrypted local storage for provider API keys.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--vault", type=str, help="Vault file (default: ./keys.encrypted.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress")
    parser.add_argument("--debug", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init", help="Create a new vault")

    add_parser = subparsers.add_parser("add", help="Store an API key")
    add_parser.add_argument("provider", help="Provider name, e.g. OpenAI")
    add_parser.add_argument("key_name", help="Name for this key, e.g. prod")
    add_parser.add_argument("--api-key", help="Key value (prompted when omitted)")
    add_parser.add_argument("--description", default="", help="Free-form description")
    add_parser.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")
    add_parser.add_argument("--environment", default="development", help="Environment label")
    add_parser.add_argument("--expires", help="Expiration date (ISO-8601)")
    add_parser.add_argument("--inactive", action="store_true", help="Store the key disabled")
    add_parser.add_argument(
        "--no-validate", action="store_true", help="Skip the provider key-format check"
    )

    subparsers.add_parser("list", help="List stored keys")

    get_parser = subparsers.add_parser("get", help="Print a stored key")
    get_parser.add_argument("provider")
    get_parser.add_argument("key_name")

    delete_parser = subparsers.add_parser("delete", help="Delete a stored key")
    delete_parser.add_argument("provider")
    delete_parser.add_argument("key_name")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    subparsers.add_parser("change-password", help="Change the master password")
    subparsers.add_parser("providers", help="Show known providers")

    export_parser = subparsers.add_parser("export", help="Export keys as shell variables")
    export_parser.add_argument("--output", "-o", type=str, help="Write to file instead of stdout")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Port")

    subparsers.add_parser("shell", help="Interactive menu")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"{__title__} {__version__}")
        return 0

    level = logging.DEBUG if args.debug else logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    try:
        config = VaultConfig.from_env()
        if args.vault:
            config = config.model_copy(update={"vault_file": Path(args.vault).expanduser()})
        store = VaultStore.from_config(config)
        command = args.command or "shell"

        if command == "providers":
            return _cmd_providers()
        if command == "serve":
            return _cmd_serve(config, args)
        if command == "init":
            return _cmd_init(store, config)
        if command == "shell":
            return VaultShell(store, config).run()

        if not store.exists():
            print(f"No vault found at {store.path}. Run 'apikey-vault init' first.")
            return 1
        password = _unlock(store)
        if password is None:
            return 1

        if command == "add":
            return _cmd_add(store, password, args)
        if command == "list":
            return _cmd_list(store, password)
        if command == "get":
            print(store.get_key(args.provider, args.key_name, password))
            return 0
        if command == "delete":
            return _cmd_delete(store, password, args)
        if command == "change-password":
            return _cmd_change_password(store, config, password)
        if command == "export":
            return _cmd_export(store, password, args)
    except VaultError as err:
        print(f"Error: {err.message}")
        return 1
    except pydantic.ValidationError as err:
        first = err.errors()[0]
        setting = ".".join(str(part) for part in first["loc"])
        print(f"Error: invalid setting {setting}: {first['msg']}")
        return 1
    except OSError as err:
        print(f"Error: {err}")
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nAborted.")
        return 1

    parser.print_help()
    return 0


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def _prompt_password(message: str = "Enter master password: ") -> str:
    env_password = os.environ.get(conf.PASSWORD_ENV)
    if env_password:
        return env_password
    return getpass.getpass(message)


def _prompt_new_password(config: VaultConfig, message: str = "Create master password: ") -> str | None:
    password = getpass.getpass(message)
    if len(password) < config.min_password_length:
        print(f"Password must be at least {config.min_password_length} characters long")
        return None
    if getpass.getpass("Confirm master password: ") != password:
        print("Passwords do not match")
        return None
    return password


def _unlock(store: VaultStore) -> str | None:
    password = _prompt_password()
    try:
        store.load(password)
    except VaultUnlockError:
        print("Invalid master password.")
        return None
    return password


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _cmd_init(store: VaultStore, config: VaultConfig) -> int:
    if store.exists():
        print(f"A vault already exists at {store.path}.")
        return 1
    password = os.environ.get(conf.PASSWORD_ENV) or _prompt_new_password(config)
    if not password:
        return 1
    store.initialize(password)
    print(f"Vault created at {store.path}")
    return 0


def _cmd_add(store: VaultStore, password: str, args) -> int:
    api_key = args.api_key or getpass.getpass("API Key: ")
    if not args.no_validate and not validate_format(args.provider, api_key):
        print(f"Invalid API key format for {args.provider}")
        return 1
    metadata = {
        "description": args.description,
        "tags": args.tag,
        "environment": args.environment,
        "isActive": not args.inactive,
    }
    if args.expires:
        metadata["expirationDate"] = args.expires
    store.add_key(args.provider, args.key_name, api_key, password, metadata)
    print(f'API Key "{args.key_name}" added for {args.provider}')
    return 0


def _format_time(value) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S") if value else "Never"


def _cmd_list(store: VaultStore, password: str) -> int:
    keys = store.list_keys(password)
    if not keys:
        print("No API keys stored yet.")
        return 0
    print("Your API Keys:")
    for provider, entries in keys.items():
        print(f"\n{provider}:")
        for entry in entries:
            print(f"  {entry['name']}")
            print(f"     Created: {_format_time(entry['created'])}")
            print(f"     Last Used: {_format_time(entry['lastUsed'])}")
    return 0


def _cmd_delete(store: VaultStore, password: str, args) -> int:
    if not args.yes:
        answer = input(
            f'Are you sure you want to delete "{args.key_name}" from {args.provider}? [y/N] '
        )
        if answer.strip().lower() not in ("y", "yes"):
            print("Deletion cancelled.")
            return 0
    if store.delete_key(args.provider, args.key_name, password):
        print("API Key deleted successfully!")
        return 0
    print("Key not found.")
    return 1


def _cmd_change_password(store: VaultStore, config: VaultConfig, password: str) -> int:
    new_password = _prompt_new_password(config, "New master password: ")
    if not new_password:
        return 1
    store.change_password(password, new_password)
    print("Master password changed successfully!")
    return 0


def _cmd_export(store: VaultStore, password: str, args) -> int:
    script = export_for_shell(store, password)
    if args.output:
        path = Path(args.output)
        path.write_text(script, encoding="utf-8")
        path.chmod(0o600)
        print(f"Exported to {path}")
    else:
        sys.stdout.write(script)
    return 0


def _cmd_providers() -> int:
    for name in provider_names():
        info = get_provider(name)
        print(f"{name:<14} {info.env_var:<22} {info.base_url}")
    return 0


def _cmd_serve(config: VaultConfig, args) -> int:
    from .web.app import run

    update = {}
    if args.host:
        update["host"] = args.host
    if args.port is not None:
        update["port"] = args.port
    run(config.model_copy(update=update))
    return 0


# ---------------------------------------------------------------------------
# Interactive shell
# ---------------------------------------------------------------------------

class VaultShell:
    """Text menu over the VaultStore; errors are printed and the loop continues."""

    MENU = (
        ("1", "Add API Key", "add"),
        ("2", "List API Keys", "list"),
        ("3", "Get API Key", "get"),
        ("4", "Delete API Key", "delete"),
        ("5", "Change Master Password", "change_password"),
        ("6", "Exit", "exit"),
    )

    def __init__(self, store: VaultStore, config: VaultConfig):
        self.store = store
        self.config = config
        self.password: str | None = None

    def run(self) -> int:
        print("Welcome to API Key Vault")
        if not self.store.exists():
            print("No vault found. Creating new vault...")
            self.password = _prompt_new_password(self.config)
            if not self.password:
                return 1
            self.store.initialize(self.password)
            print("Vault created successfully!")
        else:
            self.password = _unlock(self.store)
            if self.password is None:
                return 1
            print("Vault unlocked successfully!")

        while True:
            print()
            for number, label, _ in self.MENU:
                print(f"  {number}) {label}")
            choice = input("What would you like to do? ").strip()
            action = next((a for n, _, a in self.MENU if n == choice), None)
            if action is None:
                print("Unknown choice.")
                continue
            if action == "exit":
                print("Goodbye!")
                return 0
            try:
                getattr(self, f"do_{action}")()
            except VaultError as err:
                print(f"Error: {err.message}")

    def _pick_key(self, verb: str):
        keys = self.store.list_keys(self.password)
        choices = [(p, e["name"]) for p, entries in keys.items() for e in entries]
        if not choices:
            print("No API keys stored yet.")
            return None
        for idx, (provider, name) in enumerate(choices, 1):
            print(f"  {idx}) {provider} - {name}")
        raw = input(f"Select API key to {verb}: ").strip()
        if not raw.isdigit() or not 1 <= int(raw) <= len(choices):
            print("Invalid selection.")
            return None
        return choices[int(raw) - 1]

    def do_add(self) -> None:
        provider = input("Provider: ").strip()
        key_name = input("Key name: ").strip()
        api_key = getpass.getpass("API Key: ")
        if not validate_format(provider, api_key):
            print(f"Invalid API key format for {provider}")
            return
        self.store.add_key(provider, key_name, api_key, self.password)
        print(f'API Key "{key_name}" added for {provider}')

    def do_list(self) -> None:
        _cmd_list(self.store, self.password)

    def do_get(self) -> None:
        selected = self._pick_key("retrieve")
        if selected:
            print(f"API Key: {self.store.get_key(*selected, self.password)}")
            print("Handle securely!")

    def do_delete(self) -> None:
        selected = self._pick_key("delete")
        if not selected:
            return
        provider, name = selected
        answer = input(f'Are you sure you want to delete "{name}" from {provider}? [y/N] ')
        if answer.strip().lower() not in ("y", "yes"):
            print("Deletion cancelled.")
            return
        if self.store.delete_key(provider, name, self.password):
            print("API Key deleted successfully!")
        else:
            print("Key not found.")

    def do_change_password(self) -> None:
        current = getpass.getpass("Current master password: ")
        if current != self.password:
            print("Current password is incorrect.")
            return
        new_password = _prompt_new_password(self.config, "New master password: ")
        if not new_password:
            return
        self.store.change_password(current, new_password)
        self.password = new_password
        print("Master password changed successfully!")


if __name__ == "__main__":
    sys.exit(main())
