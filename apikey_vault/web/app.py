"""
HTTP front end for the vault.

Routes:
    POST   /api/auth/login                 {masterPassword} -> {token}
    POST   /api/auth/logout                (bearer)
    GET    /api/keys                       (bearer) -> {keys}
    POST   /api/keys                       (bearer) {provider, keyName, apiKey, metadata?}
    GET    /api/keys/{provider}/{keyName}  (bearer) -> {apiKey}
    DELETE /api/keys/{provider}/{keyName}  (bearer)
    GET    /api/export/shell               (bearer) -> api_keys.sh
    GET    /api/providers
    POST   /api/validate-key               {provider, apiKey} -> {valid, reason}
    GET    /api/health

The session registry is created with the application, reachable from
handlers through ``request.app[VAULT_KEY]`` and cleared at shutdown.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from aiohttp import web

from ..exceptions import NotFoundError, ValidationError
from ..providers import check_key_length, key_template, provider_names, validate_format
from ..session import SessionRegistry
from ..vault.config import VaultConfig
from ..vault.store import VaultStore
from .middleware import (
    PASSWORD_KEY,
    TOKEN_KEY,
    VAULT_KEY,
    error_middleware,
    json_response,
    login_required,
    read_json,
)
from .service import AsyncVault

logger = logging.getLogger("apikey_vault.web")

routes = web.RouteTableDef()


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

@routes.post("/api/auth/login")
async def login(request: web.Request) -> web.Response:
    body = await read_json(request)
    password = body.get("masterPassword")
    if not password or not isinstance(password, str):
        raise ValidationError("masterPassword is required")
    token = await request.app[VAULT_KEY].login(password)
    return json_response({"token": token, "message": "Authenticated successfully"})


@routes.post("/api/auth/logout")
@login_required
async def logout(request: web.Request) -> web.Response:
    request.app[VAULT_KEY].registry.logout(request[TOKEN_KEY])
    return json_response({"message": "Logged out successfully"})


# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------

@routes.get("/api/keys")
@login_required
async def list_keys(request: web.Request) -> web.Response:
    keys = await request.app[VAULT_KEY].list_keys(request[PASSWORD_KEY])
    return json_response({"keys": keys})


@routes.post("/api/keys")
@login_required
async def add_key(request: web.Request) -> web.Response:
    body = await read_json(request)
    provider = body.get("provider")
    key_name = body.get("keyName")
    api_key = body.get("apiKey")
    metadata = body.get("metadata") or {}
    if not provider or not key_name or not api_key:
        raise ValidationError("Provider, keyName, and apiKey are required")
    if not all(isinstance(v, str) for v in (provider, key_name, api_key)):
        raise ValidationError("Provider, keyName, and apiKey must be strings")
    if not isinstance(metadata, dict):
        raise ValidationError("metadata must be an object")
    if not validate_format(provider, api_key):
        raise ValidationError(f"Invalid API key format for {provider}")
    await request.app[VAULT_KEY].add_key(
        provider, key_name, api_key, request[PASSWORD_KEY], metadata
    )
    return json_response({"message": "API key added successfully"})


@routes.get("/api/keys/{provider}/{keyName}")
@login_required
async def get_key(request: web.Request) -> web.Response:
    provider = request.match_info["provider"]
    key_name = request.match_info["keyName"]
    api_key = await request.app[VAULT_KEY].get_key(provider, key_name, request[PASSWORD_KEY])
    return json_response({"apiKey": api_key})


@routes.delete("/api/keys/{provider}/{keyName}")
@login_required
async def delete_key(request: web.Request) -> web.Response:
    provider = request.match_info["provider"]
    key_name = request.match_info["keyName"]
    deleted = await request.app[VAULT_KEY].delete_key(provider, key_name, request[PASSWORD_KEY])
    if not deleted:
        raise NotFoundError(provider, key_name)
    return json_response({"message": "API key deleted successfully"})


@routes.get("/api/export/shell")
@login_required
async def export_shell(request: web.Request) -> web.Response:
    script = await request.app[VAULT_KEY].export_for_shell(request[PASSWORD_KEY])
    return web.Response(
        text=script,
        content_type="application/x-sh",
        headers={"Content-Disposition": 'attachment; filename="api_keys.sh"'},
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------

@routes.get("/api/providers")
async def providers(request: web.Request) -> web.Response:
    return json_response({"providers": [key_template(name) for name in provider_names()]})


@routes.post("/api/validate-key")
async def validate_key(request: web.Request) -> web.Response:
    body = await read_json(request)
    provider = body.get("provider")
    api_key = body.get("apiKey")
    if not provider or not api_key or not isinstance(api_key, str):
        raise ValidationError("Provider and apiKey are required")
    valid, reason = check_key_length(api_key)
    return json_response({"valid": valid, "reason": reason})


@routes.get("/api/health")
async def health(request: web.Request) -> web.Response:
    vault = request.app[VAULT_KEY]
    return json_response({
        "status": "healthy",
        "vault_exists": vault.exists(),
        "active_sessions": vault.registry.active_count(),
        "timestamp": datetime.now(timezone.utc),
    })


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

def _session_sweeper(interval: float):
    async def sweeper(app: web.Application):
        registry = app[VAULT_KEY].registry

        async def _loop():
            while True:
                await asyncio.sleep(interval)
                registry.sweep()

        task = asyncio.create_task(_loop())
        yield
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        registry.clear()
        logger.info("Session registry cleared")
    return sweeper


def create_app(
    config: Optional[VaultConfig] = None,
    store: Optional[VaultStore] = None,
    registry: Optional[SessionRegistry] = None,
) -> web.Application:
    """Build the aiohttp application.

    Args:
        config: Settings; read from the environment when omitted.
        store: VaultStore to serve; built from ``config`` when omitted.
        registry: SessionRegistry; a fresh one per application by default.
    """
    config = config or VaultConfig.from_env()
    store = store or VaultStore.from_config(config)
    registry = registry or SessionRegistry(store, ttl=config.session_ttl)

    app = web.Application(middlewares=[error_middleware])
    app[VAULT_KEY] = AsyncVault(store, registry)
    app.cleanup_ctx.append(_session_sweeper(config.sweep_interval))
    app.add_routes(routes)
    return app


def run(config: Optional[VaultConfig] = None) -> None:
    config = config or VaultConfig.from_env()
    app = create_app(config)
    logger.info("API Key Vault listening on http://%s:%d", config.host, config.port)
    logger.info("Vault exists: %s", app[VAULT_KEY].exists())
    web.run_app(app, host=config.host, port=config.port, print=None)
