"""
Request middlewares and the bearer-token guard for the vault API.
"""
import logging
from functools import wraps
from typing import Any, Optional

import orjson
from aiohttp import web

from ..exceptions import ValidationError, VaultError
from .service import AsyncVault

logger = logging.getLogger("apikey_vault.web")

VAULT_KEY = web.AppKey("vault", AsyncVault)
PASSWORD_KEY = "vault_password"
TOKEN_KEY = "vault_token"


def json_dumps(obj: Any) -> str:
    return orjson.dumps(obj).decode("utf-8")


def json_response(data: Any, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=json_dumps)


def error_response(message: str, status: int) -> web.Response:
    return json_response({"error": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Map vault error kinds to status codes and a JSON body."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except VaultError as err:
        if err.status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, err.message)
        else:
            logger.debug("%s %s -> %d %s", request.method, request.path, err.status, err.code)
        return error_response(err.message, err.status)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return error_response("Internal server error", 500)


def bearer_token(request: web.Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def login_required(handler):
    """Resolve the bearer token into the master password before ``handler``.

    The password is stored on the request under ``PASSWORD_KEY``.
    """
    @wraps(handler)
    async def wrapper(request: web.Request):
        token = bearer_token(request)
        registry = request.app[VAULT_KEY].registry
        request[PASSWORD_KEY] = registry.resolve(token)
        request[TOKEN_KEY] = token
        return await handler(request)
    return wrapper


async def read_json(request: web.Request) -> dict:
    """Parse a JSON object body, raising ValidationError otherwise."""
    try:
        body = orjson.loads(await request.read() or b"{}")
    except orjson.JSONDecodeError as err:
        raise ValidationError("Request body must be valid JSON") from err
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body
