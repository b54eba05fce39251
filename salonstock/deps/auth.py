"""Optional shared-key gate for the JSON API.

A salon install usually runs on the front-desk machine only, so with no
``API_KEY`` configured every route stays open. Once a key is set, each request
must send it in ``X-API-Key``.
"""

from __future__ import annotations

import hmac

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from ..middlewares import principal_ctx_var

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def _reject(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "ApiKey"},
    )


async def require_api_access(request: Request, provided: str | None = Security(api_key_header)) -> str:
    """Return the caller's principal, ``"open"`` or ``"api-key"``."""

    expected = request.app.state.settings.API_KEY_VALUE
    if expected:
        supplied = (provided or "").strip()
        if not supplied:
            raise _reject("Authorization required")
        if not hmac.compare_digest(supplied.encode(), expected.encode()):
            raise _reject("Invalid API key")
        principal = "api-key"
    else:
        principal = "open"

    principal_ctx_var.set(principal)
    request.state.principal = principal
    return principal
