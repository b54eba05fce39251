"""Correlation ids and one access-log line per request.

An inbound ``X-Request-ID`` is reused only when it looks like an id (short,
no spaces or control characters); anything else is replaced so callers
cannot inject arbitrary text into the logs.
"""

from __future__ import annotations

import logging
import re
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,64}")

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal", default=None)
logger = logging.getLogger("salonstock.access")


def resolve_request_id(raw: str | None) -> str:
    candidate = (raw or "").strip()
    if _REQUEST_ID_PATTERN.fullmatch(candidate):
        return candidate
    return uuid4().hex


def _route_template(request: Request) -> str:
    # "/api/v1/materials/{material_id}" groups log lines better than the raw path.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = request_id_ctx_var.set(request_id)
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            fields = {
                "method": request.method,
                "route": _route_template(request),
                "status": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "principal": getattr(request.state, "principal", None),
            }
            level = logging.ERROR if response.status_code >= 500 else logging.INFO
            logger.log(level, "request.completed", extra={"extra_data": fields})
            return response
        finally:
            request_id_ctx_var.reset(token)
