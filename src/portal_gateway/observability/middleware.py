"""
portal_gateway.observability.middleware

HTTP middleware for request-scoped logging context and CORS headers.

Responsibilities:
- Propagate the caller's `x-request-id` or mint one, and echo it on the response.
- Bind request metadata into structlog contextvars and emit one access event per request.
- Turn uncaught exceptions into a JSON 500 without leaking their detail.
- Attach permissive CORS headers to every response and answer preflights with 204.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR
from starlette.types import ASGIApp

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
CORS_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
REQUEST_ID_HEADER = "x-request-id"
INTERNAL_ERROR_MESSAGE = "Internal server error"

_access_log = structlog.get_logger("portal_gateway.access")
_error_log = structlog.get_logger("portal_gateway.errors")


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            _access_log.info(
                "http.request",
                status=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """
    Renders any exception that escaped the routers and exception handlers as a JSON
    500 `{"error": "Internal server error"}`. Installed innermost so the CORS and
    request-id middleware still decorate the response.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception:
            _error_log.exception("http.unhandled_error")
            return JSONResponse(
                {"error": INTERNAL_ERROR_MESSAGE},
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            )


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """
    Every response (errors included) carries the same CORS headers, with or without
    an Origin header on the request. OPTIONS never reaches the routers.
    """

    def __init__(self, app: ASGIApp, *, allow_origin: str = "*") -> None:
        super().__init__(app)
        self._headers = {
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
            "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
        }

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=self._headers)
        response: Response = await call_next(request)
        response.headers.update(self._headers)
        return response


# --- Module Notes -----------------------------------------------------------
# Starlette's CORSMiddleware only decorates requests that send an Origin header and
# answers preflights with 200, which the portal's clients do not expect.
