"""
portal_gateway.api.routers.gateway

Authorization gateway endpoint.

Responsibilities:
- Accept a target `path` (query string or JSON body) and the caller's Authorization header.
- Delegate to `AuthGateway.authorize` and render the decision with its HTTP status.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from portal_gateway.api.deps import gateway_from_app
from portal_gateway.services.auth_gateway import AuthGateway

router = APIRouter(prefix="/gateway", tags=["gateway"])


class GatewayRequest(BaseModel):
    path: str | None = None


async def _decide(gateway: AuthGateway, path: str | None, authorization: str | None) -> JSONResponse:
    # A request without a target path checks the portal root.
    decision = await gateway.authorize(path or "/", authorization)
    return JSONResponse(decision.to_payload(), status_code=decision.status_code)


@router.get("")
async def check_get(
    path: str | None = Query(default=None),
    authorization: str | None = Header(default=None),
    gateway: AuthGateway = Depends(gateway_from_app),
) -> JSONResponse:
    return await _decide(gateway, path, authorization)


@router.post("")
async def check_post(
    body: GatewayRequest | None = None,
    path: str | None = Query(default=None),
    authorization: str | None = Header(default=None),
    gateway: AuthGateway = Depends(gateway_from_app),
) -> JSONResponse:
    # The query string wins over the body when both carry a path.
    return await _decide(gateway, path or (body.path if body else None), authorization)


# --- Module Notes -----------------------------------------------------------
# Decisions are rendered verbatim; this router adds no authorization logic of its own.
