"""
portal_gateway.api.routers.service_discovery

Service registry endpoint.

Responsibilities:
- Register (upsert), heartbeat, look up, list (legacy document) and deregister services.
- Accept the action in the JSON body `path` on the root URL for older clients.
- Answer every other method/sub-path with 404 `{"error": "Not found"}`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.status import HTTP_201_CREATED, HTTP_404_NOT_FOUND

from portal_gateway.api.deps import registry_from_app
from portal_gateway.discovery.legacy import to_legacy_document
from portal_gateway.discovery.models import ServiceStatus
from portal_gateway.services.service_registry import ServiceRegistry

router = APIRouter(prefix="/service-discovery", tags=["service-discovery"])


class RegisterRequest(BaseModel):
    # Presence of name/url is checked by the registry so the 400 message stays stable.
    service_name: str | None = None
    service_url: str | None = None
    status: ServiceStatus = ServiceStatus.up
    metadata: dict[str, Any] = Field(default_factory=dict)


class HeartbeatRequest(BaseModel):
    service_name: str | None = None
    status: ServiceStatus = ServiceStatus.up


def _not_found(message: str = "Not found") -> JSONResponse:
    return JSONResponse({"error": message}, status_code=HTTP_404_NOT_FOUND)


async def _register(registry: ServiceRegistry, body: RegisterRequest) -> JSONResponse:
    instance = await registry.register(
        body.service_name or "",
        body.service_url or "",
        status=body.status,
        metadata=body.metadata,
    )
    return JSONResponse(
        {"message": "Service registered successfully", "service": instance.to_payload()},
        status_code=HTTP_201_CREATED,
    )


async def _heartbeat(registry: ServiceRegistry, body: HeartbeatRequest) -> dict[str, str]:
    await registry.heartbeat(body.service_name or "", status=body.status)
    return {"message": "Heartbeat received"}


def _parse(model: type[BaseModel], raw: dict[str, Any]) -> Any:
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        # Same 400 rendering as body validation on the explicit routes.
        raise RequestValidationError(e.errors(include_url=False)) from e


@router.post("/register")
async def register(
    body: RegisterRequest,
    registry: ServiceRegistry = Depends(registry_from_app),
) -> JSONResponse:
    return await _register(registry, body)


@router.put("/heartbeat")
async def heartbeat(
    body: HeartbeatRequest,
    registry: ServiceRegistry = Depends(registry_from_app),
) -> dict[str, str]:
    return await _heartbeat(registry, body)


@router.get("/apps")
async def apps(registry: ServiceRegistry = Depends(registry_from_app)) -> dict[str, Any]:
    return to_legacy_document(await registry.list())


@router.get("")
async def lookup(
    service: str | None = Query(default=None),
    registry: ServiceRegistry = Depends(registry_from_app),
) -> Any:
    if service is None:
        return _not_found()
    instance = await registry.get(service)
    if instance is None:
        return _not_found("Service not found or not available")
    return {"service": instance.to_payload()}


@router.delete("")
async def deregister(
    service: str | None = Query(default=None),
    registry: ServiceRegistry = Depends(registry_from_app),
) -> Any:
    if service is None:
        return _not_found()
    await registry.deregister(service)
    return {"message": "Service deregistered successfully"}


@router.post("")
async def root_post(
    raw: dict[str, Any] | None = Body(default=None),
    registry: ServiceRegistry = Depends(registry_from_app),
) -> Any:
    raw = raw or {}
    if raw.get("path") != "register":
        return _not_found()
    return await _register(registry, _parse(RegisterRequest, raw))


@router.put("")
async def root_put(
    raw: dict[str, Any] | None = Body(default=None),
    registry: ServiceRegistry = Depends(registry_from_app),
) -> Any:
    raw = raw or {}
    if raw.get("path") != "heartbeat":
        return _not_found()
    return await _heartbeat(registry, _parse(HeartbeatRequest, raw))


@router.api_route("", methods=["PATCH"], include_in_schema=False)
@router.api_route(
    "/{rest:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def fallback() -> JSONResponse:
    return _not_found()


# --- Module Notes -----------------------------------------------------------
# Registry errors (validation, unknown name on heartbeat, storage failure) are rendered
# as `{"error": ...}` by the exception handlers installed in `api.app`.
