"""
portal_gateway.api.app

FastAPI app factory for the portal gateway service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/exception handlers.
- Initialize and dispose shared infrastructure (DB engine, registry, gateway) in the lifespan.
- Optionally register this process in its own registry and keep it alive with heartbeats.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from portal_gateway import __version__
from portal_gateway.api.routers.gateway import router as gateway_router
from portal_gateway.api.routers.health import router as health_router
from portal_gateway.api.routers.roles import router as roles_router
from portal_gateway.api.routers.service_discovery import router as service_discovery_router
from portal_gateway.auth.identity import JwtIdentityProvider, SqlRoleStore
from portal_gateway.auth.jwt import JwtConfig
from portal_gateway.auth.policy import RoutePolicy
from portal_gateway.db.init_db import init_db, seed_admin
from portal_gateway.db.session import create_engine, create_sessionmaker
from portal_gateway.discovery.client import DiscoveryClient
from portal_gateway.errors import (
    RegistryUnavailableError,
    RegistryValidationError,
    ServiceNotFoundError,
)
from portal_gateway.observability.logging import configure_logging, get_logger
from portal_gateway.observability.middleware import (
    CorsHeadersMiddleware,
    RequestContextMiddleware,
    UnhandledErrorMiddleware,
)
from portal_gateway.services.auth_gateway import AuthGateway
from portal_gateway.services.service_registry import ServiceRegistry
from portal_gateway.settings import Settings

log = get_logger(__name__)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            {"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
            status_code=HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(RegistryValidationError)
    async def _registry_validation(_: Request, exc: RegistryValidationError) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=HTTP_400_BAD_REQUEST)

    @app.exception_handler(ServiceNotFoundError)
    async def _service_not_found(_: Request, exc: ServiceNotFoundError) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=HTTP_404_NOT_FOUND)

    @app.exception_handler(RegistryUnavailableError)
    async def _registry_unavailable(_: Request, exc: RegistryUnavailableError) -> JSONResponse:
        # Storage detail was logged by the registry; callers get the generic message.
        return JSONResponse({"error": exc.message}, status_code=HTTP_500_INTERNAL_SERVER_ERROR)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        # Create the async DB engine and session factory once and stash them on app.state.
        engine = create_engine(settings)
        sessions = create_sessionmaker(engine)
        app.state.engine = engine
        app.state.sessionmaker = sessions
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)
        if settings.bootstrap_admin_user_id and await seed_admin(
            sessions, settings.bootstrap_admin_user_id
        ):
            log.info("startup.admin_seeded", user_id=settings.bootstrap_admin_user_id)

        registry = ServiceRegistry(
            session_factory=sessions,
            timeout=settings.call_timeout_seconds,
            stale_after=settings.registry_stale_after_seconds,
            sweep_interval=settings.registry_sweep_interval_seconds,
        )
        await registry.open()
        app.state.registry = registry

        identity = JwtIdentityProvider(JwtConfig.from_settings(settings))
        role_store = SqlRoleStore(sessions)
        app.state.identity = identity
        app.state.role_store = role_store
        app.state.gateway = AuthGateway(
            policy=RoutePolicy.from_settings(settings),
            identity=identity,
            role_store=role_store,
            timeout=settings.call_timeout_seconds,
        )

        discovery = DiscoveryClient(
            backend=registry, cache_ttl=settings.discovery_cache_ttl_seconds
        )
        app.state.discovery = discovery
        if settings.discovery_self_register:
            result = await discovery.register_self(
                settings.service_name,
                settings.public_url,
                {"environment": settings.env, "version": __version__},
            )
            if result.success:
                discovery.start_heartbeat_loop(
                    settings.service_name, settings.heartbeat_interval_seconds
                )

        try:
            yield
        finally:
            if settings.discovery_self_register:
                await discovery.deregister_self(settings.service_name)
            await discovery.close()
            await registry.close()
            # Dispose the engine to close pools/FDs gracefully.
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Portal Gateway",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Last added runs first: request ids are bound before CORS short-circuits OPTIONS,
    # and CORS headers are applied to the JSON 500 for uncaught errors.
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(CorsHeadersMiddleware, allow_origin=settings.cors_allow_origin)
    app.add_middleware(RequestContextMiddleware)
    _install_error_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(gateway_router)
    app.include_router(service_discovery_router)
    app.include_router(roles_router)
    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; authorization and registry logic live in `services`.
