"""
portal_gateway.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hold the ordered route table loaded once at process start.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from portal_gateway.auth.roles import Role


class RouteRuleConfig(BaseModel):
    # One (prefix, minimum role) pair; list position is the match priority.
    prefix: str = Field(min_length=1)
    role: Role


def _default_route_rules() -> list[RouteRuleConfig]:
    return [
        RouteRuleConfig(prefix="/admin", role=Role.admin),
        RouteRuleConfig(prefix="/settings", role=Role.manager),
        RouteRuleConfig(prefix="/residents", role=Role.syndicate),
        RouteRuleConfig(prefix="/reservations", role=Role.resident),
        RouteRuleConfig(prefix="/documents", role=Role.resident),
        RouteRuleConfig(prefix="/notices", role=Role.resident),
    ]


class Settings(BaseSettings):
    """
    Env-driven configuration (prefix `PGW_`).

    `route_rules` accepts a JSON list in the environment, e.g.
    PGW_ROUTE_RULES='[{"prefix": "/admin", "role": "admin"}]'.
    """

    model_config = SettingsConfigDict(env_prefix="PGW_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "portal-gateway"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080
    public_url: str = "http://localhost:8080"

    # Identity collaborator (bearer tokens are validated, never issued here)
    jwt_alg: str = "HS256"
    jwt_issuer: str = "portal-auth"
    jwt_audience: str = "portal-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    jwt_leeway_seconds: float = Field(default=0.0, ge=0)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./portal_gateway.db"

    # Authorization
    route_rules: list[RouteRuleConfig] = Field(default_factory=_default_route_rules)
    call_timeout_seconds: float = Field(default=5.0, gt=0)

    # Service discovery
    discovery_cache_ttl_seconds: float = Field(default=60.0, gt=0)
    heartbeat_interval_seconds: float = Field(default=30.0, gt=0)
    registry_stale_after_seconds: float = Field(default=90.0, ge=0)
    registry_sweep_interval_seconds: float = Field(default=30.0, gt=0)
    discovery_self_register: bool = False

    # Granted `admin` at startup when set; repeat startups are no-ops.
    bootstrap_admin_user_id: str | None = None

    cors_allow_origin: str = "*"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# A registry_stale_after_seconds of 0 disables the stale-instance sweep.
