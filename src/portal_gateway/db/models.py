"""
portal_gateway.db.models

Persistence schema for the gateway and the service registry.

Responsibilities:
- Define ORM models:
  - ServiceRegistryEntry: one row per registered service name
  - UserRoleGrant: role grants consulted by the gateway's role store
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Enum, Index, String, UniqueConstraint, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from portal_gateway.auth.roles import Role
from portal_gateway.db.base import Base
from portal_gateway.discovery.models import ServiceStatus


def utcnow() -> datetime:
    # Persist naive UTC timestamps; SQLite has no tz-aware column type.
    return datetime.now(UTC).replace(tzinfo=None)


class ServiceRegistryEntry(Base):
    __tablename__ = "service_registry"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # The name is the only uniqueness key; re-registering a name is an upsert.
    service_name: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    service_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    # Stored as the wire value (UP, DOWN, ...).
    status: Mapped[ServiceStatus] = mapped_column(
        Enum(ServiceStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ServiceStatus.up,
        index=True,
    )
    # `metadata` is reserved on declarative classes, hence the attribute name.
    service_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )

    last_heartbeat: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    __table_args__ = (Index("ix_service_registry_status_heartbeat", "status", "last_heartbeat"),)


class UserRoleGrant(Base):
    __tablename__ = "user_roles"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    role: Mapped[Role] = mapped_column(Enum(Role), nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)


# --- Module Notes -----------------------------------------------------------
# The stale-instance sweep filters on (status, last_heartbeat); keep that index.
