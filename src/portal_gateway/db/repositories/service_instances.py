"""
portal_gateway.db.repositories.service_instances

Repository for `ServiceRegistryEntry` rows.

Responsibilities:
- Upsert a registration keyed by service name in a single statement.
- Refresh status/heartbeat, fetch, list, delete.
- Demote stale UP rows to DOWN for the expiry sweep.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from portal_gateway.db.models import ServiceRegistryEntry
from portal_gateway.discovery.models import ServiceStatus


def _dialect_insert(session: AsyncSession):
    # ON CONFLICT upserts are dialect-specific constructs.
    name = session.bind.dialect.name if session.bind is not None else "sqlite"
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"upsert not supported for dialect {name!r}")


class ServiceInstanceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(
        self,
        *,
        service_name: str,
        service_url: str,
        status: ServiceStatus,
        metadata: dict[str, Any],
        now: datetime,
    ) -> ServiceRegistryEntry:
        insert = _dialect_insert(self._session)
        # Table-level insert: keys are column names ("metadata", not the ORM attribute).
        stmt = insert(ServiceRegistryEntry.__table__).values(
            {
                "id": uuid.uuid4(),
                "service_name": service_name,
                "service_url": service_url,
                "status": status,
                "metadata": metadata,
                "last_heartbeat": now,
                "created_at": now,
                "updated_at": now,
            }
        )
        # id and created_at survive re-registration; everything else is replaced.
        stmt = stmt.on_conflict_do_update(
            index_elements=["service_name"],
            set_={
                "service_url": stmt.excluded["service_url"],
                "status": stmt.excluded["status"],
                "metadata": stmt.excluded["metadata"],
                "last_heartbeat": stmt.excluded["last_heartbeat"],
                "updated_at": stmt.excluded["updated_at"],
            },
        )
        await self._session.execute(stmt)
        row = await self._session.scalar(
            select(ServiceRegistryEntry)
            .where(ServiceRegistryEntry.service_name == service_name)
            .execution_options(populate_existing=True)
        )
        assert row is not None
        return row

    async def touch(self, *, service_name: str, status: ServiceStatus, now: datetime) -> bool:
        result = await self._session.execute(
            update(ServiceRegistryEntry)
            .where(ServiceRegistryEntry.service_name == service_name)
            .values(status=status, last_heartbeat=now)
        )
        return result.rowcount > 0

    async def get_by_name(
        self, service_name: str, *, status: ServiceStatus | None = None
    ) -> ServiceRegistryEntry | None:
        stmt = select(ServiceRegistryEntry).where(ServiceRegistryEntry.service_name == service_name)
        if status is not None:
            stmt = stmt.where(ServiceRegistryEntry.status == status)
        return await self._session.scalar(stmt)

    async def list_all(self) -> list[ServiceRegistryEntry]:
        stmt = select(ServiceRegistryEntry).order_by(ServiceRegistryEntry.service_name)
        return list((await self._session.execute(stmt)).scalars().all())

    async def delete(self, service_name: str) -> bool:
        result = await self._session.execute(
            delete(ServiceRegistryEntry).where(ServiceRegistryEntry.service_name == service_name)
        )
        return result.rowcount > 0

    async def mark_stale_down(self, *, cutoff: datetime, now: datetime) -> int:
        result = await self._session.execute(
            update(ServiceRegistryEntry)
            .where(
                ServiceRegistryEntry.status == ServiceStatus.up,
                ServiceRegistryEntry.last_heartbeat < cutoff,
            )
            .values(status=ServiceStatus.down, updated_at=now)
        )
        return result.rowcount


# --- Module Notes -----------------------------------------------------------
# register/heartbeat races for the same name resolve at the row level: the upsert and
# the UPDATE are each one statement, so the last writer wins without duplicate rows.
