"""
portal_gateway.services.service_registry

Server-side registry of named service instances (transaction owner).

Responsibilities:
- Register (upsert by name), heartbeat, query, list and deregister instances.
- Bound every storage call by a timeout; normalize storage failures.
- Run the optional stale-instance sweep that demotes silent instances to DOWN.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urlsplit

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal_gateway.db.models import ServiceRegistryEntry, utcnow
from portal_gateway.db.repositories.service_instances import ServiceInstanceRepo
from portal_gateway.discovery.models import ServiceInstance, ServiceStatus
from portal_gateway.errors import (
    RegistryUnavailableError,
    RegistryValidationError,
    ServiceNotFoundError,
)
from portal_gateway.observability.logging import get_logger

log = get_logger(__name__)


def _to_instance(row: ServiceRegistryEntry) -> ServiceInstance:
    return ServiceInstance(
        id=row.id,
        name=row.service_name,
        url=row.service_url,
        status=ServiceStatus(row.status),
        metadata=dict(row.service_metadata or {}),
        last_heartbeat=row.last_heartbeat,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _is_parseable_url(url: str) -> bool:
    try:
        urlsplit(url)
    except ValueError:
        # e.g. an unbalanced IPv6 bracket: "http://[bad"
        return False
    return True


class ServiceRegistry:
    """
    One registry per process (or per test), built explicitly and opened/closed by its
    owner. Storage is any async SQLAlchemy session factory; time comes from `clock`.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
        timeout: float = 5.0,
        stale_after: float | None = None,
        sweep_interval: float = 30.0,
    ) -> None:
        self._sessions = session_factory
        self._clock = clock
        self._timeout = timeout
        self._stale_after = stale_after or None
        self._sweep_interval = sweep_interval
        self._sweeper: asyncio.Task[None] | None = None

    async def open(self) -> None:
        if self._stale_after is not None and self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_forever(), name="registry-sweep")
            log.info(
                "registry.sweep_started",
                stale_after=self._stale_after,
                interval=self._sweep_interval,
            )

    async def close(self) -> None:
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is None:
            return
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
        log.info("registry.sweep_stopped")

    @property
    def sweeping(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def register(
        self,
        name: str,
        url: str,
        status: ServiceStatus = ServiceStatus.up,
        metadata: dict[str, Any] | None = None,
    ) -> ServiceInstance:
        name, url = name.strip(), url.strip()
        if not name or not url:
            raise RegistryValidationError("service_name and service_url are required")
        if not _is_parseable_url(url):
            raise RegistryValidationError("service_url is not a valid URL")

        async def op(session: AsyncSession) -> ServiceInstance:
            row = await ServiceInstanceRepo(session).upsert(
                service_name=name,
                service_url=url,
                status=status,
                metadata=dict(metadata or {}),
                now=self._clock(),
            )
            await session.commit()
            return _to_instance(row)

        instance = await self._run("register", op)
        log.info("registry.registered", service_name=name, service_url=url, status=status.value)
        return instance

    async def heartbeat(self, name: str, status: ServiceStatus = ServiceStatus.up) -> None:
        name = name.strip()
        if not name:
            raise RegistryValidationError("service_name is required")

        async def op(session: AsyncSession) -> bool:
            found = await ServiceInstanceRepo(session).touch(
                service_name=name, status=status, now=self._clock()
            )
            await session.commit()
            return found

        if not await self._run("heartbeat", op):
            # A heartbeat never auto-registers.
            raise ServiceNotFoundError(name)
        log.debug("registry.heartbeat", service_name=name, status=status.value)

    async def get(self, name: str) -> ServiceInstance | None:
        async def op(session: AsyncSession) -> ServiceInstance | None:
            row = await ServiceInstanceRepo(session).get_by_name(name, status=ServiceStatus.up)
            return _to_instance(row) if row is not None else None

        return await self._run("get", op)

    async def list(self) -> list[ServiceInstance]:
        async def op(session: AsyncSession) -> list[ServiceInstance]:
            return [_to_instance(r) for r in await ServiceInstanceRepo(session).list_all()]

        return await self._run("list", op)

    async def deregister(self, name: str) -> None:
        async def op(session: AsyncSession) -> bool:
            removed = await ServiceInstanceRepo(session).delete(name)
            await session.commit()
            return removed

        removed = await self._run("deregister", op)
        log.info("registry.deregistered", service_name=name, removed=removed)

    async def sweep_stale(self) -> int:
        """
        Mark UP instances whose last heartbeat is older than `stale_after` as DOWN.

        Rows are kept; a later register or heartbeat brings them back UP.
        """

        if self._stale_after is None:
            return 0
        now = self._clock()
        cutoff = now - timedelta(seconds=self._stale_after)

        async def op(session: AsyncSession) -> int:
            count = await ServiceInstanceRepo(session).mark_stale_down(cutoff=cutoff, now=now)
            await session.commit()
            return count

        count = await self._run("sweep", op)
        if count:
            log.warning("registry.stale_marked_down", count=count, cutoff=cutoff.isoformat())
        return count

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                await self.sweep_stale()
            except RegistryUnavailableError as e:
                # Retried on the next interval.
                log.warning("registry.sweep_failed", error=e.message)

    async def _run(self, op_name: str, op: Callable[[AsyncSession], Any]) -> Any:
        try:
            async with self._sessions() as session:
                return await asyncio.wait_for(op(session), self._timeout)
        except TimeoutError as e:
            log.error("registry.timeout", op=op_name, timeout=self._timeout)
            raise RegistryUnavailableError(
                "Service registry unavailable", details={"op": op_name, "error": "timeout"}
            ) from e
        except SQLAlchemyError as e:
            log.error("registry.storage_error", op=op_name, error=str(e))
            raise RegistryUnavailableError(
                "Service registry unavailable", details={"op": op_name, "error": str(e)}
            ) from e


# --- Module Notes -----------------------------------------------------------
# Each operation opens its own short session. Validation happens before any storage
# access, so a RegistryValidationError never touches the database.
