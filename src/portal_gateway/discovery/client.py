"""
portal_gateway.discovery.client

Caller-side discovery: self-registration, heartbeats, cached lookups.

Responsibilities:
- Register, heartbeat and list services, reporting failures as structured results.
- Run cancellable heartbeat loops that skip a tick rather than overlap calls.
- Resolve service names through a read-through cache with a fixed TTL.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from portal_gateway.discovery.models import ServiceInstance, ServiceStatus
from portal_gateway.errors import PortalGatewayError
from portal_gateway.observability.logging import get_logger

log = get_logger(__name__)


class RegistryBackend(Protocol):
    async def register(
        self,
        name: str,
        url: str,
        status: ServiceStatus = ServiceStatus.up,
        metadata: dict[str, Any] | None = None,
    ) -> ServiceInstance: ...

    async def heartbeat(self, name: str, status: ServiceStatus = ServiceStatus.up) -> None: ...

    async def get(self, name: str) -> ServiceInstance | None: ...

    async def list(self) -> list[ServiceInstance]: ...

    async def deregister(self, name: str) -> None: ...


@dataclass(frozen=True, slots=True)
class ClientResult:
    success: bool
    error: str | None = None
    instance: ServiceInstance | None = None


@dataclass(frozen=True, slots=True)
class ServiceListing:
    services: tuple[ServiceInstance, ...] = ()
    error: str | None = None


@dataclass(frozen=True, slots=True)
class Discovery:
    url: str | None
    error: str | None = None
    cached: bool = False


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    url: str
    inserted_at: float


def _describe(e: Exception) -> str:
    return e.message if isinstance(e, PortalGatewayError) else str(e) or type(e).__name__


class HeartbeatLoop:
    """
    Sends `heartbeat(name, UP)` every `interval` seconds on a background task.

    At most one heartbeat is in flight; a tick that finds the previous call still
    running is skipped. `cancel()` takes effect immediately: no tick fires after it
    returns, though a heartbeat already in flight may still complete.
    """

    def __init__(self, *, backend: RegistryBackend, name: str, interval: float) -> None:
        if interval <= 0:
            raise ValueError("heartbeat interval must be positive")
        self.name = name
        self.interval = interval
        self.beats = 0
        self.failures = 0
        self.skipped = 0
        self._backend = backend
        self._stopped = False
        self._inflight: asyncio.Task[None] | None = None
        self._task = asyncio.create_task(self._run(), name=f"heartbeat:{name}")

    @property
    def cancelled(self) -> bool:
        return self._stopped

    def cancel(self) -> None:
        self._stopped = True
        self._task.cancel()

    async def wait_closed(self) -> None:
        # Waits for the loop to stop and for a pending heartbeat to settle.
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        if self._inflight is not None:
            await asyncio.gather(self._inflight, return_exceptions=True)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if self._stopped:
                return
            if self._inflight is not None and not self._inflight.done():
                self.skipped += 1
                log.warning("discovery.heartbeat_skipped", service_name=self.name)
                continue
            self._inflight = asyncio.create_task(self._beat())

    async def _beat(self) -> None:
        try:
            await self._backend.heartbeat(self.name, ServiceStatus.up)
        except Exception as e:
            # Best effort: the next tick retries.
            self.failures += 1
            log.warning("discovery.heartbeat_failed", service_name=self.name, error=_describe(e))
        else:
            self.beats += 1


class DiscoveryClient:
    def __init__(
        self,
        *,
        backend: RegistryBackend,
        clock: Callable[[], float] = time.monotonic,
        cache_ttl: float = 60.0,
    ) -> None:
        self._backend = backend
        self._clock = clock
        self._cache_ttl = cache_ttl
        self._cache: dict[str, _CacheEntry] = {}
        self._loops: dict[str, HeartbeatLoop] = {}

    async def register_self(
        self, name: str, url: str, metadata: dict[str, Any] | None = None
    ) -> ClientResult:
        try:
            instance = await self._backend.register(name, url, ServiceStatus.up, metadata or {})
        except Exception as e:
            log.warning("discovery.register_failed", service_name=name, error=_describe(e))
            return ClientResult(success=False, error=_describe(e))
        log.info("discovery.registered", service_name=name, service_url=url)
        return ClientResult(success=True, instance=instance)

    async def deregister_self(self, name: str) -> ClientResult:
        loop = self._loops.pop(name, None)
        if loop is not None:
            loop.cancel()
        try:
            await self._backend.deregister(name)
        except Exception as e:
            log.warning("discovery.deregister_failed", service_name=name, error=_describe(e))
            return ClientResult(success=False, error=_describe(e))
        return ClientResult(success=True)

    async def send_heartbeat(
        self, name: str, status: ServiceStatus = ServiceStatus.up
    ) -> ClientResult:
        """
        One-off heartbeat, e.g. reporting OUT_OF_SERVICE while draining. Failures
        (unknown name, registry down) come back in the result.
        """

        try:
            await self._backend.heartbeat(name, status)
        except Exception as e:
            log.warning(
                "discovery.heartbeat_failed",
                service_name=name,
                status=status.value,
                error=_describe(e),
            )
            return ClientResult(success=False, error=_describe(e))
        return ClientResult(success=True)

    async def get_all_services(self) -> ServiceListing:
        # Listings bypass the lookup cache.
        try:
            services = await self._backend.list()
        except Exception as e:
            log.warning("discovery.list_failed", error=_describe(e))
            return ServiceListing(error=_describe(e))
        return ServiceListing(services=tuple(services))

    def start_heartbeat_loop(self, name: str, interval: float = 30.0) -> HeartbeatLoop:
        previous = self._loops.pop(name, None)
        if previous is not None:
            previous.cancel()
        loop = HeartbeatLoop(backend=self._backend, name=name, interval=interval)
        self._loops[name] = loop
        return loop

    async def discover(self, name: str) -> Discovery:
        entry = self._cache.get(name)
        now = self._clock()
        if entry is not None and now - entry.inserted_at < self._cache_ttl:
            return Discovery(url=entry.url, cached=True)

        try:
            instance = await self._backend.get(name)
        except Exception as e:
            # The cache is left as-is; a failed lookup neither refreshes nor evicts.
            log.warning("discovery.lookup_failed", service_name=name, error=_describe(e))
            return Discovery(url=None, error=_describe(e))

        if instance is None or not instance.is_available:
            self._cache.pop(name, None)
            return Discovery(url=None)

        self._cache[name] = _CacheEntry(url=instance.url, inserted_at=self._clock())
        return Discovery(url=instance.url)

    def flush_cache(self) -> None:
        self._cache.clear()

    async def close(self) -> None:
        loops = list(self._loops.values())
        self._loops.clear()
        for loop in loops:
            loop.cancel()
        for loop in loops:
            await loop.wait_closed()


# --- Module Notes -----------------------------------------------------------
# A cached URL may outlive the instance by up to `cache_ttl`; that staleness bound is
# what keeps registry query volume low. `flush_cache()` drops it on demand.
