"""
portal_gateway.registry_clients.http

HTTP client boundary for a remote service registry.

Responsibilities:
- Call the `/service-discovery` endpoint (register, heartbeat, lookup, apps, deregister).
- List instances by reading the `/apps` view back into `ServiceInstance`s.
- Map HTTP statuses and transport failures onto the registry error types.
- Satisfy the `RegistryBackend` protocol so `DiscoveryClient` can run against it.
"""

from __future__ import annotations

from typing import Any

import httpx

from portal_gateway.discovery.legacy import from_legacy_document
from portal_gateway.discovery.models import ServiceInstance, ServiceStatus
from portal_gateway.errors import (
    RegistryUnavailableError,
    RegistryValidationError,
    ServiceNotFoundError,
)


class RegistryHttpClient:
    """
    Thin wrapper over a caller-owned `httpx.AsyncClient` (base URL, timeouts and
    headers such as `apikey` are configured on that client).
    """

    def __init__(self, *, http: httpx.AsyncClient, base_path: str = "/service-discovery") -> None:
        self._http = http
        self._base = base_path.rstrip("/")

    async def register(
        self,
        name: str,
        url: str,
        status: ServiceStatus = ServiceStatus.up,
        metadata: dict[str, Any] | None = None,
    ) -> ServiceInstance:
        r = await self._send(
            "POST",
            f"{self._base}/register",
            json={
                "service_name": name,
                "service_url": url,
                "status": status.value,
                "metadata": metadata or {},
            },
        )
        self._raise_for_status(r)
        return ServiceInstance.from_payload(r.json()["service"])

    async def heartbeat(self, name: str, status: ServiceStatus = ServiceStatus.up) -> None:
        r = await self._send(
            "PUT",
            f"{self._base}/heartbeat",
            json={"service_name": name, "status": status.value},
        )
        if r.status_code == 404:
            raise ServiceNotFoundError(name)
        self._raise_for_status(r)

    async def get(self, name: str) -> ServiceInstance | None:
        r = await self._send("GET", self._base, params={"service": name})
        if r.status_code == 404:
            # Absent and not-UP look the same to callers.
            return None
        self._raise_for_status(r)
        return ServiceInstance.from_payload(r.json()["service"])

    async def list_applications(self) -> dict[str, Any]:
        r = await self._send("GET", f"{self._base}/apps")
        self._raise_for_status(r)
        return r.json()

    async def list(self) -> list[ServiceInstance]:
        return from_legacy_document(await self.list_applications())

    async def deregister(self, name: str) -> None:
        r = await self._send("DELETE", self._base, params={"service": name})
        self._raise_for_status(r)

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            # Transport errors and timeouts.
            raise RegistryUnavailableError(
                "Service registry unavailable",
                details={"method": method, "url": url, "error": repr(e)},
            ) from e

    @staticmethod
    def _raise_for_status(r: httpx.Response) -> None:
        if r.is_success:
            return
        error = _error_message(r)
        if r.status_code == 400:
            raise RegistryValidationError(error)
        raise RegistryUnavailableError(
            "Service registry unavailable",
            details={"status_code": r.status_code, "error": error},
        )


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return r.text


# --- Module Notes -----------------------------------------------------------
# Unexpected 4xx statuses are reported as RegistryUnavailableError along with 5xx.
