"""
portal_gateway.discovery.legacy

Eureka-shaped read view over registry rows.

Responsibilities:
- Group instances by service name into "application" entries.
- Parse host/port out of each instance URL (port defaults to 80).
- Express timestamps as epoch milliseconds.
- Read the view back into instances for callers of a remote registry.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit

from portal_gateway.discovery.models import ServiceInstance, ServiceStatus

DEFAULT_PORT = 80


def parse_host_port(url: str) -> tuple[str, int]:
    try:
        parts = urlsplit(url)
    except ValueError:
        # e.g. an unbalanced IPv6 bracket.
        return "", DEFAULT_PORT
    try:
        port = parts.port
    except ValueError:
        # Out-of-range or non-numeric port.
        port = None
    return parts.hostname or "", port or DEFAULT_PORT


def epoch_millis(ts: datetime) -> int:
    # Registry timestamps are naive UTC.
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return int(ts.timestamp() * 1000)


def _instance_record(instance: ServiceInstance) -> dict[str, Any]:
    host, port = parse_host_port(instance.url)
    return {
        "instanceId": str(instance.id),
        "hostName": host,
        "app": instance.name,
        "ipAddr": instance.url,
        "status": instance.status.value,
        "port": {"$": port, "@enabled": "true"},
        "lastUpdatedTimestamp": epoch_millis(instance.last_heartbeat),
        "lastDirtyTimestamp": epoch_millis(instance.created_at),
        "metadata": dict(instance.metadata),
    }


def to_legacy_document(instances: Iterable[ServiceInstance]) -> dict[str, Any]:
    applications: dict[str, list[dict[str, Any]]] = {}
    for instance in instances:
        applications.setdefault(instance.name, []).append(_instance_record(instance))

    return {
        "applications": {
            "versions__delta": "1",
            "apps__hashcode": "",
            "application": [
                {"name": name, "instance": records} for name, records in applications.items()
            ],
        }
    }

def from_epoch_millis(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, UTC).replace(tzinfo=None)


def from_legacy_document(doc: dict[str, Any]) -> list[ServiceInstance]:
    """
    Rebuild instances from an `/apps` document. Host and port are dropped; `ipAddr`
    carries the full URL. `updated_at` is not part of the view and mirrors the last
    heartbeat.
    """

    instances: list[ServiceInstance] = []
    for application in doc["applications"]["application"]:
        for record in application["instance"]:
            last_seen = from_epoch_millis(record["lastUpdatedTimestamp"])
            instances.append(
                ServiceInstance(
                    id=uuid.UUID(record["instanceId"]),
                    name=record["app"],
                    url=record["ipAddr"],
                    status=ServiceStatus(record["status"]),
                    metadata=dict(record.get("metadata") or {}),
                    last_heartbeat=last_seen,
                    created_at=from_epoch_millis(record["lastDirtyTimestamp"]),
                    updated_at=last_seen,
                )
            )
    return instances



# --- Module Notes -----------------------------------------------------------
# Applications keep the input's first-seen order; the registry lists rows by name.
