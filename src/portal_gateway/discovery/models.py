"""
portal_gateway.discovery.models

Service discovery domain types.

Responsibilities:
- Define the liveness status enum and the immutable `ServiceInstance` view.
- Convert instances to/from the registry endpoint's wire payload.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class ServiceStatus(enum.StrEnum):
    up = "UP"
    down = "DOWN"
    starting = "STARTING"
    out_of_service = "OUT_OF_SERVICE"


@dataclass(frozen=True, slots=True)
class ServiceInstance:
    """
    One named, addressable service endpoint. Timestamps are naive UTC.
    """

    id: uuid.UUID
    name: str
    url: str
    status: ServiceStatus
    last_heartbeat: datetime
    created_at: datetime
    updated_at: datetime
    # Schema-less caller metadata; values are arbitrary JSON.
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_available(self) -> bool:
        return self.status is ServiceStatus.up

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "service_name": self.name,
            "service_url": self.url,
            "status": self.status.value,
            "metadata": dict(self.metadata),
            "last_heartbeat": self.last_heartbeat.isoformat(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ServiceInstance:
        return cls(
            id=uuid.UUID(str(payload["id"])),
            name=payload["service_name"],
            url=payload["service_url"],
            status=ServiceStatus(payload["status"]),
            metadata=dict(payload.get("metadata") or {}),
            last_heartbeat=datetime.fromisoformat(payload["last_heartbeat"]),
            created_at=datetime.fromisoformat(payload["created_at"]),
            updated_at=datetime.fromisoformat(payload["updated_at"]),
        )
