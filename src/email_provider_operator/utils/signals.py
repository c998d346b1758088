"""Typed signals exchanged between resources through their status.

A ContactGroupMembership carries `status.recreateRequested` while the
audience contact it owns must be recreated because the referenced Contact
changed. The Contact reconciler sets it; the membership reconciler clears it
in the same status write that records the recreation.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from .conditions import now_rfc3339

if TYPE_CHECKING:
    from ..models import ManagedResource

RECREATE_REQUESTED_FIELD = "recreateRequested"


@dataclass(frozen=True)
class RecreateRequest:
    """Request to recreate a dependent's provider entity."""

    source: str
    generation: int
    requested_at: str

    @classmethod
    def for_source(cls, source: ManagedResource) -> RecreateRequest:
        return cls(source=str(source.key), generation=source.generation, requested_at=now_rfc3339())

    def to_status(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "source": data["source"],
            "generation": data["generation"],
            "requestedAt": data["requested_at"],
        }

    @classmethod
    def from_status(cls, data: dict[str, Any]) -> RecreateRequest:
        return cls(
            source=data.get("source", ""),
            generation=int(data.get("generation") or 0),
            requested_at=data.get("requestedAt", ""),
        )


def get_recreate_request(resource: ManagedResource) -> RecreateRequest | None:
    data = resource.status.get(RECREATE_REQUESTED_FIELD)
    if not data:
        return None
    return RecreateRequest.from_status(data)


def request_recreate(resource: ManagedResource, request: RecreateRequest) -> bool:
    """Set the signal. Returns False when an equivalent request is already pending."""
    current = get_recreate_request(resource)
    if current is not None and current.source == request.source and current.generation == request.generation:
        return False
    resource.status[RECREATE_REQUESTED_FIELD] = request.to_status()
    return True


def clear_recreate_request(resource: ManagedResource) -> None:
    resource.status.pop(RECREATE_REQUESTED_FIELD, None)
