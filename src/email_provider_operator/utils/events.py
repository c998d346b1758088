"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

import logging
import socket
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Protocol

import kopf
from kubernetes import client
from kubernetes.client.exceptions import ApiException

from ..constants import (
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_VALIDATE_FAILED,
)
from .errors import sanitize_error_message

if TYPE_CHECKING:
    from ..models import ManagedResource

logger = logging.getLogger(__name__)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event through kopf.

    Args:
        body: Resource body (or a reference with apiVersion/kind/metadata)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_validate_failed(body: dict[str, Any], message: str) -> None:
    """Emit validation failed event."""
    emit_event(body, EVENT_REASON_VALIDATE_FAILED, message, type_="Warning")


class EventRecorder(Protocol):
    """Records one observability event per status transition."""

    def record(
        self, resource: ManagedResource, reason: str, message: str, type_: str = "Normal"
    ) -> None:
        ...


class KopfEventRecorder:
    """Recorder used inside kopf handlers; events are posted by kopf."""

    def record(
        self, resource: ManagedResource, reason: str, message: str, type_: str = "Normal"
    ) -> None:
        emit_event(resource.body, reason, sanitize_error_message(message), type_=type_)


class KubernetesEventRecorder:
    """Recorder writing events.k8s.io/v1 Events directly.

    Used outside kopf's event loop, e.g. from webhook request threads.
    """

    def __init__(
        self,
        reporting_controller: str,
        api: client.EventsV1Api | None = None,
        reporting_instance: str | None = None,
    ):
        self.reporting_controller = reporting_controller
        self.reporting_instance = reporting_instance or socket.gethostname()
        self._api = api

    @property
    def api(self) -> client.EventsV1Api:
        if self._api is None:
            self._api = client.EventsV1Api()
        return self._api

    def build_event(
        self, resource: ManagedResource, reason: str, message: str, type_: str = "Normal"
    ) -> client.EventsV1Event:
        ref = resource.object_reference()
        namespace = resource.namespace or "default"
        return client.EventsV1Event(
            metadata=client.V1ObjectMeta(
                generate_name=f"{resource.name}.",
                namespace=namespace,
            ),
            event_time=datetime.now(timezone.utc),
            action=reason,
            reason=reason,
            note=sanitize_error_message(message)[:1024],
            type=type_,
            regarding=client.V1ObjectReference(
                api_version=ref["apiVersion"],
                kind=ref["kind"],
                name=ref["name"],
                namespace=ref["namespace"],
                uid=ref["uid"],
                resource_version=ref["resourceVersion"],
            ),
            reporting_controller=self.reporting_controller,
            reporting_instance=self.reporting_instance,
        )

    def record(
        self, resource: ManagedResource, reason: str, message: str, type_: str = "Normal"
    ) -> None:
        event = self.build_event(resource, reason, message, type_)
        try:
            self.api.create_namespaced_event(namespace=event.metadata.namespace, body=event)
        except ApiException as e:
            # Events are best effort; the status write already happened.
            logger.warning(
                "failed to record event %s for %s: %s",
                reason,
                resource.key,
                sanitize_error_message(str(e.reason)),
            )
