"""Route provider events to the resources they belong to."""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..constants import (
    INDEX_PROVIDER_ID,
    KIND_CONTACT,
    KIND_CONTACT_GROUP_MEMBERSHIP,
    KIND_EMAIL,
    WEBHOOK_REPORTING_CONTROLLER,
)
from ..logging import log_resource_event
from ..models import ManagedResource
from ..reconcilers.contact import PROVIDER_CONDITIONS
from ..services.resend.events import ContactEvent, ContactEventType, EmailEvent
from ..store.base import ResourceStore, apply_status
from ..utils.conditions import (
    ConditionReason,
    ConditionStatus,
    ConditionType,
    aggregate_ready,
    find_condition,
    has_reason,
    update_condition,
)
from ..utils.errors import NotFoundError
from ..utils.events import EventRecorder
from .transitions import Transition, contact_transition, email_transition, membership_transition

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_NOT_FOUND = 404


class ResendEventHandler:
    """Applies Resend webhook events to Email, ContactGroupMembership and Contact status.

    Resources are found through the status.providerID index. Every write is
    compare-and-swap against a fresh read; ConflictError escapes once
    `conflict_retries` writes were rejected.
    """

    def __init__(self, store: ResourceStore, recorder: EventRecorder, conflict_retries: int = 3):
        self.store = store
        self.recorder = recorder
        self.conflict_retries = conflict_retries

    def _log(self, resource: ManagedResource, message: str, reason: str, **kwargs: Any) -> None:
        log_resource_event(
            logger,
            controller=WEBHOOK_REPORTING_CONTROLLER,
            resource_kind=resource.kind,
            resource_name=resource.name,
            namespace=resource.namespace,
            uid=resource.uid,
            event="webhook",
            reason=reason,
            message=message,
            **kwargs,
        )

    def _first_match(self, kind: str, provider_id: str) -> ManagedResource | None:
        matches = self.store.list_by_index(kind, INDEX_PROVIDER_ID, provider_id)
        return matches[0] if matches else None

    def _apply(
        self,
        resource: ManagedResource,
        provider_id: str,
        mutate: Callable[[ManagedResource], None],
        transition: Transition,
        message: str,
    ) -> int:
        """Write the transition and record one event. Superseded ids are ignored."""

        def guarded(current: ManagedResource) -> None:
            if current.provider_id == provider_id:
                mutate(current)

        try:
            stored = apply_status(
                self.store, resource, guarded, writer="webhook", attempts=self.conflict_retries
            )
        except NotFoundError:
            logger.info("resource %s vanished before the event was applied", resource.key)
            return HTTP_OK

        if stored.provider_id != provider_id:
            self._log(
                stored,
                f"Ignoring event for superseded provider ID {provider_id}",
                reason="StaleEvent",
                provider_id=provider_id,
            )
            return HTTP_OK

        self.recorder.record(stored, transition.reason.value, message, type_=transition.severity)
        self._log(stored, message, reason=transition.reason.value, provider_id=provider_id)
        return HTTP_OK

    def handle_email_event(self, event: EmailEvent) -> int:
        email_id = event.data.email_id
        email = self._first_match(KIND_EMAIL, email_id)
        if email is None:
            # The send may not have been recorded yet; the provider retries.
            logger.info("no Email with provider ID %s", email_id)
            return HTTP_NOT_FOUND

        transition = email_transition(event.type)
        message = f"Updated Email status from webhook event: {event.type.value}"
        detail = event.detail()
        if detail:
            message = f"{message} ({detail})"

        def mutate(resource: ManagedResource) -> None:
            update_condition(
                resource.conditions,
                transition.condition_type,
                transition.status,
                transition.reason,
                message,
            )

        return self._apply(email, email_id, mutate, transition, message)

    def handle_contact_event(self, event: ContactEvent) -> int:
        contact_id = event.data.id
        membership = self._first_match(KIND_CONTACT_GROUP_MEMBERSHIP, contact_id)
        if membership is not None:
            return self._membership_event(membership, event)
        contact = self._first_match(KIND_CONTACT, contact_id)
        if contact is not None:
            return self._contact_event(contact, event)
        logger.info("no resource with provider ID %s, probably deleted", contact_id)
        return HTTP_OK

    @staticmethod
    def _confirm_pending_update(resource: ManagedResource, reason: ConditionReason, message: str) -> None:
        if has_reason(resource.conditions, ConditionType.UPDATED, ConditionReason.UPDATE_PENDING):
            update_condition(
                resource.conditions, ConditionType.UPDATED, ConditionStatus.TRUE, reason, message
            )

    def _membership_event(self, membership: ManagedResource, event: ContactEvent) -> int:
        transition = membership_transition(event.type)
        message = f"Audience contact {event.type.value.split('.')[-1]} confirmed by email provider webhook"

        def mutate(resource: ManagedResource) -> None:
            update_condition(
                resource.conditions,
                transition.condition_type,
                transition.status,
                transition.reason,
                message,
            )
            if event.type is ContactEventType.CREATED:
                self._confirm_pending_update(resource, ConditionReason.MEMBERSHIP_UPDATED, message)

        return self._apply(membership, event.data.id, mutate, transition, message)

    def _contact_event(self, contact: ManagedResource, event: ContactEvent) -> int:
        transition = contact_transition(event.type)
        message = f"Contact {event.type.value.split('.')[-1]} confirmed by email provider webhook"

        def mutate(resource: ManagedResource) -> None:
            # Provider-side edits carry no generation; only an existing Updated is touched.
            if event.type is not ContactEventType.UPDATED or find_condition(
                resource.conditions, ConditionType.UPDATED
            ):
                update_condition(
                    resource.conditions,
                    transition.condition_type,
                    transition.status,
                    transition.reason,
                    message,
                )
            if event.type is ContactEventType.CREATED:
                self._confirm_pending_update(resource, ConditionReason.CONTACT_UPDATED, message)
            aggregate_ready(resource.conditions, PROVIDER_CONDITIONS)

        return self._apply(contact, event.data.id, mutate, transition, message)
