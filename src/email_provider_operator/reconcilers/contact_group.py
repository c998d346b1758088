"""ContactGroup reconciler and deletion guard."""

from __future__ import annotations

from ..constants import (
    EVENT_REASON_CONTACT_GROUP_CREATED,
    INDEX_CONTACT_GROUP_REF,
    KIND_CONTACT_GROUP,
    KIND_CONTACT_GROUP_MEMBERSHIP,
    KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL,
)
from ..models import ManagedResource, ResourceKey, namespaced_index_key
from ..services.email_service import EmailService
from ..store.base import ResourceStore
from ..utils.conditions import ConditionReason, ConditionStatus, ConditionType, find_condition, update_condition
from ..utils.errors import NotFoundError
from ..utils.events import EventRecorder
from .base import DeletionGuard, Reconciler, Result


class ContactGroupReconciler(Reconciler):
    """Creates one provider audience per ContactGroup.

    The audience is named after the group's UID, so spec edits never reach
    the provider and an update only acknowledges the new generation.
    """

    kind = KIND_CONTACT_GROUP

    def __init__(self, store: ResourceStore, recorder: EventRecorder, email_service: EmailService):
        super().__init__(store, recorder)
        self.email_service = email_service

    def reconcile(self, key: ResourceKey) -> Result:
        group = self.load(key)
        if group is None or group.deletion_requested:
            return Result()
        group = self.ensure_finalizer(group)

        if find_condition(group.conditions, ConditionType.READY) is None or not group.provider_id:
            self.create(group)
            return Result()

        observed = self.last_observed_generation(group, ConditionType.UPDATED, ConditionType.READY)
        if observed is not None and group.generation > observed:
            self.write(
                group,
                lambda resource: update_condition(
                    resource.conditions,
                    ConditionType.UPDATED,
                    ConditionStatus.TRUE,
                    ConditionReason.CONTACT_GROUP_UPDATED,
                    "Contact group updated",
                    resource.generation,
                ),
            )
            self.log_info(group, "Contact group updated", event="updated", reason="ContactGroupUpdated")
        return Result()

    def create(self, group: ManagedResource) -> None:
        output = self.email_service.create_contact_group_idempotent(group)
        message = f"Contact group created. Provider ID: {output.contact_group_id}"

        def mutate(resource: ManagedResource) -> None:
            resource.provider_id = output.contact_group_id
            update_condition(
                resource.conditions,
                ConditionType.READY,
                ConditionStatus.TRUE,
                ConditionReason.CONTACT_GROUP_CREATED,
                message,
                resource.generation,
            )

        self.write(group, mutate)
        self.log_info(
            group,
            message,
            event="created",
            reason=EVENT_REASON_CONTACT_GROUP_CREATED,
            existing=output.existing,
        )
        self.recorder.record(group, EVENT_REASON_CONTACT_GROUP_CREATED, message)


class ContactGroupGuard(DeletionGuard):
    """Removes memberships and removal requests, then the provider audience."""

    kind = KIND_CONTACT_GROUP

    def __init__(self, store: ResourceStore, recorder: EventRecorder, email_service: EmailService):
        super().__init__(store, recorder)
        self.email_service = email_service

    def release(self, group: ManagedResource) -> None:
        value = namespaced_index_key(group.namespace, group.name)
        self.delete_dependents(KIND_CONTACT_GROUP_MEMBERSHIP, INDEX_CONTACT_GROUP_REF, value)
        self.delete_dependents(KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL, INDEX_CONTACT_GROUP_REF, value)

        if not group.provider_id:
            return
        try:
            self.email_service.get_contact_group(group)
        except NotFoundError:
            self.log_info(group, "Audience already gone", event="finalize", reason="NotFound")
            return
        result = self.email_service.delete_contact_group_idempotent(group)
        self.log_info(
            group,
            f"Deleted audience {group.provider_id}",
            event="finalize",
            reason="AudienceDeleted",
            not_found=result.not_found,
        )
