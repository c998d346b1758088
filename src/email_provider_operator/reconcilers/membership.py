"""ContactGroupMembership reconciler and deletion guard."""

from __future__ import annotations

from ..constants import (
    EVENT_REASON_DELETE_PENDING,
    EVENT_REASON_MEMBERSHIP_CREATED,
    EVENT_REASON_MEMBERSHIP_RECREATED,
    KIND_CONTACT_GROUP_MEMBERSHIP,
)
from ..models import ManagedResource, ResourceKey, contact_group_ref, contact_ref
from ..services.email_service import EmailService
from ..store.base import ResourceStore
from ..utils.conditions import (
    ConditionReason,
    ConditionStatus,
    ConditionType,
    condition_age_seconds,
    find_condition,
    has_reason,
    is_condition_true,
    update_condition,
)
from ..utils.errors import BadRequestError, DeletionPendingError, DependencyNotReadyError, NotFoundError
from ..utils.events import EventRecorder
from ..utils.signals import clear_recreate_request, get_recreate_request
from .base import DeletionGuard, Reconciler, Result


class MembershipReconciler(Reconciler):
    """Keeps one audience contact per (Contact, ContactGroup) pair.

    The provider confirms new audience contacts through the webhook, so
    Ready stays False until the contact.created event arrives. A Contact
    update sets status.recreateRequested; the membership then replaces its
    audience contact and clears the request in the same status write.
    """

    kind = KIND_CONTACT_GROUP_MEMBERSHIP

    def __init__(
        self,
        store: ResourceStore,
        recorder: EventRecorder,
        email_service: EmailService,
        probe_after_seconds: float = 300.0,
    ):
        super().__init__(store, recorder)
        self.email_service = email_service
        self.probe_after_seconds = probe_after_seconds

    def reconcile(self, key: ResourceKey) -> Result:
        membership = self.load(key)
        if membership is None or membership.deletion_requested:
            return Result()
        membership = self.ensure_finalizer(membership)

        if find_condition(membership.conditions, ConditionType.READY) is None:
            self.create(membership)
        elif get_recreate_request(membership) is not None:
            self.recreate(membership)
        else:
            self.probe_pending(membership)
        return Result()

    def resolve(self, membership: ManagedResource) -> tuple[ManagedResource, ManagedResource]:
        """Load the referenced Contact and ContactGroup.

        Raises:
            DependencyNotReadyError: A reference is missing, being deleted,
                or the group has no audience yet
        """
        contact_key = contact_ref(membership)
        group_key = contact_group_ref(membership)
        if contact_key is None or group_key is None:
            raise BadRequestError("spec.contactRef and spec.contactGroupRef are required")

        contact = self.load(contact_key)
        if contact is None or contact.deletion_requested:
            raise DependencyNotReadyError(f"contact {contact_key} is not available")
        group = self.load(group_key)
        if group is None or group.deletion_requested:
            raise DependencyNotReadyError(f"contact group {group_key} is not available")
        if not group.provider_id:
            raise DependencyNotReadyError(f"contact group {group_key} has no provider ID yet")
        return contact, group

    def create(self, membership: ManagedResource) -> None:
        contact, group = self.resolve(membership)
        output = self.email_service.create_membership_idempotent(group, contact)

        def mutate(resource: ManagedResource) -> None:
            resource.provider_id = output.membership_id
            if output.existing:
                update_condition(
                    resource.conditions,
                    ConditionType.READY,
                    ConditionStatus.TRUE,
                    ConditionReason.MEMBERSHIP_CREATED,
                    f"Contact is a member of the audience. Provider ID: {output.membership_id}",
                    resource.generation,
                )
            else:
                update_condition(
                    resource.conditions,
                    ConditionType.READY,
                    ConditionStatus.FALSE,
                    ConditionReason.CREATE_PENDING,
                    f"Waiting for the provider to confirm audience contact {output.membership_id}",
                    resource.generation,
                )

        self.write(membership, mutate)
        message = f"Audience contact created. Provider ID: {output.membership_id}"
        self.log_info(
            membership,
            message,
            event="created",
            reason=EVENT_REASON_MEMBERSHIP_CREATED,
            existing=output.existing,
        )
        self.recorder.record(membership, EVENT_REASON_MEMBERSHIP_CREATED, message)

    def recreate(self, membership: ManagedResource) -> None:
        request = get_recreate_request(membership)
        contact, group = self.resolve(membership)
        old_id = membership.provider_id
        new_id = self.email_service.recreate_membership(membership, group, contact)

        def mutate(resource: ManagedResource) -> None:
            resource.provider_id = new_id
            update_condition(
                resource.conditions,
                ConditionType.UPDATED,
                ConditionStatus.FALSE,
                ConditionReason.UPDATE_PENDING,
                f"Waiting for the provider to confirm audience contact {new_id}",
                resource.generation,
            )
            # A request that arrived meanwhile stays set and triggers another pass.
            if get_recreate_request(resource) == request:
                clear_recreate_request(resource)

        self.write(membership, mutate)
        message = f"Audience contact recreated: {old_id or '<none>'} -> {new_id}"
        self.log_info(membership, message, event="recreated", reason=EVENT_REASON_MEMBERSHIP_RECREATED)
        self.recorder.record(membership, EVENT_REASON_MEMBERSHIP_RECREATED, message)

    def probe_pending(self, membership: ManagedResource) -> None:
        """Confirm an overdue audience contact by looking it up on the provider."""
        create_pending = has_reason(membership.conditions, ConditionType.READY, ConditionReason.CREATE_PENDING)
        update_pending = has_reason(membership.conditions, ConditionType.UPDATED, ConditionReason.UPDATE_PENDING)
        if not (create_pending or update_pending) or not membership.provider_id:
            return

        pending = find_condition(
            membership.conditions, ConditionType.READY if create_pending else ConditionType.UPDATED
        )
        age = condition_age_seconds(pending)
        if age is None or age < self.probe_after_seconds:
            return

        contact, group = self.resolve(membership)
        try:
            found = self.provider_membership(group, contact)
        except NotFoundError:
            return
        if found != membership.provider_id:
            return

        def mutate(resource: ManagedResource) -> None:
            if has_reason(resource.conditions, ConditionType.READY, ConditionReason.CREATE_PENDING):
                update_condition(
                    resource.conditions,
                    ConditionType.READY,
                    ConditionStatus.TRUE,
                    ConditionReason.MEMBERSHIP_CREATED,
                    "Audience contact confirmed",
                )
            if has_reason(resource.conditions, ConditionType.UPDATED, ConditionReason.UPDATE_PENDING):
                update_condition(
                    resource.conditions,
                    ConditionType.UPDATED,
                    ConditionStatus.TRUE,
                    ConditionReason.MEMBERSHIP_UPDATED,
                    "Audience contact update confirmed",
                )

        self.write(membership, mutate)
        self.log_info(membership, f"Confirmed pending audience contact {found}", reason="Probed")

    def provider_membership(self, group: ManagedResource, contact: ManagedResource) -> str:
        return self.email_service.provider.get_membership_by_email(
            group.provider_id, contact.spec.get("email", "")
        ).membership_id


class MembershipGuard(DeletionGuard):
    """Deletes the audience contact and waits for the provider to confirm it."""

    kind = KIND_CONTACT_GROUP_MEMBERSHIP

    def __init__(self, store: ResourceStore, recorder: EventRecorder, email_service: EmailService):
        super().__init__(store, recorder)
        self.email_service = email_service

    def release(self, membership: ManagedResource) -> None:
        if is_condition_true(membership.conditions, ConditionType.DELETED):
            return

        group_key = contact_group_ref(membership)
        group = self.load(group_key) if group_key is not None else None
        if group is None or not group.provider_id:
            # The audience is gone, and its contacts with it.
            return

        result = self.email_service.delete_membership_idempotent(group.provider_id, membership.provider_id)
        if result.not_found:
            return

        message = f"Waiting for the provider to confirm deletion of audience contact {membership.provider_id}"

        def mutate(resource: ManagedResource) -> None:
            update_condition(
                resource.conditions,
                ConditionType.DELETED,
                ConditionStatus.FALSE,
                ConditionReason.DELETE_PENDING,
                message,
                resource.generation,
            )

        self.write(membership, mutate)
        self.recorder.record(membership, EVENT_REASON_DELETE_PENDING, message)
        raise DeletionPendingError(message)
