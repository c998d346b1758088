"""ContactGroupMembershipRemoval reconciler."""

from __future__ import annotations

from ..constants import (
    EVENT_REASON_MEMBERSHIP_REMOVED,
    INDEX_MEMBERSHIP_TUPLE,
    KIND_CONTACT_GROUP_MEMBERSHIP,
    KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL,
)
from ..models import ManagedResource, ResourceKey, contact_group_ref, contact_ref, membership_index_key
from ..utils.conditions import ConditionReason, ConditionStatus, ConditionType, is_condition_true, update_condition
from ..utils.errors import BadRequestError
from .base import Reconciler, Result


class MembershipRemovalReconciler(Reconciler):
    """Deletes every membership of the referenced (Contact, ContactGroup) pair.

    The memberships' own deletion guards remove the audience contacts. The
    removal request is marked Ready once the deletes were issued.
    """

    kind = KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL

    def reconcile(self, key: ResourceKey) -> Result:
        removal = self.load(key)
        if removal is None or removal.deletion_requested:
            return Result()
        if is_condition_true(removal.conditions, ConditionType.READY):
            return Result()

        contact_key = contact_ref(removal)
        group_key = contact_group_ref(removal)
        if contact_key is None or group_key is None:
            raise BadRequestError("spec.contactRef and spec.contactGroupRef are required")

        memberships = self.store.list_by_index(
            KIND_CONTACT_GROUP_MEMBERSHIP,
            INDEX_MEMBERSHIP_TUPLE,
            membership_index_key(contact_key, group_key),
        )
        for membership in memberships:
            self.delete_quietly(membership.key)

        message = f"Removed {len(memberships)} membership(s) of {contact_key.name} in {group_key.name}"

        def mutate(resource: ManagedResource) -> None:
            update_condition(
                resource.conditions,
                ConditionType.READY,
                ConditionStatus.TRUE,
                ConditionReason.MEMBERSHIP_REMOVED,
                message,
                resource.generation,
            )

        self.write(removal, mutate)
        self.log_info(removal, message, event="removed", reason=EVENT_REASON_MEMBERSHIP_REMOVED)
        self.recorder.record(removal, EVENT_REASON_MEMBERSHIP_REMOVED, message)
        return Result()
