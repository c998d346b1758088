"""Contact reconciler and deletion guard.

A Contact fans out to every configured contact provider. Each provider
reports readiness through its own sub-condition, and Ready is derived from
all of them. The first asynchronously confirming provider is the correlation
anchor: its contact id is stored as status.providerID so webhook events can
be routed back to the Contact.
"""

from __future__ import annotations

from ..constants import (
    EVENT_REASON_CONTACT_CREATED,
    EVENT_REASON_CONTACT_UPDATED,
    EVENT_REASON_DELETE_PENDING,
    EVENT_REASON_RECONCILE_FAILED,
    INDEX_CONTACT_REF,
    KIND_CONTACT,
    KIND_CONTACT_GROUP_MEMBERSHIP,
    KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL,
    NEWSLETTER_CONTACT_PREFIX,
    PROVIDER_LOOPS,
    PROVIDER_RESEND,
)
from ..models import ManagedResource, ResourceKey, contact_group_ref, namespaced_index_key
from ..services.email_service import ContactService, contact_input
from ..services.provider.base import ContactInput, ContactOutput, MailingListProvider
from ..store.base import ResourceStore, apply_status
from ..utils.conditions import (
    ConditionReason,
    ConditionStatus,
    ConditionType,
    aggregate_ready,
    condition_age_seconds,
    find_condition,
    has_reason,
    is_condition_true,
    update_condition,
)
from ..utils.errors import DeletionPendingError, NotFoundError, OperatorError, sanitize_exception
from ..utils.events import EventRecorder
from ..utils.signals import RecreateRequest, request_recreate
from .base import STATUS_WRITE_ATTEMPTS, DeletionGuard, Reconciler, Result

PROVIDER_CONDITIONS = {
    PROVIDER_RESEND: ConditionType.RESEND_CONTACT_READY,
    PROVIDER_LOOPS: ConditionType.LOOPS_CONTACT_READY,
}


def provider_ids(contact: ManagedResource) -> dict[str, str]:
    """Provider name to contact id, as recorded in status.providers."""
    return {
        entry.get("name", ""): entry.get("id", "")
        for entry in contact.status.get("providers") or []
        if entry.get("name")
    }


def _set_provider_ids(contact: ManagedResource, ids: dict[str, str]) -> None:
    contact.status["providers"] = [{"name": name, "id": ids[name]} for name in sorted(ids)]


class _ContactProviders:
    """The fixed set of contact providers a Contact fans out to."""

    def __init__(self, services: list[ContactService]):
        unknown = [s.name for s in services if s.name not in PROVIDER_CONDITIONS]
        if unknown:
            raise ValueError(f"no readiness condition defined for providers {unknown}")
        self.services = services
        self.sub_conditions = {s.name: PROVIDER_CONDITIONS[s.name] for s in services}

    @property
    def anchor(self) -> ContactService | None:
        for service in self.services:
            if service.provider.confirms_asynchronously:
                return service
        return None

    def ordered_for_delete(self) -> list[ContactService]:
        """Synchronous providers first, so asynchronous confirmation is the last step."""
        return sorted(self.services, key=lambda s: s.provider.confirms_asynchronously)


class ContactReconciler(Reconciler):
    kind = KIND_CONTACT

    def __init__(
        self,
        store: ResourceStore,
        recorder: EventRecorder,
        services: list[ContactService],
        mailing_lists: MailingListProvider | None = None,
        newsletter_list_id: str = "",
        newsletter_contact_group: str = "",
        probe_after_seconds: float = 300.0,
    ):
        super().__init__(store, recorder)
        self.providers = _ContactProviders(services)
        self.mailing_lists = mailing_lists
        self.newsletter_list_id = newsletter_list_id
        self.newsletter_contact_group = newsletter_contact_group
        self.probe_after_seconds = probe_after_seconds

    def reconcile(self, key: ResourceKey) -> Result:
        contact = self.load(key)
        if contact is None or contact.deletion_requested:
            return Result()
        contact = self.ensure_finalizer(contact)

        if find_condition(contact.conditions, ConditionType.READY) is None:
            contact = self.create(contact)
        elif self.generation_advanced(contact):
            contact = self.update(contact)
        else:
            contact = self.probe_pending(contact)

        self.ensure_newsletter(contact)
        return Result()

    def generation_advanced(self, contact: ManagedResource) -> bool:
        observed = self.last_observed_generation(contact, ConditionType.UPDATED, ConditionType.READY)
        return observed is not None and contact.generation > observed

    def _apply_outputs(
        self,
        contact: ManagedResource,
        outputs: dict[str, ContactOutput],
        pending_reason: ConditionReason,
        done_reason: ConditionReason,
    ) -> list[str]:
        """Record provider ids and sub-conditions; returns the providers left pending."""
        ids = provider_ids(contact)
        pending = []
        for service in self.providers.services:
            output = outputs[service.name]
            ids[service.name] = output.contact_id
            condition_type = self.providers.sub_conditions[service.name]
            if service.provider.confirms_asynchronously and not output.existing:
                pending.append(service.name)
                update_condition(
                    contact.conditions,
                    condition_type,
                    ConditionStatus.UNKNOWN,
                    pending_reason,
                    f"Waiting for {service.name} to confirm contact {output.contact_id}",
                    contact.generation,
                )
            else:
                update_condition(
                    contact.conditions,
                    condition_type,
                    ConditionStatus.TRUE,
                    done_reason,
                    f"Contact {output.contact_id} is present on {service.name}",
                    contact.generation,
                )
        _set_provider_ids(contact, ids)
        anchor = self.providers.anchor
        if anchor is not None:
            contact.provider_id = ids[anchor.name]
        return pending

    def create(self, contact: ManagedResource) -> ManagedResource:
        input = contact_input(contact)
        outputs = {service.name: service.create_idempotent(input) for service in self.providers.services}

        def mutate(resource: ManagedResource) -> None:
            self._apply_outputs(
                resource, outputs, ConditionReason.CREATE_PENDING, ConditionReason.CONTACT_CREATED
            )
            aggregate_ready(resource.conditions, self.providers.sub_conditions, resource.generation)

        contact = self.write(contact, mutate)
        message = "Contact created on " + ", ".join(
            f"{name} ({output.contact_id})" for name, output in outputs.items()
        )
        self.log_info(contact, message, event="created", reason=EVENT_REASON_CONTACT_CREATED)
        self.recorder.record(contact, EVENT_REASON_CONTACT_CREATED, message)
        return contact

    def update(self, contact: ManagedResource) -> ManagedResource:
        """Push a changed spec to every provider.

        Memberships are flagged for recreation first, because their audience
        contacts carry the old email address as well.
        """
        self.request_membership_recreation(contact)

        input = contact_input(contact)
        ids = provider_ids(contact)
        outputs = {
            service.name: service.update(ids.get(service.name, ""), input)
            for service in self.providers.services
        }

        def mutate(resource: ManagedResource) -> None:
            pending = self._apply_outputs(
                resource, outputs, ConditionReason.UPDATE_PENDING, ConditionReason.CONTACT_UPDATED
            )
            if pending:
                update_condition(
                    resource.conditions,
                    ConditionType.UPDATED,
                    ConditionStatus.FALSE,
                    ConditionReason.UPDATE_PENDING,
                    "Waiting for " + ", ".join(pending) + " to confirm the update",
                    resource.generation,
                )
            else:
                update_condition(
                    resource.conditions,
                    ConditionType.UPDATED,
                    ConditionStatus.TRUE,
                    ConditionReason.CONTACT_UPDATED,
                    "Contact updated on all providers",
                    resource.generation,
                )
            aggregate_ready(resource.conditions, self.providers.sub_conditions, resource.generation)

        contact = self.write(contact, mutate)
        self.log_info(contact, "Contact updated", event="updated", reason=EVENT_REASON_CONTACT_UPDATED)
        self.recorder.record(contact, EVENT_REASON_CONTACT_UPDATED, "Contact updated on providers")
        return contact

    def request_membership_recreation(self, contact: ManagedResource) -> None:
        request = RecreateRequest.for_source(contact)
        value = namespaced_index_key(contact.namespace, contact.name)
        for membership in self.store.list_by_index(KIND_CONTACT_GROUP_MEMBERSHIP, INDEX_CONTACT_REF, value):
            if membership.deletion_requested:
                continue
            try:
                apply_status(
                    self.store,
                    membership,
                    lambda resource: request_recreate(resource, request),
                    attempts=STATUS_WRITE_ATTEMPTS,
                )
            except NotFoundError:
                continue
            self.log_info(
                contact,
                f"Requested recreation of membership {membership.key}",
                event="signal",
                reason="RecreateRequested",
            )

    def probe_pending(self, contact: ManagedResource) -> ManagedResource:
        """Look up contacts whose webhook confirmation is overdue.

        A confirmation can be lost when the webhook arrives before the
        provider ID was stored. When the provider holds the recorded id the
        sub-condition is set as the webhook would have set it.
        """
        ids = provider_ids(contact)
        confirmed: list[str] = []
        for service in self.providers.services:
            if not service.provider.confirms_asynchronously:
                continue
            cond = find_condition(contact.conditions, self.providers.sub_conditions[service.name])
            if cond is None or cond.get("status") == ConditionStatus.TRUE.value:
                continue
            age = condition_age_seconds(cond)
            if age is None or age < self.probe_after_seconds:
                continue
            try:
                found = service.provider.find_contact(contact_input(contact))
            except NotFoundError:
                continue
            if found.contact_id and found.contact_id == ids.get(service.name):
                confirmed.append(service.name)

        if not confirmed:
            return contact

        def mutate(resource: ManagedResource) -> None:
            for name in confirmed:
                update_condition(
                    resource.conditions,
                    self.providers.sub_conditions[name],
                    ConditionStatus.TRUE,
                    ConditionReason.CONTACT_CREATED,
                    f"Contact confirmed on {name}",
                )
            if has_reason(resource.conditions, ConditionType.UPDATED, ConditionReason.UPDATE_PENDING):
                update_condition(
                    resource.conditions,
                    ConditionType.UPDATED,
                    ConditionStatus.TRUE,
                    ConditionReason.CONTACT_UPDATED,
                    "Contact update confirmed",
                )
            aggregate_ready(resource.conditions, self.providers.sub_conditions)

        self.log_info(contact, f"Confirmed pending contact on {', '.join(confirmed)}", reason="Probed")
        return self.write(contact, mutate)

    def wants_newsletter(self, contact: ManagedResource) -> bool:
        if not self.newsletter_list_id or self.mailing_lists is None:
            return False
        if contact.name.startswith(NEWSLETTER_CONTACT_PREFIX):
            return True
        if not self.newsletter_contact_group:
            return False
        value = namespaced_index_key(contact.namespace, contact.name)
        for membership in self.store.list_by_index(KIND_CONTACT_GROUP_MEMBERSHIP, INDEX_CONTACT_REF, value):
            group = contact_group_ref(membership)
            if group is not None and group.name == self.newsletter_contact_group:
                return True
        return False

    def ensure_newsletter(self, contact: ManagedResource) -> None:
        """Subscribe qualifying contacts to the newsletter mailing list once."""
        if is_condition_true(contact.conditions, ConditionType.NEWSLETTER_ADDED):
            return
        if not is_condition_true(contact.conditions, ConditionType.LOOPS_CONTACT_READY):
            return
        if not self.wants_newsletter(contact):
            return

        error: OperatorError | None = None
        try:
            self.mailing_lists.subscribe(contact_input(contact), self.newsletter_list_id)
        except OperatorError as e:
            error = e

        def mutate(resource: ManagedResource) -> None:
            if error is None:
                update_condition(
                    resource.conditions,
                    ConditionType.NEWSLETTER_ADDED,
                    ConditionStatus.TRUE,
                    ConditionReason.NEWSLETTER_ADDED,
                    "Contact subscribed to the newsletter",
                    resource.generation,
                )
            else:
                update_condition(
                    resource.conditions,
                    ConditionType.NEWSLETTER_ADDED,
                    ConditionStatus.FALSE,
                    ConditionReason.NEWSLETTER_NOT_ADDED,
                    f"Newsletter subscription failed: {sanitize_exception(error)}",
                    resource.generation,
                )

        self.write(contact, mutate)
        if error is not None:
            self.recorder.record(
                contact,
                EVENT_REASON_RECONCILE_FAILED,
                f"Newsletter subscription failed: {sanitize_exception(error)}",
                type_="Warning",
            )
            raise error
        self.log_info(contact, "Contact subscribed to the newsletter", reason="NewsletterAdded")


class ContactGuard(DeletionGuard):
    """Removes memberships, removal requests and provider contacts of a Contact."""

    kind = KIND_CONTACT

    def __init__(self, store: ResourceStore, recorder: EventRecorder, services: list[ContactService]):
        super().__init__(store, recorder)
        self.providers = _ContactProviders(services)

    def release(self, contact: ManagedResource) -> None:
        value = namespaced_index_key(contact.namespace, contact.name)
        self.delete_dependents(KIND_CONTACT_GROUP_MEMBERSHIP, INDEX_CONTACT_REF, value)
        self.delete_dependents(KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL, INDEX_CONTACT_REF, value)

        input = contact_input(contact)
        ids = provider_ids(contact)
        for service in self.providers.ordered_for_delete():
            contact_id = ids.get(service.name, "")
            if not service.provider.confirms_asynchronously:
                service.delete_idempotent(contact_id, input)
                continue
            self._delete_confirmed(contact, service, contact_id, input)

    def _delete_confirmed(
        self, contact: ManagedResource, service: ContactService, contact_id: str, input: ContactInput
    ) -> None:
        if is_condition_true(contact.conditions, ConditionType.DELETED):
            return
        result = service.delete_idempotent(contact_id, input)
        if result.not_found:
            return

        message = f"Waiting for {service.name} to confirm deletion of contact {contact_id}"

        def mutate(resource: ManagedResource) -> None:
            update_condition(
                resource.conditions,
                ConditionType.DELETED,
                ConditionStatus.FALSE,
                ConditionReason.DELETE_PENDING,
                message,
                resource.generation,
            )

        self.write(contact, mutate)
        self.recorder.record(contact, EVENT_REASON_DELETE_PENDING, message)
        raise DeletionPendingError(message)
