"""Idempotent provider operations expressed in terms of resources."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import cast

from ..models import ManagedResource
from ..rendering import render_html, render_subject, render_text
from ..utils.errors import ConflictError, NotFoundError, TransportError
from .provider.base import (
    ContactInput,
    ContactOutput,
    ContactProvider,
    CreateContactGroupInput,
    CreateContactGroupOutput,
    CreateMembershipInput,
    CreateMembershipOutput,
    DeleteContactGroupOutput,
    DeleteContactOutput,
    DeleteMembershipOutput,
    EmailProvider,
    GetContactGroupOutput,
    SendEmailInput,
    SendEmailOutput,
    UpdatableContactProvider,
)

logger = logging.getLogger(__name__)


def contact_group_display_name(group: ManagedResource) -> str:
    """Deterministic audience name: the group's UID survives renames and retries."""
    return group.uid


def contact_input(contact: ManagedResource, mailing_lists: dict[str, bool] | None = None) -> ContactInput:
    spec = contact.spec
    return ContactInput(
        user_id=contact.uid,
        email=spec.get("email", ""),
        given_name=spec.get("givenName", ""),
        family_name=spec.get("familyName", ""),
        mailing_lists=mailing_lists or {},
    )


class EmailService:
    """Wraps an EmailProvider with idempotent create and delete semantics."""

    def __init__(self, provider: EmailProvider, email_from: str, reply_to: str):
        self.provider = provider
        self.email_from = email_from
        self.reply_to = reply_to

    def send(self, email: ManagedResource, template: ManagedResource, recipient: str) -> SendEmailOutput:
        """Render and send an Email.

        The idempotency key is the Email's UID, so the provider deduplicates
        a send retried after an unrecorded success.
        """
        variables = email.spec.get("variables") or []
        html_body = render_html(variables, template.body)
        text_body = render_text(variables, template.body)
        subject = render_subject(variables, template.body)

        return self.provider.send_email(
            SendEmailInput(
                email_from=self.email_from,
                reply_to=self.reply_to,
                to=[recipient],
                cc=list(email.spec.get("cc") or []),
                bcc=list(email.spec.get("bcc") or []),
                subject=subject,
                html_body=html_body,
                text_body=text_body,
                idempotency_key=email.uid,
            )
        )

    def find_contact_group(self, group: ManagedResource) -> GetContactGroupOutput:
        """Find the audience created for this group, by its deterministic name."""
        display_name = contact_group_display_name(group)
        for existing in self.provider.list_contact_groups().contact_groups:
            if existing.display_name == display_name:
                return existing
        raise NotFoundError("audience", display_name)

    def create_contact_group_idempotent(self, group: ManagedResource) -> CreateContactGroupOutput:
        try:
            found = self.find_contact_group(group)
            return CreateContactGroupOutput(contact_group_id=found.contact_group_id, existing=True)
        except NotFoundError:
            pass
        return self.provider.create_contact_group(
            CreateContactGroupInput(display_name=contact_group_display_name(group))
        )

    def get_contact_group(self, group: ManagedResource) -> GetContactGroupOutput:
        return self.provider.get_contact_group(group.provider_id)

    def delete_contact_group_idempotent(self, group: ManagedResource) -> DeleteContactGroupOutput:
        try:
            return self.provider.delete_contact_group(group.provider_id)
        except NotFoundError:
            return DeleteContactGroupOutput(contact_group_id=group.provider_id, deleted=True, not_found=True)

    def create_membership_idempotent(
        self, group: ManagedResource, contact: ManagedResource
    ) -> CreateMembershipOutput:
        email = contact.spec.get("email", "")
        try:
            found = self.provider.get_membership_by_email(group.provider_id, email)
            return CreateMembershipOutput(membership_id=found.membership_id, existing=True)
        except NotFoundError:
            pass
        return self.provider.create_membership(
            CreateMembershipInput(
                contact_group_id=group.provider_id,
                email=email,
                given_name=contact.spec.get("givenName", ""),
                family_name=contact.spec.get("familyName", ""),
            )
        )

    def delete_membership_idempotent(self, group_id: str, membership_id: str) -> DeleteMembershipOutput:
        if not group_id or not membership_id:
            return DeleteMembershipOutput(membership_id=membership_id, deleted=True, not_found=True)
        try:
            return self.provider.delete_membership(group_id, membership_id)
        except NotFoundError:
            return DeleteMembershipOutput(membership_id=membership_id, deleted=True, not_found=True)

    def recreate_membership(
        self, membership: ManagedResource, group: ManagedResource, contact: ManagedResource
    ) -> str:
        """Replace the audience contact after its Contact changed.

        The old entry must be gone before the new one is created; the caller
        persists the returned identifier only after this call succeeds. A
        replacement left by an earlier pass whose status write was lost is
        adopted instead of created again.
        """
        deleted = self.delete_membership_idempotent(group.provider_id, membership.provider_id)
        if not deleted.deleted:
            raise TransportError("provider did not delete the audience contact during update")

        email = contact.spec.get("email", "")
        try:
            found = self.provider.get_membership_by_email(group.provider_id, email)
        except NotFoundError:
            found = None
        if found is not None:
            if found.membership_id == membership.provider_id:
                raise TransportError(
                    f"audience contact {membership.provider_id} is still being deleted"
                )
            return found.membership_id

        return self.provider.create_membership(
            CreateMembershipInput(
                contact_group_id=group.provider_id,
                email=email,
                given_name=contact.spec.get("givenName", ""),
                family_name=contact.spec.get("familyName", ""),
            )
        ).membership_id


class ContactService:
    """Idempotent contact operations against one ContactProvider."""

    def __init__(self, provider: ContactProvider):
        self.provider = provider

    @property
    def name(self) -> str:
        return self.provider.name

    def create_idempotent(self, input: ContactInput) -> ContactOutput:
        try:
            return replace(self.provider.find_contact(input), existing=True)
        except NotFoundError:
            return self.provider.create_contact(input)

    def delete_idempotent(self, contact_id: str, input: ContactInput) -> DeleteContactOutput:
        if not contact_id and self.provider.recreates_on_update:
            return DeleteContactOutput(deleted=True, not_found=True)
        try:
            return self.provider.delete_contact(contact_id, input)
        except NotFoundError:
            return DeleteContactOutput(deleted=True, not_found=True)

    def update(self, contact_id: str, input: ContactInput) -> ContactOutput:
        """Apply a changed Contact spec.

        Providers that cannot change identity fields in place get the old
        record deleted first; create is never attempted unless that delete
        succeeded or found nothing.
        """
        if not self.provider.recreates_on_update:
            return cast(UpdatableContactProvider, self.provider).update_contact(contact_id, input)

        deleted = self.delete_idempotent(contact_id, input)
        if not deleted.deleted:
            raise TransportError(f"{self.provider.name} did not delete the contact during update")
        try:
            return self.provider.create_contact(input)
        except ConflictError:
            # A previous attempt may have created the replacement already.
            existing = self.provider.find_contact(input)
            if existing.contact_id == contact_id:
                raise TransportError(
                    f"{self.provider.name} contact {contact_id} is still being deleted"
                ) from None
            return existing
