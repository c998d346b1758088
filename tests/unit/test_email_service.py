"""Tests for the idempotent provider service layer."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from email_provider_operator.models import ManagedResource
from email_provider_operator.services.email_service import (
    ContactService,
    EmailService,
    contact_input,
)
from email_provider_operator.services.provider.base import (
    ContactInput,
    ContactOutput,
    CreateContactGroupOutput,
    CreateMembershipOutput,
    DeleteContactOutput,
    DeleteMembershipOutput,
    GetContactGroupOutput,
    GetMembershipOutput,
    ListContactGroupsOutput,
)
from email_provider_operator.utils.errors import ConflictError, NotFoundError, TransportError


def group(provider_id="aud-1"):
    return ManagedResource(
        {
            "kind": "ContactGroup",
            "metadata": {"name": "news", "namespace": "default", "uid": "uid-news"},
            "status": {"providerID": provider_id},
        }
    )


def contact(email="ada@example.com"):
    return ManagedResource(
        {
            "kind": "Contact",
            "metadata": {"name": "ada", "namespace": "default", "uid": "uid-ada"},
            "spec": {"email": email, "givenName": "Ada", "familyName": "Lovelace"},
        }
    )


def membership(provider_id="mem-1"):
    return ManagedResource(
        {
            "kind": "ContactGroupMembership",
            "metadata": {"name": "m", "namespace": "default"},
            "status": {"providerID": provider_id},
        }
    )


@pytest.fixture
def provider():
    return MagicMock()


class TestEmailService:
    """Test cases for EmailService."""

    def test_contact_group_adopted_by_name(self, provider):
        """Test that an audience named after the group UID is reused."""
        provider.list_contact_groups.return_value = ListContactGroupsOutput(
            contact_groups=[GetContactGroupOutput("aud-9", "uid-news")]
        )
        service = EmailService(provider, "from@example.com", "reply@example.com")

        output = service.create_contact_group_idempotent(group(""))

        assert output == CreateContactGroupOutput("aud-9", existing=True)
        assert not provider.create_contact_group.called

    def test_contact_group_created(self, provider):
        """Test that a missing audience is created with the UID as name."""
        provider.list_contact_groups.return_value = ListContactGroupsOutput(contact_groups=[])
        provider.create_contact_group.return_value = CreateContactGroupOutput("aud-1")
        service = EmailService(provider, "from@example.com", "reply@example.com")

        service.create_contact_group_idempotent(group(""))

        assert provider.create_contact_group.call_args[0][0].display_name == "uid-news"

    def test_delete_missing_group(self, provider):
        """Test that deleting a vanished audience counts as deleted."""
        provider.delete_contact_group.side_effect = NotFoundError("audience", "aud-1")
        service = EmailService(provider, "from@example.com", "reply@example.com")

        output = service.delete_contact_group_idempotent(group())

        assert output.deleted is True
        assert output.not_found is True

    def test_membership_existing(self, provider):
        """Test that an audience contact with the same email is adopted."""
        provider.get_membership_by_email.return_value = GetMembershipOutput("mem-7", "ada@example.com")
        service = EmailService(provider, "from@example.com", "reply@example.com")

        output = service.create_membership_idempotent(group(), contact())

        assert output == CreateMembershipOutput("mem-7", existing=True)
        assert not provider.create_membership.called

    def test_membership_delete_without_ids(self, provider):
        """Test that nothing is deleted when no provider ids are known."""
        service = EmailService(provider, "from@example.com", "reply@example.com")

        output = service.delete_membership_idempotent("aud-1", "")

        assert output.not_found is True
        assert not provider.delete_membership.called

    def test_recreate_membership_deletes_first(self, provider):
        """Test that the old audience contact is deleted before the new one is created."""
        calls = []
        provider.delete_membership.side_effect = lambda gid, mid: (
            calls.append("delete") or DeleteMembershipOutput(mid, deleted=True)
        )
        provider.create_membership.side_effect = lambda input: (
            calls.append("create") or CreateMembershipOutput("mem-2")
        )
        provider.get_membership_by_email.side_effect = NotFoundError("audience contact", "new@example.com")
        service = EmailService(provider, "from@example.com", "reply@example.com")

        new_id = service.recreate_membership(membership(), group(), contact("new@example.com"))

        assert new_id == "mem-2"
        assert calls == ["delete", "create"]
        assert provider.create_membership.call_args[0][0].email == "new@example.com"

    def test_recreate_membership_refused_delete(self, provider):
        """Test that create is not attempted when the delete did not happen."""
        provider.delete_membership.return_value = DeleteMembershipOutput("mem-1", deleted=False)
        service = EmailService(provider, "from@example.com", "reply@example.com")

        with pytest.raises(TransportError):
            service.recreate_membership(membership(), group(), contact())

        assert not provider.create_membership.called

    def test_recreate_membership_adopts_replacement(self, provider):
        """Test that a replacement created by an earlier pass is reused."""
        provider.delete_membership.side_effect = NotFoundError("audience contact", "mem-1")
        provider.get_membership_by_email.return_value = GetMembershipOutput("mem-2", "new@example.com")
        service = EmailService(provider, "from@example.com", "reply@example.com")

        new_id = service.recreate_membership(membership(), group(), contact("new@example.com"))

        assert new_id == "mem-2"
        assert not provider.create_membership.called

    def test_recreate_membership_old_entry_still_listed(self, provider):
        """Test that the old audience contact is not adopted as its own replacement."""
        provider.delete_membership.return_value = DeleteMembershipOutput("mem-1", deleted=True)
        provider.get_membership_by_email.return_value = GetMembershipOutput("mem-1", "ada@example.com")
        service = EmailService(provider, "from@example.com", "reply@example.com")

        with pytest.raises(TransportError):
            service.recreate_membership(membership(), group(), contact())

        assert not provider.create_membership.called


class TestContactService:
    """Test cases for ContactService."""

    def test_contact_input(self):
        """Test that the contact input is keyed by the resource UID."""
        assert contact_input(contact(), {"list-1": True}) == ContactInput(
            user_id="uid-ada",
            email="ada@example.com",
            given_name="Ada",
            family_name="Lovelace",
            mailing_lists={"list-1": True},
        )

    def test_create_existing(self, provider):
        """Test that an existing provider contact is adopted."""
        provider.find_contact.return_value = ContactOutput("c-1", "ada@example.com")

        output = ContactService(provider).create_idempotent(contact_input(contact()))

        assert output.existing is True
        assert not provider.create_contact.called

    def test_update_in_place(self, provider):
        """Test that providers keyed by user id are updated in place."""
        provider.recreates_on_update = False
        provider.update_contact.return_value = ContactOutput("l-1", "new@example.com")

        ContactService(provider).update("l-1", contact_input(contact("new@example.com")))

        assert provider.update_contact.called
        assert not provider.delete_contact.called

    def test_update_recreates(self, provider):
        """Test delete-before-create for providers without in-place updates."""
        provider.recreates_on_update = True
        calls = []
        provider.delete_contact.side_effect = lambda cid, input: (
            calls.append("delete") or DeleteContactOutput(deleted=True)
        )
        provider.create_contact.side_effect = lambda input: (
            calls.append("create") or ContactOutput("c-2", input.email)
        )

        output = ContactService(provider).update("c-1", contact_input(contact("new@example.com")))

        assert output.contact_id == "c-2"
        assert calls == ["delete", "create"]

    def test_update_conflict_adopts_replacement(self, provider):
        """Test that a replacement created by an earlier attempt is adopted."""
        provider.recreates_on_update = True
        provider.delete_contact.side_effect = NotFoundError("contact", "c-1")
        provider.create_contact.side_effect = ConflictError("exists")
        provider.find_contact.return_value = ContactOutput("c-2", "new@example.com")

        output = ContactService(provider).update("c-1", contact_input(contact("new@example.com")))

        assert output.contact_id == "c-2"

    def test_update_conflict_with_old_contact(self, provider):
        """Test that a conflict against the old contact is retried later."""
        provider.recreates_on_update = True
        provider.delete_contact.return_value = DeleteContactOutput(deleted=True)
        provider.create_contact.side_effect = ConflictError("exists")
        provider.find_contact.return_value = ContactOutput("c-1", "ada@example.com")

        with pytest.raises(TransportError):
            ContactService(provider).update("c-1", contact_input(contact()))

    def test_delete_without_id(self, provider):
        """Test that recreating providers skip deletes of unknown contacts."""
        provider.recreates_on_update = True

        output = ContactService(provider).delete_idempotent("", contact_input(contact()))

        assert output.not_found is True
        assert not provider.delete_contact.called
