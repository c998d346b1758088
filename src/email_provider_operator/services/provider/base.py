"""Provider interfaces and the value types they exchange."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class SendEmailInput:
    email_from: str
    reply_to: str
    to: list[str]
    subject: str
    html_body: str
    text_body: str
    idempotency_key: str
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SendEmailOutput:
    delivery_id: str


@dataclass(frozen=True)
class CreateContactGroupInput:
    display_name: str


@dataclass(frozen=True)
class CreateContactGroupOutput:
    contact_group_id: str
    existing: bool = False


@dataclass(frozen=True)
class GetContactGroupOutput:
    contact_group_id: str
    display_name: str


@dataclass(frozen=True)
class ListContactGroupsOutput:
    contact_groups: list[GetContactGroupOutput]


@dataclass(frozen=True)
class DeleteContactGroupOutput:
    contact_group_id: str
    deleted: bool
    not_found: bool = False


@dataclass(frozen=True)
class CreateMembershipInput:
    contact_group_id: str
    email: str
    given_name: str = ""
    family_name: str = ""


@dataclass(frozen=True)
class CreateMembershipOutput:
    membership_id: str
    existing: bool = False


@dataclass(frozen=True)
class GetMembershipOutput:
    membership_id: str
    email: str


@dataclass(frozen=True)
class DeleteMembershipOutput:
    membership_id: str
    deleted: bool
    not_found: bool = False


@dataclass(frozen=True)
class ContactInput:
    """A contact as sent to a contact provider.

    `user_id` is the stable key (the Contact resource UID) for providers that
    support lookups by an external identifier.
    """

    user_id: str
    email: str
    given_name: str = ""
    family_name: str = ""
    mailing_lists: dict[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class ContactOutput:
    contact_id: str
    email: str = ""
    existing: bool = False


@dataclass(frozen=True)
class DeleteContactOutput:
    deleted: bool
    not_found: bool = False


class EmailProvider(Protocol):
    """Email delivery and audience management."""

    name: str

    def send_email(self, input: SendEmailInput) -> SendEmailOutput:
        """Send one email. Retried sends with the same idempotency key are deduplicated."""
        ...

    def create_contact_group(self, input: CreateContactGroupInput) -> CreateContactGroupOutput:
        ...

    def get_contact_group(self, contact_group_id: str) -> GetContactGroupOutput:
        """Raises NotFoundError when the group does not exist."""
        ...

    def list_contact_groups(self) -> ListContactGroupsOutput:
        ...

    def delete_contact_group(self, contact_group_id: str) -> DeleteContactGroupOutput:
        """Raises NotFoundError when the group does not exist."""
        ...

    def create_membership(self, input: CreateMembershipInput) -> CreateMembershipOutput:
        ...

    def get_membership_by_email(self, contact_group_id: str, email: str) -> GetMembershipOutput:
        """Raises NotFoundError when no audience contact has this email."""
        ...

    def delete_membership(self, contact_group_id: str, membership_id: str) -> DeleteMembershipOutput:
        """Raises NotFoundError when the audience contact does not exist."""
        ...


class ContactProvider(Protocol):
    """Contact records on one provider.

    Providers that cannot change identity fields in place set
    `recreates_on_update`; their contacts are updated by deleting the old
    record and creating a new one. `confirms_asynchronously` providers report
    creation and deletion through the webhook.
    """

    name: str
    recreates_on_update: bool
    confirms_asynchronously: bool

    def find_contact(self, input: ContactInput) -> ContactOutput:
        """Raises NotFoundError when the provider holds no matching contact."""
        ...

    def create_contact(self, input: ContactInput) -> ContactOutput:
        ...

    def delete_contact(self, contact_id: str, input: ContactInput) -> DeleteContactOutput:
        """Raises NotFoundError when the contact does not exist."""
        ...


class UpdatableContactProvider(ContactProvider, Protocol):
    def update_contact(self, contact_id: str, input: ContactInput) -> ContactOutput:
        ...


class MailingListProvider(Protocol):
    """Mailing list subscriptions for contacts."""

    def subscribe(self, input: ContactInput, mailing_list_id: str) -> None:
        ...
