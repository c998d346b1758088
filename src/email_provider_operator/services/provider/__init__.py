"""Provider-neutral interfaces shared by every integration."""

from .base import (
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
    GetMembershipOutput,
    ListContactGroupsOutput,
    MailingListProvider,
    SendEmailInput,
    SendEmailOutput,
    UpdatableContactProvider,
)

__all__ = [
    "ContactInput",
    "ContactOutput",
    "ContactProvider",
    "CreateContactGroupInput",
    "CreateContactGroupOutput",
    "CreateMembershipInput",
    "CreateMembershipOutput",
    "DeleteContactGroupOutput",
    "DeleteContactOutput",
    "DeleteMembershipOutput",
    "EmailProvider",
    "GetContactGroupOutput",
    "GetMembershipOutput",
    "ListContactGroupsOutput",
    "MailingListProvider",
    "SendEmailInput",
    "SendEmailOutput",
    "UpdatableContactProvider",
]
