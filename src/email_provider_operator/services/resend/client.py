"""Resend REST client: email delivery, audiences and contacts."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ...constants import PROVIDER_RESEND
from ...utils.errors import TransportError
from ...utils.rate_limit import RateLimiter
from ..provider.base import (
    ContactInput,
    ContactOutput,
    CreateContactGroupInput,
    CreateContactGroupOutput,
    CreateMembershipInput,
    CreateMembershipOutput,
    DeleteContactGroupOutput,
    DeleteContactOutput,
    DeleteMembershipOutput,
    GetContactGroupOutput,
    GetMembershipOutput,
    ListContactGroupsOutput,
    SendEmailInput,
    SendEmailOutput,
)
from ..provider.http import ProviderHTTPClient

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.resend.com"


def _require_id(payload: Any, operation: str) -> str:
    if not isinstance(payload, dict) or not payload.get("id"):
        raise TransportError(f"Resend {operation} returned no id")
    return str(payload["id"])


class ResendProvider:
    """Resend implementation of EmailProvider and ContactProvider.

    Contact creation and deletion are confirmed asynchronously through the
    contact.* webhook events, and a contact's email cannot be changed in place.
    """

    name = PROVIDER_RESEND
    recreates_on_update = True
    confirms_asynchronously = True

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.http = ProviderHTTPClient(
            PROVIDER_RESEND,
            base_url,
            api_key,
            timeout=timeout,
            rate_limiter=rate_limiter,
            transport=transport,
        )

    def close(self) -> None:
        self.http.close()

    # Emails

    def send_email(self, input: SendEmailInput) -> SendEmailOutput:
        payload: dict[str, Any] = {
            "from": input.email_from,
            "to": input.to,
            "subject": input.subject,
            "html": input.html_body,
            "text": input.text_body,
        }
        if input.reply_to:
            payload["reply_to"] = input.reply_to
        if input.cc:
            payload["cc"] = input.cc
        if input.bcc:
            payload["bcc"] = input.bcc

        response = self.http.request(
            "POST",
            "/emails",
            operation="send_email",
            entity_kind="email",
            entity_name=input.idempotency_key,
            json=payload,
            headers={"Idempotency-Key": input.idempotency_key},
        )
        return SendEmailOutput(delivery_id=_require_id(response, "send_email"))

    # Audiences (contact groups)

    def create_contact_group(self, input: CreateContactGroupInput) -> CreateContactGroupOutput:
        response = self.http.request(
            "POST",
            "/audiences",
            operation="create_audience",
            entity_kind="audience",
            entity_name=input.display_name,
            json={"name": input.display_name},
        )
        return CreateContactGroupOutput(contact_group_id=_require_id(response, "create_audience"))

    def get_contact_group(self, contact_group_id: str) -> GetContactGroupOutput:
        response = self.http.request(
            "GET",
            f"/audiences/{quote(contact_group_id, safe='')}",
            operation="get_audience",
            entity_kind="audience",
            entity_name=contact_group_id,
        )
        return GetContactGroupOutput(
            contact_group_id=_require_id(response, "get_audience"),
            display_name=response.get("name", ""),
        )

    def list_contact_groups(self) -> ListContactGroupsOutput:
        response = self.http.request(
            "GET",
            "/audiences",
            operation="list_audiences",
            entity_kind="audience",
            entity_name="*",
        )
        items = (response or {}).get("data") or []
        return ListContactGroupsOutput(
            contact_groups=[
                GetContactGroupOutput(contact_group_id=item["id"], display_name=item.get("name", ""))
                for item in items
                if item.get("id")
            ]
        )

    def delete_contact_group(self, contact_group_id: str) -> DeleteContactGroupOutput:
        response = self.http.request(
            "DELETE",
            f"/audiences/{quote(contact_group_id, safe='')}",
            operation="delete_audience",
            entity_kind="audience",
            entity_name=contact_group_id,
        )
        return DeleteContactGroupOutput(
            contact_group_id=contact_group_id,
            deleted=bool((response or {}).get("deleted", True)),
        )

    # Audience contacts (memberships)

    def create_membership(self, input: CreateMembershipInput) -> CreateMembershipOutput:
        response = self.http.request(
            "POST",
            f"/audiences/{quote(input.contact_group_id, safe='')}/contacts",
            operation="create_audience_contact",
            entity_kind="audience contact",
            entity_name=input.email,
            json={
                "email": input.email,
                "first_name": input.given_name,
                "last_name": input.family_name,
                "unsubscribed": False,
            },
        )
        return CreateMembershipOutput(membership_id=_require_id(response, "create_audience_contact"))

    def get_membership_by_email(self, contact_group_id: str, email: str) -> GetMembershipOutput:
        response = self.http.request(
            "GET",
            f"/audiences/{quote(contact_group_id, safe='')}/contacts/{quote(email, safe='@')}",
            operation="get_audience_contact",
            entity_kind="audience contact",
            entity_name=email,
        )
        return GetMembershipOutput(
            membership_id=_require_id(response, "get_audience_contact"),
            email=response.get("email", email),
        )

    def delete_membership(self, contact_group_id: str, membership_id: str) -> DeleteMembershipOutput:
        response = self.http.request(
            "DELETE",
            f"/audiences/{quote(contact_group_id, safe='')}/contacts/{quote(membership_id, safe='')}",
            operation="delete_audience_contact",
            entity_kind="audience contact",
            entity_name=membership_id,
        )
        return DeleteMembershipOutput(
            membership_id=membership_id,
            deleted=bool((response or {}).get("deleted", True)),
        )

    # Contacts

    def find_contact(self, input: ContactInput) -> ContactOutput:
        response = self.http.request(
            "GET",
            f"/contacts/{quote(input.email, safe='@')}",
            operation="get_contact",
            entity_kind="contact",
            entity_name=input.email,
        )
        return ContactOutput(
            contact_id=_require_id(response, "get_contact"),
            email=response.get("email", input.email),
        )

    def create_contact(self, input: ContactInput) -> ContactOutput:
        response = self.http.request(
            "POST",
            "/contacts",
            operation="create_contact",
            entity_kind="contact",
            entity_name=input.email,
            json={
                "email": input.email,
                "first_name": input.given_name,
                "last_name": input.family_name,
                "unsubscribed": False,
            },
        )
        return ContactOutput(contact_id=_require_id(response, "create_contact"), email=input.email)

    def delete_contact(self, contact_id: str, input: ContactInput) -> DeleteContactOutput:
        response = self.http.request(
            "DELETE",
            f"/contacts/{quote(contact_id, safe='')}",
            operation="delete_contact",
            entity_kind="contact",
            entity_name=contact_id,
        )
        return DeleteContactOutput(deleted=bool((response or {}).get("deleted", True)))
