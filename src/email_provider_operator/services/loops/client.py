"""Loops REST client: contacts and mailing list subscriptions."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...constants import LOOPS_CONTACT_SOURCE, PROVIDER_LOOPS
from ...utils.errors import NotFoundError, TransportError
from ...utils.rate_limit import RateLimiter
from ..provider.base import ContactInput, ContactOutput, DeleteContactOutput
from ..provider.http import ProviderHTTPClient

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://app.loops.so"


def _first_contact(payload: Any) -> dict[str, Any] | None:
    """Loops answers with either a single contact object or a list of them."""
    if isinstance(payload, list):
        return payload[0] if payload else None
    if isinstance(payload, dict):
        return payload
    return None


class LoopsProvider:
    """Loops implementation of ContactProvider and MailingListProvider.

    Contacts are keyed by `userId` (the Contact resource UID), so the email
    address can be changed in place and every call is confirmed synchronously.
    """

    name = PROVIDER_LOOPS
    recreates_on_update = False
    confirms_asynchronously = False

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.http = ProviderHTTPClient(
            PROVIDER_LOOPS,
            base_url,
            api_key,
            timeout=timeout,
            rate_limiter=rate_limiter,
            transport=transport,
        )

    def close(self) -> None:
        self.http.close()

    @staticmethod
    def _payload(input: ContactInput) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "email": input.email,
            "firstName": input.given_name,
            "lastName": input.family_name,
            "source": LOOPS_CONTACT_SOURCE,
            "subscribed": True,
            "userId": input.user_id,
        }
        if input.mailing_lists:
            payload["mailingLists"] = dict(input.mailing_lists)
        return payload

    def find_contact(self, input: ContactInput) -> ContactOutput:
        response = self.http.request(
            "GET",
            "/api/v1/contacts/find",
            operation="find_contact",
            entity_kind="contact",
            entity_name=input.user_id,
            params={"userId": input.user_id},
        )
        contact = _first_contact(response)
        if not contact or not contact.get("id"):
            raise NotFoundError("contact", input.user_id)
        return ContactOutput(contact_id=str(contact["id"]), email=contact.get("email", ""))

    def create_contact(self, input: ContactInput) -> ContactOutput:
        response = self.http.request(
            "POST",
            "/api/v1/contacts/create",
            operation="create_contact",
            entity_kind="contact",
            entity_name=input.user_id,
            json=self._payload(input),
        )
        if not isinstance(response, dict) or not response.get("id"):
            raise TransportError("Loops create_contact returned no id")
        return ContactOutput(contact_id=str(response["id"]), email=input.email)

    def update_contact(self, contact_id: str, input: ContactInput) -> ContactOutput:
        response = self.http.request(
            "PUT",
            "/api/v1/contacts/update",
            operation="update_contact",
            entity_kind="contact",
            entity_name=input.user_id,
            json=self._payload(input),
        )
        contact = _first_contact(response) or {}
        return ContactOutput(contact_id=str(contact.get("id") or contact_id), email=input.email)

    def delete_contact(self, contact_id: str, input: ContactInput) -> DeleteContactOutput:
        self.http.request(
            "POST",
            "/api/v1/contacts/delete",
            operation="delete_contact",
            entity_kind="contact",
            entity_name=input.user_id,
            json={"userId": input.user_id},
        )
        return DeleteContactOutput(deleted=True)

    def subscribe(self, input: ContactInput, mailing_list_id: str) -> None:
        """Add the contact to one mailing list, leaving other lists untouched."""
        self.http.request(
            "PUT",
            "/api/v1/contacts/update",
            operation="update_mailing_lists",
            entity_kind="contact",
            entity_name=input.user_id,
            json={
                "userId": input.user_id,
                "subscribed": True,
                "mailingLists": {mailing_list_id: True},
            },
        )
