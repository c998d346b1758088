"""Resend integration: REST client and webhook event payloads."""

from .client import ResendProvider
from .events import (
    ContactEvent,
    ContactEventType,
    EmailEvent,
    EmailEventType,
    EventParseError,
    parse_contact_event,
    parse_email_event,
)

__all__ = [
    "ResendProvider",
    "ContactEvent",
    "ContactEventType",
    "EmailEvent",
    "EmailEventType",
    "EventParseError",
    "parse_contact_event",
    "parse_email_event",
]
