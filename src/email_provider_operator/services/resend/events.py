"""Resend webhook event payloads."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

_TIMESTAMP_FORMATS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S.%f%z",
)
_SHORT_OFFSET = re.compile(r"(\d{2}:\d{2}:\d{2}(?:\.\d+)?)([+-]\d{2})$")
_FRACTION = re.compile(r"\.(\d+)")
_HAS_OFFSET = re.compile(r"[+-]\d{2}:\d{2}$")


class EventParseError(ValueError):
    """The payload does not match a known event schema."""


def parse_resend_timestamp(value: Any) -> Any:
    """Parse the timestamp shapes Resend emits.

    RFC 3339 with or without fractional seconds, `Z` or numeric offsets, and
    the space separated `2024-01-01 10:00:00.123456+00` form. Timestamps
    without an offset are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _SHORT_OFFSET.sub(r"\1\2:00", text)
    # strptime accepts at most six fractional digits
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6], text, count=1)
    if not _HAS_OFFSET.search(text):
        text = text + "+00:00"

    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt).astimezone(timezone.utc)
        except ValueError:
            continue
    raise ValueError(f"unable to parse timestamp {value!r}")


ResendTime = Annotated[Optional[datetime], BeforeValidator(parse_resend_timestamp)]


class EmailEventType(str, Enum):
    SENT = "email.sent"
    DELIVERED = "email.delivered"
    DELIVERY_DELAYED = "email.delivery_delayed"
    COMPLAINED = "email.complained"
    BOUNCED = "email.bounced"
    OPENED = "email.opened"
    CLICKED = "email.clicked"
    FAILED = "email.failed"
    SCHEDULED = "email.scheduled"


class ContactEventType(str, Enum):
    CREATED = "contact.created"
    UPDATED = "contact.updated"
    DELETED = "contact.deleted"


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Tag(_Payload):
    name: str = ""
    value: str = ""


class Click(_Payload):
    ip_address: str = Field("", alias="ipAddress")
    link: str = ""
    timestamp: ResendTime = None
    user_agent: str = Field("", alias="userAgent")


class Bounce(_Payload):
    message: str = ""
    sub_type: str = Field("", alias="subType")
    type: str = ""


class Failed(_Payload):
    reason: str = ""


class EmailData(_Payload):
    email_id: str = Field(min_length=1)
    broadcast_id: str = ""
    created_at: ResendTime = None
    sender: str = Field("", alias="from")
    to: list[str] = Field(default_factory=list)
    subject: str = ""
    tags: list[Tag] = Field(default_factory=list)
    click: Optional[Click] = None
    bounce: Optional[Bounce] = None
    failed: Optional[Failed] = None

    @field_validator("tags", mode="before")
    @classmethod
    def tags_as_list(cls, value: Any) -> Any:
        # Tags arrive either as a list of pairs or as a flat mapping.
        if isinstance(value, dict):
            return [{"name": k, "value": v} for k, v in value.items()]
        return value or []


class EmailEvent(_Payload):
    type: EmailEventType
    created_at: ResendTime = None
    data: EmailData

    def detail(self) -> str:
        """Event-specific details suitable for an event note."""
        if self.type is EmailEventType.BOUNCED and self.data.bounce is not None:
            bounce = self.data.bounce
            return f"bounce {bounce.type}/{bounce.sub_type}: {bounce.message}"
        if self.type is EmailEventType.FAILED and self.data.failed is not None:
            return f"failed: {self.data.failed.reason}"
        if self.type is EmailEventType.CLICKED and self.data.click is not None:
            return f"clicked link {self.data.click.link}"
        return ""


class ContactData(_Payload):
    id: str = Field(min_length=1)
    audience_id: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    unsubscribed: bool = False
    created_at: ResendTime = None
    updated_at: ResendTime = None


class ContactEvent(_Payload):
    type: ContactEventType
    created_at: ResendTime = None
    data: ContactData


def parse_email_event(body: bytes | str) -> EmailEvent:
    try:
        return EmailEvent.model_validate_json(body)
    except ValidationError as e:
        raise EventParseError(f"not an email event: {e.error_count()} validation errors") from e


def parse_contact_event(body: bytes | str) -> ContactEvent:
    try:
        return ContactEvent.model_validate_json(body)
    except ValidationError as e:
        raise EventParseError(f"not a contact event: {e.error_count()} validation errors") from e
