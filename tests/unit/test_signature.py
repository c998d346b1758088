"""Tests for webhook signature verification and event transitions."""

from __future__ import annotations

import base64

import pytest

from email_provider_operator.services.resend.events import ContactEventType, EmailEventType
from email_provider_operator.utils.conditions import ConditionReason, ConditionStatus, ConditionType
from email_provider_operator.webhook.signature import (
    SignatureError,
    SignatureVerifier,
    decode_secret,
    sign,
)
from email_provider_operator.webhook.transitions import (
    EMAIL_TRANSITIONS,
    WARNING,
    contact_transition,
    email_transition,
    membership_transition,
)

KEY = b"0123456789abcdef"
SECRET = "whsec_" + base64.b64encode(KEY).decode()
NOW = 1_700_000_000


def headers(body: bytes, timestamp: int = NOW, signature: str | None = None) -> dict[str, str]:
    return {
        "svix-id": "msg_1",
        "svix-timestamp": str(timestamp),
        "svix-signature": signature or sign(KEY, "msg_1", str(timestamp), body),
    }


class TestSignatureVerifier:
    """Test cases for Svix-style HMAC signatures."""

    def test_valid_signature(self):
        """Test that a correctly signed body passes."""
        SignatureVerifier(SECRET).verify(b'{"a":1}', headers(b'{"a":1}'), now=NOW)

    def test_any_matching_signature_is_enough(self):
        """Test that one valid entry among several is accepted."""
        body = b"{}"
        signature = "v1,bm90LXZhbGlk " + sign(KEY, "msg_1", str(NOW), body)
        SignatureVerifier(SECRET).verify(body, headers(body, signature=signature), now=NOW)

    def test_tampered_body_fails(self):
        """Test that a changed body no longer matches."""
        with pytest.raises(SignatureError):
            SignatureVerifier(SECRET).verify(b'{"a":2}', headers(b'{"a":1}'), now=NOW)

    def test_timestamp_outside_tolerance_fails(self):
        """Test that old timestamps are rejected."""
        body = b"{}"
        with pytest.raises(SignatureError):
            SignatureVerifier(SECRET, tolerance_seconds=300).verify(body, headers(body), now=NOW + 301)

    def test_timestamp_within_tolerance_passes(self):
        """Test that small clock skew is tolerated."""
        body = b"{}"
        SignatureVerifier(SECRET, tolerance_seconds=300).verify(body, headers(body), now=NOW - 299)

    def test_missing_headers_fail(self):
        """Test that requests without signature headers are rejected."""
        with pytest.raises(SignatureError):
            SignatureVerifier(SECRET).verify(b"{}", {}, now=NOW)

    def test_non_numeric_timestamp_fails(self):
        """Test that a malformed timestamp is rejected."""
        body = b"{}"
        bad = headers(body)
        bad["svix-timestamp"] = "yesterday"
        with pytest.raises(SignatureError):
            SignatureVerifier(SECRET).verify(body, bad, now=NOW)

    def test_secret_without_prefix(self):
        """Test that the whsec_ prefix is optional."""
        assert decode_secret(base64.b64encode(KEY).decode()) == KEY

    def test_invalid_secret(self):
        """Test that a secret that is not base64 is rejected at construction."""
        with pytest.raises(ValueError):
            SignatureVerifier("whsec_not base64!")


class TestTransitions:
    """Test cases for the event to condition mapping."""

    @pytest.mark.parametrize(
        "event_type,status,reason",
        [
            (EmailEventType.SENT, ConditionStatus.UNKNOWN, ConditionReason.DELIVERY_PENDING),
            (EmailEventType.SCHEDULED, ConditionStatus.UNKNOWN, ConditionReason.DELIVERY_PENDING),
            (EmailEventType.DELIVERY_DELAYED, ConditionStatus.UNKNOWN, ConditionReason.DELIVERY_PENDING),
            (EmailEventType.DELIVERED, ConditionStatus.TRUE, ConditionReason.DELIVERED),
            (EmailEventType.OPENED, ConditionStatus.TRUE, ConditionReason.DELIVERED),
            (EmailEventType.CLICKED, ConditionStatus.TRUE, ConditionReason.DELIVERED),
            (EmailEventType.COMPLAINED, ConditionStatus.TRUE, ConditionReason.DELIVERED),
            (EmailEventType.BOUNCED, ConditionStatus.FALSE, ConditionReason.DELIVERY_FAILED),
            (EmailEventType.FAILED, ConditionStatus.FALSE, ConditionReason.DELIVERY_FAILED),
        ],
    )
    def test_email_transitions(self, event_type, status, reason):
        """Test each email event's Delivered transition."""
        transition = email_transition(event_type)
        assert transition.condition_type is ConditionType.DELIVERED
        assert transition.status is status
        assert transition.reason is reason

    def test_every_email_event_is_mapped(self):
        """Test that no email event type lacks a transition."""
        assert set(EMAIL_TRANSITIONS) == set(EmailEventType)

    def test_warning_events(self):
        """Test that failures, complaints and delays are warnings."""
        warnings = {t for t, transition in EMAIL_TRANSITIONS.items() if transition.severity == WARNING}
        assert warnings == {
            EmailEventType.DELIVERY_DELAYED,
            EmailEventType.COMPLAINED,
            EmailEventType.BOUNCED,
            EmailEventType.FAILED,
        }

    def test_membership_transitions(self):
        """Test the membership condition set by each contact event."""
        assert membership_transition(ContactEventType.CREATED).condition_type is ConditionType.READY
        assert membership_transition(ContactEventType.UPDATED).condition_type is ConditionType.UPDATED
        deleted = membership_transition(ContactEventType.DELETED)
        assert deleted.condition_type is ConditionType.DELETED
        assert deleted.reason is ConditionReason.MEMBERSHIP_DELETED

    def test_contact_transitions(self):
        """Test the contact condition set by each contact event."""
        created = contact_transition(ContactEventType.CREATED)
        assert created.condition_type is ConditionType.RESEND_CONTACT_READY
        assert created.status is ConditionStatus.TRUE
        assert contact_transition(ContactEventType.DELETED).reason is ConditionReason.CONTACT_DELETED
