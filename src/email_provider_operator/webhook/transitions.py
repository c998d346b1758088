"""Static mapping from provider events to condition transitions."""

from __future__ import annotations

from dataclasses import dataclass

from ..services.resend.events import ContactEventType, EmailEventType
from ..utils.conditions import ConditionReason, ConditionStatus, ConditionType

NORMAL = "Normal"
WARNING = "Warning"


@dataclass(frozen=True)
class Transition:
    condition_type: ConditionType
    status: ConditionStatus
    reason: ConditionReason
    severity: str = NORMAL


def _delivered(status: ConditionStatus, reason: ConditionReason, severity: str = NORMAL) -> Transition:
    return Transition(ConditionType.DELIVERED, status, reason, severity)


EMAIL_TRANSITIONS: dict[EmailEventType, Transition] = {
    EmailEventType.SENT: _delivered(ConditionStatus.UNKNOWN, ConditionReason.DELIVERY_PENDING),
    EmailEventType.SCHEDULED: _delivered(ConditionStatus.UNKNOWN, ConditionReason.DELIVERY_PENDING),
    EmailEventType.DELIVERY_DELAYED: _delivered(
        ConditionStatus.UNKNOWN, ConditionReason.DELIVERY_PENDING, WARNING
    ),
    EmailEventType.DELIVERED: _delivered(ConditionStatus.TRUE, ConditionReason.DELIVERED),
    EmailEventType.OPENED: _delivered(ConditionStatus.TRUE, ConditionReason.DELIVERED),
    EmailEventType.CLICKED: _delivered(ConditionStatus.TRUE, ConditionReason.DELIVERED),
    # Delivered, but the recipient marked it as spam.
    EmailEventType.COMPLAINED: _delivered(ConditionStatus.TRUE, ConditionReason.DELIVERED, WARNING),
    EmailEventType.BOUNCED: _delivered(ConditionStatus.FALSE, ConditionReason.DELIVERY_FAILED, WARNING),
    EmailEventType.FAILED: _delivered(ConditionStatus.FALSE, ConditionReason.DELIVERY_FAILED, WARNING),
}

MEMBERSHIP_TRANSITIONS: dict[ContactEventType, Transition] = {
    ContactEventType.CREATED: Transition(
        ConditionType.READY, ConditionStatus.TRUE, ConditionReason.MEMBERSHIP_CREATED
    ),
    ContactEventType.UPDATED: Transition(
        ConditionType.UPDATED, ConditionStatus.TRUE, ConditionReason.MEMBERSHIP_UPDATED
    ),
    ContactEventType.DELETED: Transition(
        ConditionType.DELETED, ConditionStatus.TRUE, ConditionReason.MEMBERSHIP_DELETED
    ),
}

CONTACT_TRANSITIONS: dict[ContactEventType, Transition] = {
    ContactEventType.CREATED: Transition(
        ConditionType.RESEND_CONTACT_READY, ConditionStatus.TRUE, ConditionReason.CONTACT_CREATED
    ),
    ContactEventType.UPDATED: Transition(
        ConditionType.UPDATED, ConditionStatus.TRUE, ConditionReason.CONTACT_UPDATED
    ),
    ContactEventType.DELETED: Transition(
        ConditionType.DELETED, ConditionStatus.TRUE, ConditionReason.CONTACT_DELETED
    ),
}


def email_transition(event_type: EmailEventType) -> Transition:
    return EMAIL_TRANSITIONS[event_type]


def membership_transition(event_type: ContactEventType) -> Transition:
    return MEMBERSHIP_TRANSITIONS[event_type]


def contact_transition(event_type: ContactEventType) -> Transition:
    return CONTACT_TRANSITIONS[event_type]
