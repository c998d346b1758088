"""Utilities for managing Kubernetes conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionType(str, Enum):
    """Condition types written by the reconcilers and the webhook."""

    READY = "Ready"
    DELIVERED = "Delivered"
    UPDATED = "Updated"
    DELETED = "Deleted"
    RESEND_CONTACT_READY = "ResendContactReady"
    LOOPS_CONTACT_READY = "LoopsContactReady"
    NEWSLETTER_ADDED = "NewsletterAdded"


class ConditionReason(str, Enum):
    """Machine-readable condition reasons."""

    # Email
    DELIVERY_PENDING = "DeliveryPending"
    DELIVERED = "Delivered"
    DELIVERY_FAILED = "DeliveryFailed"

    # Shared lifecycle
    CREATE_PENDING = "CreatePending"
    UPDATE_PENDING = "UpdatePending"
    DELETE_PENDING = "DeletePending"

    # Contact
    CONTACT_CREATED = "ContactCreated"
    CONTACT_UPDATED = "ContactUpdated"
    CONTACT_DELETED = "ContactDeleted"
    PROVIDERS_READY = "ProvidersReady"
    PROVIDERS_NOT_READY = "ProvidersNotReady"
    NEWSLETTER_ADDED = "NewsletterAdded"
    NEWSLETTER_NOT_ADDED = "NewsletterNotAdded"

    # ContactGroup
    CONTACT_GROUP_CREATED = "ContactGroupCreated"
    CONTACT_GROUP_UPDATED = "ContactGroupUpdated"

    # ContactGroupMembership
    MEMBERSHIP_CREATED = "ContactGroupMembershipCreated"
    MEMBERSHIP_UPDATED = "ContactGroupMembershipUpdated"
    MEMBERSHIP_DELETED = "ContactGroupMembershipDeleted"

    # ContactGroupMembershipRemoval
    MEMBERSHIP_REMOVED = "ContactGroupMembershipRemoved"


def _value(item: Any) -> str:
    return item.value if isinstance(item, Enum) else str(item)


def now_rfc3339() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def condition_age_seconds(cond: dict[str, Any] | None, now: datetime | None = None) -> float | None:
    """Seconds since the condition last transitioned, or None when unknown."""
    if not cond or not cond.get("lastTransitionTime"):
        return None
    try:
        since = datetime.strptime(cond["lastTransitionTime"], "%Y-%m-%dT%H:%M:%SZ")
    except ValueError:
        return None
    now = now or datetime.now(timezone.utc)
    return (now - since.replace(tzinfo=timezone.utc)).total_seconds()


def update_condition(
    conditions: list[dict[str, Any]],
    condition_type: ConditionType | str,
    status: ConditionStatus | str,
    reason: ConditionReason | str,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Update or add a condition to the conditions list.

    Args:
        conditions: List of existing conditions
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Reason for the condition
        message: Human-readable message
        observed_generation: Generation when condition was observed, kept
            from the existing condition when omitted

    Returns:
        Updated list of conditions
    """
    now = now_rfc3339()
    condition_type = _value(condition_type)
    status = _value(status)

    existing_idx = None
    for idx, cond in enumerate(conditions):
        if cond.get("type") == condition_type:
            existing_idx = idx
            break

    new_condition = {
        "type": condition_type,
        "status": status,
        "reason": _value(reason),
        "message": message,
        "lastTransitionTime": now,
    }

    if observed_generation is not None:
        new_condition["observedGeneration"] = observed_generation

    if existing_idx is not None:
        existing = conditions[existing_idx]
        # Only update lastTransitionTime if status changed
        if existing.get("status") == status:
            new_condition["lastTransitionTime"] = existing.get("lastTransitionTime", now)
        if observed_generation is None and "observedGeneration" in existing:
            new_condition["observedGeneration"] = existing["observedGeneration"]
        conditions[existing_idx] = new_condition
    else:
        conditions.append(new_condition)

    return conditions


def find_condition(
    conditions: Iterable[dict[str, Any]] | None, condition_type: ConditionType | str
) -> dict[str, Any] | None:
    """Return the condition of the given type, or None."""
    wanted = _value(condition_type)
    for cond in conditions or []:
        if cond.get("type") == wanted:
            return cond
    return None


def is_condition_true(
    conditions: Iterable[dict[str, Any]] | None, condition_type: ConditionType | str
) -> bool:
    cond = find_condition(conditions, condition_type)
    return cond is not None and cond.get("status") == ConditionStatus.TRUE.value


def has_reason(
    conditions: Iterable[dict[str, Any]] | None,
    condition_type: ConditionType | str,
    reason: ConditionReason | str,
) -> bool:
    cond = find_condition(conditions, condition_type)
    return cond is not None and cond.get("reason") == _value(reason)


def aggregate_ready(
    conditions: list[dict[str, Any]],
    sub_conditions: dict[str, ConditionType],
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Derive the Ready condition from per-provider sub-conditions.

    Ready is True only when every sub-condition is True. Otherwise Ready is
    False and the message names each provider that is not ready together
    with its reason.

    Args:
        conditions: List of existing conditions
        sub_conditions: Provider display name mapped to its condition type
        observed_generation: Generation when condition was observed, the
            current Ready's generation is kept when omitted

    Returns:
        Updated list of conditions
    """
    if observed_generation is None:
        current = find_condition(conditions, ConditionType.READY)
        if current is not None:
            observed_generation = current.get("observedGeneration")

    not_ready = []
    for provider, condition_type in sub_conditions.items():
        cond = find_condition(conditions, condition_type)
        if cond is None:
            not_ready.append(f"{provider} (NotReported)")
        elif cond.get("status") != ConditionStatus.TRUE.value:
            not_ready.append(f"{provider} ({cond.get('reason', 'Unknown')})")

    if not_ready:
        return update_condition(
            conditions,
            ConditionType.READY,
            ConditionStatus.FALSE,
            ConditionReason.PROVIDERS_NOT_READY,
            "Providers not ready: " + ", ".join(not_ready),
            observed_generation,
        )
    return update_condition(
        conditions,
        ConditionType.READY,
        ConditionStatus.TRUE,
        ConditionReason.PROVIDERS_READY,
        "Contact is ready on all providers",
        observed_generation,
    )
