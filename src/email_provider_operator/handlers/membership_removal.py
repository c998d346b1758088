"""kopf handlers for ContactGroupMembershipRemoval resources."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import API_GROUP_VERSION, KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL
from .base import BaseHandler

_handler = BaseHandler(KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL)


@kopf.on.create(API_GROUP_VERSION, KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL)
@kopf.on.update(API_GROUP_VERSION, KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL)
@kopf.on.resume(API_GROUP_VERSION, KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL)
def handle_membership_removal(body: kopf.Body, retry: int, **kwargs: Any) -> None:
    """Handle ContactGroupMembershipRemoval resource reconciliation."""
    _handler.reconcile(body, retry)
