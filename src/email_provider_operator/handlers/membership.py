"""kopf handlers for ContactGroupMembership resources."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import API_GROUP_VERSION, KIND_CONTACT_GROUP_MEMBERSHIP
from .base import RESYNC_INTERVAL_SECONDS, BaseHandler

_handler = BaseHandler(KIND_CONTACT_GROUP_MEMBERSHIP)


@kopf.on.create(API_GROUP_VERSION, KIND_CONTACT_GROUP_MEMBERSHIP)
@kopf.on.update(API_GROUP_VERSION, KIND_CONTACT_GROUP_MEMBERSHIP)
@kopf.on.resume(API_GROUP_VERSION, KIND_CONTACT_GROUP_MEMBERSHIP)
def handle_membership(body: kopf.Body, retry: int, **kwargs: Any) -> None:
    """Handle ContactGroupMembership resource reconciliation."""
    _handler.reconcile(body, retry)


# Also picks up recreate requests, which are written to status and so never
# trigger an update handler.
@kopf.timer(API_GROUP_VERSION, KIND_CONTACT_GROUP_MEMBERSHIP, interval=RESYNC_INTERVAL_SECONDS)
def resync_membership(body: kopf.Body, **kwargs: Any) -> None:
    _handler.reconcile(body, resync=True)


@kopf.on.delete(API_GROUP_VERSION, KIND_CONTACT_GROUP_MEMBERSHIP, optional=True)
def handle_membership_delete(body: kopf.Body, retry: int, **kwargs: Any) -> None:
    """Delete the audience contact before the membership goes away."""
    _handler.finalize(body, retry)
