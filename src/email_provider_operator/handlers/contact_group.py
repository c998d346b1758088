"""kopf handlers for ContactGroup resources."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import API_GROUP_VERSION, KIND_CONTACT_GROUP
from .base import RESYNC_INTERVAL_SECONDS, BaseHandler

_handler = BaseHandler(KIND_CONTACT_GROUP)


@kopf.on.create(API_GROUP_VERSION, KIND_CONTACT_GROUP)
@kopf.on.update(API_GROUP_VERSION, KIND_CONTACT_GROUP)
@kopf.on.resume(API_GROUP_VERSION, KIND_CONTACT_GROUP)
def handle_contact_group(body: kopf.Body, retry: int, **kwargs: Any) -> None:
    """Handle ContactGroup resource reconciliation."""
    _handler.reconcile(body, retry)


@kopf.timer(API_GROUP_VERSION, KIND_CONTACT_GROUP, interval=RESYNC_INTERVAL_SECONDS)
def resync_contact_group(body: kopf.Body, **kwargs: Any) -> None:
    _handler.reconcile(body, resync=True)


@kopf.on.delete(API_GROUP_VERSION, KIND_CONTACT_GROUP, optional=True)
def handle_contact_group_delete(body: kopf.Body, retry: int, **kwargs: Any) -> None:
    """Remove memberships and the provider audience before the group goes away."""
    _handler.finalize(body, retry)
