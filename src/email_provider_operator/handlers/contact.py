"""kopf handlers for Contact resources."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import API_GROUP_VERSION, KIND_CONTACT
from .base import RESYNC_INTERVAL_SECONDS, BaseHandler

_handler = BaseHandler(KIND_CONTACT)


@kopf.on.create(API_GROUP_VERSION, KIND_CONTACT)
@kopf.on.update(API_GROUP_VERSION, KIND_CONTACT)
@kopf.on.resume(API_GROUP_VERSION, KIND_CONTACT)
def handle_contact(body: kopf.Body, retry: int, **kwargs: Any) -> None:
    """Handle Contact resource reconciliation."""
    _handler.reconcile(body, retry)


@kopf.timer(API_GROUP_VERSION, KIND_CONTACT, interval=RESYNC_INTERVAL_SECONDS)
def resync_contact(body: kopf.Body, **kwargs: Any) -> None:
    _handler.reconcile(body, resync=True)


@kopf.on.delete(API_GROUP_VERSION, KIND_CONTACT, optional=True)
def handle_contact_delete(body: kopf.Body, retry: int, **kwargs: Any) -> None:
    """Remove memberships and provider contacts before the Contact goes away."""
    _handler.finalize(body, retry)
