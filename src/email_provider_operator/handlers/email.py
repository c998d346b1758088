"""kopf handlers for Email resources."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import API_GROUP_VERSION, KIND_EMAIL
from .base import RESYNC_INTERVAL_SECONDS, BaseHandler

_handler = BaseHandler(KIND_EMAIL)


@kopf.on.create(API_GROUP_VERSION, KIND_EMAIL)
@kopf.on.update(API_GROUP_VERSION, KIND_EMAIL)
@kopf.on.resume(API_GROUP_VERSION, KIND_EMAIL)
def handle_email(body: kopf.Body, retry: int, **kwargs: Any) -> None:
    """Handle Email resource reconciliation."""
    _handler.reconcile(body, retry)


@kopf.timer(API_GROUP_VERSION, KIND_EMAIL, interval=RESYNC_INTERVAL_SECONDS)
def resync_email(body: kopf.Body, **kwargs: Any) -> None:
    _handler.reconcile(body, resync=True)
