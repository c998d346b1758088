"""Watch-event handlers feeding the in-memory field indexes."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import API_GROUP_VERSION, KIND_CONTACT_GROUP
from ..indexing import DEFAULT_INDEXES
from .base import forget_object
from .shared import get_runtime

# Every reconciled kind, including those without indexes, so deleted objects release their lock
WATCHED_KINDS = sorted({spec.kind for spec in DEFAULT_INDEXES} | {KIND_CONTACT_GROUP})


def handle_watch_event(type: str | None, body: Any) -> None:
    get_runtime().indexer.handle_watch_event(type, body)
    if type == "DELETED":
        forget_object(body)


def _register(kind: str) -> None:
    @kopf.on.event(API_GROUP_VERSION, kind, id=f"index-{kind.lower()}")
    def index_event(type: str | None, body: kopf.Body, **kwargs: Any) -> None:
        handle_watch_event(type, body)


for _kind in WATCHED_KINDS:
    _register(_kind)
