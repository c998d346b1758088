"""Tests for the watch-event handlers."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from email_provider_operator.config import LoopsSettings, OperatorConfig, ResendSettings
from email_provider_operator.constants import API_GROUP_VERSION, INDEX_PROVIDER_ID, KIND_CONTACT_GROUP, KIND_EMAIL
from email_provider_operator.handlers import base
from email_provider_operator.handlers.indexing import WATCHED_KINDS, handle_watch_event
from email_provider_operator.handlers.shared import OperatorRuntime, resource_key, set_runtime
from email_provider_operator.indexing import FieldIndexer, register_default_indexes

EMAIL = {
    "apiVersion": API_GROUP_VERSION,
    "kind": KIND_EMAIL,
    "metadata": {"name": "welcome", "namespace": "default", "uid": "uid-welcome"},
    "status": {"providerID": "d-1"},
}


@pytest.fixture(autouse=True)
def runtime():
    runtime = OperatorRuntime(
        config=OperatorConfig(
            resend=ResendSettings("re_key", "from@example.com", "reply@example.com"),
            loops=LoopsSettings("loops_key"),
        ),
        store=MagicMock(),
        indexer=register_default_indexes(FieldIndexer()),
        reconcilers={},
        guards={},
    )
    set_runtime(runtime)
    yield runtime
    set_runtime(None)


class TestWatchEvents:
    """Test cases for index upkeep and lock release."""

    def test_every_reconciled_kind_is_watched(self):
        """Test that kinds without indexes still get watch handlers."""
        assert KIND_CONTACT_GROUP in WATCHED_KINDS
        assert KIND_EMAIL in WATCHED_KINDS

    def test_added_object_is_indexed(self, runtime):
        """Test that ADDED events feed the provider id index."""
        handle_watch_event("ADDED", EMAIL)

        assert runtime.indexer.lookup(KIND_EMAIL, INDEX_PROVIDER_ID, "d-1") == [resource_key(EMAIL)]

    def test_deleted_object_releases_lock(self, runtime):
        """Test that an object without a finalizer does not keep its lock after deletion."""
        key = resource_key(EMAIL)
        handle_watch_event("ADDED", EMAIL)
        first = base._locks.get(key)

        handle_watch_event("DELETED", EMAIL)

        assert key not in base._locks._locks
        assert base._locks.get(key) is not first
        assert runtime.indexer.lookup(KIND_EMAIL, INDEX_PROVIDER_ID, "d-1") == []
        base._locks.discard(key)

    def test_modified_object_keeps_lock(self):
        """Test that only deletions drop the lock."""
        key = resource_key(EMAIL)
        first = base._locks.get(key)

        handle_watch_event("MODIFIED", EMAIL)

        assert base._locks.get(key) is first
        base._locks.discard(key)
