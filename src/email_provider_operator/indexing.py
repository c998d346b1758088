"""In-memory field indexes over watched resources.

Each index maps a value extracted from a resource (a provider identifier or
a composite reference key) to the set of resources producing it. Indexes are
fed by the kopf watch stream and by the store's own successful writes, so a
reader may briefly observe a stale entry. That is acceptable: every consumer
re-reads the resource before acting on it.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

from .constants import (
    INDEX_CONTACT_GROUP_REF,
    INDEX_CONTACT_REF,
    INDEX_MEMBERSHIP_TUPLE,
    INDEX_PROVIDER_ID,
    KIND_CONTACT,
    KIND_CONTACT_GROUP_MEMBERSHIP,
    KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL,
    KIND_EMAIL,
)
from .models import (
    ManagedResource,
    ResourceKey,
    contact_group_ref,
    contact_ref,
    membership_index_key,
    namespaced_index_key,
)

Extractor = Callable[[ManagedResource], list[str]]


@dataclass(frozen=True)
class IndexSpec:
    kind: str
    name: str
    extractor: Extractor


def provider_id_values(resource: ManagedResource) -> list[str]:
    """Correlation index: non-empty status.providerID."""
    return [resource.provider_id] if resource.provider_id else []


def contact_ref_values(resource: ManagedResource) -> list[str]:
    ref = contact_ref(resource)
    return [namespaced_index_key(ref.namespace, ref.name)] if ref else []


def contact_group_ref_values(resource: ManagedResource) -> list[str]:
    ref = contact_group_ref(resource)
    return [namespaced_index_key(ref.namespace, ref.name)] if ref else []


def membership_tuple_values(resource: ManagedResource) -> list[str]:
    contact = contact_ref(resource)
    group = contact_group_ref(resource)
    if contact is None or group is None:
        return []
    return [membership_index_key(contact, group)]


DEFAULT_INDEXES = (
    IndexSpec(KIND_EMAIL, INDEX_PROVIDER_ID, provider_id_values),
    IndexSpec(KIND_CONTACT, INDEX_PROVIDER_ID, provider_id_values),
    IndexSpec(KIND_CONTACT_GROUP_MEMBERSHIP, INDEX_PROVIDER_ID, provider_id_values),
    IndexSpec(KIND_CONTACT_GROUP_MEMBERSHIP, INDEX_CONTACT_REF, contact_ref_values),
    IndexSpec(KIND_CONTACT_GROUP_MEMBERSHIP, INDEX_CONTACT_GROUP_REF, contact_group_ref_values),
    IndexSpec(KIND_CONTACT_GROUP_MEMBERSHIP, INDEX_MEMBERSHIP_TUPLE, membership_tuple_values),
    IndexSpec(KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL, INDEX_CONTACT_REF, contact_ref_values),
    IndexSpec(KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL, INDEX_CONTACT_GROUP_REF, contact_group_ref_values),
)


class FieldIndexer:
    """Thread-safe reverse maps `(kind, index, value) -> {ResourceKey}`."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._extractors: dict[str, dict[str, Extractor]] = defaultdict(dict)
        # kind -> index -> value -> keys
        self._entries: dict[str, dict[str, dict[str, set[ResourceKey]]]] = defaultdict(
            lambda: defaultdict(lambda: defaultdict(set))
        )
        # key -> index -> values currently recorded for it
        self._recorded: dict[ResourceKey, dict[str, list[str]]] = {}

    def register(self, kind: str, index_name: str, extractor: Extractor) -> None:
        with self._lock:
            if index_name in self._extractors[kind]:
                raise ValueError(f"index {index_name!r} already registered for {kind}")
            self._extractors[kind][index_name] = extractor

    def indexed_kinds(self) -> list[str]:
        with self._lock:
            return sorted(self._extractors)

    def upsert(self, resource: ManagedResource) -> None:
        """Record or refresh the index entries of one resource."""
        kind = resource.kind
        with self._lock:
            extractors = self._extractors.get(kind)
            if not extractors:
                return
            key = resource.key
            self._forget(key)
            recorded: dict[str, list[str]] = {}
            for index_name, extractor in extractors.items():
                values = extractor(resource)
                for value in values:
                    self._entries[kind][index_name][value].add(key)
                recorded[index_name] = values
            self._recorded[key] = recorded

    def remove(self, key: ResourceKey) -> None:
        with self._lock:
            self._forget(key)

    def _forget(self, key: ResourceKey) -> None:
        recorded = self._recorded.pop(key, None)
        if not recorded:
            return
        for index_name, values in recorded.items():
            bucket = self._entries[key.kind][index_name]
            for value in values:
                bucket[value].discard(key)
                if not bucket[value]:
                    del bucket[value]

    def lookup(self, kind: str, index_name: str, value: str) -> list[ResourceKey]:
        """Return the keys whose extractor produced `value`, in a stable order."""
        with self._lock:
            if index_name not in self._extractors.get(kind, {}):
                raise KeyError(f"index {index_name!r} is not registered for {kind}")
            keys = self._entries[kind][index_name].get(value)
            return sorted(keys) if keys else []

    def handle_watch_event(self, event_type: str | None, body: Any) -> None:
        """Apply one raw watch event (kopf `type` is None for the initial listing)."""
        resource = ManagedResource.from_body(body)
        if event_type == "DELETED":
            self.remove(resource.key)
        else:
            self.upsert(resource)


def register_default_indexes(indexer: FieldIndexer) -> FieldIndexer:
    for spec in DEFAULT_INDEXES:
        indexer.register(spec.kind, spec.name, spec.extractor)
    return indexer
