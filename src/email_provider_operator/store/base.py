"""Protocol for the declarative resource store."""

from __future__ import annotations

from typing import Callable, Protocol

from ..models import ManagedResource, ResourceKey
from ..utils.errors import ConflictError

StatusMutation = Callable[[ManagedResource], None]


class ResourceStore(Protocol):
    """Read and write custom resources with optimistic concurrency.

    Every read returns an owned snapshot. Writes are compare-and-swap against
    the snapshot's resourceVersion: a stale snapshot raises ConflictError and
    a vanished object raises NotFoundError.
    """

    def get(self, key: ResourceKey) -> ManagedResource:
        """Return a fresh snapshot of the resource."""
        ...

    def list_by_index(self, kind: str, index_name: str, value: str) -> list[ManagedResource]:
        """Return fresh snapshots of every resource of `kind` indexed under `value`."""
        ...

    def update_status(self, resource: ManagedResource, writer: str = "reconciler") -> ManagedResource:
        """Replace the status subresource, returning the stored result."""
        ...

    def add_finalizer(self, resource: ManagedResource, finalizer: str) -> ManagedResource:
        ...

    def remove_finalizer(self, resource: ManagedResource, finalizer: str) -> ManagedResource:
        ...

    def delete(self, key: ResourceKey) -> None:
        """Request deletion; finalizers may delay physical removal."""
        ...


def apply_status(
    store: ResourceStore,
    resource: ManagedResource,
    mutate: StatusMutation,
    writer: str = "reconciler",
    attempts: int = 1,
) -> ManagedResource:
    """Apply `mutate` to the resource status and write it with compare-and-swap.

    Nothing is written when the mutation leaves the status unchanged. After a
    conflict the resource is read again and `mutate` re-applied to the fresh
    copy, up to `attempts` writes in total; the last ConflictError propagates.

    Returns:
        The stored resource, or the mutated snapshot when no write was needed
    """
    attempt = 0
    while True:
        attempt += 1
        before = resource.status_snapshot()
        mutate(resource)
        if resource.status_snapshot() == before:
            return resource
        try:
            return store.update_status(resource, writer=writer)
        except ConflictError:
            if attempt >= attempts:
                raise
            resource = store.get(resource.key)
