"""Shared machinery for reconcilers and deletion guards."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..constants import CONTROLLER_NAME
from ..logging import log_resource_event
from ..models import ManagedResource, ResourceKey, resource_kind
from ..store.base import ResourceStore, StatusMutation, apply_status
from ..utils.conditions import find_condition
from ..utils.errors import NotFoundError, WaitingForDependentsError, sanitize_exception
from ..utils.events import EventRecorder

# Status writes re-read and re-apply after a conflict this many times in total
STATUS_WRITE_ATTEMPTS = 3


@dataclass(frozen=True)
class Result:
    """Outcome of one reconcile pass. `requeue_after` asks for a timed re-run."""

    requeue_after: float | None = None


class _ResourceWorker:
    """Common store access, status writes and structured logging."""

    kind: str = ""

    def __init__(self, store: ResourceStore, recorder: EventRecorder):
        self.store = store
        self.recorder = recorder
        self.logger = logging.getLogger(type(self).__module__)

    def _log(
        self,
        level: int,
        resource: ManagedResource,
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=resource.kind or self.kind,
            resource_name=resource.name,
            namespace=resource.namespace,
            uid=resource.uid,
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self, resource: ManagedResource, message: str, event: str = "info", reason: str = "Info", **kwargs: Any
    ) -> None:
        self._log(logging.INFO, resource, message, event, reason, **kwargs)

    def log_warning(
        self,
        resource: ManagedResource,
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        self._log(logging.WARNING, resource, message, event, reason, **kwargs)

    def log_error(
        self,
        resource: ManagedResource,
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        if error is not None:
            kwargs["error"] = sanitize_exception(error)
            kwargs["error_type"] = type(error).__name__
        self._log(logging.ERROR, resource, message, event, reason, **kwargs)

    def load(self, key: ResourceKey) -> ManagedResource | None:
        """Fresh snapshot of a resource, or None once it is gone."""
        try:
            return self.store.get(key)
        except NotFoundError:
            return None

    def write(self, resource: ManagedResource, mutate: StatusMutation) -> ManagedResource:
        """Apply a status mutation with compare-and-swap, re-reading on conflict."""
        return apply_status(
            self.store, resource, mutate, writer="reconciler", attempts=STATUS_WRITE_ATTEMPTS
        )

    def delete_quietly(self, key: ResourceKey) -> None:
        try:
            self.store.delete(key)
        except NotFoundError:
            pass


class Reconciler(_ResourceWorker):
    """Drives one resource kind towards its declared state.

    Subclasses implement `reconcile(key)`. Provider failures and missing
    dependencies are raised; the handler layer maps them to retries.
    """

    def reconcile(self, key: ResourceKey) -> Result:
        raise NotImplementedError

    def ensure_finalizer(self, resource: ManagedResource) -> ManagedResource:
        finalizer = resource_kind(self.kind).finalizer
        if finalizer is None or finalizer in resource.finalizers:
            return resource
        self.log_info(resource, f"Adding finalizer {finalizer}", event="finalizer", reason="FinalizerAdded")
        return self.store.add_finalizer(resource, finalizer)

    @staticmethod
    def last_observed_generation(resource: ManagedResource, *condition_types: Any) -> int | None:
        """observedGeneration of the first condition among `condition_types` that records one."""
        for condition_type in condition_types:
            cond = find_condition(resource.conditions, condition_type)
            if cond is not None and cond.get("observedGeneration") is not None:
                return cond["observedGeneration"]
        return None


class DeletionGuard(_ResourceWorker):
    """Blocks physical removal of a resource until its cleanup is complete.

    `finalize` runs `release` and then removes the kind's finalizer from a
    fresh copy. `release` raises a RetryableSignal while dependents or an
    asynchronous provider delete are still outstanding.
    """

    def finalize(self, key: ResourceKey) -> None:
        resource = self.load(key)
        if resource is None:
            return
        finalizer = resource_kind(self.kind).finalizer
        if finalizer not in resource.finalizers:
            return

        self.release(resource)

        fresh = self.load(key)
        if fresh is not None and finalizer in fresh.finalizers:
            self.store.remove_finalizer(fresh, finalizer)
        self.log_info(resource, "Cleanup complete, finalizer removed", event="finalized", reason="Finalized")

    def release(self, resource: ManagedResource) -> None:
        raise NotImplementedError

    def delete_dependents(self, kind: str, index_name: str, value: str) -> None:
        """Delete every `kind` resource indexed under `value` and wait until they are gone.

        Raises:
            WaitingForDependentsError: Some dependents still exist, typically
                because their own deletion guards have not finished
        """
        for dependent in self.store.list_by_index(kind, index_name, value):
            if not dependent.deletion_requested:
                self.delete_quietly(dependent.key)

        remaining = self.store.list_by_index(kind, index_name, value)
        if remaining:
            raise WaitingForDependentsError(len(remaining), kind)
