"""Base handler class with common functionality for all CRD handlers."""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Callable

import kopf

from .. import metrics
from ..constants import CONTROLLER_NAME, EVENT_REASON_WAITING_FOR_DEPENDENTS
from ..logging import log_resource_event
from ..models import ResourceKey
from ..reconcilers.base import Result
from ..utils.context import with_correlation_id
from ..utils.errors import (
    BadRequestError,
    ConflictError,
    RetryableSignal,
    TransportError,
    WaitingForDependentsError,
    sanitize_exception,
)
from ..utils.events import emit_event, emit_reconcile_failed, emit_reconcile_started, emit_validate_failed
from .shared import get_runtime, resource_key

# Read at import time, like every kopf decorator argument
RESYNC_INTERVAL_SECONDS = float(os.getenv("RESYNC_INTERVAL_SECONDS", "60"))

CONFLICT_RETRY_DELAY_SECONDS = 1.0


class KeyLocks:
    """One lock per resource key.

    kopf serializes regular handlers per object, but timers run alongside
    them. Reconciles and guards take the key's lock; timers skip the pass
    when it is held.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[ResourceKey, threading.Lock] = {}

    def get(self, key: ResourceKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def discard(self, key: ResourceKey) -> None:
        with self._guard:
            self._locks.pop(key, None)


_locks = KeyLocks()


def forget_object(body: Any) -> None:
    """Drop the lock of an object that is gone from the cluster."""
    _locks.discard(resource_key(body))



class BaseHandler:
    """Base class for all CRD handlers with common functionality."""

    def __init__(self, kind: str, locks: KeyLocks | None = None):
        """Initialize base handler.

        Args:
            kind: The Kubernetes resource kind (e.g., "Email", "Contact")
            locks: Per-key locks, shared by all handlers by default
        """
        self.kind = kind
        self.locks = locks or _locks
        self.logger = logging.getLogger(__name__)

    def _log(self, level: int, meta: dict[str, Any], message: str, event: str, reason: str, **kwargs: Any) -> None:
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=meta.get("name", "unknown"),
            namespace=meta.get("namespace") or "",
            uid=meta.get("uid", "unknown"),
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self, meta: dict[str, Any], message: str, event: str = "info", reason: str = "Info", **kwargs: Any
    ) -> None:
        """Log an info-level structured log message."""
        self._log(logging.INFO, meta, message, event, reason, **kwargs)

    def log_error(
        self,
        meta: dict[str, Any],
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        if error is not None:
            kwargs["error"] = sanitize_exception(error)
            kwargs["error_type"] = type(error).__name__
        self._log(logging.ERROR, meta, message, event, reason, **kwargs)

    def backoff_delay(self, retry: int) -> float:
        config = get_runtime().config
        return min(config.retry_min_delay_seconds * (2 ** max(retry, 0)), config.retry_max_delay_seconds)

    def translate_error(self, body: Any, meta: dict[str, Any], error: Exception, retry: int) -> Exception:
        """Map an operator error to the kopf error that schedules its retry."""
        sanitized = sanitize_exception(error)

        if isinstance(error, RetryableSignal):
            self.log_info(meta, sanitized, event="waiting", reason=type(error).__name__)
            if isinstance(error, WaitingForDependentsError):
                emit_event(body, EVENT_REASON_WAITING_FOR_DEPENDENTS, sanitized)
            return kopf.TemporaryError(sanitized, delay=get_runtime().config.signal_retry_delay_seconds)

        metrics.error_total.labels(kind=self.kind, error_type=type(error).__name__).inc()

        if isinstance(error, ConflictError):
            self.log_info(meta, f"Status write conflict, retrying: {sanitized}", event="conflict", reason="Conflict")
            return kopf.TemporaryError(sanitized, delay=CONFLICT_RETRY_DELAY_SECONDS)

        if isinstance(error, BadRequestError):
            self.log_error(meta, "Reconciliation failed permanently", error=error, reason="ValidationFailed")
            emit_validate_failed(body, sanitized)
            return kopf.PermanentError(sanitized)

        delay = self.backoff_delay(retry)
        if isinstance(error, TransportError) and error.retry_after:
            delay = error.retry_after
        self.log_error(meta, "Reconciliation failed", error=error, reason="ReconciliationFailed", retry_in=delay)
        emit_reconcile_failed(body, f"Reconciliation failed: {sanitized}")
        return kopf.TemporaryError(sanitized, delay=delay)

    def _run(
        self,
        body: Any,
        retry: int,
        action: Callable[[ResourceKey], Result | None],
        counter: Any,
        skip_if_busy: bool,
    ) -> None:
        meta = dict(body.get("metadata") or {})
        key = resource_key(body)
        lock = self.locks.get(key)
        if not lock.acquire(blocking=not skip_if_busy):
            self.log_info(meta, "Another pass is running, skipping", event="skipped", reason="Busy")
            return

        start_time = time.time()
        try:
            with with_correlation_id():
                try:
                    result = action(key)
                except Exception as e:
                    result_label = "waiting" if isinstance(e, RetryableSignal) else "error"
                    counter.labels(kind=self.kind, result=result_label).inc()
                    raise self.translate_error(body, meta, e, retry) from e
        finally:
            lock.release()
            metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(time.time() - start_time)

        if result is not None and result.requeue_after is not None:
            counter.labels(kind=self.kind, result="requeued").inc()
            raise kopf.TemporaryError(
                f"requeue in {result.requeue_after:g}s", delay=result.requeue_after
            )
        counter.labels(kind=self.kind, result="success").inc()

    def reconcile(self, body: Any, retry: int = 0, resync: bool = False) -> None:
        """Run the kind's reconciler for the object in `body`.

        Args:
            body: kopf object body
            retry: kopf retry counter, drives the exponential backoff
            resync: True for timer runs, which never wait for a busy object
        """
        reconciler = get_runtime().reconcilers[self.kind]
        if not resync:
            emit_reconcile_started(body)
            metrics.reconcile_total.labels(kind=self.kind, result="started").inc()
        self._run(body, retry, reconciler.reconcile, metrics.reconcile_total, skip_if_busy=resync)

    def finalize(self, body: Any, retry: int = 0) -> None:
        """Run the kind's deletion guard; released once it returns."""
        guard = get_runtime().guards[self.kind]

        def action(key: ResourceKey) -> None:
            guard.finalize(key)

        self._run(body, retry, action, metrics.finalize_total, skip_if_busy=False)
        self.locks.discard(resource_key(body))
