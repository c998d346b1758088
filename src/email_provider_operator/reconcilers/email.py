"""Email reconciler: render and send once, then wait for delivery events."""

from __future__ import annotations

from ..config import RetryWaits
from ..constants import (
    EVENT_REASON_EMAIL_SENT,
    EVENT_REASON_RECONCILE_FAILED,
    KIND_EMAIL,
    KIND_EMAIL_TEMPLATE,
    KIND_USER,
)
from ..models import ManagedResource, ResourceKey
from ..services.email_service import EmailService
from ..store.base import ResourceStore
from ..utils.cache import get_cached_object, make_cache_key, set_cached_object
from ..utils.conditions import (
    ConditionReason,
    ConditionStatus,
    ConditionType,
    is_condition_true,
    update_condition,
)
from ..utils.errors import BadRequestError, DependencyNotReadyError, OperatorError, sanitize_exception
from ..utils.events import EventRecorder
from .base import Reconciler, Result


class EmailReconciler(Reconciler):
    """Sends an Email exactly once per UID.

    The send is skipped as soon as a provider ID is recorded or delivery is
    confirmed. A failed send leaves the status untouched and requeues after a
    delay chosen by the Email's priority.
    """

    kind = KIND_EMAIL

    def __init__(
        self,
        store: ResourceStore,
        recorder: EventRecorder,
        email_service: EmailService,
        retry_waits: RetryWaits,
    ):
        super().__init__(store, recorder)
        self.email_service = email_service
        self.retry_waits = retry_waits

    def reconcile(self, key: ResourceKey) -> Result:
        email = self.load(key)
        if email is None or email.deletion_requested:
            return Result()

        if email.provider_id or is_condition_true(email.conditions, ConditionType.DELIVERED):
            return Result()

        template = self.get_template(email)
        recipient = self.resolve_recipient(email)

        try:
            output = self.email_service.send(email, template, recipient)
        except BadRequestError:
            raise
        except OperatorError as e:
            wait = self.retry_waits.for_priority(email.spec.get("priority"))
            self.log_error(
                email,
                f"Failed to send email, retrying in {wait:g}s",
                error=e,
                reason="SendFailed",
                priority=email.spec.get("priority") or "normal",
            )
            self.recorder.record(
                email,
                EVENT_REASON_RECONCILE_FAILED,
                f"Failed to send email: {sanitize_exception(e)}",
                type_="Warning",
            )
            return Result(requeue_after=wait)

        message = f"Email accepted for delivery. Provider ID: {output.delivery_id}"

        def mutate(resource: ManagedResource) -> None:
            resource.provider_id = output.delivery_id
            update_condition(
                resource.conditions,
                ConditionType.DELIVERED,
                ConditionStatus.UNKNOWN,
                ConditionReason.DELIVERY_PENDING,
                message,
                resource.generation,
            )

        self.write(email, mutate)
        self.log_info(email, message, event="sent", reason=EVENT_REASON_EMAIL_SENT, provider_id=output.delivery_id)
        self.recorder.record(email, EVENT_REASON_EMAIL_SENT, message)
        return Result()

    def get_template(self, email: ManagedResource) -> ManagedResource:
        name = (email.spec.get("templateRef") or {}).get("name")
        if not name:
            raise BadRequestError("spec.templateRef.name is required")
        return self._get_cached(ResourceKey(KIND_EMAIL_TEMPLATE, "", name), "template")

    def resolve_recipient(self, email: ManagedResource) -> str:
        """Literal address, or the email of the referenced User."""
        recipient = email.spec.get("recipient") or {}
        address = recipient.get("emailAddress")
        if address:
            return address

        name = (recipient.get("userRef") or {}).get("name")
        if not name:
            raise BadRequestError("spec.recipient needs emailAddress or userRef.name")
        user = self._get_cached(ResourceKey(KIND_USER, "", name), "recipient user")
        address = user.spec.get("email")
        if not address:
            raise DependencyNotReadyError(f"user {name!r} has no email address")
        return address

    def _get_cached(self, key: ResourceKey, what: str) -> ManagedResource:
        cache_key = make_cache_key(key.kind, key.namespace, key.name)
        cached = get_cached_object(cache_key)
        if cached is not None:
            return cached.copy()

        resource = self.load(key)
        if resource is None:
            raise DependencyNotReadyError(f"{what} {key.name!r} not found")
        set_cached_object(cache_key, resource.copy())
        return resource
