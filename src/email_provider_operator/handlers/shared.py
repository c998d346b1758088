"""Process-wide runtime shared by the kopf handlers."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

import httpx
from kubernetes import client

from ..config import OperatorConfig
from ..constants import (
    KIND_CONTACT,
    KIND_CONTACT_GROUP,
    KIND_CONTACT_GROUP_MEMBERSHIP,
    KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL,
    KIND_EMAIL,
    WEBHOOK_REPORTING_CONTROLLER,
)
from ..indexing import FieldIndexer, register_default_indexes
from ..models import ManagedResource, ResourceKey
from ..reconcilers import (
    ContactGroupGuard,
    ContactGroupReconciler,
    ContactGuard,
    ContactReconciler,
    DeletionGuard,
    EmailReconciler,
    MembershipGuard,
    MembershipReconciler,
    MembershipRemovalReconciler,
    Reconciler,
)
from ..services.email_service import ContactService, EmailService
from ..services.loops import LoopsProvider
from ..services.resend import ResendProvider
from ..store import KubernetesStore, ResourceStore, get_k8s_client
from ..utils.events import EventRecorder, KopfEventRecorder, KubernetesEventRecorder
from ..utils.rate_limit import RateLimiter
from ..webhook import ResendEventHandler, SignatureVerifier, WebhookReceiver


@dataclass
class OperatorRuntime:
    """Everything the handlers need, built once at startup."""

    config: OperatorConfig
    store: ResourceStore
    indexer: FieldIndexer
    reconcilers: dict[str, Reconciler]
    guards: dict[str, DeletionGuard]
    webhook: WebhookReceiver | None = None
    ready: threading.Event = field(default_factory=threading.Event)


_runtime: OperatorRuntime | None = None


def set_runtime(runtime: OperatorRuntime | None) -> None:
    global _runtime
    _runtime = runtime


def get_runtime() -> OperatorRuntime:
    if _runtime is None:
        raise RuntimeError("operator runtime is not initialized")
    return _runtime


def resource_key(body: Any) -> ResourceKey:
    """Key of the object a kopf handler was invoked for."""
    return ManagedResource(dict(body)).key


def build_runtime(
    config: OperatorConfig,
    api: client.CustomObjectsApi | None = None,
    events_api: client.EventsV1Api | None = None,
    recorder: EventRecorder | None = None,
    resend_transport: httpx.BaseTransport | None = None,
    loops_transport: httpx.BaseTransport | None = None,
) -> OperatorRuntime:
    """Wire store, providers, reconcilers, guards and the webhook receiver."""
    indexer = register_default_indexes(FieldIndexer())
    store = KubernetesStore(api if api is not None else get_k8s_client(), indexer)
    recorder = recorder or KopfEventRecorder()

    resend = ResendProvider(
        config.resend.api_key,
        base_url=config.resend.base_url,
        timeout=config.provider_timeout_seconds,
        rate_limiter=RateLimiter("resend", config.resend.rate_limit_per_second),
        transport=resend_transport,
    )
    loops = LoopsProvider(
        config.loops.api_key,
        base_url=config.loops.base_url,
        timeout=config.provider_timeout_seconds,
        rate_limiter=RateLimiter("loops", config.loops.rate_limit_per_second),
        transport=loops_transport,
    )

    email_service = EmailService(resend, config.resend.email_from, config.resend.reply_to)
    contact_services = [ContactService(resend), ContactService(loops)]
    probe_after = config.confirmation_probe_after_seconds

    reconcilers: dict[str, Reconciler] = {
        KIND_EMAIL: EmailReconciler(store, recorder, email_service, config.retry_waits),
        KIND_CONTACT: ContactReconciler(
            store,
            recorder,
            contact_services,
            mailing_lists=loops,
            newsletter_list_id=config.loops.newsletter_list_id,
            newsletter_contact_group=config.loops.newsletter_contact_group,
            probe_after_seconds=probe_after,
        ),
        KIND_CONTACT_GROUP: ContactGroupReconciler(store, recorder, email_service),
        KIND_CONTACT_GROUP_MEMBERSHIP: MembershipReconciler(
            store, recorder, email_service, probe_after_seconds=probe_after
        ),
        KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL: MembershipRemovalReconciler(store, recorder),
    }
    guards: dict[str, DeletionGuard] = {
        KIND_CONTACT: ContactGuard(store, recorder, contact_services),
        KIND_CONTACT_GROUP: ContactGroupGuard(store, recorder, email_service),
        KIND_CONTACT_GROUP_MEMBERSHIP: MembershipGuard(store, recorder, email_service),
    }

    webhook = None
    if config.webhook.enabled:
        webhook = WebhookReceiver(
            config.webhook.path,
            SignatureVerifier(config.webhook.signing_secret, config.webhook.timestamp_tolerance_seconds),
            ResendEventHandler(
                store,
                KubernetesEventRecorder(WEBHOOK_REPORTING_CONTROLLER, api=events_api),
                conflict_retries=config.webhook.conflict_retries,
            ),
        )

    return OperatorRuntime(
        config=config,
        store=store,
        indexer=indexer,
        reconcilers=reconcilers,
        guards=guards,
        webhook=webhook,
    )
