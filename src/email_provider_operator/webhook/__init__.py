"""Inbound provider webhooks."""

from .handlers import ResendEventHandler
from .receiver import WebhookReceiver
from .signature import SignatureError, SignatureVerifier

__all__ = [
    "ResendEventHandler",
    "WebhookReceiver",
    "SignatureError",
    "SignatureVerifier",
]
