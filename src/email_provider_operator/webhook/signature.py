"""Svix webhook signature verification.

The signed content is "{svix-id}.{svix-timestamp}.{raw body}", signed with
HMAC-SHA256 using the base64 secret that follows the `whsec_` prefix. The
`svix-signature` header holds space-separated `v1,<base64 digest>` entries;
one matching entry is enough.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from typing import Mapping

SECRET_PREFIX = "whsec_"
HEADER_ID = "svix-id"
HEADER_TIMESTAMP = "svix-timestamp"
HEADER_SIGNATURE = "svix-signature"


class SignatureError(Exception):
    """The request is not signed by the configured secret."""


def decode_secret(secret: str) -> bytes:
    raw = secret[len(SECRET_PREFIX):] if secret.startswith(SECRET_PREFIX) else secret
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("webhook signing secret is not valid base64") from e


def sign(key: bytes, msg_id: str, timestamp: str, body: bytes) -> str:
    """Return the `v1,<digest>` signature for one message."""
    content = f"{msg_id}.{timestamp}.".encode() + body
    digest = hmac.new(key, content, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode()


class SignatureVerifier:
    def __init__(self, secret: str, tolerance_seconds: int = 300):
        self.key = decode_secret(secret)
        self.tolerance_seconds = tolerance_seconds

    def verify(self, body: bytes, headers: Mapping[str, str], now: float | None = None) -> None:
        """Raise SignatureError unless the request carries a valid, fresh signature."""
        msg_id = headers.get(HEADER_ID)
        timestamp = headers.get(HEADER_TIMESTAMP)
        signatures = headers.get(HEADER_SIGNATURE)
        if not msg_id or not timestamp or not signatures:
            raise SignatureError("missing signature headers")

        try:
            sent_at = int(timestamp)
        except ValueError:
            raise SignatureError("invalid signature timestamp") from None
        now = time.time() if now is None else now
        if abs(now - sent_at) > self.tolerance_seconds:
            raise SignatureError("signature timestamp outside tolerance")

        expected = sign(self.key, msg_id, timestamp, body)
        for candidate in signatures.split():
            if candidate.startswith("v1,") and hmac.compare_digest(candidate, expected):
                return
        raise SignatureError("no matching signature")
