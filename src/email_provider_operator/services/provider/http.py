"""Shared httpx plumbing for provider REST clients."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ... import metrics
from ...utils.errors import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    TransportError,
    sanitize_error_message,
)
from ...utils.rate_limit import RateLimiter, retry_after_seconds

logger = logging.getLogger(__name__)


def error_message(response: httpx.Response) -> str:
    """Best-effort extraction of the provider's error message."""
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        for key in ("message", "error", "name"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return response.text[:200]


class ProviderHTTPClient:
    """Authenticated JSON client for one provider.

    Maps HTTP failures onto the operator error taxonomy and records
    provider metrics for every call.
    """

    def __init__(
        self,
        provider: str,
        base_url: str,
        api_key: str,
        timeout: float = 15.0,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "User-Agent": "email-provider-operator/0.1",
            },
        )

    def close(self) -> None:
        self.client.close()

    def request(
        self,
        method: str,
        path: str,
        operation: str,
        entity_kind: str,
        entity_name: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Perform one request and return the decoded JSON body (or None)."""
        if self.rate_limiter is not None:
            self.rate_limiter.wait()

        start_time = time.time()
        result = "error"
        try:
            try:
                response = self.client.request(method, path, json=json, params=params, headers=headers)
            except httpx.HTTPError as e:
                raise TransportError(
                    f"{self.provider} {operation} failed: {sanitize_error_message(str(e))}"
                ) from e

            self.raise_for_status(response, operation, entity_kind, entity_name)
            if not response.content:
                result = "success"
                return None
            try:
                payload = response.json()
            except ValueError as e:
                raise TransportError(f"{self.provider} {operation} returned invalid JSON") from e
            result = "success"
            return payload
        except NotFoundError:
            result = "not_found"
            raise
        except ConflictError:
            result = "conflict"
            raise
        finally:
            metrics.provider_operations_total.labels(
                provider=self.provider, operation=operation, result=result
            ).inc()
            metrics.provider_operation_duration_seconds.labels(
                provider=self.provider, operation=operation
            ).observe(time.time() - start_time)

    def raise_for_status(
        self, response: httpx.Response, operation: str, entity_kind: str, entity_name: str
    ) -> None:
        if response.is_success:
            return

        status = response.status_code
        message = sanitize_error_message(error_message(response))
        detail = f"{self.provider} {operation} failed with {status}: {message}"

        if status == 404 or "not found" in message.lower():
            raise NotFoundError(entity_kind, entity_name, detail)
        if status == 409:
            raise ConflictError(detail)
        if status == 429:
            raise TransportError(detail, status_code=status, retry_after=retry_after_seconds(response.headers))
        if status in (400, 422):
            raise BadRequestError(detail)
        raise TransportError(detail, status_code=status)
