"""Error taxonomy and sanitization utilities."""

from __future__ import annotations

import re
from typing import Any


class OperatorError(Exception):
    """Base class for errors raised by the operator."""


class NotFoundError(OperatorError):
    """An entity does not exist, either in the store or on a provider."""

    def __init__(self, entity_kind: str, name: str, message: str | None = None):
        self.entity_kind = entity_kind
        self.name = name
        super().__init__(message or f"{entity_kind} {name!r} not found")


class ConflictError(OperatorError):
    """A stale write was rejected or the provider reported a duplicate."""


class BadRequestError(OperatorError):
    """Malformed input that will not succeed on retry."""


class TemplateRenderError(BadRequestError):
    """An email template could not be rendered."""


class TransportError(OperatorError):
    """A provider or the API server could not be reached, or failed transiently."""

    def __init__(
        self, message: str, status_code: int | None = None, retry_after: float | None = None
    ):
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)


class DependencyNotReadyError(OperatorError):
    """A referenced resource is missing or has not converged yet."""


class RetryableSignal(OperatorError):
    """Not a failure: the deletion guard must be invoked again later."""


class WaitingForDependentsError(RetryableSignal):
    """Dependents referencing the resource are still being removed."""

    def __init__(self, count: int, kind: str):
        self.count = count
        self.kind = kind
        super().__init__(f"waiting for {count} {kind} deletions")


class DeletionPendingError(RetryableSignal):
    """The provider accepted a delete that is confirmed asynchronously."""


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"bearer\s+([A-Za-z0-9_\-\.]+)",
    r"\b(re_[A-Za-z0-9_]{8,})",
    r"\b(whsec_[A-Za-z0-9+/=]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "api_key",
    "apikey",
    "authorization",
    "password",
    "secret",
    "token",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(
            pattern,
            lambda match: match.group(0).replace(match.group(1), "[REDACTED]"),
            sanitized,
            flags=re.IGNORECASE,
        )

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"{field}[:=\s]+([^\s,;\)]+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
