"""JSON logging for the operator process.

Every record leaves the process as one JSON object on stdout. Resource events
logged through `log_resource_event` carry the resource identity; plain
`logger.info(...)` calls from the webhook and the provider clients get the
level, logger name and correlation ID attached by `JsonFormatter`.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .utils.context import get_context_dict
from .utils.errors import sanitize_dict, sanitize_error_message


# Libraries that log request lines at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "kubernetes.client.rest", "urllib3")


class JsonFormatter(logging.Formatter):
    """Render records as JSON, keeping pre-built resource payloads intact."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
        }
        structured = getattr(record, "structured", None)
        if isinstance(structured, dict):
            payload.update(structured)
        else:
            payload["message"] = sanitize_error_message(record.getMessage())
            payload.update(get_context_dict())
        if record.exc_info:
            payload["exception"] = sanitize_error_message(self.formatException(record.exc_info))
        return json.dumps(payload, default=str)


def setup_structured_logging(level: int = logging.INFO) -> None:
    """Send all logging to stdout through JsonFormatter."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_resource_event(
    logger: logging.Logger,
    controller: str,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log one event about a custom resource.

    The record message is the JSON payload itself, so the line stays
    structured even under a handler that does not use JsonFormatter.
    """
    log_data = {
        "controller": controller,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": sanitize_error_message(message),
    }
    log_data.update(get_context_dict())
    log_data.update(sanitize_secrets(kwargs))
    logger.log(level, json.dumps(log_data, default=str), extra={"structured": log_data})


def sanitize_secrets(log_data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy with secret fields and secret-looking values redacted."""
    return sanitize_dict(log_data)
