"""WSGI application receiving Resend webhooks.

The response body is always empty; the status code is the only signal:
200 handled or ignored, 400 unparseable, 401 bad signature, 404 unknown
email, 405 wrong method, 500 internal error.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from werkzeug.wrappers import Request, Response

from .. import metrics
from ..services.resend.events import EventParseError, parse_contact_event, parse_email_event
from ..utils.context import with_correlation_id
from ..utils.errors import ConflictError, sanitize_exception
from .handlers import ResendEventHandler
from .signature import HEADER_ID, SignatureError, SignatureVerifier

logger = logging.getLogger(__name__)


class WebhookReceiver:
    def __init__(self, path: str, verifier: SignatureVerifier, handler: ResendEventHandler):
        self.path = path
        self.verifier = verifier
        self.handler = handler

    def __call__(self, environ: dict[str, Any], start_response: Any) -> Iterable[bytes]:
        request = Request(environ)
        if request.path != self.path:
            return Response(status=404)(environ, start_response)
        with with_correlation_id(request.headers.get(HEADER_ID)):
            family, status = self.dispatch(request)
        metrics.webhook_requests_total.labels(event_family=family, status_code=str(status)).inc()
        response = Response(status=status)
        if status == 405:
            response.headers["Allow"] = "POST"
        return response(environ, start_response)

    def dispatch(self, request: Request) -> tuple[str, int]:
        """Return (event family, status code) for one request."""
        if request.method != "POST":
            logger.warning("webhook called with method %s", request.method)
            return "unknown", 405

        body = request.get_data(cache=False)
        try:
            self.verifier.verify(body, request.headers)
        except SignatureError as e:
            logger.warning("rejected webhook: %s", e)
            return "unknown", 401

        try:
            email_event = parse_email_event(body)
        except EventParseError:
            email_event = None
        if email_event is not None:
            return "email", self._handle(self.handler.handle_email_event, email_event)

        try:
            contact_event = parse_contact_event(body)
        except EventParseError as e:
            logger.warning("unparseable webhook payload: %s", e)
            return "unknown", 400
        return "contact", self._handle(self.handler.handle_contact_event, contact_event)

    def _handle(self, handle: Any, event: Any) -> int:
        try:
            return handle(event)
        except ConflictError:
            logger.error("gave up applying %s after repeated conflicts", event.type.value)
            return 500
        except Exception as e:
            logger.exception("failed to apply %s: %s", event.type.value, sanitize_exception(e))
            return 500
