"""Health check and metrics endpoints for the operator."""

from __future__ import annotations

import threading
from typing import Any, Callable

from prometheus_client import make_wsgi_app
from werkzeug.serving import BaseWSGIServer, make_server
from werkzeug.wrappers import Response


def create_combined_wsgi_app(readiness_probe: Callable[[], bool] | None = None) -> Any:
    """Create a WSGI app that combines metrics and health check endpoints.

    Args:
        readiness_probe: Optional callable; /readyz answers 503 while it returns False

    Returns:
        Combined WSGI application
    """
    metrics_app = make_wsgi_app()

    def combined_app(environ: dict[str, Any], start_response: Any) -> Any:
        """WSGI app that routes /healthz and /readyz, delegates /metrics to prometheus."""
        path = environ.get("PATH_INFO", "")

        if path == "/healthz":
            response = Response('{"status":"ok"}', mimetype="application/json", status=200)
            return response(environ, start_response)
        elif path == "/readyz":
            if readiness_probe is not None and not readiness_probe():
                response = Response('{"status":"not ready"}', mimetype="application/json", status=503)
            else:
                response = Response('{"status":"ready"}', mimetype="application/json", status=200)
            return response(environ, start_response)
        else:
            return metrics_app(environ, start_response)

    return combined_app


def start_wsgi_server(app: Any, port: int, host: str = "") -> BaseWSGIServer:
    """Serve a WSGI app from a daemon thread and return the server."""
    server = make_server(host, port, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server
