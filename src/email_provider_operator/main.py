"""Main entry point for the Email Provider Operator."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from . import handlers  # noqa: F401  (registers the kopf handlers)
from . import health
from . import logging as structured_logging
from .config import OperatorConfig
from .handlers.shared import build_runtime, get_runtime, set_runtime
from .utils.cache import configure_cache

logger = logging.getLogger(__name__)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    structured_logging.setup_structured_logging()

    config = OperatorConfig.from_env()

    # kopf state lives in annotations; status belongs to the reconcilers and the webhook
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = logging.INFO
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = config.max_workers

    configure_cache(config.template_cache_ttl_seconds)

    runtime = build_runtime(config)
    set_runtime(runtime)

    health.start_wsgi_server(
        health.create_combined_wsgi_app(readiness_probe=runtime.ready.is_set),
        config.metrics_port,
    )
    if runtime.webhook is not None:
        health.start_wsgi_server(runtime.webhook, config.webhook.port)
        logger.info("webhook receiver listening on port %d at %s", config.webhook.port, config.webhook.path)

    runtime.ready.set()
    logger.info("email provider operator started")


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    get_runtime().ready.clear()
    set_runtime(None)


def run() -> None:
    """Console entry point: run the operator against all namespaces."""
    kopf.run(clusterwide=True)


if __name__ == "__main__":
    run()
