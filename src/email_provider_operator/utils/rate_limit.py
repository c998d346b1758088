"""Client-side pacing for provider API calls."""

from __future__ import annotations

import threading
import time
from typing import Any

from .. import metrics


class RateLimiter:
    """Spaces calls at least 1/rate seconds apart across all threads."""

    def __init__(self, api_type: str, calls_per_second: float):
        self.api_type = api_type
        self.min_interval = 1.0 / calls_per_second if calls_per_second > 0 else 0.0
        self._last_call_time = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            current_time = time.monotonic()
            time_since_last_call = current_time - self._last_call_time
            if time_since_last_call < self.min_interval:
                metrics.rate_limit_hits_total.labels(api_type=self.api_type).inc()
                time.sleep(self.min_interval - time_since_last_call)
            self._last_call_time = time.monotonic()


def retry_after_seconds(headers: Any, default: float = 1.0) -> float:
    """Parse a Retry-After header value in seconds."""
    value = headers.get("retry-after") if headers is not None else None
    if not value:
        return default
    try:
        return max(float(value), 0.0)
    except ValueError:
        return default
