"""TTL cache for read-only Kubernetes objects (templates, users)."""

from __future__ import annotations

import threading
import time
from typing import Any, Optional

# Cache with TTL support
_cache: dict[str, tuple[Any, float]] = {}
_cache_ttl: float = 30.0
_lock = threading.Lock()


def configure_cache(ttl_seconds: float) -> None:
    """Set the TTL used for cached objects and drop existing entries. A TTL of 0 disables caching."""
    global _cache_ttl
    with _lock:
        _cache_ttl = ttl_seconds
        _cache.clear()


def get_cached_object(key: str) -> Optional[Any]:
    """Get an object from cache if it hasn't expired.

    Args:
        key: Cache key (typically "kind:namespace:name")

    Returns:
        Cached object or None if not found or expired
    """
    with _lock:
        if key not in _cache:
            return None

        obj, timestamp = _cache[key]
        if time.monotonic() - timestamp > _cache_ttl:
            del _cache[key]
            return None

        return obj


def set_cached_object(key: str, obj: Any) -> None:
    """Store an object in cache with current timestamp."""
    if _cache_ttl <= 0:
        return
    with _lock:
        _cache[key] = (obj, time.monotonic())


def make_cache_key(kind: str, namespace: str, name: str) -> str:
    """Create a cache key for a Kubernetes resource."""
    return f"{kind}:{namespace}:{name}"
