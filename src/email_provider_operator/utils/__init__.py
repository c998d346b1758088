"""Utility functions for the Email Provider Operator."""

from .cache import (
    configure_cache,
    get_cached_object,
    make_cache_key,
    set_cached_object,
)
from .conditions import (
    ConditionReason,
    ConditionStatus,
    ConditionType,
    aggregate_ready,
    find_condition,
    is_condition_true,
    update_condition,
)
from .context import (
    get_context_dict,
    get_correlation_id,
    with_correlation_id,
)
from .errors import (
    BadRequestError,
    ConflictError,
    DeletionPendingError,
    DependencyNotReadyError,
    NotFoundError,
    OperatorError,
    RetryableSignal,
    TemplateRenderError,
    TransportError,
    WaitingForDependentsError,
    sanitize_exception,
)
from .rate_limit import RateLimiter

__all__ = [
    "ConditionReason",
    "ConditionStatus",
    "ConditionType",
    "aggregate_ready",
    "find_condition",
    "is_condition_true",
    "update_condition",
    "configure_cache",
    "get_cached_object",
    "set_cached_object",
    "make_cache_key",
    "get_correlation_id",
    "with_correlation_id",
    "get_context_dict",
    "OperatorError",
    "NotFoundError",
    "ConflictError",
    "BadRequestError",
    "TemplateRenderError",
    "TransportError",
    "DependencyNotReadyError",
    "RetryableSignal",
    "WaitingForDependentsError",
    "DeletionPendingError",
    "sanitize_exception",
    "RateLimiter",
]
