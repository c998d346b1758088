"""Prometheus metrics for the Email Provider Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "email_provider_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "email_provider_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

finalize_total = Counter(
    "email_provider_operator_finalize_total",
    "Total number of deletion guard invocations",
    ["kind", "result"],
)

error_total = Counter(
    "email_provider_operator_error_total",
    "Total number of errors by kind and type",
    ["kind", "error_type"],
)

# Provider metrics
provider_operations_total = Counter(
    "email_provider_operator_provider_operations_total",
    "Total number of provider operations",
    ["provider", "operation", "result"],
)

provider_operation_duration_seconds = Histogram(
    "email_provider_operator_provider_operation_duration_seconds",
    "Duration of provider operations in seconds",
    ["provider", "operation"],
    buckets=[0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 15.0],
)

rate_limit_hits_total = Counter(
    "email_provider_operator_rate_limit_hits_total",
    "Total number of client-side rate limit waits",
    ["api_type"],
)

# Store metrics
status_conflicts_total = Counter(
    "email_provider_operator_status_conflicts_total",
    "Total number of optimistic concurrency conflicts on status writes",
    ["kind", "writer"],
)

api_call_total = Counter(
    "email_provider_operator_api_call_total",
    "Total number of Kubernetes API calls",
    ["operation", "result"],
)

# Webhook metrics
webhook_requests_total = Counter(
    "email_provider_operator_webhook_requests_total",
    "Total number of webhook requests by event family and response code",
    ["event_family", "status_code"],
)
