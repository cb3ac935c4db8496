"""
Prometheus metrics for the PLG website backend.

Custom metrics for business logic and performance monitoring.
"""

from prometheus_client import Counter, Histogram

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
)

# Licensing lifecycle
trials_started_total = Counter(
    "trials_started_total",
    "Total device trials started",
    ["source"],
)

devices_activated_total = Counter(
    "devices_activated_total",
    "Total device activations",
    ["over_limit"],
)

devices_deactivated_total = Counter(
    "devices_deactivated_total",
    "Total device deactivations",
    ["source"],
)

heartbeats_total = Counter(
    "heartbeats_total",
    "Total heartbeats received",
    ["status"],
)

# Webhooks
webhook_events_total = Counter(
    "webhook_events_total",
    "Webhook deliveries by source, event type and outcome",
    ["source", "event_type", "outcome"],
)

# Upstream services
upstream_errors_total = Counter(
    "upstream_errors_total",
    "Errors returned by Keygen, Stripe or AWS",
    ["service", "operation"],
)

upstream_request_duration_seconds = Histogram(
    "upstream_request_duration_seconds",
    "Upstream call duration in seconds",
    ["service", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Emails
emails_sent_total = Counter(
    "emails_sent_total",
    "Transactional emails by template and outcome",
    ["template", "outcome"],
)

# Error metrics
errors_total = Counter(
    "errors_total",
    "Total errors",
    ["error_type", "endpoint"],
)
