"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest

# Signup metrics
signup_attempts = Counter(
    "signup_attempts_total",
    "Signup submissions by outcome",
    ["result"],  # created, window_closed, unavailable, error
)

# Database metrics
db_connected = Gauge(
    "db_connected",
    "Database connection state (1=connected, 0=disconnected)",
)

db_reconnect_attempts = Counter(
    "db_reconnect_attempts_total",
    "Database reconnect attempts",
    ["result"],  # success, failure
)

# Window event stream metrics
window_subscribers = Gauge(
    "window_event_subscribers",
    "Clients currently subscribed to signup window events",
)

window_notifications = Counter(
    "window_notifications_total",
    "Window-open notifications delivered to subscribers",
    ["category"],  # guest, other
)

# Mail metrics
email_dispatch = Counter(
    "confirmation_email_total",
    "Confirmation email dispatch outcomes",
    ["result"],  # sent, failed, skipped
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


def record_signup_attempt(result: str):
    """Record signup outcome. Result: created, window_closed, unavailable, error"""
    signup_attempts.labels(result=result).inc()


def record_reconnect_attempt(success: bool):
    result = "success" if success else "failure"
    db_reconnect_attempts.labels(result=result).inc()


def record_window_notification(category: str):
    window_notifications.labels(category=category).inc()


def record_email_dispatch(result: str):
    """Record email outcome. Result: sent, failed, skipped"""
    email_dispatch.labels(result=result).inc()
