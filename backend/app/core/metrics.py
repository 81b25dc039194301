"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking admission attempts',
    ['outcome']  # admitted, conflict, rejected, unavailable
)

# Admission control metrics
admission_requests = Counter(
    'admission_requests_total',
    'Total admission decisions',
    ['result']  # admitted, rejected
)

admission_latency = Histogram(
    'admission_check_latency_seconds',
    'Time from requesting the room guard to commit',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/error
)

# Notification metrics
notifications_published = Counter(
    'notifications_published_total',
    'Booking notifications published',
    ['event', 'result']  # ok, error
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(outcome: str):
    """Record booking attempt. Outcome: admitted, conflict, rejected, unavailable"""
    booking_attempts.labels(outcome=outcome).inc()


def record_admission(admitted: bool):
    """Record admission control decision."""
    result = "admitted" if admitted else "rejected"
    admission_requests.labels(result=result).inc()


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()


def record_notification(event: str, ok: bool):
    notifications_published.labels(event=event, result="ok" if ok else "error").inc()
