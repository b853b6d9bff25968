"""
Prometheus metrics for the ingestion service.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Reading counter by alert level
- SMS dispatch counter by result
- Suppressed alert counter

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)

# alert_level: 1 normal, 2 warning, 3 critical
sensor_readings_total = Counter(
    "sensor_readings_total",
    "Classified sensor readings",
    labelnames=["alert_level"]
)

# result: sent, failed
sms_dispatch_total = Counter(
    "sms_dispatch_total",
    "SMS dispatch attempts",
    labelnames=["result"]
)

alerts_suppressed_total = Counter(
    "alerts_suppressed_total",
    "Alert-eligible readings skipped because the device was cooling down"
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Route template (e.g. /sensors/{device_id}/readings), never the raw URL
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    http_requests_total.labels(
        method=method,
        path=path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=path
    ).observe(latency_seconds)


def record_reading(alert_level: int) -> None:
    sensor_readings_total.labels(alert_level=str(alert_level)).inc()


def record_sms_outcome(result: str) -> None:
    sms_dispatch_total.labels(result=result).inc()


def record_alert_suppressed() -> None:
    alerts_suppressed_total.inc()


def get_metrics() -> bytes:
    """Generate Prometheus exposition format metrics."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
