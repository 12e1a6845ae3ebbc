"""
Prometheus Metrics

Observability for the therapy session core.
Exposes metrics at /metrics endpoint for Prometheus scraping.

ARCHITECTURE: Metrics are decoupled from business logic.
Only increment/observe; never block on metrics operations.
"""

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)
from fastapi import APIRouter, Response

from vrtherapy.config.logging_config import get_logger

logger = get_logger(__name__)

# =============================================================================
# SESSION LIFECYCLE METRICS
# =============================================================================

SESSION_TRANSITIONS_TOTAL = Counter(
    "vrtherapy_session_transitions_total",
    "Therapy session status transitions",
    ["from_status", "to_status"],
)

SESSION_DURATION_MINUTES = Histogram(
    "vrtherapy_session_duration_minutes",
    "Actual duration of completed therapy sessions",
    buckets=[5, 10, 15, 20, 30, 45, 60, 90, 120],
)

ABANDONED_SESSIONS_SWEPT = Counter(
    "vrtherapy_abandoned_sessions_swept_total",
    "In Progress sessions moved to Interrupted by the timeout sweep",
)

# =============================================================================
# VR HANDSHAKE METRICS
# =============================================================================

VR_LAUNCHES_TOTAL = Counter(
    "vrtherapy_vr_launches_total",
    "VR scenario launches by result",
    ["result"],  # started, failed, exited_with_error, exited
)

ACTIVE_VR_PROCESSES = Gauge(
    "vrtherapy_active_vr_processes",
    "VR processes currently watched by this instance",
)

TELEMETRY_SUBMISSIONS_TOTAL = Counter(
    "vrtherapy_telemetry_submissions_total",
    "VR telemetry submissions by result",
    ["result"],  # accepted or an error kind
)

SCENE_RATINGS_TOTAL = Counter(
    "vrtherapy_scene_ratings_total",
    "Scene ratings posted by the VR runtime, by result",
    ["result"],
)

# =============================================================================
# ANALYTICS METRICS
# =============================================================================

ANALYTICS_QUERIES_TOTAL = Counter(
    "vrtherapy_analytics_queries_total",
    "Analytics queries by timeframe",
    ["timeframe"],
)

# =============================================================================
# API METRICS
# =============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    "vrtherapy_http_requests_total",
    "Total HTTP requests",
    ["method", "status_code"],
)

HTTP_REQUEST_DURATION = Histogram(
    "vrtherapy_http_request_duration_seconds",
    "HTTP request duration",
    ["method"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

RATE_LIMIT_EXCEEDED = Counter(
    "vrtherapy_rate_limit_exceeded_total",
    "Rate limit exceeded events",
    ["path"],
)

# =============================================================================
# SYSTEM INFO
# =============================================================================

SYSTEM_INFO = Info(
    "vrtherapy_system",
    "VR therapy backend information",
)

SYSTEM_INFO.info({
    "version": "0.1.0",
    "environment": "development",  # Updated at runtime
})


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def track_session_transition(from_status: str, to_status: str) -> None:
    """Record a status transition."""
    SESSION_TRANSITIONS_TOTAL.labels(from_status=from_status, to_status=to_status).inc()


def observe_session_duration(minutes: float) -> None:
    SESSION_DURATION_MINUTES.observe(minutes)


def track_launch(result: str) -> None:
    """Record a VR launch outcome."""
    VR_LAUNCHES_TOTAL.labels(result=result).inc()


def track_telemetry_submission(result: str) -> None:
    TELEMETRY_SUBMISSIONS_TOTAL.labels(result=result).inc()


def track_scene_rating(result: str) -> None:
    SCENE_RATINGS_TOTAL.labels(result=result).inc()


def track_analytics_query(timeframe: str) -> None:
    ANALYTICS_QUERIES_TOTAL.labels(timeframe=timeframe).inc()


def track_abandoned_sessions(count: int) -> None:
    if count:
        ABANDONED_SESSIONS_SWEPT.inc(count)


def track_http_request(method: str, status_code: int, duration_seconds: float) -> None:
    """Record request count and latency."""
    HTTP_REQUESTS_TOTAL.labels(method=method, status_code=str(status_code)).inc()
    HTTP_REQUEST_DURATION.labels(method=method).observe(duration_seconds)


def track_rate_limit_exceeded(path: str) -> None:
    RATE_LIMIT_EXCEEDED.labels(path=path).inc()


# =============================================================================
# METRICS ENDPOINT
# =============================================================================

metrics_router = APIRouter(tags=["metrics"])


@metrics_router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus metrics endpoint.
    
    Returns metrics in Prometheus text format for scraping.
    """
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )


def update_system_info(environment: str, version: str = "0.1.0") -> None:
    """Update system info metric with current environment."""
    SYSTEM_INFO.info({
        "version": version,
        "environment": environment,
    })
