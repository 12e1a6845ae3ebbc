"""Metrics infrastructure package."""

from vrtherapy.infrastructure.metrics.prometheus_metrics import (
    # Session metrics
    SESSION_TRANSITIONS_TOTAL,
    SESSION_DURATION_MINUTES,
    ABANDONED_SESSIONS_SWEPT,
    # Handshake metrics
    VR_LAUNCHES_TOTAL,
    ACTIVE_VR_PROCESSES,
    TELEMETRY_SUBMISSIONS_TOTAL,
    # Analytics metrics
    ANALYTICS_QUERIES_TOTAL,
    # API metrics
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION,
    RATE_LIMIT_EXCEEDED,
    # Helpers
    track_session_transition,
    observe_session_duration,
    track_launch,
    track_scene_rating,
    track_telemetry_submission,
    track_analytics_query,
    track_abandoned_sessions,
    track_http_request,
    track_rate_limit_exceeded,
    update_system_info,
    # Router
    metrics_router,
)

__all__ = [
    "SESSION_TRANSITIONS_TOTAL",
    "SESSION_DURATION_MINUTES",
    "ABANDONED_SESSIONS_SWEPT",
    "VR_LAUNCHES_TOTAL",
    "ACTIVE_VR_PROCESSES",
    "TELEMETRY_SUBMISSIONS_TOTAL",
    "ANALYTICS_QUERIES_TOTAL",
    "HTTP_REQUESTS_TOTAL",
    "HTTP_REQUEST_DURATION",
    "RATE_LIMIT_EXCEEDED",
    "track_session_transition",
    "observe_session_duration",
    "track_launch",
    "track_scene_rating",
    "track_telemetry_submission",
    "track_analytics_query",
    "track_abandoned_sessions",
    "track_http_request",
    "track_rate_limit_exceeded",
    "update_system_info",
    "metrics_router",
]
