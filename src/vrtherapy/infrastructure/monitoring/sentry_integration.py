"""
Sentry Error Tracking Integration

Error reports are tagged with the therapy session they concern.
Session tokens travel in URL paths and request bodies of the public
handshake endpoints, so every event and breadcrumb is scrubbed before
it leaves the process: tokens, credentials and patient identifiers
never reach Sentry.
"""

import re
from typing import Any, Optional

import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from vrtherapy.config.logging_config import REDACTED, SESSION_TOKEN_RE, get_logger
from vrtherapy.config.settings import Settings

logger = get_logger(__name__)

# key=value / key: value pairs inside free text (query strings, SQL, messages)
_ASSIGNMENT_RE = re.compile(
    r"(password|secret|token|authorization)([\"']?\s*[:=]\s*[\"']?)[^\"'\s,&}]+",
    re.IGNORECASE,
)
_BEARER_RE = re.compile(r"bearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)
_CAMEL_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")

SCRUBBED_KEYS = frozenset({
    "password",
    "secret",
    "token",
    "authorization",
    "cookie",
    "credential",
    "jwt",
    "patient_identifier",
    "identifier",
})


def _scrub_string(value: str) -> str:
    value = SESSION_TOKEN_RE.sub(REDACTED, value)
    value = _BEARER_RE.sub(REDACTED, value)
    return _ASSIGNMENT_RE.sub(lambda m: f"{m.group(1)}{m.group(2)}{REDACTED}", value)


def _is_sensitive_key(key: str) -> bool:
    # camelCase payload keys (sessionToken, patientIdentifier)
    normalized = _CAMEL_BOUNDARY_RE.sub(r"\1_\2", key).lower().replace("-", "_")
    return any(name in normalized for name in SCRUBBED_KEYS)


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return _scrub_dict(value)
    if isinstance(value, (list, tuple)):
        return [_scrub(item) for item in value]
    if isinstance(value, str):
        return _scrub_string(value)
    return value


def _scrub_dict(data: dict) -> dict:
    return {
        key: REDACTED if _is_sensitive_key(str(key)) else _scrub(value)
        for key, value in data.items()
    }


def before_send(event: dict, hint: dict) -> Optional[dict]:
    """Scrub the request, breadcrumbs, extras and contexts of an event."""
    request = event.get("request")
    if isinstance(request, dict):
        for section in ("data", "headers", "cookies"):
            if isinstance(request.get(section), dict):
                request[section] = _scrub_dict(request[section])
        for section in ("url", "query_string"):
            if isinstance(request.get(section), str):
                request[section] = _scrub_string(request[section])

    for breadcrumb in event.get("breadcrumbs", {}).get("values", []):
        before_breadcrumb(breadcrumb, hint)

    for section in ("extra", "contexts"):
        if isinstance(event.get(section), dict):
            event[section] = _scrub_dict(event[section])

    return event


def before_breadcrumb(breadcrumb: dict, hint: dict) -> Optional[dict]:
    """SQL and HTTP breadcrumbs may carry token parameters."""
    if isinstance(breadcrumb.get("message"), str):
        breadcrumb["message"] = _scrub_string(breadcrumb["message"])
    if isinstance(breadcrumb.get("data"), dict):
        breadcrumb["data"] = _scrub_dict(breadcrumb["data"])
    return breadcrumb


def init_sentry(settings: Settings, release: str) -> bool:
    """
    Initialize Sentry from the application settings.

    Returns:
        Whether error tracking is enabled (False without a DSN)
    """
    if not settings.sentry.dsn:
        logger.info("Sentry DSN not configured, error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry.dsn,
        environment=settings.env,
        release=release,
        sample_rate=settings.sentry.sample_rate,
        traces_sample_rate=settings.sentry.traces_sample_rate,
        before_send=before_send,
        before_breadcrumb=before_breadcrumb,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            AsyncioIntegration(),
            # structlog output is not forwarded; errors are captured explicitly
            LoggingIntegration(level=None, event_level=None),
        ],
        send_default_pii=False,
        max_breadcrumbs=50,
    )
    logger.info("Sentry initialized", environment=settings.env, release=release)
    return True


def set_session_context(
    session_id: str,
    status: Optional[str] = None,
    scenario: Optional[str] = None,
) -> None:
    """Attach therapy session context to subsequent events."""
    sentry_sdk.set_context("therapy_session", {
        "session_id": session_id,
        "status": status,
        "scenario": scenario,
    })


def capture_exception_with_context(
    exception: BaseException,
    session_id: Optional[str] = None,
    extra: Optional[dict] = None,
) -> Optional[str]:
    """
    Report an exception with session tag and scrubbed extras.

    Returns: Sentry event ID (None when Sentry is disabled)
    """
    with sentry_sdk.new_scope() as scope:
        if session_id:
            scope.set_tag("session_id", session_id)
        for key, value in _scrub_dict(extra or {}).items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(exception)
