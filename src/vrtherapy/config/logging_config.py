"""
Logging setup for the VR therapy backend.

structlog is configured once at startup. Every entry passes through
two scrubbing steps before it is rendered:

- values under credential-like keys are replaced outright
- session tokens found in any string value are masked down to their
  last four characters, so a request can still be traced without the
  shared secret reaching log storage

Rendering is colored console output in development and one JSON
object per line everywhere else.
"""

import logging
import re
import sys
from typing import Any, Mapping

import structlog

from vrtherapy import __version__
from vrtherapy.config.settings import Settings

REDACTED = "[REDACTED]"

# Issued format: "VR" + epoch milliseconds + 9 base36 characters
SESSION_TOKEN_RE = re.compile(r"\bVR\d{10,}[A-Z0-9]{9}\b", re.IGNORECASE)

CREDENTIAL_KEYS: frozenset[str] = frozenset({
    "password",
    "secret",
    "authorization",
    "bearer",
    "credential",
    "api_key",
    "access_token",
    "jwt",
    "dsn",
})

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def mask_session_token(token: str) -> str:
    """Keep the prefix and the last four characters of a session token."""
    return f"VR***{token[-4:]}"


def _scrub_value(key: str, value: Any) -> Any:
    normalized = key.lower().replace("-", "_")
    if any(part in normalized for part in CREDENTIAL_KEYS):
        return REDACTED
    if isinstance(value, str):
        return SESSION_TOKEN_RE.sub(lambda m: mask_session_token(m.group(0)), value)
    if isinstance(value, Mapping):
        return {k: _scrub_value(str(k), v) for k, v in value.items()}
    if isinstance(value, list):
        return [_scrub_value(key, item) for item in value]
    # exc_info tuples and other objects pass through for the renderers
    return value


def scrub_event(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor applying credential redaction and token masking."""
    return {key: _scrub_value(key, value) for key, value in event_dict.items()}


def service_context(env: str):
    """Processor stamping service name, version and environment."""
    def add_context(
        logger: logging.Logger,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        event_dict.setdefault("service", "vrtherapy")
        event_dict.setdefault("version", __version__)
        event_dict.setdefault("env", env)
        return event_dict

    return add_context


def build_processors(settings: Settings) -> list[Any]:
    """Processor chain for the configured environment."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        service_context(settings.env),
        scrub_event,
    ]

    if settings.env == "development":
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    return processors


def configure_logging(settings: Settings) -> None:
    """
    Configure structlog and the stdlib root logger.

    Called once when the application module is imported.
    """
    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_correlation_id(correlation_id: str) -> None:
    """Attach the request's correlation ID to every entry logged in this context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_correlation_id() -> str | None:
    """Correlation ID bound to the current context, if any."""
    return structlog.contextvars.get_contextvars().get("correlation_id")
