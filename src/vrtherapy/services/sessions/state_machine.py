"""
Session Status Machine

Single source of truth for therapy session status changes.
Every status write in the service goes through transition(), which
validates the move against ALLOWED_TRANSITIONS and persists it with
a compare-and-swap on the status it was validated against.

Transition table:
    Scheduled    -> In Progress, Cancelled
    In Progress  -> Completed, Interrupted
    Interrupted  -> In Progress, Cancelled
    Completed    -> (terminal)
    Cancelled    -> (terminal)
"""

from datetime import datetime
from typing import Any, Optional

from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.enums import SessionStatus
from vrtherapy.domain.errors import InvalidTransition, NotFound
from vrtherapy.domain.models import TherapySession
from vrtherapy.domain.repositories import TherapySessionRepository
from vrtherapy.domain.timeutils import utc_now
from vrtherapy.infrastructure.metrics import observe_session_duration, track_session_transition

logger = get_logger(__name__)


ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.SCHEDULED: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.CANCELLED}),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.COMPLETED, SessionStatus.INTERRUPTED}),
    SessionStatus.INTERRUPTED: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    """Check whether current -> target is in the transition table."""
    return target in ALLOWED_TRANSITIONS[current]


def validate_transition(current: SessionStatus, target: SessionStatus) -> None:
    """
    Raise if current -> target is not allowed.
    
    Raises:
        InvalidTransition: For any pair outside the table
    """
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot transition from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )


def timestamp_changes(target: SessionStatus, now: datetime) -> dict[str, datetime]:
    """Status-specific timestamps written alongside a transition."""
    match target:
        case SessionStatus.IN_PROGRESS:
            return {"actual_start_time": now}
        case SessionStatus.COMPLETED | SessionStatus.INTERRUPTED:
            return {"actual_end_time": now}
        case SessionStatus.SCHEDULED | SessionStatus.CANCELLED:
            return {}


async def transition(
    repository: TherapySessionRepository,
    session: TherapySession,
    target: SessionStatus,
    *,
    now: Optional[datetime] = None,
    **extra_changes: Any,
) -> TherapySession:
    """
    Move a session to target status.
    
    Validates against the session's current status, then writes
    conditioned on that same status so that two concurrent callers
    starting from one state cannot both succeed.
    
    Args:
        repository: Session repository
        session: Session as read by the caller
        target: Requested status
        now: Transition time (defaults to current UTC time)
        extra_changes: Additional fields written atomically with the status
        
    Returns:
        Updated session
        
    Raises:
        InvalidTransition: Pair not allowed, or status changed concurrently
        NotFound: Session disappeared
    """
    current = session.status
    validate_transition(current, target)
    
    now = now or utc_now()
    changes = {**timestamp_changes(target, now), **extra_changes, "status": target}
    
    updated = await repository.update_if_status(session.id, current, **changes)
    if updated is None:
        latest = await repository.get_by_id(session.id)
        if latest is None:
            raise NotFound("Session not found")
        logger.warning(
            "Concurrent status change rejected",
            session_id=str(session.id),
            expected=current.value,
            actual=latest.status.value,
            target=target.value,
        )
        raise InvalidTransition(
            f"Cannot transition from {latest.status.value} to {target.value}",
            details={"from": latest.status.value, "to": target.value},
        )
    
    track_session_transition(current.value, target.value)
    logger.info(
        "Session status changed",
        session_id=str(session.id),
        from_status=current.value,
        to_status=target.value,
    )
    
    if target == SessionStatus.COMPLETED:
        _record_duration(updated)
    
    return updated


def _record_duration(session: TherapySession) -> None:
    """Log and observe the session duration; never fails the transition."""
    duration = session.actual_duration
    if duration is None:
        logger.warning(
            "Completed session has no start time, duration unavailable",
            session_id=str(session.id),
        )
        return
    observe_session_duration(duration)
    logger.info("Session duration recorded", session_id=str(session.id), minutes=duration)
