"""Session lifecycle services - status machine and doctor operations."""

from vrtherapy.services.sessions.session_service import SessionService
from vrtherapy.services.sessions.state_machine import (
    ALLOWED_TRANSITIONS,
    can_transition,
    transition,
    validate_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "SessionService",
    "can_transition",
    "transition",
    "validate_transition",
]
