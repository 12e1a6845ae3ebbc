"""
Domain Error Taxonomy

Every failure surfaced to API callers is one of these errors.
Each carries a stable machine-readable kind and the HTTP status
it maps to; the message is safe to show to the caller.
"""

from typing import Optional


class TherapyError(Exception):
    """Base class for all client-visible domain errors."""
    
    kind: str = "error"
    status_code: int = 400
    
    def __init__(self, message: str, *, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def to_dict(self) -> dict:
        """Serialize for an API error body."""
        body = {"error": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFound(TherapyError):
    """Entity or session token does not exist."""
    
    kind = "not_found"
    status_code = 404


class Forbidden(TherapyError):
    """Requesting doctor does not own the resource."""
    
    kind = "forbidden"
    status_code = 403


class Unauthorized(TherapyError):
    """Missing, invalid or expired doctor credentials."""
    
    kind = "unauthorized"
    status_code = 401


class InvalidTransition(TherapyError):
    """Requested status change is not allowed from the current status."""
    
    kind = "invalid_transition"
    status_code = 400


class Immutable(TherapyError):
    """Edit attempted on a session in a terminal state."""
    
    kind = "immutable"
    status_code = 400


class AlreadySubmitted(TherapyError):
    """Telemetry already recorded for this session."""
    
    kind = "already_submitted"
    status_code = 409


class ValidationFailed(TherapyError):
    """Missing or malformed required fields."""
    
    kind = "validation_failed"
    status_code = 400


class SessionInactive(TherapyError):
    """VR handshake against a Completed or Cancelled session."""
    
    kind = "session_inactive"
    status_code = 400


class LaunchFailed(TherapyError):
    """
    External VR runtime could not be started or reported failure.
    
    Reflects an external-system fault, so it surfaces as a 5xx with
    a generic message; the cause is logged, never returned.
    """
    
    kind = "launch_failed"
    status_code = 500


class DuplicateSessionToken(Exception):
    """Raised by repositories when a generated session token collides."""


class DuplicateRecord(Exception):
    """Raised by repositories when a one-to-one record already exists."""
