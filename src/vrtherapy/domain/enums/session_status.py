"""
Therapy Session Status

Lifecycle states of a therapy session. The allowed moves between
them live in services.sessions.state_machine; nothing else may
assign a status.
"""

from enum import StrEnum


class SessionStatus(StrEnum):
    """Therapy session lifecycle states."""
    
    SCHEDULED = "Scheduled"
    """Created by a doctor, VR runtime not started yet."""
    
    IN_PROGRESS = "In Progress"
    """VR scenario launched; awaiting telemetry or manual completion."""
    
    COMPLETED = "Completed"
    """Terminal. Telemetry received or doctor completed manually."""
    
    CANCELLED = "Cancelled"
    """Terminal. Logically cancelled; records are never deleted."""
    
    INTERRUPTED = "Interrupted"
    """Launch failed, VR runtime stopped early or the session was abandoned."""
    
    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions or edits are possible."""
        return self in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)
