"""
Therapy Session Database Model

SQLAlchemy ORM model for therapy session persistence.
Scenario, config and pre-session data are stored as JSON documents.

CONCURRENCY: status is the compare-and-swap column; every status
write is an UPDATE conditioned on (id, status).
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from vrtherapy.infrastructure.database.connection import Base, JSONType


class TherapySessionModel(Base):
    """
    Therapy session table ORM model.
    
    Table: therapy_sessions
    """
    
    __tablename__ = "therapy_sessions"
    
    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        doc="Unique session identifier"
    )
    
    # Ownership
    doctor_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Owning doctor"
    )
    patient_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Treated patient"
    )
    
    # VR handshake secret
    session_token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
        doc="Opaque token identifying the session to the VR runtime"
    )
    
    # Classification
    session_type: Mapped[str] = mapped_column(String(40), nullable=False)
    phobia_type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    
    # Scenario setup
    vr_scenario: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        doc="{name, environment, difficulty, description}"
    )
    session_config: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        doc="{duration, exposure_level, biofeedback_enabled, voice_guidance_enabled}"
    )
    pre_session_data: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        doc="{fear_score, anxiety_level, notes}"
    )
    
    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20),
        default="Scheduled",
        nullable=False,
        index=True,
        doc="Scheduled, In Progress, Completed, Cancelled, Interrupted"
    )
    scheduled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        doc="Planned start"
    )
    actual_start_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    actual_end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Doctor notes or cancellation reason"
    )
    
    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        nullable=False,
        index=True,
        doc="Creation time (analytics window anchor)"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    
    def __repr__(self) -> str:
        return f"<TherapySessionModel(id={self.id}, status='{self.status}')>"
