"""
VR Session Data Database Model

One outcome record per therapy session, enforced by a unique
constraint on session_id.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Float, ForeignKey, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from vrtherapy.infrastructure.database.connection import Base, JSONType


class VRSessionDataModel(Base):
    """
    VR session data table ORM model.
    
    Table: vr_session_data
    """
    
    __tablename__ = "vr_session_data"
    
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        doc="Unique record identifier"
    )
    session_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("therapy_sessions.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        doc="Therapy session (one record per session)"
    )
    patient_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    
    # Runtime-reported timing
    session_start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    session_end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_duration: Mapped[float] = mapped_column(Float, nullable=False, doc="Minutes")
    
    # Measurements
    fear_scores: Mapped[dict] = mapped_column(JSONType, nullable=False, doc="{initial, final}")
    biometric_data: Mapped[dict] = mapped_column(
        JSONType,
        default=dict,
        doc="{heart_rate: {initial, final}, skin_conductance: {initial, final}}"
    )
    interactions: Mapped[list] = mapped_column(
        JSONType,
        default=list,
        doc="Ordered [{timestamp, object_id, interaction_type}]"
    )
    exposure_metrics: Mapped[dict] = mapped_column(JSONType, default=dict)
    session_notes: Mapped[dict] = mapped_column(JSONType, default=dict)
    session_rating: Mapped[dict] = mapped_column(JSONType, default=dict)
    data_quality: Mapped[dict] = mapped_column(JSONType, default=dict)
    
    # Derived at ingestion
    improvement_percentage: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    effectiveness_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    
    def __repr__(self) -> str:
        return f"<VRSessionDataModel(id={self.id}, session_id={self.session_id})>"
