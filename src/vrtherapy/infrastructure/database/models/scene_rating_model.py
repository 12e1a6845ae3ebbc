"""
Scene Rating Database Model

Image ratings posted by the VR runtime, many per therapy session.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Float, ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from vrtherapy.infrastructure.database.connection import Base


class SceneRatingModel(Base):
    """
    Scene rating table ORM model.
    
    Table: scene_ratings
    """
    
    __tablename__ = "scene_ratings"
    
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        doc="Unique rating identifier"
    )
    session_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("therapy_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Session whose token the runtime presented"
    )
    
    # Runtime references, stored as sent
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    scene_id: Mapped[str] = mapped_column(String(100), nullable=False)
    image_id: Mapped[str] = mapped_column(String(100), nullable=False)
    rate: Mapped[float] = mapped_column(Float, nullable=False)
    
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        nullable=False,
    )
    
    def __repr__(self) -> str:
        return f"<SceneRatingModel(id={self.id}, session_id={self.session_id})>"
