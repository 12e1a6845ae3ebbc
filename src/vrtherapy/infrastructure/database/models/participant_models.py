"""
Doctor and Patient Database Models

Minimal profile tables the session core reads. Profile management
(registration, credentials, demographics) is owned elsewhere.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from vrtherapy.infrastructure.database.connection import Base, JSONType


class DoctorModel(Base):
    """
    Doctor table ORM model.
    
    Table: doctors
    """
    
    __tablename__ = "doctors"
    
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        doc="Unique doctor identifier"
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Display name"
    )
    specialization: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Clinical specialization"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Inactive doctors cannot authenticate"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        nullable=False,
    )
    
    def __repr__(self) -> str:
        return f"<DoctorModel(id={self.id}, name='{self.name}')>"


class PatientModel(Base):
    """
    Patient table ORM model.
    
    Table: patients
    """
    
    __tablename__ = "patients"
    
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        doc="Unique patient identifier"
    )
    doctor_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Treating doctor"
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Display name"
    )
    identifier: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        doc="Clinic-facing patient code passed to the VR runtime"
    )
    phobias: Mapped[list] = mapped_column(
        JSONType,
        default=list,
        doc="Diagnosed phobias [{type, severity, description}]"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        nullable=False,
    )
    
    def __repr__(self) -> str:
        return f"<PatientModel(id={self.id}, doctor_id={self.doctor_id})>"
