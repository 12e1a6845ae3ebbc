"""
Doctor and Patient Value Objects

Read-only views of the people a session refers to. Profile CRUD
lives outside this service; these carry only what the session
lifecycle and the VR handshake need.
"""

from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from vrtherapy.domain.enums import PhobiaType, Specialization


@dataclass(frozen=True)
class PhobiaProfile:
    """A diagnosed phobia with its clinical severity (1-10)."""
    
    type: PhobiaType
    severity: int
    description: Optional[str] = None
    
    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "severity": self.severity,
            "description": self.description,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "PhobiaProfile":
        return cls(
            type=PhobiaType(data["type"]),
            severity=int(data.get("severity", 1)),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class Patient:
    """
    Patient as seen by the session core.
    
    Attributes:
        id: Internal identifier
        doctor_id: Treating doctor
        name: Display name
        identifier: Clinic-facing patient code passed to the VR runtime
        phobias: Diagnosed phobias
        is_active: Whether the patient record is active
    """
    
    id: UUID
    doctor_id: UUID
    name: str
    identifier: str
    phobias: tuple[PhobiaProfile, ...] = field(default_factory=tuple)
    is_active: bool = True


@dataclass(frozen=True)
class Doctor:
    """Doctor as seen by the session core."""
    
    id: UUID
    name: str
    specialization: Specialization
    is_active: bool = True


@dataclass(frozen=True)
class DoctorIdentity:
    """Verified caller identity produced by the authenticator."""
    
    doctor_id: UUID
