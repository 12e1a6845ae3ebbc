"""
Therapy Session Domain Model

A scheduled VR exposure session owned by one doctor for one patient.
Status and timestamps are changed only through the session state
machine; the session token is assigned once at creation and never
changes.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from vrtherapy.domain.enums import (
    PhobiaType,
    ScenarioDifficulty,
    SessionStatus,
    SessionType,
    VREnvironment,
)
from vrtherapy.domain.errors import ValidationFailed
from vrtherapy.domain.timeutils import as_utc, utc_now


def _score(name: str, value: Optional[float], *, low: float = 0, high: float = 10) -> None:
    if value is not None and not (low <= value <= high):
        raise ValidationFailed(f"{name} must be between {low:g} and {high:g}")


@dataclass(frozen=True)
class VRScenario:
    """
    Scenario the VR runtime should load.
    
    Attributes:
        name: Scenario build name (also selects the executable)
        environment: Virtual environment
        difficulty: Difficulty tier
        description: Optional free text shown to the doctor
    """
    
    name: str
    environment: VREnvironment
    difficulty: ScenarioDifficulty = ScenarioDifficulty.BEGINNER
    description: Optional[str] = None
    
    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationFailed("VR scenario name and environment are required")
    
    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "environment": self.environment.value,
            "difficulty": self.difficulty.value,
            "description": self.description,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "VRScenario":
        return cls(
            name=data["name"],
            environment=VREnvironment(data["environment"]),
            difficulty=ScenarioDifficulty(data.get("difficulty") or ScenarioDifficulty.BEGINNER),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class SessionConfig:
    """
    Runtime parameters passed to the VR scenario.
    
    Attributes:
        duration: Planned duration in minutes
        exposure_level: Exposure intensity 1-10
        biofeedback_enabled: Stream biometric sensors
        voice_guidance_enabled: Play therapist voice prompts
    """
    
    duration: int = 30
    exposure_level: int = 1
    biofeedback_enabled: bool = False
    voice_guidance_enabled: bool = True
    
    def __post_init__(self) -> None:
        if self.duration <= 0:
            raise ValidationFailed("Session duration must be a positive number of minutes")
        _score("Exposure level", self.exposure_level, low=1, high=10)
    
    def to_dict(self) -> dict:
        return {
            "duration": self.duration,
            "exposure_level": self.exposure_level,
            "biofeedback_enabled": self.biofeedback_enabled,
            "voice_guidance_enabled": self.voice_guidance_enabled,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "SessionConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass(frozen=True)
class PreSessionData:
    """
    Self-reported state captured before exposure.
    
    Attributes:
        fear_score: Subjective fear 0-10 (required)
        anxiety_level: Anxiety 0-10
        notes: Free-text notes
    """
    
    fear_score: float
    anxiety_level: Optional[float] = None
    notes: Optional[str] = None
    
    def __post_init__(self) -> None:
        if self.fear_score is None:
            raise ValidationFailed("Pre-session fear score is required")
        _score("Pre-session fear score", self.fear_score)
        _score("Anxiety level", self.anxiety_level)
    
    def to_dict(self) -> dict:
        return {
            "fear_score": self.fear_score,
            "anxiety_level": self.anxiety_level,
            "notes": self.notes,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "PreSessionData":
        return cls(
            fear_score=data.get("fear_score"),
            anxiety_level=data.get("anxiety_level"),
            notes=data.get("notes"),
        )


@dataclass
class TherapySession:
    """
    Therapy session entity.
    
    Attributes:
        id: Unique session identifier
        doctor_id: Owning doctor (used for every authorization check)
        patient_id: Treated patient
        session_type: Purpose of the session
        phobia_type: Phobia being treated
        vr_scenario: Scenario to load
        session_config: Runtime parameters
        pre_session_data: Pre-exposure self report
        scheduled_at: Planned start
        session_token: Opaque shared secret for the VR runtime
        status: Lifecycle status
        actual_start_time: Set when entering In Progress
        actual_end_time: Set when entering Completed or Interrupted
        notes: Doctor notes (also holds a cancellation reason)
    """
    
    doctor_id: UUID
    patient_id: UUID
    session_type: SessionType
    phobia_type: PhobiaType
    vr_scenario: VRScenario
    pre_session_data: PreSessionData
    scheduled_at: datetime
    session_config: SessionConfig = field(default_factory=SessionConfig)
    session_token: str = ""
    status: SessionStatus = SessionStatus.SCHEDULED
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    notes: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    
    # Fields a doctor may edit while the session is not terminal
    EDITABLE_FIELDS = frozenset({
        "session_type",
        "phobia_type",
        "vr_scenario",
        "session_config",
        "pre_session_data",
        "scheduled_at",
        "notes",
    })
    
    def __post_init__(self) -> None:
        self.scheduled_at = as_utc(self.scheduled_at)
        self.actual_start_time = as_utc(self.actual_start_time)
        self.actual_end_time = as_utc(self.actual_end_time)
        self.created_at = as_utc(self.created_at)
        self.updated_at = as_utc(self.updated_at)
        if self.notes is not None and len(self.notes) > 2000:
            raise ValidationFailed("Notes cannot exceed 2000 characters")
    
    @property
    def actual_duration(self) -> Optional[int]:
        """Minutes between actual start and end, rounded; None until both exist."""
        if self.actual_start_time is None or self.actual_end_time is None:
            return None
        seconds = (self.actual_end_time - self.actual_start_time).total_seconds()
        return round(seconds / 60)
    
    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.IN_PROGRESS
    
    def is_owned_by(self, doctor_id: UUID) -> bool:
        return self.doctor_id == doctor_id
    
    def with_changes(self, **changes) -> "TherapySession":
        """Copy with edited fields (used by the session service before persisting)."""
        unknown = set(changes) - self.EDITABLE_FIELDS
        if unknown:
            raise ValidationFailed(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        return replace(self, **changes)
