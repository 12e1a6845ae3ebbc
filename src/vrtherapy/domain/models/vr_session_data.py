"""
VR Session Data Domain Model

Outcome record submitted by the VR runtime once a scenario ends.
At most one record exists per therapy session. The derived
improvement and effectiveness values are filled in by the outcome
engine when the record is created.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from vrtherapy.domain.errors import ValidationFailed
from vrtherapy.domain.timeutils import as_utc, utc_now


@dataclass(frozen=True)
class FearScores:
    """Subjective fear before and after exposure (0-10 each)."""
    
    initial: float
    final: float
    
    def __post_init__(self) -> None:
        if self.initial is None:
            raise ValidationFailed("Initial fear score is required")
        if self.final is None:
            raise ValidationFailed("Final fear score is required")
        for name, value in (("Initial", self.initial), ("Final", self.final)):
            if not 0 <= value <= 10:
                raise ValidationFailed(f"{name} fear score must be between 0 and 10")
    
    @property
    def reduction(self) -> float:
        return self.initial - self.final
    
    def to_dict(self) -> dict:
        return {"initial": self.initial, "final": self.final}
    
    @classmethod
    def from_dict(cls, data: dict) -> "FearScores":
        return cls(initial=data.get("initial"), final=data.get("final"))


@dataclass(frozen=True)
class BiometricPair:
    """A biometric reading at scenario start and end."""
    
    initial: float
    final: float
    
    @property
    def reduction(self) -> float:
        return self.initial - self.final
    
    def to_dict(self) -> dict:
        return {"initial": self.initial, "final": self.final}
    
    @classmethod
    def from_dict(cls, name: str, data: Optional[dict]) -> Optional["BiometricPair"]:
        """Build a pair, rejecting empty or half-filled readings."""
        if data is None:
            return None
        initial, final = data.get("initial"), data.get("final")
        if initial is None or final is None:
            raise ValidationFailed(f"{name} data must include initial and final values")
        if initial < 0 or final < 0:
            raise ValidationFailed(f"{name} values cannot be negative")
        return cls(initial=initial, final=final)


@dataclass(frozen=True)
class BiometricData:
    """Optional biometric readings captured by the VR rig."""
    
    heart_rate: Optional[BiometricPair] = None
    skin_conductance: Optional[BiometricPair] = None
    
    def to_dict(self) -> dict:
        return {
            "heart_rate": self.heart_rate.to_dict() if self.heart_rate else None,
            "skin_conductance": self.skin_conductance.to_dict() if self.skin_conductance else None,
        }
    
    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "BiometricData":
        data = data or {}
        return cls(
            heart_rate=BiometricPair.from_dict("Heart rate", data.get("heart_rate")),
            skin_conductance=BiometricPair.from_dict("Skin conductance", data.get("skin_conductance")),
        )


@dataclass(frozen=True)
class VRInteraction:
    """One interaction the patient had with a scenario object."""
    
    timestamp: datetime
    object_id: str
    interaction_type: str
    
    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "object_id": self.object_id,
            "interaction_type": self.interaction_type,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "VRInteraction":
        timestamp = data.get("timestamp")
        if not timestamp or not data.get("object_id") or not data.get("interaction_type"):
            raise ValidationFailed(
                "Each interaction must include timestamp, objectId, and interactionType"
            )
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            timestamp=as_utc(timestamp),
            object_id=data["object_id"],
            interaction_type=data["interaction_type"],
        )


@dataclass(frozen=True)
class DataQuality:
    """Runtime-reported quality of the captured data (percent)."""
    
    completeness: float = 100
    accuracy: float = 100
    
    def to_dict(self) -> dict:
        return {"completeness": self.completeness, "accuracy": self.accuracy}
    
    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "DataQuality":
        data = data or {}
        return cls(
            completeness=data.get("completeness", 100),
            accuracy=data.get("accuracy", 100),
        )


@dataclass
class VRSessionData:
    """
    Outcome record for one therapy session.
    
    Attributes:
        session_id: Therapy session this record belongs to (unique)
        patient_id: Patient copied from the session
        session_start_time: Scenario start reported by the runtime
        session_end_time: Scenario end reported by the runtime
        total_duration: Scenario duration in minutes reported by the runtime
        fear_scores: Fear before and after exposure
        biometric_data: Optional heart rate and skin conductance pairs
        interactions: Ordered interaction log
        exposure_metrics: Runtime-defined exposure counters
        session_notes: Runtime-defined notes
        session_rating: Runtime-defined patient rating
        data_quality: Completeness/accuracy percentages
        improvement_percentage: Derived fear improvement
        effectiveness_score: Derived composite score 0-100
    """
    
    session_id: UUID
    patient_id: UUID
    session_start_time: datetime
    session_end_time: datetime
    total_duration: float
    fear_scores: FearScores
    biometric_data: BiometricData = field(default_factory=BiometricData)
    interactions: list[VRInteraction] = field(default_factory=list)
    exposure_metrics: dict[str, Any] = field(default_factory=dict)
    session_notes: dict[str, Any] = field(default_factory=dict)
    session_rating: dict[str, Any] = field(default_factory=dict)
    data_quality: DataQuality = field(default_factory=DataQuality)
    improvement_percentage: float = 0.0
    effectiveness_score: float = 0.0
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    
    def __post_init__(self) -> None:
        self.session_start_time = as_utc(self.session_start_time)
        self.session_end_time = as_utc(self.session_end_time)
        self.created_at = as_utc(self.created_at)
        self.updated_at = as_utc(self.updated_at)
        if self.total_duration is None or self.total_duration <= 0:
            raise ValidationFailed("Total duration must be a positive number of minutes")
        if self.session_end_time < self.session_start_time:
            raise ValidationFailed("Session end time cannot precede start time")
