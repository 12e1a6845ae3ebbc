"""
API v1 Request/Response Models

JSON bodies use camelCase names (scheduledDateTime, sessionStatus,
vrInteractionData, ...); snake_case is accepted on input as well.
Responses are built from domain objects through the from_domain
constructors, never from ORM rows.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vrtherapy.domain.enums import (
    AnalyticsTimeframe,
    PhobiaType,
    ScenarioDifficulty,
    SessionStatus,
    SessionType,
    Specialization,
    VREnvironment,
)
from vrtherapy.domain.models import (
    LaunchResult,
    Patient,
    PatientSnapshot,
    PhobiaProfile,
    PreSessionData,
    SceneRating,
    SessionConfig,
    TherapySession,
    VRAnalytics,
    VRScenario,
    VRSessionConfig,
    VRSessionData,
)


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# SESSION VALUE OBJECTS
# =============================================================================

class VRScenarioSchema(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    environment: VREnvironment
    difficulty: ScenarioDifficulty = ScenarioDifficulty.BEGINNER
    description: Optional[str] = Field(default=None, max_length=1000)

    def to_domain(self) -> VRScenario:
        return VRScenario(
            name=self.name,
            environment=self.environment,
            difficulty=self.difficulty,
            description=self.description,
        )

    @classmethod
    def from_domain(cls, scenario: VRScenario) -> "VRScenarioSchema":
        return cls(
            name=scenario.name,
            environment=scenario.environment,
            difficulty=scenario.difficulty,
            description=scenario.description,
        )


class SessionConfigSchema(CamelModel):
    duration: int = Field(..., gt=0, description="Planned duration in minutes")
    exposure_level: int = Field(..., ge=1, le=10)
    biofeedback_enabled: bool = False
    voice_guidance_enabled: bool = True

    def to_domain(self) -> SessionConfig:
        return SessionConfig(
            duration=self.duration,
            exposure_level=self.exposure_level,
            biofeedback_enabled=self.biofeedback_enabled,
            voice_guidance_enabled=self.voice_guidance_enabled,
        )

    @classmethod
    def from_domain(cls, config: SessionConfig) -> "SessionConfigSchema":
        return cls(
            duration=config.duration,
            exposure_level=config.exposure_level,
            biofeedback_enabled=config.biofeedback_enabled,
            voice_guidance_enabled=config.voice_guidance_enabled,
        )


class PreSessionDataSchema(CamelModel):
    fear_score: float = Field(..., ge=0, le=10)
    anxiety_level: Optional[float] = Field(default=None, ge=0, le=10)
    notes: Optional[str] = Field(default=None, max_length=2000)

    def to_domain(self) -> PreSessionData:
        return PreSessionData(
            fear_score=self.fear_score,
            anxiety_level=self.anxiety_level,
            notes=self.notes,
        )

    @classmethod
    def from_domain(cls, data: PreSessionData) -> "PreSessionDataSchema":
        return cls(fear_score=data.fear_score, anxiety_level=data.anxiety_level, notes=data.notes)


class PhobiaSchema(CamelModel):
    type: PhobiaType
    severity: int
    description: Optional[str] = None

    @classmethod
    def from_domain(cls, phobia: PhobiaProfile) -> "PhobiaSchema":
        return cls(type=phobia.type, severity=phobia.severity, description=phobia.description)


class PatientSnapshotSchema(CamelModel):
    name: str
    patient_id: str = Field(..., description="Clinic-facing patient identifier")
    phobias: list[PhobiaSchema]

    @classmethod
    def from_domain(cls, patient: PatientSnapshot) -> "PatientSnapshotSchema":
        return cls(
            name=patient.name,
            patient_id=patient.identifier,
            phobias=[PhobiaSchema.from_domain(p) for p in patient.phobias],
        )


class DoctorSnapshotSchema(CamelModel):
    name: str
    specialization: Specialization


# =============================================================================
# SESSION REQUESTS
# =============================================================================

class CreateSessionRequest(CamelModel):
    """Request to schedule a therapy session."""

    patient_id: UUID
    session_type: SessionType
    phobia_type: PhobiaType
    vr_scenario: VRScenarioSchema
    session_config: SessionConfigSchema
    pre_session_data: PreSessionDataSchema
    scheduled_date_time: datetime
    notes: Optional[str] = Field(default=None, max_length=2000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "patientId": "123e4567-e89b-12d3-a456-426614174000",
                "sessionType": "Exposure Therapy",
                "phobiaType": "Claustrophobia",
                "vrScenario": {"name": "MRI", "environment": "MRI", "difficulty": "Beginner"},
                "sessionConfig": {"duration": 30, "exposureLevel": 3},
                "preSessionData": {"fearScore": 8, "anxietyLevel": 7},
                "scheduledDateTime": "2026-01-15T10:00:00Z",
            }
        }
    )


class UpdateSessionRequest(CamelModel):
    """
    Editable session fields.

    Status and session token are rejected here; status changes go
    through the status endpoint.
    """

    session_type: Optional[SessionType] = None
    phobia_type: Optional[PhobiaType] = None
    vr_scenario: Optional[VRScenarioSchema] = None
    session_config: Optional[SessionConfigSchema] = None
    pre_session_data: Optional[PreSessionDataSchema] = None
    scheduled_date_time: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    model_config = ConfigDict(extra="forbid")

    def to_changes(self) -> dict[str, Any]:
        """Domain field -> value for every field present in the request."""
        changes: dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name != "notes":
                # Only notes can be cleared
                continue
            if hasattr(value, "to_domain"):
                value = value.to_domain()
            changes["scheduled_at" if name == "scheduled_date_time" else name] = value
        return changes


class StatusUpdateRequest(CamelModel):
    status: SessionStatus


class CancelSessionRequest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    cancellation_reason: Optional[str] = Field(default=None, max_length=2000)


# =============================================================================
# SESSION RESPONSES
# =============================================================================

class SessionResponse(CamelModel):
    """Therapy session with derived isActive and actualDuration."""

    id: UUID
    doctor_id: UUID
    patient_id: UUID
    session_token: str
    session_type: SessionType
    phobia_type: PhobiaType
    vr_scenario: VRScenarioSchema
    session_config: SessionConfigSchema
    pre_session_data: PreSessionDataSchema
    session_status: SessionStatus
    scheduled_date_time: datetime
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    notes: Optional[str] = None
    is_active: bool
    actual_duration: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, session: TherapySession) -> "SessionResponse":
        return cls(
            id=session.id,
            doctor_id=session.doctor_id,
            patient_id=session.patient_id,
            session_token=session.session_token,
            session_type=session.session_type,
            phobia_type=session.phobia_type,
            vr_scenario=VRScenarioSchema.from_domain(session.vr_scenario),
            session_config=SessionConfigSchema.from_domain(session.session_config),
            pre_session_data=PreSessionDataSchema.from_domain(session.pre_session_data),
            session_status=session.status,
            scheduled_date_time=session.scheduled_at,
            actual_start_time=session.actual_start_time,
            actual_end_time=session.actual_end_time,
            notes=session.notes,
            is_active=session.is_active,
            actual_duration=session.actual_duration,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class PaginationSchema(CamelModel):
    current_page: int
    total_pages: int
    total_sessions: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationSchema":
        skip = (page - 1) * limit
        return cls(
            current_page=page,
            total_pages=-(-total // limit),
            total_sessions=total,
            has_next=skip + limit < total,
            has_prev=page > 1,
        )


class SessionListResponse(CamelModel):
    sessions: list[SessionResponse]
    pagination: PaginationSchema


class SessionMessageResponse(CamelModel):
    """Session plus a human-readable outcome message."""

    message: str
    session: SessionResponse


class SessionDetailResponse(CamelModel):
    session: SessionResponse
    vr_data: Optional["VRSessionDataResponse"] = None


class VRConfigResponse(CamelModel):
    """Configuration served to the VR runtime."""

    session_id: UUID
    patient: PatientSnapshotSchema
    doctor: DoctorSnapshotSchema
    session_type: SessionType
    phobia_type: PhobiaType
    vr_scenario: VRScenarioSchema
    session_config: SessionConfigSchema
    pre_session_data: PreSessionDataSchema

    @classmethod
    def from_domain(cls, config: VRSessionConfig) -> "VRConfigResponse":
        return cls(
            session_id=config.session_id,
            patient=PatientSnapshotSchema.from_domain(config.patient),
            doctor=DoctorSnapshotSchema(
                name=config.doctor.name,
                specialization=config.doctor.specialization,
            ),
            session_type=config.session_type,
            phobia_type=config.phobia_type,
            vr_scenario=VRScenarioSchema.from_domain(config.vr_scenario),
            session_config=SessionConfigSchema.from_domain(config.session_config),
            pre_session_data=PreSessionDataSchema.from_domain(config.pre_session_data),
        )


class LaunchSnapshotSchema(CamelModel):
    id: UUID
    session_token: str
    status: SessionStatus
    start_time: Optional[datetime] = None
    patient: PatientSnapshotSchema
    vr_scenario: VRScenarioSchema
    session_config: SessionConfigSchema
    pre_session_data: PreSessionDataSchema


class LaunchResponse(CamelModel):
    message: str
    session: LaunchSnapshotSchema

    @classmethod
    def from_domain(cls, result: LaunchResult) -> "LaunchResponse":
        return cls(
            message="VR session started successfully",
            session=LaunchSnapshotSchema(
                id=result.session_id,
                session_token=result.session_token,
                status=result.status,
                start_time=result.start_time,
                patient=PatientSnapshotSchema.from_domain(result.patient),
                vr_scenario=VRScenarioSchema.from_domain(result.vr_scenario),
                session_config=SessionConfigSchema.from_domain(result.session_config),
                pre_session_data=PreSessionDataSchema.from_domain(result.pre_session_data),
            ),
        )


# =============================================================================
# VR DATA
# =============================================================================

class ScorePairSchema(CamelModel):
    """Before/after pair; values may be absent so the domain can report which."""

    initial: Optional[float] = None
    final: Optional[float] = None


class BiometricDataSchema(CamelModel):
    heart_rate: Optional[ScorePairSchema] = None
    skin_conductance: Optional[ScorePairSchema] = None


class InteractionSchema(CamelModel):
    timestamp: Optional[datetime] = None
    object_id: Optional[str] = None
    interaction_type: Optional[str] = None


class InteractionLogSchema(CamelModel):
    interactions: list[InteractionSchema] = Field(default_factory=list)


class DataQualitySchema(CamelModel):
    completeness: Optional[float] = Field(default=None, ge=0, le=100)
    accuracy: Optional[float] = Field(default=None, ge=0, le=100)


class VRDataFields(CamelModel):
    """
    Outcome fields shared by submission and correction.

    Everything is optional at this layer: required-field checks
    happen after the session token is resolved.
    """

    session_start_time: Optional[datetime] = None
    session_end_time: Optional[datetime] = None
    total_duration: Optional[float] = None
    fear_scores: Optional[ScorePairSchema] = None
    biometric_data: Optional[BiometricDataSchema] = None
    vr_interaction_data: Optional[InteractionLogSchema] = None
    exposure_metrics: Optional[dict[str, Any]] = None
    session_notes: Optional[dict[str, Any]] = None
    session_rating: Optional[dict[str, Any]] = None
    data_quality: Optional[DataQualitySchema] = None

    def to_payload(self, *, only_set: bool = False) -> dict[str, Any]:
        """
        Snake-case payload for the services.

        Args:
            only_set: Keep only fields present in the request (corrections)
        """
        if only_set:
            payload = self.model_dump(exclude_unset=True, exclude={"session_token"})
        else:
            payload = self.model_dump(exclude_none=True, exclude={"session_token"})
        if "vr_interaction_data" in payload:
            log = payload.pop("vr_interaction_data") or {}
            payload["interactions"] = [
                {key: value for key, value in item.items() if value is not None}
                for item in log.get("interactions") or []
            ]
        return payload


class TelemetrySubmitRequest(VRDataFields):
    """Telemetry submitted by the VR runtime at scenario end."""

    session_token: str = Field(..., min_length=1)


class VRDataCorrectionRequest(VRDataFields):
    """Doctor correction of a submitted record."""

    model_config = ConfigDict(extra="forbid")


class SessionSummarySchema(CamelModel):
    id: UUID
    session_type: SessionType
    phobia_type: PhobiaType
    vr_scenario: VRScenarioSchema
    scheduled_date_time: datetime
    session_status: SessionStatus

    @classmethod
    def from_domain(cls, session: TherapySession) -> "SessionSummarySchema":
        return cls(
            id=session.id,
            session_type=session.session_type,
            phobia_type=session.phobia_type,
            vr_scenario=VRScenarioSchema.from_domain(session.vr_scenario),
            scheduled_date_time=session.scheduled_at,
            session_status=session.status,
        )


class VRSessionDataResponse(CamelModel):
    id: UUID
    session_id: UUID
    patient_id: UUID
    session_start_time: datetime
    session_end_time: datetime
    total_duration: float
    fear_scores: ScorePairSchema
    biometric_data: BiometricDataSchema
    vr_interaction_data: InteractionLogSchema
    exposure_metrics: dict[str, Any]
    session_notes: dict[str, Any]
    session_rating: dict[str, Any]
    data_quality: DataQualitySchema
    improvement_percentage: float
    effectiveness_score: float
    session: Optional[SessionSummarySchema] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(
        cls,
        record: VRSessionData,
        session: Optional[TherapySession] = None,
    ) -> "VRSessionDataResponse":
        biometrics = record.biometric_data
        return cls(
            id=record.id,
            session_id=record.session_id,
            patient_id=record.patient_id,
            session_start_time=record.session_start_time,
            session_end_time=record.session_end_time,
            total_duration=record.total_duration,
            fear_scores=ScorePairSchema(
                initial=record.fear_scores.initial,
                final=record.fear_scores.final,
            ),
            biometric_data=BiometricDataSchema(
                heart_rate=ScorePairSchema(**biometrics.heart_rate.to_dict()) if biometrics.heart_rate else None,
                skin_conductance=(
                    ScorePairSchema(**biometrics.skin_conductance.to_dict())
                    if biometrics.skin_conductance else None
                ),
            ),
            vr_interaction_data=InteractionLogSchema(
                interactions=[
                    InteractionSchema(
                        timestamp=item.timestamp,
                        object_id=item.object_id,
                        interaction_type=item.interaction_type,
                    )
                    for item in record.interactions
                ]
            ),
            exposure_metrics=record.exposure_metrics,
            session_notes=record.session_notes,
            session_rating=record.session_rating,
            data_quality=DataQualitySchema(
                completeness=record.data_quality.completeness,
                accuracy=record.data_quality.accuracy,
            ),
            improvement_percentage=record.improvement_percentage,
            effectiveness_score=record.effectiveness_score,
            session=SessionSummarySchema.from_domain(session) if session else None,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class TelemetrySubmitResponse(CamelModel):
    message: str
    vr_session_data: VRSessionDataResponse
    improvement_percentage: float
    effectiveness_score: float


class VRHistoryResponse(CamelModel):
    vr_session_data: list[VRSessionDataResponse]
    pagination: PaginationSchema


class PatientSummarySchema(CamelModel):
    id: UUID
    name: str
    patient_id: str = Field(..., description="Clinic-facing patient code")

    @classmethod
    def from_domain(cls, patient: Patient) -> "PatientSummarySchema":
        return cls(id=patient.id, name=patient.name, patient_id=patient.identifier)


class VRRecordListItem(VRSessionDataResponse):
    """Record with its session and a short patient summary."""

    patient: PatientSummarySchema

    @classmethod
    def from_row(
        cls,
        record: VRSessionData,
        session: TherapySession,
        patient: Patient,
    ) -> "VRRecordListItem":
        base = VRSessionDataResponse.from_domain(record, session)
        return cls(**base.model_dump(), patient=PatientSummarySchema.from_domain(patient))


class VRRecordListResponse(CamelModel):
    sessions: list[VRRecordListItem]
    pagination: PaginationSchema


# =============================================================================
# SCENE RATINGS
# =============================================================================

class RatingSubmitRequest(CamelModel):
    """Image rating posted by the VR runtime; fields are checked once the token resolves."""

    session_token: str = Field(..., min_length=1)
    user_id: Optional[str] = Field(default=None, max_length=100)
    scene_id: Optional[str] = Field(default=None, max_length=100)
    image_id: Optional[str] = Field(default=None, max_length=100)
    rate: Optional[float] = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude={"session_token"})


class RatingSubmitResponse(CamelModel):
    message: str
    rating_id: UUID


class SceneRatingResponse(CamelModel):
    id: UUID
    session_id: UUID
    user_id: str
    scene_id: str
    image_id: str
    rate: float
    submitted_at: datetime

    @classmethod
    def from_domain(cls, rating: SceneRating) -> "SceneRatingResponse":
        return cls(
            id=rating.id,
            session_id=rating.session_id,
            user_id=rating.user_id,
            scene_id=rating.scene_id,
            image_id=rating.image_id,
            rate=rating.rate,
            submitted_at=rating.submitted_at,
        )


class SceneRatingListResponse(CamelModel):
    ratings: list[SceneRatingResponse]


# =============================================================================
# ANALYTICS
# =============================================================================

class PhobiaBreakdownSchema(CamelModel):
    sessions: int
    average_improvement: float


class TrendPointSchema(CamelModel):
    date: datetime
    improvement: float
    fear_score_reduction: float


class BiometricInsightsSchema(CamelModel):
    average_heart_rate_reduction: float
    stress_reduction_sessions: int


class AnalyticsResponse(CamelModel):
    timeframe: AnalyticsTimeframe
    total_sessions: int
    average_improvement: float
    average_effectiveness: float
    phobia_breakdown: dict[str, PhobiaBreakdownSchema]
    session_type_breakdown: dict[str, int]
    improvement_trend: list[TrendPointSchema]
    biometric_insights: BiometricInsightsSchema

    @classmethod
    def from_domain(cls, analytics: VRAnalytics) -> "AnalyticsResponse":
        return cls(
            timeframe=analytics.timeframe,
            total_sessions=analytics.total_sessions,
            average_improvement=analytics.average_improvement,
            average_effectiveness=analytics.average_effectiveness,
            phobia_breakdown={
                phobia: PhobiaBreakdownSchema(
                    sessions=breakdown.session_count,
                    average_improvement=breakdown.average_improvement,
                )
                for phobia, breakdown in analytics.phobia_breakdown.items()
            },
            session_type_breakdown=analytics.session_type_breakdown,
            improvement_trend=[
                TrendPointSchema(
                    date=point.date,
                    improvement=point.improvement,
                    fear_score_reduction=point.fear_score_reduction,
                )
                for point in analytics.improvement_trend
            ],
            biometric_insights=BiometricInsightsSchema(
                average_heart_rate_reduction=analytics.biometric_insights.average_heart_rate_reduction,
                stress_reduction_sessions=analytics.biometric_insights.stress_reduction_sessions,
            ),
        )


SessionDetailResponse.model_rebuild()
