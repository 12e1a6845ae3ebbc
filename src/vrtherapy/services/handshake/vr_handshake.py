"""
VR Handshake Protocol

Public-facing side of the session core: the VR runtime holds no
doctor credentials and identifies itself only by the session token.

Operations:
- get_config: read-only snapshot the runtime needs to set up a scenario
- submit_telemetry: one-time outcome submission that completes the session
- submit_rating: per-image scene ratings, any number per session

ARCHITECTURE: submit_telemetry runs inside a single unit of work. The
record insert, derived metrics and the Completed transition commit
together or not at all.
"""

from typing import Any, Mapping

from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.enums import SessionStatus
from vrtherapy.domain.errors import (
    AlreadySubmitted,
    DuplicateRecord,
    InvalidTransition,
    NotFound,
    SessionInactive,
    TherapyError,
    ValidationFailed,
)
from vrtherapy.domain.models import (
    BiometricData,
    DataQuality,
    DoctorSnapshot,
    FearScores,
    PatientSnapshot,
    SceneRating,
    TherapySession,
    VRInteraction,
    VRSessionConfig,
    VRSessionData,
)
from vrtherapy.domain.repositories import Repositories
from vrtherapy.domain.timeutils import parse_datetime
from vrtherapy.infrastructure.metrics import track_scene_rating, track_telemetry_submission
from vrtherapy.services.outcomes import apply_outcome
from vrtherapy.services.sessions import state_machine

logger = get_logger(__name__)


REQUIRED_TELEMETRY_FIELDS = (
    "session_start_time",
    "session_end_time",
    "total_duration",
    "fear_scores",
)


def build_record(session: TherapySession, payload: Mapping[str, Any]) -> VRSessionData:
    """
    Validate a telemetry payload and build the record for a session.

    Args:
        session: Session the token resolved to
        payload: Snake-case telemetry fields

    Returns:
        Unsaved record without derived metrics

    Raises:
        ValidationFailed: Missing or malformed fields
    """
    missing = [name for name in REQUIRED_TELEMETRY_FIELDS if payload.get(name) is None]
    if missing:
        raise ValidationFailed(
            "Please provide all required session data",
            details={"missing": missing},
        )

    try:
        return VRSessionData(
            session_id=session.id,
            patient_id=session.patient_id,
            session_start_time=parse_datetime(payload["session_start_time"]),
            session_end_time=parse_datetime(payload["session_end_time"]),
            total_duration=float(payload["total_duration"]),
            fear_scores=FearScores.from_dict(payload["fear_scores"]),
            biometric_data=BiometricData.from_dict(payload.get("biometric_data")),
            interactions=[
                VRInteraction.from_dict(item) for item in payload.get("interactions") or []
            ],
            exposure_metrics=dict(payload.get("exposure_metrics") or {}),
            session_notes=dict(payload.get("session_notes") or {}),
            session_rating=dict(payload.get("session_rating") or {}),
            data_quality=DataQuality.from_dict(payload.get("data_quality")),
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise ValidationFailed(f"Malformed session data: {e}") from e


class VRHandshake:
    """
    Token-authenticated operations used by the VR runtime.

    Usage:
        handshake = VRHandshake(repositories)
        config = await handshake.get_config(token)
        record = await handshake.submit_telemetry(token, payload)
    """

    def __init__(self, repositories: Repositories) -> None:
        self._repos = repositories

    async def _session_for_token(self, session_token: str) -> TherapySession:
        session = await self._repos.sessions.get_by_token(session_token)
        if session is None:
            logger.info("Unknown session token", session_token=session_token)
            raise NotFound("Invalid session token")
        return session

    async def get_config(self, session_token: str) -> VRSessionConfig:
        """
        Configuration snapshot for the runtime.

        Raises:
            NotFound: Unknown token (or dangling patient/doctor)
            SessionInactive: Session is Completed or Cancelled
        """
        session = await self._session_for_token(session_token)
        if session.status.is_terminal:
            raise SessionInactive("Session is no longer active")

        patient = await self._repos.patients.get_by_id(session.patient_id)
        if patient is None:
            raise NotFound("Patient not found")
        doctor = await self._repos.doctors.get_by_id(session.doctor_id)
        if doctor is None:
            raise NotFound("Doctor not found")

        logger.info("VR config served", session_id=str(session.id), status=session.status.value)

        return VRSessionConfig(
            session_id=session.id,
            patient=PatientSnapshot(
                name=patient.name,
                identifier=patient.identifier,
                phobias=patient.phobias,
            ),
            doctor=DoctorSnapshot(name=doctor.name, specialization=doctor.specialization),
            session_type=session.session_type,
            phobia_type=session.phobia_type,
            vr_scenario=session.vr_scenario,
            session_config=session.session_config,
            pre_session_data=session.pre_session_data,
        )

    async def submit_telemetry(
        self,
        session_token: str,
        payload: Mapping[str, Any],
    ) -> VRSessionData:
        """
        Record the runtime's outcome data and complete the session.

        Exactly one submission per session succeeds; concurrent
        duplicates lose on the one-record constraint.

        Raises:
            NotFound: Unknown token
            AlreadySubmitted: Session already has a record
            SessionInactive: Session is Completed or Cancelled
            InvalidTransition: Session is not In Progress
            ValidationFailed: Malformed payload
        """
        try:
            record = await self._submit(session_token, payload)
        except TherapyError as e:
            track_telemetry_submission(e.kind)
            logger.warning("Telemetry rejected", error=e.kind, reason=e.message)
            raise

        track_telemetry_submission("accepted")
        return record

    async def submit_rating(self, session_token: str, payload: Mapping[str, Any]) -> SceneRating:
        """
        Store one image rating posted by the runtime.

        Ratings do not change the session status and any number may
        be posted, including after the telemetry submission.

        Raises:
            NotFound: Unknown token
            SessionInactive: Session was cancelled
            ValidationFailed: Missing or malformed fields
        """
        try:
            session = await self._session_for_token(session_token)
            if session.status == SessionStatus.CANCELLED:
                raise SessionInactive("Session is no longer active")
            rating = await self._repos.ratings.create(SceneRating.from_payload(session.id, payload))
        except TherapyError as e:
            track_scene_rating(e.kind)
            logger.warning("Rating rejected", error=e.kind, reason=e.message)
            raise

        track_scene_rating("accepted")
        logger.info(
            "Rating accepted",
            session_id=str(session.id),
            rating_id=str(rating.id),
            scene_id=rating.scene_id,
        )
        return rating

    async def _submit(self, session_token: str, payload: Mapping[str, Any]) -> VRSessionData:
        session = await self._session_for_token(session_token)

        existing = await self._repos.vr_data.get_by_session_id(session.id)
        if existing is not None:
            raise AlreadySubmitted("VR session data already exists for this session")

        self._ensure_accepting(session)

        record = apply_outcome(build_record(session, payload))
        try:
            created = await self._repos.vr_data.create(record)
        except DuplicateRecord as e:
            raise AlreadySubmitted("VR session data already exists for this session") from e

        completed = await state_machine.transition(
            self._repos.sessions,
            session,
            SessionStatus.COMPLETED,
        )

        logger.info(
            "Telemetry accepted",
            session_id=str(session.id),
            record_id=str(created.id),
            improvement=created.improvement_percentage,
            effectiveness=created.effectiveness_score,
            actual_duration=completed.actual_duration,
        )
        return created

    @staticmethod
    def _ensure_accepting(session: TherapySession) -> None:
        match session.status:
            case SessionStatus.IN_PROGRESS:
                return
            case SessionStatus.COMPLETED | SessionStatus.CANCELLED:
                raise SessionInactive("Session is no longer active")
            case SessionStatus.SCHEDULED | SessionStatus.INTERRUPTED:
                raise InvalidTransition(
                    f"Cannot submit telemetry for a session that is {session.status.value}",
                    details={"from": session.status.value, "to": SessionStatus.COMPLETED.value},
                )
