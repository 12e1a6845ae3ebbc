"""
VR Session Data Service

Doctor-facing reads and corrections of VR outcome records. Access
always goes through the linked session's owner.

Corrections update the record in place. Derived improvement and
effectiveness values are only re-derived when the caller asks for it.
"""

from dataclasses import replace
from typing import Any, Callable, Mapping, Optional, Sequence
from uuid import UUID

from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.enums import PhobiaType
from vrtherapy.domain.errors import Forbidden, NotFound, ValidationFailed
from vrtherapy.domain.models import (
    BiometricData,
    DataQuality,
    FearScores,
    SceneRating,
    TherapySession,
    VRInteraction,
    VRSessionData,
)
from vrtherapy.domain.repositories import RecordFilters, RecordRow, Repositories
from vrtherapy.domain.timeutils import parse_datetime, utc_now
from vrtherapy.services.outcomes.outcome_engine import apply_outcome

logger = get_logger(__name__)


# Correctable field -> parser from its snake_case payload value
CORRECTABLE_FIELDS: dict[str, Callable[[Any], Any]] = {
    "session_start_time": parse_datetime,
    "session_end_time": parse_datetime,
    "total_duration": float,
    "fear_scores": FearScores.from_dict,
    "biometric_data": BiometricData.from_dict,
    "interactions": lambda items: [VRInteraction.from_dict(item) for item in items or []],
    "exposure_metrics": lambda value: dict(value or {}),
    "session_notes": lambda value: dict(value or {}),
    "session_rating": lambda value: dict(value or {}),
    "data_quality": DataQuality.from_dict,
}


class VRDataService:
    """
    Read and correct VR outcome records.
    
    Usage:
        service = VRDataService(repositories)
        record, session = await service.get_for_session(doctor_id, session_id)
        record = await service.correct(doctor_id, record.id, {"session_notes": {...}})
    """
    
    def __init__(self, repositories: Repositories) -> None:
        self._repos = repositories
    
    async def _owned_session(self, doctor_id: UUID, session_id: UUID) -> TherapySession:
        session = await self._repos.sessions.get_by_id(session_id)
        if session is None:
            raise NotFound("Session not found")
        if not session.is_owned_by(doctor_id):
            raise Forbidden("Not authorized to access this session data")
        return session
    
    async def get_for_session(
        self,
        doctor_id: UUID,
        session_id: UUID,
    ) -> tuple[VRSessionData, TherapySession]:
        """
        Record of one of the doctor's sessions.
        
        Raises:
            NotFound: Session or record missing
            Forbidden: Session belongs to another doctor
        """
        session = await self._owned_session(doctor_id, session_id)
        record = await self._repos.vr_data.get_by_session_id(session.id)
        if record is None:
            raise NotFound("VR session data not found")
        return record, session
    
    async def patient_history(
        self,
        doctor_id: UUID,
        patient_id: UUID,
        *,
        phobia_type: Optional[PhobiaType] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[Sequence[tuple[VRSessionData, TherapySession]], int]:
        """
        A patient's records from the doctor's sessions, newest first.
        
        Returns:
            Page of (record, session) pairs and the total count
        """
        patient = await self._repos.patients.get_by_id(patient_id)
        if patient is None:
            raise NotFound("Patient not found")
        if patient.doctor_id != doctor_id:
            raise Forbidden("Not authorized to access this patient's data")
        
        rows, total = await self._repos.vr_data.list_page(
            doctor_id,
            RecordFilters(patient_id=patient_id, phobia_type=phobia_type),
            skip=skip,
            limit=limit,
        )
        return [(record, session) for record, session, _ in rows], total
    
    async def list_records(
        self,
        doctor_id: UUID,
        filters: RecordFilters,
        *,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[Sequence[RecordRow], int]:
        """
        Filtered page of all the doctor's records, newest session first.
        
        Raises:
            ValidationFailed: created_from is after created_to
        """
        if (
            filters.created_from is not None
            and filters.created_to is not None
            and filters.created_from > filters.created_to
        ):
            raise ValidationFailed("dateFrom must not be after dateTo")
        return await self._repos.vr_data.list_page(doctor_id, filters, skip=skip, limit=limit)
    
    async def ratings_for_session(self, doctor_id: UUID, session_id: UUID) -> Sequence[SceneRating]:
        """
        Runtime ratings of one of the doctor's sessions, oldest first.
        
        Raises:
            NotFound: Session missing
            Forbidden: Session belongs to another doctor
        """
        session = await self._owned_session(doctor_id, session_id)
        return await self._repos.ratings.list_for_session(session.id)
    
    async def correct(
        self,
        doctor_id: UUID,
        record_id: UUID,
        changes: Mapping[str, Any],
        *,
        recalculate: bool = False,
    ) -> VRSessionData:
        """
        Apply a doctor's correction to a record.
        
        Args:
            doctor_id: Requesting doctor
            record_id: Record to correct
            changes: Snake-case fields to replace
            recalculate: Re-derive improvement and effectiveness
            
        Raises:
            NotFound: Record or its session missing
            Forbidden: Session belongs to another doctor
            ValidationFailed: Unknown or malformed fields
        """
        record = await self._repos.vr_data.get_by_id(record_id)
        if record is None:
            raise NotFound("VR session data not found")
        await self._owned_session(doctor_id, record.session_id)
        
        unknown = set(changes) - set(CORRECTABLE_FIELDS)
        if unknown:
            raise ValidationFailed(f"Fields cannot be corrected: {', '.join(sorted(unknown))}")
        
        try:
            parsed = {name: CORRECTABLE_FIELDS[name](value) for name, value in changes.items()}
            corrected = replace(record, **parsed, updated_at=utc_now())
        except (TypeError, ValueError, AttributeError) as e:
            raise ValidationFailed(f"Malformed correction: {e}") from e
        
        if recalculate:
            corrected = apply_outcome(corrected)
        
        updated = await self._repos.vr_data.update(corrected)
        logger.info(
            "VR session data corrected",
            record_id=str(record_id),
            fields=sorted(changes),
            recalculated=recalculate,
        )
        return updated
