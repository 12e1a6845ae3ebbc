"""
VR Session Data Repository

SQLAlchemy implementation of VR outcome record persistence.
The unique constraint on session_id is the arbiter for concurrent
telemetry submissions.
"""

from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vrtherapy.domain.enums import PhobiaType
from vrtherapy.domain.errors import DuplicateRecord, NotFound
from vrtherapy.domain.models import (
    BiometricData,
    DataQuality,
    FearScores,
    TherapySession,
    VRInteraction,
    VRSessionData,
)
from vrtherapy.domain.repositories import RecordFilters, RecordRow, VRSessionDataRepository
from vrtherapy.infrastructure.database.models import (
    PatientModel,
    TherapySessionModel,
    VRSessionDataModel,
)
from vrtherapy.infrastructure.database.repositories.base import BaseRepository
from vrtherapy.infrastructure.database.repositories.participant_repository import patient_to_domain
from vrtherapy.infrastructure.database.repositories.session_repository import session_to_domain


def record_to_domain(row: VRSessionDataModel) -> VRSessionData:
    """Translate a row into the domain record."""
    return VRSessionData(
        id=row.id,
        session_id=row.session_id,
        patient_id=row.patient_id,
        session_start_time=row.session_start_time,
        session_end_time=row.session_end_time,
        total_duration=row.total_duration,
        fear_scores=FearScores.from_dict(row.fear_scores),
        biometric_data=BiometricData.from_dict(row.biometric_data),
        interactions=[VRInteraction.from_dict(item) for item in row.interactions or []],
        exposure_metrics=row.exposure_metrics or {},
        session_notes=row.session_notes or {},
        session_rating=row.session_rating or {},
        data_quality=DataQuality.from_dict(row.data_quality),
        improvement_percentage=row.improvement_percentage,
        effectiveness_score=row.effectiveness_score,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _column_values(record: VRSessionData) -> dict:
    return {
        "session_start_time": record.session_start_time,
        "session_end_time": record.session_end_time,
        "total_duration": record.total_duration,
        "fear_scores": record.fear_scores.to_dict(),
        "biometric_data": record.biometric_data.to_dict(),
        "interactions": [item.to_dict() for item in record.interactions],
        "exposure_metrics": record.exposure_metrics,
        "session_notes": record.session_notes,
        "session_rating": record.session_rating,
        "data_quality": record.data_quality.to_dict(),
        "improvement_percentage": record.improvement_percentage,
        "effectiveness_score": record.effectiveness_score,
        "updated_at": record.updated_at,
    }


class SqlVRSessionDataRepository(BaseRepository[VRSessionDataModel], VRSessionDataRepository):
    """VR records backed by the vr_session_data table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(VRSessionDataModel, session)

    async def get_by_id(self, record_id: UUID) -> Optional[VRSessionData]:
        row = await self._get_row(record_id, refresh=True)
        return record_to_domain(row) if row else None

    async def get_by_session_id(self, session_id: UUID) -> Optional[VRSessionData]:
        row = await self._find_one(VRSessionDataModel.session_id == session_id)
        return record_to_domain(row) if row else None

    async def create(self, record: VRSessionData) -> VRSessionData:
        row = VRSessionDataModel(
            id=record.id,
            session_id=record.session_id,
            patient_id=record.patient_id,
            created_at=record.created_at,
            **_column_values(record),
        )
        try:
            await self._insert(row)
        except IntegrityError as e:
            raise DuplicateRecord(str(record.session_id)) from e
        return record_to_domain(row)

    async def update(self, record: VRSessionData) -> VRSessionData:
        row = await self._get_row(record.id)
        if row is None:
            raise NotFound("VR session data not found")
        for name, value in _column_values(record).items():
            setattr(row, name, value)
        await self._session.flush()
        return record_to_domain(row)

    async def list_with_sessions(
        self,
        doctor_id: UUID,
        *,
        patient_id: Optional[UUID] = None,
        phobia_type: Optional[PhobiaType] = None,
        sessions_created_since: Optional[datetime] = None,
    ) -> Sequence[tuple[VRSessionData, TherapySession]]:
        query = (
            select(VRSessionDataModel, TherapySessionModel)
            .join(TherapySessionModel, VRSessionDataModel.session_id == TherapySessionModel.id)
            .where(TherapySessionModel.doctor_id == doctor_id)
        )
        if patient_id is not None:
            query = query.where(TherapySessionModel.patient_id == patient_id)
        if phobia_type is not None:
            query = query.where(TherapySessionModel.phobia_type == phobia_type.value)
        if sessions_created_since is not None:
            query = query.where(TherapySessionModel.created_at >= sessions_created_since)

        result = await self._session.execute(
            query.order_by(VRSessionDataModel.session_start_time.desc())
        )
        return [
            (record_to_domain(record_row), session_to_domain(session_row))
            for record_row, session_row in result.all()
        ]

    async def list_page(
        self,
        doctor_id: UUID,
        filters: RecordFilters,
        *,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[Sequence[RecordRow], int]:
        conditions = [TherapySessionModel.doctor_id == doctor_id]
        if filters.patient_id is not None:
            conditions.append(TherapySessionModel.patient_id == filters.patient_id)
        if filters.phobia_type is not None:
            conditions.append(TherapySessionModel.phobia_type == filters.phobia_type.value)
        if filters.created_from is not None:
            conditions.append(VRSessionDataModel.created_at >= filters.created_from)
        if filters.created_to is not None:
            conditions.append(VRSessionDataModel.created_at <= filters.created_to)
        if filters.search:
            conditions.append(or_(
                PatientModel.name.icontains(filters.search, autoescape=True),
                PatientModel.identifier.icontains(filters.search, autoescape=True),
            ))

        def joined(query):
            return (
                query
                .join(TherapySessionModel, VRSessionDataModel.session_id == TherapySessionModel.id)
                .join(PatientModel, TherapySessionModel.patient_id == PatientModel.id)
                .where(*conditions)
            )

        result = await self._session.execute(
            joined(select(VRSessionDataModel, TherapySessionModel, PatientModel))
            .order_by(VRSessionDataModel.session_start_time.desc(), VRSessionDataModel.id)
            .offset(skip)
            .limit(limit)
        )
        rows = [
            (record_to_domain(record_row), session_to_domain(session_row), patient_to_domain(patient_row))
            for record_row, session_row, patient_row in result.all()
        ]

        total = await self._session.execute(
            joined(select(func.count()).select_from(VRSessionDataModel))
        )
        return rows, total.scalar_one()
