"""
Therapy Session Repository

SQLAlchemy implementation of therapy session persistence.

CONCURRENCY: update_if_status issues
    UPDATE therapy_sessions SET ... WHERE id = :id AND status = :expected
and reports a lost race through the affected row count, so two
writers starting from the same status cannot both succeed.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.enums import PhobiaType, SessionStatus, SessionType
from vrtherapy.domain.errors import DuplicateSessionToken
from vrtherapy.domain.models import (
    PreSessionData,
    SessionConfig,
    TherapySession,
    VRScenario,
)
from vrtherapy.domain.repositories import SessionFilters, TherapySessionRepository
from vrtherapy.domain.timeutils import utc_now
from vrtherapy.infrastructure.database.models import TherapySessionModel
from vrtherapy.infrastructure.database.repositories.base import BaseRepository

logger = get_logger(__name__)


def session_to_domain(row: TherapySessionModel) -> TherapySession:
    """Translate a row into the domain entity."""
    return TherapySession(
        id=row.id,
        doctor_id=row.doctor_id,
        patient_id=row.patient_id,
        session_token=row.session_token,
        session_type=SessionType(row.session_type),
        phobia_type=PhobiaType(row.phobia_type),
        vr_scenario=VRScenario.from_dict(row.vr_scenario),
        session_config=SessionConfig.from_dict(row.session_config),
        pre_session_data=PreSessionData.from_dict(row.pre_session_data),
        status=SessionStatus(row.status),
        scheduled_at=row.scheduled_at,
        actual_start_time=row.actual_start_time,
        actual_end_time=row.actual_end_time,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _column_value(value: Any) -> Any:
    """Domain value -> column value (enums by value, value objects as JSON)."""
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


class SqlTherapySessionRepository(BaseRepository[TherapySessionModel], TherapySessionRepository):
    """
    Therapy sessions backed by the therapy_sessions table.

    Usage:
        repo = SqlTherapySessionRepository(session)
        updated = await repo.update_if_status(session_id, SessionStatus.SCHEDULED, status=...)
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(TherapySessionModel, session)

    async def get_by_id(self, session_id: UUID) -> Optional[TherapySession]:
        row = await self._get_row(session_id, refresh=True)
        return session_to_domain(row) if row else None

    async def get_by_token(self, session_token: str) -> Optional[TherapySession]:
        row = await self._find_one(TherapySessionModel.session_token == session_token)
        return session_to_domain(row) if row else None

    async def create(self, session: TherapySession) -> TherapySession:
        row = TherapySessionModel(
            id=session.id,
            doctor_id=session.doctor_id,
            patient_id=session.patient_id,
            session_token=session.session_token,
            session_type=session.session_type.value,
            phobia_type=session.phobia_type.value,
            vr_scenario=session.vr_scenario.to_dict(),
            session_config=session.session_config.to_dict(),
            pre_session_data=session.pre_session_data.to_dict(),
            status=session.status.value,
            scheduled_at=session.scheduled_at,
            actual_start_time=session.actual_start_time,
            actual_end_time=session.actual_end_time,
            notes=session.notes,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )
        try:
            await self._insert(row)
        except IntegrityError as e:
            existing = await self.get_by_token(session.session_token)
            if existing is not None:
                raise DuplicateSessionToken(session.session_token) from e
            raise
        return session_to_domain(row)

    async def update_if_status(
        self,
        session_id: UUID,
        expected_status: SessionStatus,
        **changes: Any,
    ) -> Optional[TherapySession]:
        values = {name: _column_value(value) for name, value in changes.items()}
        values["updated_at"] = utc_now()

        result = await self._session.execute(
            update(TherapySessionModel)
            .where(
                TherapySessionModel.id == session_id,
                TherapySessionModel.status == expected_status.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.debug(
                "Conditional session update matched no row",
                session_id=str(session_id),
                expected_status=expected_status.value,
            )
            return None

        row = await self._get_row(session_id, refresh=True)
        return session_to_domain(row) if row else None

    async def list_for_doctor(
        self,
        doctor_id: UUID,
        filters: SessionFilters,
        *,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[Sequence[TherapySession], int]:
        conditions = [TherapySessionModel.doctor_id == doctor_id]
        if filters.status is not None:
            conditions.append(TherapySessionModel.status == filters.status.value)
        if filters.patient_id is not None:
            conditions.append(TherapySessionModel.patient_id == filters.patient_id)
        if filters.phobia_type is not None:
            conditions.append(TherapySessionModel.phobia_type == filters.phobia_type.value)
        if filters.scheduled_from is not None:
            conditions.append(TherapySessionModel.scheduled_at >= filters.scheduled_from)
        if filters.scheduled_to is not None:
            conditions.append(TherapySessionModel.scheduled_at <= filters.scheduled_to)

        rows = await self._find_all(
            *conditions,
            order_by=(TherapySessionModel.scheduled_at.asc(),),
            skip=skip,
            limit=limit,
        )
        total = await self._count(*conditions)
        return [session_to_domain(row) for row in rows], total

    async def list_upcoming(
        self,
        doctor_id: UUID,
        now: datetime,
        *,
        limit: int = 5,
    ) -> Sequence[TherapySession]:
        rows = await self._find_all(
            TherapySessionModel.doctor_id == doctor_id,
            TherapySessionModel.status == SessionStatus.SCHEDULED.value,
            TherapySessionModel.scheduled_at >= now,
            order_by=(TherapySessionModel.scheduled_at.asc(),),
            limit=limit,
        )
        return [session_to_domain(row) for row in rows]

    async def list_stale_in_progress(self, started_before: datetime) -> Sequence[TherapySession]:
        rows = await self._find_all(
            TherapySessionModel.status == SessionStatus.IN_PROGRESS.value,
            TherapySessionModel.actual_start_time < started_before,
            order_by=(TherapySessionModel.actual_start_time.asc(),),
        )
        return [session_to_domain(row) for row in rows]
