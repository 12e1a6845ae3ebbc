"""
In-memory repositories.

Status compare-and-swap and the unique checks run without awaiting
between check and write, so they are atomic on the event loop.
Reads yield to the loop first, letting concurrent callers interleave
the way they would against a real database.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, AsyncGenerator, Optional, Sequence
from uuid import UUID

from vrtherapy.domain.enums import PhobiaType, SessionStatus
from vrtherapy.domain.errors import DuplicateRecord, DuplicateSessionToken, NotFound
from vrtherapy.domain.models import Doctor, Patient, SceneRating, TherapySession, VRSessionData
from vrtherapy.domain.repositories import (
    DoctorRepository,
    PatientRepository,
    RatingRepository,
    RecordFilters,
    RecordRow,
    Repositories,
    RepositoryScope,
    SessionFilters,
    TherapySessionRepository,
    VRSessionDataRepository,
)
from vrtherapy.domain.timeutils import utc_now


@dataclass
class InMemoryStore:
    """Shared state behind every repository bundle of one test."""

    sessions: dict[UUID, TherapySession] = field(default_factory=dict)
    records: dict[UUID, VRSessionData] = field(default_factory=dict)
    patients: dict[UUID, Patient] = field(default_factory=dict)
    doctors: dict[UUID, Doctor] = field(default_factory=dict)
    ratings: list[SceneRating] = field(default_factory=list)
    scopes_opened: int = 0
    # (skip, limit) of every list_page call
    page_requests: list[tuple[int, int]] = field(default_factory=list)

    def repositories(self) -> Repositories:
        return Repositories(
            sessions=InMemorySessionRepository(self),
            vr_data=InMemoryVRDataRepository(self),
            patients=InMemoryPatientRepository(self),
            doctors=InMemoryDoctorRepository(self),
            ratings=InMemoryRatingRepository(self),
        )

    def scope(self) -> RepositoryScope:
        @asynccontextmanager
        async def _scope() -> AsyncGenerator[Repositories, None]:
            self.scopes_opened += 1
            yield self.repositories()

        return _scope


class InMemorySessionRepository(TherapySessionRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get_by_id(self, session_id: UUID) -> Optional[TherapySession]:
        await asyncio.sleep(0)
        session = self._store.sessions.get(session_id)
        return replace(session) if session else None

    async def get_by_token(self, session_token: str) -> Optional[TherapySession]:
        await asyncio.sleep(0)
        for session in self._store.sessions.values():
            if session.session_token == session_token:
                return replace(session)
        return None

    async def create(self, session: TherapySession) -> TherapySession:
        if any(s.session_token == session.session_token for s in self._store.sessions.values()):
            raise DuplicateSessionToken(session.session_token)
        self._store.sessions[session.id] = replace(session)
        return replace(session)

    async def update_if_status(
        self,
        session_id: UUID,
        expected_status: SessionStatus,
        **changes: Any,
    ) -> Optional[TherapySession]:
        current = self._store.sessions.get(session_id)
        if current is None or current.status != expected_status:
            return None
        updated = replace(current, **changes, updated_at=utc_now())
        self._store.sessions[session_id] = updated
        return replace(updated)

    async def list_for_doctor(
        self,
        doctor_id: UUID,
        filters: SessionFilters,
        *,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[Sequence[TherapySession], int]:
        matches = [
            s for s in self._store.sessions.values()
            if s.doctor_id == doctor_id
            and (filters.status is None or s.status == filters.status)
            and (filters.patient_id is None or s.patient_id == filters.patient_id)
            and (filters.phobia_type is None or s.phobia_type == filters.phobia_type)
            and (filters.scheduled_from is None or s.scheduled_at >= filters.scheduled_from)
            and (filters.scheduled_to is None or s.scheduled_at <= filters.scheduled_to)
        ]
        matches.sort(key=lambda s: s.scheduled_at)
        return [replace(s) for s in matches[skip:skip + limit]], len(matches)

    async def list_upcoming(
        self,
        doctor_id: UUID,
        now: datetime,
        *,
        limit: int = 5,
    ) -> Sequence[TherapySession]:
        matches = sorted(
            (
                s for s in self._store.sessions.values()
                if s.doctor_id == doctor_id
                and s.status == SessionStatus.SCHEDULED
                and s.scheduled_at >= now
            ),
            key=lambda s: s.scheduled_at,
        )
        return [replace(s) for s in matches[:limit]]

    async def list_stale_in_progress(self, started_before: datetime) -> Sequence[TherapySession]:
        return [
            replace(s) for s in self._store.sessions.values()
            if s.status == SessionStatus.IN_PROGRESS
            and s.actual_start_time is not None
            and s.actual_start_time < started_before
        ]


class InMemoryVRDataRepository(VRSessionDataRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get_by_id(self, record_id: UUID) -> Optional[VRSessionData]:
        await asyncio.sleep(0)
        record = self._store.records.get(record_id)
        return replace(record) if record else None

    async def get_by_session_id(self, session_id: UUID) -> Optional[VRSessionData]:
        await asyncio.sleep(0)
        for record in self._store.records.values():
            if record.session_id == session_id:
                return replace(record)
        return None

    async def create(self, record: VRSessionData) -> VRSessionData:
        if any(r.session_id == record.session_id for r in self._store.records.values()):
            raise DuplicateRecord(str(record.session_id))
        self._store.records[record.id] = replace(record)
        return replace(record)

    async def update(self, record: VRSessionData) -> VRSessionData:
        if record.id not in self._store.records:
            raise NotFound("VR session data not found")
        self._store.records[record.id] = replace(record)
        return replace(record)

    async def list_with_sessions(
        self,
        doctor_id: UUID,
        *,
        patient_id: Optional[UUID] = None,
        phobia_type: Optional[PhobiaType] = None,
        sessions_created_since: Optional[datetime] = None,
    ) -> Sequence[tuple[VRSessionData, TherapySession]]:
        rows = []
        for record in self._store.records.values():
            session = self._store.sessions.get(record.session_id)
            if session is None or session.doctor_id != doctor_id:
                continue
            if patient_id is not None and session.patient_id != patient_id:
                continue
            if phobia_type is not None and session.phobia_type != phobia_type:
                continue
            if sessions_created_since is not None and session.created_at < sessions_created_since:
                continue
            rows.append((replace(record), replace(session)))
        rows.sort(key=lambda row: row[0].session_start_time, reverse=True)
        return rows

    async def list_page(
        self,
        doctor_id: UUID,
        filters: RecordFilters,
        *,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[Sequence[RecordRow], int]:
        self._store.page_requests.append((skip, limit))
        term = (filters.search or "").lower()
        rows = []
        for record in self._store.records.values():
            session = self._store.sessions.get(record.session_id)
            if session is None or session.doctor_id != doctor_id:
                continue
            patient = self._store.patients.get(session.patient_id)
            if patient is None:
                continue
            if filters.patient_id is not None and session.patient_id != filters.patient_id:
                continue
            if filters.phobia_type is not None and session.phobia_type != filters.phobia_type:
                continue
            if filters.created_from is not None and record.created_at < filters.created_from:
                continue
            if filters.created_to is not None and record.created_at > filters.created_to:
                continue
            if term and term not in patient.name.lower() and term not in patient.identifier.lower():
                continue
            rows.append((replace(record), replace(session), patient))
        rows.sort(key=lambda row: row[0].session_start_time, reverse=True)
        return rows[skip:skip + limit], len(rows)


class InMemoryPatientRepository(PatientRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get_by_id(self, patient_id: UUID) -> Optional[Patient]:
        return self._store.patients.get(patient_id)

    async def create(self, patient: Patient) -> Patient:
        self._store.patients[patient.id] = patient
        return patient


class InMemoryDoctorRepository(DoctorRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get_by_id(self, doctor_id: UUID) -> Optional[Doctor]:
        return self._store.doctors.get(doctor_id)

    async def create(self, doctor: Doctor) -> Doctor:
        self._store.doctors[doctor.id] = doctor
        return doctor


class InMemoryRatingRepository(RatingRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def create(self, rating: SceneRating) -> SceneRating:
        self._store.ratings.append(rating)
        return rating

    async def list_for_session(self, session_id: UUID) -> Sequence[SceneRating]:
        return [rating for rating in self._store.ratings if rating.session_id == session_id]
