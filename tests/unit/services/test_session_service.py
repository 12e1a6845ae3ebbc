"""
Unit Tests for the Session Lifecycle Service

Scheduling, ownership, editing, cancellation and manual status
changes against in-memory repositories.
"""

import asyncio
import re
from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

import pytest

from vrtherapy.domain.enums import PhobiaType, SessionStatus, SessionType, VREnvironment
from vrtherapy.domain.errors import (
    DuplicateSessionToken,
    Forbidden,
    Immutable,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from vrtherapy.domain.models import PreSessionData, SessionConfig, VRScenario
from vrtherapy.domain.repositories import SessionFilters
from vrtherapy.domain.timeutils import utc_now
from vrtherapy.services.handshake import SessionTokenIssuer
from vrtherapy.services.sessions import SessionService

from tests.mocks import make_patient, make_session
from tests.mocks.repositories import InMemorySessionRepository

TOKEN_PATTERN = re.compile(r"^VR\d{13}[0-9A-Z]{9}$")


@pytest.fixture
def service(repositories):
    return SessionService(repositories)


def _create_kwargs(patient_id, **overrides):
    values = {
        "patient_id": patient_id,
        "session_type": SessionType.INITIAL_ASSESSMENT,
        "phobia_type": PhobiaType.ARACHNOPHOBIA,
        "vr_scenario": VRScenario(name="SpiderRoom", environment=VREnvironment.SPIDER_ROOM),
        "pre_session_data": PreSessionData(fear_score=9, anxiety_level=8),
        "scheduled_at": utc_now() + timedelta(days=2),
    }
    values.update(overrides)
    return values


class CollidingSessionRepository(InMemorySessionRepository):
    """Reports a token collision for the first `collisions` inserts."""
    
    def __init__(self, store, collisions):
        super().__init__(store)
        self.collisions = collisions
        self.attempted_tokens = []
    
    async def create(self, session):
        self.attempted_tokens.append(session.session_token)
        if self.collisions > 0:
            self.collisions -= 1
            raise DuplicateSessionToken(session.session_token)
        return await super().create(session)


class TestCreate:
    """Tests for scheduling sessions."""
    
    async def test_create_schedules_with_token(self, service, store, doctor, patient):
        """Test that a new session is Scheduled with a well-formed token."""
        session = await service.create(doctor.id, **_create_kwargs(patient.id))
        
        assert session.status == SessionStatus.SCHEDULED
        assert TOKEN_PATTERN.match(session.session_token)
        assert session.doctor_id == doctor.id
        assert session.session_config == SessionConfig()
        assert session.id in store.sessions
    
    async def test_tokens_are_unique(self, service, doctor, patient):
        first = await service.create(doctor.id, **_create_kwargs(patient.id))
        second = await service.create(doctor.id, **_create_kwargs(patient.id))
        
        assert first.session_token != second.session_token
    
    async def test_unknown_patient_not_found(self, service, doctor):
        with pytest.raises(NotFound):
            await service.create(doctor.id, **_create_kwargs(uuid4()))
    
    async def test_other_doctors_patient_forbidden(self, service, store, doctor, other_doctor):
        """Test that a doctor cannot schedule for another doctor's patient."""
        foreign = make_patient(other_doctor.id)
        store.patients[foreign.id] = foreign
        
        with pytest.raises(Forbidden):
            await service.create(doctor.id, **_create_kwargs(foreign.id))
        
        assert store.sessions == {}
    
    async def test_notes_too_long_rejected(self, service, doctor, patient):
        with pytest.raises(ValidationFailed):
            await service.create(doctor.id, **_create_kwargs(patient.id, notes="x" * 2001))


class TestTokenCollisions:
    """Tests for token collision retries."""
    
    async def test_collision_retried_with_fresh_token(self, store, doctor, patient):
        """Test that a collision is retried and never overwrites."""
        sessions = CollidingSessionRepository(store, collisions=1)
        service = SessionService(
            replace(store.repositories(), sessions=sessions),
            SessionTokenIssuer(max_attempts=3),
        )
        
        session = await service.create(doctor.id, **_create_kwargs(patient.id))
        
        assert len(sessions.attempted_tokens) == 2
        assert session.session_token == sessions.attempted_tokens[-1]
        assert len(store.sessions) == 1
    
    async def test_exhausted_attempts_raise(self, store, doctor, patient):
        sessions = CollidingSessionRepository(store, collisions=5)
        service = SessionService(
            replace(store.repositories(), sessions=sessions),
            SessionTokenIssuer(max_attempts=3),
        )
        
        with pytest.raises(DuplicateSessionToken):
            await service.create(doctor.id, **_create_kwargs(patient.id))
        
        assert len(sessions.attempted_tokens) == 3
        assert store.sessions == {}


class TestRead:
    """Tests for doctor-scoped reads."""
    
    async def test_get_owned_other_doctor_forbidden(self, service, store, other_doctor, patient):
        session = make_session(other_doctor.id, patient.id)
        store.sessions[session.id] = session
        
        with pytest.raises(Forbidden):
            await service.get_owned(uuid4(), session.id)
    
    async def test_get_missing_not_found(self, service, doctor):
        with pytest.raises(NotFound):
            await service.get_owned(doctor.id, uuid4())
    
    async def test_get_with_vr_data_without_record(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id)
        store.sessions[session.id] = session
        
        loaded, record = await service.get_with_vr_data(doctor.id, session.id)
        
        assert loaded.id == session.id
        assert record is None
    
    async def test_list_scoped_and_paginated(self, service, store, doctor, other_doctor, patient):
        """Test that listing only returns the doctor's sessions, soonest first."""
        now = utc_now()
        for days in (3, 1, 2):
            session = make_session(doctor.id, patient.id, scheduled_at=now + timedelta(days=days))
            store.sessions[session.id] = session
        foreign = make_session(other_doctor.id, patient.id)
        store.sessions[foreign.id] = foreign
        
        page, total = await service.list_sessions(doctor.id, skip=0, limit=2)
        
        assert total == 3
        assert len(page) == 2
        assert page[0].scheduled_at < page[1].scheduled_at
    
    async def test_list_filters_by_status(self, service, store, doctor, patient):
        scheduled = make_session(doctor.id, patient.id)
        cancelled = make_session(doctor.id, patient.id, status=SessionStatus.CANCELLED)
        store.sessions[scheduled.id] = scheduled
        store.sessions[cancelled.id] = cancelled
        
        page, total = await service.list_sessions(
            doctor.id,
            SessionFilters(status=SessionStatus.CANCELLED),
        )
        
        assert total == 1
        assert page[0].id == cancelled.id
    
    async def test_upcoming_only_future_scheduled(self, service, store, doctor, patient):
        """Test that upcoming skips past and non-Scheduled sessions."""
        now = utc_now()
        future = make_session(doctor.id, patient.id, scheduled_at=now + timedelta(hours=4))
        past = make_session(doctor.id, patient.id, scheduled_at=now - timedelta(hours=4))
        running = make_session(
            doctor.id, patient.id,
            status=SessionStatus.IN_PROGRESS,
            scheduled_at=now + timedelta(hours=1),
        )
        for session in (future, past, running):
            store.sessions[session.id] = session
        
        upcoming = await service.upcoming(doctor.id)
        
        assert [s.id for s in upcoming] == [future.id]


class TestUpdate:
    """Tests for editing sessions."""
    
    async def test_update_fields(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id)
        store.sessions[session.id] = session
        
        updated = await service.update(
            doctor.id,
            session.id,
            notes="Bring headphones",
            session_config=SessionConfig(duration=45, exposure_level=5),
        )
        
        assert updated.notes == "Bring headphones"
        assert updated.session_config.duration == 45
        assert updated.session_token == session.session_token
    
    @pytest.mark.parametrize("status", [SessionStatus.COMPLETED, SessionStatus.CANCELLED])
    async def test_terminal_session_immutable(self, service, store, doctor, patient, status):
        """Test that terminal sessions reject edits."""
        session = make_session(doctor.id, patient.id, status=status)
        store.sessions[session.id] = session
        
        with pytest.raises(Immutable):
            await service.update(doctor.id, session.id, notes="late edit")
    
    @pytest.mark.parametrize("field", ["status", "session_token", "doctor_id", "session_id", "patient_id"])
    async def test_protected_fields_rejected(self, service, store, doctor, patient, field):
        """Test that ownership, identity and status fields are not editable, even when named like the arguments."""
        session = make_session(doctor.id, patient.id)
        store.sessions[session.id] = session
        
        with pytest.raises(ValidationFailed):
            await service.update(doctor.id, session.id, **{field: "x"})
    
    async def test_update_loses_to_concurrent_completion(self, service, store, doctor, patient):
        """Test that an edit racing a completion does not resurrect the session."""
        session = make_session(doctor.id, patient.id, status=SessionStatus.IN_PROGRESS)
        store.sessions[session.id] = session
        
        original_get = store.repositories().sessions.get_by_id
        
        async def get_then_complete(session_id):
            loaded = await original_get(session_id)
            store.sessions[session_id] = make_session(
                doctor.id, patient.id,
                status=SessionStatus.COMPLETED,
                id=session_id,
                token=session.session_token,
            )
            return loaded
        
        service._repos.sessions.get_by_id = get_then_complete
        
        with pytest.raises(Immutable):
            await service.update(doctor.id, session.id, notes="too late")


class TestCancelAndComplete:
    """Tests for cancel and manual completion."""
    
    async def test_cancel_keeps_reason(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id)
        store.sessions[session.id] = session
        
        cancelled = await service.cancel(doctor.id, session.id, "Patient rescheduled")
        
        assert cancelled.status == SessionStatus.CANCELLED
        assert cancelled.notes == "Patient rescheduled"
        assert session.id in store.sessions
    
    async def test_cancel_without_reason_keeps_notes(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id, notes="Original")
        store.sessions[session.id] = session
        
        cancelled = await service.cancel(doctor.id, session.id)
        
        assert cancelled.notes == "Original"
    
    async def test_cancel_in_progress_rejected(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id, status=SessionStatus.IN_PROGRESS)
        store.sessions[session.id] = session
        
        with pytest.raises(InvalidTransition):
            await service.cancel(doctor.id, session.id)
    
    async def test_cancel_completed_immutable(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        store.sessions[session.id] = session
        
        with pytest.raises(Immutable):
            await service.cancel(doctor.id, session.id)
    
    async def test_complete_running_session(self, service, store, doctor, patient):
        """Test that manual completion records an end time and duration."""
        session = make_session(
            doctor.id, patient.id,
            status=SessionStatus.IN_PROGRESS,
            started_at=utc_now() - timedelta(minutes=30),
        )
        store.sessions[session.id] = session
        
        completed = await service.complete(doctor.id, session.id)
        
        assert completed.status == SessionStatus.COMPLETED
        assert completed.actual_duration == 30
    
    async def test_complete_scheduled_rejected(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id)
        store.sessions[session.id] = session
        
        with pytest.raises(InvalidTransition):
            await service.complete(doctor.id, session.id)
        
        assert store.sessions[session.id].status == SessionStatus.SCHEDULED
    
    async def test_manual_transition_scheduled_to_completed_rejected(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id)
        store.sessions[session.id] = session
        
        with pytest.raises(InvalidTransition):
            await service.transition(doctor.id, session.id, SessionStatus.COMPLETED)
    
    async def test_transition_other_doctor_forbidden(self, service, store, other_doctor, patient, doctor):
        session = make_session(doctor.id, patient.id)
        store.sessions[session.id] = session
        
        with pytest.raises(Forbidden):
            await service.transition(other_doctor.id, session.id, SessionStatus.CANCELLED)
    
    async def test_concurrent_cancel_and_start(self, store, doctor, patient):
        """Test that of two concurrent transitions from Scheduled exactly one wins."""
        session = make_session(doctor.id, patient.id)
        store.sessions[session.id] = session
        first = SessionService(store.repositories())
        second = SessionService(store.repositories())
        
        results = await asyncio.gather(
            first.transition(doctor.id, session.id, SessionStatus.CANCELLED),
            second.transition(doctor.id, session.id, SessionStatus.IN_PROGRESS),
            return_exceptions=True,
        )
        
        assert sum(isinstance(r, InvalidTransition) for r in results) == 1
        winner = next(r for r in results if not isinstance(r, Exception))
        assert store.sessions[session.id].status == winner.status
