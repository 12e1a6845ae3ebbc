"""
Unit Tests for the Abandoned Session Sweeper
"""

from datetime import timedelta

import pytest

from vrtherapy.domain.enums import SessionStatus
from vrtherapy.domain.timeutils import utc_now
from vrtherapy.services.maintenance import AbandonedSessionSweeper

from tests.mocks import make_session
from tests.mocks.repositories import InMemorySessionRepository


@pytest.fixture
def sweeper(store):
    return AbandonedSessionSweeper(store.scope(), timeout_minutes=120, interval_seconds=60)


class TestSweepOnce:
    """Tests for a single sweep pass."""
    
    async def test_stale_session_interrupted(self, sweeper, store, doctor, patient):
        """Test that only In Progress sessions past the timeout are interrupted."""
        now = utc_now()
        stale = make_session(
            doctor.id, patient.id,
            status=SessionStatus.IN_PROGRESS,
            started_at=now - timedelta(hours=3),
        )
        fresh = make_session(
            doctor.id, patient.id,
            status=SessionStatus.IN_PROGRESS,
            started_at=now - timedelta(minutes=30),
        )
        scheduled = make_session(doctor.id, patient.id)
        for session in (stale, fresh, scheduled):
            store.sessions[session.id] = session
        
        count = await sweeper.sweep_once(now=now)
        
        assert count == 1
        assert store.sessions[stale.id].status == SessionStatus.INTERRUPTED
        assert store.sessions[stale.id].actual_end_time == now
        assert store.sessions[fresh.id].status == SessionStatus.IN_PROGRESS
        assert store.sessions[scheduled.id].status == SessionStatus.SCHEDULED
    
    async def test_nothing_to_sweep(self, sweeper):
        assert await sweeper.sweep_once() == 0
    
    async def test_session_completed_during_sweep_skipped(self, sweeper, store, doctor, patient, monkeypatch):
        """Test that a telemetry completion racing the sweep wins."""
        now = utc_now()
        session = make_session(
            doctor.id, patient.id,
            status=SessionStatus.IN_PROGRESS,
            started_at=now - timedelta(hours=5),
        )
        store.sessions[session.id] = session
        original = InMemorySessionRepository.list_stale_in_progress
        
        async def list_then_complete(self, started_before):
            rows = await original(self, started_before)
            store.sessions[session.id] = make_session(
                doctor.id, patient.id,
                status=SessionStatus.COMPLETED,
                id=session.id,
                token=session.session_token,
            )
            return rows
        
        monkeypatch.setattr(InMemorySessionRepository, "list_stale_in_progress", list_then_complete)
        
        count = await sweeper.sweep_once(now=now)
        
        assert count == 0
        assert store.sessions[session.id].status == SessionStatus.COMPLETED
