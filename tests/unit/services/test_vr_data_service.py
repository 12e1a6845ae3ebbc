"""
Unit Tests for VR Session Data Service

Doctor-scoped reads, patient history, the filtered record list,
scene ratings and record corrections.
"""

from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

import pytest

from vrtherapy.domain.enums import PhobiaType, SessionStatus
from vrtherapy.domain.errors import Forbidden, NotFound, ValidationFailed
from vrtherapy.domain.models import SceneRating
from vrtherapy.domain.repositories import RecordFilters
from vrtherapy.domain.timeutils import utc_now
from vrtherapy.services.handshake import build_record
from vrtherapy.services.outcomes import VRDataService, apply_outcome

from tests.mocks import make_patient, make_session, telemetry_payload


@pytest.fixture
def service(repositories):
    return VRDataService(repositories)


def _seed_record(store, session, **payload_overrides):
    store.sessions[session.id] = session
    record = apply_outcome(build_record(session, telemetry_payload(**payload_overrides)))
    store.records[record.id] = record
    return record


class TestReads:
    """Tests for doctor-scoped record reads."""
    
    async def test_get_for_session(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        record = _seed_record(store, session)
        
        loaded, loaded_session = await service.get_for_session(doctor.id, session.id)
        
        assert loaded.id == record.id
        assert loaded_session.id == session.id
    
    async def test_get_for_session_without_record(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id)
        store.sessions[session.id] = session
        
        with pytest.raises(NotFound, match="VR session data"):
            await service.get_for_session(doctor.id, session.id)
    
    async def test_get_for_other_doctor_forbidden(self, service, store, doctor, other_doctor, patient):
        session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        _seed_record(store, session)
        
        with pytest.raises(Forbidden):
            await service.get_for_session(other_doctor.id, session.id)
    
    async def test_patient_history_newest_first(self, service, store, doctor, patient):
        """Test that history is ordered by session start, newest first, and paginated."""
        now = utc_now()
        for days_ago in (10, 2, 5):
            start = now - timedelta(days=days_ago)
            session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
            _seed_record(
                store,
                session,
                session_start_time=start,
                session_end_time=start + timedelta(minutes=25),
            )
        
        rows, total = await service.patient_history(doctor.id, patient.id, skip=0, limit=2)
        
        assert total == 3
        assert len(rows) == 2
        assert rows[0][0].session_start_time > rows[1][0].session_start_time
    
    async def test_patient_history_phobia_filter(self, service, store, doctor, patient):
        claustro = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        aero = make_session(
            doctor.id, patient.id,
            status=SessionStatus.COMPLETED,
            phobia_type=PhobiaType.AEROPHOBIA,
        )
        _seed_record(store, claustro)
        _seed_record(store, aero)
        
        rows, total = await service.patient_history(
            doctor.id,
            patient.id,
            phobia_type=PhobiaType.AEROPHOBIA,
        )
        
        assert total == 1
        assert rows[0][1].id == aero.id
    
    async def test_patient_history_other_doctor_forbidden(self, service, store, doctor, other_doctor):
        foreign = make_patient(other_doctor.id)
        store.patients[foreign.id] = foreign
        
        with pytest.raises(Forbidden):
            await service.patient_history(doctor.id, foreign.id)
    
    async def test_patient_history_unknown_patient(self, service, doctor):
        with pytest.raises(NotFound):
            await service.patient_history(doctor.id, uuid4())
    
    async def test_patient_history_paged_by_repository(self, service, store, doctor, patient):
        """Test that skip and limit reach the repository instead of slicing loaded rows."""
        for _ in range(3):
            _seed_record(store, make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED))
        
        rows, total = await service.patient_history(doctor.id, patient.id, skip=2, limit=2)
        
        assert store.page_requests == [(2, 2)]
        assert total == 3
        assert len(rows) == 1


class TestCorrect:
    """Tests for doctor corrections."""
    
    async def test_correction_keeps_derived_values(self, service, store, doctor, patient):
        """Test that derived metrics stay as stored unless recalculation is asked for."""
        session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        record = _seed_record(store, session)
        
        corrected = await service.correct(
            doctor.id,
            record.id,
            {"fear_scores": {"initial": 8, "final": 6}, "session_notes": {"therapist": "calm"}},
        )
        
        assert corrected.fear_scores.final == 6
        assert corrected.session_notes == {"therapist": "calm"}
        assert corrected.improvement_percentage == 62.5
        assert store.records[record.id].fear_scores.final == 6
    
    async def test_correction_with_recalculate(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        record = _seed_record(store, session)
        
        corrected = await service.correct(
            doctor.id,
            record.id,
            {"fear_scores": {"initial": 8, "final": 6}},
            recalculate=True,
        )
        
        assert corrected.improvement_percentage == 25.0
        assert corrected.effectiveness_score == 25.0
    
    async def test_unknown_field_rejected(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        record = _seed_record(store, session)
        
        with pytest.raises(ValidationFailed, match="session_id"):
            await service.correct(doctor.id, record.id, {"session_id": str(uuid4())})
    
    async def test_malformed_value_rejected(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        record = _seed_record(store, session)
        
        with pytest.raises(ValidationFailed):
            await service.correct(doctor.id, record.id, {"total_duration": "long"})
    
    async def test_other_doctor_cannot_correct(self, service, store, doctor, other_doctor, patient):
        session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        record = _seed_record(store, session)
        
        with pytest.raises(Forbidden):
            await service.correct(other_doctor.id, record.id, {"session_notes": {}})
    
    async def test_missing_record(self, service, doctor):
        with pytest.raises(NotFound):
            await service.correct(doctor.id, uuid4(), {})


class TestListRecords:
    """Tests for the doctor's filtered record list."""
    
    async def test_search_matches_name_or_code(self, service, store, doctor, patient):
        other = make_patient(doctor.id, name="Kamala Jayasuriya", identifier="PTZX0042")
        store.patients[other.id] = other
        _seed_record(store, make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED))
        _seed_record(store, make_session(doctor.id, other.id, status=SessionStatus.COMPLETED))
        
        by_name, name_total = await service.list_records(doctor.id, RecordFilters(search="jayasur"))
        by_code, code_total = await service.list_records(doctor.id, RecordFilters(search="zx00"))
        
        assert name_total == code_total == 1
        assert by_name[0][2].id == other.id
        assert by_code[0][2].id == other.id
    
    async def test_only_own_records_listed(self, service, store, doctor, other_doctor, patient):
        foreign_patient = make_patient(other_doctor.id)
        store.patients[foreign_patient.id] = foreign_patient
        mine = _seed_record(store, make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED))
        _seed_record(store, make_session(other_doctor.id, foreign_patient.id, status=SessionStatus.COMPLETED))
        
        rows, total = await service.list_records(doctor.id, RecordFilters())
        
        assert total == 1
        assert rows[0][0].id == mine.id
    
    async def test_created_date_range(self, service, store, doctor, patient):
        now = utc_now()
        old = _seed_record(store, make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED))
        store.records[old.id] = replace(old, created_at=now - timedelta(days=40))
        recent = _seed_record(store, make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED))
        
        rows, total = await service.list_records(
            doctor.id,
            RecordFilters(created_from=now - timedelta(days=7), created_to=now + timedelta(minutes=1)),
        )
        
        assert total == 1
        assert rows[0][0].id == recent.id
    
    async def test_phobia_filter_and_paging(self, service, store, doctor, patient):
        for _ in range(3):
            _seed_record(store, make_session(
                doctor.id, patient.id,
                status=SessionStatus.COMPLETED,
                phobia_type=PhobiaType.AEROPHOBIA,
            ))
        _seed_record(store, make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED))
        
        rows, total = await service.list_records(
            doctor.id,
            RecordFilters(phobia_type=PhobiaType.AEROPHOBIA),
            skip=0,
            limit=2,
        )
        
        assert total == 3
        assert len(rows) == 2
        assert all(session.phobia_type == PhobiaType.AEROPHOBIA for _, session, _ in rows)
    
    async def test_inverted_date_range_rejected(self, service, doctor):
        now = utc_now()
        
        with pytest.raises(ValidationFailed, match="dateFrom"):
            await service.list_records(
                doctor.id,
                RecordFilters(created_from=now, created_to=now - timedelta(days=1)),
            )


class TestRatingReads:
    """Tests for reading a session's scene ratings."""
    
    async def test_ratings_of_own_session(self, service, store, doctor, patient):
        session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        store.sessions[session.id] = session
        store.ratings.append(SceneRating(session.id, "u1", "forest", "img_3", 4))
        store.ratings.append(SceneRating(uuid4(), "u1", "forest", "img_4", 2))
        
        ratings = await service.ratings_for_session(doctor.id, session.id)
        
        assert [rating.image_id for rating in ratings] == ["img_3"]
    
    async def test_other_doctor_forbidden(self, service, store, doctor, other_doctor, patient):
        session = make_session(doctor.id, patient.id)
        store.sessions[session.id] = session
        
        with pytest.raises(Forbidden):
            await service.ratings_for_session(other_doctor.id, session.id)
