"""
Unit Tests for the Analytics Aggregator

Doctor scoping, timeframe windows and the aggregate shape.
"""

from datetime import datetime, timedelta, timezone

import pytest

from vrtherapy.domain.enums import AnalyticsTimeframe, PhobiaType, SessionStatus, SessionType
from vrtherapy.domain.timeutils import utc_now
from vrtherapy.services.analytics import AnalyticsAggregator
from vrtherapy.services.handshake import build_record
from vrtherapy.services.outcomes import apply_outcome

from tests.mocks import make_patient, make_session, telemetry_payload
from tests.mocks.repositories import InMemoryVRDataRepository


@pytest.fixture
def aggregator(repositories):
    return AnalyticsAggregator(repositories.vr_data)


def _seed(store, doctor_id, patient_id, *, start=None, created_at=None, **payload):
    session = make_session(
        doctor_id,
        patient_id,
        status=SessionStatus.COMPLETED,
        created_at=created_at or utc_now(),
        phobia_type=payload.pop("phobia_type", PhobiaType.CLAUSTROPHOBIA),
        session_type=payload.pop("session_type", SessionType.EXPOSURE_THERAPY),
    )
    store.sessions[session.id] = session
    if start is not None:
        payload["session_start_time"] = start
        payload["session_end_time"] = start + timedelta(minutes=25)
    record = apply_outcome(build_record(session, telemetry_payload(**payload)))
    store.records[record.id] = record
    return record


class UnscopedVRDataRepository(InMemoryVRDataRepository):
    """Ignores the doctor filter, as a faulty query would."""
    
    async def list_with_sessions(self, doctor_id, **filters):
        rows = []
        for record in self._store.records.values():
            session = self._store.sessions[record.session_id]
            rows.append((record, session))
        return rows


class TestEmptyAnalytics:
    
    async def test_no_records_gives_zeros(self, aggregator, doctor):
        """Test that an empty scope yields zero counts, not errors."""
        analytics = await aggregator.compute(doctor.id)
        
        assert analytics.timeframe == AnalyticsTimeframe.THREE_MONTHS
        assert analytics.total_sessions == 0
        assert analytics.average_improvement == 0.0
        assert analytics.average_effectiveness == 0.0
        assert analytics.phobia_breakdown == {}
        assert analytics.improvement_trend == []
        assert analytics.biometric_insights.stress_reduction_sessions == 0


class TestAggregation:
    """Tests for the aggregate values."""
    
    async def test_averages_and_breakdowns(self, aggregator, store, doctor, patient):
        _seed(store, doctor.id, patient.id)
        _seed(
            store, doctor.id, patient.id,
            fear_scores={"initial": 10, "final": 5},
            phobia_type=PhobiaType.AEROPHOBIA,
            session_type=SessionType.PROGRESS_CHECK,
        )
        
        analytics = await aggregator.compute(doctor.id)
        
        assert analytics.total_sessions == 2
        assert analytics.average_improvement == 56.25
        assert analytics.phobia_breakdown["Claustrophobia"].session_count == 1
        assert analytics.phobia_breakdown["Aerophobia"].average_improvement == 50.0
        assert analytics.session_type_breakdown == {
            "Exposure Therapy": 1,
            "Progress Check": 1,
        }
    
    async def test_trend_sorted_ascending(self, aggregator, store, doctor, patient):
        """Test that trend points are ordered by session start."""
        now = utc_now()
        for days_ago in (1, 20, 7):
            _seed(store, doctor.id, patient.id, start=now - timedelta(days=days_ago))
        
        analytics = await aggregator.compute(doctor.id)
        
        dates = [point.date for point in analytics.improvement_trend]
        assert dates == sorted(dates)
        assert analytics.improvement_trend[0].fear_score_reduction == 5
    
    async def test_heart_rate_insights(self, aggregator, store, doctor, patient):
        _seed(store, doctor.id, patient.id, biometric_data={"heart_rate": {"initial": 100, "final": 80}})
        _seed(store, doctor.id, patient.id, biometric_data={"heart_rate": {"initial": 90, "final": 95}})
        _seed(store, doctor.id, patient.id)
        
        analytics = await aggregator.compute(doctor.id)
        
        assert analytics.biometric_insights.average_heart_rate_reduction == 7.5
        assert analytics.biometric_insights.stress_reduction_sessions == 1
    
    async def test_patient_filter(self, aggregator, store, doctor, patient):
        other_patient = make_patient(doctor.id)
        store.patients[other_patient.id] = other_patient
        _seed(store, doctor.id, patient.id)
        _seed(store, doctor.id, other_patient.id)
        
        analytics = await aggregator.compute(doctor.id, patient_id=other_patient.id)
        
        assert analytics.total_sessions == 1


class TestScoping:
    """Tests for doctor isolation and timeframe windows."""
    
    async def test_other_doctors_records_excluded(self, aggregator, store, doctor, other_doctor, patient):
        foreign_patient = make_patient(other_doctor.id)
        _seed(store, other_doctor.id, foreign_patient.id)
        
        analytics = await aggregator.compute(doctor.id)
        
        assert analytics.total_sessions == 0
    
    async def test_out_of_scope_rows_dropped(self, store, doctor, other_doctor, patient):
        """Test that rows of another doctor are dropped even if the repository returns them."""
        foreign_patient = make_patient(other_doctor.id)
        _seed(store, doctor.id, patient.id)
        _seed(store, other_doctor.id, foreign_patient.id)
        aggregator = AnalyticsAggregator(UnscopedVRDataRepository(store))
        
        analytics = await aggregator.compute(doctor.id)
        
        assert analytics.total_sessions == 1
    
    @pytest.mark.parametrize(
        "timeframe,expected",
        [
            (AnalyticsTimeframe.ONE_MONTH, 1),
            (AnalyticsTimeframe.THREE_MONTHS, 2),
            (AnalyticsTimeframe.SIX_MONTHS, 3),
            (AnalyticsTimeframe.ONE_YEAR, 3),
        ],
    )
    async def test_window_by_session_creation(self, aggregator, store, doctor, patient, timeframe, expected):
        """Test that the window applies to when the session was created."""
        now = datetime(2026, 7, 15, 12, 0, tzinfo=timezone.utc)
        for days_ago in (10, 70, 150):
            _seed(store, doctor.id, patient.id, created_at=now - timedelta(days=days_ago))
        
        analytics = await aggregator.compute(doctor.id, timeframe, now=now)
        
        assert analytics.total_sessions == expected
        assert analytics.timeframe == timeframe


class TestTimeframeParsing:
    
    @pytest.mark.parametrize("raw", [None, "", "2weeks", "forever"])
    def test_unknown_falls_back_to_three_months(self, raw):
        assert AnalyticsTimeframe.parse(raw) == AnalyticsTimeframe.THREE_MONTHS
    
    def test_known_values(self):
        assert AnalyticsTimeframe.parse("1year").months == 12
        assert AnalyticsTimeframe.parse("6months").months == 6
