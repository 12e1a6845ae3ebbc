"""
Unit Tests for Domain Models

Value object validation, session editing rules and time helpers.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from vrtherapy.domain.enums import PhobiaType, ScenarioDifficulty, SessionStatus, VREnvironment
from vrtherapy.domain.errors import AlreadySubmitted, LaunchFailed, NotFound, ValidationFailed
from vrtherapy.domain.models import (
    BiometricData,
    FearScores,
    PhobiaProfile,
    PreSessionData,
    SceneRating,
    SessionConfig,
    VRInteraction,
    VRScenario,
)
from vrtherapy.domain.timeutils import as_utc, months_before, parse_datetime

from tests.mocks import make_session


class TestValueObjects:
    """Tests for value object validation."""
    
    def test_scenario_requires_name(self):
        with pytest.raises(ValidationFailed):
            VRScenario(name="  ", environment=VREnvironment.ELEVATOR)
    
    def test_scenario_round_trip_defaults(self):
        scenario = VRScenario.from_dict({"name": "Lift", "environment": "Elevator"})
        
        assert scenario.difficulty == ScenarioDifficulty.BEGINNER
        assert scenario.to_dict()["environment"] == "Elevator"
    
    @pytest.mark.parametrize("duration", [0, -5])
    def test_config_duration_positive(self, duration):
        with pytest.raises(ValidationFailed):
            SessionConfig(duration=duration)
    
    @pytest.mark.parametrize("level", [0, 11])
    def test_config_exposure_range(self, level):
        with pytest.raises(ValidationFailed):
            SessionConfig(exposure_level=level)
    
    def test_config_from_dict_ignores_unknown_keys(self):
        config = SessionConfig.from_dict({"duration": 20, "legacy_flag": True})
        
        assert config.duration == 20
    
    @pytest.mark.parametrize("score", [-1, 10.5])
    def test_pre_session_fear_range(self, score):
        with pytest.raises(ValidationFailed):
            PreSessionData(fear_score=score)
    
    def test_pre_session_fear_required(self):
        with pytest.raises(ValidationFailed):
            PreSessionData.from_dict({"anxiety_level": 3})
    
    def test_fear_scores_require_both(self):
        with pytest.raises(ValidationFailed, match="Final"):
            FearScores.from_dict({"initial": 7})
    
    def test_biometrics_negative_rejected(self):
        with pytest.raises(ValidationFailed):
            BiometricData.from_dict({"skin_conductance": {"initial": -1, "final": 2}})
    
    def test_biometrics_empty_pair_rejected(self):
        with pytest.raises(ValidationFailed, match="Skin conductance"):
            BiometricData.from_dict({"skin_conductance": {}})
    
    def test_biometrics_absent_sections_allowed(self):
        biometrics = BiometricData.from_dict({"heart_rate": None})
        
        assert biometrics.heart_rate is None
        assert biometrics.skin_conductance is None
    
    def test_interaction_timestamp_parsed(self):
        interaction = VRInteraction.from_dict({
            "timestamp": "2026-02-01T09:30:00",
            "object_id": "door",
            "interaction_type": "open",
        })
        
        assert interaction.timestamp.tzinfo == timezone.utc
    
    def test_phobia_profile_round_trip(self):
        profile = PhobiaProfile(type=PhobiaType.CYNOPHOBIA, severity=4)
        
        assert PhobiaProfile.from_dict(profile.to_dict()) == profile
    
    def test_scene_rating_from_payload(self):
        session_id = uuid4()
        
        rating = SceneRating.from_payload(session_id, {
            "user_id": 17,
            "scene_id": "bridge",
            "image_id": "img_5",
            "rate": "4.5",
        })
        
        assert rating.session_id == session_id
        assert rating.user_id == "17"
        assert rating.rate == 4.5
        assert rating.submitted_at.tzinfo is not None
    
    @pytest.mark.parametrize("rate", ["high", float("nan")])
    def test_scene_rating_bad_rate_rejected(self, rate):
        payload = {"user_id": "u", "scene_id": "s", "image_id": "i", "rate": rate}
        
        with pytest.raises(ValidationFailed):
            SceneRating.from_payload(uuid4(), payload)


class TestTherapySession:
    """Tests for the session entity."""
    
    def test_duration_none_until_ended(self):
        session = make_session(uuid4(), uuid4(), status=SessionStatus.IN_PROGRESS)
        
        assert session.actual_duration is None
        assert session.is_active
    
    def test_duration_rounded_minutes(self):
        start = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
        session = make_session(
            uuid4(), uuid4(),
            status=SessionStatus.COMPLETED,
            started_at=start,
            actual_end_time=start + timedelta(minutes=24, seconds=40),
        )
        
        assert session.actual_duration == 25
    
    def test_naive_timestamps_become_utc(self):
        session = make_session(uuid4(), uuid4(), scheduled_at=datetime(2026, 5, 1, 9, 0))
        
        assert session.scheduled_at.tzinfo == timezone.utc
    
    def test_with_changes_rejects_status(self):
        session = make_session(uuid4(), uuid4())
        
        with pytest.raises(ValidationFailed, match="status"):
            session.with_changes(status=SessionStatus.COMPLETED)
    
    def test_terminal_states(self):
        assert SessionStatus.COMPLETED.is_terminal
        assert SessionStatus.CANCELLED.is_terminal
        assert not SessionStatus.INTERRUPTED.is_terminal


class TestErrors:
    """Tests for the error taxonomy."""
    
    def test_error_body_with_details(self):
        error = NotFound("Session not found", details={"id": "x"})
        
        assert error.to_dict() == {
            "error": "not_found",
            "message": "Session not found",
            "details": {"id": "x"},
        }
    
    def test_status_codes(self):
        assert AlreadySubmitted("dup").status_code == 409
        assert LaunchFailed("boom").status_code == 500
        assert ValidationFailed("bad").status_code == 400


class TestTimeHelpers:
    """Tests for UTC helpers."""
    
    def test_months_before_clamps_day(self):
        moment = datetime(2026, 5, 31, 8, 0, tzinfo=timezone.utc)
        
        assert months_before(moment, 3) == datetime(2026, 2, 28, 8, 0, tzinfo=timezone.utc)
    
    def test_months_before_leap_year(self):
        moment = datetime(2028, 3, 31, tzinfo=timezone.utc)
        
        assert months_before(moment, 1) == datetime(2028, 2, 29, tzinfo=timezone.utc)
    
    def test_months_before_crosses_year(self):
        moment = datetime(2026, 1, 15, tzinfo=timezone.utc)
        
        assert months_before(moment, 12) == datetime(2025, 1, 15, tzinfo=timezone.utc)
        assert months_before(moment, 1) == datetime(2025, 12, 15, tzinfo=timezone.utc)
    
    def test_as_utc_converts_offsets(self):
        value = datetime(2026, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        
        assert as_utc(value) == datetime(2026, 1, 1, 6, 30, tzinfo=timezone.utc)
        assert as_utc(None) is None
    
    def test_parse_datetime_accepts_z_suffix(self):
        assert parse_datetime("2026-04-02T10:00:00Z") == datetime(2026, 4, 2, 10, tzinfo=timezone.utc)
