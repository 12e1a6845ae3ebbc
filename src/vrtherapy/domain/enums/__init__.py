"""Domain enums package."""

from vrtherapy.domain.enums.clinical import (
    AnalyticsTimeframe,
    PhobiaType,
    ScenarioDifficulty,
    SessionType,
    Specialization,
    VREnvironment,
)
from vrtherapy.domain.enums.session_status import SessionStatus

__all__ = [
    "AnalyticsTimeframe",
    "PhobiaType",
    "ScenarioDifficulty",
    "SessionStatus",
    "SessionType",
    "Specialization",
    "VREnvironment",
]
