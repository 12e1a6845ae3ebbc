"""
VR Therapy Domain Layer

Core business entities, enumerations, errors and repository
interfaces. Independent of FastAPI and SQLAlchemy.
"""

from vrtherapy.domain.enums import (
    AnalyticsTimeframe,
    PhobiaType,
    ScenarioDifficulty,
    SessionStatus,
    SessionType,
    Specialization,
    VREnvironment,
)
from vrtherapy.domain.models import TherapySession, VRSessionData

__all__ = [
    # Entities
    "TherapySession",
    "VRSessionData",
    # Enums
    "AnalyticsTimeframe",
    "PhobiaType",
    "ScenarioDifficulty",
    "SessionStatus",
    "SessionType",
    "Specialization",
    "VREnvironment",
]
