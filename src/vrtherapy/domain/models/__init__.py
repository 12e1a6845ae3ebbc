"""Domain models package."""

from vrtherapy.domain.models.analytics import (
    BiometricInsights,
    PhobiaBreakdown,
    TrendPoint,
    VRAnalytics,
)
from vrtherapy.domain.models.handshake import (
    DoctorSnapshot,
    LaunchResult,
    PatientSnapshot,
    VRSessionConfig,
)
from vrtherapy.domain.models.participants import Doctor, DoctorIdentity, Patient, PhobiaProfile
from vrtherapy.domain.models.rating import SceneRating
from vrtherapy.domain.models.therapy_session import (
    PreSessionData,
    SessionConfig,
    TherapySession,
    VRScenario,
)
from vrtherapy.domain.models.vr_session_data import (
    BiometricData,
    BiometricPair,
    DataQuality,
    FearScores,
    VRInteraction,
    VRSessionData,
)

__all__ = [
    # Therapy session
    "TherapySession",
    "VRScenario",
    "SessionConfig",
    "PreSessionData",
    # VR outcome record
    "VRSessionData",
    "FearScores",
    "BiometricData",
    "BiometricPair",
    "VRInteraction",
    "DataQuality",
    # Runtime ratings
    "SceneRating",
    # Participants
    "Doctor",
    "DoctorIdentity",
    "Patient",
    "PhobiaProfile",
    # Handshake
    "VRSessionConfig",
    "LaunchResult",
    "PatientSnapshot",
    "DoctorSnapshot",
    # Analytics
    "VRAnalytics",
    "PhobiaBreakdown",
    "TrendPoint",
    "BiometricInsights",
]
