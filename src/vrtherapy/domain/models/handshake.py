"""
VR Handshake Value Objects

Snapshots handed to the VR runtime and to the doctor who launched
it. They never contain the session token of another session and
the runtime-facing config never echoes the token back.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from vrtherapy.domain.enums import PhobiaType, SessionStatus, SessionType, Specialization
from vrtherapy.domain.models.participants import PhobiaProfile
from vrtherapy.domain.models.therapy_session import PreSessionData, SessionConfig, VRScenario


@dataclass(frozen=True)
class PatientSnapshot:
    name: str
    identifier: str
    phobias: tuple[PhobiaProfile, ...]


@dataclass(frozen=True)
class DoctorSnapshot:
    name: str
    specialization: Specialization


@dataclass(frozen=True)
class VRSessionConfig:
    """Read-only configuration returned to the VR runtime for a token."""
    
    session_id: UUID
    patient: PatientSnapshot
    doctor: DoctorSnapshot
    session_type: SessionType
    phobia_type: PhobiaType
    vr_scenario: VRScenario
    session_config: SessionConfig
    pre_session_data: PreSessionData


@dataclass(frozen=True)
class LaunchResult:
    """What the doctor sees after a successful launch."""
    
    session_id: UUID
    session_token: str
    status: SessionStatus
    start_time: Optional[datetime]
    patient: PatientSnapshot
    vr_scenario: VRScenario
    session_config: SessionConfig
    pre_session_data: PreSessionData
