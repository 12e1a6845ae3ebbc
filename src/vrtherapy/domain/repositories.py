"""
Repository Interfaces

Persistence collaborators used by the session core. Implementations
return domain dataclasses, never ORM rows, and must provide:
- compare-and-swap status updates keyed on (session id, expected status)
- unique session tokens
- at most one VR record per session

ARCHITECTURE: Cross-entity reads are explicit, separate lookups
(session, then patient, then doctor) composed by the services.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Sequence
from uuid import UUID

from vrtherapy.domain.enums import PhobiaType, SessionStatus
from vrtherapy.domain.models import Doctor, Patient, SceneRating, TherapySession, VRSessionData


@dataclass(frozen=True)
class SessionFilters:
    """Optional filters for listing a doctor's sessions."""
    
    status: Optional[SessionStatus] = None
    patient_id: Optional[UUID] = None
    phobia_type: Optional[PhobiaType] = None
    scheduled_from: Optional[datetime] = None
    scheduled_to: Optional[datetime] = None


@dataclass(frozen=True)
class RecordFilters:
    """Optional filters for listing a doctor's VR records."""
    
    patient_id: Optional[UUID] = None
    phobia_type: Optional[PhobiaType] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    # Case-insensitive substring of the patient name or identifier
    search: Optional[str] = None


# (record, its session, the session's patient)
RecordRow = tuple[VRSessionData, TherapySession, Patient]


class TherapySessionRepository(ABC):
    """Therapy session persistence."""
    
    @abstractmethod
    async def get_by_id(self, session_id: UUID) -> Optional[TherapySession]:
        """Get a session by id."""
    
    @abstractmethod
    async def get_by_token(self, session_token: str) -> Optional[TherapySession]:
        """Get a session by its VR session token."""
    
    @abstractmethod
    async def create(self, session: TherapySession) -> TherapySession:
        """
        Insert a new session.
        
        Raises:
            DuplicateSessionToken: If the token is already taken
        """
    
    @abstractmethod
    async def update_if_status(
        self,
        session_id: UUID,
        expected_status: SessionStatus,
        **changes: Any,
    ) -> Optional[TherapySession]:
        """
        Apply changes only if the stored status still equals expected_status.
        
        Returns:
            Updated session, or None when the status changed concurrently
            (or the session vanished)
        """
    
    @abstractmethod
    async def list_for_doctor(
        self,
        doctor_id: UUID,
        filters: SessionFilters,
        *,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[Sequence[TherapySession], int]:
        """List a doctor's sessions ordered by scheduled time, with total count."""
    
    @abstractmethod
    async def list_upcoming(
        self,
        doctor_id: UUID,
        now: datetime,
        *,
        limit: int = 5,
    ) -> Sequence[TherapySession]:
        """Scheduled sessions of a doctor from now on, soonest first."""
    
    @abstractmethod
    async def list_stale_in_progress(self, started_before: datetime) -> Sequence[TherapySession]:
        """In Progress sessions whose actual start precedes started_before."""


class VRSessionDataRepository(ABC):
    """VR outcome record persistence."""
    
    @abstractmethod
    async def get_by_id(self, record_id: UUID) -> Optional[VRSessionData]:
        """Get a record by id."""
    
    @abstractmethod
    async def get_by_session_id(self, session_id: UUID) -> Optional[VRSessionData]:
        """Get the record of a therapy session, if any."""
    
    @abstractmethod
    async def create(self, record: VRSessionData) -> VRSessionData:
        """
        Insert a record.
        
        Raises:
            DuplicateRecord: If the session already has a record
        """
    
    @abstractmethod
    async def update(self, record: VRSessionData) -> VRSessionData:
        """Persist corrections to an existing record."""
    
    @abstractmethod
    async def list_with_sessions(
        self,
        doctor_id: UUID,
        *,
        patient_id: Optional[UUID] = None,
        phobia_type: Optional[PhobiaType] = None,
        sessions_created_since: Optional[datetime] = None,
    ) -> Sequence[tuple[VRSessionData, TherapySession]]:
        """
        Records joined with their sessions, restricted to the doctor's sessions.
        
        Ordered by session_start_time descending.
        """
    
    @abstractmethod
    async def list_page(
        self,
        doctor_id: UUID,
        filters: RecordFilters,
        *,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[Sequence[RecordRow], int]:
        """
        One page of the doctor's records with session and patient.
        
        Ordered by session_start_time descending. The count covers
        every row matching the filters, not just the page.
        """


class RatingRepository(ABC):
    """Scene rating storage."""
    
    @abstractmethod
    async def create(self, rating: SceneRating) -> SceneRating:
        """Insert a rating."""
    
    @abstractmethod
    async def list_for_session(self, session_id: UUID) -> Sequence[SceneRating]:
        """Ratings of a session in submission order."""


class PatientRepository(ABC):
    """Patient record storage (profile management lives elsewhere)."""
    
    @abstractmethod
    async def get_by_id(self, patient_id: UUID) -> Optional[Patient]:
        """Get a patient by id."""
    
    @abstractmethod
    async def create(self, patient: Patient) -> Patient:
        """Insert a patient record."""


class DoctorRepository(ABC):
    """Doctor record storage (profile management lives elsewhere)."""
    
    @abstractmethod
    async def get_by_id(self, doctor_id: UUID) -> Optional[Doctor]:
        """Get a doctor by id."""
    
    @abstractmethod
    async def create(self, doctor: Doctor) -> Doctor:
        """Insert a doctor record."""


@dataclass
class Repositories:
    """Repositories sharing one unit of work (one database transaction)."""
    
    sessions: TherapySessionRepository
    vr_data: VRSessionDataRepository
    patients: PatientRepository
    doctors: DoctorRepository
    ratings: RatingRepository


# Opens a new unit of work outside the request scope (background tasks)
RepositoryScope = Callable[[], AbstractAsyncContextManager[Repositories]]
