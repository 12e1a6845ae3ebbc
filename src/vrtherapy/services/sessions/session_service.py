"""
Session Lifecycle Service

Doctor-facing operations on therapy sessions: scheduling, reading,
editing, cancelling and manual status changes. Every read is scoped
to the requesting doctor; every status write goes through the
status machine.
"""

from datetime import datetime
from typing import Any, Optional, Sequence
from uuid import UUID

from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.enums import PhobiaType, SessionStatus, SessionType
from vrtherapy.domain.errors import Forbidden, Immutable, InvalidTransition, NotFound
from vrtherapy.domain.models import (
    PreSessionData,
    SessionConfig,
    TherapySession,
    VRScenario,
    VRSessionData,
)
from vrtherapy.domain.repositories import Repositories, SessionFilters
from vrtherapy.domain.timeutils import utc_now
from vrtherapy.services.handshake.token_issuer import SessionTokenIssuer
from vrtherapy.services.sessions import state_machine

logger = get_logger(__name__)


class SessionService:
    """
    Therapy session lifecycle for one doctor-facing unit of work.

    Usage:
        service = SessionService(repositories)
        session = await service.create(doctor_id, patient_id=..., ...)
        session = await service.transition(doctor_id, session.id, SessionStatus.CANCELLED)
    """

    def __init__(
        self,
        repositories: Repositories,
        token_issuer: Optional[SessionTokenIssuer] = None,
    ) -> None:
        self._repos = repositories
        self._tokens = token_issuer or SessionTokenIssuer()

    async def create(
        self,
        doctor_id: UUID,
        *,
        patient_id: UUID,
        session_type: SessionType,
        phobia_type: PhobiaType,
        vr_scenario: VRScenario,
        pre_session_data: PreSessionData,
        scheduled_at: datetime,
        session_config: Optional[SessionConfig] = None,
        notes: Optional[str] = None,
    ) -> TherapySession:
        """
        Schedule a new session for one of the doctor's patients.

        Raises:
            NotFound: Patient does not exist
            Forbidden: Patient belongs to another doctor
            ValidationFailed: Invalid notes length
        """
        patient = await self._repos.patients.get_by_id(patient_id)
        if patient is None:
            raise NotFound("Patient not found")
        if patient.doctor_id != doctor_id:
            raise Forbidden("Not authorized to create session for this patient")

        session = TherapySession(
            doctor_id=doctor_id,
            patient_id=patient_id,
            session_type=session_type,
            phobia_type=phobia_type,
            vr_scenario=vr_scenario,
            pre_session_data=pre_session_data,
            scheduled_at=scheduled_at,
            session_config=session_config or SessionConfig(),
            notes=notes,
        )
        created = await self._tokens.create_with_token(self._repos.sessions, session)

        logger.info(
            "Therapy session scheduled",
            session_id=str(created.id),
            doctor_id=str(doctor_id),
            patient_id=str(patient_id),
            phobia_type=phobia_type.value,
        )
        return created

    async def get_owned(self, doctor_id: UUID, session_id: UUID) -> TherapySession:
        """
        Load a session the doctor owns.

        Raises:
            NotFound: No such session
            Forbidden: Session belongs to another doctor
        """
        session = await self._repos.sessions.get_by_id(session_id)
        if session is None:
            raise NotFound("Session not found")
        if not session.is_owned_by(doctor_id):
            raise Forbidden("Not authorized to access this session")
        return session

    async def get_with_vr_data(
        self,
        doctor_id: UUID,
        session_id: UUID,
    ) -> tuple[TherapySession, Optional[VRSessionData]]:
        """Session plus its VR record, if one was submitted."""
        session = await self.get_owned(doctor_id, session_id)
        record = await self._repos.vr_data.get_by_session_id(session.id)
        return session, record

    async def list_sessions(
        self,
        doctor_id: UUID,
        filters: Optional[SessionFilters] = None,
        *,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[Sequence[TherapySession], int]:
        return await self._repos.sessions.list_for_doctor(
            doctor_id,
            filters or SessionFilters(),
            skip=skip,
            limit=limit,
        )

    async def upcoming(self, doctor_id: UUID, *, limit: int = 5) -> Sequence[TherapySession]:
        return await self._repos.sessions.list_upcoming(doctor_id, utc_now(), limit=limit)

    async def update(self, doctor_id: UUID, session_id: UUID, /, **changes: Any) -> TherapySession:
        """
        Edit session fields.

        Status and token are not editable here. The write is
        conditioned on the status read before editing.

        Raises:
            Immutable: Session is Completed or Cancelled
            ValidationFailed: Non-editable or invalid field
            InvalidTransition: Status changed while editing
        """
        session = await self.get_owned(doctor_id, session_id)
        self._ensure_mutable(session, "update")

        edited = session.with_changes(**changes)
        fields = {name: getattr(edited, name) for name in changes}

        updated = await self._repos.sessions.update_if_status(session.id, session.status, **fields)
        if updated is None:
            await self._raise_concurrent_change(session)

        logger.info(
            "Therapy session updated",
            session_id=str(session.id),
            fields=sorted(changes),
        )
        return updated

    async def cancel(
        self,
        doctor_id: UUID,
        session_id: UUID,
        reason: Optional[str] = None,
    ) -> TherapySession:
        """
        Cancel a session, keeping the reason in its notes.

        Raises:
            Immutable: Session is already Completed or Cancelled
            InvalidTransition: Session is In Progress
        """
        session = await self.get_owned(doctor_id, session_id)
        self._ensure_mutable(session, "cancel")

        extra = {}
        if reason:
            extra["notes"] = session.with_changes(notes=reason).notes

        return await state_machine.transition(
            self._repos.sessions,
            session,
            SessionStatus.CANCELLED,
            **extra,
        )

    async def transition(
        self,
        doctor_id: UUID,
        session_id: UUID,
        target: SessionStatus,
    ) -> TherapySession:
        """
        Apply a manual status change requested by the owning doctor.

        Raises:
            NotFound, Forbidden: Ownership checks
            InvalidTransition: Pair outside the transition table
        """
        session = await self.get_owned(doctor_id, session_id)
        return await state_machine.transition(self._repos.sessions, session, target)

    async def complete(self, doctor_id: UUID, session_id: UUID) -> TherapySession:
        """
        Manually complete a running session.

        Raises:
            InvalidTransition: Session is not In Progress
        """
        session = await self.get_owned(doctor_id, session_id)
        if session.status != SessionStatus.IN_PROGRESS:
            raise InvalidTransition(
                "Only sessions in progress can be completed",
                details={"from": session.status.value, "to": SessionStatus.COMPLETED.value},
            )
        return await state_machine.transition(self._repos.sessions, session, SessionStatus.COMPLETED)

    @staticmethod
    def _ensure_mutable(session: TherapySession, action: str) -> None:
        if session.status.is_terminal:
            raise Immutable(f"Cannot {action} a {session.status.value.lower()} session")

    async def _raise_concurrent_change(self, session: TherapySession) -> None:
        latest = await self._repos.sessions.get_by_id(session.id)
        if latest is None:
            raise NotFound("Session not found")
        self._ensure_mutable(latest, "update")
        raise InvalidTransition(
            "Session status changed concurrently",
            details={"from": session.status.value, "to": latest.status.value},
        )
