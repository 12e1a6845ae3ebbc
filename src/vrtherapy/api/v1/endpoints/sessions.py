"""
Therapy Session Endpoints

Doctor-facing session lifecycle plus the token-authenticated
configuration fetch used by the VR runtime.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, status

from vrtherapy.api.dependencies import (
    get_current_doctor,
    get_session_launcher,
    get_session_service,
    get_vr_handshake,
)
from vrtherapy.api.v1.schemas import (
    CancelSessionRequest,
    CreateSessionRequest,
    LaunchResponse,
    PaginationSchema,
    SessionDetailResponse,
    SessionListResponse,
    SessionMessageResponse,
    SessionResponse,
    StatusUpdateRequest,
    UpdateSessionRequest,
    VRConfigResponse,
    VRSessionDataResponse,
)
from vrtherapy.domain.enums import PhobiaType, SessionStatus
from vrtherapy.domain.models import Doctor
from vrtherapy.domain.repositories import SessionFilters
from vrtherapy.services.handshake import SessionLauncher, VRHandshake
from vrtherapy.services.sessions import SessionService

router = APIRouter()


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a therapy session",
)
async def create_session(
    request: CreateSessionRequest,
    doctor: Doctor = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    """
    Schedule a VR session for one of the doctor's patients.

    The session starts Scheduled with a freshly issued session token.
    """
    session = await service.create(
        doctor.id,
        patient_id=request.patient_id,
        session_type=request.session_type,
        phobia_type=request.phobia_type,
        vr_scenario=request.vr_scenario.to_domain(),
        session_config=request.session_config.to_domain(),
        pre_session_data=request.pre_session_data.to_domain(),
        scheduled_at=request.scheduled_date_time,
        notes=request.notes,
    )
    return SessionResponse.from_domain(session)


@router.get(
    "",
    response_model=SessionListResponse,
    summary="List the doctor's sessions",
)
async def list_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session_status: Optional[SessionStatus] = Query(None, alias="status"),
    patient_id: Optional[UUID] = Query(None, alias="patientId"),
    phobia_type: Optional[PhobiaType] = Query(None, alias="phobiaType"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    doctor: Doctor = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
) -> SessionListResponse:
    """Sessions ordered by scheduled time, soonest first."""
    filters = SessionFilters(
        status=session_status,
        patient_id=patient_id,
        phobia_type=phobia_type,
        scheduled_from=date_from,
        scheduled_to=date_to,
    )
    sessions, total = await service.list_sessions(
        doctor.id,
        filters,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return SessionListResponse(
        sessions=[SessionResponse.from_domain(s) for s in sessions],
        pagination=PaginationSchema.build(page, limit, total),
    )


@router.get(
    "/upcoming",
    response_model=list[SessionResponse],
    summary="Next scheduled sessions",
)
async def upcoming_sessions(
    limit: int = Query(5, ge=1, le=50),
    doctor: Doctor = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
) -> list[SessionResponse]:
    sessions = await service.upcoming(doctor.id, limit=limit)
    return [SessionResponse.from_domain(s) for s in sessions]


@router.get(
    "/vr-config/{session_token}",
    response_model=VRConfigResponse,
    summary="Session configuration for the VR runtime",
)
async def get_vr_config(
    session_token: str,
    handshake: VRHandshake = Depends(get_vr_handshake),
) -> VRConfigResponse:
    """
    Public endpoint authenticated only by the session token.

    Served for Scheduled, In Progress and Interrupted sessions.
    """
    config = await handshake.get_config(session_token)
    return VRConfigResponse.from_domain(config)


@router.get(
    "/{session_id}",
    response_model=SessionDetailResponse,
    summary="Session with its VR data",
)
async def get_session(
    session_id: UUID,
    doctor: Doctor = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
) -> SessionDetailResponse:
    session, record = await service.get_with_vr_data(doctor.id, session_id)
    return SessionDetailResponse(
        session=SessionResponse.from_domain(session),
        vr_data=VRSessionDataResponse.from_domain(record) if record else None,
    )


@router.put(
    "/{session_id}",
    response_model=SessionResponse,
    summary="Edit session fields",
)
async def update_session(
    session_id: UUID,
    request: UpdateSessionRequest,
    doctor: Doctor = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    """Completed and Cancelled sessions cannot be edited."""
    session = await service.update(doctor.id, session_id, **request.to_changes())
    return SessionResponse.from_domain(session)


@router.put(
    "/{session_id}/status",
    response_model=SessionMessageResponse,
    summary="Change session status",
)
async def update_session_status(
    session_id: UUID,
    request: StatusUpdateRequest,
    doctor: Doctor = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
) -> SessionMessageResponse:
    session = await service.transition(doctor.id, session_id, request.status)
    return SessionMessageResponse(
        message=f"Session status updated to {session.status.value}",
        session=SessionResponse.from_domain(session),
    )


@router.put(
    "/{session_id}/cancel",
    response_model=SessionMessageResponse,
    summary="Cancel a session",
)
async def cancel_session(
    session_id: UUID,
    request: Optional[CancelSessionRequest] = Body(None),
    doctor: Doctor = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
) -> SessionMessageResponse:
    """Sessions are never deleted; the optional reason is kept in the notes."""
    reason = request.cancellation_reason if request else None
    session = await service.cancel(doctor.id, session_id, reason)
    return SessionMessageResponse(
        message="Session cancelled successfully",
        session=SessionResponse.from_domain(session),
    )


@router.put(
    "/{session_id}/complete",
    response_model=SessionMessageResponse,
    summary="Manually complete a running session",
)
async def complete_session(
    session_id: UUID,
    doctor: Doctor = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
) -> SessionMessageResponse:
    session = await service.complete(doctor.id, session_id)
    return SessionMessageResponse(
        message="Session completed successfully",
        session=SessionResponse.from_domain(session),
    )


@router.post(
    "/{session_id}/start",
    response_model=LaunchResponse,
    summary="Launch the VR scenario",
)
async def start_session(
    session_id: UUID,
    background_tasks: BackgroundTasks,
    doctor: Doctor = Depends(get_current_doctor),
    launcher: SessionLauncher = Depends(get_session_launcher),
) -> LaunchResponse:
    """
    Move the session to In Progress and start the VR runtime.

    Responds once the process has been spawned; its exit is watched
    in the background. A failed spawn answers 500 and leaves the
    session Interrupted.
    """
    result, handle = await launcher.launch(doctor.id, session_id)
    background_tasks.add_task(launcher.watch, result.session_id, handle)
    return LaunchResponse.from_domain(result)
