"""
VR Session Data Endpoints

Telemetry intake from the VR runtime (token-authenticated) and
doctor-facing outcome records and analytics.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from vrtherapy.api.dependencies import (
    get_analytics_aggregator,
    get_current_doctor,
    get_vr_data_service,
    get_vr_handshake,
)
from vrtherapy.api.v1.schemas import (
    AnalyticsResponse,
    PaginationSchema,
    TelemetrySubmitRequest,
    TelemetrySubmitResponse,
    VRDataCorrectionRequest,
    VRHistoryResponse,
    VRRecordListItem,
    VRRecordListResponse,
    VRSessionDataResponse,
)
from vrtherapy.domain.enums import AnalyticsTimeframe, PhobiaType
from vrtherapy.domain.models import Doctor
from vrtherapy.domain.repositories import RecordFilters
from vrtherapy.domain.timeutils import as_utc
from vrtherapy.services.analytics import AnalyticsAggregator
from vrtherapy.services.handshake import VRHandshake
from vrtherapy.services.outcomes import VRDataService

router = APIRouter()


@router.post(
    "/submit",
    response_model=TelemetrySubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit VR session telemetry",
)
async def submit_vr_data(
    request: TelemetrySubmitRequest,
    handshake: VRHandshake = Depends(get_vr_handshake),
) -> TelemetrySubmitResponse:
    """
    One-time outcome submission by the VR runtime.

    Stores the record with its derived improvement and effectiveness
    and completes the session in the same transaction. A second
    submission for the same session answers 409.
    """
    record = await handshake.submit_telemetry(request.session_token, request.to_payload())
    return TelemetrySubmitResponse(
        message="VR session data submitted successfully",
        vr_session_data=VRSessionDataResponse.from_domain(record),
        improvement_percentage=record.improvement_percentage,
        effectiveness_score=record.effectiveness_score,
    )


@router.get(
    "",
    response_model=VRRecordListResponse,
    summary="Search the doctor's VR session records",
)
async def list_vr_data(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    phobia_type: Optional[PhobiaType] = Query(None, alias="phobiaType"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom", description="Records created on or after"),
    date_to: Optional[datetime] = Query(None, alias="dateTo", description="Records created on or before"),
    search: Optional[str] = Query(None, max_length=100, description="Patient name or patient code"),
    doctor: Doctor = Depends(get_current_doctor),
    service: VRDataService = Depends(get_vr_data_service),
) -> VRRecordListResponse:
    """Records of the doctor's own sessions only, newest session first."""
    filters = RecordFilters(
        phobia_type=phobia_type,
        created_from=as_utc(date_from) if date_from else None,
        created_to=as_utc(date_to) if date_to else None,
        search=search.strip() if search and search.strip() else None,
    )
    rows, total = await service.list_records(
        doctor.id,
        filters,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return VRRecordListResponse(
        sessions=[VRRecordListItem.from_row(r, s, p) for r, s, p in rows],
        pagination=PaginationSchema.build(page, limit, total),
    )


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Outcome analytics for the doctor's patients",
)
async def get_analytics(
    timeframe: Optional[str] = Query(None, description="1month, 3months, 6months or 1year"),
    patient_id: Optional[UUID] = Query(None, alias="patientId"),
    doctor: Doctor = Depends(get_current_doctor),
    aggregator: AnalyticsAggregator = Depends(get_analytics_aggregator),
) -> AnalyticsResponse:
    """Unknown timeframes fall back to three months."""
    analytics = await aggregator.compute(
        doctor.id,
        AnalyticsTimeframe.parse(timeframe),
        patient_id,
    )
    return AnalyticsResponse.from_domain(analytics)


@router.get(
    "/session/{session_id}",
    response_model=VRSessionDataResponse,
    summary="VR data of one session",
)
async def get_session_vr_data(
    session_id: UUID,
    doctor: Doctor = Depends(get_current_doctor),
    service: VRDataService = Depends(get_vr_data_service),
) -> VRSessionDataResponse:
    record, session = await service.get_for_session(doctor.id, session_id)
    return VRSessionDataResponse.from_domain(record, session)


@router.get(
    "/patient/{patient_id}",
    response_model=VRHistoryResponse,
    summary="Patient's VR session history",
)
async def get_patient_history(
    patient_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    phobia_type: Optional[PhobiaType] = Query(None, alias="phobiaType"),
    doctor: Doctor = Depends(get_current_doctor),
    service: VRDataService = Depends(get_vr_data_service),
) -> VRHistoryResponse:
    rows, total = await service.patient_history(
        doctor.id,
        patient_id,
        phobia_type=phobia_type,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return VRHistoryResponse(
        vr_session_data=[VRSessionDataResponse.from_domain(r, s) for r, s in rows],
        pagination=PaginationSchema.build(page, limit, total),
    )


@router.put(
    "/{record_id}",
    response_model=VRSessionDataResponse,
    summary="Correct a VR session record",
)
async def correct_vr_data(
    record_id: UUID,
    request: VRDataCorrectionRequest,
    recalculate: bool = Query(False, description="Re-derive improvement and effectiveness"),
    doctor: Doctor = Depends(get_current_doctor),
    service: VRDataService = Depends(get_vr_data_service),
) -> VRSessionDataResponse:
    """Derived metrics are kept as stored unless recalculate is set."""
    record = await service.correct(
        doctor.id,
        record_id,
        request.to_payload(only_set=True),
        recalculate=recalculate,
    )
    return VRSessionDataResponse.from_domain(record)
