"""
Scene Rating Endpoints

Image ratings posted by the VR runtime (token-authenticated) and the
doctor-facing list of a session's ratings.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from vrtherapy.api.dependencies import get_current_doctor, get_vr_data_service, get_vr_handshake
from vrtherapy.api.v1.schemas import (
    RatingSubmitRequest,
    RatingSubmitResponse,
    SceneRatingListResponse,
    SceneRatingResponse,
)
from vrtherapy.domain.models import Doctor
from vrtherapy.services.handshake import VRHandshake
from vrtherapy.services.outcomes import VRDataService

router = APIRouter()


@router.post(
    "/submit",
    response_model=RatingSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a scene rating",
)
async def submit_rating(
    request: RatingSubmitRequest,
    handshake: VRHandshake = Depends(get_vr_handshake),
) -> RatingSubmitResponse:
    """Called by the VR runtime; the session token is its only credential."""
    rating = await handshake.submit_rating(request.session_token, request.to_payload())
    return RatingSubmitResponse(message="Rating submitted successfully", rating_id=rating.id)


@router.get(
    "/session/{session_id}",
    response_model=SceneRatingListResponse,
    summary="Ratings of one session",
)
async def get_session_ratings(
    session_id: UUID,
    doctor: Doctor = Depends(get_current_doctor),
    service: VRDataService = Depends(get_vr_data_service),
) -> SceneRatingListResponse:
    ratings = await service.ratings_for_session(doctor.id, session_id)
    return SceneRatingListResponse(
        ratings=[SceneRatingResponse.from_domain(rating) for rating in ratings],
    )
