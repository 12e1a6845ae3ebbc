"""
API v1 Router

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter

from vrtherapy.api.v1.endpoints.health import router as health_router
from vrtherapy.api.v1.endpoints.ratings import router as ratings_router
from vrtherapy.api.v1.endpoints.sessions import router as sessions_router
from vrtherapy.api.v1.endpoints.vr_data import router as vr_data_router

api_router = APIRouter()

api_router.include_router(
    health_router,
    prefix="/health",
    tags=["Health"],
)

api_router.include_router(
    sessions_router,
    prefix="/sessions",
    tags=["Sessions"],
)

api_router.include_router(
    vr_data_router,
    prefix="/vr-data",
    tags=["VR Data"],
)

api_router.include_router(
    ratings_router,
    prefix="/ratings",
    tags=["Ratings"],
)
