"""
Health Endpoints

Liveness and readiness checks. Readiness depends on the database only:
the VR runtime is started per session and its absence surfaces as a
launch failure, not as an unready service.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from vrtherapy import __version__
from vrtherapy.config import get_settings
from vrtherapy.infrastructure.database import DatabaseManager, get_db_manager

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str


class ReadinessResponse(BaseModel):
    ready: bool
    components: dict[str, bool]


def _health(status: str) -> HealthResponse:
    return HealthResponse(status=status, version=__version__, environment=get_settings().env)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Basic health check endpoint for load balancers",
)
async def health_check() -> HealthResponse:
    return _health("healthy")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Readiness check including the database",
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(db: DatabaseManager = Depends(get_db_manager)):
    """200 when the database answers, 503 otherwise."""
    components = {"database": await db.health_check()}
    ready = all(components.values())
    
    body = ReadinessResponse(ready=ready, components=components)
    if not ready:
        return JSONResponse(status_code=503, content=body.model_dump())
    return body


@router.get(
    "/live",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Kubernetes liveness check endpoint",
)
async def liveness_check() -> HealthResponse:
    return _health("alive")
