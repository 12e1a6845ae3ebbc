"""
API Dependencies

FastAPI dependency wiring for repositories, services and the
authenticated doctor. Tests swap collaborators through
app.dependency_overrides on the get_* functions below.
"""

from functools import lru_cache
from typing import AsyncGenerator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from vrtherapy.config import get_settings
from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.errors import Unauthorized
from vrtherapy.domain.models import Doctor
from vrtherapy.domain.repositories import Repositories, RepositoryScope
from vrtherapy.infrastructure.auth import Authenticator, JWTAuthenticator
from vrtherapy.infrastructure.database import (
    build_repositories,
    get_async_session,
    repositories_scope,
)
from vrtherapy.services.analytics import AnalyticsAggregator
from vrtherapy.services.handshake import (
    ScenarioRunner,
    SessionLauncher,
    SessionTokenIssuer,
    SubprocessScenarioRunner,
    VRHandshake,
)
from vrtherapy.services.outcomes import VRDataService
from vrtherapy.services.sessions import SessionService

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_repositories(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[Repositories, None]:
    """Repositories bound to the request's unit of work."""
    yield build_repositories(session)


def get_repository_scope() -> RepositoryScope:
    """Factory for units of work that outlive the request (launch, watcher)."""
    return repositories_scope


@lru_cache()
def get_scenario_runner() -> ScenarioRunner:
    return SubprocessScenarioRunner()


@lru_cache()
def get_authenticator() -> Authenticator:
    return JWTAuthenticator()


async def get_current_doctor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    authenticator: Authenticator = Depends(get_authenticator),
    repositories: Repositories = Depends(get_repositories),
) -> Doctor:
    """
    Resolve the calling doctor from the bearer token.

    Raises:
        Unauthorized: Missing/invalid token, unknown or inactive doctor
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("Not authorized, no token")

    identity = authenticator.verify(credentials.credentials)
    doctor = await repositories.doctors.get_by_id(identity.doctor_id)
    if doctor is None or not doctor.is_active:
        logger.info("Token subject is not an active doctor", doctor_id=str(identity.doctor_id))
        raise Unauthorized("Not authorized, token failed")
    return doctor


def get_session_service(repositories: Repositories = Depends(get_repositories)) -> SessionService:
    attempts = get_settings().sessions.token_issue_attempts
    return SessionService(repositories, SessionTokenIssuer(max_attempts=attempts))


def get_vr_handshake(repositories: Repositories = Depends(get_repositories)) -> VRHandshake:
    return VRHandshake(repositories)


def get_vr_data_service(repositories: Repositories = Depends(get_repositories)) -> VRDataService:
    return VRDataService(repositories)


def get_analytics_aggregator(
    repositories: Repositories = Depends(get_repositories),
) -> AnalyticsAggregator:
    return AnalyticsAggregator(repositories.vr_data)


def get_session_launcher(
    scope: RepositoryScope = Depends(get_repository_scope),
    runner: ScenarioRunner = Depends(get_scenario_runner),
) -> SessionLauncher:
    return SessionLauncher(scope, runner)
