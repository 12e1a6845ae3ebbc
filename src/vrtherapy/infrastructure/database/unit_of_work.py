"""
Unit of Work

Binds the repositories to one database session, so everything
done through a Repositories bundle commits or rolls back together.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from vrtherapy.domain.repositories import Repositories
from vrtherapy.infrastructure.database.connection import DatabaseManager, get_db_manager
from vrtherapy.infrastructure.database.repositories import (
    SqlDoctorRepository,
    SqlPatientRepository,
    SqlRatingRepository,
    SqlTherapySessionRepository,
    SqlVRSessionDataRepository,
)


def build_repositories(session: AsyncSession) -> Repositories:
    """Repositories sharing the given session."""
    return Repositories(
        sessions=SqlTherapySessionRepository(session),
        vr_data=SqlVRSessionDataRepository(session),
        patients=SqlPatientRepository(session),
        doctors=SqlDoctorRepository(session),
        ratings=SqlRatingRepository(session),
    )


@asynccontextmanager
async def repositories_scope(
    db: Optional[DatabaseManager] = None,
) -> AsyncGenerator[Repositories, None]:
    """
    Open a new unit of work.
    
    Usage:
        async with repositories_scope() as repos:
            session = await repos.sessions.get_by_id(session_id)
    """
    manager = db or get_db_manager()
    async with manager.session() as session:
        yield build_repositories(session)
