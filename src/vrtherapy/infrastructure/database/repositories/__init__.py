"""
SQLAlchemy repository implementations.
"""

from vrtherapy.infrastructure.database.repositories.base import BaseRepository
from vrtherapy.infrastructure.database.repositories.participant_repository import (
    SqlDoctorRepository,
    SqlPatientRepository,
)
from vrtherapy.infrastructure.database.repositories.rating_repository import SqlRatingRepository
from vrtherapy.infrastructure.database.repositories.session_repository import (
    SqlTherapySessionRepository,
)
from vrtherapy.infrastructure.database.repositories.vr_data_repository import (
    SqlVRSessionDataRepository,
)

__all__ = [
    "BaseRepository",
    "SqlDoctorRepository",
    "SqlPatientRepository",
    "SqlRatingRepository",
    "SqlTherapySessionRepository",
    "SqlVRSessionDataRepository",
]
