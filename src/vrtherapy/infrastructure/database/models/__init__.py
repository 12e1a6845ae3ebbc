"""
Database ORM models package.
"""

from vrtherapy.infrastructure.database.models.participant_models import DoctorModel, PatientModel
from vrtherapy.infrastructure.database.models.scene_rating_model import SceneRatingModel
from vrtherapy.infrastructure.database.models.therapy_session_model import TherapySessionModel
from vrtherapy.infrastructure.database.models.vr_session_data_model import VRSessionDataModel

__all__ = [
    "DoctorModel",
    "PatientModel",
    "SceneRatingModel",
    "TherapySessionModel",
    "VRSessionDataModel",
]
