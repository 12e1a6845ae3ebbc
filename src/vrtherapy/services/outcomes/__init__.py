"""Outcome computation for submitted VR telemetry."""

from vrtherapy.services.outcomes.outcome_engine import (
    Outcome,
    apply_outcome,
    compute_outcome,
    effectiveness_score,
    improvement_percentage,
)
from vrtherapy.services.outcomes.vr_data_service import VRDataService

__all__ = [
    "VRDataService",
    "Outcome",
    "apply_outcome",
    "compute_outcome",
    "effectiveness_score",
    "improvement_percentage",
]
