"""
Outcome Computation Engine

Derives the improvement and effectiveness values stored on a VR
session record. Runs once when telemetry is ingested; doctor
corrections only re-derive when explicitly asked to.

Formulas:
    improvement = (initial - final) / initial * 100, or 0 when initial is 0.
        May be negative when fear rose during exposure.

    effectiveness (0-100):
        fear_component = improvement clamped to [0, 100]
        biometric components = percentage reduction of heart rate and
            skin conductance, each clamped to [0, 100], counted only
            when the pair is present and its initial value is > 0
        with biometrics:    0.7 * fear_component + 0.3 * mean(biometric components)
        without biometrics: fear_component

CLINICAL_VALIDATION_REQUIRED: Effectiveness weighting is a product
decision and must be reviewed with clinicians before reuse.
"""

from dataclasses import dataclass, replace
from typing import Optional

from vrtherapy.domain.models import BiometricData, BiometricPair, FearScores, VRSessionData

FEAR_WEIGHT = 0.7
BIOMETRIC_WEIGHT = 0.3
SCORE_MIN = 0.0
SCORE_MAX = 100.0


def _clamp(value: float, low: float = SCORE_MIN, high: float = SCORE_MAX) -> float:
    return max(low, min(high, value))


def improvement_percentage(fear_scores: FearScores) -> float:
    """Fear reduction relative to the initial score, in percent."""
    if fear_scores.initial <= 0:
        return 0.0
    return round(fear_scores.reduction / fear_scores.initial * 100, 2)


def _reduction_component(pair: Optional[BiometricPair]) -> Optional[float]:
    if pair is None or pair.initial <= 0:
        return None
    return _clamp(pair.reduction / pair.initial * 100)


def effectiveness_score(fear_scores: FearScores, biometrics: BiometricData) -> float:
    """Composite of fear improvement and biometric stabilization, 0-100."""
    fear_component = _clamp(improvement_percentage(fear_scores))
    
    components = [
        value
        for value in (
            _reduction_component(biometrics.heart_rate),
            _reduction_component(biometrics.skin_conductance),
        )
        if value is not None
    ]
    if not components:
        return round(fear_component, 2)
    
    biometric_component = sum(components) / len(components)
    score = FEAR_WEIGHT * fear_component + BIOMETRIC_WEIGHT * biometric_component
    return round(_clamp(score), 2)


@dataclass(frozen=True)
class Outcome:
    improvement_percentage: float
    effectiveness_score: float


def compute_outcome(record: VRSessionData) -> Outcome:
    """Compute both derived values for a record."""
    return Outcome(
        improvement_percentage=improvement_percentage(record.fear_scores),
        effectiveness_score=effectiveness_score(record.fear_scores, record.biometric_data),
    )


def apply_outcome(record: VRSessionData) -> VRSessionData:
    """Copy of the record with derived values filled in."""
    outcome = compute_outcome(record)
    return replace(
        record,
        improvement_percentage=outcome.improvement_percentage,
        effectiveness_score=outcome.effectiveness_score,
    )
