"""
Scene Rating Domain Model

Per-image ratings the VR runtime posts while a scenario is running.
A session collects any number of them; they are kept as submitted
and do not feed the derived outcome metrics.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping
from uuid import UUID, uuid4

from vrtherapy.domain.errors import ValidationFailed
from vrtherapy.domain.timeutils import as_utc, utc_now

REQUIRED_RATING_FIELDS = ("user_id", "scene_id", "image_id", "rate")


@dataclass(frozen=True)
class SceneRating:
    """
    One rating of one image within a VR scene.
    
    Attributes:
        session_id: Therapy session the submitting token resolved to
        user_id: Runtime-side user reference
        scene_id: Runtime scene the image belongs to
        image_id: Rated image
        rate: Rating value as sent by the runtime
        submitted_at: Time the rating was accepted
    """
    
    session_id: UUID
    user_id: str
    scene_id: str
    image_id: str
    rate: float
    id: UUID = field(default_factory=uuid4)
    submitted_at: datetime = field(default_factory=utc_now)
    
    def __post_init__(self) -> None:
        object.__setattr__(self, "submitted_at", as_utc(self.submitted_at))
        if not math.isfinite(self.rate):
            raise ValidationFailed("Rate must be a finite number")
    
    @classmethod
    def from_payload(cls, session_id: UUID, payload: Mapping[str, Any]) -> "SceneRating":
        """
        Build a rating for a session from snake-case runtime fields.
        
        Raises:
            ValidationFailed: A required field is missing or blank
        """
        missing = [
            name for name in REQUIRED_RATING_FIELDS
            if payload.get(name) is None or payload.get(name) == ""
        ]
        if missing:
            raise ValidationFailed("Missing required rating fields", details={"missing": missing})
        try:
            rate = float(payload["rate"])
        except (TypeError, ValueError) as e:
            raise ValidationFailed(f"Malformed rate: {e}") from e
        return cls(
            session_id=session_id,
            user_id=str(payload["user_id"]),
            scene_id=str(payload["scene_id"]),
            image_id=str(payload["image_id"]),
            rate=rate,
        )
