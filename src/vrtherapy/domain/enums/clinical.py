"""
Clinical Enumerations

Closed vocabularies shared by sessions, patients and doctors.
Adding a phobia type or VR environment is a deliberate code change:
the VR builds and analytics groupings depend on these exact values.
"""

from enum import StrEnum


class PhobiaType(StrEnum):
    """Phobias with a supported VR exposure scenario."""
    
    ARACHNOPHOBIA = "Arachnophobia"
    """Fear of spiders."""
    
    CLAUSTROPHOBIA = "Claustrophobia"
    """Fear of enclosed spaces."""
    
    AEROPHOBIA = "Aerophobia"
    """Fear of flying."""
    
    CYNOPHOBIA = "Cynophobia"
    """Fear of dogs."""


class SessionType(StrEnum):
    """Purpose of a therapy session within a treatment plan."""
    
    INITIAL_ASSESSMENT = "Initial Assessment"
    EXPOSURE_THERAPY = "Exposure Therapy"
    PROGRESS_CHECK = "Progress Check"
    FINAL_ASSESSMENT = "Final Assessment"


class VREnvironment(StrEnum):
    """Virtual environments shipped with the VR runtime."""
    
    ELEVATOR = "Elevator"
    SMALL_ROOM = "Small Room"
    MRI = "MRI"
    DOG_PARK = "Dog Park"
    AIRPLANE = "Airplane"
    SPIDER_ROOM = "Spider Room"


class ScenarioDifficulty(StrEnum):
    """Scenario difficulty tier."""
    
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class Specialization(StrEnum):
    """Doctor specialization."""
    
    CLINICAL_PSYCHOLOGY = "Clinical Psychology"
    PSYCHIATRY = "Psychiatry"
    BEHAVIORAL_THERAPY = "Behavioral Therapy"
    COGNITIVE_BEHAVIORAL_THERAPY = "Cognitive Behavioral Therapy"
    EXPOSURE_THERAPY = "Exposure Therapy"
    PTSD_SPECIALIST = "PTSD Specialist"
    ANXIETY_DISORDERS = "Anxiety Disorders"
    PHOBIA_TREATMENT = "Phobia Treatment"
    OTHER = "Other"


class AnalyticsTimeframe(StrEnum):
    """
    Look-back window for the analytics aggregator.
    
    Unknown values fall back to THREE_MONTHS, matching the
    dashboard's default selection.
    """
    
    ONE_MONTH = "1month"
    THREE_MONTHS = "3months"
    SIX_MONTHS = "6months"
    ONE_YEAR = "1year"
    
    @property
    def months(self) -> int:
        """Window length in calendar months."""
        mapping = {
            AnalyticsTimeframe.ONE_MONTH: 1,
            AnalyticsTimeframe.THREE_MONTHS: 3,
            AnalyticsTimeframe.SIX_MONTHS: 6,
            AnalyticsTimeframe.ONE_YEAR: 12,
        }
        return mapping[self]
    
    @classmethod
    def parse(cls, value: str | None) -> "AnalyticsTimeframe":
        """
        Parse a query-string value.
        
        Args:
            value: Raw timeframe (may be empty or unknown)
            
        Returns:
            Matching timeframe, THREE_MONTHS otherwise
        """
        try:
            return cls(value) if value else cls.THREE_MONTHS
        except ValueError:
            return cls.THREE_MONTHS
