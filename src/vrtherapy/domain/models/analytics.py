"""
Analytics Result Models

Dashboard-ready aggregates over one doctor's VR session records.
Everything here is derived on demand and never persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime

from vrtherapy.domain.enums import AnalyticsTimeframe


@dataclass(frozen=True)
class PhobiaBreakdown:
    session_count: int
    average_improvement: float


@dataclass(frozen=True)
class TrendPoint:
    """One point of the improvement chart."""
    
    date: datetime
    improvement: float
    fear_score_reduction: float


@dataclass(frozen=True)
class BiometricInsights:
    average_heart_rate_reduction: float = 0.0
    stress_reduction_sessions: int = 0


@dataclass(frozen=True)
class VRAnalytics:
    """
    Aggregated outcome analytics.
    
    Attributes:
        timeframe: Window the aggregate covers
        total_sessions: VR records in scope
        average_improvement: Mean improvement percentage (0 when empty)
        average_effectiveness: Mean effectiveness score (0 when empty)
        phobia_breakdown: Per phobia type of the linked session
        session_type_breakdown: Record count per session type
        improvement_trend: Points sorted ascending by session start
        biometric_insights: Heart-rate reduction summary
    """
    
    timeframe: AnalyticsTimeframe
    total_sessions: int = 0
    average_improvement: float = 0.0
    average_effectiveness: float = 0.0
    phobia_breakdown: dict[str, PhobiaBreakdown] = field(default_factory=dict)
    session_type_breakdown: dict[str, int] = field(default_factory=dict)
    improvement_trend: list[TrendPoint] = field(default_factory=list)
    biometric_insights: BiometricInsights = field(default_factory=BiometricInsights)
