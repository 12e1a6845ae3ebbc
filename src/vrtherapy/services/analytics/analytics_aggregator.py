"""
Analytics Aggregator

Read-side rollup of a doctor's VR outcome records into dashboard
summaries. Nothing here is persisted; every call re-derives the
result from the stored records.

Scope: records whose linked session belongs to the requesting doctor
and was created inside the timeframe window, optionally narrowed to
one patient. Records of other doctors never enter the aggregate, even
if a repository returns them.
"""

from collections import defaultdict
from datetime import datetime
from statistics import fmean
from typing import Optional, Sequence
from uuid import UUID

from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.enums import AnalyticsTimeframe
from vrtherapy.domain.models import (
    BiometricInsights,
    PhobiaBreakdown,
    TherapySession,
    TrendPoint,
    VRAnalytics,
    VRSessionData,
)
from vrtherapy.domain.repositories import VRSessionDataRepository
from vrtherapy.domain.timeutils import months_before, utc_now
from vrtherapy.infrastructure.metrics import track_analytics_query

logger = get_logger(__name__)

ScopedRecord = tuple[VRSessionData, TherapySession]


def _mean(values: Sequence[float]) -> float:
    """Arithmetic mean rounded for display; 0 for an empty sequence."""
    if not values:
        return 0.0
    return round(fmean(values), 2)


def aggregate(timeframe: AnalyticsTimeframe, records: Sequence[ScopedRecord]) -> VRAnalytics:
    """
    Fold scoped records into analytics.
    
    Args:
        timeframe: Window the records were selected with
        records: (record, linked session) pairs already in scope
        
    Returns:
        Aggregated analytics (all zero/empty for no records)
    """
    if not records:
        return VRAnalytics(timeframe=timeframe)
    
    improvements = [record.improvement_percentage for record, _ in records]
    effectiveness = [record.effectiveness_score for record, _ in records]
    
    by_phobia: dict[str, list[float]] = defaultdict(list)
    by_session_type: dict[str, int] = defaultdict(int)
    heart_rate_reductions: list[float] = []
    trend: list[TrendPoint] = []
    
    for record, session in records:
        # Grouped by the linked session, not the record
        by_phobia[session.phobia_type.value].append(record.improvement_percentage)
        by_session_type[session.session_type.value] += 1
        
        heart_rate = record.biometric_data.heart_rate
        if heart_rate is not None:
            heart_rate_reductions.append(heart_rate.reduction)
        
        trend.append(TrendPoint(
            date=record.session_start_time,
            improvement=record.improvement_percentage,
            fear_score_reduction=record.fear_scores.reduction,
        ))
    
    trend.sort(key=lambda point: point.date)
    
    return VRAnalytics(
        timeframe=timeframe,
        total_sessions=len(records),
        average_improvement=_mean(improvements),
        average_effectiveness=_mean(effectiveness),
        phobia_breakdown={
            phobia: PhobiaBreakdown(session_count=len(values), average_improvement=_mean(values))
            for phobia, values in by_phobia.items()
        },
        session_type_breakdown=dict(by_session_type),
        improvement_trend=trend,
        biometric_insights=BiometricInsights(
            average_heart_rate_reduction=_mean(heart_rate_reductions),
            stress_reduction_sessions=sum(1 for value in heart_rate_reductions if value > 0),
        ),
    )


class AnalyticsAggregator:
    """
    Doctor-scoped outcome analytics.
    
    Usage:
        aggregator = AnalyticsAggregator(repositories.vr_data)
        analytics = await aggregator.compute(doctor_id, AnalyticsTimeframe.THREE_MONTHS)
    """
    
    def __init__(self, vr_data: VRSessionDataRepository) -> None:
        self._vr_data = vr_data
    
    async def compute(
        self,
        doctor_id: UUID,
        timeframe: AnalyticsTimeframe = AnalyticsTimeframe.THREE_MONTHS,
        patient_id: Optional[UUID] = None,
        *,
        now: Optional[datetime] = None,
    ) -> VRAnalytics:
        """
        Compute analytics over the doctor's records in the window.
        
        Args:
            doctor_id: Requesting doctor; the only owner whose data is read
            timeframe: Look-back window applied to session creation time
            patient_id: Optional patient filter
            now: Reference time (defaults to current UTC time)
        """
        since = months_before(now or utc_now(), timeframe.months)
        
        rows = await self._vr_data.list_with_sessions(
            doctor_id,
            patient_id=patient_id,
            sessions_created_since=since,
        )
        scoped = [
            (record, session)
            for record, session in rows
            if session.doctor_id == doctor_id
            and (patient_id is None or session.patient_id == patient_id)
        ]
        if len(scoped) != len(rows):
            logger.warning(
                "Out-of-scope records dropped from analytics",
                doctor_id=str(doctor_id),
                dropped=len(rows) - len(scoped),
            )
        
        analytics = aggregate(timeframe, scoped)
        
        track_analytics_query(timeframe.value)
        logger.info(
            "Analytics computed",
            doctor_id=str(doctor_id),
            timeframe=timeframe.value,
            patient_filter=patient_id is not None,
            total_sessions=analytics.total_sessions,
        )
        return analytics
