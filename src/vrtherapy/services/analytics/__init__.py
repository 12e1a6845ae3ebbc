"""Outcome analytics services."""

from vrtherapy.services.analytics.analytics_aggregator import AnalyticsAggregator, aggregate

__all__ = ["AnalyticsAggregator", "aggregate"]
