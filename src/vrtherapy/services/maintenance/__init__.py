"""Maintenance background services."""

from vrtherapy.services.maintenance.abandoned_sweeper import AbandonedSessionSweeper

__all__ = ["AbandonedSessionSweeper"]
