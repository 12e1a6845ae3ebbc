"""
Abandoned Session Sweeper

Optional background sweep for VR runs that never report back. An
In Progress session whose actual start is older than the configured
timeout is moved to Interrupted through the regular status machine,
so a late telemetry submission or doctor action racing the sweep
resolves through the same compare-and-swap.

Disabled unless VRT_SESSION_ABANDON_TIMEOUT_MINUTES is set.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.enums import SessionStatus
from vrtherapy.domain.errors import InvalidTransition, NotFound
from vrtherapy.domain.repositories import RepositoryScope
from vrtherapy.domain.timeutils import utc_now
from vrtherapy.infrastructure.metrics import track_abandoned_sessions
from vrtherapy.infrastructure.monitoring import capture_exception_with_context
from vrtherapy.services.sessions import state_machine

logger = get_logger(__name__)


class AbandonedSessionSweeper:
    """
    Periodically interrupts stale In Progress sessions.
    
    Usage:
        sweeper = AbandonedSessionSweeper(scope, timeout_minutes=180)
        task = asyncio.create_task(sweeper.run())
    """
    
    def __init__(
        self,
        repository_scope: RepositoryScope,
        timeout_minutes: int,
        interval_seconds: float = 300,
    ) -> None:
        self._scope = repository_scope
        self._timeout = timedelta(minutes=timeout_minutes)
        self._interval = interval_seconds
    
    async def sweep_once(self, now: Optional[datetime] = None) -> int:
        """
        Run one sweep.
        
        Returns:
            Number of sessions moved to Interrupted
        """
        now = now or utc_now()
        cutoff = now - self._timeout
        
        async with self._scope() as repos:
            stale = await repos.sessions.list_stale_in_progress(cutoff)
        
        interrupted = 0
        for session in stale:
            # One unit of work per session so a lost race only skips that one
            async with self._scope() as repos:
                try:
                    await state_machine.transition(
                        repos.sessions,
                        session,
                        SessionStatus.INTERRUPTED,
                        now=now,
                    )
                except (InvalidTransition, NotFound):
                    logger.info("Stale session changed before sweep", session_id=str(session.id))
                    continue
            interrupted += 1
            logger.warning(
                "Abandoned session interrupted",
                session_id=str(session.id),
                started_at=session.actual_start_time.isoformat() if session.actual_start_time else None,
            )
        
        track_abandoned_sessions(interrupted)
        if stale:
            logger.info("Abandoned session sweep finished", candidates=len(stale), interrupted=interrupted)
        return interrupted
    
    async def run(self) -> None:
        """Sweep forever until cancelled."""
        logger.info(
            "Abandoned session sweeper started",
            timeout_minutes=int(self._timeout.total_seconds() // 60),
            interval_seconds=self._interval,
        )
        while True:
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error("Abandoned session sweep failed", error=str(e))
                capture_exception_with_context(e)
            await asyncio.sleep(self._interval)
