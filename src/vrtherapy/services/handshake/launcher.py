"""
VR Scenario Launcher

Doctor-triggered start of a scheduled session. The session is moved
to In Progress and committed before the external runtime is started,
so the runtime can fetch its configuration as soon as it boots.

Failure handling:
- Spawn failure: session moves to Interrupted (end time set) and the
  caller receives LaunchFailed.
- Asynchronous failure: a watcher awaits the process and, on a
  non-zero exit, moves the session to Interrupted if it is still
  In Progress.

ARCHITECTURE: Each step runs in its own unit of work opened through
the repository scope; no database transaction is held open while
the external process starts or runs.
"""

from uuid import UUID

from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.enums import SessionStatus
from vrtherapy.domain.errors import (
    Forbidden,
    InvalidTransition,
    LaunchFailed,
    NotFound,
)
from vrtherapy.domain.models import LaunchResult, PatientSnapshot
from vrtherapy.domain.repositories import RepositoryScope
from vrtherapy.infrastructure.metrics import ACTIVE_VR_PROCESSES, track_launch
from vrtherapy.infrastructure.monitoring import capture_exception_with_context, set_session_context
from vrtherapy.services.handshake.scenario_runner import LaunchError, LaunchHandle, ScenarioRunner
from vrtherapy.services.sessions import state_machine

logger = get_logger(__name__)


class SessionLauncher:
    """
    Starts VR scenarios for scheduled sessions and watches them.

    Usage:
        launcher = SessionLauncher(repository_scope, runner)
        result, handle = await launcher.launch(doctor_id, session_id)
        background_tasks.add_task(launcher.watch, result.session_id, handle)
    """

    def __init__(self, repository_scope: RepositoryScope, runner: ScenarioRunner) -> None:
        self._scope = repository_scope
        self._runner = runner

    async def launch(self, doctor_id: UUID, session_id: UUID) -> tuple[LaunchResult, LaunchHandle]:
        """
        Start the scenario of a scheduled session.

        Returns:
            Sanitized launch snapshot and the handle of the running scenario

        Raises:
            NotFound: Session or patient missing
            Forbidden: Session belongs to another doctor
            InvalidTransition: Session is not Scheduled
            LaunchFailed: Runtime could not be started (session left Interrupted)
        """
        async with self._scope() as repos:
            session = await repos.sessions.get_by_id(session_id)
            if session is None:
                raise NotFound("Session not found")
            if not session.is_owned_by(doctor_id):
                raise Forbidden("Not authorized to start this session")
            if session.status != SessionStatus.SCHEDULED:
                raise InvalidTransition(
                    "Only scheduled sessions can be started",
                    details={"from": session.status.value, "to": SessionStatus.IN_PROGRESS.value},
                )

            patient = await repos.patients.get_by_id(session.patient_id)
            if patient is None:
                raise NotFound("Patient not found")

            started = await state_machine.transition(
                repos.sessions,
                session,
                SessionStatus.IN_PROGRESS,
            )

        logger.info(
            "Launching VR scenario",
            session_id=str(started.id),
            scenario=started.vr_scenario.name,
        )
        set_session_context(
            str(started.id),
            status=started.status.value,
            scenario=started.vr_scenario.name,
        )

        try:
            handle = await self._runner.start(
                started.session_token,
                started.vr_scenario.name,
                patient.identifier,
            )
        except LaunchError as e:
            track_launch("failed")
            logger.error(
                "VR launch failed",
                session_id=str(started.id),
                scenario=started.vr_scenario.name,
                error=str(e),
            )
            capture_exception_with_context(
                e,
                session_id=str(started.id),
                extra={"scenario": started.vr_scenario.name},
            )
            await self._interrupt(started.id, reason="launch_failed")
            raise LaunchFailed("Failed to launch VR application") from e

        track_launch("started")

        result = LaunchResult(
            session_id=started.id,
            session_token=started.session_token,
            status=started.status,
            start_time=started.actual_start_time,
            patient=PatientSnapshot(
                name=patient.name,
                identifier=patient.identifier,
                phobias=patient.phobias,
            ),
            vr_scenario=started.vr_scenario,
            session_config=started.session_config,
            pre_session_data=started.pre_session_data,
        )
        return result, handle

    async def watch(self, session_id: UUID, handle: LaunchHandle) -> None:
        """
        Await the scenario process and interrupt the session on failure.

        Runs as a background task after the launch response was sent.
        """
        ACTIVE_VR_PROCESSES.inc()
        try:
            exit_code = await handle.wait()
        except Exception as e:
            logger.error("Waiting on VR process failed", session_id=str(session_id), error=str(e))
            capture_exception_with_context(e, session_id=str(session_id))
            exit_code = -1
        finally:
            ACTIVE_VR_PROCESSES.dec()

        if exit_code == 0:
            track_launch("exited")
            logger.info("VR process exited", session_id=str(session_id))
            return

        track_launch("exited_with_error")
        logger.warning(
            "VR process reported failure",
            session_id=str(session_id),
            exit_code=exit_code,
        )
        await self._interrupt(session_id, reason="process_failed")

    async def _interrupt(self, session_id: UUID, *, reason: str) -> None:
        """Move a still-running session to Interrupted in a fresh unit of work."""
        async with self._scope() as repos:
            session = await repos.sessions.get_by_id(session_id)
            if session is None or session.status != SessionStatus.IN_PROGRESS:
                logger.info(
                    "Session no longer in progress, not interrupting",
                    session_id=str(session_id),
                    status=session.status.value if session else None,
                    reason=reason,
                )
                return
            try:
                await state_machine.transition(repos.sessions, session, SessionStatus.INTERRUPTED)
            except InvalidTransition:
                # Telemetry or a doctor won the race; their status stands
                logger.info(
                    "Session changed before interrupt",
                    session_id=str(session_id),
                    reason=reason,
                )
                return

        logger.warning("Session interrupted", session_id=str(session_id), reason=reason)
