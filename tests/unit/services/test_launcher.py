"""
Unit Tests for the VR Scenario Launcher

Launch ordering, spawn failures and the asynchronous exit watcher.
"""

from uuid import uuid4

import pytest

from vrtherapy.domain.enums import SessionStatus
from vrtherapy.domain.errors import Forbidden, InvalidTransition, LaunchFailed, NotFound
from vrtherapy.services.handshake import (
    LaunchError,
    SessionLauncher,
    SubprocessScenarioRunner,
)

from tests.mocks import FakeHandle, FakeScenarioRunner, make_session


@pytest.fixture
def launcher(store, runner):
    return SessionLauncher(store.scope(), runner)


@pytest.fixture
def scheduled(store, doctor, patient):
    session = make_session(doctor.id, patient.id)
    store.sessions[session.id] = session
    return session


class StatusRecordingRunner(FakeScenarioRunner):
    """Captures the stored session status at the moment of spawn."""
    
    def __init__(self, store):
        super().__init__()
        self.store = store
        self.status_at_start = None
    
    async def start(self, session_token, scenario_name, patient_identifier):
        session = next(s for s in self.store.sessions.values() if s.session_token == session_token)
        self.status_at_start = session.status
        return await super().start(session_token, scenario_name, patient_identifier)


class TestLaunch:
    """Tests for starting a scheduled session."""
    
    async def test_launch_moves_to_in_progress(self, launcher, runner, store, patient, doctor, scheduled):
        """Test that a launch returns the snapshot and passes token, scenario and patient code."""
        result, handle = await launcher.launch(doctor.id, scheduled.id)
        
        assert result.status == SessionStatus.IN_PROGRESS
        assert result.session_token == scheduled.session_token
        assert result.start_time is not None
        assert result.patient.identifier == patient.identifier
        assert store.sessions[scheduled.id].status == SessionStatus.IN_PROGRESS
        
        call = runner.calls[0]
        assert call.session_token == scheduled.session_token
        assert call.scenario_name == scheduled.vr_scenario.name
        assert call.patient_identifier == patient.identifier
        assert isinstance(handle, FakeHandle)
    
    async def test_status_committed_before_spawn(self, store, doctor, scheduled):
        """The runtime must find the session In Progress when it boots."""
        runner = StatusRecordingRunner(store)
        launcher = SessionLauncher(store.scope(), runner)
        
        await launcher.launch(doctor.id, scheduled.id)
        
        assert runner.status_at_start == SessionStatus.IN_PROGRESS
    
    async def test_spawn_failure_interrupts(self, store, doctor, scheduled):
        """Test that a failed spawn leaves the session Interrupted with an end time."""
        runner = FakeScenarioRunner(fail_with="executable missing")
        launcher = SessionLauncher(store.scope(), runner)
        
        with pytest.raises(LaunchFailed) as exc_info:
            await launcher.launch(doctor.id, scheduled.id)
        
        assert "executable missing" not in exc_info.value.message
        session = store.sessions[scheduled.id]
        assert session.status == SessionStatus.INTERRUPTED
        assert session.actual_end_time is not None
    
    async def test_each_step_uses_own_scope(self, store, doctor, scheduled):
        runner = FakeScenarioRunner(fail_with="boom")
        launcher = SessionLauncher(store.scope(), runner)
        
        with pytest.raises(LaunchFailed):
            await launcher.launch(doctor.id, scheduled.id)
        
        assert store.scopes_opened == 2
    
    @pytest.mark.parametrize(
        "status",
        [SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED, SessionStatus.INTERRUPTED],
    )
    async def test_only_scheduled_can_launch(self, launcher, runner, store, doctor, patient, status):
        session = make_session(doctor.id, patient.id, status=status)
        store.sessions[session.id] = session
        
        with pytest.raises(InvalidTransition):
            await launcher.launch(doctor.id, session.id)
        
        assert runner.calls == []
    
    async def test_other_doctor_forbidden(self, launcher, runner, other_doctor, scheduled):
        with pytest.raises(Forbidden):
            await launcher.launch(other_doctor.id, scheduled.id)
        
        assert runner.calls == []
    
    async def test_unknown_session(self, launcher, doctor):
        with pytest.raises(NotFound):
            await launcher.launch(doctor.id, uuid4())


class TestWatch:
    """Tests for the exit watcher."""
    
    async def test_non_zero_exit_interrupts(self, launcher, store, doctor, scheduled):
        result, _ = await launcher.launch(doctor.id, scheduled.id)
        
        await launcher.watch(result.session_id, FakeHandle(exit_code=3))
        
        assert store.sessions[scheduled.id].status == SessionStatus.INTERRUPTED
    
    async def test_clean_exit_keeps_status(self, launcher, store, doctor, scheduled):
        """Test that a clean exit leaves the session for telemetry to complete."""
        result, handle = await launcher.launch(doctor.id, scheduled.id)
        
        await launcher.watch(result.session_id, handle)
        
        assert store.sessions[scheduled.id].status == SessionStatus.IN_PROGRESS
    
    async def test_failure_after_completion_ignored(self, store, doctor, patient):
        """Test that a late crash does not override a completed session."""
        session = make_session(doctor.id, patient.id, status=SessionStatus.COMPLETED)
        store.sessions[session.id] = session
        launcher = SessionLauncher(store.scope(), FakeScenarioRunner())
        
        await launcher.watch(session.id, FakeHandle(exit_code=1))
        
        assert store.sessions[session.id].status == SessionStatus.COMPLETED
    
    async def test_wait_error_treated_as_failure(self, launcher, store, doctor, scheduled):
        class BrokenHandle(FakeHandle):
            async def wait(self):
                raise RuntimeError("lost process")
        
        result, _ = await launcher.launch(doctor.id, scheduled.id)
        
        await launcher.watch(result.session_id, BrokenHandle())
        
        assert store.sessions[scheduled.id].status == SessionStatus.INTERRUPTED


class TestSubprocessScenarioRunner:
    """Tests for the local process runner."""
    
    async def test_unconfigured_scenario(self):
        runner = SubprocessScenarioRunner(executables={}, default_executable=None)
        
        with pytest.raises(LaunchError, match="No executable"):
            await runner.start("VR1", "Elevator", "PT1")
    
    async def test_missing_executable(self, tmp_path):
        runner = SubprocessScenarioRunner(executables={"MRI": str(tmp_path / "absent")})
        
        with pytest.raises(LaunchError, match="not found"):
            await runner.start("VR1", "MRI", "PT1")
    
    async def test_spawns_with_launch_arguments(self, tmp_path):
        """Test that token, scenario and patient are passed as separate arguments."""
        output = tmp_path / "args.txt"
        script = tmp_path / "scenario.sh"
        script.write_text(f"#!/bin/sh\nprintf '%s\\n' \"$@\" > '{output}'\nexit 4\n")
        script.chmod(0o755)
        runner = SubprocessScenarioRunner(executables={"MRI": str(script)})
        
        handle = await runner.start("VR1700000000000ABCDEFGHI", "MRI", "PT 1; rm -rf /")
        
        assert await handle.wait() == 4
        assert output.read_text().splitlines() == [
            "VR1700000000000ABCDEFGHI",
            "MRI",
            "PT 1; rm -rf /",
        ]
