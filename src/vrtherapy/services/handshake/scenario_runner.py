"""
Scenario Runner

Abstraction over how a VR scenario is started. The handshake only
knows start(token, scenario_name, patient_identifier); the concrete
mechanism lives behind this interface.

The default implementation spawns a local executable selected by
scenario name from configuration and passes the launch parameters
as separate arguments (no shell).
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from vrtherapy.config import get_settings
from vrtherapy.config.logging_config import get_logger

logger = get_logger(__name__)


class LaunchError(Exception):
    """Scenario could not be started."""


class LaunchHandle(ABC):
    """Handle to a started scenario run."""
    
    @abstractmethod
    async def wait(self) -> int:
        """Wait for the run to end and return its exit code (0 = success)."""


class ScenarioRunner(ABC):
    """Starts VR scenarios for a session."""
    
    @abstractmethod
    async def start(
        self,
        session_token: str,
        scenario_name: str,
        patient_identifier: str,
    ) -> LaunchHandle:
        """
        Start a scenario run.
        
        Returns once the run is confirmed started; does not wait
        for it to finish.
        
        Raises:
            LaunchError: If the run could not be started
        """


class ProcessLaunchHandle(LaunchHandle):
    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process
    
    @property
    def pid(self) -> int:
        return self._process.pid
    
    async def wait(self) -> int:
        return await self._process.wait()


class SubprocessScenarioRunner(ScenarioRunner):
    """
    Launches a local VR executable per scenario.
    
    Usage:
        runner = SubprocessScenarioRunner(executables={"MRI": "/opt/vr/mri"})
        handle = await runner.start(token, "MRI", "P-001")
        exit_code = await handle.wait()
    """
    
    def __init__(
        self,
        executables: Optional[dict[str, str]] = None,
        default_executable: Optional[str] = None,
        extra_args: Sequence[str] = (),
        working_directory: Optional[str] = None,
    ) -> None:
        settings = get_settings().vr_runtime
        self._executables = executables if executables is not None else dict(settings.executables)
        self._default = default_executable or settings.default_executable
        self._extra_args = list(extra_args or settings.extra_args)
        self._cwd = working_directory or settings.working_directory
    
    def resolve_executable(self, scenario_name: str) -> str:
        """
        Find the executable configured for a scenario.
        
        Raises:
            LaunchError: If nothing is configured or the file is missing
        """
        executable = self._executables.get(scenario_name, self._default)
        if not executable:
            raise LaunchError(f"No executable configured for scenario: {scenario_name}")
        if not Path(executable).is_file():
            raise LaunchError(f"Executable not found: {executable}")
        return executable
    
    async def start(
        self,
        session_token: str,
        scenario_name: str,
        patient_identifier: str,
    ) -> LaunchHandle:
        executable = self.resolve_executable(scenario_name)
        args = [session_token, scenario_name, patient_identifier, *self._extra_args]
        
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                cwd=self._cwd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise LaunchError(f"Failed to spawn {executable}: {e}") from e
        
        logger.info(
            "VR process spawned",
            scenario=scenario_name,
            executable=executable,
            pid=process.pid,
        )
        return ProcessLaunchHandle(process)
