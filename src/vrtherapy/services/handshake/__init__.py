"""VR handshake services - session tokens, scenario launch and telemetry ingestion."""

from vrtherapy.services.handshake.token_issuer import SessionTokenIssuer, generate_session_token
from vrtherapy.services.handshake.scenario_runner import (
    LaunchError,
    LaunchHandle,
    ScenarioRunner,
    SubprocessScenarioRunner,
)
from vrtherapy.services.handshake.vr_handshake import VRHandshake, build_record
from vrtherapy.services.handshake.launcher import SessionLauncher

__all__ = [
    # Tokens
    "SessionTokenIssuer",
    "generate_session_token",
    # Scenario runner
    "LaunchError",
    "LaunchHandle",
    "ScenarioRunner",
    "SubprocessScenarioRunner",
    # Handshake
    "VRHandshake",
    "build_record",
    "SessionLauncher",
]
