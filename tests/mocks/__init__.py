"""In-memory collaborators for service and API tests."""

from tests.mocks.repositories import InMemoryStore
from tests.mocks.scenario_runner import FakeHandle, FakeScenarioRunner
from tests.mocks.builders import make_doctor, make_patient, make_session, telemetry_payload

__all__ = [
    "InMemoryStore",
    "FakeHandle",
    "FakeScenarioRunner",
    "make_doctor",
    "make_patient",
    "make_session",
    "telemetry_payload",
]
