"""Tests configuration and fixtures."""

import os

# Settings are read once and cached; configure before importing the app
os.environ.setdefault("VRT_ENV", "development")
os.environ.setdefault("VRT_DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("VRT_JWT_SECRET_KEY", "test_secret_key_for_jwt_signing_min_32_chars")
os.environ.setdefault("VRT_SENTRY_DSN", "")

import pytest

from vrtherapy.domain.models import Doctor, Patient
from vrtherapy.domain.repositories import Repositories

from tests.mocks import FakeScenarioRunner, InMemoryStore, make_doctor, make_patient


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def repositories(store: InMemoryStore) -> Repositories:
    return store.repositories()


@pytest.fixture
def doctor(store: InMemoryStore) -> Doctor:
    """Doctor seeded into the store."""
    doctor = make_doctor()
    store.doctors[doctor.id] = doctor
    return doctor


@pytest.fixture
def other_doctor(store: InMemoryStore) -> Doctor:
    doctor = make_doctor(name="Dr. Fernando")
    store.doctors[doctor.id] = doctor
    return doctor


@pytest.fixture
def patient(store: InMemoryStore, doctor: Doctor) -> Patient:
    """Patient of the seeded doctor."""
    patient = make_patient(doctor.id)
    store.patients[patient.id] = patient
    return patient


@pytest.fixture
def runner() -> FakeScenarioRunner:
    return FakeScenarioRunner()
