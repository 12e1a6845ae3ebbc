"""
Doctor and Patient Repositories

SQLAlchemy implementations of the participant lookups.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vrtherapy.domain.enums import Specialization
from vrtherapy.domain.models import Doctor, Patient, PhobiaProfile
from vrtherapy.domain.repositories import DoctorRepository, PatientRepository
from vrtherapy.infrastructure.database.models import DoctorModel, PatientModel
from vrtherapy.infrastructure.database.repositories.base import BaseRepository


def patient_to_domain(row: PatientModel) -> Patient:
    return Patient(
        id=row.id,
        doctor_id=row.doctor_id,
        name=row.name,
        identifier=row.identifier,
        phobias=tuple(PhobiaProfile.from_dict(item) for item in row.phobias or []),
        is_active=row.is_active,
    )


def _doctor_to_domain(row: DoctorModel) -> Doctor:
    return Doctor(
        id=row.id,
        name=row.name,
        specialization=Specialization(row.specialization),
        is_active=row.is_active,
    )


class SqlPatientRepository(BaseRepository[PatientModel], PatientRepository):
    """Patient lookups backed by the patients table."""
    
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(PatientModel, session)
    
    async def get_by_id(self, patient_id: UUID) -> Optional[Patient]:
        row = await self._get_row(patient_id)
        return patient_to_domain(row) if row else None
    
    async def create(self, patient: Patient) -> Patient:
        row = PatientModel(
            id=patient.id,
            doctor_id=patient.doctor_id,
            name=patient.name,
            identifier=patient.identifier,
            phobias=[phobia.to_dict() for phobia in patient.phobias],
            is_active=patient.is_active,
        )
        await self._insert(row)
        return patient_to_domain(row)


class SqlDoctorRepository(BaseRepository[DoctorModel], DoctorRepository):
    """Doctor lookups backed by the doctors table."""
    
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(DoctorModel, session)
    
    async def get_by_id(self, doctor_id: UUID) -> Optional[Doctor]:
        row = await self._get_row(doctor_id)
        return _doctor_to_domain(row) if row else None
    
    async def create(self, doctor: Doctor) -> Doctor:
        row = DoctorModel(
            id=doctor.id,
            name=doctor.name,
            specialization=doctor.specialization.value,
            is_active=doctor.is_active,
        )
        await self._insert(row)
        return _doctor_to_domain(row)
