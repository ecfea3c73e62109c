"""Utilities for seeding development data."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.core.clock import utcnow
from app.backend.src.models import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    Clinic,
    Patient,
    ProfessionalProfile,
    Recurrence,
)

DEFAULT_CLINIC_NAME = "Clínica Demonstração"
DEFAULT_PROFESSIONAL_NAME = "Dra. Helena Prado"

_DEMO_PATIENTS = (
    # name, mother, fee, weekday (0=Sunday), start time
    ("Ana Souza", "Marta Souza", Decimal("150.00"), 1, "09:00"),
    ("Bruno Lima", "Carla Lima", Decimal("180.00"), 3, "14:00"),
)


@dataclass
class SeedResult:
    """Information about the seeded clinic."""

    clinic: Clinic
    professional: ProfessionalProfile
    patients: list[Patient]
    clinic_created: bool
    appointments_created: int


def _month_dates(weekday: int, start_time: str, now: datetime) -> list[datetime]:
    hour, minute = (int(part) for part in start_time.split(":"))
    first = now.replace(day=1, hour=hour, minute=minute, second=0, microsecond=0)
    # datetime.weekday() is Monday=0; recurrences use Sunday=0
    offset = (weekday - (first.weekday() + 1) % 7) % 7
    current = first + timedelta(days=offset)
    dates = []
    while current.month == first.month:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def seed_demo_clinic(
    session: Session,
    *,
    clinic_name: str = DEFAULT_CLINIC_NAME,
    professional_name: str = DEFAULT_PROFESSIONAL_NAME,
    now: datetime | None = None,
) -> SeedResult:
    """Ensure a demo clinic with one professional and two patients exists.

    Appointments are only created together with the clinic, so running the
    seed again leaves existing data untouched.
    """

    now = now or utcnow()
    clinic = session.scalar(select(Clinic).where(Clinic.name == clinic_name))
    if clinic is not None:
        professional = session.scalar(
            select(ProfessionalProfile).where(ProfessionalProfile.clinic_id == clinic.id)
        )
        patients = list(session.scalars(select(Patient).where(Patient.clinic_id == clinic.id)))
        return SeedResult(clinic, professional, patients, False, 0)

    clinic = Clinic(name=clinic_name, tax_percentage=Decimal("10.00"))
    session.add(clinic)
    session.flush()
    professional = ProfessionalProfile(
        clinic_id=clinic.id, name=professional_name, repasse_percentage=Decimal("80.00")
    )
    session.add(professional)
    session.flush()

    patients = []
    created = 0
    for name, mother, fee, weekday, start_time in _DEMO_PATIENTS:
        patient = Patient(
            clinic_id=clinic.id,
            name=name,
            mother_name=mother,
            session_fee=fee,
            reference_professional_id=professional.id,
        )
        session.add(patient)
        session.flush()
        recurrence = Recurrence(
            clinic_id=clinic.id,
            professional_profile_id=professional.id,
            patient_id=patient.id,
            day_of_week=weekday,
            start_time=start_time,
        )
        session.add(recurrence)
        session.flush()

        for scheduled_at in _month_dates(weekday, start_time, now):
            session.add(
                Appointment(
                    clinic_id=clinic.id,
                    professional_profile_id=professional.id,
                    patient_id=patient.id,
                    recurrence_id=recurrence.id,
                    title=f"Sessão {name}",
                    scheduled_at=scheduled_at,
                    end_at=scheduled_at + timedelta(minutes=50),
                    status=AppointmentStatus.AGENDADO.value,
                    type=AppointmentType.CONSULTA.value,
                )
            )
            created += 1
        patients.append(patient)

    session.flush()
    return SeedResult(clinic, professional, patients, True, created)


__all__ = ["SeedResult", "seed_demo_clinic"]
