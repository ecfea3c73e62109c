"""Unit tests for the session credit ledger."""

from __future__ import annotations

import os
import sys
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_clinic_billing.db")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest

from app.backend.src.core.errors import ConsistencyError, ValidationError
from app.backend.src.db import get_engine, session_scope
from app.backend.src.models import (
    Appointment,
    Clinic,
    Invoice,
    Patient,
    ProfessionalProfile,
    SessionCredit,
)
from app.backend.src.models.base import Base
from app.backend.src.services import credits as credit_ledger


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def seeded() -> dict[str, int]:
    """Three cancelled appointments (Jan, Feb, Mar) and one invoice for April."""

    with session_scope() as session:
        clinic = Clinic(name="Clínica")
        session.add(clinic)
        session.flush()
        professional = ProfessionalProfile(clinic_id=clinic.id, name="Helena")
        session.add(professional)
        session.flush()
        patient = Patient(clinic_id=clinic.id, name="Ana", session_fee=Decimal("150"))
        session.add(patient)
        session.flush()

        appointment_ids = []
        for month, status in ((1, "CANCELADO_FALTA"), (2, "CANCELADO_ACORDADO"), (3, "CANCELADO_ACORDADO")):
            scheduled = datetime(2024, month, 10, 9, 0)
            appointment = Appointment(
                clinic_id=clinic.id,
                professional_profile_id=professional.id,
                patient_id=patient.id,
                scheduled_at=scheduled,
                end_at=scheduled + timedelta(minutes=50),
                status=status,
                type="CONSULTA",
            )
            session.add(appointment)
            session.flush()
            appointment_ids.append(appointment.id)

        invoice = Invoice(
            clinic_id=clinic.id,
            professional_profile_id=professional.id,
            patient_id=patient.id,
            reference_month=4,
            reference_year=2024,
            due_date=date(2024, 4, 15),
            status="PENDENTE",
        )
        session.add(invoice)
        session.flush()

        return {
            "clinic_id": clinic.id,
            "professional_id": professional.id,
            "patient_id": patient.id,
            "jan": appointment_ids[0],
            "feb": appointment_ids[1],
            "mar": appointment_ids[2],
            "invoice_id": invoice.id,
        }


def _create_all(seeded: dict[str, int]) -> dict[str, int]:
    ids = {}
    with session_scope() as session:
        for key in ("jan", "feb", "mar"):
            appointment = session.get(Appointment, seeded[key])
            credit = credit_ledger.create_credit(
                session, appointment, now=appointment.scheduled_at + timedelta(hours=1)
            )
            ids[key] = credit.id
    return ids


def _credit(id: int, day: int) -> SimpleNamespace:
    return SimpleNamespace(id=id, created_at=datetime(2024, 2, day))


def test_apply_credits_takes_oldest_first() -> None:
    pool = [_credit(3, 20), _credit(1, 5), _credit(2, 10)]

    application = credit_ledger.apply_credits(pool, 2)

    assert [credit.id for credit in application.applied] == [1, 2]
    assert [credit.id for credit in application.remaining] == [3]


def test_apply_credits_with_short_pool_or_no_need() -> None:
    pool = [_credit(1, 5)]

    assert len(credit_ledger.apply_credits(pool, 4).applied) == 1
    assert credit_ledger.apply_credits(pool, 0).applied == []
    assert credit_ledger.apply_credits([], 3).applied == []


def test_create_credit_is_idempotent(seeded: dict[str, int]) -> None:
    with session_scope() as session:
        appointment = session.get(Appointment, seeded["feb"])
        first = credit_ledger.create_credit(session, appointment)
        second = credit_ledger.create_credit(session, appointment)

        assert first is not None
        assert second is None
        assert first.reason == "Desmarcou - 10/02/2024"
        assert appointment.credit_generated is True

    with session_scope() as session:
        assert session.query(SessionCredit).count() == 1


def test_available_credits_only_include_origins_before_cutoff(seeded: dict[str, int]) -> None:
    _create_all(seeded)

    with session_scope() as session:
        march = credit_ledger.available_credits(
            session,
            professional_id=seeded["professional_id"],
            patient_id=seeded["patient_id"],
            origin_before=datetime(2024, 3, 1),
        )
        april = credit_ledger.available_credits(
            session,
            professional_id=seeded["professional_id"],
            patient_id=seeded["patient_id"],
            origin_before=datetime(2024, 4, 1),
        )

    assert [credit.origin_appointment_id for credit in march] == [seeded["jan"], seeded["feb"]]
    assert len(april) == 3


def test_consume_and_release(seeded: dict[str, int]) -> None:
    ids = _create_all(seeded)

    with session_scope() as session:
        credit = session.get(SessionCredit, ids["jan"])
        credit_ledger.consume_credits(
            session, [credit], seeded["invoice_id"], now=datetime(2024, 4, 1)
        )
        assert credit.consumed_by_invoice_id == seeded["invoice_id"]
        assert credit.is_available is False

    with session_scope() as session:
        released = credit_ledger.release_credits(session, seeded["invoice_id"])
        assert released == 1

    with session_scope() as session:
        credit = session.get(SessionCredit, ids["jan"])
        assert credit.consumed_by_invoice_id is None
        assert credit.consumed_at is None


def test_consuming_twice_raises(seeded: dict[str, int]) -> None:
    ids = _create_all(seeded)

    with session_scope() as session:
        credit = session.get(SessionCredit, ids["feb"])
        credit_ledger.consume_credits(session, [credit], seeded["invoice_id"])

    with session_scope() as session:
        stale = SimpleNamespace(id=ids["feb"])
        with pytest.raises(ConsistencyError):
            credit_ledger.consume_credits(session, [stale], seeded["invoice_id"])


def test_list_credits_filters(seeded: dict[str, int]) -> None:
    ids = _create_all(seeded)
    with session_scope() as session:
        credit = session.get(SessionCredit, ids["jan"])
        credit_ledger.consume_credits(session, [credit], seeded["invoice_id"])

    with session_scope() as session:
        everything = credit_ledger.list_credits(session, seeded["clinic_id"])
        available = credit_ledger.list_credits(session, seeded["clinic_id"], status="available")
        consumed = credit_ledger.list_credits(session, seeded["clinic_id"], status="consumed")
        april = credit_ledger.list_credits(session, seeded["clinic_id"], year=2024, month=4)
        february = credit_ledger.list_credits(session, seeded["clinic_id"], year=2024, month=2)
        other_patient = credit_ledger.list_credits(
            session, seeded["clinic_id"], patient_id=seeded["patient_id"] + 100
        )

        assert [c.id for c in everything] == [ids["mar"], ids["feb"], ids["jan"]]
        assert {c.id for c in available} == {ids["feb"], ids["mar"]}
        assert [c.id for c in consumed] == [ids["jan"]]
        assert [c.id for c in april] == [ids["jan"]]
        assert [c.id for c in february] == [ids["feb"]]
        assert other_patient == []

        with pytest.raises(ValidationError):
            credit_ledger.list_credits(session, seeded["clinic_id"], status="expired")
