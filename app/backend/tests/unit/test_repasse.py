"""Unit tests for the professional payout computation."""

from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_clinic_billing.db")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest

from app.backend.src.core.errors import NotFoundError
from app.backend.src.db import get_engine, session_scope
from app.backend.src.models import Clinic, Invoice, Patient, ProfessionalProfile
from app.backend.src.models.base import Base
from app.backend.src.services.repasse import (
    InvoiceForRepasse,
    build_repasse_from_invoices,
    build_repasse_report,
    calculate_repasse,
    calculate_repasse_summary,
)


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def test_calculate_repasse_example() -> None:
    calc = calculate_repasse(Decimal("1000"), Decimal("10"), Decimal("80"))

    assert calc.tax_amount == Decimal("100.00")
    assert calc.after_tax == Decimal("900.00")
    assert calc.repasse_value == Decimal("720.00")


def test_each_step_rounds_half_up() -> None:
    calc = calculate_repasse(Decimal("100.05"), Decimal("10"), Decimal("50"))

    # 10.005 -> 10.01, 90.04 * 0.5 = 45.02
    assert calc.tax_amount == Decimal("10.01")
    assert calc.after_tax == Decimal("90.04")
    assert calc.repasse_value == Decimal("45.02")


def test_zero_tax_and_zero_repasse() -> None:
    assert calculate_repasse(Decimal("300"), 0, 100).repasse_value == Decimal("300.00")
    assert calculate_repasse(Decimal("300"), 0, 0).repasse_value == Decimal("0.00")


def test_summary_adds_rounded_line_values() -> None:
    invoices = [
        InvoiceForRepasse(1, "Ana", 1, Decimal("0.05")),
        InvoiceForRepasse(2, "Bruno", 1, Decimal("0.05")),
        InvoiceForRepasse(3, "Caio", 1, Decimal("0.05")),
    ]

    lines = build_repasse_from_invoices(invoices, Decimal("10"), Decimal("50"))
    summary = calculate_repasse_summary(lines)

    # per line: tax 0.005 -> 0.01, after tax 0.04, repasse 0.02
    assert [line.repasse_value for line in lines] == [Decimal("0.02")] * 3
    assert summary.total_tax == Decimal("0.03")
    assert summary.total_after_tax == Decimal("0.12")
    assert summary.total_repasse == Decimal("0.06")
    assert summary.total_gross == Decimal("0.15")
    assert summary.total_invoices == 3
    assert summary.total_sessions == 3


def test_summary_of_no_lines() -> None:
    summary = calculate_repasse_summary([])

    assert summary.total_invoices == 0
    assert summary.total_repasse == Decimal("0.00")


def _seed_invoices() -> tuple[int, int, int]:
    with session_scope() as session:
        clinic = Clinic(name="Clínica", tax_percentage=Decimal("10"))
        session.add(clinic)
        session.flush()
        helena = ProfessionalProfile(
            clinic_id=clinic.id, name="Helena", repasse_percentage=Decimal("80")
        )
        otto = ProfessionalProfile(clinic_id=clinic.id, name="Otto", repasse_percentage=Decimal("50"))
        session.add_all([helena, otto])
        session.flush()
        patient = Patient(clinic_id=clinic.id, name="Ana", session_fee=Decimal("150"))
        other = Patient(clinic_id=clinic.id, name="Bruno", session_fee=Decimal("150"))
        session.add_all([patient, other])
        session.flush()

        for patient_id, status, total in (
            (patient.id, "PAGO", Decimal("600.00")),
            (other.id, "PENDENTE", Decimal("400.00")),
        ):
            session.add(
                Invoice(
                    clinic_id=clinic.id,
                    professional_profile_id=helena.id,
                    patient_id=patient_id,
                    reference_month=3,
                    reference_year=2024,
                    total_sessions=4,
                    total_amount=total,
                    due_date=date(2024, 3, 15),
                    status=status,
                )
            )
        session.add(
            Invoice(
                clinic_id=clinic.id,
                professional_profile_id=otto.id,
                patient_id=patient.id,
                reference_month=3,
                reference_year=2024,
                total_sessions=2,
                total_amount=Decimal("300.00"),
                due_date=date(2024, 3, 15),
                status="CANCELADO",
            )
        )
        return clinic.id, helena.id, otto.id


def test_report_groups_by_professional_and_ignores_cancelled() -> None:
    clinic_id, helena_id, otto_id = _seed_invoices()

    with session_scope() as session:
        tax_percent, report = build_repasse_report(session, clinic_id, 3, 2024)

    assert tax_percent == Decimal("10")
    by_id = {block.professional_id: block for block in report}
    helena = by_id[helena_id]
    assert helena.summary.total_invoices == 2
    assert helena.summary.total_gross == Decimal("1000.00")
    assert helena.summary.total_tax == Decimal("100.00")
    assert helena.summary.total_repasse == Decimal("720.00")
    assert by_id[otto_id].lines == []


def test_report_for_single_professional_and_missing_professional() -> None:
    clinic_id, helena_id, _ = _seed_invoices()

    with session_scope() as session:
        _, report = build_repasse_report(session, clinic_id, 3, 2024, professional_id=helena_id)
        assert [block.professional_id for block in report] == [helena_id]

        with pytest.raises(NotFoundError):
            build_repasse_report(session, clinic_id, 3, 2024, professional_id=9999)


def test_report_for_unknown_clinic() -> None:
    with session_scope() as session:
        with pytest.raises(NotFoundError):
            build_repasse_report(session, 4242, 3, 2024)
