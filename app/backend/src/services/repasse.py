"""Professional payout (repasse) computation.

Every step is rounded to cents on its own, and the monthly summary adds the
already-rounded per-invoice values before rounding again. Rounding the sum of
raw values instead can differ by a cent, so the order here is kept as is.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import NotFoundError
from app.backend.src.models import Clinic, Invoice, ProfessionalProfile
from app.backend.src.models.enums import InvoiceStatus

LOGGER = structlog.get_logger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

REPASSE_BILLABLE_INVOICE_STATUSES: tuple[str, ...] = (
    InvoiceStatus.PENDENTE.value,
    InvoiceStatus.ENVIADO.value,
    InvoiceStatus.PAGO.value,
)


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _dec(value: Decimal | int | float | str) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


@dataclass(frozen=True)
class RepasseCalc:
    gross_value: Decimal
    tax_amount: Decimal
    after_tax: Decimal
    repasse_value: Decimal


@dataclass(frozen=True)
class InvoiceForRepasse:
    invoice_id: int
    patient_name: str
    total_sessions: int
    total_amount: Decimal


@dataclass(frozen=True)
class RepasseLine:
    invoice_id: int
    patient_name: str
    total_sessions: int
    gross_value: Decimal
    tax_amount: Decimal
    after_tax: Decimal
    repasse_value: Decimal


@dataclass(frozen=True)
class RepasseSummary:
    total_invoices: int
    total_sessions: int
    total_gross: Decimal
    total_tax: Decimal
    total_after_tax: Decimal
    total_repasse: Decimal


@dataclass
class ProfessionalRepasse:
    professional_id: int
    name: str
    repasse_percent: Decimal
    tax_percent: Decimal
    lines: list[RepasseLine]
    summary: RepasseSummary


def calculate_repasse(
    gross_value: Decimal | int | float | str,
    tax_percent: Decimal | int | float | str,
    repasse_percent: Decimal | int | float | str,
) -> RepasseCalc:
    gross = _dec(gross_value)
    tax_amount = round2(gross * (_dec(tax_percent) / HUNDRED))
    after_tax = round2(gross - tax_amount)
    repasse_value = round2(after_tax * (_dec(repasse_percent) / HUNDRED))
    return RepasseCalc(
        gross_value=gross,
        tax_amount=tax_amount,
        after_tax=after_tax,
        repasse_value=repasse_value,
    )


def build_repasse_from_invoices(
    invoices: Iterable[InvoiceForRepasse],
    tax_percent: Decimal | int | float | str,
    repasse_percent: Decimal | int | float | str,
) -> list[RepasseLine]:
    lines = []
    for invoice in invoices:
        calc = calculate_repasse(invoice.total_amount, tax_percent, repasse_percent)
        lines.append(
            RepasseLine(
                invoice_id=invoice.invoice_id,
                patient_name=invoice.patient_name,
                total_sessions=invoice.total_sessions,
                gross_value=calc.gross_value,
                tax_amount=calc.tax_amount,
                after_tax=calc.after_tax,
                repasse_value=calc.repasse_value,
            )
        )
    return lines


def calculate_repasse_summary(lines: Sequence[RepasseLine]) -> RepasseSummary:
    total_gross = sum((line.gross_value for line in lines), Decimal("0"))
    total_tax = sum((line.tax_amount for line in lines), Decimal("0"))
    total_after_tax = sum((line.after_tax for line in lines), Decimal("0"))
    total_repasse = sum((line.repasse_value for line in lines), Decimal("0"))
    return RepasseSummary(
        total_invoices=len(lines),
        total_sessions=sum(line.total_sessions for line in lines),
        total_gross=round2(total_gross),
        total_tax=round2(total_tax),
        total_after_tax=round2(total_after_tax),
        total_repasse=round2(total_repasse),
    )


def build_repasse_report(
    session: Session,
    clinic_id: int,
    month: int,
    year: int,
    *,
    professional_id: int | None = None,
) -> tuple[Decimal, list[ProfessionalRepasse]]:
    """Return the clinic tax percent and one repasse block per professional."""

    clinic = session.get(Clinic, clinic_id)
    if clinic is None:
        raise NotFoundError("Clínica não encontrada", details={"clinicId": clinic_id})
    tax_percent = _dec(
        clinic.tax_percentage
        if clinic.tax_percentage is not None
        else get_settings().default_tax_percentage
    )

    prof_stmt = select(ProfessionalProfile).where(ProfessionalProfile.clinic_id == clinic_id)
    if professional_id is not None:
        prof_stmt = prof_stmt.where(ProfessionalProfile.id == professional_id)
    professionals = list(session.scalars(prof_stmt.order_by(ProfessionalProfile.name)))
    if professional_id is not None and not professionals:
        raise NotFoundError(
            "Profissional não encontrado", details={"professionalId": professional_id}
        )

    invoices = session.scalars(
        select(Invoice)
        .options(selectinload(Invoice.patient))
        .where(
            Invoice.clinic_id == clinic_id,
            Invoice.reference_month == month,
            Invoice.reference_year == year,
            Invoice.status.in_(REPASSE_BILLABLE_INVOICE_STATUSES),
        )
        .order_by(Invoice.id)
    )
    by_professional: dict[int, list[InvoiceForRepasse]] = {}
    for invoice in invoices:
        by_professional.setdefault(invoice.professional_profile_id, []).append(
            InvoiceForRepasse(
                invoice_id=invoice.id,
                patient_name=invoice.patient_name,
                total_sessions=invoice.total_sessions,
                total_amount=_dec(invoice.total_amount),
            )
        )

    report = []
    for professional in professionals:
        repasse_percent = _dec(professional.repasse_percentage or 0)
        lines = build_repasse_from_invoices(
            by_professional.get(professional.id, []), tax_percent, repasse_percent
        )
        report.append(
            ProfessionalRepasse(
                professional_id=professional.id,
                name=professional.name,
                repasse_percent=repasse_percent,
                tax_percent=tax_percent,
                lines=lines,
                summary=calculate_repasse_summary(lines),
            )
        )

    LOGGER.info(
        "repasse_report_built",
        clinic_id=clinic_id,
        month=month,
        year=year,
        professionals=len(report),
    )
    return tax_percent, report


__all__ = [
    "REPASSE_BILLABLE_INVOICE_STATUSES",
    "InvoiceForRepasse",
    "ProfessionalRepasse",
    "RepasseCalc",
    "RepasseLine",
    "RepasseSummary",
    "build_repasse_from_invoices",
    "build_repasse_report",
    "calculate_repasse",
    "calculate_repasse_summary",
    "round2",
]
