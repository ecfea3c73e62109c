"""Financial dashboard aggregated from persisted invoices.

Amounts are summed as ``Decimal`` and rounded to cents once per bucket.
Cancelled invoices are counted apart and stay out of every amount.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.backend.src.core.errors import NotFoundError, ValidationError
from app.backend.src.models import Clinic, Invoice, SessionCredit
from app.backend.src.models.enums import InvoiceStatus
from app.backend.src.services.repasse import round2

LOGGER = structlog.get_logger(__name__)


@dataclass
class StatusTotals:
    faturado: Decimal = Decimal("0")
    pendente: Decimal = Decimal("0")
    enviado: Decimal = Decimal("0")
    pago: Decimal = Decimal("0")
    sessions: int = 0
    credits: int = 0
    extras: int = 0
    invoice_count: int = 0
    pending_count: int = 0
    enviado_count: int = 0
    paid_count: int = 0
    cancelled_count: int = 0

    def add(self, invoice: Any) -> None:
        if invoice.status == InvoiceStatus.CANCELADO.value:
            self.cancelled_count += 1
            return

        amount = Decimal(str(invoice.total_amount))
        self.faturado += amount
        self.sessions += invoice.total_sessions
        self.credits += invoice.credits_applied
        self.extras += invoice.extras_added
        self.invoice_count += 1
        if invoice.status == InvoiceStatus.PENDENTE.value:
            self.pendente += amount
            self.pending_count += 1
        elif invoice.status == InvoiceStatus.ENVIADO.value:
            self.enviado += amount
            self.enviado_count += 1
        elif invoice.status == InvoiceStatus.PAGO.value:
            self.pago += amount
            self.paid_count += 1

    def rounded(self) -> "StatusTotals":
        self.faturado = round2(self.faturado)
        self.pendente = round2(self.pendente)
        self.enviado = round2(self.enviado)
        self.pago = round2(self.pago)
        return self


@dataclass
class MonthDashboard:
    month: int
    totals: StatusTotals


@dataclass
class ProfessionalDashboard:
    professional_id: int
    name: str
    totals: StatusTotals
    patient_ids: set[int] = field(default_factory=set)

    @property
    def patient_count(self) -> int:
        return len(self.patient_ids)


@dataclass
class FinancialDashboard:
    year: int
    month: int | None
    totals: StatusTotals
    available_credits: int
    by_month: list[MonthDashboard]
    by_professional: list[ProfessionalDashboard]


def summarize_invoices(
    invoices: Iterable[Any],
) -> tuple[StatusTotals, list[MonthDashboard], list[ProfessionalDashboard]]:
    """Aggregate invoices overall, per reference month and per professional.

    Months come out in calendar order. Professionals are ordered by amount
    billed, highest first, then by name.
    """

    totals = StatusTotals()
    by_month: dict[int, StatusTotals] = {}
    by_professional: dict[int, ProfessionalDashboard] = {}

    for invoice in invoices:
        totals.add(invoice)
        by_month.setdefault(invoice.reference_month, StatusTotals()).add(invoice)

        entry = by_professional.get(invoice.professional_profile_id)
        if entry is None:
            entry = ProfessionalDashboard(
                professional_id=invoice.professional_profile_id,
                name=invoice.professional_name,
                totals=StatusTotals(),
            )
            by_professional[invoice.professional_profile_id] = entry
        entry.totals.add(invoice)
        if invoice.status != InvoiceStatus.CANCELADO.value:
            entry.patient_ids.add(invoice.patient_id)

    months = [
        MonthDashboard(month=month, totals=month_totals.rounded())
        for month, month_totals in sorted(by_month.items())
    ]
    professionals = sorted(
        by_professional.values(),
        key=lambda entry: (-entry.totals.faturado, entry.name),
    )
    for entry in professionals:
        entry.totals.rounded()
    return totals.rounded(), months, professionals


def build_dashboard(
    session: Session,
    clinic_id: int,
    year: int,
    *,
    month: int | None = None,
    professional_id: int | None = None,
) -> FinancialDashboard:
    """Build the dashboard for a year, or one month of it."""

    if not 2020 <= year <= 2100:
        raise ValidationError("Ano inválido", details={"year": year})
    if month is not None and not 1 <= month <= 12:
        raise ValidationError("Mês inválido", details={"month": month})
    if session.get(Clinic, clinic_id) is None:
        raise NotFoundError("Clínica não encontrada", details={"clinicId": clinic_id})

    stmt = (
        select(Invoice)
        .options(selectinload(Invoice.professional_profile))
        .where(Invoice.clinic_id == clinic_id, Invoice.reference_year == year)
        .order_by(Invoice.id)
    )
    credit_stmt = select(func.count(SessionCredit.id)).where(
        SessionCredit.clinic_id == clinic_id,
        SessionCredit.consumed_by_invoice_id.is_(None),
    )
    if month is not None:
        stmt = stmt.where(Invoice.reference_month == month)
    if professional_id is not None:
        stmt = stmt.where(Invoice.professional_profile_id == professional_id)
        credit_stmt = credit_stmt.where(SessionCredit.professional_profile_id == professional_id)

    invoices = list(session.scalars(stmt))
    totals, months, professionals = summarize_invoices(invoices)
    available_credits = session.scalar(credit_stmt) or 0

    LOGGER.info(
        "dashboard_built",
        clinic_id=clinic_id,
        year=year,
        month=month,
        invoices=len(invoices),
    )
    return FinancialDashboard(
        year=year,
        month=month,
        totals=totals,
        available_credits=available_credits,
        by_month=months,
        by_professional=professionals,
    )


__all__ = [
    "FinancialDashboard",
    "MonthDashboard",
    "ProfessionalDashboard",
    "StatusTotals",
    "build_dashboard",
    "summarize_invoices",
]
