"""Monthly invoice generation, regeneration and manual adjustments.

A batch covers one professional for one reference month. It runs under the
regeneration lock for that key and inside a single transaction: previous
regenerable invoices are deleted, their credits released, appointments
reclassified, credits re-applied and invoices recreated. Any failure rolls the
whole batch back.
"""

from __future__ import annotations

import calendar
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from time import perf_counter

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from app.backend.src.core.clock import utcnow
from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import ConsistencyError, NotFoundError, ValidationError
from app.backend.src.core.locks import regeneration_lock
from app.backend.src.models import (
    Appointment,
    Clinic,
    Invoice,
    InvoiceItem,
    Patient,
    ProfessionalProfile,
    SessionCredit,
)
from app.backend.src.models.enums import InvoiceItemType, InvoiceStatus
from app.backend.src.services import credits as credit_ledger
from app.backend.src.services.classification import classify_appointments
from app.backend.src.services.invoice_builder import (
    MANUAL_ITEM_TYPES,
    InvoiceItemData,
    InvoiceTotals,
    build_invoice_items,
    calculate_invoice_totals,
    separate_manual_items,
    should_skip_invoice,
    to_money,
)
from app.backend.src.services.invoice_sort import (
    build_recurrence_map,
    sort_invoices_by_recurrence,
)
from app.backend.src.services.invoice_template import (
    DEFAULT_INVOICE_TEMPLATE,
    build_detail_block,
    format_currency_brl,
    format_date_br,
    format_day_month,
    get_month_name,
    render_invoice_template,
)
from app.backend.src.services.metrics import (
    invoice_generation_seconds,
    invoices_generated_total,
)

LOGGER = structlog.get_logger(__name__)

_DATE_IN_DESCRIPTION = re.compile(r"\d{2}/\d{2}")


@dataclass
class SkippedPatient:
    patient_id: int
    reason: str


@dataclass
class GenerationResult:
    professional_id: int
    month: int
    year: int
    invoices: list[Invoice] = field(default_factory=list)
    skipped: list[SkippedPatient] = field(default_factory=list)
    credits_created: int = 0


# --------------------------------------------------------------------------
# Period helpers
# --------------------------------------------------------------------------
def validate_period(month: int, year: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError("Mês inválido", details={"month": month})
    if not 2020 <= year <= 2100:
        raise ValidationError("Ano inválido", details={"year": year})


def month_bounds(month: int, year: int) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` datetimes of the reference month."""

    start = datetime(year, month, 1)
    end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    return start, end


def due_date_for(month: int, year: int, due_day: int | None = None) -> date:
    day = due_day if due_day is not None else get_settings().invoice_due_day
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, max(1, min(day, last_day)))


# --------------------------------------------------------------------------
# Message rendering
# --------------------------------------------------------------------------
def _description_with_date(description: str, scheduled_at: datetime | None) -> str:
    if scheduled_at is None or _DATE_IN_DESCRIPTION.search(description):
        return description
    return f"{description} - {format_day_month(scheduled_at)}"


def render_invoice_message(
    invoice: Invoice,
    patient: Patient,
    *,
    clinic_template: str | None,
    professional_name: str,
    totals: InvoiceTotals,
    appointment_dates: Mapping[int, datetime],
) -> str:
    """Fill the patient's (or clinic's, or the default) template for ``invoice``."""

    detalhes = build_detail_block(
        (
            {
                "description": _description_with_date(
                    item.description, appointment_dates.get(item.appointment_id)
                ),
                "total": format_currency_brl(item.total),
                "type": item.type,
            }
            for item in invoice.items
        ),
        grouped=True,
    )
    template = patient.invoice_message_template or clinic_template or DEFAULT_INVOICE_TEMPLATE
    session_fee = patient.session_fee if patient.session_fee is not None else Decimal("0")

    return render_invoice_template(
        template,
        {
            "paciente": patient.name,
            "mae": patient.mother_name or "",
            "pai": patient.father_name or "",
            "valor": format_currency_brl(totals.total_amount),
            "mes": get_month_name(invoice.reference_month),
            "ano": str(invoice.reference_year),
            "vencimento": format_date_br(invoice.due_date),
            "sessoes": str(totals.total_sessions),
            "profissional": professional_name,
            "sessoes_regulares": str(totals.regular_sessions),
            "sessoes_extras": str(totals.extra_sessions),
            "sessoes_grupo": str(totals.group_sessions),
            "reunioes_escola": str(totals.school_meetings),
            "creditos": str(totals.credits_applied),
            "valor_sessao": format_currency_brl(session_fee),
            "detalhes": detalhes,
        },
    )


def _apply_totals(invoice: Invoice, totals: InvoiceTotals) -> None:
    invoice.total_sessions = totals.total_sessions
    invoice.credits_applied = totals.credits_applied
    invoice.extras_added = totals.extras_added
    invoice.total_amount = totals.total_amount


def verify_invoice_totals(invoice: Invoice) -> None:
    """Raise :class:`ConsistencyError` if the items do not add up to the total."""

    items_sum = to_money(sum((Decimal(str(item.total)) for item in invoice.items), Decimal("0")))
    if items_sum != to_money(invoice.total_amount):
        raise ConsistencyError(
            "Soma dos itens diverge do total da fatura",
            details={
                "invoiceId": invoice.id,
                "itemsTotal": str(items_sum),
                "totalAmount": str(invoice.total_amount),
            },
        )


def _new_item(data: InvoiceItemData, now: datetime) -> InvoiceItem:
    return InvoiceItem(
        appointment_id=data.appointment_id,
        credit_id=data.credit_id,
        type=data.type,
        description=data.description,
        quantity=data.quantity,
        unit_price=data.unit_price,
        total=data.total,
        created_at=now,
    )


def _copy_manual_items(items: Iterable[InvoiceItem]) -> list[InvoiceItemData]:
    _, manual = separate_manual_items(items)
    return [
        InvoiceItemData(
            type=item.type,
            description=item.description,
            quantity=item.quantity,
            unit_price=to_money(item.unit_price),
            total=to_money(item.total),
        )
        for item in manual
    ]


# --------------------------------------------------------------------------
# Batch generation
# --------------------------------------------------------------------------
def _get_professional(session: Session, clinic_id: int, professional_id: int) -> ProfessionalProfile:
    professional = session.scalar(
        select(ProfessionalProfile).where(
            ProfessionalProfile.id == professional_id,
            ProfessionalProfile.clinic_id == clinic_id,
        )
    )
    if professional is None:
        raise NotFoundError(
            "Profissional não encontrado", details={"professionalId": professional_id}
        )
    return professional


def _get_clinic(session: Session, clinic_id: int) -> Clinic:
    clinic = session.get(Clinic, clinic_id)
    if clinic is None:
        raise NotFoundError("Clínica não encontrada", details={"clinicId": clinic_id})
    return clinic


def _generate_batch(
    session: Session,
    clinic: Clinic,
    professional: ProfessionalProfile,
    month: int,
    year: int,
    now: datetime,
) -> GenerationResult:
    result = GenerationResult(professional_id=professional.id, month=month, year=year)
    start, end = month_bounds(month, year)

    appointments = session.scalars(
        select(Appointment)
        .where(
            Appointment.clinic_id == clinic.id,
            Appointment.professional_profile_id == professional.id,
            Appointment.patient_id.is_not(None),
            Appointment.scheduled_at >= start,
            Appointment.scheduled_at < end,
        )
        .order_by(Appointment.scheduled_at, Appointment.id)
    )
    by_patient: dict[int, list[Appointment]] = {}
    for appointment in appointments:
        by_patient.setdefault(appointment.patient_id, []).append(appointment)

    if not by_patient:
        LOGGER.info(
            "invoice_batch_empty",
            professional_id=professional.id,
            month=month,
            year=year,
        )
        return result

    patient_ids = list(by_patient)
    patients = {
        patient.id: patient
        for patient in session.scalars(select(Patient).where(Patient.id.in_(patient_ids)))
    }
    existing = {
        invoice.patient_id: invoice
        for invoice in session.scalars(
            select(Invoice)
            .options(selectinload(Invoice.items))
            .where(
                Invoice.professional_profile_id == professional.id,
                Invoice.reference_month == month,
                Invoice.reference_year == year,
                Invoice.patient_id.in_(patient_ids),
            )
        )
    }
    due_date = due_date_for(month, year)

    for patient_id, patient_appointments in by_patient.items():
        previous = existing.get(patient_id)
        if previous is not None and should_skip_invoice(previous.status):
            result.skipped.append(SkippedPatient(patient_id, f"invoice_{previous.status.lower()}"))
            continue

        classified = classify_appointments(patient_appointments)
        for appointment in classified.credit_generating:
            if not appointment.credit_generated:
                if credit_ledger.create_credit(session, appointment, now=now) is not None:
                    result.credits_created += 1

        manual_items: list[InvoiceItemData] = []
        if previous is not None:
            manual_items = _copy_manual_items(previous.items)
            credit_ledger.release_credits(session, previous.id)
            session.delete(previous)
            session.flush()

        patient = patients.get(patient_id)
        if patient is None or patient.session_fee is None:
            result.skipped.append(SkippedPatient(patient_id, "missing_session_fee"))
            continue
        if classified.billable_count == 0:
            result.skipped.append(SkippedPatient(patient_id, "no_billable_appointments"))
            continue

        pool = credit_ledger.available_credits(
            session,
            professional_id=professional.id,
            patient_id=patient_id,
            origin_before=start,
        )
        application = credit_ledger.apply_credits(pool, classified.billable_count)

        item_data = build_invoice_items(
            classified,
            patient.session_fee,
            application.applied,
            patient.show_appointment_days_on_invoice,
        )
        item_data.extend(manual_items)
        totals = calculate_invoice_totals(item_data)

        invoice = Invoice(
            clinic_id=clinic.id,
            professional_profile_id=professional.id,
            patient_id=patient_id,
            reference_month=month,
            reference_year=year,
            due_date=due_date,
            status=InvoiceStatus.PENDENTE.value,
            show_appointment_days=patient.show_appointment_days_on_invoice,
            created_at=now,
        )
        invoice.items = [_new_item(data, now) for data in item_data]
        _apply_totals(invoice, totals)
        invoice.message_body = render_invoice_message(
            invoice,
            patient,
            clinic_template=clinic.invoice_message_template,
            professional_name=professional.name,
            totals=totals,
            appointment_dates={a.id: a.scheduled_at for a in patient_appointments},
        )
        verify_invoice_totals(invoice)

        session.add(invoice)
        session.flush()
        credit_ledger.consume_credits(session, application.applied, invoice.id, now=now)
        result.invoices.append(invoice)

    return result


def generate_invoices(
    session: Session,
    clinic_id: int,
    professional_id: int,
    month: int,
    year: int,
    *,
    now: datetime | None = None,
) -> GenerationResult:
    """(Re)generate every invoice of ``professional_id`` for ``month/year``.

    PAGO and ENVIADO invoices are left untouched. Patients without billable
    appointments or without a session fee get no invoice.
    """

    validate_period(month, year)
    clinic = _get_clinic(session, clinic_id)
    professional = _get_professional(session, clinic_id, professional_id)
    now = now or utcnow()

    started = perf_counter()
    with regeneration_lock(professional_id, month, year):
        try:
            result = _generate_batch(session, clinic, professional, month, year, now)
            session.commit()
        except Exception as exc:
            session.rollback()
            invoices_generated_total.labels(outcome="failed").inc()
            LOGGER.error(
                "invoice_batch_failed",
                professional_id=professional_id,
                month=month,
                year=year,
                error=str(exc),
            )
            raise
        finally:
            invoice_generation_seconds.observe(perf_counter() - started)

    invoices_generated_total.labels(outcome="generated").inc(len(result.invoices))
    invoices_generated_total.labels(outcome="skipped").inc(len(result.skipped))
    LOGGER.info(
        "invoice_batch_generated",
        professional_id=professional_id,
        month=month,
        year=year,
        generated=len(result.invoices),
        skipped=len(result.skipped),
        credits_created=result.credits_created,
    )
    return result


# --------------------------------------------------------------------------
# Single invoice operations
# --------------------------------------------------------------------------
def get_invoice(session: Session, clinic_id: int, invoice_id: int) -> Invoice:
    invoice = session.scalar(
        select(Invoice)
        .options(
            selectinload(Invoice.items).selectinload(InvoiceItem.appointment),
            selectinload(Invoice.patient),
            selectinload(Invoice.professional_profile),
            selectinload(Invoice.consumed_credits),
        )
        .where(Invoice.id == invoice_id, Invoice.clinic_id == clinic_id)
    )
    if invoice is None:
        raise NotFoundError("Fatura não encontrada", details={"invoiceId": invoice_id})
    return invoice


def list_invoices(
    session: Session,
    clinic_id: int,
    month: int,
    year: int,
    *,
    professional_id: int | None = None,
) -> list[Invoice]:
    """Invoices of a month, each professional's batch in weekly-slot order."""

    validate_period(month, year)
    stmt = (
        select(Invoice)
        .options(selectinload(Invoice.patient), selectinload(Invoice.items))
        .where(
            Invoice.clinic_id == clinic_id,
            Invoice.reference_month == month,
            Invoice.reference_year == year,
        )
        .order_by(Invoice.professional_profile_id, Invoice.id)
    )
    if professional_id is not None:
        stmt = stmt.where(Invoice.professional_profile_id == professional_id)

    by_professional: dict[int, list[Invoice]] = {}
    for invoice in session.scalars(stmt):
        by_professional.setdefault(invoice.professional_profile_id, []).append(invoice)

    ordered: list[Invoice] = []
    for prof_id, invoices in by_professional.items():
        recurrence_map = build_recurrence_map(
            session, prof_id, (invoice.patient_id for invoice in invoices)
        )
        ordered.extend(sort_invoices_by_recurrence(invoices, recurrence_map))
    return ordered


def recalculate_invoice(session: Session, invoice: Invoice) -> InvoiceTotals:
    """Recompute totals and message of ``invoice`` from its current items."""

    session.flush()
    patient = invoice.patient or session.get(Patient, invoice.patient_id)
    clinic = session.get(Clinic, invoice.clinic_id)
    professional = invoice.professional_profile or session.get(
        ProfessionalProfile, invoice.professional_profile_id
    )

    totals = calculate_invoice_totals(invoice.items)
    _apply_totals(invoice, totals)
    appointment_dates = {
        item.appointment_id: item.appointment.scheduled_at
        for item in invoice.items
        if item.appointment is not None
    }
    invoice.message_body = render_invoice_message(
        invoice,
        patient,
        clinic_template=clinic.invoice_message_template if clinic else None,
        professional_name=professional.name if professional else "",
        totals=totals,
        appointment_dates=appointment_dates,
    )
    verify_invoice_totals(invoice)
    return totals


def add_invoice_item(
    session: Session,
    clinic_id: int,
    invoice_id: int,
    *,
    type: str,
    description: str,
    quantity: int = 1,
    unit_price: Decimal | int | str,
    now: datetime | None = None,
) -> InvoiceItem:
    """Add a manual SESSAO_EXTRA or REUNIAO_ESCOLA line and recalculate."""

    if type not in MANUAL_ITEM_TYPES:
        raise ValidationError(
            f'Tipo de item "{type}" não pode ser adicionado manualmente',
            details={"type": type, "allowed": sorted(MANUAL_ITEM_TYPES)},
        )
    if not description or not description.strip():
        raise ValidationError("Descrição é obrigatória")
    if quantity < 1:
        raise ValidationError("Quantidade deve ser ao menos 1", details={"quantity": quantity})
    price = to_money(unit_price)
    if price < 0:
        raise ValidationError("Valor unitário não pode ser negativo", details={"unitPrice": str(price)})

    invoice = get_invoice(session, clinic_id, invoice_id)
    try:
        item = InvoiceItem(
            type=type,
            description=description.strip(),
            quantity=quantity,
            unit_price=price,
            total=to_money(price * quantity),
            created_at=now or utcnow(),
        )
        invoice.items.append(item)
        recalculate_invoice(session, invoice)
        session.commit()
    except Exception:
        session.rollback()
        raise

    LOGGER.info("invoice_item_added", invoice_id=invoice.id, item_id=item.id, type=type)
    return item


def _get_item(invoice: Invoice, item_id: int) -> InvoiceItem:
    for item in invoice.items:
        if item.id == item_id:
            return item
    raise NotFoundError("Item não encontrado", details={"itemId": item_id})


def update_invoice_item(
    session: Session,
    clinic_id: int,
    invoice_id: int,
    item_id: int,
    *,
    description: str | None = None,
    quantity: int | None = None,
    unit_price: Decimal | int | str | None = None,
) -> InvoiceItem:
    """Edit one line; CREDITO lines keep a negative unit price."""

    invoice = get_invoice(session, clinic_id, invoice_id)
    item = _get_item(invoice, item_id)

    if quantity is not None and quantity < 1:
        raise ValidationError("Quantidade deve ser ao menos 1", details={"quantity": quantity})
    if description is not None and not description.strip():
        raise ValidationError("Descrição é obrigatória")
    price = to_money(unit_price) if unit_price is not None else None
    if price is not None and price < 0 and item.type != InvoiceItemType.CREDITO.value:
        raise ValidationError("Valor unitário não pode ser negativo", details={"unitPrice": str(price)})

    try:
        if description is not None:
            item.description = description.strip()
        if quantity is not None:
            item.quantity = quantity
        if price is not None:
            item.unit_price = -abs(price) if item.type == InvoiceItemType.CREDITO.value else price
        item.total = to_money(Decimal(str(item.unit_price)) * item.quantity)
        recalculate_invoice(session, invoice)
        session.commit()
    except Exception:
        session.rollback()
        raise

    LOGGER.info("invoice_item_updated", invoice_id=invoice.id, item_id=item.id)
    return item


def delete_invoice_item(session: Session, clinic_id: int, invoice_id: int, item_id: int) -> None:
    """Remove one line; a redeemed credit goes back to the available pool."""

    invoice = get_invoice(session, clinic_id, invoice_id)
    item = _get_item(invoice, item_id)

    try:
        if item.credit_id is not None:
            session.execute(
                update(SessionCredit)
                .where(
                    SessionCredit.id == item.credit_id,
                    SessionCredit.consumed_by_invoice_id == invoice.id,
                )
                .values(consumed_by_invoice_id=None, consumed_at=None)
                .execution_options(synchronize_session="fetch")
            )
        invoice.items.remove(item)
        recalculate_invoice(session, invoice)
        session.commit()
    except Exception:
        session.rollback()
        raise

    LOGGER.info("invoice_item_deleted", invoice_id=invoice.id, item_id=item_id)


def update_invoice_status(
    session: Session,
    clinic_id: int,
    invoice_id: int,
    *,
    status: str | None = None,
    notes: str | None = None,
    paid_at: datetime | None = None,
) -> Invoice:
    invoice = get_invoice(session, clinic_id, invoice_id)

    if status is not None:
        try:
            new_status = InvoiceStatus(status)
        except ValueError:
            raise ValidationError(
                f'Status de fatura "{status}" não é válido', details={"status": status}
            ) from None
        invoice.status = new_status.value
        if new_status is InvoiceStatus.PAGO:
            invoice.paid_at = paid_at or utcnow()
        else:
            invoice.paid_at = None
    if notes is not None:
        invoice.notes = notes

    try:
        session.commit()
    except Exception:
        session.rollback()
        raise

    LOGGER.info("invoice_updated", invoice_id=invoice.id, status=invoice.status)
    return invoice


def delete_invoice(session: Session, clinic_id: int, invoice_id: int) -> None:
    """Delete an invoice after returning its consumed credits to the pool."""

    invoice = get_invoice(session, clinic_id, invoice_id)
    try:
        credit_ledger.release_credits(session, invoice.id)
        session.delete(invoice)
        session.commit()
    except Exception:
        session.rollback()
        raise

    LOGGER.info("invoice_deleted", invoice_id=invoice_id)



__all__ = [
    "GenerationResult",
    "SkippedPatient",
    "add_invoice_item",
    "delete_invoice",
    "delete_invoice_item",
    "due_date_for",
    "generate_invoices",
    "get_invoice",
    "list_invoices",
    "month_bounds",
    "recalculate_invoice",
    "render_invoice_message",
    "update_invoice_item",
    "update_invoice_status",
    "validate_period",
    "verify_invoice_totals",
]
