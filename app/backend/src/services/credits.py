"""Session credit ledger: creation, FIFO application, consumption and release."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.attributes import set_committed_value

from app.backend.src.core.clock import utcnow
from app.backend.src.core.errors import ConsistencyError, ValidationError
from app.backend.src.models import Appointment, Invoice, SessionCredit
from app.backend.src.models.enums import AppointmentStatus
from app.backend.src.services.metrics import session_credits_total

LOGGER = structlog.get_logger(__name__)

_REASON_PREFIX = {
    AppointmentStatus.CANCELADO_ACORDADO.value: "Desmarcou",
    AppointmentStatus.CANCELADO_FALTA.value: "Falta",
}


@dataclass
class CreditApplication:
    """Outcome of :func:`apply_credits`."""

    applied: list[Any] = field(default_factory=list)
    remaining: list[Any] = field(default_factory=list)


def apply_credits(available: Sequence[Any], needed: int) -> CreditApplication:
    """Take the ``needed`` oldest credits (by ``created_at``) from ``available``.

    Fewer credits are applied when the pool is short; the shortfall is simply
    not covered.
    """

    ordered = sorted(available, key=lambda credit: (credit.created_at, credit.id or 0))
    count = max(0, min(needed, len(ordered)))
    return CreditApplication(applied=ordered[:count], remaining=ordered[count:])


def credit_reason(appointment: Appointment) -> str:
    prefix = _REASON_PREFIX.get(appointment.status, "Crédito")
    return f"{prefix} - {appointment.scheduled_at:%d/%m/%Y}"


def create_credit(
    session: Session, appointment: Appointment, *, now: datetime | None = None
) -> SessionCredit | None:
    """Bank one credit for ``appointment``; returns ``None`` if it already has one."""

    if appointment.patient_id is None:
        raise ValidationError(
            "Agendamento sem paciente não gera crédito",
            details={"appointmentId": appointment.id},
        )

    existing = session.scalar(
        select(SessionCredit).where(SessionCredit.origin_appointment_id == appointment.id)
    )
    if existing is not None:
        appointment.credit_generated = True
        return None

    credit = SessionCredit(
        clinic_id=appointment.clinic_id,
        professional_profile_id=appointment.professional_profile_id,
        patient_id=appointment.patient_id,
        origin_appointment_id=appointment.id,
        reason=credit_reason(appointment),
        created_at=now or utcnow(),
    )
    session.add(credit)
    appointment.credit_generated = True
    session.flush()

    session_credits_total.labels(event="created").inc()
    LOGGER.info(
        "session_credit_created",
        credit_id=credit.id,
        appointment_id=appointment.id,
        patient_id=appointment.patient_id,
    )
    return credit


def find_origin_credit(session: Session, appointment_id: int) -> SessionCredit | None:
    return session.scalar(
        select(SessionCredit).where(SessionCredit.origin_appointment_id == appointment_id)
    )


def discard_credit(session: Session, appointment: Appointment) -> bool:
    """Delete the unconsumed credit generated by ``appointment``.

    Returns ``False`` when there was nothing to delete. A consumed credit is
    never deleted; callers check :func:`find_origin_credit` first.
    """

    result = session.execute(
        delete(SessionCredit)
        .where(
            SessionCredit.origin_appointment_id == appointment.id,
            SessionCredit.consumed_by_invoice_id.is_(None),
        )
        .execution_options(synchronize_session="fetch")
    )
    appointment.credit_generated = False
    if result.rowcount:
        session_credits_total.labels(event="discarded").inc()
        LOGGER.info("session_credit_discarded", appointment_id=appointment.id)
        return True
    return False


def available_credits(
    session: Session,
    *,
    professional_id: int,
    patient_id: int,
    origin_before: datetime,
) -> list[SessionCredit]:
    """Unconsumed credits whose origin session happened before ``origin_before``."""

    stmt = (
        select(SessionCredit)
        .join(Appointment, SessionCredit.origin_appointment_id == Appointment.id)
        .where(
            SessionCredit.professional_profile_id == professional_id,
            SessionCredit.patient_id == patient_id,
            SessionCredit.consumed_by_invoice_id.is_(None),
            Appointment.scheduled_at < origin_before,
        )
        .order_by(SessionCredit.created_at.asc(), SessionCredit.id.asc())
    )
    return list(session.scalars(stmt))


def consume_credits(
    session: Session,
    credits: Sequence[SessionCredit],
    invoice_id: int,
    *,
    now: datetime | None = None,
) -> None:
    """Mark ``credits`` as consumed by ``invoice_id``.

    Each row is claimed with ``UPDATE ... WHERE consumed_by_invoice_id IS
    NULL``; a row already claimed elsewhere raises :class:`ConsistencyError`.
    """

    consumed_at = now or utcnow()
    for credit in credits:
        result = session.execute(
            update(SessionCredit)
            .where(
                SessionCredit.id == credit.id,
                SessionCredit.consumed_by_invoice_id.is_(None),
            )
            .values(consumed_by_invoice_id=invoice_id, consumed_at=consumed_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConsistencyError(
                "Crédito já consumido por outra fatura",
                details={"creditId": credit.id, "invoiceId": invoice_id},
            )
        set_committed_value(credit, "consumed_by_invoice_id", invoice_id)
        set_committed_value(credit, "consumed_at", consumed_at)
        session_credits_total.labels(event="consumed").inc()


def release_credits(session: Session, invoice_id: int) -> int:
    """Return every credit consumed by ``invoice_id`` to the available pool."""

    result = session.execute(
        update(SessionCredit)
        .where(SessionCredit.consumed_by_invoice_id == invoice_id)
        .values(consumed_by_invoice_id=None, consumed_at=None)
        .execution_options(synchronize_session="fetch")
    )
    released = result.rowcount or 0
    if released:
        session_credits_total.labels(event="released").inc(released)
        LOGGER.info("session_credits_released", invoice_id=invoice_id, count=released)
    return released


def list_credits(
    session: Session,
    clinic_id: int,
    *,
    patient_id: int | None = None,
    professional_id: int | None = None,
    status: str | None = None,
    year: int | None = None,
    month: int | None = None,
) -> list[SessionCredit]:
    """List credits newest first.

    With ``year`` (and optionally ``month``) a consumed credit matches on the
    consuming invoice's reference period and an available one on its
    creation date.
    """

    stmt = (
        select(SessionCredit)
        .outerjoin(Invoice, SessionCredit.consumed_by_invoice_id == Invoice.id)
        .options(
            selectinload(SessionCredit.patient),
            selectinload(SessionCredit.origin_appointment),
            selectinload(SessionCredit.consumed_by_invoice),
        )
        .where(SessionCredit.clinic_id == clinic_id)
    )

    if year is not None:
        if month is not None:
            start = datetime(year, month, 1)
            end = datetime(year + (month == 12), month % 12 + 1, 1)
            invoice_period = and_(Invoice.reference_year == year, Invoice.reference_month == month)
        else:
            start = datetime(year, 1, 1)
            end = datetime(year + 1, 1, 1)
            invoice_period = Invoice.reference_year == year
        stmt = stmt.where(
            or_(
                invoice_period,
                and_(
                    SessionCredit.consumed_by_invoice_id.is_(None),
                    SessionCredit.created_at >= start,
                    SessionCredit.created_at < end,
                ),
            )
        )

    if professional_id is not None:
        stmt = stmt.where(SessionCredit.professional_profile_id == professional_id)
    if patient_id is not None:
        stmt = stmt.where(SessionCredit.patient_id == patient_id)

    if status == "available":
        stmt = stmt.where(SessionCredit.consumed_by_invoice_id.is_(None))
    elif status == "consumed":
        stmt = stmt.where(SessionCredit.consumed_by_invoice_id.is_not(None))
    elif status is not None:
        raise ValidationError(
            f'Filtro de status "{status}" não é válido', details={"status": status}
        )

    stmt = stmt.order_by(SessionCredit.created_at.desc(), SessionCredit.id.desc())
    return list(session.scalars(stmt))


__all__ = [
    "CreditApplication",
    "apply_credits",
    "available_credits",
    "consume_credits",
    "create_credit",
    "credit_reason",
    "discard_credit",
    "find_origin_credit",
    "list_credits",
    "release_credits",
]
