"""Appointment status changes and their side effects."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.backend.src.core.clock import utcnow
from app.backend.src.core.errors import NotFoundError, TransitionError
from app.backend.src.models import Appointment
from app.backend.src.services import credits as credit_ledger
from app.backend.src.services.classification import (
    CREDIT_GENERATING_STATUSES,
    is_credit_generating,
)
from app.backend.src.services.metrics import status_transitions_total
from app.backend.src.services.status_transitions import (
    STATUS_LABELS,
    allowed_transitions,
    compute_status_update_data,
    ensure_valid_transition,
    parse_status,
    should_update_last_visit_at,
)

LOGGER = structlog.get_logger(__name__)

STATUS_CHANGED_ACTION = "APPOINTMENT_STATUS_CHANGED"


@dataclass
class AuditEntry:
    """Old/new payload of one change, handed to the audit log collaborator."""

    entity_type: str
    entity_id: int
    action: str
    old_values: dict[str, Any]
    new_values: dict[str, Any]
    actor_id: int | None = None


@dataclass
class StatusChangeResult:
    appointment: Appointment
    changed: bool
    message: str
    audit: AuditEntry | None = None
    credit_events: list[str] = field(default_factory=list)


def _audit_new_values(update: dict[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {"status": update["status"]}
    if update.get("confirmed_at"):
        values["confirmedAt"] = update["confirmed_at"].isoformat()
    if update.get("cancelled_at"):
        values["cancelledAt"] = update["cancelled_at"].isoformat()
    return values


def _load_appointment(session: Session, clinic_id: int, appointment_id: int) -> Appointment:
    appointment = session.scalar(
        select(Appointment)
        .options(selectinload(Appointment.patient))
        .where(Appointment.id == appointment_id, Appointment.clinic_id == clinic_id)
    )
    if appointment is None:
        raise NotFoundError(
            "Agendamento não encontrado", details={"appointmentId": appointment_id}
        )
    return appointment


def change_appointment_status(
    session: Session,
    clinic_id: int,
    appointment_id: int,
    target: Any,
    *,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> StatusChangeResult:
    """Validate and apply a status change, keeping session credits in step.

    Entering CANCELADO_ACORDADO or CANCELADO_FALTA banks a credit for the
    patient. Leaving them for any other status drops that credit, unless an
    invoice already consumed it, in which case the change is refused.
    """

    target_status = parse_status(target)
    appointment = _load_appointment(session, clinic_id, appointment_id)
    current = appointment.status

    if current == target_status.value:
        return StatusChangeResult(
            appointment=appointment, changed=False, message="Status já está atualizado"
        )

    ensure_valid_transition(current, target_status)
    now = now or utcnow()
    credit_statuses = {status.value for status in CREDIT_GENERATING_STATUSES}
    events: list[str] = []

    try:
        if current in credit_statuses and target_status.value not in credit_statuses:
            credit = credit_ledger.find_origin_credit(session, appointment.id)
            if credit is not None and credit.consumed_by_invoice_id is not None:
                raise TransitionError(
                    "Crédito já foi utilizado em uma fatura. Não é possível alterar "
                    f'para "{STATUS_LABELS[target_status]}".',
                    details={
                        "currentStatus": current,
                        "targetStatus": target_status.value,
                        "consumedByInvoiceId": credit.consumed_by_invoice_id,
                        "allowedTransitions": allowed_transitions(current),
                    },
                )
            if credit_ledger.discard_credit(session, appointment):
                events.append("credit_discarded")

        update = compute_status_update_data(target_status, now)
        for column, value in update.items():
            setattr(appointment, column, value)

        if should_update_last_visit_at(target_status) and appointment.patient is not None:
            appointment.patient.last_visit_at = appointment.scheduled_at

        if appointment.patient_id is not None and is_credit_generating(appointment):
            if credit_ledger.create_credit(session, appointment, now=now) is not None:
                events.append("credit_created")

        audit = AuditEntry(
            entity_type="Appointment",
            entity_id=appointment.id,
            action=STATUS_CHANGED_ACTION,
            old_values={"status": current},
            new_values=_audit_new_values(update),
            actor_id=actor_id,
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    status_transitions_total.labels(target=target_status.value).inc()
    LOGGER.info("audit_entry", **asdict(audit))
    LOGGER.info(
        "appointment_status_changed",
        appointment_id=appointment.id,
        old_status=current,
        new_status=target_status.value,
        credit_events=events,
    )
    return StatusChangeResult(
        appointment=appointment,
        changed=True,
        message=f'Status alterado para "{STATUS_LABELS[target_status]}"',
        audit=audit,
        credit_events=events,
    )


__all__ = [
    "AuditEntry",
    "STATUS_CHANGED_ACTION",
    "StatusChangeResult",
    "change_appointment_status",
]
