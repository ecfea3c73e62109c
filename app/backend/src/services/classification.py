"""Monthly appointment classification for billing."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from app.backend.src.models.enums import AppointmentStatus, AppointmentType, InvoiceItemType

BILLABLE_TYPES: frozenset[AppointmentType] = frozenset(
    {AppointmentType.CONSULTA, AppointmentType.REUNIAO}
)
BILLABLE_STATUSES: frozenset[AppointmentStatus] = frozenset({AppointmentStatus.FINALIZADO})
CREDIT_GENERATING_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.CANCELADO_ACORDADO, AppointmentStatus.CANCELADO_FALTA}
)


@dataclass
class ClassifiedAppointments:
    """Partition of one patient's monthly appointments, each list in input order."""

    regular: list[Any] = field(default_factory=list)
    extra: list[Any] = field(default_factory=list)
    group: list[Any] = field(default_factory=list)
    school_meeting: list[Any] = field(default_factory=list)
    credit_generating: list[Any] = field(default_factory=list)
    excluded: list[Any] = field(default_factory=list)

    @property
    def billable(self) -> list[Any]:
        return [*self.regular, *self.extra, *self.group, *self.school_meeting]

    @property
    def billable_count(self) -> int:
        return (
            len(self.regular)
            + len(self.extra)
            + len(self.group)
            + len(self.school_meeting)
        )

    def billable_by_item_type(self) -> list[tuple[InvoiceItemType, list[Any]]]:
        return [
            (InvoiceItemType.SESSAO_REGULAR, self.regular),
            (InvoiceItemType.SESSAO_EXTRA, self.extra),
            (InvoiceItemType.SESSAO_GRUPO, self.group),
            (InvoiceItemType.REUNIAO_ESCOLA, self.school_meeting),
        ]


def is_billable_type(appointment_type: Any) -> bool:
    return appointment_type in {t.value for t in BILLABLE_TYPES}


def is_credit_generating(appointment: Any) -> bool:
    """Return whether a cancelled appointment should bank a session credit."""

    return (
        appointment.status in {s.value for s in CREDIT_GENERATING_STATUSES}
        and is_billable_type(appointment.type)
    )


def classify_appointments(appointments: Iterable[Any]) -> ClassifiedAppointments:
    """Split appointments into billable sub-buckets, credit-generating and excluded.

    Only FINALIZADO appointments of billable types are charged. Within the
    billable set group membership wins over REUNIAO, which wins over having a
    recurrence; anything else is an extra session.
    """

    result = ClassifiedAppointments()
    billable_statuses = {s.value for s in BILLABLE_STATUSES}

    for appointment in appointments:
        if not is_billable_type(appointment.type):
            result.excluded.append(appointment)
        elif appointment.status in billable_statuses:
            if appointment.group_id is not None:
                result.group.append(appointment)
            elif appointment.type == AppointmentType.REUNIAO.value:
                result.school_meeting.append(appointment)
            elif appointment.recurrence_id is not None:
                result.regular.append(appointment)
            else:
                result.extra.append(appointment)
        elif is_credit_generating(appointment):
            result.credit_generating.append(appointment)
        else:
            result.excluded.append(appointment)

    return result


__all__ = [
    "BILLABLE_STATUSES",
    "BILLABLE_TYPES",
    "CREDIT_GENERATING_STATUSES",
    "ClassifiedAppointments",
    "classify_appointments",
    "is_billable_type",
    "is_credit_generating",
]
