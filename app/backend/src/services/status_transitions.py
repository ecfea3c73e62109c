"""Appointment status state machine.

The transition table is the single source of truth for which status changes
are allowed; callers treat ``current == target`` as a no-op before asking.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from app.backend.src.core.errors import TransitionError, ValidationError
from app.backend.src.models.enums import AppointmentStatus

_CANCELLED = (
    AppointmentStatus.CANCELADO_PROFISSIONAL,
    AppointmentStatus.CANCELADO_ACORDADO,
    AppointmentStatus.CANCELADO_FALTA,
)

CANCELLED_STATUSES: frozenset[AppointmentStatus] = frozenset(_CANCELLED)
TERMINAL_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.FINALIZADO, AppointmentStatus.NAO_COMPARECEU}
)


def _cancelled_except(status: AppointmentStatus) -> tuple[AppointmentStatus, ...]:
    return tuple(s for s in _CANCELLED if s is not status)


VALID_TRANSITIONS: dict[AppointmentStatus, tuple[AppointmentStatus, ...]] = {
    AppointmentStatus.AGENDADO: (
        AppointmentStatus.CONFIRMADO,
        AppointmentStatus.FINALIZADO,
        AppointmentStatus.NAO_COMPARECEU,
        *_CANCELLED,
    ),
    AppointmentStatus.CONFIRMADO: (
        AppointmentStatus.FINALIZADO,
        AppointmentStatus.NAO_COMPARECEU,
        *_CANCELLED,
    ),
    AppointmentStatus.FINALIZADO: (),
    AppointmentStatus.NAO_COMPARECEU: (),
    AppointmentStatus.CANCELADO_PROFISSIONAL: (
        *_cancelled_except(AppointmentStatus.CANCELADO_PROFISSIONAL),
        AppointmentStatus.AGENDADO,
    ),
    AppointmentStatus.CANCELADO_ACORDADO: (
        *_cancelled_except(AppointmentStatus.CANCELADO_ACORDADO),
        AppointmentStatus.AGENDADO,
    ),
    AppointmentStatus.CANCELADO_FALTA: (
        *_cancelled_except(AppointmentStatus.CANCELADO_FALTA),
        AppointmentStatus.AGENDADO,
    ),
}

STATUS_LABELS: dict[AppointmentStatus, str] = {
    AppointmentStatus.AGENDADO: "Agendado",
    AppointmentStatus.CONFIRMADO: "Confirmado",
    AppointmentStatus.FINALIZADO: "Finalizado",
    AppointmentStatus.NAO_COMPARECEU: "Não compareceu",
    AppointmentStatus.CANCELADO_ACORDADO: "Desmarcou",
    AppointmentStatus.CANCELADO_FALTA: "Cancelado (Falta)",
    AppointmentStatus.CANCELADO_PROFISSIONAL: "Cancelado (sem cobrança)",
}


def parse_status(value: Any) -> AppointmentStatus:
    """Return the status named by ``value`` or raise :class:`ValidationError`."""

    if isinstance(value, AppointmentStatus):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Status é obrigatório")
    try:
        return AppointmentStatus(value.strip())
    except ValueError:
        raise ValidationError(
            f'Status "{value}" não é válido', details={"status": value}
        ) from None


def _coerce(value: Any) -> AppointmentStatus | None:
    try:
        return AppointmentStatus(value)
    except ValueError:
        return None


def is_valid_transition(current: Any, target: Any) -> bool:
    """Return whether the table lists ``target`` as a next status of ``current``."""

    current_status = _coerce(current)
    target_status = _coerce(target)
    if current_status is None or target_status is None:
        return False
    allowed = VALID_TRANSITIONS.get(current_status)
    if not allowed:
        return False
    return target_status in allowed


def allowed_transitions(current: Any) -> list[dict[str, str]]:
    """Return ``[{value, label}]`` for every status reachable from ``current``."""

    current_status = _coerce(current)
    if current_status is None:
        return []
    return [
        {"value": status.value, "label": STATUS_LABELS[status]}
        for status in VALID_TRANSITIONS.get(current_status, ())
    ]


def ensure_valid_transition(current: Any, target: Any) -> None:
    """Raise :class:`TransitionError` carrying the allowed next statuses."""

    if is_valid_transition(current, target):
        return

    current_status = _coerce(current)
    target_status = _coerce(target)
    current_label = STATUS_LABELS[current_status] if current_status else str(current)
    target_label = STATUS_LABELS[target_status] if target_status else str(target)
    raise TransitionError(
        f'Não é possível alterar de "{current_label}" para "{target_label}"',
        details={
            "currentStatus": str(getattr(current, "value", current)),
            "targetStatus": str(getattr(target, "value", target)),
            "allowedTransitions": allowed_transitions(current),
        },
    )


def compute_status_update_data(target: Any, now: datetime) -> dict[str, Any]:
    """Return the column updates implied by moving to ``target``.

    CONFIRMADO stamps ``confirmed_at``, cancellations stamp ``cancelled_at`` and
    the AGENDADO undo path clears both. FINALIZADO and NAO_COMPARECEU only
    change the status.
    """

    status = parse_status(target)
    data: dict[str, Any] = {"status": status.value}

    if status is AppointmentStatus.CONFIRMADO:
        data["confirmed_at"] = now
    elif status in CANCELLED_STATUSES:
        data["cancelled_at"] = now
    elif status is AppointmentStatus.AGENDADO:
        data["confirmed_at"] = None
        data["cancelled_at"] = None

    return data


def should_update_last_visit_at(target: Any) -> bool:
    """Only a finished session counts as a patient visit."""

    return _coerce(target) is AppointmentStatus.FINALIZADO


__all__ = [
    "CANCELLED_STATUSES",
    "STATUS_LABELS",
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
    "allowed_transitions",
    "compute_status_update_data",
    "ensure_valid_transition",
    "is_valid_transition",
    "parse_status",
    "should_update_last_visit_at",
]
