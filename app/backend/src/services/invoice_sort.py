"""Ordering of a professional's monthly invoices by the patients' weekly slot."""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.models import Recurrence

T = TypeVar("T")


class RecurrenceInfo(Protocol):
    day_of_week: int  # 0=Sunday .. 6=Saturday
    start_time: str  # "HH:MM"


def weekday_rank(day_of_week: int) -> int:
    """Monday=0 .. Saturday=5, Sunday=6."""

    return 6 if day_of_week == 0 else day_of_week - 1


def _slot_key(recurrence: RecurrenceInfo) -> tuple[int, str]:
    return weekday_rank(recurrence.day_of_week), recurrence.start_time


def pick_earliest_recurrence(recurrences: Iterable[RecurrenceInfo]) -> RecurrenceInfo | None:
    """Return the recurrence falling first in the Monday-first week, if any."""

    earliest = None
    for recurrence in recurrences:
        if earliest is None or _slot_key(recurrence) < _slot_key(earliest):
            earliest = recurrence
    return earliest


def name_sort_key(name: str) -> tuple[str, str]:
    """Accent- and case-insensitive key, falling back to the raw name on ties."""

    folded = unicodedata.normalize("NFKD", name or "")
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return folded.casefold(), name or ""


def sort_invoices_by_recurrence(
    invoices: Sequence[T],
    recurrence_map: Mapping[int, RecurrenceInfo],
) -> list[T]:
    """Return a new list ordered by weekday, start time, then patient name.

    Invoices whose patient has no recurrence go last, ordered by name. Each
    invoice must expose ``patient_id`` and ``patient_name``.
    """

    def _key(invoice: Any) -> tuple:
        recurrence = recurrence_map.get(invoice.patient_id)
        name_key = name_sort_key(invoice.patient_name)
        if recurrence is None:
            return (1, 0, "", name_key)
        rank, start_time = _slot_key(recurrence)
        return (0, rank, start_time, name_key)

    return sorted(invoices, key=_key)


def build_recurrence_map(
    session: Session, professional_id: int, patient_ids: Iterable[int]
) -> dict[int, Recurrence]:
    """Map each patient to their earliest active recurrence with the professional."""

    ids = set(patient_ids)
    if not ids:
        return {}

    recurrences = session.scalars(
        select(Recurrence).where(
            Recurrence.professional_profile_id == professional_id,
            Recurrence.patient_id.in_(ids),
            Recurrence.is_active.is_(True),
        )
    )
    grouped: dict[int, list[Recurrence]] = {}
    for recurrence in recurrences:
        grouped.setdefault(recurrence.patient_id, []).append(recurrence)

    result: dict[int, Recurrence] = {}
    for patient_id, items in grouped.items():
        earliest = pick_earliest_recurrence(items)
        if earliest is not None:
            result[patient_id] = earliest
    return result


__all__ = [
    "RecurrenceInfo",
    "build_recurrence_map",
    "name_sort_key",
    "pick_earliest_recurrence",
    "sort_invoices_by_recurrence",
    "weekday_rank",
]
