"""Invoice line items and totals."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.backend.src.models.enums import InvoiceItemType, InvoiceStatus
from app.backend.src.services.classification import ClassifiedAppointments
from app.backend.src.services.invoice_template import format_day_month

CENT = Decimal("0.01")

PROTECTED_INVOICE_STATUSES: frozenset[str] = frozenset(
    {InvoiceStatus.PAGO.value, InvoiceStatus.ENVIADO.value}
)
MANUAL_ITEM_TYPES: frozenset[str] = frozenset(
    {InvoiceItemType.SESSAO_EXTRA.value, InvoiceItemType.REUNIAO_ESCOLA.value}
)

_DESCRIPTIONS = {
    InvoiceItemType.SESSAO_REGULAR: "Sessão",
    InvoiceItemType.SESSAO_EXTRA: "Sessão extra",
    InvoiceItemType.SESSAO_GRUPO: "Sessão grupo",
    InvoiceItemType.REUNIAO_ESCOLA: "Reunião escola",
}


@dataclass
class InvoiceItemData:
    """An invoice line before it is persisted."""

    type: str
    description: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    appointment_id: int | None = None
    credit_id: int | None = None


@dataclass
class InvoiceTotals:
    total_sessions: int = 0
    credits_applied: int = 0
    extras_added: int = 0
    total_amount: Decimal = Decimal("0.00")
    regular_sessions: int = 0
    extra_sessions: int = 0
    group_sessions: int = 0
    school_meetings: int = 0


def to_money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def describe_item(item_type: InvoiceItemType, appointment: Any, show_days: bool) -> str:
    label = _DESCRIPTIONS.get(item_type, "Item")
    if show_days:
        return f"{label} - {format_day_month(appointment.scheduled_at)}"
    return label


def build_invoice_items(
    classified: ClassifiedAppointments,
    session_fee: Decimal,
    credits: Sequence[Any],
    show_days: bool,
) -> list[InvoiceItemData]:
    """Return one item per billable appointment followed by one CREDITO per credit.

    Appointments are charged at their own ``price`` when set, otherwise at
    ``session_fee``. Each credit subtracts one ``session_fee``.
    """

    fee = to_money(session_fee)
    items: list[InvoiceItemData] = []

    for item_type, appointments in classified.billable_by_item_type():
        for appointment in appointments:
            price = to_money(appointment.price) if appointment.price is not None else fee
            items.append(
                InvoiceItemData(
                    appointment_id=appointment.id,
                    type=item_type.value,
                    description=describe_item(item_type, appointment, show_days),
                    quantity=1,
                    unit_price=price,
                    total=price,
                )
            )

    for credit in credits:
        items.append(
            InvoiceItemData(
                type=InvoiceItemType.CREDITO.value,
                description=f"Crédito: {credit.reason or ''}".rstrip(),
                quantity=1,
                unit_price=-fee,
                total=-fee,
                credit_id=credit.id,
            )
        )

    return items


def calculate_invoice_totals(items: Iterable[Any]) -> InvoiceTotals:
    """Sum item totals and count sessions, credits and extras.

    Works on :class:`InvoiceItemData` and persisted ``InvoiceItem`` rows alike.
    """

    totals = InvoiceTotals()
    amount = Decimal("0")

    for item in items:
        amount += Decimal(str(item.total))
        quantity = int(item.quantity)
        if item.type == InvoiceItemType.CREDITO.value:
            totals.credits_applied += abs(quantity)
            continue

        totals.total_sessions += quantity
        if item.type == InvoiceItemType.SESSAO_REGULAR.value:
            totals.regular_sessions += quantity
        elif item.type == InvoiceItemType.SESSAO_EXTRA.value:
            totals.extra_sessions += quantity
            totals.extras_added += quantity
        elif item.type == InvoiceItemType.SESSAO_GRUPO.value:
            totals.group_sessions += quantity
        elif item.type == InvoiceItemType.REUNIAO_ESCOLA.value:
            totals.school_meetings += quantity
            totals.extras_added += quantity

    totals.total_amount = to_money(amount)
    return totals


def is_manual_item(item: Any) -> bool:
    """Manual lines are the ones not tied to an appointment and not a credit."""

    return item.appointment_id is None and item.type != InvoiceItemType.CREDITO.value


def separate_manual_items(items: Iterable[Any]) -> tuple[list[Any], list[Any]]:
    """Split items into ``(auto_items, manual_items)`` preserving order."""

    auto_items: list[Any] = []
    manual_items: list[Any] = []
    for item in items:
        (manual_items if is_manual_item(item) else auto_items).append(item)
    return auto_items, manual_items


def should_skip_invoice(status: str) -> bool:
    """Invoices already sent or paid are never regenerated."""

    return status in PROTECTED_INVOICE_STATUSES


__all__ = [
    "InvoiceItemData",
    "InvoiceTotals",
    "MANUAL_ITEM_TYPES",
    "PROTECTED_INVOICE_STATUSES",
    "build_invoice_items",
    "calculate_invoice_totals",
    "describe_item",
    "is_manual_item",
    "separate_manual_items",
    "should_skip_invoice",
    "to_money",
]
