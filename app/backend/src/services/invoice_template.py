"""Invoice message template rendering and pt-BR formatting helpers."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.backend.src.models.enums import InvoiceItemType

CENT = Decimal("0.01")

MONTH_NAMES = (
    "Janeiro",
    "Fevereiro",
    "Março",
    "Abril",
    "Maio",
    "Junho",
    "Julho",
    "Agosto",
    "Setembro",
    "Outubro",
    "Novembro",
    "Dezembro",
)

DEFAULT_INVOICE_TEMPLATE = """Prezado(a) {{mae}},

Segue a fatura de {{paciente}} referente ao mês de {{mes}}/{{ano}}.

Valor: {{valor}}
Vencimento: {{vencimento}}
Total de sessões: {{sessoes}}

Atenciosamente,
{{profissional}}"""

_PLACEHOLDER_RX = re.compile(r"\{\{(\w+)\}\}")

_ITEM_TYPE_ORDER = [item_type.value for item_type in InvoiceItemType]


def get_month_name(month: int) -> str:
    if 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return ""


def format_currency_brl(value: Decimal | int | float | str) -> str:
    """Format ``value`` as ``R$ 1.234,56`` (``-R$ 150,00`` when negative)."""

    amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    digits = f"{abs(amount):,.2f}"
    digits = digits.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {digits}"


def format_date_br(value: date | datetime) -> str:
    return f"{value:%d/%m/%Y}"


def format_day_month(value: date | datetime) -> str:
    return f"{value:%d/%m}"


def format_invoice_reference(month: int, year: int) -> str:
    return f"{get_month_name(month)}/{year}"


def render_invoice_template(template: str, variables: Mapping[str, Any]) -> str:
    """Substitute ``{{key}}`` placeholders; unknown keys stay as written."""

    def _replace(match: re.Match[str]) -> str:
        value = variables.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return _PLACEHOLDER_RX.sub(_replace, template)


def build_detail_block(
    lines: Iterable[Mapping[str, str]], *, grouped: bool = True
) -> str:
    """Render ``description: total`` lines, grouped by item type when asked.

    Each line mapping carries ``description``, ``total`` (already formatted)
    and ``type``.
    """

    entries = list(lines)
    if grouped:
        entries.sort(
            key=lambda entry: _ITEM_TYPE_ORDER.index(entry["type"])
            if entry["type"] in _ITEM_TYPE_ORDER
            else len(_ITEM_TYPE_ORDER)
        )
    return "\n".join(f"{entry['description']}: {entry['total']}" for entry in entries)


__all__ = [
    "DEFAULT_INVOICE_TEMPLATE",
    "MONTH_NAMES",
    "build_detail_block",
    "format_currency_brl",
    "format_date_br",
    "format_day_month",
    "format_invoice_reference",
    "get_month_name",
    "render_invoice_template",
]
