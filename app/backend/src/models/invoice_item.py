"""Invoice item model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, Money

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .appointment import Appointment
    from .invoice import Invoice


class InvoiceItem(Base):
    """One billable line; CREDITO lines carry a negative unit price."""

    __tablename__ = "invoice_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    appointment_id: Mapped[int | None] = mapped_column(
        ForeignKey("appointments.id"), nullable=True
    )
    credit_id: Mapped[int | None] = mapped_column(
        ForeignKey("session_credits.id"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")
    appointment: Mapped["Appointment | None"] = relationship("Appointment")


__all__ = ["InvoiceItem"]
