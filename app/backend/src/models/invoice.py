"""Invoice model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, Money
from .enums import InvoiceStatus

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .clinic import ProfessionalProfile
    from .invoice_item import InvoiceItem
    from .patient import Patient
    from .session_credit import SessionCredit


class Invoice(Base):
    """One patient's bill with one professional for one calendar month."""

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint(
            "professional_profile_id",
            "patient_id",
            "reference_month",
            "reference_year",
            name="uq_invoices_professional_patient_period",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), nullable=False, index=True)
    professional_profile_id: Mapped[int] = mapped_column(
        ForeignKey("professional_profiles.id"), nullable=False, index=True
    )
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    reference_month: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_year: Mapped[int] = mapped_column(Integer, nullable=False)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credits_applied: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extras_added: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=InvoiceStatus.PENDENTE.value, index=True
    )
    show_appointment_days: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    message_body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    patient: Mapped["Patient"] = relationship("Patient")
    professional_profile: Mapped["ProfessionalProfile"] = relationship("ProfessionalProfile")
    items: Mapped[list["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )
    consumed_credits: Mapped[list["SessionCredit"]] = relationship(
        "SessionCredit", back_populates="consumed_by_invoice"
    )

    @property
    def patient_name(self) -> str:
        return self.patient.name if self.patient else ""

    @property
    def professional_name(self) -> str:
        return self.professional_profile.name if self.professional_profile else ""


__all__ = ["Invoice"]
