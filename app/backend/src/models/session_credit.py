"""Session credit model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .appointment import Appointment
    from .invoice import Invoice
    from .patient import Patient


class SessionCredit(Base):
    """A banked session owed to a patient, redeemable on a later invoice.

    A credit is available while ``consumed_by_invoice_id`` is ``NULL``.
    """

    __tablename__ = "session_credits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), nullable=False, index=True)
    professional_profile_id: Mapped[int] = mapped_column(
        ForeignKey("professional_profiles.id"), nullable=False, index=True
    )
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    origin_appointment_id: Mapped[int] = mapped_column(
        ForeignKey("appointments.id"), nullable=False, unique=True
    )
    reason: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    consumed_by_invoice_id: Mapped[int | None] = mapped_column(
        ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True
    )
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    origin_appointment: Mapped["Appointment"] = relationship("Appointment")
    patient: Mapped["Patient"] = relationship("Patient")
    consumed_by_invoice: Mapped["Invoice | None"] = relationship(
        "Invoice", back_populates="consumed_credits"
    )

    @property
    def is_available(self) -> bool:
        return self.consumed_by_invoice_id is None

    @property
    def patient_name(self) -> str | None:
        return self.patient.name if self.patient else None

    @property
    def origin_scheduled_at(self) -> datetime | None:
        return self.origin_appointment.scheduled_at if self.origin_appointment else None


__all__ = ["SessionCredit"]
