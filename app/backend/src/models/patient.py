"""Patient and recurrence models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, Money

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .clinic import Clinic


class Patient(Base):
    """A patient together with the fields used when billing them."""

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mother_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    father_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    session_fee: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    show_appointment_days_on_invoice: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    invoice_message_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_professional_id: Mapped[int | None] = mapped_column(
        ForeignKey("professional_profiles.id"), nullable=True
    )
    last_visit_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    clinic: Mapped["Clinic"] = relationship("Clinic", back_populates="patients")
    recurrences: Mapped[list["Recurrence"]] = relationship(
        "Recurrence", back_populates="patient"
    )


class Recurrence(Base):
    """A patient's weekly slot with a professional.

    ``day_of_week`` follows 0=Sunday .. 6=Saturday and ``start_time`` is a
    zero-padded ``HH:MM`` string.
    """

    __tablename__ = "recurrences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), nullable=False, index=True)
    professional_profile_id: Mapped[int] = mapped_column(
        ForeignKey("professional_profiles.id"), nullable=False, index=True
    )
    patient_id: Mapped[int | None] = mapped_column(
        ForeignKey("patients.id"), nullable=True, index=True
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    patient: Mapped["Patient | None"] = relationship("Patient", back_populates="recurrences")


__all__ = ["Patient", "Recurrence"]
