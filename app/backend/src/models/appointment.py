"""Appointment model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, Money
from .enums import AppointmentStatus, AppointmentType

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .clinic import ProfessionalProfile
    from .patient import Patient


class Appointment(Base):
    """A scheduled or past session; never deleted, only moved between statuses."""

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), nullable=False, index=True)
    professional_profile_id: Mapped[int] = mapped_column(
        ForeignKey("professional_profiles.id"), nullable=False, index=True
    )
    patient_id: Mapped[int | None] = mapped_column(
        ForeignKey("patients.id"), nullable=True, index=True
    )
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=AppointmentStatus.AGENDADO.value, index=True
    )
    type: Mapped[str] = mapped_column(
        String(32), nullable=False, default=AppointmentType.CONSULTA.value
    )
    price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    recurrence_id: Mapped[int | None] = mapped_column(
        ForeignKey("recurrences.id"), nullable=True
    )
    group_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    credit_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    patient: Mapped["Patient | None"] = relationship("Patient")
    professional_profile: Mapped["ProfessionalProfile"] = relationship("ProfessionalProfile")


__all__ = ["Appointment"]
