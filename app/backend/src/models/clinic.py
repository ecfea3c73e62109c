"""Clinic and professional models."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, Percentage

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .patient import Patient


class Clinic(Base):
    """A tenant of the application, holding clinic-wide billing defaults."""

    __tablename__ = "clinics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    invoice_message_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    tax_percentage: Mapped[Decimal] = mapped_column(
        Percentage, nullable=False, default=Decimal("0")
    )

    professionals: Mapped[list["ProfessionalProfile"]] = relationship(
        "ProfessionalProfile", back_populates="clinic"
    )
    patients: Mapped[list["Patient"]] = relationship("Patient", back_populates="clinic")


class ProfessionalProfile(Base):
    """A professional attending patients, paid through the monthly repasse."""

    __tablename__ = "professional_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    repasse_percentage: Mapped[Decimal] = mapped_column(
        Percentage, nullable=False, default=Decimal("0")
    )

    clinic: Mapped["Clinic"] = relationship("Clinic", back_populates="professionals")


__all__ = ["Clinic", "ProfessionalProfile"]
