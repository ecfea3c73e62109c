"""Payout report schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class RepasseLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    invoice_id: int
    patient_name: str
    total_sessions: int
    gross_value: Decimal
    tax_amount: Decimal
    after_tax: Decimal
    repasse_value: Decimal


class RepasseSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_invoices: int
    total_sessions: int
    total_gross: Decimal
    total_tax: Decimal
    total_after_tax: Decimal
    total_repasse: Decimal


class ProfessionalRepasseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    professional_id: int
    name: str
    repasse_percent: Decimal
    tax_percent: Decimal
    lines: list[RepasseLineRead]
    summary: RepasseSummaryRead


class RepasseReport(BaseModel):
    month: int
    year: int
    tax_percent: Decimal
    professionals: list[ProfessionalRepasseRead]
