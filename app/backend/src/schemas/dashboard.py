"""Financial dashboard schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class StatusTotalsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    faturado: Decimal
    pendente: Decimal
    enviado: Decimal
    pago: Decimal
    sessions: int
    credits: int
    extras: int
    invoice_count: int
    pending_count: int
    enviado_count: int
    paid_count: int
    cancelled_count: int


class MonthDashboardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: int
    totals: StatusTotalsRead


class ProfessionalDashboardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    professional_id: int
    name: str
    patient_count: int
    totals: StatusTotalsRead


class FinancialDashboardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    month: int | None
    available_credits: int
    totals: StatusTotalsRead
    by_month: list[MonthDashboardRead]
    by_professional: list[ProfessionalDashboardRead]
