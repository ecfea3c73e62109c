"""Invoice schemas."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class InvoiceItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_id: int | None
    credit_id: int | None
    type: str
    description: str
    quantity: int
    unit_price: Decimal
    total: Decimal


class InvoiceSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    professional_profile_id: int
    patient_id: int
    patient_name: str
    reference_month: int
    reference_year: int
    total_sessions: int
    credits_applied: int
    extras_added: int
    total_amount: Decimal
    due_date: date
    status: str


class InvoiceRead(InvoiceSummary):
    show_appointment_days: bool
    message_body: str
    notes: str | None
    paid_at: datetime | None
    created_at: datetime | None
    items: list[InvoiceItemRead] = []


class GenerateInvoicesRequest(BaseModel):
    professional_id: int
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2020, le=2100)


class SkippedPatientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    patient_id: int
    reason: str


class GenerationResponse(BaseModel):
    """Outcome of one professional's monthly batch."""

    model_config = ConfigDict(from_attributes=True)

    professional_id: int
    month: int
    year: int
    credits_created: int
    invoices: list[InvoiceSummary]
    skipped: list[SkippedPatientRead]


class InvoiceUpdate(BaseModel):
    status: str | None = None
    notes: str | None = None
    paid_at: datetime | None = None


class InvoiceItemCreate(BaseModel):
    type: str
    description: str
    quantity: int = 1
    unit_price: Decimal


class InvoiceItemUpdate(BaseModel):
    description: str | None = None
    quantity: int | None = None
    unit_price: Decimal | None = None
