"""Session credit schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SessionCreditRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    professional_profile_id: int
    patient_id: int
    patient_name: str | None = None
    origin_appointment_id: int
    origin_scheduled_at: datetime | None = None
    reason: str
    created_at: datetime
    consumed_by_invoice_id: int | None
    consumed_at: datetime | None
    is_available: bool
