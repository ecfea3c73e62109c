"""Appointment status schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class StatusUpdateRequest(BaseModel):
    status: str
    actor_id: int | None = None


class AppointmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int | None
    professional_profile_id: int
    scheduled_at: datetime
    status: str
    type: str
    confirmed_at: datetime | None
    cancelled_at: datetime | None
    credit_generated: bool


class StatusOption(BaseModel):
    value: str
    label: str


class AuditEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity_type: str
    entity_id: int
    action: str
    old_values: dict[str, Any]
    new_values: dict[str, Any]
    actor_id: int | None


class StatusUpdateResponse(BaseModel):
    """Result of a status change, including the audit payload when one was made."""

    message: str
    changed: bool
    appointment: AppointmentRead
    allowed_transitions: list[StatusOption]
    audit: AuditEntryRead | None = None
    credit_events: list[str] = []
