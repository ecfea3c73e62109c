"""Appointment status endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.schemas.appointment import StatusUpdateRequest, StatusUpdateResponse
from app.backend.src.services.appointment_status import change_appointment_status
from app.backend.src.services.status_transitions import allowed_transitions

router = APIRouter(prefix="/clinics/{clinic_id}/appointments", tags=["appointments"])


@router.patch("/{appointment_id}/status", response_model=StatusUpdateResponse)
def update_status(
    clinic_id: int,
    appointment_id: int,
    payload: StatusUpdateRequest,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, Any]:
    """Move an appointment to ``payload.status`` if the state machine allows it."""

    result = change_appointment_status(
        session,
        clinic_id,
        appointment_id,
        payload.status,
        actor_id=payload.actor_id,
    )
    return {
        "message": result.message,
        "changed": result.changed,
        "appointment": result.appointment,
        "allowed_transitions": allowed_transitions(result.appointment.status),
        "audit": result.audit,
        "credit_events": result.credit_events,
    }
