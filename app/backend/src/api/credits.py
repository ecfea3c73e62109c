"""Session credit endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.models import SessionCredit
from app.backend.src.schemas.credit import SessionCreditRead
from app.backend.src.services.credits import list_credits

router = APIRouter(prefix="/clinics/{clinic_id}/credits", tags=["credits"])


@router.get("", response_model=list[SessionCreditRead])
def get_credits(
    clinic_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
    patient_id: int | None = None,
    professional_id: int | None = None,
    status: Annotated[str | None, Query(description="available | consumed")] = None,
    year: int | None = None,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
) -> list[SessionCredit]:
    """List the clinic's credits, newest first."""

    return list_credits(
        session,
        clinic_id,
        patient_id=patient_id,
        professional_id=professional_id,
        status=status,
        year=year,
        month=month,
    )
