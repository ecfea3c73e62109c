"""Professional payout report endpoint."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.schemas.repasse import RepasseReport
from app.backend.src.services.repasse import build_repasse_report

router = APIRouter(prefix="/clinics/{clinic_id}/repasse", tags=["repasse"])


@router.get("", response_model=RepasseReport)
def get_repasse(
    clinic_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
    month: Annotated[int, Query(ge=1, le=12)],
    year: Annotated[int, Query(ge=2020, le=2100)],
    professional_id: int | None = None,
) -> dict[str, Any]:
    tax_percent, professionals = build_repasse_report(
        session, clinic_id, month, year, professional_id=professional_id
    )
    return {
        "month": month,
        "year": year,
        "tax_percent": tax_percent,
        "professionals": professionals,
    }
