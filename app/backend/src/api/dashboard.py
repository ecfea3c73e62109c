"""Financial dashboard endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.schemas.dashboard import FinancialDashboardRead
from app.backend.src.services.dashboard import FinancialDashboard, build_dashboard

router = APIRouter(prefix="/clinics/{clinic_id}/dashboard", tags=["dashboard"])


@router.get("", response_model=FinancialDashboardRead)
def get_dashboard(
    clinic_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
    year: Annotated[int, Query(ge=2020, le=2100)],
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
    professional_id: int | None = None,
) -> FinancialDashboard:
    """Invoice totals for a year, or one month, by status, month and professional."""

    return build_dashboard(
        session, clinic_id, year, month=month, professional_id=professional_id
    )
