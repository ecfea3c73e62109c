"""Invoice related endpoints."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.models import Invoice, InvoiceItem
from app.backend.src.schemas.invoice import (
    GenerateInvoicesRequest,
    GenerationResponse,
    InvoiceItemCreate,
    InvoiceItemRead,
    InvoiceItemUpdate,
    InvoiceRead,
    InvoiceSummary,
    InvoiceUpdate,
)
from app.backend.src.services import invoice_generation as invoice_service
from app.backend.src.services.invoice_generation import GenerationResult
from app.backend.src.services.invoice_pdf import render_invoice_pdf

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/clinics/{clinic_id}/invoices", tags=["invoices"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.post("/generate", response_model=GenerationResponse)
def generate_invoices(
    clinic_id: int,
    payload: GenerateInvoicesRequest,
    session: SessionDep,
) -> GenerationResult:
    """(Re)generate a professional's invoices for one reference month."""

    return invoice_service.generate_invoices(
        session,
        clinic_id,
        payload.professional_id,
        payload.month,
        payload.year,
    )


@router.get("", response_model=list[InvoiceSummary])
def list_invoices(
    clinic_id: int,
    session: SessionDep,
    month: Annotated[int, Query(ge=1, le=12)],
    year: Annotated[int, Query(ge=2020, le=2100)],
    professional_id: int | None = None,
) -> list[Invoice]:
    return invoice_service.list_invoices(
        session, clinic_id, month, year, professional_id=professional_id
    )


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(clinic_id: int, invoice_id: int, session: SessionDep) -> Invoice:
    return invoice_service.get_invoice(session, clinic_id, invoice_id)


@router.patch("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(
    clinic_id: int,
    invoice_id: int,
    payload: InvoiceUpdate,
    session: SessionDep,
) -> Invoice:
    """Change status (PAGO stamps ``paid_at``) or notes of an invoice."""

    return invoice_service.update_invoice_status(
        session,
        clinic_id,
        invoice_id,
        status=payload.status,
        notes=payload.notes,
        paid_at=payload.paid_at,
    )


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(clinic_id: int, invoice_id: int, session: SessionDep) -> Response:
    invoice_service.delete_invoice(session, clinic_id, invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{invoice_id}/pdf")
def download_invoice_pdf(clinic_id: int, invoice_id: int, session: SessionDep) -> Response:
    invoice = invoice_service.get_invoice(session, clinic_id, invoice_id)
    pdf = render_invoice_pdf(invoice)
    LOGGER.info("invoice_pdf_rendered", invoice_id=invoice_id, size=len(pdf.content))
    return Response(
        content=pdf.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{pdf.filename}"'},
    )


@router.post(
    "/{invoice_id}/items",
    response_model=InvoiceItemRead,
    status_code=status.HTTP_201_CREATED,
)
def add_item(
    clinic_id: int,
    invoice_id: int,
    payload: InvoiceItemCreate,
    session: SessionDep,
) -> InvoiceItem:
    """Add a manual extra session or school meeting line."""

    return invoice_service.add_invoice_item(
        session,
        clinic_id,
        invoice_id,
        type=payload.type,
        description=payload.description,
        quantity=payload.quantity,
        unit_price=payload.unit_price,
    )


@router.patch("/{invoice_id}/items/{item_id}", response_model=InvoiceItemRead)
def update_item(
    clinic_id: int,
    invoice_id: int,
    item_id: int,
    payload: InvoiceItemUpdate,
    session: SessionDep,
) -> InvoiceItem:
    return invoice_service.update_invoice_item(
        session,
        clinic_id,
        invoice_id,
        item_id,
        description=payload.description,
        quantity=payload.quantity,
        unit_price=payload.unit_price,
    )


@router.delete("/{invoice_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(clinic_id: int, invoice_id: int, item_id: int, session: SessionDep) -> Response:
    invoice_service.delete_invoice_item(session, clinic_id, invoice_id, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
