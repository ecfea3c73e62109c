"""Utilities for rendering invoice PDFs."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from io import BytesIO
from time import perf_counter

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from app.backend.src.models import Invoice
from app.backend.src.services.invoice_template import (
    format_currency_brl,
    format_date_br,
    format_invoice_reference,
)
from app.backend.src.services.metrics import pdf_generation_seconds


@dataclass(frozen=True, slots=True)
class InvoicePdf:
    filename: str
    content: bytes


def _build_filename(patient_name: str, month: int, year: int) -> str:
    ascii_name = unicodedata.normalize("NFKD", patient_name).encode("ascii", "ignore").decode()
    safe_name = "_".join(ascii_name.split()) or "paciente"
    return f"Fatura_{safe_name}_{year:04d}-{month:02d}.pdf"


def render_invoice_pdf(invoice: Invoice) -> InvoicePdf:
    """Render ``invoice`` (items, totals and message) to a one-or-more page PDF."""

    patient_name = invoice.patient_name
    professional_name = invoice.professional_profile.name if invoice.professional_profile else ""
    reference = format_invoice_reference(invoice.reference_month, invoice.reference_year)
    filename = _build_filename(patient_name, invoice.reference_month, invoice.reference_year)

    start = perf_counter()
    buffer = BytesIO()
    pdf_canvas = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    margin = 50
    header_height = 100
    primary_color = HexColor("#0F172A")
    accent_color = HexColor("#0D9488")
    muted_text = HexColor("#64748B")
    light_panel = HexColor("#F8FAFC")
    table_header_color = HexColor("#E6FFFA")
    border_color = HexColor("#E2E8F0")

    columns = [margin + 14, width - margin - 190, width - margin - 100, width - margin - 10]

    def draw_header() -> float:
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.rect(0, height - header_height, width, header_height, fill=1, stroke=0)

        pdf_canvas.setFont("Helvetica-Bold", 18)
        pdf_canvas.setFillColor(HexColor("#FFFFFF"))
        pdf_canvas.drawString(margin, height - 50, "Fatura")
        pdf_canvas.setFont("Helvetica", 10)
        pdf_canvas.setFillColor(HexColor("#CBD5F5"))
        pdf_canvas.drawString(margin, height - 68, professional_name)
        pdf_canvas.drawRightString(width - margin, height - 50, reference)
        pdf_canvas.drawRightString(
            width - margin, height - 68, f"Vencimento: {format_date_br(invoice.due_date)}"
        )
        pdf_canvas.setFillColor(primary_color)
        return height - header_height - 30

    def draw_summary(top: float) -> float:
        card_height = 70
        card_bottom = top - card_height
        pdf_canvas.setFillColor(light_panel)
        pdf_canvas.roundRect(margin, card_bottom, width - 2 * margin, card_height, 10, fill=1, stroke=0)

        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.setFont("Helvetica-Bold", 11)
        pdf_canvas.drawString(margin + 20, top - 24, "Paciente")
        pdf_canvas.setFont("Helvetica", 10)
        pdf_canvas.setFillColor(muted_text)
        pdf_canvas.drawString(margin + 20, top - 40, patient_name)
        pdf_canvas.drawString(
            margin + 20,
            top - 56,
            f"Sessões: {invoice.total_sessions}   Créditos: {invoice.credits_applied}",
        )

        pdf_canvas.setFont("Helvetica", 9)
        pdf_canvas.drawRightString(width - margin - 20, top - 24, "Total")
        pdf_canvas.setFont("Helvetica-Bold", 16)
        pdf_canvas.setFillColor(accent_color)
        pdf_canvas.drawRightString(
            width - margin - 20, top - 46, format_currency_brl(invoice.total_amount)
        )
        pdf_canvas.setFillColor(primary_color)
        return card_bottom - 26

    def draw_table_header(top: float) -> float:
        row = 24
        pdf_canvas.setFillColor(table_header_color)
        pdf_canvas.roundRect(margin, top - row, width - 2 * margin, row, 6, fill=1, stroke=0)
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.setFont("Helvetica-Bold", 10)
        pdf_canvas.drawString(columns[0], top - 16, "Descrição")
        pdf_canvas.drawRightString(columns[1], top - 16, "Qtd")
        pdf_canvas.drawRightString(columns[2], top - 16, "Unitário")
        pdf_canvas.drawRightString(columns[3], top - 16, "Total")
        pdf_canvas.setFont("Helvetica", 10)
        return top - row - 16

    y_position = draw_header()
    y_position = draw_summary(y_position)
    y_position = draw_table_header(y_position)

    row_height = 20
    for idx, item in enumerate(invoice.items):
        if y_position < 110:
            pdf_canvas.showPage()
            y_position = draw_header()
            y_position = draw_table_header(y_position)

        if idx % 2 == 0:
            pdf_canvas.setFillColor(light_panel)
            pdf_canvas.rect(
                margin, y_position - row_height + 14, width - 2 * margin, row_height, fill=1, stroke=0
            )
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.setFont("Helvetica", 10)
        pdf_canvas.drawString(columns[0], y_position, item.description)
        pdf_canvas.drawRightString(columns[1], y_position, str(item.quantity))
        pdf_canvas.drawRightString(columns[2], y_position, format_currency_brl(item.unit_price))
        pdf_canvas.drawRightString(columns[3], y_position, format_currency_brl(item.total))
        y_position -= row_height

    pdf_canvas.setStrokeColor(border_color)
    pdf_canvas.line(margin, y_position + 6, width - margin, y_position + 6)
    pdf_canvas.setFont("Helvetica-Bold", 12)
    pdf_canvas.setFillColor(accent_color)
    pdf_canvas.drawRightString(
        columns[3], y_position - 12, f"Total: {format_currency_brl(invoice.total_amount)}"
    )
    y_position -= 44

    if invoice.message_body:
        pdf_canvas.setFillColor(muted_text)
        pdf_canvas.setFont("Helvetica", 10)
        for paragraph in invoice.message_body.splitlines() or [""]:
            for line in simpleSplit(paragraph, "Helvetica", 10, width - 2 * margin) or [""]:
                if y_position < 60:
                    pdf_canvas.showPage()
                    pdf_canvas.setFillColor(muted_text)
                    pdf_canvas.setFont("Helvetica", 10)
                    y_position = height - margin
                pdf_canvas.drawString(margin, y_position, line)
                y_position -= 14

    pdf_canvas.save()

    buffer.seek(0)
    pdf_bytes = buffer.read()
    pdf_generation_seconds.observe(perf_counter() - start)
    return InvoicePdf(filename=filename, content=pdf_bytes)


__all__ = ["InvoicePdf", "render_invoice_pdf"]
