"""Prometheus metric definitions for billing operations."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

invoices_generated_total = Counter(
    "invoices_generated_total",
    "Invoices handled by batch generation, by outcome.",
    labelnames=["outcome"],
)

invoice_generation_seconds = Histogram(
    "invoice_generation_seconds",
    "Duration of one professional's monthly invoice batch in seconds.",
)

status_transitions_total = Counter(
    "status_transitions_total",
    "Applied appointment status transitions by target status.",
    labelnames=["target"],
)

pdf_generation_seconds = Histogram(
    "invoice_pdf_generation_seconds",
    "Time spent rendering one invoice PDF in seconds.",
)

session_credits_total = Counter(
    "session_credits_total",
    "Session credit ledger events.",
    labelnames=["event"],
)

__all__ = [
    "invoice_generation_seconds",
    "invoices_generated_total",
    "pdf_generation_seconds",
    "session_credits_total",
    "status_transitions_total",
]
