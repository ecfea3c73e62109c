"""Public API routers exposed by the FastAPI application."""

from . import appointments, credits, dashboard, health, invoices, repasse

__all__ = [
    "appointments",
    "credits",
    "dashboard",
    "health",
    "invoices",
    "repasse",
]
