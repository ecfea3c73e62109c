"""Entrypoint for the FastAPI application."""

import os
from dotenv import load_dotenv

# Load .env locally only; deployed environments inject their variables
env_path = os.path.join(os.path.dirname(__file__), "../.env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=os.path.abspath(env_path))

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import appointments, credits, dashboard, health, invoices, repasse
from .core.errors import ClinicBillingError
from .core.logging import configure_logging

LOGGER = structlog.get_logger(__name__)


async def clinic_billing_error_handler(request: Request, exc: ClinicBillingError) -> JSONResponse:
    """Render domain errors as ``{"error": {message, type, details}}``."""

    log = LOGGER.error if exc.status_code >= 500 else LOGGER.warning
    log(
        "request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        message=exc.message,
        details=exc.details,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "message": exc.message,
                "type": type(exc).__name__,
                "details": exc.details,
            }
        },
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Clinic Billing", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ClinicBillingError, clinic_billing_error_handler)

    app.include_router(health.router, prefix="/api")
    app.include_router(appointments.router, prefix="/api")
    app.include_router(invoices.router, prefix="/api")
    app.include_router(credits.router, prefix="/api")
    app.include_router(repasse.router, prefix="/api")
    app.include_router(dashboard.router, prefix="/api")

    return app


app = create_app()
