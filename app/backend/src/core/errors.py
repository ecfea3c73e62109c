"""Domain exceptions raised by the billing services."""

from __future__ import annotations

from typing import Any


class ClinicBillingError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(ClinicBillingError):
    """Malformed input such as an unknown status or an invalid item."""

    status_code = 400


class TransitionError(ClinicBillingError):
    """A status change that the appointment state machine does not allow."""

    status_code = 400


class NotFoundError(ClinicBillingError):
    """A referenced appointment, invoice, item or patient does not exist."""

    status_code = 404


class ConflictError(ClinicBillingError):
    """Another regeneration for the same professional and month is running."""

    status_code = 409


class ConsistencyError(ClinicBillingError):
    """Invoice totals diverged from items or a credit would be consumed twice.

    Raised inside a batch so the surrounding transaction is rolled back.
    """

    status_code = 500


__all__ = [
    "ClinicBillingError",
    "ConflictError",
    "ConsistencyError",
    "NotFoundError",
    "TransitionError",
    "ValidationError",
]
