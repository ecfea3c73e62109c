"""ORM models exposed for easy imports."""

from .appointment import Appointment
from .clinic import Clinic, ProfessionalProfile
from .enums import AppointmentStatus, AppointmentType, InvoiceItemType, InvoiceStatus
from .invoice import Invoice
from .invoice_item import InvoiceItem
from .patient import Patient, Recurrence
from .session_credit import SessionCredit

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "Clinic",
    "Invoice",
    "InvoiceItem",
    "InvoiceItemType",
    "InvoiceStatus",
    "Patient",
    "ProfessionalProfile",
    "Recurrence",
    "SessionCredit",
]
