"""SQLAlchemy declarative base and shared column types."""

from sqlalchemy import Numeric
from sqlalchemy.orm import DeclarativeBase

# Currency amounts and percentages, always handled as ``Decimal``.
Money = Numeric(12, 2, asdecimal=True)
Percentage = Numeric(5, 2, asdecimal=True)


class Base(DeclarativeBase):
    """Base for SQLAlchemy models."""

    pass
