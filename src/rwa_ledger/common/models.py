"""Declarative base, mixins and column helpers shared by all models."""

import enum
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import DateTime, Enum as SAEnum, Numeric
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Monetary values: 18 digits, 2 decimal places.
MONEY = Numeric(18, 2)
CENT = Decimal("0.01")


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_money(value: Decimal) -> Decimal:
    """Quantize a monetary value to cents, half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def enum_column(enum_cls: type[enum.Enum]) -> SAEnum:
    """Store a str-valued Enum by value in a portable VARCHAR column."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class CreatedAtMixin:
    """For append-only tables: rows are written once and never touched again."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
