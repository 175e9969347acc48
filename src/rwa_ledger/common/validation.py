"""Input coercion for quantities and prices."""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

from rwa_ledger.common.exceptions import ValidationError
from rwa_ledger.common.models import round_money

E = TypeVar("E", bound=Enum)


def positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value <= 0:
        raise ValidationError(f"{field} must be positive")
    return value


def non_negative_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < 0:
        raise ValidationError(f"{field} must not be negative")
    return value


def positive_money(value: Any, field: str) -> Decimal:
    """Coerce to a cent-rounded Decimal greater than zero."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValidationError(f"{field} must be a number") from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    amount = round_money(amount)
    if amount <= 0:
        raise ValidationError(f"{field} must be positive")
    return amount


def coerce_enum(enum_cls: type[E], value: Any, field: str) -> E:
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}") from exc
