"""
Domain: money values.

All currency amounts are ``Decimal``. Stores may hand back floats (SQLite REAL)
or strings (PostgREST numeric); both are normalized through ``to_money``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import InvalidArgumentError


def to_money(value: Any, *, name: str = "amount") -> Decimal:
    """Convert a raw value into a finite Decimal, or raise InvalidArgumentError."""

    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidArgumentError(f"{name} must be a number, got {value!r}") from None

    if not amount.is_finite():
        raise InvalidArgumentError(f"{name} must be a finite number, got {value!r}")
    # 65800.0 (SQLite REAL) and "65800.00" both read back as Decimal("65800")
    if amount == amount.to_integral_value():
        return amount.quantize(Decimal(1))
    return amount


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings (treated as an absent field)."""

    return value is None or (isinstance(value, str) and not value.strip())


CURRENCY = "KES"


def format_money(amount: Decimal, currency: str = CURRENCY) -> str:
    """Render an amount the way receipts and notes show it, e.g. 'KES 65,800'."""

    if amount == amount.to_integral_value():
        return f"{currency} {int(amount):,}"
    return f"{currency} {amount:,.2f}"


__all__ = [
    "CURRENCY",
    "to_money",
    "is_blank",
    "format_money",
]
