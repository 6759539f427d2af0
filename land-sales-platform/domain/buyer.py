"""
Domain: Buyers.

A buyer is identified externally by ``id_number`` (national ID / passport),
which must be unique. Each buyer carries a small budget ledger:

- budget: declared purchasing ceiling, set at creation
- total_spent: maintained by the ledger rule (see domain/ledger.py)
- remaining_balance: always budget - total_spent; never set independently
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .time import require_utc_timestamp

BUYER_REQUIRED_FIELDS: tuple[str, ...] = ("name", "id_number", "phone", "email", "budget")
BUYER_EDITABLE_FIELDS: tuple[str, ...] = (
    "name",
    "id_number",
    "phone",
    "email",
    "address",
    "occupation",
    "budget",
)

_UID_NAME_MAX_LENGTH = 32
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to one hyphen, trim hyphens."""

    return _NON_ALNUM.sub("-", value.lower()).strip("-")


def buyer_uid(name: str, id_number: str) -> str:
    """
    Derive the stable human-readable identifier stored alongside a buyer.

    Example:
        buyer_uid("Jane  O'Neil", "ID-0042")  ->  "jane-o-neil-id-0042"
    """

    name_part = slugify(name)[:_UID_NAME_MAX_LENGTH].strip("-")
    id_part = slugify(id_number)
    return "-".join(part for part in (name_part, id_part) if part)


@dataclass(frozen=True, slots=True)
class Buyer:
    """A person who may purchase plots, with a budget ledger."""

    id: int
    name: str
    id_number: str
    phone: str
    email: str
    budget: Decimal
    total_spent: Decimal = Decimal("0")
    uid: Optional[str] = None
    address: Optional[str] = None
    occupation: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    @property
    def remaining_balance(self) -> Decimal:
        return self.budget - self.total_spent


__all__ = [
    "BUYER_REQUIRED_FIELDS",
    "BUYER_EDITABLE_FIELDS",
    "Buyer",
    "buyer_uid",
    "slugify",
]
