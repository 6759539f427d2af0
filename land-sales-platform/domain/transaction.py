"""
Domain: purchase transactions.

A transaction records one purchase event: the buyer, the plots bought (kept
as the comma-joined text the store persists, in the order given, duplicates
included), the agreed total and a payment status.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from .errors import InvalidArgumentError
from .time import require_utc_timestamp


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    FAILED = "failed"

    @staticmethod
    def parse(value: Any) -> "PaymentStatus":
        if isinstance(value, PaymentStatus):
            return value
        try:
            return PaymentStatus(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in PaymentStatus)
            raise InvalidArgumentError(f"Invalid payment status {value!r}. Must be one of: {allowed}") from None


def join_plot_ids(plot_ids: Any) -> str:
    """
    Normalize a plot id list (or a single scalar) to the stored text form.

    No sorting or de-duplication: [5, 12, 5] -> "5,12,5".
    """

    if isinstance(plot_ids, (list, tuple)):
        return ",".join(str(p).strip() for p in plot_ids)
    return str(plot_ids).strip()


def split_plot_ids(plot_ids: str) -> List[str]:
    """Inverse of join_plot_ids; returns the ids as strings, order preserved."""

    if not plot_ids:
        return []
    return [part.strip() for part in plot_ids.split(",")]


@dataclass(frozen=True, slots=True)
class Transaction:
    """A purchase event, optionally joined with the buyer's display fields."""

    id: int
    buyer_id: int
    plot_ids: str
    total_amount: Decimal
    payment_status: PaymentStatus
    notes: str = ""
    created_at: Optional[datetime] = None

    # Joined from the buyer row on reads
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None
    buyer_phone: Optional[str] = None
    buyer_address: Optional[str] = None
    buyer_occupation: Optional[str] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    @property
    def plot_id_list(self) -> List[str]:
        return split_plot_ids(self.plot_ids)


__all__ = [
    "PaymentStatus",
    "Transaction",
    "join_plot_ids",
    "split_plot_ids",
]
