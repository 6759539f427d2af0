"""
Domain: Payment records.

A payment is money received against a buyer's balance, optionally tied to a
specific transaction. Payments are immutable once recorded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .time import require_utc_timestamp

DEFAULT_PAYMENT_METHOD = "cash"


@dataclass(frozen=True, slots=True)
class Payment:
    id: int
    buyer_id: int
    amount: Decimal
    paid_at: datetime
    transaction_id: Optional[int] = None
    method: str = DEFAULT_PAYMENT_METHOD
    reference: str = ""

    def __post_init__(self) -> None:
        require_utc_timestamp("paid_at", self.paid_at)
