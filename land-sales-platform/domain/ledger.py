"""
Domain: buyer budget ledger.

Rules:
- A new transaction of amount A obligates the buyer:
    total_spent' = total_spent + A
- A new payment of amount A reduces what is outstanding, never below zero:
    total_spent' = max(0, total_spent - A)
- In both cases remaining_balance' = budget - total_spent'

This module is pure. Stores apply the same arithmetic as a single atomic
statement (SQLite UPDATE / PostgreSQL function) so concurrent writes for one
buyer cannot lose an update; see repositories/sqlite_store.py and
sql/supabase_schema.sql. Production code only takes ``signed_delta`` from
here; ``apply_transaction``, ``apply_payment`` and ``apply_event`` are the
reference rule the store statements are tested against.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

_ZERO = Decimal("0")


class LedgerEvent(str, Enum):
    TRANSACTION = "transaction"
    PAYMENT = "payment"


@dataclass(frozen=True, slots=True)
class LedgerBalance:
    budget: Decimal
    total_spent: Decimal

    @property
    def remaining_balance(self) -> Decimal:
        return self.budget - self.total_spent


def signed_delta(event: LedgerEvent, amount: Decimal) -> Decimal:
    """Direction of an event's effect on total_spent."""

    return amount if event is LedgerEvent.TRANSACTION else -amount


def apply_transaction(balance: LedgerBalance, amount: Decimal) -> LedgerBalance:
    return LedgerBalance(budget=balance.budget, total_spent=balance.total_spent + amount)


def apply_payment(balance: LedgerBalance, amount: Decimal) -> LedgerBalance:
    return LedgerBalance(budget=balance.budget, total_spent=max(_ZERO, balance.total_spent - amount))


def apply_event(balance: LedgerBalance, event: LedgerEvent, amount: Decimal) -> LedgerBalance:
    if event is LedgerEvent.TRANSACTION:
        return apply_transaction(balance, amount)
    return apply_payment(balance, amount)


__all__ = [
    "LedgerEvent",
    "LedgerBalance",
    "signed_delta",
    "apply_transaction",
    "apply_payment",
    "apply_event",
]
