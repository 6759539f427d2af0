"""
Tests for `services/payment_service.py`.

Covers contract rules:
- A payment against a transaction sets it to paid once payments cover the
  total, otherwise partial.
- Balances report total, paid and remaining per transaction and per buyer.
- The available budget is the budget less every payment the buyer made,
  floored at zero.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from domain.errors import NotFoundError
from domain.transaction import PaymentStatus
from repositories.sqlite_store import SQLiteLandStore
from services.payment_service import available_budget, buyer_balance, record_payment, transaction_balance


@pytest.fixture
def purchase(store: SQLiteLandStore, buyer_data: dict):
    buyer = store.create_buyer(buyer_data)
    transaction = store.create_transaction(
        {"buyer_id": buyer.id, "plot_ids": [5], "total_amount": 65800}
    )
    return buyer, transaction


def test_unpaid_transaction_balance(store: SQLiteLandStore, purchase) -> None:
    """Verify a transaction with no payments."""

    _, transaction = purchase

    balance = transaction_balance(store, transaction.id)

    assert balance.amount_paid == Decimal("0")
    assert balance.amount_remaining == Decimal("65800")
    assert balance.label == "unpaid"


def test_partial_then_full_settlement(store: SQLiteLandStore, purchase) -> None:
    """Verify status moves to partial, then paid."""

    buyer, transaction = purchase

    first = record_payment(store, {"transaction_id": transaction.id, "amount": 30000})
    assert first.transaction.payment_status is PaymentStatus.PARTIAL
    assert transaction_balance(store, transaction.id).label == "partial"

    second = record_payment(store, {"transaction_id": transaction.id, "amount": 35800})
    assert second.transaction.payment_status is PaymentStatus.PAID

    balance = transaction_balance(store, transaction.id)
    assert balance.amount_paid == Decimal("65800")
    assert balance.amount_remaining == Decimal("0")
    assert balance.label == "paid"
    assert store.get_buyer(buyer.id).total_spent == Decimal("0")


def test_payment_without_transaction(store: SQLiteLandStore, purchase) -> None:
    """Verify a buyer-level payment leaves transactions alone."""

    buyer, transaction = purchase

    record = record_payment(store, {"buyer_id": buyer.id, "amount": 1000})

    assert record.transaction is None
    assert store.get_transaction(transaction.id).payment_status is PaymentStatus.PENDING
    assert store.get_buyer(buyer.id).total_spent == Decimal("64800")


def test_buyer_balance(store: SQLiteLandStore, purchase) -> None:
    """Verify per-buyer aggregation across transactions."""

    buyer, transaction = purchase
    second = store.create_transaction({"buyer_id": buyer.id, "plot_ids": [6], "total_amount": 65800})
    record_payment(store, {"transaction_id": transaction.id, "amount": 65800})
    record_payment(store, {"transaction_id": second.id, "amount": 10000})

    balance = buyer_balance(store, buyer.id)

    assert balance.buyer.id == buyer.id
    assert [t.transaction.id for t in balance.transactions] == [second.id, transaction.id]
    assert balance.total_purchased == Decimal("131600")
    assert balance.total_paid == Decimal("75800")
    assert balance.total_outstanding == Decimal("55800")
    assert balance.buyer.total_spent == Decimal("55800")


def test_balance_not_found(store: SQLiteLandStore) -> None:
    """Verify unknown ids raise NotFoundError."""

    with pytest.raises(NotFoundError):
        transaction_balance(store, 999)
    with pytest.raises(NotFoundError):
        buyer_balance(store, 999)


def test_available_budget_counts_every_payment(store: SQLiteLandStore, purchase) -> None:
    """Verify payments, with or without a transaction, reduce the available budget."""

    buyer, transaction = purchase
    assert available_budget(store, buyer) == Decimal("100000")

    record_payment(store, {"transaction_id": transaction.id, "amount": 65800})
    store.create_payment({"buyer_id": buyer.id, "amount": 20000})
    assert available_budget(store, buyer) == Decimal("14200")

    store.create_payment({"buyer_id": buyer.id, "amount": 50000})
    assert available_budget(store, buyer) == Decimal("0")
