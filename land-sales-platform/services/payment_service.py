"""
Payment settlement and balance views.

record_payment() keeps a transaction's payment_status in step with the money
recorded against it:
- paid     total paid >= total_amount
- partial  otherwise
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from domain.buyer import Buyer
from domain.errors import NotFoundError
from domain.payment import Payment
from domain.transaction import PaymentStatus, Transaction
from repositories.store import LandStore

_ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class PaymentRecord:
    payment: Payment
    transaction: Optional[Transaction] = None


@dataclass(frozen=True, slots=True)
class TransactionBalance:
    transaction: Transaction
    total_amount: Decimal
    amount_paid: Decimal

    @property
    def amount_remaining(self) -> Decimal:
        return max(_ZERO, self.total_amount - self.amount_paid)

    @property
    def label(self) -> str:
        if self.amount_paid >= self.total_amount:
            return "paid"
        if self.amount_paid > 0:
            return "partial"
        return "unpaid"


@dataclass(frozen=True, slots=True)
class BuyerBalance:
    buyer: Buyer
    transactions: List[TransactionBalance]

    @property
    def total_purchased(self) -> Decimal:
        return sum((t.total_amount for t in self.transactions), _ZERO)

    @property
    def total_paid(self) -> Decimal:
        return sum((t.amount_paid for t in self.transactions), _ZERO)

    @property
    def total_outstanding(self) -> Decimal:
        return sum((t.amount_remaining for t in self.transactions), _ZERO)


def _settled_status(total: Decimal, paid: Decimal) -> PaymentStatus:
    return PaymentStatus.PAID if paid >= total else PaymentStatus.PARTIAL


def _paid_towards(store: LandStore, transaction_id: int) -> Decimal:
    return sum((p.amount for p in store.list_payments(transaction_id=transaction_id)), _ZERO)


def record_payment(store: LandStore, data: Mapping[str, Any]) -> PaymentRecord:
    """
    Record a payment and, when it references a transaction, update that
    transaction's status from the payments recorded against it.
    """

    payment = store.create_payment(data)
    if payment.transaction_id is None:
        return PaymentRecord(payment=payment)

    transaction = store.get_transaction(payment.transaction_id)
    if transaction is None:
        raise NotFoundError(f"Transaction {payment.transaction_id} not found")

    status = _settled_status(transaction.total_amount, _paid_towards(store, transaction.id))
    if status is not transaction.payment_status:
        transaction = store.update_transaction_status(transaction.id, status)
    return PaymentRecord(payment=payment, transaction=transaction)


def transaction_balance(store: LandStore, transaction_id: Any) -> TransactionBalance:
    transaction = store.get_transaction(transaction_id)
    if transaction is None:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return TransactionBalance(
        transaction=transaction,
        total_amount=transaction.total_amount,
        amount_paid=_paid_towards(store, transaction.id),
    )


def buyer_balance(store: LandStore, buyer_id: Any) -> BuyerBalance:
    """The buyer's ledger plus what has been paid against each transaction."""

    buyer = store.get_buyer(buyer_id)
    if buyer is None:
        raise NotFoundError(f"Buyer {buyer_id} not found")

    paid_by_transaction: dict[int, Decimal] = {}
    for payment in store.list_payments(buyer_id=buyer.id):
        if payment.transaction_id is not None:
            paid_by_transaction[payment.transaction_id] = (
                paid_by_transaction.get(payment.transaction_id, _ZERO) + payment.amount
            )

    balances = [
        TransactionBalance(
            transaction=t,
            total_amount=t.total_amount,
            amount_paid=paid_by_transaction.get(t.id, _ZERO),
        )
        for t in store.list_transactions(buyer_id=buyer.id)
    ]
    return BuyerBalance(buyer=buyer, transactions=balances)


def available_budget(store: LandStore, buyer: Buyer) -> Decimal:
    """
    What the buyer can still commit to new purchases.

    Every payment recorded for the buyer (full payments, deposits and later
    installments) is money out of the budget, whatever the ledger's
    total_spent says about the outstanding obligation.
    """

    committed = sum((p.amount for p in store.list_payments(buyer_id=buyer.id)), _ZERO)
    return max(_ZERO, buyer.budget - committed)


__all__ = [
    "PaymentRecord",
    "TransactionBalance",
    "BuyerBalance",
    "record_payment",
    "transaction_balance",
    "buyer_balance",
    "available_budget",
]
