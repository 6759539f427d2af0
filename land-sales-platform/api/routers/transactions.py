"""
Transactions & Payments API Endpoints.

Payment routes are declared before /transactions/{transaction_id} so that
"payments" is never captured as a transaction id.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_store
from api.models import (
    PaymentCreateRequest,
    PaymentRecordResponse,
    PaymentResponse,
    TransactionBalanceResponse,
    TransactionCreateRequest,
    TransactionResponse,
    TransactionStatusRequest,
)
from domain.errors import NotFoundError
from repositories.store import LandStore
from services.payment_service import record_payment, transaction_balance

router = APIRouter()


@router.get(
    "/transactions",
    response_model=List[TransactionResponse],
    summary="List Transactions",
    description="Transactions with buyer contact fields, newest first."
)
def list_transactions(
    buyer_id: Optional[int] = Query(None, description="Filter by buyer"),
    payment_status: Optional[str] = Query(None, description="pending, partial, paid or failed"),
    store: LandStore = Depends(get_store),
):
    return [
        TransactionResponse.model_validate(t)
        for t in store.list_transactions(buyer_id=buyer_id, payment_status=payment_status)
    ]


@router.get("/transactions/payments", response_model=List[PaymentResponse], summary="List Payments")
def list_payments(
    buyer_id: Optional[int] = Query(None),
    transaction_id: Optional[int] = Query(None),
    store: LandStore = Depends(get_store),
):
    return [
        PaymentResponse.model_validate(p)
        for p in store.list_payments(buyer_id=buyer_id, transaction_id=transaction_id)
    ]


@router.post(
    "/transactions/payments",
    response_model=PaymentRecordResponse,
    status_code=201,
    summary="Record Payment",
    description="Record money received. The buyer's total_spent is reduced by the amount (not below zero)."
)
def create_payment(request: PaymentCreateRequest, store: LandStore = Depends(get_store)):
    """
    When the payment references a transaction, that transaction's status is
    set to `paid` once payments cover its total, otherwise `partial`.
    """
    record = record_payment(store, request.model_dump(exclude_none=True))
    return PaymentRecordResponse.model_validate(record)


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse, summary="Get Transaction")
def get_transaction(transaction_id: int, store: LandStore = Depends(get_store)):
    transaction = store.get_transaction(transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return TransactionResponse.model_validate(transaction)


@router.get(
    "/transactions/{transaction_id}/balance",
    response_model=TransactionBalanceResponse,
    summary="Transaction Balance"
)
def get_transaction_balance(transaction_id: int, store: LandStore = Depends(get_store)):
    return TransactionBalanceResponse.model_validate(transaction_balance(store, transaction_id))


@router.post(
    "/transactions",
    response_model=TransactionResponse,
    status_code=201,
    summary="Create Transaction",
    description="Record a purchase. The total is added to the buyer's total_spent."
)
def create_transaction(request: TransactionCreateRequest, store: LandStore = Depends(get_store)):
    transaction = store.create_transaction(request.model_dump(exclude_none=True))
    return TransactionResponse.model_validate(transaction)


@router.put(
    "/transactions/{transaction_id}/status",
    response_model=TransactionResponse,
    summary="Update Payment Status"
)
def update_transaction_status(
    transaction_id: int,
    request: TransactionStatusRequest,
    store: LandStore = Depends(get_store),
):
    transaction = store.update_transaction_status(transaction_id, request.payment_status)
    return TransactionResponse.model_validate(transaction)
