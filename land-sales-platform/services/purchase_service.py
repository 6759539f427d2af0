"""
Purchase service for selling plots to a buyer.

Handles:
- Finding the buyer by id_number, or registering them on first purchase
- Plot availability checks (ids 1..200, not already sold)
- Budget checks for pay-in-full and installment plans
- Marking plots sold, recording the transaction with its payment plan note,
  and recording the initial payment (full amount or deposit)

Steps run one after another against the store; there is no rollback if a
later step fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Tuple

from domain.buyer import Buyer
from domain.errors import (
    ConflictError,
    InsufficientBudgetError,
    InvalidArgumentError,
    MissingFieldError,
    NotFoundError,
)
from domain.money import format_money, is_blank
from domain.payment import DEFAULT_PAYMENT_METHOD, Payment
from domain.payment_plan import PaymentPlan, deposit_from_percent
from domain.plot import PLOT_COUNT, PlotStatus, is_valid_plot_id
from domain.transaction import PaymentStatus, Transaction
from repositories.store import LandStore
from services.payment_service import available_budget

logger = logging.getLogger(__name__)

DEPOSIT_REFERENCE = "DEPOSIT"
FULL_PAYMENT_REFERENCE = "FULL-PAYMENT"


@dataclass(frozen=True, slots=True)
class PurchaseRequest:
    """
    Request to buy a set of plots.

    buyer: buyer fields (name, id_number, phone, email, budget, and optionally
        address/occupation). Only id_number is used when the buyer exists.
    plot_ids: plots to buy; duplicates are ignored
    plan: pay in full (default) or deposit + monthly installments
    deposit_percent: used for an installment plan created without a deposit
        amount; converted once the purchase total is known
    """
    buyer: Mapping[str, Any]
    plot_ids: List[int]
    plan: PaymentPlan = field(default_factory=PaymentPlan.full)
    notes: str = ""
    payment_method: str = DEFAULT_PAYMENT_METHOD
    deposit_percent: Optional[Decimal] = None


@dataclass(frozen=True, slots=True)
class PurchaseResult:
    """
    Result of a completed purchase.

    budget_before / budget_after: the buyer's available budget (budget less
    every payment recorded for them) before and after the initial payment.
    """
    buyer: Buyer
    buyer_created: bool
    transaction: Transaction
    payment: Payment
    plot_ids: List[int]
    total_amount: Decimal
    amount_paid: Decimal
    budget_before: Decimal
    budget_after: Decimal
    plan: PaymentPlan = field(default_factory=PaymentPlan.full)


def get_or_create_buyer(store: LandStore, data: Mapping[str, Any]) -> Tuple[Buyer, bool]:
    """
    Return the buyer with data["id_number"], creating it if absent.

    Returns:
        (buyer, created)
    """

    if is_blank(data.get("id_number")):
        raise MissingFieldError(["id_number"])

    existing = store.find_buyer_by_id_number(data["id_number"])
    if existing is not None:
        return existing, False

    try:
        return store.create_buyer(data), True
    except ConflictError:
        # Registered by a concurrent request between the lookup and the insert
        existing = store.find_buyer_by_id_number(data["id_number"])
        if existing is None:
            raise
        return existing, False


def _normalize_plot_ids(raw_ids: List[Any]) -> List[int]:
    if not raw_ids:
        raise InvalidArgumentError("Select at least one plot")

    ids: set[int] = set()
    for raw in raw_ids:
        try:
            ids.add(int(raw))
        except (TypeError, ValueError):
            raise InvalidArgumentError(f"Invalid plot id {raw!r}") from None

    out_of_range = sorted(pid for pid in ids if not is_valid_plot_id(pid))
    if out_of_range:
        raise InvalidArgumentError(
            f"Plot ids must be between 1 and {PLOT_COUNT}: {out_of_range}"
        )
    return sorted(ids)


def _resolve_plan(request: PurchaseRequest, total: Decimal) -> PaymentPlan:
    """Fill an installment deposit given as a percentage of the total."""

    plan = request.plan
    if plan.is_installments and plan.deposit is None and request.deposit_percent is not None:
        return PaymentPlan.installments(
            deposit_from_percent(total, request.deposit_percent),
            plan.months,
            plan.start_date,
        )
    return plan


def _check_budget(plan: PaymentPlan, total: Decimal, available: Decimal) -> None:
    if plan.is_installments:
        deposit = plan.amount_due_now(total)
        if deposit > available:
            raise InsufficientBudgetError(
                f"Insufficient budget for deposit: deposit {format_money(deposit)}, "
                f"available budget {format_money(available)}"
            )
        return

    if total > available:
        raise InsufficientBudgetError(
            f"Insufficient budget: purchase total {format_money(total)}, "
            f"available budget {format_money(available)}, "
            f"shortfall {format_money(total - available)}"
        )


def execute_purchase(store: LandStore, request: PurchaseRequest) -> PurchaseResult:
    """
    Execute a plot purchase.

    Process:
    1. Normalize plot ids (dedupe, sort, range-check)
    2. Find or register the buyer
    3. Fetch the plots; reject missing (404) or already sold (409) plots
    4. Validate the payment plan and the buyer's available budget
    5. Mark plots sold, record the transaction and the initial payment
    6. Set the transaction status: paid (full) or partial (deposit)

    Raises:
        InvalidArgumentError: bad plot ids or payment plan
        InsufficientBudgetError: the amount due now exceeds the available budget
        NotFoundError: a plot does not exist
        ConflictError: a plot is already sold
    """

    plot_ids = _normalize_plot_ids(request.plot_ids)
    buyer, created = get_or_create_buyer(store, request.buyer)

    plots = []
    for pid in plot_ids:
        plot = store.get_plot_by_id(pid)
        if plot is None:
            raise NotFoundError(f"Plot {pid} not found")
        plots.append(plot)

    sold = [p.id for p in plots if p.is_sold]
    if sold:
        raise ConflictError(f"Plots already sold: {sold}")

    total = sum((p.price for p in plots), Decimal("0"))
    plan = _resolve_plan(request, total)
    plan.validate(total)

    budget_before = available_budget(store, buyer)
    _check_budget(plan, total, budget_before)
    amount_now = plan.amount_due_now(total)

    store.update_plots_bulk(plot_ids, PlotStatus.SOLD, buyer.id)
    transaction = store.create_transaction(
        {
            "buyer_id": buyer.id,
            "plot_ids": plot_ids,
            "total_amount": total,
            "notes": plan.render_note(total, request.notes),
        }
    )
    payment = store.create_payment(
        {
            "buyer_id": buyer.id,
            "transaction_id": transaction.id,
            "amount": amount_now,
            "method": request.payment_method,
            "reference": DEPOSIT_REFERENCE if plan.is_installments else FULL_PAYMENT_REFERENCE,
        }
    )
    status = PaymentStatus.PAID if amount_now >= total else PaymentStatus.PARTIAL
    transaction = store.update_transaction_status(transaction.id, status)

    refreshed = store.get_buyer(buyer.id) or buyer
    logger.info(
        "Purchase completed: buyer=%s plots=%s total=%s paid_now=%s status=%s",
        buyer.id,
        plot_ids,
        total,
        amount_now,
        status.value,
    )

    return PurchaseResult(
        buyer=refreshed,
        buyer_created=created,
        transaction=transaction,
        payment=payment,
        plot_ids=plot_ids,
        total_amount=total,
        amount_paid=amount_now,
        budget_before=budget_before,
        budget_after=budget_before - amount_now,
        plan=plan,
    )


__all__ = [
    "PurchaseRequest",
    "PurchaseResult",
    "DEPOSIT_REFERENCE",
    "FULL_PAYMENT_REFERENCE",
    "get_or_create_buyer",
    "execute_purchase",
]
