"""
Purchases API Endpoints.

One call that registers the buyer if needed, sells the plots, records the
transaction with its payment plan and the initial payment.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_store
from api.models import (
    BuyerResponse,
    PaymentResponse,
    PurchaseRequest as APIPurchaseRequest,
    PurchaseResponse,
    TransactionResponse,
)
from domain.payment_plan import PaymentMode, PaymentPlan
from repositories.store import LandStore
from services.purchase_service import PurchaseRequest, execute_purchase

router = APIRouter()


def _plan_from_request(request: APIPurchaseRequest) -> PaymentPlan:
    if request.payment_mode is PaymentMode.INSTALLMENTS:
        return PaymentPlan.installments(request.deposit_amount, request.months, request.start_date)
    return PaymentPlan.full()


@router.post(
    "/purchases",
    response_model=PurchaseResponse,
    status_code=201,
    summary="Execute Purchase",
    description="Buy plots for a buyer, paying in full or with a deposit plus monthly installments."
)
def execute_plot_purchase(request: APIPurchaseRequest, store: LandStore = Depends(get_store)):
    """
    Execute a plot purchase.

    **Process:**
    1. Finds the buyer by id_number, or registers them from the buyer fields
    2. Checks every plot exists and is not already sold
    3. Checks the buyer's available budget (budget less payments already
       recorded for them) covers the amount due now
       (the full total, or the deposit for installments)
    4. Marks the plots sold, records the transaction and the initial payment

    **Installments:** give `deposit_amount` or `deposit_percent` and at least
    2 `months`. The plan is saved in the transaction notes under
    `[PAYMENT PLAN]`.

    **Failure responses:**
    - 400: invalid plots or plan, or insufficient budget
    - 404: plot not found
    - 409: plot already sold
    """
    result = execute_purchase(
        store,
        PurchaseRequest(
            buyer=request.buyer.model_dump(exclude_none=True),
            plot_ids=request.plot_ids,
            plan=_plan_from_request(request),
            notes=request.notes,
            payment_method=request.payment_method,
            deposit_percent=request.deposit_percent,
        ),
    )

    return PurchaseResponse(
        buyer=BuyerResponse.model_validate(result.buyer),
        buyer_created=result.buyer_created,
        transaction=TransactionResponse.model_validate(result.transaction),
        payment=PaymentResponse.model_validate(result.payment),
        plot_ids=result.plot_ids,
        total_amount=result.total_amount,
        amount_paid=result.amount_paid,
        monthly_amount=result.plan.monthly_amount(result.total_amount),
        budget_before=result.budget_before,
        budget_after=result.budget_after,
    )
