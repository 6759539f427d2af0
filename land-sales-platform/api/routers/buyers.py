"""
Buyers API Endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_store
from api.models import BuyerBalanceResponse, BuyerFields, BuyerResponse
from domain.errors import NotFoundError
from repositories.store import LandStore
from services.payment_service import buyer_balance

router = APIRouter()


@router.get("/buyers", response_model=List[BuyerResponse], summary="List Buyers")
def list_buyers(store: LandStore = Depends(get_store)):
    """All buyers, newest first."""
    return [BuyerResponse.model_validate(b) for b in store.list_buyers()]


@router.get(
    "/buyers/lookup",
    response_model=BuyerResponse,
    summary="Find Buyer by ID Number",
    description="Look up a buyer by national ID / passport number."
)
def lookup_buyer(
    id_number: str = Query(..., description="Buyer's ID number"),
    store: LandStore = Depends(get_store),
):
    buyer = store.find_buyer_by_id_number(id_number)
    if buyer is None:
        raise NotFoundError("Buyer not found")
    return BuyerResponse.model_validate(buyer)


@router.get("/buyers/{buyer_id}", response_model=BuyerResponse, summary="Get Buyer")
def get_buyer(buyer_id: int, store: LandStore = Depends(get_store)):
    buyer = store.get_buyer(buyer_id)
    if buyer is None:
        raise NotFoundError("Buyer not found")
    return BuyerResponse.model_validate(buyer)


@router.get(
    "/buyers/{buyer_id}/balance",
    response_model=BuyerBalanceResponse,
    summary="Buyer Balance",
    description="Budget ledger plus amount paid and outstanding per transaction."
)
def get_buyer_balance(buyer_id: int, store: LandStore = Depends(get_store)):
    return BuyerBalanceResponse.model_validate(buyer_balance(store, buyer_id))


@router.post("/buyers", response_model=BuyerResponse, status_code=201, summary="Create Buyer")
def create_buyer(request: BuyerFields, store: LandStore = Depends(get_store)):
    """
    Requires name, id_number, phone, email and budget. Returns 409 if a buyer
    with the same id_number exists.
    """
    buyer = store.create_buyer(request.model_dump(exclude_none=True))
    return BuyerResponse.model_validate(buyer)


@router.put("/buyers/{buyer_id}", response_model=BuyerResponse, summary="Update Buyer")
def update_buyer(buyer_id: int, request: BuyerFields, store: LandStore = Depends(get_store)):
    """Overwrites the fields present in the body; ledger fields are not editable."""
    buyer = store.update_buyer(buyer_id, request.model_dump(exclude_unset=True))
    return BuyerResponse.model_validate(buyer)
