"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.

Request models leave store-validated fields optional so that missing values
are reported by the store's own errors (400/404/409). Values of the wrong
type fail model validation, which api/main.py also reports as a 400
ErrorResponse.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from domain.payment_plan import PaymentMode
from domain.plot import PlotStatus
from domain.transaction import PaymentStatus


# ============================================================================
# Plot Models
# ============================================================================

class PlotResponse(BaseModel):
    """Single plot in API response."""
    id: int
    status: PlotStatus
    price: Decimal
    buyer_id: Optional[int] = None
    sold_date: Optional[datetime] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 12,
                "status": "sold",
                "price": "65800",
                "buyer_id": 4,
                "sold_date": "2025-01-01T12:00:00Z"
            }
        }


class PlotUpdateRequest(BaseModel):
    """Request to change one plot's status."""
    status: Optional[str] = Field(None, description="available, selected or sold")
    buyer_id: Optional[int] = None

    class Config:
        json_schema_extra = {
            "example": {"status": "sold", "buyer_id": 4}
        }


class BulkUpdateRequest(BaseModel):
    """Request to change the status of several plots at once."""
    plot_ids: Optional[List[int]] = Field(None, alias="plotIds")
    status: Optional[str] = None
    buyer_id: Optional[int] = None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"plotIds": [1, 2, 3], "status": "selected"}
        }


class BulkUpdateResponse(BaseModel):
    """Outcome of a bulk plot update; unknown ids are listed, not rejected."""
    message: str
    updated_count: int = Field(serialization_alias="updatedCount")
    missing_ids: List[int] = Field(default_factory=list, serialization_alias="missingIds")


class PlotStatusCountResponse(BaseModel):
    status: PlotStatus
    count: int
    total_value: Decimal

    class Config:
        from_attributes = True


class PlotStatsResponse(BaseModel):
    """Aggregate plot statistics."""
    total_plots: int
    by_status: List[PlotStatusCountResponse]
    summary: Dict[str, int]
    total_value: Decimal
    sold_value: Decimal

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "total_plots": 200,
                "by_status": [
                    {"status": "available", "count": 187, "total_value": "12304600"},
                    {"status": "selected", "count": 0, "total_value": "0"},
                    {"status": "sold", "count": 13, "total_value": "855400"}
                ],
                "summary": {"available": 187, "selected": 0, "sold": 13},
                "total_value": "13160000",
                "sold_value": "855400"
            }
        }


# ============================================================================
# Buyer Models
# ============================================================================

class BuyerFields(BaseModel):
    """Buyer fields accepted on create and update."""
    name: Optional[str] = None
    id_number: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    occupation: Optional[str] = None
    budget: Optional[Decimal] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Jane Wanjiru",
                "id_number": "28765432",
                "phone": "+254700000001",
                "email": "jane@example.com",
                "address": "Nakuru",
                "occupation": "Teacher",
                "budget": "200000"
            }
        }


class BuyerResponse(BaseModel):
    """Buyer with its budget ledger."""
    id: int
    uid: Optional[str] = None
    name: str
    id_number: str
    phone: str
    email: str
    address: Optional[str] = None
    occupation: Optional[str] = None
    budget: Decimal
    total_spent: Decimal
    remaining_balance: Decimal
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============================================================================
# Transaction & Payment Models
# ============================================================================

class TransactionCreateRequest(BaseModel):
    buyer_id: Optional[int] = None
    plot_ids: Optional[Union[List[int], int, str]] = None
    total_amount: Optional[Decimal] = None
    payment_status: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {"buyer_id": 4, "plot_ids": [5, 12], "total_amount": "131600"}
        }


class TransactionStatusRequest(BaseModel):
    payment_status: Optional[str] = Field(None, description="pending, partial, paid or failed")


class TransactionResponse(BaseModel):
    """Transaction joined with the buyer's contact fields."""
    id: int
    buyer_id: int
    plot_ids: str
    plot_id_list: List[str]
    total_amount: Decimal
    payment_status: PaymentStatus
    notes: str = ""
    created_at: Optional[datetime] = None
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None
    buyer_phone: Optional[str] = None
    buyer_address: Optional[str] = None
    buyer_occupation: Optional[str] = None

    class Config:
        from_attributes = True


class PaymentCreateRequest(BaseModel):
    buyer_id: Optional[int] = None
    transaction_id: Optional[int] = None
    amount: Optional[Decimal] = None
    method: Optional[str] = None
    reference: Optional[str] = None
    paid_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {"transaction_id": 9, "amount": "30000", "method": "mpesa", "reference": "QAB12XYZ"}
        }


class PaymentResponse(BaseModel):
    id: int
    buyer_id: int
    transaction_id: Optional[int] = None
    amount: Decimal
    method: str
    reference: str = ""
    paid_at: datetime

    class Config:
        from_attributes = True


class PaymentRecordResponse(BaseModel):
    """A recorded payment and, if it settled against one, the updated transaction."""
    payment: PaymentResponse
    transaction: Optional[TransactionResponse] = None

    class Config:
        from_attributes = True


class TransactionBalanceResponse(BaseModel):
    transaction: TransactionResponse
    total_amount: Decimal
    amount_paid: Decimal
    amount_remaining: Decimal
    label: str

    class Config:
        from_attributes = True


class BuyerBalanceResponse(BaseModel):
    buyer: BuyerResponse
    transactions: List[TransactionBalanceResponse]
    total_purchased: Decimal
    total_paid: Decimal
    total_outstanding: Decimal

    class Config:
        from_attributes = True


# ============================================================================
# Purchase Models
# ============================================================================

class PurchaseRequest(BaseModel):
    """Request to buy plots for a (possibly new) buyer."""
    buyer: BuyerFields
    plot_ids: List[int] = Field(..., description="Plots to buy (1..200)")
    payment_mode: PaymentMode = PaymentMode.FULL
    deposit_amount: Optional[Decimal] = None
    deposit_percent: Optional[Decimal] = None
    months: int = 0
    start_date: Optional[date] = None
    notes: str = ""
    payment_method: str = "cash"

    class Config:
        json_schema_extra = {
            "example": {
                "buyer": {
                    "name": "Jane Wanjiru",
                    "id_number": "28765432",
                    "phone": "+254700000001",
                    "email": "jane@example.com",
                    "budget": "200000"
                },
                "plot_ids": [5, 6],
                "payment_mode": "installments",
                "deposit_percent": "30",
                "months": 12,
                "start_date": "2025-02-01"
            }
        }


class PurchaseResponse(BaseModel):
    """Response from a completed purchase."""
    buyer: BuyerResponse
    buyer_created: bool
    transaction: TransactionResponse
    payment: PaymentResponse
    plot_ids: List[int]
    total_amount: Decimal
    amount_paid: Decimal
    monthly_amount: Decimal
    budget_before: Decimal
    budget_after: Decimal


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Not found",
                "detail": "Plot 201 not found",
                "status_code": 404
            }
        }
