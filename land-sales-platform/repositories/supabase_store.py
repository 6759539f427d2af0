"""
Supabase backend (managed PostgreSQL via PostgREST).

Used when SUPABASE_URL and SUPABASE_KEY are configured. The schema, including
the ``apply_buyer_ledger`` function the ledger update calls through RPC, lives
in sql/supabase_schema.sql and must be applied before first start.

Unique and foreign-key violations reported by PostgREST (SQLSTATE 23505 /
23503) are surfaced as ConflictError / NotFoundError.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from postgrest.exceptions import APIError

from domain.buyer import Buyer
from domain.errors import ConflictError, NotFoundError
from domain.ledger import LedgerBalance
from domain.money import to_money
from domain.payment import Payment
from domain.plot import Plot, PlotStatus
from domain.time import parse_optional_utc_datetime, parse_utc_datetime
from domain.transaction import PaymentStatus, Transaction
from repositories.seed import batched, seed_plot_rows
from repositories.store import LandStore

logger = logging.getLogger(__name__)

# Supabase table names. Keep these aligned with sql/supabase_schema.sql.
_PLOTS_TABLE: str = "plots"
_BUYERS_TABLE: str = "buyers"
_TRANSACTIONS_TABLE: str = "transactions"
_PAYMENTS_TABLE: str = "payments"

_LEDGER_FUNCTION: str = "apply_buyer_ledger"
_TRANSACTION_COLUMNS: str = "*, buyers(name, email, phone, address, occupation)"

_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


def _to_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    """PostgREST takes numerics as strings; keep Decimal precision intact."""

    return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in values.items()}


def _rows(response: Any, action: str) -> List[Dict[str, Any]]:
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")
    return getattr(response, "data", None) or []


def _execute(query: Any, action: str) -> List[Dict[str, Any]]:
    """Run a PostgREST query and classify constraint violations."""

    try:
        response = query.execute()
    except APIError as e:
        code = str(getattr(e, "code", "") or "")
        if code == _UNIQUE_VIOLATION:
            raise ConflictError("Buyer with this ID number already exists") from e
        if code == _FOREIGN_KEY_VIOLATION:
            raise NotFoundError(f"Referenced row not found while trying to {action}") from e
        raise
    return _rows(response, action)


def _row_to_plot(row: Mapping[str, Any]) -> Plot:
    buyer_id = row.get("buyer_id")
    return Plot(
        id=int(row["id"]),
        status=PlotStatus(str(row["status"])),
        price=to_money(row["price"], name="price"),
        buyer_id=int(buyer_id) if buyer_id is not None else None,
        sold_date=parse_optional_utc_datetime(row.get("sold_date")),
    )


def _row_to_buyer(row: Mapping[str, Any]) -> Buyer:
    return Buyer(
        id=int(row["id"]),
        name=str(row["name"]),
        id_number=str(row["id_number"]),
        uid=row.get("uid"),
        phone=str(row["phone"]),
        email=str(row["email"]),
        address=row.get("address"),
        occupation=row.get("occupation"),
        budget=to_money(row["budget"], name="budget"),
        total_spent=to_money(row.get("total_spent") or 0, name="total_spent"),
        created_at=parse_optional_utc_datetime(row.get("created_at")),
    )


def _row_to_transaction(row: Mapping[str, Any]) -> Transaction:
    buyer = row.get("buyers") or {}
    return Transaction(
        id=int(row["id"]),
        buyer_id=int(row["buyer_id"]),
        plot_ids=str(row["plot_ids"]),
        total_amount=to_money(row["total_amount"], name="total_amount"),
        payment_status=PaymentStatus(str(row.get("payment_status") or PaymentStatus.PENDING.value)),
        notes=row.get("notes") or "",
        created_at=parse_optional_utc_datetime(row.get("created_at")),
        buyer_name=buyer.get("name"),
        buyer_email=buyer.get("email"),
        buyer_phone=buyer.get("phone"),
        buyer_address=buyer.get("address"),
        buyer_occupation=buyer.get("occupation"),
    )


def _row_to_payment(row: Mapping[str, Any]) -> Payment:
    transaction_id = row.get("transaction_id")
    return Payment(
        id=int(row["id"]),
        buyer_id=int(row["buyer_id"]),
        transaction_id=int(transaction_id) if transaction_id is not None else None,
        amount=to_money(row["amount"], name="amount"),
        method=row.get("method") or "cash",
        reference=row.get("reference") or "",
        paid_at=parse_utc_datetime(row["paid_at"]),
    )


class SupabaseLandStore(LandStore):
    """LandStore over a Supabase project."""

    backend_name = "supabase"

    def __init__(self, client: Any) -> None:
        self.client = client

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        try:
            existing = _execute(
                self.client.table(_PLOTS_TABLE).select("id").limit(1), "check plots table"
            )
        except APIError as e:
            logger.error(
                "Supabase plots table is not reachable (%s). Apply sql/supabase_schema.sql first.", e
            )
            raise RuntimeError("Supabase schema missing or unreachable") from e

        logger.info("Connected to Supabase database")
        if existing:
            return

        rows = seed_plot_rows()
        logger.info("Seeding initial %d plots...", len(rows))
        for batch in batched(rows):
            _execute(
                self.client.table(_PLOTS_TABLE).insert([_to_payload(r) for r in batch]),
                "seed plots",
            )

    def close(self) -> None:
        # supabase-py keeps no connection that needs explicit teardown.
        logger.info("Supabase store closed")

    # ------------------------------------------------------------------
    # Plots
    # ------------------------------------------------------------------

    def _select_plots(self, status: Optional[PlotStatus]) -> List[Plot]:
        query = self.client.table(_PLOTS_TABLE).select("*")
        if status is not None:
            query = query.eq("status", status.value)
        rows = _execute(query.order("id"), "list plots")
        return [_row_to_plot(row) for row in rows]

    def _select_plot(self, plot_id: int) -> Optional[Plot]:
        rows = _execute(
            self.client.table(_PLOTS_TABLE).select("*").eq("id", plot_id).limit(1), "get plot"
        )
        return _row_to_plot(rows[0]) if rows else None

    def _update_plots(self, plot_ids: List[int], changes: Dict[str, Any]) -> List[int]:
        rows = _execute(
            self.client.table(_PLOTS_TABLE).update(_to_payload(changes)).in_("id", plot_ids),
            "update plots",
        )
        return [int(row["id"]) for row in rows]

    # ------------------------------------------------------------------
    # Buyers
    # ------------------------------------------------------------------

    def _select_buyers(self) -> List[Buyer]:
        rows = _execute(
            self.client.table(_BUYERS_TABLE)
            .select("*")
            .order("created_at", desc=True)
            .order("id", desc=True),
            "list buyers",
        )
        return [_row_to_buyer(row) for row in rows]

    def _select_buyer(self, buyer_id: int) -> Optional[Buyer]:
        rows = _execute(
            self.client.table(_BUYERS_TABLE).select("*").eq("id", buyer_id).limit(1), "get buyer"
        )
        return _row_to_buyer(rows[0]) if rows else None

    def _select_buyer_by_id_number(self, id_number: str) -> Optional[Buyer]:
        rows = _execute(
            self.client.table(_BUYERS_TABLE).select("*").eq("id_number", id_number).limit(1),
            "find buyer",
        )
        return _row_to_buyer(rows[0]) if rows else None

    def _insert_buyer(self, payload: Dict[str, Any]) -> Buyer:
        rows = _execute(self.client.table(_BUYERS_TABLE).insert(_to_payload(payload)), "create buyer")
        if not rows:
            raise RuntimeError("Failed to create buyer: no row returned")
        return _row_to_buyer(rows[0])

    def _update_buyer(self, buyer_id: int, payload: Dict[str, Any]) -> Optional[Buyer]:
        rows = _execute(
            self.client.table(_BUYERS_TABLE).update(_to_payload(payload)).eq("id", buyer_id),
            "update buyer",
        )
        return _row_to_buyer(rows[0]) if rows else None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _select_transactions(
        self, buyer_id: Optional[int], payment_status: Optional[PaymentStatus]
    ) -> List[Transaction]:
        query = self.client.table(_TRANSACTIONS_TABLE).select(_TRANSACTION_COLUMNS)
        if buyer_id is not None:
            query = query.eq("buyer_id", buyer_id)
        if payment_status is not None:
            query = query.eq("payment_status", payment_status.value)
        rows = _execute(
            query.order("created_at", desc=True).order("id", desc=True), "list transactions"
        )
        return [_row_to_transaction(row) for row in rows]

    def _select_transaction(self, transaction_id: int) -> Optional[Transaction]:
        rows = _execute(
            self.client.table(_TRANSACTIONS_TABLE)
            .select(_TRANSACTION_COLUMNS)
            .eq("id", transaction_id)
            .limit(1),
            "get transaction",
        )
        return _row_to_transaction(rows[0]) if rows else None

    def _insert_transaction(self, payload: Dict[str, Any]) -> int:
        rows = _execute(
            self.client.table(_TRANSACTIONS_TABLE).insert(_to_payload(payload)), "create transaction"
        )
        if not rows:
            raise RuntimeError("Failed to create transaction: no row returned")
        return int(rows[0]["id"])

    def _update_transaction_status(self, transaction_id: int, status: PaymentStatus) -> bool:
        rows = _execute(
            self.client.table(_TRANSACTIONS_TABLE)
            .update({"payment_status": status.value})
            .eq("id", transaction_id),
            "update transaction status",
        )
        return bool(rows)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def _select_payments(self, buyer_id: Optional[int], transaction_id: Optional[int]) -> List[Payment]:
        query = self.client.table(_PAYMENTS_TABLE).select("*")
        if buyer_id is not None:
            query = query.eq("buyer_id", buyer_id)
        if transaction_id is not None:
            query = query.eq("transaction_id", transaction_id)
        rows = _execute(query.order("paid_at", desc=True).order("id", desc=True), "list payments")
        return [_row_to_payment(row) for row in rows]

    def _insert_payment(self, payload: Dict[str, Any]) -> Payment:
        rows = _execute(self.client.table(_PAYMENTS_TABLE).insert(_to_payload(payload)), "create payment")
        if not rows:
            raise RuntimeError("Failed to create payment: no row returned")
        return _row_to_payment(rows[0])

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def _apply_ledger_delta(self, buyer_id: int, delta: Decimal) -> LedgerBalance:
        data: Any = _execute(
            self.client.rpc(_LEDGER_FUNCTION, {"p_buyer_id": buyer_id, "p_delta": str(delta)}),
            "apply ledger update",
        )
        rows = data if isinstance(data, list) else [data]
        if not rows:
            raise NotFoundError(f"Buyer {buyer_id} not found")
        row = rows[0]
        return LedgerBalance(
            budget=to_money(row["budget"], name="budget"),
            total_spent=to_money(row["total_spent"], name="total_spent"),
        )


__all__ = ["SupabaseLandStore"]
