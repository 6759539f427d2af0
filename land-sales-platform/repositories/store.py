"""
Land store: the data access contract shared by every backend.

``LandStore`` owns the whole operation set the API and services call
(plots, buyers, transactions, payments). Input validation, the error
classification and the ledger hook live here so that switching backends never
changes behaviour; concrete backends only implement the storage primitives
(the ``_``-prefixed abstract methods).

Backends:
- repositories/sqlite_store.py    local SQLite file
- repositories/supabase_store.py  Supabase (managed PostgreSQL)

Pick one with ``repositories.config.create_store`` and pass it around; nothing
in this package holds a module-level connection.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from domain.buyer import BUYER_EDITABLE_FIELDS, BUYER_REQUIRED_FIELDS, Buyer, buyer_uid
from domain.errors import ConflictError, InvalidArgumentError, MissingFieldError, NotFoundError
from domain.ledger import LedgerBalance, LedgerEvent, signed_delta
from domain.money import is_blank, to_money
from domain.payment import DEFAULT_PAYMENT_METHOD, Payment
from domain.plot import BulkUpdateResult, Plot, PlotStats, PlotStatus
from domain.time import parse_utc_datetime, utc_now
from domain.transaction import PaymentStatus, Transaction, join_plot_ids

logger = logging.getLogger(__name__)


def _to_int(value: Any, *, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}") from None


def _to_timestamp(value: Any, *, name: str) -> datetime:
    try:
        return parse_utc_datetime(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{name} must be an ISO-8601 timestamp, got {value!r}") from None


def _optional_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _require_fields(data: Mapping[str, Any], fields: Sequence[str]) -> None:
    missing = [name for name in fields if is_blank(data.get(name))]
    if missing:
        raise MissingFieldError(missing)


def _plot_changes(status: PlotStatus, buyer_id: Optional[int]) -> Dict[str, Any]:
    """
    Column changes for a plot status update.

    Selling with a buyer stamps buyer_id and sold_date; any non-sold status
    clears them so buyer_id stays non-null only for sold plots.
    """

    changes: Dict[str, Any] = {"status": status.value}
    if status is PlotStatus.SOLD:
        if buyer_id is not None:
            changes["buyer_id"] = buyer_id
            changes["sold_date"] = utc_now().isoformat()
    else:
        changes["buyer_id"] = None
        changes["sold_date"] = None
    return changes


class LandStore(ABC):
    """Uniform plot/buyer/transaction/payment operations over one backend."""

    backend_name: str = "abstract"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    def initialize(self) -> None:
        """Open the backend, ensure the schema exists and seed plots if empty."""

    @abstractmethod
    def close(self) -> None:
        """Release backend resources. Safe to call more than once."""

    def __enter__(self) -> "LandStore":
        self.initialize()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Plots
    # ------------------------------------------------------------------

    def get_all_plots(self, status: Any = None) -> List[Plot]:
        """All plots ordered by id, optionally restricted to one status."""

        status_filter = PlotStatus.parse(status) if not is_blank(status) else None
        return self._select_plots(status_filter)

    def get_plot_by_id(self, plot_id: Any) -> Optional[Plot]:
        return self._select_plot(_to_int(plot_id, name="plot id"))

    def update_plot(self, plot_id: Any, status: Any, buyer_id: Any = None) -> Plot:
        """
        Set one plot's status.

        Raises:
            InvalidArgumentError: status is not available/selected/sold
            NotFoundError: no plot with this id
        """

        plot_status = PlotStatus.parse(status)
        pid = _to_int(plot_id, name="plot id")
        buyer = _to_int(buyer_id, name="buyer_id") if not is_blank(buyer_id) else None

        updated = self._update_plots([pid], _plot_changes(plot_status, buyer))
        if not updated:
            raise NotFoundError(f"Plot {pid} not found")

        plot = self._select_plot(pid)
        if plot is None:
            raise NotFoundError(f"Plot {pid} not found")
        return plot

    def update_plots_bulk(self, plot_ids: Any, status: Any, buyer_id: Any = None) -> BulkUpdateResult:
        """
        Set the status of many plots in one statement (best-effort).

        Ids that match no plot are reported in ``missing_ids`` rather than
        failing the batch.
        """

        if not isinstance(plot_ids, (list, tuple)) or not plot_ids:
            raise InvalidArgumentError("plotIds must be a non-empty array")
        plot_status = PlotStatus.parse(status)
        ids = [_to_int(pid, name="plot id") for pid in plot_ids]
        buyer = _to_int(buyer_id, name="buyer_id") if not is_blank(buyer_id) else None

        unique_ids = list(dict.fromkeys(ids))
        updated = set(self._update_plots(unique_ids, _plot_changes(plot_status, buyer)))
        missing = [pid for pid in unique_ids if pid not in updated]
        if missing:
            logger.info("Bulk plot update skipped %d unknown plot ids: %s", len(missing), missing)
        return BulkUpdateResult(updated_count=len(updated), missing_ids=missing)

    def get_plots_stats(self) -> PlotStats:
        return PlotStats.from_plots(self._select_plots(None))

    # ------------------------------------------------------------------
    # Buyers
    # ------------------------------------------------------------------

    def list_buyers(self) -> List[Buyer]:
        """All buyers, newest first."""

        return self._select_buyers()

    def get_buyer(self, buyer_id: Any) -> Optional[Buyer]:
        return self._select_buyer(_to_int(buyer_id, name="buyer id"))

    def find_buyer_by_id_number(self, id_number: Any) -> Optional[Buyer]:
        if is_blank(id_number):
            return None
        return self._select_buyer_by_id_number(str(id_number).strip())

    def create_buyer(self, data: Mapping[str, Any]) -> Buyer:
        """
        Create a buyer.

        Raises:
            MissingFieldError: name, id_number, phone, email or budget absent
            InvalidArgumentError: budget is not a non-negative number
            ConflictError: a buyer with this id_number already exists
        """

        _require_fields(data, BUYER_REQUIRED_FIELDS)
        budget = to_money(data["budget"], name="budget")
        if budget < 0:
            raise InvalidArgumentError("budget must not be negative")

        name = str(data["name"]).strip()
        id_number = str(data["id_number"]).strip()
        if self._select_buyer_by_id_number(id_number) is not None:
            raise ConflictError("Buyer with this ID number already exists")

        payload: Dict[str, Any] = {
            "name": name,
            "id_number": id_number,
            "uid": buyer_uid(name, id_number),
            "phone": str(data["phone"]).strip(),
            "email": str(data["email"]).strip(),
            "address": _optional_text(data.get("address")),
            "occupation": _optional_text(data.get("occupation")),
            "budget": budget,
            "total_spent": Decimal("0"),
            "created_at": utc_now().isoformat(),
        }
        buyer = self._insert_buyer(payload)
        logger.info("Created buyer %s (uid=%s)", buyer.id, buyer.uid)
        return buyer

    def update_buyer(self, buyer_id: Any, data: Mapping[str, Any]) -> Buyer:
        """
        Overwrite the editable buyer fields present in ``data``.

        Ledger fields (total_spent, remaining_balance) are never written here.

        Raises:
            NotFoundError: no buyer with this id
            MissingFieldError: a required field was given as blank
            ConflictError: the new id_number belongs to another buyer
        """

        bid = _to_int(buyer_id, name="buyer id")
        current = self._select_buyer(bid)
        if current is None:
            raise NotFoundError(f"Buyer {bid} not found")

        provided = {k: data[k] for k in BUYER_EDITABLE_FIELDS if k in data}
        _require_fields(provided, [k for k in BUYER_REQUIRED_FIELDS if k in provided])

        payload: Dict[str, Any] = {}
        for key, value in provided.items():
            if key == "budget":
                payload[key] = to_money(value, name="budget")
                if payload[key] < 0:
                    raise InvalidArgumentError("budget must not be negative")
            else:
                payload[key] = _optional_text(value)

        new_id_number = payload.get("id_number", current.id_number)
        if new_id_number != current.id_number:
            other = self._select_buyer_by_id_number(new_id_number)
            if other is not None and other.id != bid:
                raise ConflictError("Buyer with this ID number already exists")

        if "name" in payload or "id_number" in payload:
            payload["uid"] = buyer_uid(payload.get("name", current.name), new_id_number)

        if not payload:
            return current

        updated = self._update_buyer(bid, payload)
        if updated is None:
            raise NotFoundError(f"Buyer {bid} not found")
        return updated

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def list_transactions(self, buyer_id: Any = None, payment_status: Any = None) -> List[Transaction]:
        """Transactions joined with buyer name/email/phone, newest first."""

        bid = _to_int(buyer_id, name="buyer_id") if not is_blank(buyer_id) else None
        status = PaymentStatus.parse(payment_status) if not is_blank(payment_status) else None
        return self._select_transactions(bid, status)

    def get_transaction(self, transaction_id: Any) -> Optional[Transaction]:
        return self._select_transaction(_to_int(transaction_id, name="transaction id"))

    def create_transaction(self, data: Mapping[str, Any]) -> Transaction:
        """
        Record a purchase and add its total to the buyer's ledger.

        The insert and the ledger update are two statements; if the ledger
        update fails the transaction row stays and the error propagates.

        Raises:
            MissingFieldError: buyer_id, plot_ids or total_amount absent
            InvalidArgumentError: total_amount not a positive number
            NotFoundError: the buyer does not exist
        """

        required = ("buyer_id", "plot_ids", "total_amount")
        missing = [
            name for name in required
            if is_blank(data.get(name)) or (isinstance(data.get(name), (list, tuple)) and not data.get(name))
        ]
        if missing:
            raise MissingFieldError(missing)

        bid = _to_int(data["buyer_id"], name="buyer_id")
        total = to_money(data["total_amount"], name="total_amount")
        if total <= 0:
            raise InvalidArgumentError("total_amount must be greater than zero")
        status = (
            PaymentStatus.parse(data["payment_status"])
            if not is_blank(data.get("payment_status"))
            else PaymentStatus.PENDING
        )

        if self._select_buyer(bid) is None:
            raise NotFoundError(f"Buyer {bid} not found")

        payload: Dict[str, Any] = {
            "buyer_id": bid,
            "plot_ids": join_plot_ids(data["plot_ids"]),
            "total_amount": total,
            "payment_status": status.value,
            "notes": _optional_text(data.get("notes")),
            "created_at": utc_now().isoformat(),
        }
        transaction_id = self._insert_transaction(payload)
        self._apply_ledger(bid, LedgerEvent.TRANSACTION, total)

        transaction = self._select_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found after insert")
        return transaction

    def update_transaction_status(self, transaction_id: Any, status: Any) -> Transaction:
        """
        Raises:
            InvalidArgumentError: status is not pending/partial/paid/failed
            NotFoundError: no transaction with this id
        """

        payment_status = PaymentStatus.parse(status)
        tid = _to_int(transaction_id, name="transaction id")
        if not self._update_transaction_status(tid, payment_status):
            raise NotFoundError(f"Transaction {tid} not found")

        transaction = self._select_transaction(tid)
        if transaction is None:
            raise NotFoundError(f"Transaction {tid} not found")
        return transaction

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def list_payments(self, buyer_id: Any = None, transaction_id: Any = None) -> List[Payment]:
        bid = _to_int(buyer_id, name="buyer_id") if not is_blank(buyer_id) else None
        tid = _to_int(transaction_id, name="transaction_id") if not is_blank(transaction_id) else None
        return self._select_payments(bid, tid)

    def create_payment(self, data: Mapping[str, Any]) -> Payment:
        """
        Record money received and subtract it from the buyer's total_spent
        (floored at zero).

        The buyer is taken from ``buyer_id`` or resolved from
        ``transaction_id``; when both are given they must agree.
        """

        if is_blank(data.get("buyer_id")) and is_blank(data.get("transaction_id")):
            raise MissingFieldError(["buyer_id or transaction_id"])
        if is_blank(data.get("amount")):
            raise MissingFieldError(["amount"])
        amount = to_money(data["amount"], name="amount")
        if amount <= 0:
            raise InvalidArgumentError("amount must be greater than zero")

        tid: Optional[int] = None
        bid: Optional[int] = None
        if not is_blank(data.get("buyer_id")):
            bid = _to_int(data["buyer_id"], name="buyer_id")

        if not is_blank(data.get("transaction_id")):
            tid = _to_int(data["transaction_id"], name="transaction_id")
            transaction = self._select_transaction(tid)
            if transaction is None:
                raise NotFoundError(f"Transaction {tid} not found")
            if bid is not None and bid != transaction.buyer_id:
                raise InvalidArgumentError(
                    f"Transaction {tid} belongs to buyer {transaction.buyer_id}, not {bid}"
                )
            bid = transaction.buyer_id
        elif self._select_buyer(bid) is None:  # type: ignore[arg-type]
            raise NotFoundError(f"Buyer {bid} not found")

        paid_at: datetime = (
            _to_timestamp(data["paid_at"], name="paid_at") if not is_blank(data.get("paid_at")) else utc_now()
        )
        payload: Dict[str, Any] = {
            "buyer_id": bid,
            "transaction_id": tid,
            "amount": amount,
            "method": _optional_text(data.get("method")) or DEFAULT_PAYMENT_METHOD,
            "reference": _optional_text(data.get("reference")),
            "paid_at": paid_at.isoformat(),
        }
        payment = self._insert_payment(payload)
        self._apply_ledger(bid, LedgerEvent.PAYMENT, amount)  # type: ignore[arg-type]
        return payment

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def _apply_ledger(self, buyer_id: int, event: LedgerEvent, amount: Decimal) -> LedgerBalance:
        try:
            balance = self._apply_ledger_delta(buyer_id, signed_delta(event, amount))
        except Exception:
            logger.error(
                "Ledger update failed for buyer %s after %s of %s; buyer totals may be stale",
                buyer_id,
                event.value,
                amount,
            )
            raise
        logger.info(
            "Ledger %s buyer=%s amount=%s total_spent=%s remaining_balance=%s",
            event.value,
            buyer_id,
            amount,
            balance.total_spent,
            balance.remaining_balance,
        )
        return balance

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _select_plots(self, status: Optional[PlotStatus]) -> List[Plot]: ...

    @abstractmethod
    def _select_plot(self, plot_id: int) -> Optional[Plot]: ...

    @abstractmethod
    def _update_plots(self, plot_ids: List[int], changes: Dict[str, Any]) -> List[int]:
        """Apply ``changes`` to the given plots in one statement; return ids updated."""

    @abstractmethod
    def _select_buyers(self) -> List[Buyer]: ...

    @abstractmethod
    def _select_buyer(self, buyer_id: int) -> Optional[Buyer]: ...

    @abstractmethod
    def _select_buyer_by_id_number(self, id_number: str) -> Optional[Buyer]: ...

    @abstractmethod
    def _insert_buyer(self, payload: Dict[str, Any]) -> Buyer:
        """Insert a buyer; raise ConflictError on a unique id_number violation."""

    @abstractmethod
    def _update_buyer(self, buyer_id: int, payload: Dict[str, Any]) -> Optional[Buyer]: ...

    @abstractmethod
    def _select_transactions(
        self, buyer_id: Optional[int], payment_status: Optional[PaymentStatus]
    ) -> List[Transaction]: ...

    @abstractmethod
    def _select_transaction(self, transaction_id: int) -> Optional[Transaction]: ...

    @abstractmethod
    def _insert_transaction(self, payload: Dict[str, Any]) -> int: ...

    @abstractmethod
    def _update_transaction_status(self, transaction_id: int, status: PaymentStatus) -> bool: ...

    @abstractmethod
    def _select_payments(self, buyer_id: Optional[int], transaction_id: Optional[int]) -> List[Payment]: ...

    @abstractmethod
    def _insert_payment(self, payload: Dict[str, Any]) -> Payment: ...

    @abstractmethod
    def _apply_ledger_delta(self, buyer_id: int, delta: Decimal) -> LedgerBalance:
        """
        Atomically set total_spent = max(0, total_spent + delta) for one buyer
        and return the new balance. Raise NotFoundError if the buyer is absent.
        """


__all__ = ["LandStore"]
