"""
SQLite backend (local file database).

Used when Supabase credentials are not configured. One connection is opened in
``initialize()`` and shared by all request threads; a re-entrant lock
serializes every statement so a read-then-write inside this store (bulk plot
update, ledger update) cannot interleave with another thread.

remaining_balance is a generated column (budget - total_spent); the ledger
update is a single UPDATE evaluated by SQLite itself.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from domain.buyer import Buyer
from domain.errors import ConflictError, NotFoundError
from domain.ledger import LedgerBalance
from domain.money import to_money
from domain.payment import Payment
from domain.plot import Plot, PlotStatus
from domain.time import parse_optional_utc_datetime, parse_utc_datetime
from domain.transaction import PaymentStatus, Transaction
from repositories.seed import seed_plot_rows
from repositories.store import LandStore

logger = logging.getLogger(__name__)

_SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS buyers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        id_number TEXT NOT NULL UNIQUE,
        uid TEXT,
        phone TEXT NOT NULL,
        email TEXT NOT NULL,
        address TEXT,
        occupation TEXT,
        budget REAL NOT NULL,
        total_spent REAL NOT NULL DEFAULT 0 CHECK (total_spent >= 0),
        remaining_balance REAL GENERATED ALWAYS AS (budget - total_spent) STORED,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS plots (
        id INTEGER PRIMARY KEY,
        status TEXT NOT NULL DEFAULT 'available'
            CHECK (status IN ('available', 'selected', 'sold')),
        price REAL NOT NULL DEFAULT 65800,
        buyer_id INTEGER REFERENCES buyers(id),
        sold_date TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS transactions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        buyer_id INTEGER NOT NULL REFERENCES buyers(id),
        plot_ids TEXT NOT NULL,
        total_amount REAL NOT NULL,
        payment_status TEXT NOT NULL DEFAULT 'pending'
            CHECK (payment_status IN ('pending', 'partial', 'paid', 'failed')),
        notes TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS payments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        buyer_id INTEGER NOT NULL REFERENCES buyers(id),
        transaction_id INTEGER REFERENCES transactions(id),
        amount REAL NOT NULL CHECK (amount > 0),
        method TEXT NOT NULL DEFAULT 'cash',
        reference TEXT,
        paid_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_transactions_buyer ON transactions(buyer_id)",
    "CREATE INDEX IF NOT EXISTS idx_payments_transaction ON payments(transaction_id)",
)

_TRANSACTION_SELECT = """
    SELECT
        t.*,
        b.name AS buyer_name,
        b.email AS buyer_email,
        b.phone AS buyer_phone,
        b.address AS buyer_address,
        b.occupation AS buyer_occupation
    FROM transactions t
    LEFT JOIN buyers b ON t.buyer_id = b.id
"""

_PLOT_COLUMNS = frozenset({"status", "buyer_id", "sold_date"})
_BUYER_COLUMNS = frozenset({"name", "id_number", "uid", "phone", "email", "address", "occupation", "budget"})


def _sql_value(value: Any) -> Any:
    """sqlite3 has no Decimal adapter; amounts are stored as REAL."""

    return float(value) if isinstance(value, Decimal) else value


def _money(value: Any, *, name: str) -> Decimal:
    # REAL arithmetic can leave float noise (0.30000000000000004); amounts are cents at most.
    return to_money(round(float(value), 2), name=name)


def _row_to_plot(row: Mapping[str, Any]) -> Plot:
    return Plot(
        id=int(row["id"]),
        status=PlotStatus(row["status"]),
        price=_money(row["price"], name="price"),
        buyer_id=int(row["buyer_id"]) if row["buyer_id"] is not None else None,
        sold_date=parse_optional_utc_datetime(row["sold_date"]),
    )


def _row_to_buyer(row: Mapping[str, Any]) -> Buyer:
    return Buyer(
        id=int(row["id"]),
        name=str(row["name"]),
        id_number=str(row["id_number"]),
        uid=row["uid"],
        phone=str(row["phone"]),
        email=str(row["email"]),
        address=row["address"],
        occupation=row["occupation"],
        budget=_money(row["budget"], name="budget"),
        total_spent=_money(row["total_spent"], name="total_spent"),
        created_at=parse_optional_utc_datetime(row["created_at"]),
    )


def _row_to_transaction(row: Mapping[str, Any]) -> Transaction:
    return Transaction(
        id=int(row["id"]),
        buyer_id=int(row["buyer_id"]),
        plot_ids=str(row["plot_ids"]),
        total_amount=_money(row["total_amount"], name="total_amount"),
        payment_status=PaymentStatus(row["payment_status"]),
        notes=row["notes"] or "",
        created_at=parse_optional_utc_datetime(row["created_at"]),
        buyer_name=row["buyer_name"],
        buyer_email=row["buyer_email"],
        buyer_phone=row["buyer_phone"],
        buyer_address=row["buyer_address"],
        buyer_occupation=row["buyer_occupation"],
    )


def _row_to_payment(row: Mapping[str, Any]) -> Payment:
    return Payment(
        id=int(row["id"]),
        buyer_id=int(row["buyer_id"]),
        transaction_id=int(row["transaction_id"]) if row["transaction_id"] is not None else None,
        amount=_money(row["amount"], name="amount"),
        method=row["method"],
        reference=row["reference"] or "",
        paid_at=parse_utc_datetime(row["paid_at"]),
    )


def _placeholders(values: Iterable[Any]) -> str:
    return ",".join("?" for _ in values)


class SQLiteLandStore(LandStore):
    """LandStore over a local SQLite database file."""

    backend_name = "sqlite"

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        with self._lock:
            if self._conn is None:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.db_path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute("PRAGMA foreign_keys=ON;")
                self._conn = conn
                logger.info("Connected to SQLite database at %s", self.db_path)

            with self._conn:
                for statement in _SCHEMA:
                    self._conn.execute(statement)
            self._seed_plots()

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("SQLite connection closed")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._conn

    def _seed_plots(self) -> None:
        count = self.conn.execute("SELECT COUNT(*) FROM plots").fetchone()[0]
        if count:
            return

        rows = seed_plot_rows()
        logger.info("Seeding initial %d plots...", len(rows))
        with self.conn:
            self.conn.executemany(
                "INSERT INTO plots (id, status, price) VALUES (?, ?, ?)",
                [(r["id"], r["status"], _sql_value(r["price"])) for r in rows],
            )

    def _all(self, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, [_sql_value(p) for p in params]).fetchall()

    def _one(self, sql: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, [_sql_value(p) for p in params]).fetchone()

    # ------------------------------------------------------------------
    # Plots
    # ------------------------------------------------------------------

    def _select_plots(self, status: Optional[PlotStatus]) -> List[Plot]:
        if status is None:
            rows = self._all("SELECT * FROM plots ORDER BY id")
        else:
            rows = self._all("SELECT * FROM plots WHERE status = ? ORDER BY id", [status.value])
        return [_row_to_plot(row) for row in rows]

    def _select_plot(self, plot_id: int) -> Optional[Plot]:
        row = self._one("SELECT * FROM plots WHERE id = ?", [plot_id])
        return _row_to_plot(row) if row is not None else None

    def _update_plots(self, plot_ids: List[int], changes: Dict[str, Any]) -> List[int]:
        columns = [c for c in changes if c in _PLOT_COLUMNS]
        assignments = ", ".join(f"{c} = ?" for c in columns)
        in_clause = _placeholders(plot_ids)

        with self._lock:
            try:
                with self.conn:
                    existing = [
                        int(row["id"])
                        for row in self.conn.execute(
                            f"SELECT id FROM plots WHERE id IN ({in_clause})", plot_ids
                        )
                    ]
                    self.conn.execute(
                        f"UPDATE plots SET {assignments} WHERE id IN ({in_clause})",
                        [_sql_value(changes[c]) for c in columns] + list(plot_ids),
                    )
            except sqlite3.IntegrityError as e:
                # Only the buyer_id foreign key can fail here.
                raise NotFoundError(f"Buyer {changes.get('buyer_id')} not found") from e
        return existing

    # ------------------------------------------------------------------
    # Buyers
    # ------------------------------------------------------------------

    def _select_buyers(self) -> List[Buyer]:
        rows = self._all("SELECT * FROM buyers ORDER BY created_at DESC, id DESC")
        return [_row_to_buyer(row) for row in rows]

    def _select_buyer(self, buyer_id: int) -> Optional[Buyer]:
        row = self._one("SELECT * FROM buyers WHERE id = ?", [buyer_id])
        return _row_to_buyer(row) if row is not None else None

    def _select_buyer_by_id_number(self, id_number: str) -> Optional[Buyer]:
        row = self._one("SELECT * FROM buyers WHERE id_number = ?", [id_number])
        return _row_to_buyer(row) if row is not None else None

    def _insert_buyer(self, payload: Dict[str, Any]) -> Buyer:
        columns = list(payload)
        with self._lock:
            try:
                with self.conn:
                    cursor = self.conn.execute(
                        f"INSERT INTO buyers ({', '.join(columns)}) VALUES ({_placeholders(columns)})",
                        [_sql_value(payload[c]) for c in columns],
                    )
            except sqlite3.IntegrityError as e:
                if "UNIQUE" in str(e).upper():
                    raise ConflictError("Buyer with this ID number already exists") from e
                raise
            buyer = self._select_buyer(int(cursor.lastrowid))
        if buyer is None:
            raise NotFoundError("Buyer not found after insert")
        return buyer

    def _update_buyer(self, buyer_id: int, payload: Dict[str, Any]) -> Optional[Buyer]:
        columns = [c for c in payload if c in _BUYER_COLUMNS]
        assignments = ", ".join(f"{c} = ?" for c in columns)
        with self._lock:
            try:
                with self.conn:
                    cursor = self.conn.execute(
                        f"UPDATE buyers SET {assignments} WHERE id = ?",
                        [_sql_value(payload[c]) for c in columns] + [buyer_id],
                    )
            except sqlite3.IntegrityError as e:
                if "UNIQUE" in str(e).upper():
                    raise ConflictError("Buyer with this ID number already exists") from e
                raise
            if cursor.rowcount == 0:
                return None
            return self._select_buyer(buyer_id)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _select_transactions(
        self, buyer_id: Optional[int], payment_status: Optional[PaymentStatus]
    ) -> List[Transaction]:
        sql = _TRANSACTION_SELECT + " WHERE 1=1"
        params: List[Any] = []
        if buyer_id is not None:
            sql += " AND t.buyer_id = ?"
            params.append(buyer_id)
        if payment_status is not None:
            sql += " AND t.payment_status = ?"
            params.append(payment_status.value)
        sql += " ORDER BY t.created_at DESC, t.id DESC"
        return [_row_to_transaction(row) for row in self._all(sql, params)]

    def _select_transaction(self, transaction_id: int) -> Optional[Transaction]:
        row = self._one(_TRANSACTION_SELECT + " WHERE t.id = ?", [transaction_id])
        return _row_to_transaction(row) if row is not None else None

    def _insert_transaction(self, payload: Dict[str, Any]) -> int:
        with self._lock:
            try:
                with self.conn:
                    cursor = self.conn.execute(
                        """
                        INSERT INTO transactions (buyer_id, plot_ids, total_amount, payment_status, notes, created_at)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        [
                            payload["buyer_id"],
                            payload["plot_ids"],
                            _sql_value(payload["total_amount"]),
                            payload["payment_status"],
                            payload["notes"],
                            payload["created_at"],
                        ],
                    )
            except sqlite3.IntegrityError as e:
                raise NotFoundError(f"Buyer {payload['buyer_id']} not found") from e
            return int(cursor.lastrowid)

    def _update_transaction_status(self, transaction_id: int, status: PaymentStatus) -> bool:
        with self._lock:
            with self.conn:
                cursor = self.conn.execute(
                    "UPDATE transactions SET payment_status = ? WHERE id = ?",
                    [status.value, transaction_id],
                )
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def _select_payments(self, buyer_id: Optional[int], transaction_id: Optional[int]) -> List[Payment]:
        sql = "SELECT * FROM payments WHERE 1=1"
        params: List[Any] = []
        if buyer_id is not None:
            sql += " AND buyer_id = ?"
            params.append(buyer_id)
        if transaction_id is not None:
            sql += " AND transaction_id = ?"
            params.append(transaction_id)
        sql += " ORDER BY paid_at DESC, id DESC"
        return [_row_to_payment(row) for row in self._all(sql, params)]

    def _insert_payment(self, payload: Dict[str, Any]) -> Payment:
        with self._lock:
            with self.conn:
                cursor = self.conn.execute(
                    """
                    INSERT INTO payments (buyer_id, transaction_id, amount, method, reference, paid_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        payload["buyer_id"],
                        payload["transaction_id"],
                        _sql_value(payload["amount"]),
                        payload["method"],
                        payload["reference"],
                        payload["paid_at"],
                    ],
                )
            row = self._one("SELECT * FROM payments WHERE id = ?", [cursor.lastrowid])
        if row is None:
            raise NotFoundError("Payment not found after insert")
        return _row_to_payment(row)

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def _apply_ledger_delta(self, buyer_id: int, delta: Decimal) -> LedgerBalance:
        with self._lock:
            with self.conn:
                cursor = self.conn.execute(
                    "UPDATE buyers SET total_spent = MAX(0, total_spent + ?) WHERE id = ?",
                    [_sql_value(delta), buyer_id],
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(f"Buyer {buyer_id} not found")
                row = self.conn.execute(
                    "SELECT budget, total_spent FROM buyers WHERE id = ?", [buyer_id]
                ).fetchone()
        return LedgerBalance(
            budget=_money(row["budget"], name="budget"),
            total_spent=_money(row["total_spent"], name="total_spent"),
        )


__all__ = ["SQLiteLandStore"]
