"""
Pytest configuration.

This file adds the parent directory to the Python path so that tests
can import from the domain, repositories, services and api modules, and
provides store fixtures:

- ``store``: a fresh, initialized SQLite store in a temporary directory
- ``fake_supabase``: an in-memory stand-in for the supabase-py client,
  supporting the query-builder calls the Supabase backend makes
"""

from __future__ import annotations

import copy
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from postgrest.exceptions import APIError

# Add the land-sales-platform directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from repositories.sqlite_store import SQLiteLandStore  # noqa: E402


@pytest.fixture
def store(tmp_path: Path):
    land_store = SQLiteLandStore(tmp_path / "land.db")
    land_store.initialize()
    yield land_store
    land_store.close()


@pytest.fixture
def buyer_data() -> Dict[str, Any]:
    return {
        "name": "Jane Wanjiru",
        "id_number": "28765432",
        "phone": "+254700000001",
        "email": "jane@example.com",
        "address": "Nakuru",
        "occupation": "Teacher",
        "budget": 100000,
    }


# ----------------------------------------------------------------------
# In-memory Supabase client
# ----------------------------------------------------------------------


class FakeResponse:
    def __init__(self, data: Any) -> None:
        self.data = data
        self.error = None


class FakeQuery:
    """Records a PostgREST query chain and evaluates it on execute()."""

    def __init__(self, db: "FakeSupabaseClient", table: str) -> None:
        self.db = db
        self.table = table
        self.action = "select"
        self.columns = "*"
        self.values: Any = None
        self.filters: List[Any] = []
        self.orders: List[Any] = []
        self.limit_count: Optional[int] = None

    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self.action = "select"
        self.columns = columns
        return self

    def insert(self, values: Any) -> "FakeQuery":
        self.action = "insert"
        self.values = values
        return self

    def update(self, values: Dict[str, Any]) -> "FakeQuery":
        self.action = "update"
        self.values = values
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: str(row.get(column)) == str(value))
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        wanted = {str(v) for v in values}
        self.filters.append(lambda row: str(row.get(column)) in wanted)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.limit_count = count
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self.db.tables[self.table] if all(f(row) for f in self.filters)]

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.table, self.action))
        if self.action == "insert":
            rows = self.values if isinstance(self.values, list) else [self.values]
            return FakeResponse([self.db.insert_row(self.table, dict(r)) for r in rows])
        if self.action == "update":
            matched = self._matching()
            if "id_number" in self.values:
                self.db.check_unique(self.table, self.values, exclude=[r["id"] for r in matched])
            for row in matched:
                row.update(self.values)
            return FakeResponse([copy.deepcopy(r) for r in matched])

        rows = [copy.deepcopy(r) for r in self._matching()]
        for column, desc in reversed(self.orders):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        if self.limit_count is not None:
            rows = rows[: self.limit_count]
        if "buyers(" in self.columns:
            for row in rows:
                buyer = next(
                    (b for b in self.db.tables["buyers"] if b["id"] == row.get("buyer_id")), None
                )
                row["buyers"] = (
                    {k: buyer.get(k) for k in ("name", "email", "phone", "address", "occupation")}
                    if buyer
                    else None
                )
        return FakeResponse(rows)


class FakeRpc:
    def __init__(self, db: "FakeSupabaseClient", name: str, params: Dict[str, Any]) -> None:
        self.db = db
        self.name = name
        self.params = params

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.name, "rpc"))
        self.db.rpc_params.append(dict(self.params))
        if self.name != "apply_buyer_ledger":
            raise APIError({"code": "42883", "message": f"function {self.name} does not exist"})
        buyer = next(
            (b for b in self.db.tables["buyers"] if b["id"] == self.params["p_buyer_id"]), None
        )
        if buyer is None:
            return FakeResponse([])
        spent = Decimal(str(buyer.get("total_spent") or 0)) + Decimal(str(self.params["p_delta"]))
        buyer["total_spent"] = str(max(Decimal("0"), spent))
        return FakeResponse([{"budget": buyer["budget"], "total_spent": buyer["total_spent"]}])


class FakeSupabaseClient:
    """Just enough of supabase-py's client for SupabaseLandStore."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            "plots": [],
            "buyers": [],
            "transactions": [],
            "payments": [],
        }
        self.next_ids: Dict[str, int] = {name: 1 for name in self.tables}
        self.calls: List[Any] = []
        self.rpc_params: List[Dict[str, Any]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def check_unique(self, table: str, row: Dict[str, Any], exclude: List[int] = ()) -> None:
        if table != "buyers":
            return
        for existing in self.tables["buyers"]:
            if existing["id"] not in exclude and existing["id_number"] == row.get("id_number"):
                raise APIError(
                    {
                        "code": "23505",
                        "message": 'duplicate key value violates unique constraint "buyers_id_number_key"',
                    }
                )

    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self.check_unique(table, row)
        if table in ("transactions", "payments"):
            if not any(b["id"] == row.get("buyer_id") for b in self.tables["buyers"]):
                raise APIError({"code": "23503", "message": "violates foreign key constraint"})
        if "id" not in row:
            row["id"] = self.next_ids[table]
        self.next_ids[table] = max(self.next_ids[table], int(row["id"])) + 1
        self.tables[table].append(row)
        return copy.deepcopy(row)


@pytest.fixture
def fake_supabase() -> FakeSupabaseClient:
    return FakeSupabaseClient()
