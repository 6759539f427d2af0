"""
Tests for `domain/buyer.py`.

Covers contract rules:
- uid is a slug of name and id_number.
- remaining_balance is always budget - total_spent.
- Buyer is immutable and created_at must be UTC.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime
from decimal import Decimal

import pytest

from domain.buyer import Buyer, buyer_uid, slugify


def _buyer(**overrides: object) -> Buyer:
    fields = {
        "id": 1,
        "name": "Jane Wanjiru",
        "id_number": "28765432",
        "phone": "+254700000001",
        "email": "jane@example.com",
        "budget": Decimal("100000"),
    }
    fields.update(overrides)
    return Buyer(**fields)  # type: ignore[arg-type]


def test_slugify() -> None:
    """Verify non-alphanumeric runs collapse to single hyphens."""

    assert slugify("  Jane  O'Neil ") == "jane-o-neil"
    assert slugify("ID/0042") == "id-0042"
    assert slugify("---") == ""


def test_buyer_uid_combines_name_and_id_number() -> None:
    """Verify the uid format used for buyer records."""

    assert buyer_uid("Jane  O'Neil", "ID-0042") == "jane-o-neil-id-0042"
    assert buyer_uid("", "ID-0042") == "id-0042"


def test_buyer_uid_truncates_long_names() -> None:
    """Verify the name part is capped and never ends with a hyphen."""

    uid = buyer_uid("a" * 31 + " Bcdef", "7")

    assert uid == "a" * 31 + "-7"


def test_remaining_balance_is_derived() -> None:
    """Verify remaining_balance follows budget and total_spent."""

    buyer = _buyer(total_spent=Decimal("65800"))

    assert buyer.remaining_balance == Decimal("34200")


def test_buyer_created_at_must_be_utc() -> None:
    """Verify created_at enforces UTC timezone-aware timestamp."""

    with pytest.raises(ValueError):
        _buyer(created_at=datetime(2025, 1, 1))


def test_buyer_is_immutable() -> None:
    """Verify Buyer cannot be mutated after creation (frozen entity)."""

    buyer = _buyer()

    with pytest.raises(FrozenInstanceError):
        buyer.total_spent = Decimal("1")  # type: ignore[misc]
