"""
Tests for `domain/plot.py`.

Covers contract rules:
- Plot status is one of available, selected, sold (case-insensitive input).
- Plot ids run 1..200.
- Plot is immutable (frozen) and sold_date must be UTC.
- Stats report per-status counts and values.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from domain.errors import InvalidArgumentError
from domain.plot import (
    DEMO_SOLD_PLOT_IDS,
    PLOT_PRICE,
    Plot,
    PlotStats,
    PlotStatus,
    is_valid_plot_id,
)


def test_plot_status_parse() -> None:
    """Verify status parsing accepts any case and rejects unknown values."""

    assert PlotStatus.parse("SOLD") is PlotStatus.SOLD
    assert PlotStatus.parse(" available ") is PlotStatus.AVAILABLE
    assert PlotStatus.parse(PlotStatus.SELECTED) is PlotStatus.SELECTED

    with pytest.raises(InvalidArgumentError, match="Invalid plot status"):
        PlotStatus.parse("reserved")


def test_is_valid_plot_id() -> None:
    """Verify the 1..200 id range."""

    assert is_valid_plot_id(1)
    assert is_valid_plot_id(200)
    assert not is_valid_plot_id(0)
    assert not is_valid_plot_id(201)


def test_plot_sold_date_must_be_utc() -> None:
    """Verify sold_date enforces UTC timezone-aware timestamp."""

    with pytest.raises(ValueError):
        Plot(id=1, status=PlotStatus.SOLD, price=PLOT_PRICE, sold_date=datetime(2025, 1, 1))


def test_plot_is_immutable() -> None:
    """Verify Plot cannot be mutated after creation (frozen entity)."""

    plot = Plot(
        id=1,
        status=PlotStatus.SOLD,
        price=PLOT_PRICE,
        buyer_id=4,
        sold_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )

    assert plot.is_sold
    with pytest.raises(FrozenInstanceError):
        plot.status = PlotStatus.AVAILABLE  # type: ignore[misc]


def test_plot_stats_from_plots() -> None:
    """Verify counts, values and summary over a mixed inventory."""

    plots = [
        Plot(id=1, status=PlotStatus.AVAILABLE, price=PLOT_PRICE),
        Plot(id=2, status=PlotStatus.SOLD, price=PLOT_PRICE),
        Plot(id=3, status=PlotStatus.SOLD, price=Decimal("70000")),
        Plot(id=4, status=PlotStatus.SELECTED, price=PLOT_PRICE),
    ]

    stats = PlotStats.from_plots(plots)

    assert stats.total_plots == 4
    assert stats.summary == {"available": 1, "selected": 1, "sold": 2}
    assert stats.sold_value == Decimal("135800")
    assert stats.total_value == Decimal("267400")
    assert stats.count(PlotStatus.SOLD) == 2
    assert [s.status for s in stats.by_status] == list(PlotStatus)


def test_demo_sold_plot_ids_are_in_range() -> None:
    """Verify the demo sold set is 13 distinct valid ids."""

    assert len(set(DEMO_SOLD_PLOT_IDS)) == 13
    assert all(is_valid_plot_id(pid) for pid in DEMO_SOLD_PLOT_IDS)
