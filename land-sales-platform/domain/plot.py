"""
Domain: Plots.

Contract excerpts implemented here:
- The estate has a fixed inventory of 200 plots with ids 1..200.
- A plot is one of: available, selected, sold.
- A plot's buyer_id is set iff its status is sold; sold_date is set with it.
- Every plot is seeded at the same price (65800).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import InvalidArgumentError
from .time import require_utc_timestamp

PLOT_COUNT: int = 200
PLOT_PRICE: Decimal = Decimal("65800")

# Plots marked sold when the inventory is first seeded (demo data).
DEMO_SOLD_PLOT_IDS: tuple[int, ...] = (3, 7, 8, 15, 19, 32, 47, 88, 101, 120, 155, 172, 199)


class PlotStatus(str, Enum):
    AVAILABLE = "available"
    SELECTED = "selected"
    SOLD = "sold"

    @staticmethod
    def parse(value: Any) -> "PlotStatus":
        """Resolve a raw status value, raising InvalidArgumentError for unknown values."""

        if isinstance(value, PlotStatus):
            return value
        try:
            return PlotStatus(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in PlotStatus)
            raise InvalidArgumentError(f"Invalid plot status {value!r}. Must be one of: {allowed}") from None


def is_valid_plot_id(plot_id: int) -> bool:
    return 1 <= plot_id <= PLOT_COUNT


@dataclass(frozen=True, slots=True)
class Plot:
    """One sellable unit of land."""

    id: int
    status: PlotStatus
    price: Decimal
    buyer_id: Optional[int] = None
    sold_date: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.sold_date is not None:
            require_utc_timestamp("sold_date", self.sold_date)

    @property
    def is_sold(self) -> bool:
        return self.status is PlotStatus.SOLD


@dataclass(frozen=True, slots=True)
class PlotStatusCount:
    status: PlotStatus
    count: int
    total_value: Decimal


@dataclass(frozen=True, slots=True)
class PlotStats:
    """Aggregate view of the plot inventory."""

    total_plots: int
    by_status: List[PlotStatusCount]

    def count(self, status: PlotStatus) -> int:
        return next((s.count for s in self.by_status if s.status is status), 0)

    def value(self, status: PlotStatus) -> Decimal:
        return next((s.total_value for s in self.by_status if s.status is status), Decimal("0"))

    @property
    def total_value(self) -> Decimal:
        return sum((s.total_value for s in self.by_status), Decimal("0"))

    @property
    def sold_value(self) -> Decimal:
        return self.value(PlotStatus.SOLD)

    @property
    def summary(self) -> Dict[str, int]:
        return {status.value: self.count(status) for status in PlotStatus}

    @staticmethod
    def from_plots(plots: List[Plot]) -> "PlotStats":
        """Build stats from a full plot listing (same shape for every backend)."""

        counts: Dict[PlotStatus, int] = {status: 0 for status in PlotStatus}
        values: Dict[PlotStatus, Decimal] = {status: Decimal("0") for status in PlotStatus}
        for plot in plots:
            counts[plot.status] += 1
            values[plot.status] += plot.price
        return PlotStats(
            total_plots=len(plots),
            by_status=[PlotStatusCount(s, counts[s], values[s]) for s in PlotStatus],
        )


@dataclass(frozen=True, slots=True)
class BulkUpdateResult:
    """
    Outcome of a best-effort bulk plot update.

    updated_count may be lower than the number of requested ids; the ids that
    matched no row are listed in missing_ids.
    """

    updated_count: int
    missing_ids: List[int] = field(default_factory=list)


__all__ = [
    "PLOT_COUNT",
    "PLOT_PRICE",
    "DEMO_SOLD_PLOT_IDS",
    "PlotStatus",
    "Plot",
    "PlotStats",
    "PlotStatusCount",
    "BulkUpdateResult",
    "is_valid_plot_id",
]
