"""
Initial plot inventory.

Both backends seed the same rows the first time they find the plots table
empty: ids 1..200 at the standard price, with the demo set pre-marked sold.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List

from domain.plot import DEMO_SOLD_PLOT_IDS, PLOT_COUNT, PLOT_PRICE, PlotStatus

SEED_BATCH_SIZE = 50


def seed_plot_rows() -> List[Dict[str, Any]]:
    sold = set(DEMO_SOLD_PLOT_IDS)
    return [
        {
            "id": plot_id,
            "status": (PlotStatus.SOLD if plot_id in sold else PlotStatus.AVAILABLE).value,
            "price": PLOT_PRICE,
        }
        for plot_id in range(1, PLOT_COUNT + 1)
    ]


def batched(rows: List[Dict[str, Any]], size: int = SEED_BATCH_SIZE) -> Iterator[List[Dict[str, Any]]]:
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


__all__ = ["SEED_BATCH_SIZE", "seed_plot_rows", "batched"]
