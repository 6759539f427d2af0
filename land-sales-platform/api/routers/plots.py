"""
Plots API Endpoints.

Endpoints for browsing the plot inventory and changing plot status.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_store
from api.models import (
    BulkUpdateRequest,
    BulkUpdateResponse,
    PlotResponse,
    PlotStatsResponse,
    PlotUpdateRequest,
)
from domain.errors import NotFoundError
from repositories.store import LandStore

router = APIRouter()


@router.get(
    "/plots",
    response_model=List[PlotResponse],
    summary="List Plots",
    description="All plots ordered by id, optionally filtered by status."
)
def list_plots(
    status: Optional[str] = Query(None, description="Filter by status ('available', 'selected', 'sold')"),
    store: LandStore = Depends(get_store),
):
    """
    **Example usage:**
    - All plots: `GET /api/plots`
    - Only available plots: `GET /api/plots?status=available`
    """
    return [PlotResponse.model_validate(p) for p in store.get_all_plots(status)]


@router.get(
    "/plots/stats",
    response_model=PlotStatsResponse,
    summary="Plot Statistics",
    description="Counts and total value per status."
)
def plot_stats(store: LandStore = Depends(get_store)):
    return PlotStatsResponse.model_validate(store.get_plots_stats())


@router.get("/plots/{plot_id}", response_model=PlotResponse, summary="Get Plot")
def get_plot(plot_id: int, store: LandStore = Depends(get_store)):
    plot = store.get_plot_by_id(plot_id)
    if plot is None:
        raise NotFoundError("Plot not found")
    return PlotResponse.model_validate(plot)


@router.put(
    "/plots/{plot_id}",
    response_model=PlotResponse,
    summary="Update Plot Status",
    description="Set a plot's status. Selling with a buyer_id records the buyer and sale date."
)
def update_plot(plot_id: int, request: PlotUpdateRequest, store: LandStore = Depends(get_store)):
    plot = store.update_plot(plot_id, request.status, request.buyer_id)
    return PlotResponse.model_validate(plot)


@router.post(
    "/plots/bulk-update",
    response_model=BulkUpdateResponse,
    summary="Bulk Update Plot Status",
    description="Set the status of many plots in one statement. Unknown ids are reported, not rejected."
)
def bulk_update_plots(request: BulkUpdateRequest, store: LandStore = Depends(get_store)):
    """
    **Example request:**
    ```json
    {"plotIds": [1, 2, 3], "status": "selected"}
    ```
    """
    result = store.update_plots_bulk(request.plot_ids, request.status, request.buyer_id)
    return BulkUpdateResponse(
        message="Plots updated successfully",
        updated_count=result.updated_count,
        missing_ids=result.missing_ids,
    )
