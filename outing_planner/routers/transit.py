"""Transit router - walk, transit, walk routes between two points."""
import logging

from fastapi import APIRouter

from outing_planner.models.transit import TransitRouteRequest, TransitRouteResult
from outing_planner.services.transit_router import plan_transit_route

router = APIRouter(prefix="/transit", tags=["transit"])
logger = logging.getLogger(__name__)


@router.post("/route", response_model=TransitRouteResult, response_model_by_alias=True)
async def route(request: TransitRouteRequest):
    """
    Plan a public transit route.

    Uses the trip planner when configured and falls back to a synthesized
    walk, transit, walk itinerary otherwise. Never fails; a problem with the
    synthesized route is reported in ``error``.
    """
    logger.info(
        f"Transit route {request.from_.lat:.5f},{request.from_.lon:.5f} -> "
        f"{request.to.lat:.5f},{request.to.lon:.5f}"
    )
    return await plan_transit_route(
        request.from_,
        request.to,
        when=request.when,
        max_walk_meters=request.max_walk_meters,
    )
