"""Places router - candidate POIs around a center, with radius relaxation."""
import logging
from collections import Counter
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from outing_planner.config import settings
from outing_planner.dependencies import get_candidate_source
from outing_planner.models.places import Category, Coordinate, NearbyPlacesResponse
from outing_planner.models.plans import MAX_DURATION, MIN_DURATION, TransportMode
from outing_planner.planner import default_center
from outing_planner.planner.candidates import CandidateSource, acquire_candidates
from outing_planner.planner.categories import DEFAULT_SEQUENCE, FETCH_CATEGORIES
from outing_planner.planner.radius import relaxation_attempts, search_radius_m

router = APIRouter(prefix="/places", tags=["places"])
logger = logging.getLogger(__name__)


@router.get("/nearby", response_model=NearbyPlacesResponse)
async def nearby_places(
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Latitude"),
    lon: Optional[float] = Query(None, ge=-180, le=180, description="Longitude"),
    transport: TransportMode = Query(TransportMode.WALK),
    duration: int = Query(120, ge=MIN_DURATION, le=MAX_DURATION, description="Duration in minutes"),
    categories: Optional[List[Category]] = Query(None, description="Wanted categories"),
    source: CandidateSource = Depends(get_candidate_source),
):
    """
    Find candidate places around a center.

    The search starts at a radius derived from transport and duration and
    widens until some wanted place is found.

    Args:
        lat: Center latitude, default city center when omitted
        lon: Center longitude
        transport: Transport mode, drives the search radius
        duration: Outing duration in minutes
        categories: Wanted categories (default: cafe, restaurant, bar, park, cinema)

    Returns:
        Selected places and acquisition statistics
    """
    if (lat is None) != (lon is None):
        raise HTTPException(status_code=400, detail="lat and lon must be given together")
    center = Coordinate(lat=lat, lon=lon) if lat is not None else default_center()
    wanted = categories or DEFAULT_SEQUENCE

    try:
        selection = await acquire_candidates(
            source,
            center,
            FETCH_CATEGORIES,
            wanted,
            relaxation_attempts(search_radius_m(duration, transport)),
            settings.poi_limit_per_category,
        )
    except Exception as e:
        logger.error(f"Nearby places lookup failed: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to fetch nearby places")

    return NearbyPlacesResponse(
        places=selection.pois,
        radius_m=selection.attempt.radius_m,
        require_open=selection.attempt.require_open,
        raw=selection.stats.raw,
        filtered=len(selection.pois),
        groups=Counter(poi.category.group for poi in selection.pois),
    )
