"""Dependencies for FastAPI routes."""
import logging
from functools import lru_cache

from outing_planner.planner import PlanGenerationEngine, default_center
from outing_planner.planner.candidates import CandidateSource
from outing_planner.services.location import LocationResolver, StaticLocationProvider
from outing_planner.services.overpass import overpass_client

logger = logging.getLogger(__name__)


@lru_cache()
def get_engine() -> PlanGenerationEngine:
    """
    Shared plan generation engine.

    The server has no device to ask for a position, so requests without an
    explicit center resolve to the configured default center.
    """
    logger.info("Creating plan generation engine")
    location = LocationResolver(StaticLocationProvider(default_center()))
    return PlanGenerationEngine(candidate_source=overpass_client, location=location)


def get_candidate_source() -> CandidateSource:
    return overpass_client
