"""
Plan generation engine.

Runs one request strictly in sequence: center, weather, candidate
acquisition with radius relaxation, ranking, anchor sampling and finally the
diversifier, which builds up to three itineraries.
"""
import asyncio
import logging
import random
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from outing_planner.config import settings
from outing_planner.models.places import Category, Coordinate, PointOfInterest
from outing_planner.models.plans import GenerationRequest, Plan, WeatherSignal
from outing_planner.planner.candidates import CandidateSource, acquire_candidates
from outing_planner.planner.categories import FETCH_CATEGORIES, wanted_categories, weather_ordered
from outing_planner.planner.diversifier import PlanDraft, assemble_plan, diversify, sample_anchors
from outing_planner.planner.itinerary import build_itinerary, enforce_budget, trim_itinerary
from outing_planner.planner.radius import relaxation_attempts, search_radius_m
from outing_planner.planner.scoring import ScoringContext, rank_pois
from outing_planner.services.location import LocationError, LocationResolver
from outing_planner.services.overpass import overpass_client
from outing_planner.services.weather import WeatherClient, weather_client
from outing_planner.utils.distance import DistanceCache

logger = logging.getLogger(__name__)


def default_center() -> Coordinate:
    return Coordinate(lat=settings.default_center_lat, lon=settings.default_center_lon)


class PlanGenerationEngine:
    """
    Generates outing plans for a request.

    Every collaborator is injected; the defaults are the module-level service
    clients. The distance cache belongs to the engine instance.
    """

    def __init__(
        self,
        candidate_source: Optional[CandidateSource] = None,
        weather: Optional[WeatherClient] = None,
        location: Optional[LocationResolver] = None,
        distance_cache: Optional[DistanceCache] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.candidate_source = candidate_source or overpass_client
        self.weather = weather or weather_client
        self.location = location
        self.distance_cache = distance_cache or DistanceCache(max_size=settings.distance_cache_size)
        self.rng = rng or random.Random()
        self._clock = clock

    async def generate(
        self,
        request: GenerationRequest,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Plan]:
        """
        Generate up to three plans for the request.

        Args:
            request: Validated generation request
            cancel_event: When set, in-flight work is abandoned

        Returns:
            The plans in emission order; empty when cancelled or when no
            anchor produced an itinerary.
        """
        if cancel_event is None:
            return await self._run(request)
        if cancel_event.is_set():
            logger.info("Generation cancelled before start")
            return []

        task = asyncio.ensure_future(self._run(request))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        logger.info("Generation cancelled, abandoning in-flight calls")
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return []

    async def _run(self, request: GenerationRequest) -> List[Plan]:
        center = await self.resolve_center(request)
        weather = await self.weather.get_weather_signal(center)
        logger.info(
            f"Generating plans at {center.lat:.5f},{center.lon:.5f}: duration={request.duration} "
            f"transport={request.transport.value} with={request.with_who.value} budget={request.budget} "
            f"weather={weather.model_dump()}"
        )

        categories = weather_ordered(wanted_categories(request), weather)
        base_radius = search_radius_m(request.duration, request.transport)
        selection = await acquire_candidates(
            self.candidate_source,
            center,
            FETCH_CATEGORIES,
            categories,
            relaxation_attempts(base_radius),
            settings.poi_limit_per_category,
        )
        if not selection.pois:
            logger.info("No candidates found at any radius")

        ranked = self.rank(selection.pois, center, request, weather, selection.attempt.radius_m)
        anchors = sample_anchors(ranked, self.rng)
        labeled = diversify(center, anchors, lambda anchor: self.draft(anchor, categories, ranked, request))

        plans = [
            assemble_plan(item, center, request.duration, request.transport, request.budget)
            for item in labeled
        ]
        logger.info(f"Generated {len(plans)} plans, distance cache {self.distance_cache.stats()}")
        return plans

    async def resolve_center(self, request: GenerationRequest) -> Coordinate:
        """Explicit center, then the resolved location, then the default city center."""
        if request.center is not None:
            return request.center
        if self.location is None:
            return default_center()

        try:
            fix = await self.location.get_current_location(timeout=settings.location_timeout)
        except LocationError as exc:
            logger.warning(f"Location unavailable ({exc.code.value}), using default center")
            return default_center()
        return fix.coordinate

    def rank(
        self,
        pois: Sequence[PointOfInterest],
        center: Coordinate,
        request: GenerationRequest,
        weather: WeatherSignal,
        radius_m: int,
    ) -> List[PointOfInterest]:
        context = ScoringContext(
            companion=request.with_who,
            preferences=request.user_prefs,
            weather=weather,
            hour=self._clock().hour,
            max_distance_km=radius_m / 1000,
        )
        return rank_pois(pois, center, context, self.distance_cache.distance_km)

    def draft(
        self,
        anchor: Coordinate,
        categories: Sequence[Category],
        candidates: Sequence[PointOfInterest],
        request: GenerationRequest,
    ) -> Optional[PlanDraft]:
        """Build, trim and budget-check one itinerary for an anchor."""
        itinerary = build_itinerary(
            anchor,
            categories,
            candidates,
            request.duration,
            request.transport,
            self.distance_cache.distance_km,
        )
        if itinerary is None:
            return None

        itinerary = trim_itinerary(itinerary, request.duration)
        if itinerary is None:
            return None

        itinerary, cost = enforce_budget(itinerary, request.budget)
        return PlanDraft(itinerary, cost)
