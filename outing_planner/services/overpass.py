"""Client for the Overpass API (OpenStreetMap POI queries)."""
import asyncio
import logging
import math
from typing import Dict, Iterable, List, Optional

import httpx

from outing_planner.config import settings
from outing_planner.models.places import AcquisitionStats, Category, Coordinate, PointOfInterest
from outing_planner.utils.normalizers import dedupe_pois, normalize_elements

logger = logging.getLogger(__name__)

# Overpass tag filters per category; a category matches any of its filters
CATEGORY_TAG_FILTERS: Dict[Category, List[str]] = {
    Category.CAFE: ['amenity="cafe"'],
    Category.RESTAURANT: ['amenity="restaurant"'],
    Category.FAST_FOOD: ['amenity="fast_food"'],
    Category.TEA_ROOM: ['amenity="tearoom"', 'amenity="tea_room"'],
    Category.BAR: ['amenity="bar"'],
    Category.PUB: ['amenity="pub"'],
    Category.CINEMA: ['amenity="cinema"'],
    Category.LIBRARY: ['amenity="library"'],
    Category.MUSEUM: ['tourism="museum"'],
    Category.GALLERY: ['tourism="gallery"'],
    Category.ZOO: ['tourism="zoo"'],
    Category.AQUARIUM: ['tourism="aquarium"'],
    Category.ATTRACTION: ['tourism="attraction"'],
    Category.FITNESS_CENTRE: ['leisure="fitness_centre"'],
    Category.SPORTS_CENTRE: ['leisure="sports_centre"'],
    Category.BOWLING_ALLEY: ['leisure="bowling_alley"'],
    Category.ESCAPE_GAME: ['leisure="escape_game"'],
    Category.SWIMMING_POOL: ['leisure="swimming_pool"'],
    Category.CLIMBING_INDOOR: ['leisure="climbing"', 'sport="climbing"'],
    Category.ARCADE: ['leisure="amusement_arcade"', 'amenity="arcade"'],
    Category.KARAOKE: ['amenity="karaoke"'],
    Category.SPA: ['leisure="spa"', 'amenity="spa"'],
    Category.PARK: ['leisure="park"'],
}

CITY_FALLBACK_RADIUS_M = 3000
RETRY_PAUSES = (0.15, 0.3)


class CandidateSourceError(Exception):
    """Every category query of a candidate source call failed."""


def bbox_from_center(center: Coordinate, radius_m: float) -> str:
    """Bounding box ``south,west,north,east`` enclosing a circle around center."""
    d_lat = radius_m / 111320
    d_lon = radius_m / (111320 * math.cos(math.radians(center.lat)))
    return f"{center.lat - d_lat},{center.lon - d_lon},{center.lat + d_lat},{center.lon + d_lon}"


def build_around_query(category: Category, center: Coordinate, radius_m: float, limit: int) -> str:
    bbox = bbox_from_center(center, radius_m)
    filters = "".join(f"nwr[{tag}]({bbox});" for tag in CATEGORY_TAG_FILTERS[category])
    return f"[out:json][timeout:20];({filters});out center {limit};"


def build_city_query(category: Category, center: Coordinate, limit: int) -> str:
    filters = "".join(f"nwr[{tag}](area.city);" for tag in CATEGORY_TAG_FILTERS[category])
    return (
        "[out:json][timeout:25];"
        f"is_in({center.lat},{center.lon})->.a;"
        'area.a[boundary="administrative"][admin_level~"^(8|9)$"]->.city;'
        f"({filters});"
        f"out center {limit};"
    )


class OverpassClient:
    """HTTP client wrapper for the Overpass interpreter endpoints."""

    def __init__(
        self,
        endpoints: Optional[List[str]] = None,
        timeout: Optional[float] = None,
        retries_per_endpoint: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep=asyncio.sleep,
    ) -> None:
        self.endpoints = list(endpoints or settings.overpass_endpoints)
        self.timeout = timeout if timeout is not None else settings.overpass_timeout
        self.retries = retries_per_endpoint or settings.overpass_retries_per_endpoint
        self._transport = transport
        self._sleep = sleep

    async def query(self, ql: str) -> Dict:
        """
        Run an Overpass QL query, rotating endpoints with short pauses between attempts.

        Raises:
            httpx.HTTPError: When every endpoint and attempt failed.
        """
        last_error: Optional[Exception] = None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for url in self.endpoints:
                for attempt in range(self.retries):
                    try:
                        response = await client.post(
                            url,
                            content=ql.encode("utf-8"),
                            headers={"Content-Type": "text/plain;charset=UTF-8"},
                        )
                        response.raise_for_status()
                        return response.json()
                    except (httpx.HTTPError, ValueError) as exc:
                        last_error = exc
                        logger.debug(f"Overpass attempt {attempt + 1} on {url} failed: {exc}")
                        await self._sleep(RETRY_PAUSES[0] if attempt == 0 else RETRY_PAUSES[1])
        raise last_error or httpx.RequestError("Overpass unavailable")

    async def _run_category(self, ql: str, stats: AcquisitionStats) -> List[PointOfInterest]:
        payload = await self.query(ql)
        elements = payload.get("elements") if isinstance(payload, dict) else None
        if not isinstance(elements, list):
            elements = []
        parsed = normalize_elements(elements)
        stats.raw += len(elements)
        stats.parsed += len(parsed)
        return parsed

    async def fetch_pois_around(
        self,
        center: Coordinate,
        categories: Iterable[Category],
        radius_m: float = 1200,
        limit_per_category: int = 15,
        stats: Optional[AcquisitionStats] = None,
    ) -> List[PointOfInterest]:
        """
        Fetch POIs of the given categories around a center, one query per category.

        A failing category is logged and skipped.

        Raises:
            CandidateSourceError: If every category query failed.
        """
        stats = stats if stats is not None else AcquisitionStats()
        collected: List[PointOfInterest] = []
        categories = list(categories)
        failures = 0

        for category in categories:
            ql = build_around_query(category, center, radius_m, limit_per_category)
            try:
                collected.extend(await self._run_category(ql, stats))
            except (httpx.HTTPError, ValueError) as exc:
                failures += 1
                logger.warning(f"Overpass query for {category.value} failed, skipping: {exc}")

        if categories and failures == len(categories):
            raise CandidateSourceError(f"All {failures} category queries failed around {center.lat},{center.lon}")

        return _sorted_unique(collected)

    async def fetch_pois_in_city(
        self,
        center: Coordinate,
        categories: Iterable[Category],
        limit_per_category: int = 25,
        stats: Optional[AcquisitionStats] = None,
    ) -> List[PointOfInterest]:
        """
        Fetch POIs inside the administrative area (admin level 8 or 9) containing center.

        A category whose area query fails is retried as a 3 km around query.

        Raises:
            CandidateSourceError: If both queries failed for every category.
        """
        stats = stats if stats is not None else AcquisitionStats()
        collected: List[PointOfInterest] = []
        categories = list(categories)
        failures = 0

        for category in categories:
            try:
                collected.extend(
                    await self._run_category(build_city_query(category, center, limit_per_category), stats)
                )
                continue
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning(f"Overpass area query for {category.value} failed: {exc}")

            try:
                collected.extend(
                    await self.fetch_pois_around(
                        center, [category], CITY_FALLBACK_RADIUS_M, limit_per_category, stats
                    )
                )
            except CandidateSourceError:
                failures += 1

        if categories and failures == len(categories):
            raise CandidateSourceError(f"All {failures} area queries failed for {center.lat},{center.lon}")

        return _sorted_unique(collected)


def _sorted_unique(pois: List[PointOfInterest]) -> List[PointOfInterest]:
    return dedupe_pois(sorted(pois, key=lambda poi: poi.name))


# Global instance
overpass_client = OverpassClient()
