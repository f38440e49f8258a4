"""Candidate acquisition with progressive radius relaxation."""
import logging
from typing import Iterable, List, NamedTuple, Protocol, Sequence

from outing_planner.models.places import (
    AcquisitionStats,
    Category,
    Coordinate,
    OpenStatus,
    PointOfInterest,
)
from outing_planner.planner.radius import SearchAttempt
from outing_planner.services.overpass import CandidateSourceError

logger = logging.getLogger(__name__)


class CandidateSource(Protocol):
    async def fetch_pois_around(
        self,
        center: Coordinate,
        categories: Iterable[Category],
        radius_m: float,
        limit_per_category: int,
        stats: AcquisitionStats,
    ) -> List[PointOfInterest]:
        ...

    async def fetch_pois_in_city(
        self,
        center: Coordinate,
        categories: Iterable[Category],
        limit_per_category: int,
        stats: AcquisitionStats,
    ) -> List[PointOfInterest]:
        ...


class CandidateSelection(NamedTuple):
    pois: List[PointOfInterest]
    attempt: SearchAttempt
    stats: AcquisitionStats


def filter_candidates(
    pois: Iterable[PointOfInterest],
    wanted: Sequence[Category],
    require_open: bool,
) -> List[PointOfInterest]:
    """Drop closed POIs when required, then keep only wanted categories."""
    wanted_set = set(wanted)
    if require_open:
        pois = [poi for poi in pois if poi.open_status != OpenStatus.CLOSED]
    return [poi for poi in pois if poi.category in wanted_set]


async def _query_attempt(
    source: CandidateSource,
    center: Coordinate,
    allowed: Sequence[Category],
    attempt: SearchAttempt,
    limit: int,
    stats: AcquisitionStats,
) -> List[PointOfInterest]:
    try:
        return await source.fetch_pois_around(center, allowed, attempt.radius_m, limit, stats)
    except CandidateSourceError as exc:
        logger.warning(f"Around query failed at {attempt.radius_m}m, trying city area: {exc}")

    try:
        return await source.fetch_pois_in_city(center, allowed, limit, stats)
    except CandidateSourceError as exc:
        logger.warning(f"City area query failed too: {exc}")
        return []


async def acquire_candidates(
    source: CandidateSource,
    center: Coordinate,
    allowed: Sequence[Category],
    wanted: Sequence[Category],
    attempts: Sequence[SearchAttempt],
    limit_per_category: int = 20,
) -> CandidateSelection:
    """
    Evaluate search attempts in order; the first non-empty filtered set wins.

    When every attempt comes back empty, the last (widest) attempt is
    returned with its empty result.
    """
    selection = None
    for attempt in attempts:
        stats = AcquisitionStats()
        pois = await _query_attempt(source, center, allowed, attempt, limit_per_category, stats)
        filtered = filter_candidates(pois, wanted, attempt.require_open)
        selection = CandidateSelection(filtered, attempt, stats)

        logger.info(
            f"Candidates at {attempt.radius_m}m (require_open={attempt.require_open}): "
            f"raw={stats.raw} parsed={stats.parsed} kept={len(filtered)}"
        )
        if filtered:
            break

    if selection is None:
        raise ValueError("At least one search attempt is required")
    return selection
