"""
Itinerary construction for a single anchor.

Two pure phases: ``build_itinerary`` accumulates stops greedily, nearest
candidate per category, under the segment cap and the requested duration;
``trim_itinerary`` then drops trailing stops until travel fits the travel
share of the duration. ``enforce_budget`` applies the cost ceiling afterwards.
"""
import logging
import math
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

from outing_planner.models.places import Category, Coordinate, PointOfInterest
from outing_planner.models.plans import TransportMode

logger = logging.getLogger(__name__)

DistanceFn = Callable[[Coordinate, Coordinate], float]

# Longest single hop between consecutive stops (meters)
SEGMENT_CAP_M = {
    TransportMode.WALK: 2500,
    TransportMode.BIKE: 5000,
    TransportMode.PUBLIC: 12000,
    TransportMode.CAR: 20000,
}

# Average urban speed including stops and lights (m/s)
TRAVEL_SPEED_MPS = {
    TransportMode.WALK: 1.35,
    TransportMode.BIKE: 4.0,
    TransportMode.PUBLIC: 5.0,
    TransportMode.CAR: 5.0,
}

VISIT_MINUTES = {
    Category.CINEMA: 90,
    Category.MUSEUM: 35,
    Category.PARK: 30,
    Category.BAR: 45,
    Category.CAFE: 35,
    Category.RESTAURANT: 40,
}
DEFAULT_VISIT_MINUTES = 35

# Estimated spend per stop (lei); missing categories have unknown cost
STOP_COST = {
    Category.CINEMA: 40,
    Category.MUSEUM: 30,
    Category.BAR: 50,
    Category.CAFE: 40,
    Category.PARK: 0,
}


class Itinerary(NamedTuple):
    """Ordered stops; ``segment_minutes[i]`` is the hop into ``stops[i]``."""
    stops: Tuple[PointOfInterest, ...]
    segment_minutes: Tuple[int, ...]

    @property
    def travel_minutes(self) -> int:
        return sum(self.segment_minutes)

    @property
    def visit_minutes(self) -> int:
        return sum(visit_minutes(stop.category) for stop in self.stops)

    def truncated(self, length: int) -> "Itinerary":
        return Itinerary(self.stops[:length], self.segment_minutes[:length])


class CostEstimate(NamedTuple):
    total: float
    unknown: bool


def stops_for_duration(duration: int) -> int:
    """Target stop count, a step function of the duration."""
    if duration <= 120:
        return 1
    if duration <= 240:
        return 2
    if duration <= 360:
        return 3
    if duration <= 480:
        return 4
    if duration <= 600:
        return 5
    return 6


def travel_share(duration: int) -> float:
    return 0.35 if duration <= 150 else 0.30


def travel_budget_minutes(duration: int) -> int:
    return math.floor(duration * travel_share(duration))


def travel_minutes(meters: float, transport: TransportMode) -> int:
    return math.ceil(meters / (TRAVEL_SPEED_MPS[transport] * 60))


def visit_minutes(category: Category) -> int:
    return VISIT_MINUTES.get(category, DEFAULT_VISIT_MINUTES)


def stop_cost(category: Category) -> Optional[float]:
    return STOP_COST.get(category)


def within_segment_cap(meters: float, transport: TransportMode) -> bool:
    return meters <= SEGMENT_CAP_M[transport]


def build_itinerary(
    anchor: Coordinate,
    categories: Sequence[Category],
    candidates: Sequence[PointOfInterest],
    duration: int,
    transport: TransportMode,
    distance_km: DistanceFn,
) -> Optional[Itinerary]:
    """
    Greedily accumulate stops, one per category in order.

    For each category the nearest unused candidate to the current position is
    considered (ties keep the candidates' order). A hop over the segment cap
    skips the category; a stop that would overrun the duration ends
    accumulation. Returns None when no stop was accepted.
    """
    target = stops_for_duration(duration)
    stops: List[PointOfInterest] = []
    segments: List[int] = []
    used = set()
    travel = visit = 0

    for category in categories:
        position = stops[-1].coord if stops else anchor
        pool = [poi for poi in candidates if poi.category == category and poi.id not in used]
        if not pool:
            logger.debug(f"No candidate for {category.value}")
            continue

        candidate = min(pool, key=lambda poi: distance_km(position, poi.coord))
        meters = distance_km(position, candidate.coord) * 1000
        if not within_segment_cap(meters, transport):
            logger.debug(f"{candidate.name}: segment too long ({round(meters)}m)")
            continue

        segment = travel_minutes(meters, transport)
        stay = visit_minutes(candidate.category)
        if travel + segment + visit + stay > duration:
            logger.debug(f"{candidate.name}: would exceed {duration} min")
            break

        stops.append(candidate)
        segments.append(segment)
        used.add(candidate.id)
        travel += segment
        visit += stay
        if len(stops) >= target:
            break

    if not stops:
        return None
    return Itinerary(tuple(stops), tuple(segments))


def trim_itinerary(itinerary: Itinerary, duration: int) -> Optional[Itinerary]:
    """
    Drop trailing stops while travel exceeds the travel budget.

    At least one stop is kept. Returns None if no visit time is left.
    """
    budget = travel_budget_minutes(duration)
    length = len(itinerary.stops)
    while length > 1 and itinerary.truncated(length).travel_minutes > budget:
        length -= 1

    trimmed = itinerary.truncated(length)
    if length < len(itinerary.stops):
        logger.debug(f"Trimmed itinerary to {length} stops, travel {trimmed.travel_minutes}/{budget} min")
    if trimmed.visit_minutes <= 0:
        return None
    return trimmed


def estimate_cost(stops: Sequence[PointOfInterest]) -> CostEstimate:
    total = 0.0
    unknown = False
    for stop in stops:
        cost = stop_cost(stop.category)
        if cost is None:
            unknown = True
        else:
            total += cost
    return CostEstimate(total, unknown)


def enforce_budget(itinerary: Itinerary, budget: Optional[float]) -> Tuple[Itinerary, CostEstimate]:
    """
    Drop trailing stops while the known cost exceeds the budget.

    Removal is strictly from the end and keeps at least one stop. A budget of
    None is unbounded.
    """
    length = len(itinerary.stops)
    estimate = estimate_cost(itinerary.stops)
    if budget is not None:
        while length > 1 and estimate.total > budget:
            length -= 1
            estimate = estimate_cost(itinerary.stops[:length])
    return itinerary.truncated(length), estimate


def display_cost(estimate: CostEstimate, budget: Optional[float]) -> Optional[float]:
    """Cost shown on the plan: None when unknown, never above a finite budget."""
    if estimate.unknown:
        return None
    if budget is None:
        return estimate.total
    return min(estimate.total, budget)
