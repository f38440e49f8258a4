"""
Plan diversification: one itinerary per anchor, up to three labeled plans.
"""
import logging
import random
from typing import Callable, List, NamedTuple, Optional, Sequence

from outing_planner.models.places import Coordinate, PointOfInterest
from outing_planner.models.plans import (
    Plan,
    PlanStop,
    PoiStep,
    RouteMode,
    StartStep,
    TransportMode,
)
from outing_planner.planner.itinerary import CostEstimate, Itinerary, display_cost

logger = logging.getLogger(__name__)

MAX_ANCHORS = 5
MAX_PLANS = 3

# Labels and display themes, assigned by emission order
PLAN_LABELS = (
    ("A", "Balanced"),
    ("B", "Social"),
    ("C", "Cultural"),
)

ROUTE_MODES = {
    TransportMode.WALK: RouteMode.FOOT,
    TransportMode.PUBLIC: RouteMode.FOOT,
    TransportMode.BIKE: RouteMode.BIKE,
    TransportMode.CAR: RouteMode.DRIVING,
}

# Rough km covered per travel minute
KM_PER_TRAVEL_MINUTE = {
    RouteMode.FOOT: 0.08,
    RouteMode.BIKE: 0.24,
    RouteMode.DRIVING: 0.3,
}


class PlanDraft(NamedTuple):
    """A budget-checked itinerary waiting for its label."""
    itinerary: Itinerary
    cost: CostEstimate


class LabeledDraft(NamedTuple):
    plan_id: str
    title: str
    anchor: Coordinate
    draft: PlanDraft


def sample_anchors(
    candidates: Sequence[PointOfInterest],
    rng: random.Random,
    n: int = MAX_ANCHORS,
) -> List[Coordinate]:
    """Pick up to ``n`` distinct candidates as anchors, without replacement."""
    picks = rng.sample(list(candidates), min(n, len(candidates)))
    return [poi.coord for poi in picks]


def diversify(
    center: Coordinate,
    anchors: Sequence[Coordinate],
    build: Callable[[Coordinate], Optional[PlanDraft]],
) -> List[LabeledDraft]:
    """
    Build one draft per anchor, in order, keeping the first three that succeed.

    When fewer than five anchors were sampled the center is tried in their
    place, once.
    """
    attempts = list(anchors[:MAX_ANCHORS])
    if len(attempts) < MAX_ANCHORS:
        attempts.append(center)

    labeled: List[LabeledDraft] = []
    for index, anchor in enumerate(attempts):
        draft = build(anchor)
        if draft is None:
            logger.info(f"Anchor {index + 1}/{len(attempts)} produced no itinerary")
            continue

        plan_id, title = PLAN_LABELS[len(labeled)]
        labeled.append(LabeledDraft(plan_id, title, anchor, draft))
        if len(labeled) >= MAX_PLANS:
            break
    return labeled


def route_mode(transport: TransportMode) -> RouteMode:
    return ROUTE_MODES.get(transport, RouteMode.FOOT)


def assemble_plan(
    labeled: LabeledDraft,
    center: Coordinate,
    duration: int,
    transport: TransportMode,
    budget: Optional[float],
) -> Plan:
    """Turn a labeled draft into the immutable ``Plan`` returned to callers."""
    itinerary = labeled.draft.itinerary
    mode = route_mode(transport)
    travel = itinerary.travel_minutes

    steps = [StartStep(coord=center)]
    steps.extend(PoiStep(name=poi.name, coord=poi.coord, category=poi.category) for poi in itinerary.stops)

    return Plan(
        id=labeled.plan_id,
        title=labeled.title,
        steps=steps,
        mode=mode,
        stops=[PlanStop(name=poi.name, lat=poi.coord.lat, lon=poi.coord.lon) for poi in itinerary.stops],
        km=round(travel * KM_PER_TRAVEL_MINUTE[mode], 1),
        min=min(duration, travel + itinerary.visit_minutes),
        cost=display_cost(labeled.draft.cost, budget),
        route_segments=[],
    )
