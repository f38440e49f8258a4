"""
Transit routing: OpenTripPlanner first, heuristic walk/transit/walk synthesis otherwise.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from outing_planner.config import settings
from outing_planner.models.places import Coordinate
from outing_planner.models.transit import TransitLeg, TransitLegKind, TransitRouteResult
from outing_planner.utils.distance import haversine_m
from outing_planner.utils.polyline import decode_polyline

logger = logging.getLogger(__name__)

WALK_SPEED_MPS = 1.4
WALK_ONLY_BELOW_M = 500
ACCESS_WALK_M = 200
METRO_ABOVE_M = 5000
METRO_SPEED_KMH = 25
BUS_SPEED_KMH = 15
STOP_FRACTION_TOWARD_MIDPOINT = 0.3

METRO_MODES = {"SUBWAY", "TRAM", "RAIL"}


class TransitPlanError(Exception):
    """The trip planner did not produce a usable itinerary."""


def map_leg_mode(mode: Any) -> TransitLegKind:
    value = str(mode or "").upper()
    if value == "BUS":
        return "bus"
    if value in METRO_MODES:
        return "metro"
    return "foot"


def _place(raw: Any) -> Coordinate:
    if not isinstance(raw, dict):
        raise TransitPlanError(f"Leg endpoint is not an object: {raw!r}")
    try:
        return Coordinate(lat=raw["lat"], lon=raw["lon"])
    except (KeyError, TypeError, ValueError) as exc:
        raise TransitPlanError(f"Leg endpoint without coordinates: {raw}") from exc


def parse_leg(leg: Dict[str, Any]) -> TransitLeg:
    """Map one OTP leg onto a TransitLeg. Undecodable geometry is dropped."""
    if not isinstance(leg, dict):
        raise TransitPlanError(f"Leg is not an object: {leg!r}")

    shape = None
    geometry = leg.get("legGeometry")
    points = geometry.get("points") if isinstance(geometry, dict) else None
    if isinstance(points, str) and points:
        try:
            shape = decode_polyline(points)
        except ValueError as exc:
            logger.debug(f"Ignoring undecodable leg geometry: {exc}")

    origin = leg.get("from")
    destination = leg.get("to")
    return TransitLeg(
        kind=map_leg_mode(leg.get("mode")),
        from_=_place(origin),
        to=_place(destination),
        shape=shape,
        board_name=origin.get("name"),
        alight_name=destination.get("name"),
        duration=leg.get("duration"),
        distance=leg.get("distance"),
        route_name=leg.get("routeShortName") or leg.get("route") or None,
    )


class TripPlannerClient:
    """HTTP client for an OpenTripPlanner instance."""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.otp_timeout
        self._transport = transport

    async def plan(
        self,
        origin: Coordinate,
        destination: Coordinate,
        when: Optional[datetime] = None,
        max_walk_meters: int = 1000,
    ) -> List[TransitLeg]:
        """
        Plan a transit+walk itinerary.

        Raises:
            TransitPlanError: On HTTP failure, a planner error, or no legs.
        """
        when = when or datetime.now()
        params = {
            "fromPlace": f"{origin.lat},{origin.lon}",
            "toPlace": f"{destination.lat},{destination.lon}",
            "mode": "TRANSIT,WALK",
            "date": when.strftime("%Y-%m-%d"),
            "time": when.strftime("%H:%M"),
            "numItineraries": 1,
            "maxWalkDistance": max_walk_meters,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    f"{self.base_url}/otp/routers/default/plan",
                    params=params,
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TransitPlanError(f"Trip planner request failed: {exc}") from exc

        if not isinstance(data, dict):
            raise TransitPlanError("Unexpected trip planner payload")
        if data.get("error"):
            error = data["error"]
            message = error.get("msg") if isinstance(error, dict) else error
            raise TransitPlanError(f"Trip planner error: {message or 'Unknown error'}")

        plan = data.get("plan")
        itineraries = (plan.get("itineraries") if isinstance(plan, dict) else None) or []
        legs = itineraries[0].get("legs") if itineraries and isinstance(itineraries[0], dict) else None
        if not isinstance(legs, list) or not legs:
            raise TransitPlanError("Trip planner returned no itinerary legs")

        try:
            return [parse_leg(leg) for leg in legs]
        except (AttributeError, TypeError, ValueError) as exc:
            raise TransitPlanError(f"Malformed trip planner leg: {exc}") from exc


def _toward(start: Coordinate, target: Coordinate, fraction: float) -> Coordinate:
    return Coordinate(
        lat=start.lat + (target.lat - start.lat) * fraction,
        lon=start.lon + (target.lon - start.lon) * fraction,
    )


def plan_transit_fallback(origin: Coordinate, destination: Coordinate) -> TransitRouteResult:
    """
    Synthesize a walk, transit, walk itinerary from constant speeds.

    Below 500 m the route is a single walk. Otherwise two 200 m walks bracket
    a metro ride (beyond 5 km, 25 km/h) or a bus ride (15 km/h). Boarding and
    alighting points sit 30% of the way from each end toward the midpoint.
    Never raises; unexpected failures are reported through ``error``.
    """
    result = TransitRouteResult()
    try:
        distance = haversine_m(origin, destination)

        if distance < WALK_ONLY_BELOW_M:
            duration = round(distance / WALK_SPEED_MPS)
            result.legs = [
                TransitLeg(kind="foot", from_=origin, to=destination, duration=duration, distance=distance)
            ]
            result.total_duration = duration
            result.total_distance = distance
            return result

        midpoint = Coordinate(lat=(origin.lat + destination.lat) / 2, lon=(origin.lon + destination.lon) / 2)
        boarding = _toward(origin, midpoint, STOP_FRACTION_TOWARD_MIDPOINT)
        alighting = _toward(destination, midpoint, STOP_FRACTION_TOWARD_MIDPOINT)

        is_metro = distance > METRO_ABOVE_M
        speed_kmh = METRO_SPEED_KMH if is_metro else BUS_SPEED_KMH
        transit_distance = distance - 2 * ACCESS_WALK_M
        transit_duration = round((transit_distance / 1000) * 3600 / speed_kmh)
        walk_duration = round(ACCESS_WALK_M / WALK_SPEED_MPS)

        result.legs = [
            TransitLeg(
                kind="foot",
                from_=origin,
                to=boarding,
                duration=walk_duration,
                distance=ACCESS_WALK_M,
                alight_name="Transit Stop",
            ),
            TransitLeg(
                kind="metro" if is_metro else "bus",
                from_=boarding,
                to=alighting,
                duration=transit_duration,
                distance=transit_distance,
                board_name="Transit Stop",
                alight_name="Transit Stop",
                route_name="Metro Line" if is_metro else "Bus Route",
            ),
            TransitLeg(
                kind="foot",
                from_=alighting,
                to=destination,
                duration=walk_duration,
                distance=ACCESS_WALK_M,
                board_name="Transit Stop",
            ),
        ]
        result.total_duration = 2 * walk_duration + transit_duration
        result.total_distance = distance
        logger.info(f"Generated fallback transit route with {len(result.legs)} legs over {round(distance)}m")
    except Exception as exc:
        logger.error(f"Fallback transit routing failed: {exc}")
        result.error = f"Fallback routing error: {exc}"
    return result


async def plan_transit_route(
    origin: Coordinate,
    destination: Coordinate,
    when: Optional[datetime] = None,
    max_walk_meters: int = 1000,
    planner: Optional[TripPlannerClient] = None,
) -> TransitRouteResult:
    """
    Plan a transit route, preferring the live trip planner.

    The planner is used when one is passed or ``otp_base_url`` is configured;
    any planner failure falls through to the heuristic synthesis.
    """
    if planner is None and settings.otp_base_url:
        planner = TripPlannerClient(settings.otp_base_url)

    if planner is not None:
        try:
            legs = await planner.plan(origin, destination, when, max_walk_meters)
            return TransitRouteResult(
                legs=legs,
                total_duration=sum(leg.duration or 0 for leg in legs),
                total_distance=sum(leg.distance or 0 for leg in legs),
            )
        except TransitPlanError as exc:
            logger.warning(f"Trip planner unavailable, using heuristic route: {exc}")

    return plan_transit_fallback(origin, destination)
