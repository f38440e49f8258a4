import asyncio
from datetime import datetime

import httpx
import pytest

from outing_planner.models.places import Coordinate
from outing_planner.services import transit_router
from outing_planner.services.transit_router import (
    TransitPlanError,
    TripPlannerClient,
    map_leg_mode,
    plan_transit_fallback,
    plan_transit_route,
)
from outing_planner.utils.distance import haversine_m
from outing_planner.utils.polyline import decode_polyline

UNIVERSITATE = Coordinate(lat=44.4355, lon=26.1025)
ROMANA = Coordinate(lat=44.4466, lon=26.0973)
PIPERA = Coordinate(lat=44.5060, lon=26.1370)

OTP_PLAN = {
    "plan": {
        "itineraries": [
            {
                "legs": [
                    {
                        "mode": "WALK",
                        "from": {"lat": 44.4355, "lon": 26.1025, "name": "Origin"},
                        "to": {"lat": 44.4360, "lon": 26.1010, "name": "Universitate"},
                        "duration": 240,
                        "distance": 300,
                        "legGeometry": {"points": "_p~iF~ps|U_ulLnnqC_mqNvxq`@"},
                    },
                    {
                        "mode": "SUBWAY",
                        "from": {"lat": 44.4360, "lon": 26.1010, "name": "Universitate"},
                        "to": {"lat": 44.4460, "lon": 26.0970, "name": "Piata Romana"},
                        "duration": 180,
                        "distance": 1400,
                        "routeShortName": "M2",
                    },
                ]
            }
        ]
    }
}


def _planner(handler):
    return TripPlannerClient("https://otp.example/", timeout=1.0, transport=httpx.MockTransport(handler))


def test_decode_polyline_reference_string():
    points = decode_polyline("_p~iF~ps|U_ulLnnqC_mqNvxq`@")

    assert [(p.lat, p.lon) for p in points] == [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]


def test_decode_polyline_rejects_truncated_input():
    with pytest.raises(ValueError):
        decode_polyline("_p~iF~ps|U_")


def test_leg_modes():
    assert map_leg_mode("BUS") == "bus"
    assert map_leg_mode("SUBWAY") == "metro"
    assert map_leg_mode("TRAM") == "metro"
    assert map_leg_mode("RAIL") == "metro"
    assert map_leg_mode("WALK") == "foot"
    assert map_leg_mode(None) == "foot"


def test_planner_maps_legs():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen.update(request.url.params)
        return httpx.Response(200, json=OTP_PLAN)

    legs = asyncio.run(_planner(handler).plan(UNIVERSITATE, ROMANA, datetime(2025, 6, 6, 18, 30), 800))

    assert seen["path"] == "/otp/routers/default/plan"
    assert seen["mode"] == "TRANSIT,WALK"
    assert seen["date"] == "2025-06-06"
    assert seen["time"] == "18:30"
    assert seen["maxWalkDistance"] == "800"
    assert [leg.kind for leg in legs] == ["foot", "metro"]
    assert len(legs[0].shape) == 3
    assert legs[1].route_name == "M2"
    assert legs[1].board_name == "Universitate"
    assert legs[1].alight_name == "Piata Romana"


def test_planner_error_payload_raises():
    handler = lambda request: httpx.Response(200, json={"error": {"msg": "PATH_NOT_FOUND"}})

    with pytest.raises(TransitPlanError):
        asyncio.run(_planner(handler).plan(UNIVERSITATE, ROMANA))


def test_planner_without_legs_raises():
    handler = lambda request: httpx.Response(200, json={"plan": {"itineraries": []}})

    with pytest.raises(TransitPlanError):
        asyncio.run(_planner(handler).plan(UNIVERSITATE, ROMANA))


def test_fallback_short_distance_is_a_walk():
    destination = Coordinate(lat=44.4380, lon=26.1025)

    result = plan_transit_fallback(UNIVERSITATE, destination)

    assert [leg.kind for leg in result.legs] == ["foot"]
    assert result.total_duration == round(haversine_m(UNIVERSITATE, destination) / 1.4)
    assert result.error is None


def test_fallback_medium_distance_takes_the_bus():
    result = plan_transit_fallback(UNIVERSITATE, ROMANA)
    distance = haversine_m(UNIVERSITATE, ROMANA)

    assert [leg.kind for leg in result.legs] == ["foot", "bus", "foot"]
    assert result.legs[0].distance == 200
    assert result.legs[1].distance == pytest.approx(distance - 400)
    assert result.legs[1].duration == round((distance - 400) / 1000 * 3600 / 15)
    assert result.total_distance == pytest.approx(distance)


def test_fallback_long_distance_takes_the_metro():
    result = plan_transit_fallback(UNIVERSITATE, PIPERA)

    assert result.legs[1].kind == "metro"
    assert result.legs[0].to == result.legs[1].from_
    assert result.legs[1].to == result.legs[2].from_
    assert result.legs[2].to == PIPERA


def test_route_prefers_trip_planner():
    planner = _planner(lambda request: httpx.Response(200, json=OTP_PLAN))

    result = asyncio.run(plan_transit_route(UNIVERSITATE, ROMANA, planner=planner))

    assert [leg.kind for leg in result.legs] == ["foot", "metro"]
    assert result.total_duration == 420
    assert result.total_distance == 1700


def test_route_falls_back_when_trip_planner_fails():
    planner = _planner(lambda request: httpx.Response(503))

    result = asyncio.run(plan_transit_route(UNIVERSITATE, ROMANA, planner=planner))

    assert [leg.kind for leg in result.legs] == ["foot", "bus", "foot"]


def test_route_without_configured_planner_uses_fallback(monkeypatch):
    monkeypatch.setattr(transit_router.settings, "otp_base_url", None)

    result = asyncio.run(plan_transit_route(UNIVERSITATE, PIPERA))

    assert [leg.kind for leg in result.legs] == ["foot", "metro", "foot"]
    assert result.model_dump(by_alias=True)["totalDuration"] == result.total_duration


def _with_first_leg(**changes):
    legs = [dict(leg) for leg in OTP_PLAN["plan"]["itineraries"][0]["legs"]]
    legs[0].update(changes)
    return {"plan": {"itineraries": [{"legs": legs}]}}


def test_planner_drops_geometry_that_is_not_an_object():
    planner = _planner(lambda request: httpx.Response(200, json=_with_first_leg(legGeometry="abc")))

    legs = asyncio.run(planner.plan(UNIVERSITATE, ROMANA))

    assert legs[0].shape is None


@pytest.mark.parametrize(
    "payload",
    [
        _with_first_leg(duration="n/a"),
        _with_first_leg(distance={"meters": 300}),
        _with_first_leg(**{"from": "Origin"}),
        {"plan": {"itineraries": [{"legs": ["WALK"]}]}},
        {"plan": ["not", "an", "object"]},
    ],
)
def test_route_falls_back_on_malformed_planner_payload(payload):
    planner = _planner(lambda request: httpx.Response(200, json=payload))

    result = asyncio.run(plan_transit_route(UNIVERSITATE, ROMANA, planner=planner))

    assert [leg.kind for leg in result.legs] == ["foot", "bus", "foot"]
    assert result.error is None
