import asyncio
import random
from datetime import datetime

from outing_planner.models.places import Category, Coordinate, OpenStatus, PointOfInterest
from outing_planner.models.plans import (
    Companion,
    GenerationRequest,
    PoiStep,
    RouteMode,
    StartStep,
    TransportMode,
    WeatherSignal,
)
from outing_planner.planner import PlanGenerationEngine, default_center
from outing_planner.planner.diversifier import (
    LabeledDraft,
    PlanDraft,
    assemble_plan,
    diversify,
    sample_anchors,
)
from outing_planner.planner.itinerary import CostEstimate, Itinerary
from outing_planner.services.location import LocationResolver, PositionFix
from outing_planner.utils.distance import DistanceCache

BUCHAREST = Coordinate(lat=44.4268, lon=26.1025)
EVENING = datetime(2025, 6, 6, 19, 0)

SPOTS = [
    ("Control Club", Category.BAR, 44.4318, 26.0987),
    ("Beer O'Clock", Category.BAR, 44.4310, 26.1020),
    ("Gradina Eden", Category.BAR, 44.4425, 26.0960),
    ("Caru' cu Bere", Category.RESTAURANT, 44.4310, 26.0990),
    ("Hanu' lui Manuc", Category.RESTAURANT, 44.4303, 26.1010),
    ("Origo Coffee", Category.CAFE, 44.4360, 26.0990),
    ("Cafe Verona", Category.CAFE, 44.4440, 26.0990),
    ("Cinema Elvire Popesco", Category.CINEMA, 44.4450, 26.0950),
    ("Parcul Cismigiu", Category.PARK, 44.4370, 26.0910),
    ("Muzeul National de Arta", Category.MUSEUM, 44.4395, 26.0960),
]


def _pois():
    return [
        PointOfInterest(
            id=str(index),
            name=name,
            coord=Coordinate(lat=lat, lon=lon),
            category=category,
            open_status=OpenStatus.OPEN,
        )
        for index, (name, category, lat, lon) in enumerate(SPOTS)
    ]


class FakeSource:
    def __init__(self, pois=None, delay=0.0):
        self.pois = _pois() if pois is None else pois
        self.delay = delay
        self.calls = 0

    async def fetch_pois_around(self, center, categories, radius_m, limit_per_category, stats):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        stats.raw += len(self.pois)
        stats.parsed += len(self.pois)
        return list(self.pois)

    async def fetch_pois_in_city(self, center, categories, limit_per_category, stats):
        return []


class FakeWeather:
    def __init__(self, signal=None):
        self.signal = signal or WeatherSignal()
        self.centers = []

    async def get_weather_signal(self, center):
        self.centers.append(center)
        return self.signal


class FailingProvider:
    async def request_permission(self):
        return False

    async def get_position(self, high_accuracy):
        raise AssertionError("permission was denied")


def _engine(source=None, weather=None, location=None, seed=3):
    return PlanGenerationEngine(
        candidate_source=source or FakeSource(),
        weather=weather or FakeWeather(),
        location=location,
        distance_cache=DistanceCache(),
        rng=random.Random(seed),
        clock=lambda: EVENING,
    )


def test_friends_evening_walk_within_duration_and_budget():
    request = GenerationRequest(
        duration=120,
        transport="walk",
        with_who="friends",
        budget=200,
        center=BUCHAREST,
    )

    plans = asyncio.run(_engine().generate(request))

    assert plans
    assert len(plans) <= 3
    assert [plan.id for plan in plans] == ["A", "B", "C"][: len(plans)]
    for plan in plans:
        assert plan.min <= 120
        assert plan.cost is None or plan.cost <= 200
        assert plan.mode == RouteMode.FOOT
        assert isinstance(plan.steps[0], StartStep)
        assert plan.steps[0].coord == BUCHAREST
        assert len(plan.stops) == 1
        assert plan.route_segments == []


def test_zero_budget_never_shows_a_cost():
    request = GenerationRequest(duration=60, transport="car", budget=0, center=BUCHAREST)

    plans = asyncio.run(_engine().generate(request))

    for plan in plans:
        assert plan.cost is None or plan.cost == 0
        assert plan.mode == RouteMode.DRIVING


def test_same_seed_gives_same_plans():
    request = GenerationRequest(duration=240, transport="bike", with_who="partner", center=BUCHAREST)

    first = asyncio.run(_engine(seed=11).generate(request))
    second = asyncio.run(_engine(seed=11).generate(request))

    assert first == second


def test_no_candidates_means_no_plans():
    source = FakeSource(pois=[])
    request = GenerationRequest(duration=120, center=BUCHAREST)

    assert asyncio.run(_engine(source=source).generate(request)) == []
    assert source.calls == 4


def test_location_failure_uses_default_center():
    weather = FakeWeather()
    engine = _engine(weather=weather, location=LocationResolver(FailingProvider()))

    asyncio.run(engine.generate(GenerationRequest(duration=120)))

    assert weather.centers == [default_center()]


def test_resolved_location_is_used_without_explicit_center():
    class HereProvider:
        async def request_permission(self):
            return True

        async def get_position(self, high_accuracy):
            return PositionFix(latitude=44.4300, longitude=26.1000)

    engine = _engine(location=LocationResolver(HereProvider()))

    center = asyncio.run(engine.resolve_center(GenerationRequest(duration=120)))

    assert center == Coordinate(lat=44.43, lon=26.1)


def test_cancel_before_start_returns_nothing():
    source = FakeSource()

    async def run():
        event = asyncio.Event()
        event.set()
        return await _engine(source=source).generate(GenerationRequest(duration=120, center=BUCHAREST), event)

    assert asyncio.run(run()) == []
    assert source.calls == 0


def test_cancel_during_acquisition_abandons_work():
    source = FakeSource(delay=10)

    async def run():
        event = asyncio.Event()
        loop = asyncio.get_running_loop()
        loop.call_later(0.05, event.set)
        started = loop.time()
        plans = await _engine(source=source).generate(GenerationRequest(duration=120, center=BUCHAREST), event)
        return plans, loop.time() - started

    plans, elapsed = asyncio.run(run())

    assert plans == []
    assert elapsed < 5


def test_sample_anchors_without_replacement():
    pois = _pois()

    anchors = sample_anchors(pois, random.Random(1))

    assert len(anchors) == 5
    assert len(set((a.lat, a.lon) for a in anchors)) == 5
    assert sample_anchors(pois[:2], random.Random(1), n=5) == sample_anchors(pois[:2], random.Random(1), n=5)
    assert len(sample_anchors(pois[:2], random.Random(1))) == 2


def _draft():
    poi = _pois()[0]
    return PlanDraft(Itinerary((poi,), (6,)), CostEstimate(50, False))


def test_diversify_labels_by_emission_order():
    anchors = [Coordinate(lat=44.40 + i / 100, lon=26.1) for i in range(5)]
    succeeding = {anchors[1], anchors[2], anchors[4]}

    labeled = diversify(BUCHAREST, anchors, lambda anchor: _draft() if anchor in succeeding else None)

    assert [(item.plan_id, item.title) for item in labeled] == [("A", "Balanced"), ("B", "Social"), ("C", "Cultural")]
    assert [item.anchor for item in labeled] == [anchors[1], anchors[2], anchors[4]]


def test_diversify_stops_after_three_plans():
    tried = []

    def build(anchor):
        tried.append(anchor)
        return _draft()

    anchors = [Coordinate(lat=44.40 + i / 100, lon=26.1) for i in range(5)]
    assert len(diversify(BUCHAREST, anchors, build)) == 3
    assert len(tried) == 3


def test_diversify_falls_back_to_center():
    tried = []

    def build(anchor):
        tried.append(anchor)
        return _draft()

    labeled = diversify(BUCHAREST, [], build)

    assert tried == [BUCHAREST]
    assert labeled[0].anchor == BUCHAREST


def test_assemble_plan_fields():
    labeled = LabeledDraft("A", "Balanced", BUCHAREST, _draft())

    plan = assemble_plan(labeled, BUCHAREST, 120, TransportMode.PUBLIC, 40)

    assert plan.mode == RouteMode.FOOT
    assert plan.km == 0.5
    assert plan.min == 51
    assert plan.cost == 40
    assert [step.kind for step in plan.steps] == ["start", "poi"]
    assert isinstance(plan.steps[1], PoiStep)
    assert plan.steps[1].category == Category.BAR
    assert plan.stops[0].name == "Control Club"
    assert "routeSegments" in plan.model_dump(by_alias=True)


def test_assemble_plan_caps_minutes_at_duration():
    poi = _pois()[7]
    draft = PlanDraft(Itinerary((poi,), (10,)), CostEstimate(40, False))

    plan = assemble_plan(LabeledDraft("B", "Social", BUCHAREST, draft), BUCHAREST, 90, TransportMode.BIKE, None)

    assert plan.min == 90
    assert plan.km == 2.4
    assert plan.cost == 40
    assert plan.mode == RouteMode.BIKE


def test_generation_request_clamps_inputs():
    request = GenerationRequest(duration=5, budget=-10, with_who=Companion.SOLO)
    assert request.duration == 30
    assert request.budget == 0
    assert GenerationRequest(duration=10000).duration == 720
