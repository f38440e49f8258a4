import asyncio

import pytest

from outing_planner.services.location import (
    LocationError,
    LocationErrorCode,
    LocationResolver,
    PositionFix,
    classify_error,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class ScriptedProvider:
    """Returns or raises the scripted outcomes in order, recording accuracy requests."""

    def __init__(self, *outcomes, permission=True, delay=0.0):
        self.outcomes = list(outcomes)
        self.permission = permission
        self.delay = delay
        self.requests = []

    async def request_permission(self):
        return self.permission

    async def get_position(self, high_accuracy):
        self.requests.append(high_accuracy)
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _fix(lat=44.43, lon=26.10):
    return PositionFix(latitude=lat, longitude=lon, accuracy=15.0)


def test_fix_is_cached_for_five_minutes():
    clock = FakeClock()
    provider = ScriptedProvider(_fix(), _fix(lat=45.0))
    resolver = LocationResolver(provider, clock=clock)

    first = asyncio.run(resolver.get_current_location())
    clock.now += 299
    second = asyncio.run(resolver.get_current_location())
    clock.now += 2
    third = asyncio.run(resolver.get_current_location())

    assert first.timestamp == 1000.0
    assert second == first
    assert third.latitude == 45.0
    assert len(provider.requests) == 2


def test_cache_can_be_bypassed():
    provider = ScriptedProvider(_fix(), _fix(lat=45.0))
    resolver = LocationResolver(provider, clock=FakeClock())

    asyncio.run(resolver.get_current_location())
    fix = asyncio.run(resolver.get_current_location(use_cache=False))

    assert fix.latitude == 45.0


def test_clearing_the_cache_forces_a_new_fix():
    provider = ScriptedProvider(_fix(), _fix(lat=45.0))
    resolver = LocationResolver(provider, clock=FakeClock())
    assert resolver.cached_location() is None

    first = asyncio.run(resolver.get_current_location())
    assert resolver.cached_location() == first

    resolver.clear_cache()
    assert resolver.cached_location() is None
    assert asyncio.run(resolver.get_current_location()).latitude == 45.0


def test_failure_falls_back_to_last_fix_of_any_age():
    clock = FakeClock()
    provider = ScriptedProvider(_fix(), RuntimeError("Location unavailable"))
    resolver = LocationResolver(provider, clock=clock)

    first = asyncio.run(resolver.get_current_location())
    clock.now += 3600
    fallback = asyncio.run(resolver.get_current_location())

    assert fallback == first
    assert provider.requests == [True, True]


def test_failure_retries_with_reduced_accuracy():
    provider = ScriptedProvider(RuntimeError("GPS unavailable"), _fix(lat=44.5))
    resolver = LocationResolver(provider, clock=FakeClock())

    fix = asyncio.run(resolver.get_current_location())

    assert fix.latitude == 44.5
    assert provider.requests == [True, False]


def test_permission_denied_is_surfaced():
    provider = ScriptedProvider(permission=False)
    resolver = LocationResolver(provider, clock=FakeClock())

    with pytest.raises(LocationError) as excinfo:
        asyncio.run(resolver.get_current_location(high_accuracy=False))

    assert excinfo.value.code == LocationErrorCode.PERMISSION_DENIED
    assert provider.requests == []


def test_timeout_is_classified():
    provider = ScriptedProvider(_fix(), _fix(), delay=0.2)
    resolver = LocationResolver(provider, clock=FakeClock())

    with pytest.raises(LocationError) as excinfo:
        asyncio.run(resolver.get_current_location(timeout=0.05))

    assert excinfo.value.code == LocationErrorCode.TIMEOUT
    assert provider.requests == [True, False]


def test_concurrent_callers_share_one_resolution():
    provider = ScriptedProvider(_fix(), _fix(lat=45.0), delay=0.05)
    resolver = LocationResolver(provider, clock=FakeClock())

    async def run():
        return await asyncio.gather(resolver.get_current_location(), resolver.get_current_location())

    first, second = asyncio.run(run())

    assert first == second
    assert len(provider.requests) == 1


def test_classify_error_messages():
    assert classify_error(RuntimeError("User denied access")).code == LocationErrorCode.PERMISSION_DENIED
    assert classify_error(asyncio.TimeoutError()).code == LocationErrorCode.TIMEOUT
    assert classify_error(RuntimeError("Location services disabled")).code == LocationErrorCode.LOCATION_UNAVAILABLE
    assert classify_error(RuntimeError("boom")).code == LocationErrorCode.UNKNOWN
