"""Search radius derivation and the ordered radius relaxation attempts."""
from typing import NamedTuple, Tuple

from outing_planner.models.plans import TransportMode

# Speed class per transport mode (km/h)
SPEED_KMH = {
    TransportMode.WALK: 4.5,
    TransportMode.BIKE: 15.0,
    TransportMode.PUBLIC: 20.0,
    TransportMode.CAR: 35.0,
}

# [min, max] search radius per mode (km)
RADIUS_BOUNDS_KM = {
    TransportMode.WALK: (1.0, 5.0),
    TransportMode.BIKE: (1.0, 12.0),
    TransportMode.PUBLIC: (1.0, 20.0),
    TransportMode.CAR: (1.0, 20.0),
}

# Half of the round trip, with margin
REACH_FACTOR = 0.6
MIN_DURATION_MINUTES = 15
OUTER_CAP_M = 12000


class SearchAttempt(NamedTuple):
    radius_m: int
    require_open: bool


def search_radius_km(duration_minutes: int, transport: TransportMode) -> float:
    """Base search radius: grows with duration and speed, clamped per mode."""
    speed = SPEED_KMH.get(transport, SPEED_KMH[TransportMode.WALK])
    hours = max(duration_minutes, MIN_DURATION_MINUTES) / 60
    low, high = RADIUS_BOUNDS_KM.get(transport, RADIUS_BOUNDS_KM[TransportMode.WALK])
    return max(low, min(speed * hours * REACH_FACTOR, high))


def search_radius_m(duration_minutes: int, transport: TransportMode) -> int:
    return round(search_radius_km(duration_minutes, transport) * 1000)


def relaxation_attempts(base_radius_m: int, outer_cap_m: int = OUTER_CAP_M) -> Tuple[SearchAttempt, ...]:
    """
    Ordered search configurations, evaluated left to right.

    The first two attempts require POIs not known to be closed; the wider two
    accept any open status.
    """
    return (
        SearchAttempt(base_radius_m, True),
        SearchAttempt(round(base_radius_m * 1.5), True),
        SearchAttempt(base_radius_m * 2, False),
        SearchAttempt(outer_cap_m, False),
    )
