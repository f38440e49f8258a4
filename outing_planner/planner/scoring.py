"""
POI scoring.

A POI's desirability is a weighted sum of six sub-scores, each in [0, 1]:
distance, open status, category match, weather suitability, time of day
and accessibility.
"""
from typing import Callable, Iterable, List, NamedTuple, Optional

from outing_planner.models.places import Category, Coordinate, OpenStatus, PointOfInterest
from outing_planner.models.plans import ActivityStyle, Companion, UserPreferences, WeatherSignal


class ScoringWeights(NamedTuple):
    """Sub-score weights. They are expected to sum to 1.0."""
    distance: float = 0.30
    open_status: float = 0.20
    category_match: float = 0.25
    weather_suitability: float = 0.15
    time_of_day_match: float = 0.05
    accessibility_match: float = 0.05


DEFAULT_WEIGHTS = ScoringWeights()


class ScoringContext(NamedTuple):
    companion: Companion
    preferences: Optional[UserPreferences]
    weather: WeatherSignal
    hour: int
    max_distance_km: float


OPEN_STATUS_SCORES = {
    OpenStatus.OPEN: 1.0,
    OpenStatus.CLOSED: 0.1,
    OpenStatus.UNKNOWN: 0.5,
}

COMPANION_FAVOURITES = {
    Companion.FAMILY: {Category.ZOO, Category.AQUARIUM, Category.MUSEUM, Category.PARK},
    Companion.FRIENDS: {
        Category.BAR,
        Category.PUB,
        Category.RESTAURANT,
        Category.CINEMA,
        Category.ARCADE,
        Category.BOWLING_ALLEY,
    },
    Companion.PARTNER: {Category.CAFE, Category.RESTAURANT, Category.GALLERY, Category.CINEMA},
}
PET_FRIENDLY = {Category.PARK, Category.ATTRACTION}

ACTIVITY_FAVOURITES = {
    ActivityStyle.ACTIVE: {
        Category.SPORTS_CENTRE,
        Category.FITNESS_CENTRE,
        Category.CLIMBING_INDOOR,
        Category.SWIMMING_POOL,
    },
    ActivityStyle.RELAXED: {
        Category.CAFE,
        Category.MUSEUM,
        Category.GALLERY,
        Category.LIBRARY,
        Category.SPA,
    },
}

INDOOR = {
    Category.MUSEUM,
    Category.GALLERY,
    Category.LIBRARY,
    Category.CINEMA,
    Category.CAFE,
    Category.RESTAURANT,
    Category.BAR,
    Category.PUB,
    Category.FITNESS_CENTRE,
    Category.SPA,
    Category.BOWLING_ALLEY,
    Category.ARCADE,
    Category.ESCAPE_GAME,
    Category.AQUARIUM,
}
OUTDOOR = {Category.PARK, Category.ZOO, Category.ATTRACTION}
HEAT_RELIEF = {Category.SWIMMING_POOL, Category.AQUARIUM}
WIND_EXPOSED = {Category.PARK, Category.ATTRACTION}

MORNING = {Category.CAFE, Category.FITNESS_CENTRE, Category.PARK}
AFTERNOON = {Category.MUSEUM, Category.GALLERY, Category.RESTAURANT}
EVENING = {Category.BAR, Category.PUB, Category.RESTAURANT, Category.CINEMA}
LATE_NIGHT_OPEN = {Category.BAR, Category.PUB}

MORE_ACCESSIBLE = {Category.MUSEUM, Category.GALLERY, Category.LIBRARY, Category.CINEMA}
LESS_ACCESSIBLE = {Category.CLIMBING_INDOOR, Category.ESCAPE_GAME}


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def distance_score(distance_km: float, max_distance_km: float) -> float:
    if max_distance_km <= 0:
        return 0.0
    return _clamp(1 - distance_km / max_distance_km)


def open_status_score(poi: PointOfInterest) -> float:
    return OPEN_STATUS_SCORES.get(poi.open_status, 0.5)


def category_match_score(poi: PointOfInterest, companion: Companion, preferences: Optional[UserPreferences]) -> float:
    score = 0.5
    if companion == Companion.PET:
        score += 0.3 if poi.category in PET_FRIENDLY else -0.1
    elif poi.category in COMPANION_FAVOURITES.get(companion, ()):
        score += 0.4

    if preferences is not None and preferences.activity is not None:
        if poi.category in ACTIVITY_FAVOURITES[preferences.activity]:
            score += 0.3
    return _clamp(score)


def weather_suitability_score(poi: PointOfInterest, weather: WeatherSignal) -> float:
    category = poi.category
    indoor = category in INDOOR
    outdoor = category in OUTDOOR
    score = 0.5

    if weather.rain_soon:
        if indoor:
            score += 0.3
        elif outdoor:
            score -= 0.4

    if weather.hot:
        if indoor:
            score += 0.2
        elif outdoor:
            score -= 0.3
        if category in HEAT_RELIEF:
            score += 0.4

    if weather.wind_strong and category in WIND_EXPOSED:
        score -= 0.2
    return _clamp(score)


def time_of_day_score(poi: PointOfInterest, hour: int) -> float:
    category = poi.category
    score = 0.5
    if 7 <= hour < 11:
        if category in MORNING:
            score += 0.3
    elif 11 <= hour < 17:
        if category in AFTERNOON:
            score += 0.3
    elif 17 <= hour < 24:
        if category in EVENING:
            score += 0.3
    elif category not in LATE_NIGHT_OPEN:
        score -= 0.4
    return _clamp(score)


def accessibility_score(poi: PointOfInterest, preferences: Optional[UserPreferences]) -> float:
    score = 0.5
    if preferences is not None and preferences.disabilities.any():
        if poi.category in MORE_ACCESSIBLE:
            score += 0.2
        elif poi.category in LESS_ACCESSIBLE:
            score -= 0.3
    return _clamp(score)


def score_poi(
    poi: PointOfInterest,
    distance_km: float,
    context: ScoringContext,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Weighted desirability of a POI; higher is better."""
    return (
        distance_score(distance_km, context.max_distance_km) * weights.distance
        + open_status_score(poi) * weights.open_status
        + category_match_score(poi, context.companion, context.preferences) * weights.category_match
        + weather_suitability_score(poi, context.weather) * weights.weather_suitability
        + time_of_day_score(poi, context.hour) * weights.time_of_day_match
        + accessibility_score(poi, context.preferences) * weights.accessibility_match
    )


def tie_breaker(poi: PointOfInterest) -> str:
    """Stable secondary sort key for equal scores."""
    return f"{poi.name or 'unnamed'}_{poi.coord.lat:.6f}_{poi.coord.lon:.6f}"


def rank_pois(
    pois: Iterable[PointOfInterest],
    center: Coordinate,
    context: ScoringContext,
    distance: Callable[[Coordinate, Coordinate], float],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[PointOfInterest]:
    """Sort POIs by descending score, ties broken by name and coordinates."""
    scored = [(score_poi(poi, distance(center, poi.coord), context, weights), poi) for poi in pois]
    scored.sort(key=lambda item: (-item[0], tie_breaker(item[1])))
    return [poi for _, poi in scored]
