"""Category allow-lists: what to fetch and which categories fill stops, in order."""
from typing import List, Sequence

from outing_planner.models.places import Category
from outing_planner.models.plans import ActivityStyle, Companion, GenerationRequest, WeatherSignal
from outing_planner.planner.scoring import LESS_ACCESSIBLE

# Everything the candidate source is asked for
FETCH_CATEGORIES: List[Category] = list(Category)

DEFAULT_SEQUENCE = [
    Category.CAFE,
    Category.RESTAURANT,
    Category.BAR,
    Category.PARK,
    Category.CINEMA,
]

COMPANION_SEQUENCES = {
    Companion.SOLO: DEFAULT_SEQUENCE,
    Companion.FRIENDS: [
        Category.BAR,
        Category.RESTAURANT,
        Category.CAFE,
        Category.CINEMA,
        Category.PARK,
    ],
    Companion.FAMILY: [
        Category.PARK,
        Category.MUSEUM,
        Category.CAFE,
        Category.RESTAURANT,
        Category.ZOO,
    ],
    Companion.PARTNER: [
        Category.CAFE,
        Category.RESTAURANT,
        Category.GALLERY,
        Category.CINEMA,
        Category.BAR,
    ],
    Companion.PET: [
        Category.PARK,
        Category.CAFE,
        Category.ATTRACTION,
    ],
}

ACTIVITY_EXTRAS = {
    ActivityStyle.ACTIVE: Category.SPORTS_CENTRE,
    ActivityStyle.RELAXED: Category.MUSEUM,
}

OUTDOOR_FIRST_IN_RAIN = Category.PARK


def needs_accessibility(request: GenerationRequest) -> bool:
    prefs = request.user_prefs
    if prefs is not None and prefs.disabilities.any():
        return True
    details = request.companion
    if request.with_who == Companion.FRIENDS and details.friends_disabilities:
        return True
    return request.with_who == Companion.FAMILY and details.family_disabilities


def wanted_categories(request: GenerationRequest) -> List[Category]:
    """Ordered categories the itinerary builder tries to fill stops from."""
    categories = list(COMPANION_SEQUENCES.get(request.with_who, DEFAULT_SEQUENCE))

    prefs = request.user_prefs
    if prefs is not None and prefs.activity is not None:
        extra = ACTIVITY_EXTRAS[prefs.activity]
        if extra not in categories:
            categories.append(extra)

    if needs_accessibility(request):
        categories = [category for category in categories if category not in LESS_ACCESSIBLE]
    return categories


def weather_ordered(categories: Sequence[Category], weather: WeatherSignal) -> List[Category]:
    """Move the park to the front when rain is imminent, so it is visited first and kept short."""
    ordered = list(categories)
    if weather.rain_soon and OUTDOOR_FIRST_IN_RAIN in ordered:
        ordered.remove(OUTDOOR_FIRST_IN_RAIN)
        ordered.insert(0, OUTDOOR_FIRST_IN_RAIN)
    return ordered
