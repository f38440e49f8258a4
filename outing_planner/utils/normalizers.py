"""
Data normalizers for raw OpenStreetMap elements.

These normalizers turn Overpass API elements into PointOfInterest models so
the rest of the planner never touches raw tag maps. Elements that cannot be
used (no coordinate, placeholder name, generic land use, unknown category)
are dropped here.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

from outing_planner.models.places import (
    Category,
    Coordinate,
    OpenStatus,
    PointOfInterest,
)

MIN_NAME_LENGTH = 3

EXCLUDED_LANDUSE = {
    "cemetery",
    "grass",
    "meadow",
    "greenfield",
    "construction",
    "industrial",
    "farmland",
}

# Evaluated in order, first match wins
CATEGORY_TAG_RULES = [
    ("amenity", "cafe", Category.CAFE),
    ("amenity", "restaurant", Category.RESTAURANT),
    ("amenity", "fast_food", Category.FAST_FOOD),
    ("amenity", "tearoom", Category.TEA_ROOM),
    ("amenity", "tea_room", Category.TEA_ROOM),
    ("amenity", "bar", Category.BAR),
    ("amenity", "pub", Category.PUB),
    ("amenity", "cinema", Category.CINEMA),
    ("amenity", "library", Category.LIBRARY),
    ("amenity", "karaoke", Category.KARAOKE),
    ("amenity", "spa", Category.SPA),
    ("leisure", "fitness_centre", Category.FITNESS_CENTRE),
    ("leisure", "sports_centre", Category.SPORTS_CENTRE),
    ("leisure", "bowling_alley", Category.BOWLING_ALLEY),
    ("leisure", "escape_game", Category.ESCAPE_GAME),
    ("leisure", "swimming_pool", Category.SWIMMING_POOL),
    ("leisure", "climbing", Category.CLIMBING_INDOOR),
    ("sport", "climbing", Category.CLIMBING_INDOOR),
    ("leisure", "amusement_arcade", Category.ARCADE),
    ("amenity", "arcade", Category.ARCADE),
    ("leisure", "spa", Category.SPA),
    ("tourism", "museum", Category.MUSEUM),
    ("tourism", "gallery", Category.GALLERY),
    ("tourism", "zoo", Category.ZOO),
    ("tourism", "aquarium", Category.AQUARIUM),
    ("tourism", "attraction", Category.ATTRACTION),
    ("leisure", "park", Category.PARK),
]

_HOURS_PATTERN = re.compile(r"^(?:Mo-Su\s+)?(\d{1,2}):(\d{2})-(\d{1,2}):(\d{2})$")
_UNNAMED_PATTERN = re.compile(r"^unnamed", re.IGNORECASE)


def is_valid_name(name: Any) -> bool:
    """A usable display name: a string of at least 3 characters, not a placeholder."""
    if not isinstance(name, str):
        return False
    trimmed = name.strip()
    if len(trimmed) < MIN_NAME_LENGTH:
        return False
    return not _UNNAMED_PATTERN.match(trimmed)


def is_excluded_generic(tags: Dict[str, Any]) -> bool:
    if tags.get("landuse") in EXCLUDED_LANDUSE:
        return True
    return tags.get("amenity") == "grave_yard"


def category_from_tags(tags: Dict[str, Any]) -> Optional[Category]:
    for key, value, category in CATEGORY_TAG_RULES:
        if tags.get(key) == value:
            return category
    return None


def parse_opening_hours(expression: Optional[str], now: Optional[datetime] = None) -> OpenStatus:
    """
    Evaluate a simple opening-hours expression against local time.

    Understands ``24/7`` and a single daily window such as ``Mo-Su 08:00-22:00``
    or ``09:00-21:00``. Windows ending before they start wrap past midnight.
    Everything else is ``unknown``.
    """
    if not expression or not isinstance(expression, str):
        return OpenStatus.UNKNOWN

    text = expression.strip()
    if text == "24/7":
        return OpenStatus.OPEN

    match = _HOURS_PATTERN.match(text)
    if not match:
        return OpenStatus.UNKNOWN

    now = now or datetime.now()
    sh, sm, eh, em = (int(part) for part in match.groups())
    minutes = now.hour * 60 + now.minute
    start = sh * 60 + sm
    end = eh * 60 + em

    if end > start:
        is_open = start <= minutes <= end
    else:
        is_open = minutes >= start or minutes <= end
    return OpenStatus.OPEN if is_open else OpenStatus.CLOSED


def _extract_image_url(tags: Dict[str, Any]) -> Optional[str]:
    tag_image = tags.get("image") or tags.get("image:0")
    if isinstance(tag_image, str) and re.match(r"^https?://", tag_image, re.IGNORECASE):
        return tag_image

    commons = tags.get("wikimedia_commons")
    if isinstance(commons, str) and commons:
        title = quote(re.sub(r"^File:", "", commons, flags=re.IGNORECASE), safe="")
        return f"https://commons.wikimedia.org/wiki/Special:FilePath/{title}"
    return None


def _extract_address(tags: Dict[str, Any]) -> Optional[str]:
    street = tags.get("addr:street")
    if not street:
        return None
    return f"{street} {tags.get('addr:housenumber') or ''}".strip()


def normalize_element(element: Dict[str, Any], now: Optional[datetime] = None) -> Optional[PointOfInterest]:
    """
    Normalize a single Overpass element into a PointOfInterest.

    Nodes carry ``lat``/``lon`` directly; ways and relations are requested with
    ``out center`` and carry a ``center`` object instead.

    Returns:
        The PointOfInterest, or None when the element is not usable.
    """
    if not isinstance(element, dict):
        return None

    if element.get("type") == "node":
        lat, lon = element.get("lat"), element.get("lon")
    else:
        center = element.get("center")
        if not isinstance(center, dict):
            return None
        lat, lon = center.get("lat"), center.get("lon")
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None

    tags = element.get("tags")
    if not isinstance(tags, dict):
        return None
    name = tags.get("name") or tags.get("name:ro")
    if not is_valid_name(name):
        return None
    if is_excluded_generic(tags):
        return None

    category = category_from_tags(tags)
    if category is None:
        return None

    identifier = element.get("id")
    if identifier is None:
        return None

    return PointOfInterest(
        id=str(identifier),
        name=name.strip(),
        coord=Coordinate(lat=lat, lon=lon),
        category=category,
        open_status=parse_opening_hours(tags.get("opening_hours"), now),
        image_url=_extract_image_url(tags),
        address=_extract_address(tags),
    )


def normalize_elements(elements: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> List[PointOfInterest]:
    """Normalize a list of elements, dropping unusable ones and repeated ids."""
    if not elements:
        return []

    now = now or datetime.now()
    normalized = []
    for element in elements:
        poi = normalize_element(element, now)
        if poi:
            normalized.append(poi)
    return dedupe_pois(normalized)


def dedupe_pois(pois: Iterable[PointOfInterest]) -> List[PointOfInterest]:
    """Keep the first occurrence of every identifier."""
    seen = set()
    unique = []
    for poi in pois:
        if poi.id in seen:
            continue
        seen.add(poi.id)
        unique.append(poi)
    return unique
