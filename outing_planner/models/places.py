"""Pydantic models for coordinates and points of interest."""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """WGS84 coordinate in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lon: float = Field(..., ge=-180, le=180, description="Longitude")


class CategoryGroup(str, Enum):
    """Coarse grouping of POI categories."""
    DINING = "dining"
    CULTURAL = "cultural"
    ACTIVE = "active"
    LEISURE = "leisure"
    ENTERTAINMENT = "entertainment"
    WELLNESS = "wellness"


class Category(str, Enum):
    """Place categories understood by the planner."""
    CAFE = "cafe"
    RESTAURANT = "restaurant"
    FAST_FOOD = "fast_food"
    TEA_ROOM = "tea_room"
    BAR = "bar"
    PUB = "pub"
    CINEMA = "cinema"
    LIBRARY = "library"
    MUSEUM = "museum"
    GALLERY = "gallery"
    ZOO = "zoo"
    AQUARIUM = "aquarium"
    ATTRACTION = "attraction"
    FITNESS_CENTRE = "fitness_centre"
    SPORTS_CENTRE = "sports_centre"
    BOWLING_ALLEY = "bowling_alley"
    ESCAPE_GAME = "escape_game"
    SWIMMING_POOL = "swimming_pool"
    CLIMBING_INDOOR = "climbing_indoor"
    ARCADE = "arcade"
    KARAOKE = "karaoke"
    SPA = "spa"
    PARK = "park"

    @property
    def group(self) -> CategoryGroup:
        return CATEGORY_GROUPS[self]


CATEGORY_GROUPS = {
    Category.CAFE: CategoryGroup.DINING,
    Category.RESTAURANT: CategoryGroup.DINING,
    Category.FAST_FOOD: CategoryGroup.DINING,
    Category.TEA_ROOM: CategoryGroup.DINING,
    Category.BAR: CategoryGroup.DINING,
    Category.PUB: CategoryGroup.DINING,
    Category.CINEMA: CategoryGroup.ENTERTAINMENT,
    Category.LIBRARY: CategoryGroup.CULTURAL,
    Category.MUSEUM: CategoryGroup.CULTURAL,
    Category.GALLERY: CategoryGroup.CULTURAL,
    Category.ZOO: CategoryGroup.LEISURE,
    Category.AQUARIUM: CategoryGroup.CULTURAL,
    Category.ATTRACTION: CategoryGroup.CULTURAL,
    Category.FITNESS_CENTRE: CategoryGroup.ACTIVE,
    Category.SPORTS_CENTRE: CategoryGroup.ACTIVE,
    Category.BOWLING_ALLEY: CategoryGroup.ENTERTAINMENT,
    Category.ESCAPE_GAME: CategoryGroup.ENTERTAINMENT,
    Category.SWIMMING_POOL: CategoryGroup.ACTIVE,
    Category.CLIMBING_INDOOR: CategoryGroup.ACTIVE,
    Category.ARCADE: CategoryGroup.ENTERTAINMENT,
    Category.KARAOKE: CategoryGroup.ENTERTAINMENT,
    Category.SPA: CategoryGroup.WELLNESS,
    Category.PARK: CategoryGroup.LEISURE,
}


class OpenStatus(str, Enum):
    """Open state derived from an opening-hours expression."""
    OPEN = "open"
    CLOSED = "closed"
    UNKNOWN = "unknown"


class PointOfInterest(BaseModel):
    """A named venue returned by the candidate source."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = Field(..., min_length=3)
    coord: Coordinate
    category: Category
    open_status: OpenStatus = OpenStatus.UNKNOWN
    image_url: Optional[str] = None
    address: Optional[str] = None


class AcquisitionStats(BaseModel):
    """Counters accumulated while querying the candidate source."""
    raw: int = 0
    parsed: int = 0


class NearbyPlacesResponse(BaseModel):
    """Candidate acquisition result exposed over HTTP."""
    places: List[PointOfInterest]
    radius_m: int
    require_open: bool
    raw: int
    filtered: int
    groups: Dict[CategoryGroup, int] = Field(default_factory=dict, description="Selected places per category group")
