"""Pydantic models for plan generation requests and generated plans."""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from outing_planner.models.places import Category, Coordinate

MIN_DURATION = 30
MAX_DURATION = 720


class TransportMode(str, Enum):
    WALK = "walk"
    BIKE = "bike"
    PUBLIC = "public"
    CAR = "car"


class RouteMode(str, Enum):
    """Mode used to draw the route between stops."""
    FOOT = "foot"
    BIKE = "bike"
    DRIVING = "driving"


class Companion(str, Enum):
    SOLO = "solo"
    FRIENDS = "friends"
    FAMILY = "family"
    PARTNER = "partner"
    PET = "pet"


class ActivityStyle(str, Enum):
    RELAXED = "relaxed"
    ACTIVE = "active"


class AccessibilityNeeds(BaseModel):
    """Accessibility flags declared in the user profile."""
    wheelchair: bool = False
    reduced_mobility: bool = False
    low_vision: bool = False
    hearing_impairment: bool = False
    sensory_sensitivity: bool = False
    stroller_friendly: bool = False

    def any(self) -> bool:
        # sensory sensitivity does not change venue accessibility scoring
        return (
            self.wheelchair
            or self.reduced_mobility
            or self.low_vision
            or self.hearing_impairment
            or self.stroller_friendly
        )


class UserPreferences(BaseModel):
    """Profile bundle used only for category weighting and scoring."""
    age: Optional[int] = None
    dob: Optional[str] = Field(None, description="Date of birth, YYYY-MM-DD")
    activity: Optional[ActivityStyle] = None
    language: Literal["en", "ro"] = "en"
    disabilities: AccessibilityNeeds = Field(default_factory=AccessibilityNeeds)
    interests: List[str] = Field(default_factory=list)


class CompanionDetails(BaseModel):
    """Sub-attributes of the companion context."""
    friends_count: Optional[int] = Field(None, ge=1)
    friends_expat: bool = False
    friends_disabilities: bool = False
    pet_type: Optional[Literal["dog", "cat"]] = None
    family_parents: bool = False
    family_grandparents: bool = False
    family_disabilities: bool = False
    child_age: Optional[int] = Field(None, ge=0, le=17)


class GenerationRequest(BaseModel):
    """Input of the plan generation engine.

    Duration is clamped to 30..720 minutes and a negative budget to zero here,
    at the boundary; the engine trusts these values. A missing budget means
    unbounded.
    """

    duration: int = Field(..., description="Duration in minutes")
    transport: TransportMode = TransportMode.WALK
    budget: Optional[float] = Field(None, description="Budget in lei, None for unbounded")
    with_who: Companion = Companion.SOLO
    companion: CompanionDetails = Field(default_factory=CompanionDetails)
    center: Optional[Coordinate] = None
    user_prefs: Optional[UserPreferences] = None

    @field_validator("duration", mode="before")
    @classmethod
    def clamp_duration(cls, value):
        return max(MIN_DURATION, min(MAX_DURATION, int(value)))

    @field_validator("budget", mode="before")
    @classmethod
    def clamp_budget(cls, value):
        if value is None:
            return None
        return max(0.0, float(value))


class WeatherSignal(BaseModel):
    """Short-range weather flags for the search center."""
    rain_soon: bool = False
    hot: bool = False
    wind_strong: bool = False


class StartStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["start"] = "start"
    name: str = "Start"
    coord: Coordinate


class PoiStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["poi"] = "poi"
    name: str
    coord: Coordinate
    category: Category


class TransitStep(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["transit"] = "transit"
    name: str
    coord: Coordinate
    transit: Literal["bus", "metro"]
    stop_id: Optional[str] = Field(None, alias="stopId")
    transit_action: Optional[Literal["board", "alight"]] = Field(None, alias="transitAction")


PlanStep = Annotated[Union[StartStep, PoiStep, TransitStep], Field(discriminator="kind")]


class PlanStop(BaseModel):
    """Short stop entry shown on plan cards."""
    model_config = ConfigDict(frozen=True)

    name: str
    lat: float
    lon: float


class RouteSegment(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: Coordinate = Field(..., alias="from")
    to: Coordinate
    kind: Literal["foot", "bike", "driving", "bus", "metro"]
    stop_id: Optional[str] = Field(None, alias="stopId")
    shape: Optional[List[List[Coordinate]]] = None
    distance: Optional[float] = Field(None, description="Distance in meters")
    duration: Optional[float] = Field(None, description="Duration in seconds")


class Plan(BaseModel):
    """A generated outing plan. Built once per request and never mutated."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Plan label (A, B, C)")
    title: str
    steps: List[PlanStep]
    mode: RouteMode
    stops: List[PlanStop] = Field(default_factory=list)
    km: float = Field(0.0, description="Distance estimate in km")
    min: int = Field(0, description="Total minutes, capped at the requested duration")
    cost: Optional[float] = Field(None, description="Cost estimate, None when unknown")
    route_segments: List[RouteSegment] = Field(default_factory=list, alias="routeSegments")


class PlanListResponse(BaseModel):
    plans: List[Plan]
