"""Pydantic models for transit routing."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from outing_planner.models.places import Coordinate

TransitLegKind = Literal["foot", "bus", "metro"]


class TransitLeg(BaseModel):
    """One contiguous segment of a transit itinerary in a single mode."""

    model_config = ConfigDict(populate_by_name=True)

    kind: TransitLegKind
    from_: Coordinate = Field(..., alias="from")
    to: Coordinate
    shape: Optional[List[Coordinate]] = Field(None, description="Decoded path geometry")
    board_name: Optional[str] = Field(None, alias="boardName")
    alight_name: Optional[str] = Field(None, alias="alightName")
    duration: Optional[float] = Field(None, description="Duration in seconds")
    distance: Optional[float] = Field(None, description="Distance in meters")
    route_name: Optional[str] = Field(None, alias="routeName")


class TransitRouteResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    legs: List[TransitLeg] = Field(default_factory=list)
    total_duration: float = Field(0, alias="totalDuration", description="Seconds")
    total_distance: float = Field(0, alias="totalDistance", description="Meters")
    error: Optional[str] = None


class TransitRouteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: Coordinate = Field(..., alias="from")
    to: Coordinate
    when: Optional[datetime] = None
    max_walk_meters: int = Field(1000, ge=0, le=5000)
