"""Utility functions for the planner."""

from outing_planner.utils.distance import DistanceCache, haversine_km, haversine_m
from outing_planner.utils.normalizers import normalize_element, normalize_elements, parse_opening_hours
from outing_planner.utils.polyline import decode_polyline

__all__ = [
    "DistanceCache",
    "haversine_km",
    "haversine_m",
    "normalize_element",
    "normalize_elements",
    "parse_opening_hours",
    "decode_polyline",
]
