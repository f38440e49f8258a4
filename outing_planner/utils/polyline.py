"""Decoder for Google encoded polylines (as returned by OpenTripPlanner)."""
from typing import List

from outing_planner.models.places import Coordinate


def _next_value(encoded: str, index: int):
    result = 0
    shift = 0
    while True:
        b = ord(encoded[index]) - 63
        index += 1
        result |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            break
    delta = ~(result >> 1) if result & 1 else result >> 1
    return delta, index


def decode_polyline(encoded: str, precision: int = 5) -> List[Coordinate]:
    """
    Decode an encoded polyline string into coordinates.

    Raises:
        ValueError: If the string is truncated or malformed.
    """
    factor = 10 ** precision
    coords: List[Coordinate] = []
    index = lat = lon = 0
    try:
        while index < len(encoded):
            dlat, index = _next_value(encoded, index)
            dlon, index = _next_value(encoded, index)
            lat += dlat
            lon += dlon
            coords.append(Coordinate(lat=lat / factor, lon=lon / factor))
    except IndexError as exc:
        raise ValueError("Truncated polyline") from exc
    return coords
