"""Great-circle distances with a bounded memo cache."""
import math
import threading
from collections import OrderedDict
from typing import Dict, Tuple

from outing_planner.models.places import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Calculate distance between two points in kilometers using Haversine formula."""
    lat1, lon1, lat2, lon2 = map(math.radians, [a.lat, a.lon, b.lat, b.lon])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    return haversine_km(a, b) * 1000.0


class DistanceCache:
    """
    Memoized haversine distances.

    Keys are directional: the pair (a, b) and the pair (b, a) are cached
    separately. Coordinates are rounded to ``precision`` decimals (5 is about
    one meter). Once more than ``max_size`` entries are held, the oldest
    inserted entry is evicted.
    """

    def __init__(self, max_size: int = 1000, precision: int = 5):
        self.max_size = max_size
        self.precision = precision
        self._cache: "OrderedDict[str, float]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _key(self, a: Coordinate, b: Coordinate) -> str:
        p = self.precision
        return f"{round(a.lat, p)},{round(a.lon, p)}-{round(b.lat, p)},{round(b.lon, p)}"

    def distance_km(self, a: Coordinate, b: Coordinate) -> float:
        key = self._key(a, b)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self.hits += 1
                return cached

        distance = haversine_km(a, b)
        with self._lock:
            self.misses += 1
            self._cache[key] = distance
            while len(self._cache) > self.max_size:
                self._cache.popitem(last=False)
        return distance

    def distance_m(self, a: Coordinate, b: Coordinate) -> float:
        return self.distance_km(a, b) * 1000.0

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, pair: Tuple[Coordinate, Coordinate]) -> bool:
        return self._key(*pair) in self._cache

    def stats(self) -> Dict[str, float]:
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
            "size": len(self._cache),
        }
