"""
Location resolver.

Wraps a platform location provider with permission checks, timeout racing,
a short-lived cache of the last fix and a degraded-accuracy retry.
"""
import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Optional, Protocol

from pydantic import BaseModel

from outing_planner.models.places import Coordinate

logger = logging.getLogger(__name__)

CACHE_MAX_AGE_SECONDS = 5 * 60
IN_FLIGHT_WAIT_SECONDS = 5.0


class LocationErrorCode(str, Enum):
    PERMISSION_DENIED = "PERMISSION_DENIED"
    TIMEOUT = "TIMEOUT"
    LOCATION_UNAVAILABLE = "LOCATION_UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


class LocationError(Exception):
    """Location could not be resolved."""

    def __init__(self, code: LocationErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class PositionFix(BaseModel):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    timestamp: float = 0.0

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.latitude, lon=self.longitude)


class LocationProvider(Protocol):
    async def request_permission(self) -> bool:
        ...

    async def get_position(self, high_accuracy: bool) -> PositionFix:
        ...


class StaticLocationProvider:
    """Provider that always reports the same coordinate."""

    def __init__(self, coordinate: Coordinate, accuracy: Optional[float] = None):
        self.coordinate = coordinate
        self.accuracy = accuracy

    async def request_permission(self) -> bool:
        return True

    async def get_position(self, high_accuracy: bool) -> PositionFix:
        return PositionFix(
            latitude=self.coordinate.lat,
            longitude=self.coordinate.lon,
            accuracy=self.accuracy,
        )


def classify_error(error: BaseException) -> LocationError:
    """Map an arbitrary provider failure onto a LocationError."""
    if isinstance(error, LocationError):
        return error
    if isinstance(error, asyncio.TimeoutError):
        return LocationError(LocationErrorCode.TIMEOUT, "Location request timed out")

    message = str(error) or error.__class__.__name__
    lowered = message.lower()
    if "permission" in lowered or "denied" in lowered:
        return LocationError(LocationErrorCode.PERMISSION_DENIED, "Location permission was denied")
    if "timeout" in lowered or "timed out" in lowered:
        return LocationError(LocationErrorCode.TIMEOUT, "Location request timed out")
    if "unavailable" in lowered or "disabled" in lowered:
        return LocationError(LocationErrorCode.LOCATION_UNAVAILABLE, "Location services are unavailable")
    return LocationError(LocationErrorCode.UNKNOWN, f"Location error: {message}")


class LocationResolver:
    """Resolves the user's position. One instance per engine; holds the last fix."""

    def __init__(self, provider: LocationProvider, clock: Callable[[], float] = time.time):
        self.provider = provider
        self._clock = clock
        self._last_fix: Optional[PositionFix] = None
        self._in_flight: Optional[asyncio.Future] = None

    async def get_current_location(
        self,
        timeout: float = 10.0,
        use_cache: bool = True,
        high_accuracy: bool = True,
    ) -> PositionFix:
        """
        Get the current position.

        Args:
            timeout: Seconds allowed for the position fix
            use_cache: Return a fix younger than 5 minutes without asking the provider
            high_accuracy: Request a high accuracy fix

        Raises:
            LocationError: If no fix could be obtained and nothing is cached.
        """
        if use_cache and self._last_fix is not None:
            age = self._clock() - self._last_fix.timestamp
            if age < CACHE_MAX_AGE_SECONDS:
                logger.debug(f"Using cached location, age {round(age)}s")
                return self._last_fix

        if self._in_flight is not None and not self._in_flight.done():
            logger.debug("Location already being resolved, waiting")
            try:
                await asyncio.wait_for(asyncio.shield(self._in_flight), IN_FLIGHT_WAIT_SECONDS)
            except asyncio.TimeoutError:
                pass
            if self._last_fix is not None:
                return self._last_fix

        in_flight = asyncio.get_running_loop().create_future()
        self._in_flight = in_flight
        try:
            return await self._resolve(timeout, high_accuracy)
        finally:
            if not in_flight.done():
                in_flight.set_result(None)
            if self._in_flight is in_flight:
                self._in_flight = None

    async def _resolve(self, timeout: float, high_accuracy: bool) -> PositionFix:
        try:
            return await self._detect(timeout, high_accuracy)
        except Exception as exc:
            error = classify_error(exc)
            logger.warning(f"Location detection failed ({error.code.value}): {error.message}")

            if self._last_fix is not None:
                logger.info("Using last known location as fallback")
                return self._last_fix

            if high_accuracy:
                logger.info("Retrying location with reduced accuracy")
                try:
                    return await self._detect(timeout / 2, False)
                except Exception as fallback_exc:
                    logger.warning(f"Reduced accuracy location also failed: {fallback_exc}")

            if error is exc:
                raise
            raise error from exc

    async def _detect(self, timeout: float, high_accuracy: bool) -> PositionFix:
        if not await self._request_permission():
            raise LocationError(LocationErrorCode.PERMISSION_DENIED, "Location permission was denied")

        try:
            position = await asyncio.wait_for(self.provider.get_position(high_accuracy), timeout)
        except asyncio.TimeoutError as exc:
            raise LocationError(LocationErrorCode.TIMEOUT, "Location request timed out") from exc

        fix = position.model_copy(update={"timestamp": self._clock()})
        logger.info(f"Location detected: {fix.latitude:.6f},{fix.longitude:.6f} accuracy={fix.accuracy}")
        self._last_fix = fix
        return fix

    async def _request_permission(self) -> bool:
        try:
            return bool(await self.provider.request_permission())
        except Exception as exc:
            logger.warning(f"Permission request failed: {exc}")
            return False

    def cached_location(self) -> Optional[PositionFix]:
        return self._last_fix

    def clear_cache(self) -> None:
        self._last_fix = None
