"""
Weather signal adapter backed by the Open-Meteo forecast API.

Reduces a short hourly forecast to three flags. Never blocks plan generation:
any failure degrades to all flags false.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from outing_planner.config import settings
from outing_planner.models.places import Coordinate
from outing_planner.models.plans import WeatherSignal

logger = logging.getLogger(__name__)

RAIN_HOURS = 3
HEAT_WIND_HOURS = 6
RAIN_PROBABILITY_PCT = 50
HOT_APPARENT_C = 35
STRONG_WIND_KMH = 40


class WeatherError(Exception):
    """The forecast could not be fetched or parsed."""


def _values(hourly: Dict[str, Any], key: str, hours: int) -> List[float]:
    raw = hourly.get(key) or []
    if not isinstance(raw, list):
        raise WeatherError(f"Hourly field {key} is not a list")
    return [float(value or 0) for value in raw[:hours]]


def reduce_forecast(hourly: Dict[str, Any]) -> WeatherSignal:
    """
    Reduce Open-Meteo hourly arrays to weather flags.

    Args:
        hourly: The ``hourly`` object, arrays indexed by hour offset from now

    Raises:
        WeatherError: If a field has an unexpected shape.
    """
    try:
        precipitation = _values(hourly, "precipitation_probability", RAIN_HOURS)
        apparent = _values(hourly, "apparent_temperature", HEAT_WIND_HOURS)
        wind = _values(hourly, "windspeed_10m", HEAT_WIND_HOURS)
    except (TypeError, ValueError) as exc:
        raise WeatherError(f"Malformed forecast values: {exc}") from exc

    return WeatherSignal(
        rain_soon=any(p >= RAIN_PROBABILITY_PCT for p in precipitation),
        hot=any(t >= HOT_APPARENT_C for t in apparent),
        wind_strong=any(w >= STRONG_WIND_KMH for w in wind),
    )


class WeatherClient:
    """Service for fetching short-range forecasts."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or settings.weather_api_url
        self.timeout = timeout if timeout is not None else settings.weather_timeout
        self._transport = transport

    async def fetch_hourly(self, center: Coordinate) -> Dict[str, Any]:
        """
        Fetch the next hours of precipitation probability, apparent temperature and wind.

        Raises:
            WeatherError: On HTTP failure or an unexpected payload.
        """
        params = {
            "latitude": center.lat,
            "longitude": center.lon,
            "hourly": "precipitation_probability,apparent_temperature,windspeed_10m",
            "forecast_hours": HEAT_WIND_HOURS,
            "timezone": "auto",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise WeatherError(f"Forecast request failed: {exc}") from exc

        hourly = data.get("hourly") if isinstance(data, dict) else None
        if not isinstance(hourly, dict):
            raise WeatherError("Forecast payload has no hourly section")
        return hourly

    async def get_weather_signal(self, center: Coordinate) -> WeatherSignal:
        """Return weather flags for center, all false when anything goes wrong."""
        try:
            signal = reduce_forecast(await self.fetch_hourly(center))
        except WeatherError as exc:
            logger.warning(f"Weather unavailable, assuming calm conditions: {exc}")
            return WeatherSignal()

        logger.info(
            f"Weather at {center.lat:.4f},{center.lon:.4f}: "
            f"rain_soon={signal.rain_soon} hot={signal.hot} wind_strong={signal.wind_strong}"
        )
        return signal


# Global instance
weather_client = WeatherClient()
