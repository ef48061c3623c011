"""
Purpose: Thin async client for the Open-Meteo geocoding and forecast APIs.
One place for URLs, timeouts, payload normalization and error mapping.

Every failure (transport, timeout, HTTP status, malformed JSON) surfaces as
WeatherServiceError; "no such city" is not an error and returns None.

Testing: inject an httpx.MockTransport; no network needed.
"""

from __future__ import annotations
import logging
import math
from typing import Any, Optional

import httpx

from ..config import FORECAST_URL, GEOCODE_URL
from ..errors import WeatherServiceError
from ..models import CurrentConditions, GeoLocation, WeatherCondition

logger = logging.getLogger(__name__)

CURRENT_FIELDS = "temperature_2m,relative_humidity_2m,weather_code,wind_speed_10m"


def _round_half_up(value) -> int:
    return int(math.floor(float(value) + 0.5))


def describe_weather_code(code: int) -> tuple[WeatherCondition, str]:
    """Map a WMO weather code to (condition, rain outlook). Ranges are inclusive."""
    if 80 <= code <= 99:
        return WeatherCondition.RAINY, "Rain expected today"
    if 61 <= code <= 77:
        return WeatherCondition.RAINY, "Light rain possible"
    if 2 <= code <= 3:
        return WeatherCondition.PARTLY_CLOUDY, "No rain expected today"
    if 45 <= code <= 48:
        return WeatherCondition.FOGGY, "No rain expected today"
    return WeatherCondition.CLEAR, "No rain expected today"


class OpenMeteoClient:
    def __init__(
        self,
        *,
        geocode_url: str = GEOCODE_URL,
        forecast_url: str = FORECAST_URL,
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.geocode_url = geocode_url
        self.forecast_url = forecast_url
        self.timeout = timeout
        self._transport = transport

    async def _get_json(self, url: str, params: dict[str, Any]) -> dict:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as exc:
            raise WeatherServiceError(f"Request to {url} timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise WeatherServiceError(
                f"{url} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise WeatherServiceError(f"Request to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise WeatherServiceError(f"{url} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise WeatherServiceError(f"{url} returned an unexpected payload")
        return data

    async def geocode(self, city_name: str) -> Optional[GeoLocation]:
        data = await self._get_json(
            self.geocode_url,
            {"name": city_name, "count": 1, "language": "en", "format": "json"},
        )
        results = data.get("results") or []
        if not results:
            logger.info("Geocoding found no match for %r", city_name)
            return None
        first = results[0]
        try:
            return GeoLocation(
                lat=float(first["latitude"]),
                lon=float(first["longitude"]),
                name=str(first["name"]),
                admin1=str(first.get("admin1") or ""),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise WeatherServiceError("Malformed geocoding result") from exc

    async def current_conditions(self, lat: float, lon: float) -> CurrentConditions:
        data = await self._get_json(
            self.forecast_url,
            {
                "latitude": lat,
                "longitude": lon,
                "current": CURRENT_FIELDS,
                "timezone": "auto",
            },
        )
        current = data.get("current") or {}
        try:
            return CurrentConditions(
                temperature_c=_round_half_up(current["temperature_2m"]),
                humidity_pct=_round_half_up(current["relative_humidity_2m"]),
                wind_speed=float(current["wind_speed_10m"]),
                weather_code=int(current["weather_code"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise WeatherServiceError("Malformed forecast payload") from exc
