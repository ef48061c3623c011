"""
Purpose: Local "inference". Classifies a user query into an intent and renders
the reply text, consulting the crop knowledge base and the weather client.

Resolution order (first match wins):
image rejected -> image diagnosis -> crop price/pest/overview -> weather ->
greeting -> not understood.

Weather failures never escape: geocoding errors read as "city not found",
forecast errors fall back to a fixed snapshot for the default location.
"""

from __future__ import annotations
import asyncio
import logging
import re
from typing import Optional

from ..errors import WeatherServiceError
from ..interfaces import WeatherClient
from ..models import (
    CropKnowledgeEntry,
    GeoLocation,
    Intent,
    IntentMatch,
    ValidationResult,
    WeatherCondition,
    WeatherSnapshot,
)
from ..prompts import replies
from .knowledge import CROP_KNOWLEDGE, find_crop
from .weather import describe_weather_code

logger = logging.getLogger(__name__)

PRICE_WORDS = ("price", "market", "cost")
PEST_WORDS = ("pest", "bug", "disease")
WEATHER_WORDS = ("weather", "rain", "temperature", "forecast")
GREETING_RX = re.compile(r"\b(?:hello|hi)\b", re.I)

# Evaluated in this order; the first match names the city.
CITY_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"weather (?:in|for|at) ([a-z\s]+?)(?:\?|$)", re.I),
    re.compile(r"(?:how|what)(?:'s| is) (?:the )?weather in ([a-z\s]+?)(?:\?|$)", re.I),
    re.compile(r"forecast (?:in|for) ([a-z\s]+?)(?:\?|$)", re.I),
    re.compile(r"temperature in ([a-z\s]+?)(?:\?|$)", re.I),
    re.compile(r"rain in ([a-z\s]+?)(?:\?|$)", re.I),
)

DEFAULT_LOCATION = GeoLocation(lat=3.0738, lon=101.5183, name="Subang Jaya")

FALLBACK_SNAPSHOT = WeatherSnapshot(
    location="Subang Jaya",
    temperature_c=32,
    humidity_pct=80,
    wind_speed=0.8,
    condition=WeatherCondition.PARTLY_CLOUDY,
    rain_info="Weather data unavailable",
)


def extract_city(query: str) -> Optional[str]:
    """City named in a weather question, with the user's casing kept."""
    text = (query or "").strip()
    for pattern in CITY_PATTERNS:
        m = pattern.search(text)
        if m:
            city = m.group(1).strip()
            if city:
                return city
    return None


def _mentions(text: str, words: tuple[str, ...]) -> bool:
    return any(w in text for w in words)


def classify(
    query: str,
    is_image_query: bool = False,
    validation: Optional[ValidationResult] = None,
    knowledge: Optional[dict[str, CropKnowledgeEntry]] = None,
) -> IntentMatch:
    """Pure intent classification, no I/O."""
    if is_image_query:
        if validation is not None and not validation.is_crop_like:
            return IntentMatch(Intent.IMAGE_REJECTED)
        return IntentMatch(Intent.IMAGE_DIAGNOSIS)

    q = (query or "").lower()

    crop = find_crop(q, knowledge)
    if crop is not None:
        if _mentions(q, PRICE_WORDS):
            return IntentMatch(Intent.CROP_PRICE, crop=crop)
        if _mentions(q, PEST_WORDS):
            return IntentMatch(Intent.CROP_PEST, crop=crop)
        return IntentMatch(Intent.CROP_OVERVIEW, crop=crop)

    if _mentions(q, WEATHER_WORDS):
        return IntentMatch(Intent.WEATHER, city=extract_city(query))

    if GREETING_RX.search(q):
        return IntentMatch(Intent.GREETING)

    return IntentMatch(Intent.UNKNOWN)


class LocalIntentResolver:
    def __init__(
        self,
        weather: WeatherClient,
        *,
        thinking_delay: float = 0.8,
        knowledge: Optional[dict[str, CropKnowledgeEntry]] = None,
    ):
        self.weather = weather
        self.thinking_delay = thinking_delay
        self.knowledge = knowledge or CROP_KNOWLEDGE

    async def resolve(
        self,
        query: str,
        is_image_query: bool = False,
        validation: Optional[ValidationResult] = None,
    ) -> str:
        if self.thinking_delay > 0:
            await asyncio.sleep(self.thinking_delay)

        match = classify(query, is_image_query, validation, self.knowledge)
        logger.debug("Query %r classified as %s", query, match.intent.value)

        if match.intent is Intent.IMAGE_REJECTED:
            return replies.NO_CROP_DETECTED
        if match.intent is Intent.IMAGE_DIAGNOSIS:
            return replies.IMAGE_DIAGNOSIS
        if match.intent is Intent.CROP_PRICE:
            return replies.crop_price(match.crop)
        if match.intent is Intent.CROP_PEST:
            return replies.crop_pest(match.crop)
        if match.intent is Intent.CROP_OVERVIEW:
            return replies.crop_overview(match.crop)
        if match.intent is Intent.WEATHER:
            return await self._weather_reply(match.city)
        if match.intent is Intent.GREETING:
            return replies.GREETING
        return replies.NOT_UNDERSTOOD

    async def _weather_reply(self, city: Optional[str]) -> str:
        snapshot = await self.weather_snapshot(city)
        if snapshot is None:
            return replies.city_not_found(city)
        return replies.weather_report(snapshot)

    async def weather_snapshot(self, city: Optional[str]) -> Optional[WeatherSnapshot]:
        """Snapshot for `city` (or the default location). None if the city is unknown."""
        location = DEFAULT_LOCATION
        if city:
            try:
                found = await self.weather.geocode(city)
            except WeatherServiceError as exc:
                logger.warning("Geocoding %r failed: %s", city, exc)
                found = None
            if found is None:
                return None
            location = found

        try:
            current = await self.weather.current_conditions(location.lat, location.lon)
        except WeatherServiceError as exc:
            logger.warning("Weather lookup failed, using fallback snapshot: %s", exc)
            return FALLBACK_SNAPSHOT

        condition, rain_info = describe_weather_code(current.weather_code)
        return WeatherSnapshot(
            location=location.display_name,
            temperature_c=current.temperature_c,
            humidity_pct=current.humidity_pct,
            wind_speed=current.wind_speed,
            condition=condition,
            rain_info=rain_info,
        )
