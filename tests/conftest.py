"""Fakes for every collaborator protocol, plus image helpers."""

from __future__ import annotations
import asyncio
import io
from typing import Optional

import pytest
from PIL import Image

from advisory.config import AdvisorySettings
from advisory.controller import AdvisorySessionController
from advisory.errors import PlaybackError, RecognitionError, WeatherServiceError
from advisory.models import CurrentConditions, GeoLocation, ImageRef, Voice
from advisory.services.crop_validator import ColorHeuristicValidator
from advisory.services.intent import LocalIntentResolver
from advisory.services.playback import UtterancePlayer


class FakeRecognizer:
    """Resolves immediately with a scripted transcript or error.

    With `hold=True` the capture waits until `stop()` (returns None) or
    `release(text)` is called.
    """

    def __init__(self, transcript: Optional[str] = "What is the price of corn?", *, error: Optional[str] = None, supported: bool = True, hold: bool = False):
        self.transcript = transcript
        self.error = error
        self.supported = supported
        self.hold = hold
        self.listen_calls = 0
        self.stop_calls = 0
        self._pending: Optional[asyncio.Future] = None

    def is_supported(self) -> bool:
        return self.supported

    async def listen(self, *, lang: str, continuous: bool = False, interim: bool = False) -> Optional[str]:
        self.listen_calls += 1
        assert continuous is False and interim is False
        if self.hold:
            self._pending = asyncio.get_running_loop().create_future()
            return await self._pending
        if self.error:
            raise RecognitionError(self.error)
        return self.transcript

    def release(self, text: Optional[str]) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(text)

    def stop(self) -> None:
        self.stop_calls += 1
        self.release(None)


class FakeSpeechEngine:
    def __init__(self, voices=None, *, errors=None, hold: bool = False, load_voices_later=None):
        self._voices = list(voices) if voices is not None else [
            Voice("Samantha", "en-US"),
            Voice("Daniel", "en-GB"),
        ]
        self._later = list(load_voices_later or [])
        self.errors = list(errors or [])
        self.hold = hold
        self.spoken = []
        self.cancel_calls = 0
        self._gate: Optional[asyncio.Event] = None

    def voices(self):
        return list(self._voices)

    async def voices_loaded(self):
        if not self._voices and self._later:
            await asyncio.sleep(0)
            self._voices = self._later
        return list(self._voices)

    async def speak(self, utterance):
        self.spoken.append(utterance)
        if self.errors:
            raise PlaybackError(self.errors.pop(0))
        if self.hold:
            self._gate = asyncio.Event()
            await self._gate.wait()

    def finish(self):
        if self._gate is not None:
            self._gate.set()

    def cancel(self):
        self.cancel_calls += 1


class FakeWeather:
    def __init__(self, *, locations=None, conditions=None, geocode_error=False, forecast_error=False):
        self.locations = locations or {}
        self.conditions = conditions or CurrentConditions(
            temperature_c=29, humidity_pct=70, wind_speed=3.2, weather_code=2
        )
        self.geocode_error = geocode_error
        self.forecast_error = forecast_error
        self.geocoded = []
        self.forecasts = []

    async def geocode(self, city_name: str) -> Optional[GeoLocation]:
        self.geocoded.append(city_name)
        if self.geocode_error:
            raise WeatherServiceError("geocoder unreachable")
        return self.locations.get(city_name)

    async def current_conditions(self, lat: float, lon: float) -> CurrentConditions:
        self.forecasts.append((lat, lon))
        if self.forecast_error:
            raise WeatherServiceError("forecast unreachable")
        return self.conditions


class FakeConnectivity:
    def __init__(self, online: bool = True):
        self.online = online

    def is_online(self) -> bool:
        return self.online


def png_bytes(color, size=(10, 10)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def split_image(colors_and_counts, width=10) -> Image.Image:
    """Image made of rows of pixels: [(rgb, n_pixels), ...] filling width x N."""
    pixels = []
    for color, count in colors_and_counts:
        pixels.extend([color] * count)
    height = len(pixels) // width
    img = Image.new("RGB", (width, height))
    img.putdata(pixels)
    return img


@pytest.fixture
def settings() -> AdvisorySettings:
    return AdvisorySettings(
        thinking_delay=0,
        fallback_delay=0,
        playback_start_delay=0,
        interrupted_retry_delay=0,
        voice_load_timeout=0.5,
        turn_timeout=5,
    )


@pytest.fixture
def weather() -> FakeWeather:
    return FakeWeather()


@pytest.fixture
def engine() -> FakeSpeechEngine:
    return FakeSpeechEngine()


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def connectivity() -> FakeConnectivity:
    return FakeConnectivity()


@pytest.fixture
def green_photo() -> ImageRef:
    return ImageRef.from_bytes(png_bytes((30, 160, 40)), name="leaf.png")


@pytest.fixture
def blue_photo() -> ImageRef:
    return ImageRef.from_bytes(png_bytes((40, 60, 200)), name="tarp.png")


@pytest.fixture
def make_controller(settings, weather, engine, recognizer, connectivity):
    def _make(**overrides):
        return AdvisorySessionController(
            resolver=overrides.get(
                "resolver", LocalIntentResolver(weather, thinking_delay=0)
            ),
            validator=overrides.get("validator", ColorHeuristicValidator()),
            recognizer=overrides.get("recognizer", recognizer),
            player=overrides.get(
                "player", UtterancePlayer(overrides.get("engine", engine), settings)
            ),
            connectivity=overrides.get("connectivity", connectivity),
            settings=overrides.get("settings", settings),
            context=overrides.get("context"),
        )

    return _make
