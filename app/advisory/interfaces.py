"""
Abstractions for pluggable services. Inversion of control: the session
controller depends on these protocols, not on concrete services, so browser,
OpenAI or fake adapters can be swapped in.

Common protocols:
- SpeechRecognizer.listen(lang=...) -> transcript | None, stop()
- SpeechEngine.speak(utterance) / cancel() / voices()
- WeatherClient.geocode(city) & current_conditions(lat, lon)
- CropValidator.validate(image) & validate_ref(ref)
- IntentResolver.resolve(query, is_image_query, validation) -> str
- Connectivity.is_online()

Testing: Use simple fake implementations to test the controller without
network, microphone or speakers.
"""

from __future__ import annotations
from typing import Optional, Protocol

from .models import (
    CurrentConditions,
    GeoLocation,
    ImageRef,
    Utterance,
    ValidationResult,
    Voice,
)


class SpeechRecognizer(Protocol):
    def is_supported(self) -> bool: ...

    async def listen(
        self, *, lang: str, continuous: bool = False, interim: bool = False
    ) -> Optional[str]:
        """One-shot capture. Returns the transcript, or None when capture ends
        without a result. Raises RecognitionError on failure."""
        ...

    def stop(self) -> None: ...


class SpeechEngine(Protocol):
    def voices(self) -> list[Voice]: ...

    async def voices_loaded(self) -> list[Voice]: ...

    async def speak(self, utterance: Utterance) -> None:
        """Returns when the utterance ends. Raises PlaybackError on failure."""
        ...

    def cancel(self) -> None: ...


class WeatherClient(Protocol):
    async def geocode(self, city_name: str) -> Optional[GeoLocation]: ...

    async def current_conditions(self, lat: float, lon: float) -> CurrentConditions: ...


class CropValidator(Protocol):
    def validate(self, image) -> ValidationResult: ...

    def validate_ref(self, ref: ImageRef) -> ValidationResult: ...


class IntentResolver(Protocol):
    async def resolve(
        self,
        query: str,
        is_image_query: bool = False,
        validation: Optional[ValidationResult] = None,
    ) -> str: ...


class Connectivity(Protocol):
    def is_online(self) -> bool: ...
