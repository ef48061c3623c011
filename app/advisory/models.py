"""
Canonical data shapes, shared truth for typing between layers.

Typical contents:
- Message (id, author, text, image_ref) and the append-only Transcript.
- SessionStatus / InputMode / SessionContext for the conversational session.
- CropKnowledgeEntry, ValidationResult and the weather records.

Testing: Trivial; mostly types. Transcript has a couple of helpers worth covering.
"""

from __future__ import annotations
import hashlib
import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional


class Author(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class SessionStatus(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"


class InputMode(str, Enum):
    VOICE = "voice"
    TEXT = "text"


class VoicePreference(str, Enum):
    FEMALE = "female"
    MALE = "male"


class PriceTrend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class WeatherCondition(str, Enum):
    CLEAR = "Clear"
    PARTLY_CLOUDY = "Partly cloudy"
    FOGGY = "Foggy"
    RAINY = "Rainy"


class Intent(str, Enum):
    IMAGE_REJECTED = "image_rejected"
    IMAGE_DIAGNOSIS = "image_diagnosis"
    CROP_PRICE = "crop_price"
    CROP_PEST = "crop_pest"
    CROP_OVERVIEW = "crop_overview"
    WEATHER = "weather"
    GREETING = "greeting"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ImageRef:
    """Opaque handle to a captured or uploaded photo.

    Equality and hashing go through `key` (a digest of the bytes), which is the
    idempotency key the session compares when a photo is handed over.
    """

    key: str
    data: bytes = field(repr=False, compare=False)
    name: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_bytes(cls, data: bytes, *, name: Optional[str] = None) -> "ImageRef":
        return cls(key=hashlib.sha1(data).hexdigest(), data=data, name=name)


@dataclass(frozen=True)
class Message:
    id: int
    author: Author
    text: str
    image_ref: Optional[ImageRef] = None


class Transcript:
    """Append-only, ordered list of messages for one session."""

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._ids = itertools.count(1)

    def append(
        self, author: Author, text: str, image_ref: Optional[ImageRef] = None
    ) -> Message:
        msg = Message(
            id=next(self._ids), author=author, text=text, image_ref=image_ref
        )
        self._messages.append(msg)
        return msg

    def get(self, message_id: int) -> Optional[Message]:
        return next((m for m in self._messages if m.id == message_id), None)

    def has_image(self, ref: ImageRef) -> bool:
        """True if any message already carries an image with the same key."""
        return any(
            m.image_ref is not None and m.image_ref.key == ref.key
            for m in self._messages
        )

    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def as_list(self) -> list[Message]:
        return list(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __len__(self) -> int:
        return len(self._messages)


@dataclass
class SessionContext:
    """Session-scoped state, passed by reference into the controller.

    The host keeps this object alive across re-renders so hand-offs stay
    idempotent even when the controller is rebuilt.
    """

    transcript: Transcript = field(default_factory=Transcript)
    status: SessionStatus = SessionStatus.IDLE
    input_mode: InputMode = InputMode.VOICE

    pending_photo: Optional[ImageRef] = None
    last_consumed_photo_key: Optional[str] = None
    pending_query: Optional[str] = None


@dataclass(frozen=True)
class CropKnowledgeEntry:
    crop_name: str
    price: str
    price_trend: PriceTrend
    primary_pest: str
    care_advice: str


@dataclass(frozen=True)
class ValidationResult:
    is_crop_like: bool
    green_fraction: float
    yellow_fraction: float
    combined_fraction: float


@dataclass(frozen=True)
class IntentMatch:
    intent: Intent
    crop: Optional[CropKnowledgeEntry] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class GeoLocation:
    lat: float
    lon: float
    name: str
    admin1: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.name}, {self.admin1}" if self.admin1 else self.name


@dataclass(frozen=True)
class CurrentConditions:
    temperature_c: int
    humidity_pct: int
    wind_speed: float
    weather_code: int


@dataclass(frozen=True)
class WeatherSnapshot:
    location: str
    temperature_c: int
    humidity_pct: int
    wind_speed: float
    condition: WeatherCondition
    rain_info: str


@dataclass(frozen=True)
class Voice:
    name: str
    lang: str


@dataclass(frozen=True)
class Utterance:
    text: str
    voice: Optional[Voice] = None
    lang: str = "en-US"
    rate: float = 0.9
    pitch: float = 1.0
    volume: float = 1.0
