"""
Purpose: Runtime knobs for the advisory session, in one place.
Defaults are the shipped values; `from_env()` lets deployments
override them with VACA_* environment variables.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field

GEOCODE_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

FEMALE_VOICE_NAMES = (
    "Samantha",
    "Victoria",
    "Karen",
    "Google US English Female",
    "Moira",
    "Fiona",
    "nova",
    "shimmer",
)
MALE_VOICE_NAMES = (
    "Daniel",
    "Alex",
    "Google US English Male",
    "Microsoft David",
    "onyx",
    "echo",
)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class AdvisorySettings:
    # session
    thinking_delay: float = 0.8
    fallback_delay: float = 1.0
    turn_timeout: float = 20.0
    autoplay: bool = True
    lang: str = "en-US"

    # connectivity probe
    probe_host: str = "1.1.1.1"
    probe_port: int = 53
    probe_timeout: float = 1.5

    # weather
    weather_timeout: float = 8.0
    geocode_url: str = GEOCODE_URL
    forecast_url: str = FORECAST_URL

    # playback
    speech_rate: float = 0.9
    speech_pitch: float = 1.0
    speech_volume: float = 1.0
    playback_start_delay: float = 0.15
    interrupted_retry_delay: float = 0.2
    voice_load_timeout: float = 1.0
    female_voices: tuple[str, ...] = field(default=FEMALE_VOICE_NAMES)
    male_voices: tuple[str, ...] = field(default=MALE_VOICE_NAMES)

    # openai audio
    tts_model: str = "gpt-4o-mini-tts"
    tts_voice: str = "alloy"
    stt_model: str = "whisper-1"

    @classmethod
    def from_env(cls) -> "AdvisorySettings":
        base = cls()
        return cls(
            thinking_delay=_env_float("VACA_THINKING_DELAY", base.thinking_delay),
            fallback_delay=_env_float("VACA_FALLBACK_DELAY", base.fallback_delay),
            turn_timeout=_env_float("VACA_TURN_TIMEOUT", base.turn_timeout),
            autoplay=_env_bool("VACA_AUTOPLAY", base.autoplay),
            lang=os.getenv("VACA_LANG", base.lang),
            probe_host=os.getenv("VACA_PROBE_HOST", base.probe_host),
            probe_port=int(_env_float("VACA_PROBE_PORT", base.probe_port)),
            probe_timeout=_env_float("VACA_PROBE_TIMEOUT", base.probe_timeout),
            weather_timeout=_env_float("VACA_WEATHER_TIMEOUT", base.weather_timeout),
            geocode_url=os.getenv("VACA_GEOCODE_URL", base.geocode_url),
            forecast_url=os.getenv("VACA_FORECAST_URL", base.forecast_url),
            voice_load_timeout=_env_float(
                "VACA_VOICE_LOAD_TIMEOUT", base.voice_load_timeout
            ),
            tts_model=os.getenv("VACA_TTS_MODEL", base.tts_model),
            tts_voice=os.getenv("VACA_TTS_VOICE", base.tts_voice),
            stt_model=os.getenv("VACA_STT_MODEL", base.stt_model),
        )
