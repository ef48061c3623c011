"""
Exception types raised inside the advisory core.

Collaborator failures (speech, weather, image decoding) are recovered by the
controller or resolver; SessionBusyError is the only one meant for the host.
"""

from __future__ import annotations
from typing import Optional


class AdvisoryError(Exception):
    """Base class for advisory errors."""


class SessionBusyError(AdvisoryError):
    """A turn is already being processed."""


class RecognitionError(AdvisoryError):
    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        super().__init__(message or f"Speech recognition failed: {code}")


class PlaybackError(AdvisoryError):
    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        super().__init__(message or f"Speech playback failed: {code}")


class WeatherServiceError(AdvisoryError):
    """Geocoding or forecast request failed (network, status, payload)."""


class ImageDecodeError(AdvisoryError):
    """The image reference could not be decoded into pixels."""
