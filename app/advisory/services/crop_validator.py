"""
Purpose: colour heuristic that decides whether a photo plausibly shows a crop.
Runs before the (placeholder) diagnosis so obviously non-plant photos get a
"recapture" warning instead.

A pixel is green-like when g > 80, g > r, g > b and g - r > 20; yellow-like
when r > 100, g > 100, b < 150 and |r - g| < 50. The two tests are independent,
so a pixel can count towards both fractions.
"""

from __future__ import annotations
import io

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..errors import ImageDecodeError
from ..models import ImageRef, ValidationResult

MIN_CROP_COLOR_PCT = 5


def decode_image(ref: ImageRef) -> Image.Image:
    """Decode an image reference into a fully loaded Pillow image."""
    if not ref.data:
        raise ImageDecodeError(f"Image {ref.key[:8]} has no data.")
    try:
        img = Image.open(io.BytesIO(ref.data))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"Could not decode image {ref.key[:8]}: {exc}") from exc
    return img


def _rgb_planes(image) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    if isinstance(image, Image.Image):
        arr = np.asarray(image.convert("RGB"))
    else:
        arr = np.asarray(image)
        if arr.ndim != 3 or arr.shape[2] < 3:
            raise ValueError("Expected an H x W x 3 (RGB) or H x W x 4 (RGBA) array.")
    # widen so differences of uint8 samples cannot wrap
    arr = arr[..., :3].astype(np.int16)
    return arr[..., 0], arr[..., 1], arr[..., 2]


class ColorHeuristicValidator:
    def __init__(self, min_crop_color_pct: float = MIN_CROP_COLOR_PCT):
        self.min_crop_color_pct = min_crop_color_pct

    def validate(self, image) -> ValidationResult:
        """Scan every pixel of a Pillow image or RGB(A) array."""
        r, g, b = _rgb_planes(image)
        total = int(r.size)
        if total == 0:
            return ValidationResult(False, 0.0, 0.0, 0.0)

        green = (g > 80) & (g > r) & (g > b) & ((g - r) > 20)
        yellow = (r > 100) & (g > 100) & (b < 150) & (np.abs(r - g) < 50)

        green_count = int(np.count_nonzero(green))
        yellow_count = int(np.count_nonzero(yellow))
        combined_count = green_count + yellow_count

        return ValidationResult(
            # counts, not fractions, so exactly 5% stays on the "no" side
            is_crop_like=combined_count * 100 > self.min_crop_color_pct * total,
            green_fraction=green_count / total,
            yellow_fraction=yellow_count / total,
            combined_fraction=combined_count / total,
        )

    def validate_ref(self, ref: ImageRef) -> ValidationResult:
        """Decode then validate. Raises ImageDecodeError if decoding fails."""
        return self.validate(decode_image(ref))
