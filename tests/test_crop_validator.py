import numpy as np
import pytest
from PIL import Image

from advisory.errors import ImageDecodeError
from advisory.models import ImageRef
from advisory.services.crop_validator import ColorHeuristicValidator

from conftest import png_bytes, split_image

GREEN = (30, 160, 40)
BLUE = (40, 60, 200)
GOLD = (200, 180, 60)


@pytest.fixture
def validator():
    return ColorHeuristicValidator()


def test_all_green_image_is_crop_like(validator):
    result = validator.validate(Image.new("RGB", (8, 8), GREEN))
    assert result.is_crop_like
    assert result.green_fraction == 1.0
    assert result.yellow_fraction == 0.0


def test_golden_crop_counts_as_yellow(validator):
    result = validator.validate(Image.new("RGB", (8, 8), GOLD))
    assert result.is_crop_like
    assert result.yellow_fraction == 1.0
    assert result.green_fraction == 0.0


def test_blue_image_is_not_crop_like(validator):
    result = validator.validate(Image.new("RGB", (8, 8), BLUE))
    assert not result.is_crop_like
    assert result.combined_fraction == 0.0


def test_exactly_five_percent_is_not_crop_like(validator):
    img = split_image([(GREEN, 5), (BLUE, 95)])
    result = validator.validate(img)
    assert result.combined_fraction == pytest.approx(0.05)
    assert not result.is_crop_like


def test_just_above_five_percent_is_crop_like(validator):
    img = split_image([(GREEN, 3), (GOLD, 3), (BLUE, 94)])
    result = validator.validate(img)
    assert result.green_fraction == pytest.approx(0.03)
    assert result.yellow_fraction == pytest.approx(0.03)
    assert result.is_crop_like


def test_pixel_matching_both_predicates_is_counted_twice(validator):
    # g - r = 30 (green-like) and |r - g| = 30 with r, g > 100, b < 150 (yellow-like)
    result = validator.validate(Image.new("RGB", (4, 4), (110, 140, 50)))
    assert result.green_fraction == 1.0
    assert result.yellow_fraction == 1.0
    assert result.combined_fraction == 2.0
    assert result.is_crop_like


def test_alpha_channel_is_ignored(validator):
    result = validator.validate(Image.new("RGBA", (4, 4), (*GREEN, 0)))
    assert result.is_crop_like


def test_accepts_rgb_arrays(validator):
    arr = np.zeros((2, 5, 3), dtype=np.uint8)
    arr[0, 0] = GREEN
    result = validator.validate(arr)
    assert result.green_fraction == pytest.approx(0.1)
    assert result.is_crop_like


def test_empty_image_is_not_crop_like(validator):
    result = validator.validate(np.zeros((0, 0, 3), dtype=np.uint8))
    assert not result.is_crop_like
    assert result.combined_fraction == 0.0


def test_validate_ref_decodes_png(validator):
    ref = ImageRef.from_bytes(png_bytes(GREEN))
    assert validator.validate_ref(ref).is_crop_like


def test_validate_ref_raises_on_garbage(validator):
    with pytest.raises(ImageDecodeError):
        validator.validate_ref(ImageRef.from_bytes(b"definitely not a picture"))
