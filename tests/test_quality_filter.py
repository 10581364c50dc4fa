from __future__ import annotations

import pytest
from PIL import Image

from reddit_fetch.core.config import QualityThresholds
from reddit_fetch.core.errors import DecodeError
from reddit_fetch.core.imaging import decode_image
from reddit_fetch.core.quality import average_brightness, check_quality

THRESHOLDS = QualityThresholds(
    min_aspect_ratio=1.2,
    max_aspect_ratio=2.5,
    min_megapixels=1.0,
    min_brightness=0.1,
    max_brightness=0.9,
    duplicate_threshold=6,
)


def test_accepts_image_within_all_limits() -> None:
    image = Image.new("RGB", (1600, 1000), (128, 128, 128))
    verdict = check_quality(image, THRESHOLDS)
    assert verdict.accepted
    assert verdict.reason is None
    assert verdict.aspect_ratio == pytest.approx(1.6)
    assert verdict.megapixels == pytest.approx(1.6)
    assert verdict.brightness == pytest.approx(128 / 255)


def test_rejects_dark_image() -> None:
    # (5+5+5) / (3*255) ~= 0.02
    image = Image.new("RGB", (1600, 1000), (5, 5, 5))
    verdict = check_quality(image, THRESHOLDS)
    assert not verdict.accepted
    assert verdict.brightness == pytest.approx(0.0196, abs=1e-3)
    assert "brightness" in verdict.reason


def test_rejects_washed_out_image() -> None:
    image = Image.new("RGB", (1600, 1000), (250, 250, 250))
    assert not check_quality(image, THRESHOLDS).accepted


def test_rejects_portrait_aspect_ratio() -> None:
    image = Image.new("RGB", (1000, 1600), (128, 128, 128))
    verdict = check_quality(image, THRESHOLDS)
    assert not verdict.accepted
    assert "aspect ratio" in verdict.reason


def test_rejects_ultrawide_aspect_ratio() -> None:
    image = Image.new("RGB", (3000, 1000), (128, 128, 128))
    assert not check_quality(image, THRESHOLDS).accepted


def test_aspect_ratio_bounds_are_inclusive() -> None:
    image = Image.new("RGB", (1500, 1250), (128, 128, 128))  # exactly 1.2
    assert check_quality(image, THRESHOLDS).accepted


def test_rejects_low_resolution() -> None:
    image = Image.new("RGB", (800, 500), (128, 128, 128))
    verdict = check_quality(image, THRESHOLDS)
    assert not verdict.accepted
    assert "resolution" in verdict.reason


def test_brightness_is_mean_over_pixels() -> None:
    image = Image.new("RGB", (200, 100), (0, 0, 0))
    image.paste((255, 255, 255), (0, 0, 100, 100))
    assert average_brightness(image) == pytest.approx(0.5)


def test_brightness_averages_channels() -> None:
    image = Image.new("RGB", (10, 10), (255, 0, 0))
    assert average_brightness(image) == pytest.approx(1 / 3)


def test_decode_rejects_garbage() -> None:
    with pytest.raises(DecodeError):
        decode_image(b"definitely not an image")


def test_decode_rejects_empty_payload() -> None:
    with pytest.raises(DecodeError):
        decode_image(b"")


def test_decode_rejects_truncated_jpeg(pattern_image, encode_image) -> None:
    data = encode_image(pattern_image(3), "JPEG", quality=90)
    with pytest.raises(DecodeError):
        decode_image(data[: len(data) // 2])


def test_decode_returns_rgb(encode_image) -> None:
    data = encode_image(Image.new("L", (20, 10), 100))
    image = decode_image(data)
    assert image.mode == "RGB"
    assert image.size == (20, 10)
