"""Pixel-level quality gate (core domain).

Runs before fingerprinting so rejected content never costs a hash.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageStat

from reddit_fetch.core.config import QualityThresholds


@dataclass(frozen=True)
class QualityVerdict:
    """Result of the quality gate with the metrics it was based on."""

    accepted: bool
    reason: Optional[str]
    aspect_ratio: float
    megapixels: float
    brightness: float


def average_brightness(image: Image.Image) -> float:
    """Mean of (R+G+B)/(3*255) over all pixels, in [0, 1]."""

    if image.mode != "RGB":
        image = image.convert("RGB")
    # The per-channel means average to the same value as the per-pixel mean.
    means = ImageStat.Stat(image).mean
    return sum(means) / (3 * 255.0)


def check_quality(image: Image.Image, thresholds: QualityThresholds) -> QualityVerdict:
    """Return the verdict for one decoded image.

    Checks are evaluated in a fixed order (aspect ratio, resolution,
    brightness) and the first failure is reported as the reason.
    """

    width, height = image.size
    if width <= 0 or height <= 0:
        return QualityVerdict(False, "empty image", 0.0, 0.0, 0.0)

    aspect_ratio = width / height
    megapixels = (width * height) / 1_000_000
    brightness = average_brightness(image)

    reason = None
    if not thresholds.min_aspect_ratio <= aspect_ratio <= thresholds.max_aspect_ratio:
        reason = f"aspect ratio {aspect_ratio:.2f}"
    elif megapixels < thresholds.min_megapixels:
        reason = f"insufficient resolution ({megapixels:.2f} MP)"
    elif not thresholds.min_brightness <= brightness <= thresholds.max_brightness:
        reason = f"brightness {brightness:.2f}"

    return QualityVerdict(
        accepted=reason is None,
        reason=reason,
        aspect_ratio=aspect_ratio,
        megapixels=megapixels,
        brightness=brightness,
    )
