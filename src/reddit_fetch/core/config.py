"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

# Only formats we can both decode reliably and name a file extension for.
DEFAULT_MEDIA_TYPES: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
}


@dataclass(frozen=True)
class QualityThresholds:
    """Pixel-level acceptance limits plus the duplicate-match threshold."""

    min_aspect_ratio: float = 1.2
    max_aspect_ratio: float = 2.5
    min_megapixels: float = 1.0
    min_brightness: float = 0.1
    max_brightness: float = 0.9
    # Inclusive Hamming distance (bits out of 64).
    duplicate_threshold: int = 6

    def __post_init__(self) -> None:
        if self.min_aspect_ratio > self.max_aspect_ratio:
            raise ValueError("min_aspect_ratio must not exceed max_aspect_ratio")
        if self.min_brightness > self.max_brightness:
            raise ValueError("min_brightness must not exceed max_brightness")
        if not 0 <= self.duplicate_threshold <= 64:
            raise ValueError("duplicate_threshold must be between 0 and 64")


@dataclass(frozen=True)
class FetchConfig:
    """Polling settings for the fetch orchestrator."""

    throttle_interval: timedelta = timedelta(minutes=30)
    posts_per_source: int = 10
    max_concurrent_sources: int = 1
    media_types: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MEDIA_TYPES))
