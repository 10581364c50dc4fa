"""Shared fixtures: synthetic images so no test needs files on disk."""

from __future__ import annotations

import io
import random
from typing import Callable

import pytest
from PIL import Image, ImageDraw


def _pattern_image(seed: int, size: tuple[int, int] = (640, 400)) -> Image.Image:
    """Busy image of random shapes; different seeds look unrelated."""

    rng = random.Random(seed)
    width, height = size
    image = Image.new("RGB", size, tuple(rng.randrange(60, 200) for _ in range(3)))
    draw = ImageDraw.Draw(image)
    for _ in range(14):
        x0 = rng.randrange(0, width)
        y0 = rng.randrange(0, height)
        x1 = min(width, x0 + rng.randrange(width // 8, width // 2))
        y1 = min(height, y0 + rng.randrange(height // 8, height // 2))
        fill = tuple(rng.randrange(0, 256) for _ in range(3))
        if rng.random() < 0.5:
            draw.rectangle([x0, y0, x1, y1], fill=fill)
        else:
            draw.ellipse([x0, y0, x1, y1], fill=fill)
    return image


def _encode(image: Image.Image, fmt: str = "PNG", **kwargs) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **kwargs)
    return buffer.getvalue()


@pytest.fixture
def pattern_image() -> Callable[..., Image.Image]:
    return _pattern_image


@pytest.fixture
def encode_image() -> Callable[..., bytes]:
    return _encode


@pytest.fixture
def pattern_png() -> Callable[..., bytes]:
    def _make(seed: int, size: tuple[int, int] = (640, 400)) -> bytes:
        return _encode(_pattern_image(seed, size))

    return _make


@pytest.fixture
def solid_png() -> Callable[..., bytes]:
    def _make(color: tuple[int, int, int], size: tuple[int, int] = (640, 400)) -> bytes:
        return _encode(Image.new("RGB", size, color))

    return _make
