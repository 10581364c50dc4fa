"""Decode downloaded bytes into an RGB raster."""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from reddit_fetch.core.errors import DecodeError


def decode_image(content: bytes) -> Image.Image:
    """Return a fully loaded RGB image, or raise DecodeError."""

    if not content:
        raise DecodeError("empty image payload")
    try:
        with Image.open(io.BytesIO(content)) as img:
            # load() forces the full decode so truncated files fail here,
            # not later inside the quality filter.
            img.load()
            return img.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise DecodeError(str(exc)) from exc
    except (OSError, ValueError, SyntaxError) as exc:
        # PIL reports some broken chunk streams as SyntaxError.
        raise DecodeError(f"corrupt image data: {exc}") from exc
