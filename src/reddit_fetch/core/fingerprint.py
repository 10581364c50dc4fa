"""Perceptual fingerprinting (core domain)."""

from __future__ import annotations

import imagehash
from PIL import Image

FINGERPRINT_BITS = 64
_HASH_SIZE = 8  # 8x8 DCT block -> 64 bits
_UNSIGNED_MASK = (1 << FINGERPRINT_BITS) - 1
_SIGN_BIT = 1 << (FINGERPRINT_BITS - 1)


def compute_fingerprint(image: Image.Image) -> int:
    """Return the 64-bit DCT perceptual hash of an image as an unsigned int."""

    phash = imagehash.phash(image, hash_size=_HASH_SIZE)
    return int(str(phash), 16)


def to_signed(fingerprint: int) -> int:
    """Map an unsigned 64-bit fingerprint onto SQLite's signed INTEGER range."""

    fingerprint &= _UNSIGNED_MASK
    if fingerprint & _SIGN_BIT:
        return fingerprint - (1 << FINGERPRINT_BITS)
    return fingerprint


def from_signed(value: int) -> int:
    """Inverse of to_signed."""

    return value & _UNSIGNED_MASK
