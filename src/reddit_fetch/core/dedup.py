"""Deduplication helpers (core domain).

Only fingerprints of images the user removed from disk are compared against.
Kept images never cause a rejection; the store remembers them only so a later
deletion can turn them into negative feedback.
"""

from __future__ import annotations

import logging
from typing import Iterable

LOGGER = logging.getLogger(__name__)


def hamming_distance(a: int, b: int) -> int:
    """Number of differing bits between two fingerprints."""

    return bin(a ^ b).count("1")


def is_duplicate(fingerprint: int, absent_fingerprints: Iterable[int], threshold: int) -> bool:
    """Return True if any absent fingerprint is within `threshold` bits.

    The match is inclusive (distance <= threshold) and the scan stops at the
    first hit.
    """

    for known in absent_fingerprints:
        distance = hamming_distance(fingerprint, known)
        if distance <= threshold:
            LOGGER.debug("Found similar deleted image (distance %s)", distance)
            return True
    return False
