from __future__ import annotations

from typing import Iterator

import pytest

from reddit_fetch.core.dedup import hamming_distance, is_duplicate

STORED = 0xFF00000000000000


def _flip_bits(value: int, count: int) -> int:
    # Flip the lowest `count` bits, all of which are zero in STORED.
    return value ^ ((1 << count) - 1)


@pytest.mark.parametrize(
    "a,b",
    [
        (0, 0),
        (0, 1),
        (STORED, 0x00000000000000FF),
        (0xFFFFFFFFFFFFFFFF, 0),
        (0x0123456789ABCDEF, 0xFEDCBA9876543210),
    ],
)
def test_hamming_distance_is_symmetric(a: int, b: int) -> None:
    assert hamming_distance(a, b) == hamming_distance(b, a)


def test_hamming_distance_zero_only_for_identical_values() -> None:
    assert hamming_distance(STORED, STORED) == 0
    assert hamming_distance(STORED, STORED ^ (1 << 63)) == 1
    assert hamming_distance(0xFFFFFFFFFFFFFFFF, 0) == 64


def test_five_bits_away_is_duplicate() -> None:
    candidate = _flip_bits(STORED, 5)
    assert hamming_distance(candidate, STORED) == 5
    assert is_duplicate(candidate, [STORED], threshold=6)


def test_seven_bits_away_is_unique() -> None:
    candidate = _flip_bits(STORED, 7)
    assert hamming_distance(candidate, STORED) == 7
    assert not is_duplicate(candidate, [STORED], threshold=6)


def test_threshold_is_inclusive() -> None:
    candidate = _flip_bits(STORED, 6)
    assert is_duplicate(candidate, [STORED], threshold=6)


def test_empty_absent_set_is_unique() -> None:
    assert not is_duplicate(STORED, [], threshold=6)


def test_scan_stops_at_first_match() -> None:
    def absent() -> Iterator[int]:
        yield STORED
        raise AssertionError("scan continued after a match")

    assert is_duplicate(STORED, absent(), threshold=0)
