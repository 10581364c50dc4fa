"""Helpers for working with watched source names."""

from __future__ import annotations

import re
from typing import Iterable

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 21
_NAME_PATTERN = re.compile(r"[A-Za-z0-9_]+")
_PREFIXES = ("/r/", "r/")


def normalize_source_name(raw_name: str) -> str:
    """Strip whitespace and a leading r/ so users can paste either form."""

    name = raw_name.strip()
    for prefix in _PREFIXES:
        if name.lower().startswith(prefix):
            name = name[len(prefix) :]
            break
    return name.rstrip("/")


def is_valid_source_name(name: str) -> bool:
    """Return True for 3-21 character names made of letters, digits and underscores."""

    if not name or not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        return False
    return bool(_NAME_PATTERN.fullmatch(name))


def dedupe_source_names(names: Iterable[str]) -> list[str]:
    """Drop case-insensitive repeats while preserving the first spelling and order."""

    seen: set[str] = set()
    unique: list[str] = []
    for name in names:
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(name)
    return unique
