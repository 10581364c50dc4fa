"""Configuration loading for reddit-fetch.

All user-editable settings (sources, quality limits, throttling, logging) live
in a single JSON file for quick edits without touching Python. Secrets stay in
the environment (.env). Nothing is read at import time; the app loads a
`Settings` value once and threads it into the components it builds.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional

from reddit_fetch.core.config import DEFAULT_MEDIA_TYPES, FetchConfig, QualityThresholds
from reddit_fetch.core.source_names import (
    dedupe_source_names,
    is_valid_source_name,
    normalize_source_name,
)

LOGGER = logging.getLogger(__name__)

# config.json sits in the working directory unless REDDIT_FETCH_CONFIG says otherwise.
CONFIG_ENV_VAR = "REDDIT_FETCH_CONFIG"
DEFAULT_CONFIG_FILENAME = "config.json"

DEFAULT_CONFIG: dict[str, Any] = {
    "download_path": os.path.join("~", "Downloads", "reddit-fetch"),
    "database_path": "hashes.db",
    "throttle_minutes": 30,
    "posts_per_source": 10,
    "max_concurrent_sources": 1,
    "sources": [],
    "quality": {
        "min_aspect_ratio": 1.2,
        "max_aspect_ratio": 2.5,
        "min_megapixels": 1.0,
        "min_brightness": 0.1,
        "max_brightness": 0.9,
        "duplicate_threshold": 6,
    },
    "logging": {
        "enabled": True,
        "level": "INFO",
        "console": True,
        "file": {"enabled": False, "path": "logs/reddit-fetch.log"},
        "redact": {"enabled": True, "patterns": ["REDDIT_CLIENT_SECRET"]},
    },
}


@dataclass(frozen=True)
class Settings:
    """Everything the app needs, resolved from config.json."""

    config_path: str
    download_path: str
    database_path: str
    sources: list[str]
    source_aliases: dict[str, str]
    thresholds: QualityThresholds
    fetch: FetchConfig
    logging_config: dict[str, Any] = field(default_factory=dict)

    @property
    def base_dir(self) -> str:
        return os.path.dirname(os.path.abspath(self.config_path))


def default_config_path() -> str:
    return os.path.abspath(os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILENAME)


def load_json_config(path: str) -> dict:
    """Load config.json, writing the default config first if it is missing."""

    if not os.path.exists(path):
        LOGGER.info("Config file not found at '%s', creating default configuration", path)
        save_json_config(path, copy.deepcopy(DEFAULT_CONFIG))

    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def save_json_config(path: str, config: dict) -> None:
    """Write config.json with stable, human-friendly formatting."""

    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(json.dumps(config, indent=2, ensure_ascii=True) + "\n")
    LOGGER.info("Configuration saved to '%s'", path)


def _normalize_sources(raw_sources: list[Any]) -> tuple[list[str], dict[str, str]]:
    """Normalize enabled sources and build an alias map keyed by source name."""

    names: list[str] = []
    aliases: dict[str, str] = {}
    for entry in raw_sources:
        # Bare strings are accepted as shorthand for {"name": ...}.
        if isinstance(entry, str):
            entry = {"name": entry}
        if not isinstance(entry, dict):
            continue
        name = normalize_source_name(str(entry.get("name", "")))
        if not entry.get("enabled", True):
            continue
        if not is_valid_source_name(name):
            LOGGER.warning("Ignoring invalid source name %r", entry.get("name"))
            continue
        names.append(name)
        alias = entry.get("alias")
        if alias:
            aliases[name] = str(alias)
    return dedupe_source_names(names), aliases


def _entry_name(entry: Any) -> Optional[str]:
    if isinstance(entry, str):
        return normalize_source_name(entry)
    if isinstance(entry, dict):
        return normalize_source_name(str(entry.get("name", "")))
    return None


def _resolve_path(base_dir: str, value: str) -> str:
    path = os.path.expanduser(value)
    if not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    return os.path.abspath(path)


def build_settings(config: dict, config_path: str) -> Settings:
    """Turn the raw JSON dict into typed settings, filling in defaults."""

    base_dir = os.path.dirname(os.path.abspath(config_path))
    quality = {**DEFAULT_CONFIG["quality"], **(config.get("quality") or {})}
    thresholds = QualityThresholds(
        min_aspect_ratio=float(quality["min_aspect_ratio"]),
        max_aspect_ratio=float(quality["max_aspect_ratio"]),
        min_megapixels=float(quality["min_megapixels"]),
        min_brightness=float(quality["min_brightness"]),
        max_brightness=float(quality["max_brightness"]),
        duplicate_threshold=int(quality["duplicate_threshold"]),
    )

    media_types = config.get("media_types") or DEFAULT_MEDIA_TYPES
    fetch = FetchConfig(
        throttle_interval=timedelta(
            minutes=float(config.get("throttle_minutes", DEFAULT_CONFIG["throttle_minutes"]))
        ),
        posts_per_source=int(config.get("posts_per_source", DEFAULT_CONFIG["posts_per_source"])),
        max_concurrent_sources=int(
            config.get("max_concurrent_sources", DEFAULT_CONFIG["max_concurrent_sources"])
        ),
        media_types={str(k).lower(): str(v) for k, v in media_types.items()},
    )

    sources, aliases = _normalize_sources(config.get("sources", []))

    return Settings(
        config_path=os.path.abspath(config_path),
        download_path=_resolve_path(
            base_dir, config.get("download_path") or DEFAULT_CONFIG["download_path"]
        ),
        database_path=_resolve_path(
            base_dir, config.get("database_path") or DEFAULT_CONFIG["database_path"]
        ),
        sources=sources,
        source_aliases=aliases,
        thresholds=thresholds,
        fetch=fetch,
        logging_config=config.get("logging", {}),
    )


def load_settings(config_path: Optional[str] = None) -> Settings:
    path = config_path or default_config_path()
    return build_settings(load_json_config(path), path)


def add_source(config: dict, raw_name: str) -> str:
    """Add a source to the raw config; return the normalized name.

    Raises ValueError for invalid names or sources already watched.
    """

    name = normalize_source_name(raw_name)
    if not is_valid_source_name(name):
        raise ValueError(
            f"'{raw_name}' is not a valid subreddit name (3-21 letters, digits or underscores)"
        )

    sources = config.setdefault("sources", [])
    for entry in sources:
        existing = _entry_name(entry)
        if existing is not None and existing.lower() == name.lower():
            raise ValueError(f"r/{name} is already watched")

    sources.append({"name": name, "enabled": True})
    return name


def remove_source(config: dict, raw_name: str) -> str:
    """Remove a source from the raw config; return the removed name.

    Raises ValueError when the source is not in the config.
    """

    name = normalize_source_name(raw_name)
    sources = config.get("sources", [])
    for index, entry in enumerate(sources):
        existing = _entry_name(entry)
        if existing is not None and existing.lower() == name.lower():
            del sources[index]
            return existing
    raise ValueError(f"r/{name} is not watched")
