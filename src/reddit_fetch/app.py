"""Application entry point for reddit-fetch."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

from reddit_fetch.adapters.file_sink import DownloadDirectory
from reddit_fetch.adapters.report_formatting import format_cycle_summary, format_source_row
from reddit_fetch.adapters.sqlite_storage import SQLiteStorage
from reddit_fetch.client import build_client
from reddit_fetch.core.errors import PersistenceError
from reddit_fetch.core.models import SourceOutcome
from reddit_fetch.core.processor import FetchOrchestrator
from reddit_fetch.settings import (
    Settings,
    add_source,
    load_json_config,
    load_settings,
    remove_source,
    save_json_config,
)

NAME = "REDDIT FETCH"
FONT = "small"

# --verbose 0/1/2 maps onto errors only, informational, everything.
VERBOSITY_LEVELS = {0: logging.ERROR, 1: logging.INFO, 2: logging.DEBUG}


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(settings: Settings, verbosity: Optional[int]) -> None:
    config = settings.logging_config or {}
    # An explicit --verbose always gets console output, even if config disables logging.
    if not config.get("enabled", False) and verbosity is None:
        return

    load_dotenv()
    if verbosity is not None:
        level = VERBOSITY_LEVELS.get(verbosity, logging.DEBUG)
    else:
        level_name = str(config.get("level", "INFO")).upper()
        level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True) or verbosity is not None:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/reddit-fetch.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.base_dir, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers, force=True)
    # httpx logs every request at INFO; keep that for -v 2 only.
    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)


async def _run_cycle(settings: Settings) -> list[SourceOutcome]:
    """Reconcile deletions, then poll every watched source once."""

    storage = SQLiteStorage(settings.database_path)
    async with build_client(settings.fetch.posts_per_source) as client:
        orchestrator = FetchOrchestrator(
            client=client,
            hash_store=storage,
            source_state=storage,
            sink=DownloadDirectory(settings.download_path),
            thresholds=settings.thresholds,
            fetch_config=settings.fetch,
        )
        # Deletions since the last run become negative feedback before any
        # new image is compared.
        orchestrator.reconcile()
        return await orchestrator.run_cycle(settings.sources)


def _run(settings: Settings) -> int:
    logger = logging.getLogger(__name__)

    if not settings.sources:
        print("No sources are being watched. Add one with: reddit-fetch add <subreddit>")
        return 0

    logger.info("Starting download operation for %s source(s)", len(settings.sources))
    try:
        outcomes = asyncio.run(_run_cycle(settings))
    except PersistenceError as exc:
        logger.error("Hash database unavailable: %s", exc)
        return 1

    print(format_cycle_summary(outcomes, settings.source_aliases))
    return 1 if any(outcome.failed for outcome in outcomes) else 0


def _watch(settings: Settings, interval_minutes: Optional[float]) -> int:
    logger = logging.getLogger(__name__)
    if interval_minutes is None:
        interval = settings.fetch.throttle_interval.total_seconds()
    else:
        interval = interval_minutes * 60
    interval = max(interval, 60.0)

    logger.info("Watching %s source(s), polling every %.0f minutes", len(settings.sources), interval / 60)
    try:
        while True:
            _run(settings)
            time.sleep(interval)
    except KeyboardInterrupt:
        logger.info("Stopped watching")
    return 0


def _reconcile(settings: Settings) -> int:
    storage = SQLiteStorage(settings.database_path)
    try:
        storage.ensure_ready()
        removed = storage.reconcile_with_filesystem()
        present, absent = storage.count_records()
    except PersistenceError as exc:
        logging.getLogger(__name__).error("Hash database unavailable: %s", exc)
        return 1
    print(f"Marked {removed} deleted image(s). Remembering {absent} disliked, {present} kept.")
    return 0


def _add(settings: Settings, name: str) -> int:
    config = load_json_config(settings.config_path)
    try:
        added = add_source(config, name)
    except ValueError as exc:
        print(str(exc))
        return 1
    save_json_config(settings.config_path, config)
    print(f"Now watching r/{added}")
    return 0


def _remove(settings: Settings, name: str) -> int:
    config = load_json_config(settings.config_path)
    try:
        removed = remove_source(config, name)
    except ValueError as exc:
        print(str(exc))
        return 1
    save_json_config(settings.config_path, config)

    storage = SQLiteStorage(settings.database_path)
    try:
        storage.ensure_ready()
        storage.delete_source(removed)
    except PersistenceError as exc:
        logging.getLogger(__name__).warning("Could not clear watermarks for %s: %s", removed, exc)
    print(f"Stopped watching r/{removed}")
    return 0


def _list(settings: Settings) -> int:
    if not settings.sources:
        print("No sources are being watched.")
        return 0

    storage = SQLiteStorage(settings.database_path)
    try:
        storage.ensure_ready()
        for name in settings.sources:
            print(format_source_row(storage.get_source(name), settings.source_aliases))
    except PersistenceError as exc:
        logging.getLogger(__name__).error("Hash database unavailable: %s", exc)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="reddit-fetch", description="Reddit image downloader")
    parser.add_argument("--config", help="Path to config.json (default: ./config.json)")
    parser.add_argument(
        "--verbose",
        "-v",
        type=int,
        choices=sorted(VERBOSITY_LEVELS),
        help="Verbosity level (0 = errors, 1 = info, 2 = verbose)",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Download new images from watched subreddits once")
    watch_parser = subparsers.add_parser("watch", help="Keep downloading on a fixed interval")
    watch_parser.add_argument(
        "--interval",
        type=float,
        help="Minutes between cycles (default: throttle_minutes from config)",
    )
    subparsers.add_parser("reconcile", help="Learn from images deleted since the last run")
    add_parser = subparsers.add_parser("add", help="Add a subreddit to watch")
    add_parser.add_argument("subreddit", help="Name of the subreddit to add")
    remove_parser = subparsers.add_parser("remove", help="Remove a subreddit from the watch list")
    remove_parser.add_argument("subreddit", help="Name of the subreddit to remove")
    subparsers.add_parser("list", help="List watched subreddits")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_settings(args.config)
    _configure_logging(settings, args.verbose)

    if args.command == "add":
        return _add(settings, args.subreddit)
    if args.command == "remove":
        return _remove(settings, args.subreddit)
    if args.command == "list":
        return _list(settings)
    if args.command == "reconcile":
        return _reconcile(settings)

    _print_banner()
    if args.command == "watch":
        return _watch(settings, args.interval)
    return _run(settings)


if __name__ == "__main__":
    raise SystemExit(main())
