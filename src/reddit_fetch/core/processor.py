"""Core fetch pipeline.

This module is integration-agnostic. It only relies on ports for content,
storage and the download directory, enabling other sources or backends
without changes here.

Per source and cycle the order is strict:
1) Throttle check (skip the source entirely when it is not due)
2) Fetch candidates
3) Watermark cutoff, then per candidate: image check, download, media type,
   decode, quality filter, fingerprint, dedup
4) Accept: write the file, then persist the fingerprint
5) Commit the refreshed watermarks
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from reddit_fetch.core.config import FetchConfig, QualityThresholds
from reddit_fetch.core.dedup import is_duplicate
from reddit_fetch.core.errors import (
    DecodeError,
    PersistenceError,
    TransientFetchError,
    UnsupportedFormatError,
)
from reddit_fetch.core.fingerprint import compute_fingerprint
from reddit_fetch.core.imaging import decode_image
from reddit_fetch.core.models import CandidateImage, SourceOutcome
from reddit_fetch.core.ports import ContentClientPort, HashStorePort, ImageSinkPort, SourceStatePort
from reddit_fetch.core.quality import check_quality
from reddit_fetch.core.watermark import WatermarkCycle, WatermarkTracker

LOGGER = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FetchOrchestrator:
    """Orchestrates filtering, fingerprinting, dedup, download and watermarks."""

    def __init__(
        self,
        client: ContentClientPort,
        hash_store: HashStorePort,
        source_state: SourceStatePort,
        sink: ImageSinkPort,
        thresholds: QualityThresholds,
        fetch_config: FetchConfig,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._client = client
        self._hash_store = hash_store
        self._source_state = source_state
        self._sink = sink
        self._thresholds = thresholds
        self._config = fetch_config
        self._tracker = WatermarkTracker(fetch_config.throttle_interval)
        self._clock = clock

    async def run_cycle(self, sources: Iterable[str]) -> list[SourceOutcome]:
        """Process every due source once and return one outcome per source.

        Sources run concurrently up to `max_concurrent_sources`; each task is
        the only writer of its own source's watermarks.
        """

        names = list(sources)
        semaphore = asyncio.Semaphore(max(1, self._config.max_concurrent_sources))

        async def _bounded(name: str) -> SourceOutcome:
            async with semaphore:
                return await self.process_source(name)

        return list(await asyncio.gather(*(_bounded(name) for name in names)))

    def reconcile(self) -> int:
        """Mark records whose files were deleted; return how many were newly marked."""

        self._hash_store.ensure_ready()
        removed = self._hash_store.reconcile_with_filesystem()
        LOGGER.info("Reconciliation marked %s deleted image(s)", removed)
        return removed

    async def process_source(self, name: str) -> SourceOutcome:
        """Run one cycle for a single source."""

        outcome = SourceOutcome(source=name)

        # Store unavailability at cycle start is the only fatal case; nothing
        # is mutated so the source is simply retried next cycle.
        try:
            self._hash_store.ensure_ready()
            source = self._source_state.get_source(name)
        except PersistenceError as exc:
            LOGGER.error("Storage unavailable for %s: %s", name, exc)
            outcome.error = f"storage unavailable: {exc}"
            return outcome

        now = self._clock()
        if not self._tracker.is_due(source, now):
            LOGGER.debug(
                "Skipping %s, next check due at %s",
                name,
                self._tracker.next_due(source).isoformat(),
            )
            return outcome

        outcome.checked = True
        cycle = self._tracker.begin_cycle(source)

        try:
            candidates = list(await self._client.fetch_candidates(name))
        except TransientFetchError as exc:
            LOGGER.warning("Fetching %s failed: %s", name, exc)
            outcome.error = f"fetch failed: {exc}"
            candidates = []
        except Exception as exc:
            LOGGER.exception("Unexpected error while fetching %s", name)
            outcome.error = f"unexpected error: {exc}"
            candidates = []

        await self._process_candidates(name, candidates, cycle, outcome)

        # The check time advances whatever happened above so a failing source
        # cannot be polled in a tight loop.
        updated = cycle.finish(self._clock())
        try:
            self._source_state.save_source(updated)
        except PersistenceError as exc:
            LOGGER.error("Could not save watermarks for %s: %s", name, exc)
            outcome.error = outcome.error or f"storage unavailable: {exc}"

        LOGGER.info(
            "Checked %s: %s accepted, %s rejected, %s already seen",
            name,
            outcome.accepted,
            outcome.rejected,
            outcome.skipped,
        )
        return outcome

    async def _process_candidates(
        self,
        name: str,
        candidates: list[CandidateImage],
        cycle: WatermarkCycle,
        outcome: SourceOutcome,
    ) -> None:
        # Feeds are not trusted to be ordered; oldest-first keeps the
        # watermark cutoff safe and lets a persistence failure stop cleanly.
        for candidate in sorted(candidates, key=lambda item: item.created_at):
            if not cycle.is_new(candidate):
                outcome.skipped += 1
                continue

            try:
                accepted = await self.evaluate(candidate)
            except PersistenceError as exc:
                # Leave this candidate and everything newer above the
                # watermark so a future cycle retries them.
                LOGGER.error("Storage failed while accepting %s from %s: %s", candidate.post_id, name, exc)
                outcome.error = f"storage unavailable: {exc}"
                cycle.stop_before(candidate)
                return
            except Exception as exc:
                LOGGER.exception("Unexpected error while evaluating %s from %s", candidate.post_id, name)
                outcome.error = f"unexpected error: {exc}"
                cycle.stop_before(candidate)
                return

            if accepted:
                cycle.accept(candidate)
                outcome.accepted += 1
            else:
                outcome.rejected += 1

    async def evaluate(self, candidate: CandidateImage) -> bool:
        """Return True if the candidate was accepted and saved.

        All per-candidate failures become a rejection; only PersistenceError
        propagates.
        """

        if not candidate.is_image_post:
            LOGGER.debug("Skipping %s, not an image post (%s)", candidate.post_id, candidate.media_hint)
            return False

        try:
            media = await self._client.download(candidate.url)
            extension = self._extension_for(media.media_type)
            image = decode_image(media.content)
        except TransientFetchError as exc:
            LOGGER.warning("Download of %s failed: %s", candidate.url, exc)
            return False
        except UnsupportedFormatError as exc:
            LOGGER.info("Unsupported image type for %s (%s), skipping", candidate.post_id, exc)
            return False
        except DecodeError as exc:
            LOGGER.debug("Rejected %s, could not decode image: %s", candidate.post_id, exc)
            return False

        verdict = check_quality(image, self._thresholds)
        if not verdict.accepted:
            LOGGER.debug("Rejected %s due to %s", candidate.post_id, verdict.reason)
            return False

        fingerprint = compute_fingerprint(image)
        absent = self._hash_store.all_absent_fingerprints()
        if is_duplicate(fingerprint, absent, self._thresholds.duplicate_threshold):
            LOGGER.debug("Rejected %s due to similarity to a deleted image", candidate.post_id)
            return False

        try:
            path = self._sink.save(candidate, media.content, extension)
        except OSError as exc:
            LOGGER.error("Could not write %s: %s", candidate.post_id, exc)
            return False

        # The file is written first so no present record ever points at a
        # missing file (reconciliation would read that as a deletion).
        try:
            self._hash_store.insert(path, fingerprint)
        except PersistenceError:
            self._sink.discard(path)
            raise

        LOGGER.info("Image downloaded and saved to '%s'", path)
        return True

    def _extension_for(self, media_type: Optional[str]) -> str:
        extension = self._config.media_types.get(media_type or "")
        if not extension:
            raise UnsupportedFormatError(media_type or "unknown")
        return extension
