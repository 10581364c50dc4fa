"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, content and filesystem
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Iterator, Optional, Protocol, Sequence

from reddit_fetch.core.models import CandidateImage, DownloadedMedia, HashRecord, WatchedSource


class HashStorePort(Protocol):
    """Fingerprint memory. Every write is committed before returning."""

    def ensure_ready(self) -> None:
        ...

    def insert(self, filename: str, fingerprint: int) -> int:
        ...

    def mark_absent(self, filename: str) -> int:
        ...

    def all_absent_fingerprints(self) -> Iterator[int]:
        ...

    def reconcile_with_filesystem(self) -> int:
        ...

    def get_record(self, filename: str) -> Optional[HashRecord]:
        ...


class SourceStatePort(Protocol):
    """Watermark persistence, keyed by source name."""

    def get_source(self, name: str) -> WatchedSource:
        ...

    def save_source(self, source: WatchedSource) -> None:
        ...

    def list_sources(self) -> list[WatchedSource]:
        ...


class ContentClientPort(Protocol):
    """Remote content operations. Failures raise TransientFetchError."""

    async def fetch_candidates(self, source_name: str) -> Sequence[CandidateImage]:
        ...

    async def download(self, url: str) -> DownloadedMedia:
        ...


class ImageSinkPort(Protocol):
    """Where accepted images are written."""

    def save(self, candidate: CandidateImage, content: bytes, extension: str) -> str:
        ...

    def discard(self, path: str) -> None:
        ...
