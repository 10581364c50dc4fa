"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class WatchedSource:
    """Per-source watermarks: last poll attempt and newest accepted post."""

    name: str
    last_check_time: datetime = EPOCH
    last_post_time: datetime = EPOCH

    def with_times(self, last_check_time: datetime, last_post_time: datetime) -> "WatchedSource":
        return replace(self, last_check_time=last_check_time, last_post_time=last_post_time)


@dataclass(frozen=True)
class CandidateImage:
    """A post from one fetch; never persisted."""

    post_id: str
    title: str
    url: str
    media_hint: Optional[str]
    created_at: datetime
    is_video: bool = False

    @property
    def is_image_post(self) -> bool:
        return self.media_hint == "image" and not self.is_video and bool(self.url)


@dataclass(frozen=True)
class DownloadedMedia:
    """Raw bytes returned by a download with the declared content type."""

    content: bytes
    content_type: Optional[str]

    @property
    def media_type(self) -> Optional[str]:
        """Return the bare MIME type (no parameters), lowercased."""

        if not self.content_type:
            return None
        return self.content_type.split(";", 1)[0].strip().lower() or None


@dataclass(frozen=True)
class HashRecord:
    """Persisted fingerprint of an accepted image."""

    id: int
    filename: str
    fingerprint: int
    still_present: bool


@dataclass
class SourceOutcome:
    """Summary of one source's cycle, reported back to the shell."""

    source: str
    checked: bool = False
    accepted: int = 0
    rejected: int = 0
    skipped: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None
