"""Reddit-to-core post mapping adapter.

This keeps Reddit listing JSON details out of the core pipeline.
"""

from __future__ import annotations

import html
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from reddit_fetch.core.models import CandidateImage

LOGGER = logging.getLogger(__name__)


def _created_at(post: dict[str, Any]) -> Optional[datetime]:
    raw = post.get("created_utc")
    if raw is None:
        return None
    try:
        return datetime.fromtimestamp(float(raw), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _image_url(post: dict[str, Any]) -> str:
    # Listing URLs are HTML-escaped (&amp;) when they carry query strings.
    url = post.get("url_overridden_by_dest") or post.get("url") or ""
    return html.unescape(str(url))


def build_candidate(post: dict[str, Any]) -> Optional[CandidateImage]:
    """Build a CandidateImage from one listing child's `data` object."""

    post_id = post.get("id")
    created_at = _created_at(post)
    if not post_id or created_at is None:
        return None

    return CandidateImage(
        post_id=str(post_id),
        title=str(post.get("title") or ""),
        url=_image_url(post),
        media_hint=post.get("post_hint"),
        created_at=created_at,
        is_video=bool(post.get("is_video", False)),
    )


def parse_listing(payload: dict[str, Any]) -> list[CandidateImage]:
    """Map a `/r/<name>/new` listing response to candidates.

    Children without an id or creation time are dropped with a debug log
    rather than failing the whole listing.
    """

    data = payload.get("data") if isinstance(payload, dict) else None
    children = data.get("children") if isinstance(data, dict) else None
    if not isinstance(children, list):
        raise ValueError("listing payload has no data.children list")

    candidates: list[CandidateImage] = []
    for child in children:
        post = child.get("data") if isinstance(child, dict) else None
        if not isinstance(post, dict):
            continue
        candidate = build_candidate(post)
        if candidate is None:
            LOGGER.debug("Dropping malformed listing entry: %r", post.get("id"))
            continue
        candidates.append(candidate)
    return candidates
