"""Download directory adapter.

Implements the core ImageSinkPort by writing accepted images under one
directory with names derived from the post title.
"""

from __future__ import annotations

import logging
import os

from reddit_fetch.core.models import CandidateImage

LOGGER = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 100
# Union of characters Windows, macOS and Linux refuse in file names.
_INVALID_CHARS = set('<>:"/\\|?*')


def make_safe_filename(title: str) -> str:
    """Replace characters that are illegal in file names and clip the length."""

    if not title or not title.strip():
        return "untitled"

    sanitized = "".join(
        "_" if ch in _INVALID_CHARS or not ch.isprintable() else ch
        for ch in title.strip()
    )
    sanitized = sanitized[:MAX_FILENAME_LENGTH].rstrip(" .")
    return sanitized or "untitled"


class DownloadDirectory:
    """Write image bytes into a single download folder."""

    def __init__(self, root: str) -> None:
        self._root = os.path.abspath(os.path.expanduser(root))

    def path_for(self, candidate: CandidateImage, extension: str) -> str:
        # The post id keeps two posts with the same title from overwriting.
        base = make_safe_filename(candidate.title)
        return os.path.join(self._root, f"{base} [{candidate.post_id}]{extension}")

    def save(self, candidate: CandidateImage, content: bytes, extension: str) -> str:
        """Write the image and return its absolute path."""

        os.makedirs(self._root, exist_ok=True)
        path = self.path_for(candidate, extension)
        with open(path, "wb") as handle:
            handle.write(content)
        return path

    def discard(self, path: str) -> None:
        """Remove a file written by `save`; missing files are ignored."""

        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            LOGGER.warning("Could not remove '%s': %s", path, exc)
