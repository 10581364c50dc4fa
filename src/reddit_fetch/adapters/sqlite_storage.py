"""SQLite storage adapter.

Implements the core HashStorePort and SourceStatePort using a single SQLite
database. A connection is opened per operation; nothing assumes a persistent
connection.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from reddit_fetch.core.errors import PersistenceError
from reddit_fetch.core.fingerprint import from_signed, to_signed
from reddit_fetch.core.models import EPOCH, HashRecord, WatchedSource

LOGGER = logging.getLogger(__name__)


def _parse_time(value: Optional[str]) -> datetime:
    if not value:
        return EPOCH
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the hash store and source state ports."""

    def __init__(self, db_path: str, file_exists: Callable[[str], bool] = os.path.exists) -> None:
        self._db_path = db_path
        self._file_exists = file_exists
        # Single-writer discipline when sources are processed concurrently.
        self._write_lock = threading.Lock()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot open {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            # The connection context manager commits on success and rolls
            # back on error; it does not close.
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc
        finally:
            conn.close()

    def ensure_ready(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - image_hashes: fingerprints of accepted images and whether the file
          is still on disk
        - sources_state: per-source watermarks
        """

        if self._db_path != ":memory:" and not os.path.exists(self._db_path):
            LOGGER.info("Creating new hash database at %s", self._db_path)
            directory = os.path.dirname(self._db_path)
            if directory:
                try:
                    os.makedirs(directory, exist_ok=True)
                except OSError as exc:
                    raise PersistenceError(f"cannot create {directory}: {exc}") from exc

        with self._write_lock, self._connect() as conn:
            # image_hashes is append-only; rows are never deleted and the
            # still_present flag only ever goes from 1 to 0.
            # Fields:
            # - id: surrogate key
            # - filename: path of the saved file the fingerprint came from
            # - fingerprint: 64-bit perceptual hash stored as signed INTEGER
            # - still_present: 0 once reconciliation found the file deleted
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS image_hashes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    filename TEXT NOT NULL,
                    fingerprint INTEGER NOT NULL,
                    still_present INTEGER NOT NULL DEFAULT 1,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_image_hashes_present ON image_hashes (still_present)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_image_hashes_filename ON image_hashes (filename)"
            )
            # sources_state keeps both watermarks per source so a restart
            # neither re-polls too early nor re-downloads old posts.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sources_state (
                    name TEXT PRIMARY KEY,
                    last_check_time TIMESTAMP NOT NULL,
                    last_post_time TIMESTAMP NOT NULL
                )
                """
            )

    def insert(self, filename: str, fingerprint: int) -> int:
        """Append a fingerprint record for a newly saved file and return its id."""

        created_at = datetime.now(timezone.utc)
        with self._write_lock, self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO image_hashes (filename, fingerprint, still_present, created_at)
                VALUES (?, ?, 1, ?)
                """,
                (filename, to_signed(fingerprint), created_at.isoformat()),
            )
            record_id = int(cur.lastrowid)
        LOGGER.debug("Inserted new image hash for '%s'", filename)
        return record_id

    def mark_absent(self, filename: str) -> int:
        """Flag records for a filename as deleted; return the number changed."""

        with self._write_lock, self._connect() as conn:
            cur = conn.execute(
                "UPDATE image_hashes SET still_present = 0 WHERE filename = ? AND still_present = 1",
                (filename,),
            )
            changed = cur.rowcount
        if changed:
            LOGGER.debug("Marked '%s' as deleted", filename)
        return changed

    def all_absent_fingerprints(self) -> Iterator[int]:
        """Yield fingerprints of images the user deleted."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT fingerprint FROM image_hashes WHERE still_present = 0"
            ).fetchall()
        for row in rows:
            yield from_signed(int(row["fingerprint"]))

    def reconcile_with_filesystem(self) -> int:
        """Mark every present record whose file is gone; return how many were marked."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT DISTINCT filename FROM image_hashes WHERE still_present = 1"
            ).fetchall()

        removed = 0
        for row in rows:
            filename = row["filename"]
            if self._file_exists(filename):
                continue
            changed = self.mark_absent(filename)
            if changed:
                LOGGER.info("'%s' was deleted, remembering it as disliked", filename)
                removed += changed
        return removed

    def get_record(self, filename: str) -> Optional[HashRecord]:
        """Return the newest record stored for a filename, if any."""

        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT id, filename, fingerprint, still_present
                FROM image_hashes WHERE filename = ?
                ORDER BY id DESC LIMIT 1
                """,
                (filename,),
            ).fetchone()
        if row is None:
            return None
        return HashRecord(
            id=int(row["id"]),
            filename=row["filename"],
            fingerprint=from_signed(int(row["fingerprint"])),
            still_present=bool(row["still_present"]),
        )

    def count_records(self) -> tuple[int, int]:
        """Return (present, absent) record counts."""

        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT
                    COALESCE(SUM(CASE WHEN still_present = 1 THEN 1 ELSE 0 END), 0) AS present,
                    COALESCE(SUM(CASE WHEN still_present = 0 THEN 1 ELSE 0 END), 0) AS absent
                FROM image_hashes
                """
            ).fetchone()
        return int(row["present"]), int(row["absent"])

    def get_source(self, name: str) -> WatchedSource:
        """Return stored watermarks for a source, or a fresh source at the epoch."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT name, last_check_time, last_post_time FROM sources_state WHERE name = ?",
                (name,),
            ).fetchone()
        if row is None:
            return WatchedSource(name=name)
        return WatchedSource(
            name=row["name"],
            last_check_time=_parse_time(row["last_check_time"]),
            last_post_time=_parse_time(row["last_post_time"]),
        )

    def save_source(self, source: WatchedSource) -> None:
        """Upsert the watermarks for a source."""

        with self._write_lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO sources_state (name, last_check_time, last_post_time)
                VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    last_check_time = excluded.last_check_time,
                    last_post_time = excluded.last_post_time
                """,
                (
                    source.name,
                    source.last_check_time.isoformat(),
                    source.last_post_time.isoformat(),
                ),
            )

    def list_sources(self) -> list[WatchedSource]:
        """Return every source with stored watermarks."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT name, last_check_time, last_post_time FROM sources_state ORDER BY name"
            ).fetchall()
        return [
            WatchedSource(
                name=row["name"],
                last_check_time=_parse_time(row["last_check_time"]),
                last_post_time=_parse_time(row["last_post_time"]),
            )
            for row in rows
        ]

    def delete_source(self, name: str) -> None:
        """Forget the watermarks of a source that is no longer watched."""

        with self._write_lock, self._connect() as conn:
            conn.execute("DELETE FROM sources_state WHERE name = ?", (name,))
