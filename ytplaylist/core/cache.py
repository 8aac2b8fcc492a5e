"""
On-disk response cache for the MusicBrainz client.

MusicBrainz and Cover Art Archive data barely changes, and the service
only allows one request per second, so successful responses (and 404
answers, stored with a marker content type) are kept in a small SQLite
file for weeks. A cached entry older than the TTL is treated as missing
and overwritten by the next fetch.

Schema:
    responses:  url (primary key), body (BLOB), content_type, fetched_at (unix time)

Usage:
    cache = ResponseCache(Path("~/.cache/ytplaylist/musicbrainz.db"), ttl_days=30)
    body = cache.get(url)
    if body is None:
        body = fetch(url)
        cache.put(url, body)
"""

import sqlite3
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Generator

from ytplaylist.core.exceptions import CacheError
from ytplaylist.core.logger import get_logger

logger = get_logger(__name__)


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS responses (
    url TEXT PRIMARY KEY,
    body BLOB NOT NULL,
    content_type TEXT,
    fetched_at REAL NOT NULL
);
"""

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class CachedResponse:
    body: bytes
    content_type: str | None
    fetched_at: float


class ResponseCache:
    """
    Thread-safe SQLite key/value store for HTTP response bodies.

    Uses a single persistent connection guarded by a lock, so the async
    client can call it through asyncio.to_thread().
    """

    def __init__(self, db_path: Path, ttl_days: int = 30) -> None:
        self.db_path = db_path
        self.ttl_seconds = ttl_days * SECONDS_PER_DAY
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._get_connection() as conn:
                conn.executescript(_SCHEMA_SQL)
                conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise CacheError(
                f"Failed to open response cache: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # guarded by _lock
            )
        yield self._conn

    def get(self, url: str, now: float | None = None) -> CachedResponse | None:
        """Return the cached response for `url`, or None if absent or expired."""
        now = time.time() if now is None else now
        with self._lock, self._get_connection() as conn:
            try:
                row = conn.execute(
                    "SELECT body, content_type, fetched_at FROM responses WHERE url = ?",
                    (url,)
                ).fetchone()
            except sqlite3.Error as e:
                logger.warning(f"Response cache read failed: {e}")
                return None

        if row is None:
            return None
        body, content_type, fetched_at = row
        if now - fetched_at > self.ttl_seconds:
            logger.debug(f"Cache entry expired: {url}")
            return None
        return CachedResponse(body=bytes(body), content_type=content_type, fetched_at=fetched_at)

    def put(
        self,
        url: str,
        body: bytes,
        content_type: str | None = None,
        now: float | None = None
    ) -> None:
        """Store (or replace) the response body for `url`."""
        now = time.time() if now is None else now
        with self._lock, self._get_connection() as conn:
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO responses (url, body, content_type, fetched_at) "
                    "VALUES (?, ?, ?, ?)",
                    (url, sqlite3.Binary(body), content_type, now)
                )
                conn.commit()
            except sqlite3.Error as e:
                # A failed write only costs a refetch next time
                logger.warning(f"Response cache write failed: {e}")

    def purge_expired(self, now: float | None = None) -> int:
        """Delete expired entries. Returns the number of rows removed."""
        now = time.time() if now is None else now
        with self._lock, self._get_connection() as conn:
            try:
                cursor = conn.execute(
                    "DELETE FROM responses WHERE fetched_at < ?",
                    (now - self.ttl_seconds,)
                )
                conn.commit()
            except sqlite3.Error as e:
                logger.warning(f"Response cache cleanup failed: {e}")
                return 0
            return cursor.rowcount

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
