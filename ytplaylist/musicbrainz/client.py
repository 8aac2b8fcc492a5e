"""
MusicBrainz web service client.

Talks to the MusicBrainz JSON API (ws/2) and the Cover Art Archive.

Every request goes through three layers, in this order:
    1. ResponseCache: catalog data is near-static, responses (404s
       included) are reused for weeks
    2. RateLimiter: one request per second, shared by the whole process
    3. Retry: transient failures (503 throttling, 5xx, timeouts, dropped
       connections) are retried with a fixed backoff; the gate is
       released while waiting

API Reference:
    https://musicbrainz.org/doc/MusicBrainz_API
    https://musicbrainz.org/doc/MusicBrainz_API/Search

Usage:
    client = MusicBrainzClient(session, RateLimiter(1.0), cache=cache)
    artists = await client.search_artists("Queen", scope)
"""

import asyncio
import json
from typing import Any
from urllib.parse import urlencode

import aiohttp

from ytplaylist import __version__
from ytplaylist.core.cache import ResponseCache
from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.core.config import DEFAULT_CONTACT
from ytplaylist.core.exceptions import CatalogError
from ytplaylist.core.logger import get_logger
from ytplaylist.musicbrainz.models import (
    ArtistCandidate,
    RecordingCandidate,
    ReleaseGroupDetail,
)
from ytplaylist.musicbrainz.rate_limiter import RateLimiter

logger = get_logger(__name__)


API_BASE_URL = "https://musicbrainz.org/ws/2"
COVER_ART_URL = "https://coverartarchive.org/release/{release_id}/front"

TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})

# Stored in place of a body for 404 answers
NOT_FOUND_CONTENT_TYPE = "x-ytplaylist/not-found"


def lucene_quote(term: str) -> str:
    """Quote a term for a Lucene phrase query."""
    escaped = term.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_user_agent(contact: str = DEFAULT_CONTACT) -> str:
    """MusicBrainz requires 'Application/Version ( contact )'."""
    return f"ytplaylist/{__version__} ( {contact} )"


class MusicBrainzClient:
    """
    Async MusicBrainz client with caching, rate limiting and retries.

    Attributes:
        _session: Shared aiohttp session (owned by the caller).
        _rate_limiter: Process-wide request gate.
        _cache: Optional on-disk response cache.
        _search_limit: Results requested per search.
        _max_attempts: Attempts per request on transient failures.
        _retry_backoff: Seconds between attempts.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        rate_limiter: RateLimiter,
        cache: ResponseCache | None = None,
        user_agent: str | None = None,
        search_limit: int = 2,
        max_attempts: int = 4,
        retry_backoff: float = 4.0,
        base_url: str = API_BASE_URL,
    ) -> None:
        self._session = session
        self._rate_limiter = rate_limiter
        self._cache = cache
        self._headers = {
            "User-Agent": user_agent or build_user_agent(),
            "Accept": "application/json",
        }
        self._search_limit = search_limit
        self._max_attempts = max_attempts
        self._retry_backoff = retry_backoff
        self._base_url = base_url.rstrip("/")

    # --- transport ---------------------------------------------------------

    async def _fetch(self, url: str, scope: CancellationScope) -> bytes | None:
        """
        GET `url` and return the body, or None on 404.

        Cache reads and writes run in a worker thread.

        Raises:
            CatalogError: After exhausting retries, or on a non-transient
                          HTTP error.
            JobCancelled: If the scope is cancelled between attempts.
        """
        if self._cache is not None:
            cached = await asyncio.to_thread(self._cache.get, url)
            if cached is not None:
                logger.debug(f"MusicBrainz cache hit: {url}")
                if cached.content_type == NOT_FOUND_CONTENT_TYPE:
                    return None
                return cached.body

        last_error: CatalogError | None = None

        for attempt in range(1, self._max_attempts + 1):
            scope.raise_if_cancelled()

            async with self._rate_limiter:
                try:
                    async with self._session.get(url, headers=self._headers) as response:
                        if response.status == 404:
                            await self._store(url, b"", NOT_FOUND_CONTENT_TYPE)
                            return None
                        if response.status in TRANSIENT_STATUSES:
                            last_error = CatalogError(
                                f"MusicBrainz returned HTTP {response.status}",
                                details={"url": url},
                                status_code=response.status,
                                transient=True,
                            )
                        elif response.status >= 400:
                            raise CatalogError(
                                f"MusicBrainz returned HTTP {response.status}",
                                details={"url": url},
                                status_code=response.status,
                            )
                        else:
                            body = await response.read()
                            await self._store(url, body, response.content_type)
                            return body
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    last_error = CatalogError(
                        f"MusicBrainz request failed: {e or type(e).__name__}",
                        details={"url": url},
                        transient=True,
                    )

            if attempt < self._max_attempts:
                logger.debug(
                    f"{last_error.message}, retrying in {self._retry_backoff:.0f}s "
                    f"(attempt {attempt}/{self._max_attempts})"
                )
                await scope.sleep(self._retry_backoff)

        assert last_error is not None
        raise last_error

    async def _store(self, url: str, body: bytes, content_type: str | None) -> None:
        if self._cache is not None:
            await asyncio.to_thread(self._cache.put, url, body, content_type)

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any],
        scope: CancellationScope
    ) -> dict[str, Any] | None:
        url = f"{self._base_url}/{path}?{urlencode({**params, 'fmt': 'json'})}"
        body = await self._fetch(url, scope)
        if body is None:
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            raise CatalogError(
                f"MusicBrainz returned invalid JSON: {e}",
                details={"url": url}
            ) from e

    # --- searches ----------------------------------------------------------

    async def search_artists(self, name: str, scope: CancellationScope) -> list[ArtistCandidate]:
        """Search artists whose name or alias matches `name`."""
        quoted = lucene_quote(name)
        data = await self._get_json(
            "artist",
            {"query": f"artist:{quoted} OR alias:{quoted}", "limit": self._search_limit},
            scope,
        )
        if not data:
            return []
        return [ArtistCandidate.from_json(item) for item in data.get("artists", [])]

    async def search_recordings(
        self,
        title: str,
        scope: CancellationScope,
        artist: str | None = None,
        artist_id: str | None = None,
    ) -> list[RecordingCandidate]:
        """
        Search recordings by title, scoped to an artist name or artist MBID.

        Results come back in MusicBrainz relevance order.
        """
        if artist_id:
            query = f"arid:{artist_id} AND recording:{lucene_quote(title)}"
        elif artist:
            query = f"artistname:{lucene_quote(artist)} AND recording:{lucene_quote(title)}"
        else:
            raise ValueError("search_recordings needs artist or artist_id")

        data = await self._get_json(
            "recording", {"query": query, "limit": self._search_limit}, scope
        )
        if not data:
            return []
        return [RecordingCandidate.from_json(item) for item in data.get("recordings", [])]

    # --- lookups -----------------------------------------------------------

    async def get_release_group(
        self,
        release_group_id: str,
        scope: CancellationScope
    ) -> ReleaseGroupDetail | None:
        """Look up a release group with its artist credits."""
        data = await self._get_json(
            f"release-group/{release_group_id}", {"inc": "artist-credits"}, scope
        )
        if not data:
            return None
        return ReleaseGroupDetail.from_json(data)

    async def fetch_front_cover(self, release_id: str, scope: CancellationScope) -> bytes | None:
        """Download the release's front cover from the Cover Art Archive (None if absent)."""
        return await self._fetch(COVER_ART_URL.format(release_id=release_id), scope)
