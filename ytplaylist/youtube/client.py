"""
YouTube playlist and manifest access through yt-dlp.

yt-dlp is a blocking library, so every call runs on a worker thread via
asyncio.to_thread(); the event loop only ever awaits.

Playlist entries are pulled lazily: yt-dlp's extractor yields entries
page by page as it follows YouTube's continuation tokens, and
stream_pages() hands them out in fixed-size batches, so downloads start
before a long playlist has been fully listed.

Error mapping:
    yt-dlp reports HTTP failures as text ("HTTP Error 403: Forbidden").
    classify_status() recovers the status code so the download job can
    tell a retryable 403/429 from a fatal failure.
"""

import asyncio
import re
from itertools import islice
from pathlib import Path
from typing import Any, AsyncIterator, Iterator
from urllib.parse import parse_qs, urlparse

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError as YtDlpDownloadError
from yt_dlp.utils import ExtractorError

from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.core.exceptions import RemoteAccessError
from ytplaylist.core.logger import get_logger
from ytplaylist.youtube.models import (
    PLAYLIST_URL,
    WATCH_URL,
    AudioManifest,
    AudioVariant,
    PlaylistInfo,
    RemoteItem,
)

logger = get_logger(__name__)


DEFAULT_PAGE_SIZE = 100

_HTTP_STATUS_PATTERN = re.compile(r"HTTP Error (\d{3})")
_PLAYLIST_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{10,}$")


class YtDlpSilentLogger:
    """
    Logger handed to yt-dlp so it doesn't print to stderr on its own.

    Errors are still surfaced as exceptions; debug output goes to the
    full log file.
    """

    def debug(self, msg: str) -> None:
        logger.debug(f"yt-dlp: {msg}")

    def info(self, msg: str) -> None:
        pass

    def warning(self, msg: str) -> None:
        logger.debug(f"yt-dlp warning: {msg}")

    def error(self, msg: str) -> None:
        logger.debug(f"yt-dlp error: {msg}")


def classify_status(error_message: str) -> int | None:
    """
    Recover an HTTP status code from a yt-dlp error message.

    Rate-limit wording is checked first because YouTube's rate-limit page
    also says "video unavailable".
    """
    match = _HTTP_STATUS_PATTERN.search(error_message)
    if match:
        return int(match.group(1))

    msg = error_message.lower()
    if any(x in msg for x in ["rate-limited", "rate limit", "too many requests"]):
        return 429
    if "forbidden" in msg or "did not get any data" in msg:
        return 403
    return None


def extract_playlist_id(reference: str) -> str:
    """
    Accept a playlist id or any YouTube URL carrying ?list=.

    Raises:
        ValueError: If no playlist id can be found.

    Examples:
        extract_playlist_id("PLxxxxxxxxxxxx")  # "PLxxxxxxxxxxxx"
        extract_playlist_id("https://music.youtube.com/playlist?list=OLAK5uy_x")  # "OLAK5uy_x"
    """
    reference = reference.strip()
    if "://" in reference or reference.startswith(("www.", "youtube.com", "music.youtube.com")):
        parsed = urlparse(reference if "://" in reference else f"https://{reference}")
        values = parse_qs(parsed.query).get("list")
        if values and values[0]:
            return values[0]
        raise ValueError(f"No playlist id in URL: {reference}")

    if _PLAYLIST_ID_PATTERN.match(reference):
        return reference
    raise ValueError(f"Not a playlist id or URL: {reference}")


def _translate_error(error: Exception, context: str, details: dict) -> RemoteAccessError:
    message = str(error)
    return RemoteAccessError(
        f"{context}: {message}",
        details={**details, "original_error": message},
        status_code=classify_status(message),
    )


class YouTubeCatalog:
    """
    Read-only access to playlists and video manifests.

    Attributes:
        _cookie_file: Optional cookies.txt for age-restricted/premium access.
        _page_size: Number of entries per page handed to the pipeline.
    """

    def __init__(self, cookie_file: Path | None = None, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._cookie_file = cookie_file
        self._page_size = page_size

    def _ydl_options(self, **overrides: Any) -> dict[str, Any]:
        options: dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "noprogress": True,
            "logger": YtDlpSilentLogger(),
        }
        if self._cookie_file is not None:
            options["cookiefile"] = str(self._cookie_file)
        options.update(overrides)
        return options

    # --- playlist ----------------------------------------------------------

    def _extract_playlist(self, url: str) -> dict[str, Any]:
        with YoutubeDL(self._ydl_options(extract_flat="in_playlist")) as ydl:
            try:
                info = ydl.extract_info(url, download=False, process=False)
                # Some URLs resolve to a redirect before the actual tab
                if info and info.get("_type") == "url":
                    info = ydl.extract_info(info["url"], download=False, process=False)
            except (YtDlpDownloadError, ExtractorError) as e:
                raise _translate_error(e, "Cannot open playlist", {"url": url}) from e
        if not info:
            raise RemoteAccessError(f"Cannot open playlist: {url}", details={"url": url})
        return info

    async def resolve_playlist(self, reference: str) -> PlaylistInfo:
        """
        Resolve a playlist id or URL to its title and canonical URL.

        Raises:
            ValueError: If the reference isn't a playlist.
            RemoteAccessError: If YouTube refuses the request.
        """
        playlist_id = extract_playlist_id(reference)
        url = PLAYLIST_URL.format(playlist_id=playlist_id)
        info = await asyncio.to_thread(self._extract_playlist, url)
        return PlaylistInfo(
            playlist_id=info.get("id") or playlist_id,
            title=info.get("title") or playlist_id,
            url=info.get("webpage_url") or url,
        )

    def _next_page(self, entries: Iterator[Any], url: str) -> list[RemoteItem]:
        try:
            raw_page = list(islice(entries, self._page_size))
        except (YtDlpDownloadError, ExtractorError) as e:
            raise _translate_error(e, "Cannot list playlist entries", {"url": url}) from e

        page = []
        for entry in raw_page:
            if not isinstance(entry, dict) or not entry.get("id"):
                logger.debug(f"Ignoring malformed playlist entry: {entry!r}")
                continue
            page.append(RemoteItem.from_ytdlp_entry(entry))
        return page

    async def stream_pages(
        self,
        playlist_url: str,
        scope: CancellationScope
    ) -> AsyncIterator[list[RemoteItem]]:
        """
        Yield the playlist's entries in pages.

        Stops quietly when the scope is cancelled; the caller decides what
        an incomplete listing means.

        Raises:
            RemoteAccessError: If a page cannot be fetched.
        """
        info = await asyncio.to_thread(self._extract_playlist, playlist_url)
        entries = iter(info.get("entries") or [])

        while not scope.cancelled:
            page = await asyncio.to_thread(self._next_page, entries, playlist_url)
            if not page:
                return
            yield page

    # --- manifest ----------------------------------------------------------

    def _extract_manifest(self, video_id: str) -> AudioManifest:
        url = WATCH_URL.format(video_id=video_id)
        with YoutubeDL(self._ydl_options()) as ydl:
            try:
                info = ydl.extract_info(url, download=False, process=False)
            except (YtDlpDownloadError, ExtractorError) as e:
                raise _translate_error(e, "Cannot read video formats", {"video_id": video_id}) from e

        variants = [
            AudioVariant.from_ytdlp_format(fmt)
            for fmt in (info or {}).get("formats") or []
            if fmt.get("vcodec") == "none"
            and fmt.get("acodec") not in (None, "none")
            and fmt.get("format_id")
        ]
        return AudioManifest(video_id=video_id, variants=variants)

    async def get_audio_manifest(self, video_id: str) -> AudioManifest:
        """
        List the audio-only formats of a video.

        Raises:
            RemoteAccessError: If YouTube refuses the request.
        """
        return await asyncio.to_thread(self._extract_manifest, video_id)
