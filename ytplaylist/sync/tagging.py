"""
Tagging of freshly downloaded files.

Order of operations for one file:
    1. title, performers and fingerprint (video id) from YouTube
    2. MusicBrainz enrichment: album, album artists, release ids, and the
       release's front cover when no picture is attached yet
    3. the video thumbnail, only if still no picture is attached; a failed
       thumbnail download leaves the file without a cover, except 403/429
       which the job retries
    4. save (ID3 container policy, see library.tags)

The title and performers written in step 1 are the ones parsed back from
the file's own name, so the scanner finds nothing to fix on the next run.
"""

import asyncio
from pathlib import Path
from typing import Sequence

import aiohttp

from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.core.exceptions import RemoteAccessError
from ytplaylist.core.logger import get_logger
from ytplaylist.library.artwork import fetch_image, prepare_cover
from ytplaylist.library.naming import SEPARATOR
from ytplaylist.library.tags import TagFile
from ytplaylist.musicbrainz.models import CanonicalMetadata
from ytplaylist.musicbrainz.resolver import MetadataResolver
from ytplaylist.youtube.models import RemoteItem

logger = get_logger(__name__)


PRIMARY_COVER_DESCRIPTION = "YouTube"
TOPIC_SUFFIX = " - Topic"


def normalize_remote_metadata(item: RemoteItem) -> tuple[str, str]:
    """
    Derive (artist, title) from a playlist entry.

    - "Artist - Song" uploaded by channel "Artist" becomes title "Song"
    - channel "Artist - Topic" (YouTube Music auto-generated) becomes "Artist"

    Both comparisons are case-insensitive.
    """
    author = item.author
    title = item.title

    prefix = f"{author}{SEPARATOR}"
    if author and title.casefold().startswith(prefix.casefold()):
        title = title[len(prefix):].lstrip()

    if author.casefold().endswith(TOPIC_SUFFIX.casefold()):
        author = author[:-len(TOPIC_SUFFIX)]

    return author.strip(), title.strip()


def merge_canonical(tag: TagFile, metadata: CanonicalMetadata) -> None:
    """
    Apply resolved MusicBrainz metadata to a tag.

    Release status, country and ids are always overwritten. Album and
    album artists are logged when they replace a different existing value.
    The cover is attached only if the file has no picture.
    """
    tag.release_status = metadata.release_status
    tag.release_country = metadata.release_country
    tag.release_id = metadata.release_id
    tag.release_group_id = metadata.release_group_id

    if metadata.album and tag.album != metadata.album:
        if tag.album:
            logger.info(f'Album fixed: "{tag.album}" --> "{metadata.album}"')
        tag.album = metadata.album

    album_artists = list(metadata.album_artists)
    if album_artists and tag.album_artists != album_artists:
        if tag.album_artists:
            logger.info(
                f'Album artists fixed: "{" & ".join(tag.album_artists)}" --> "{" & ".join(album_artists)}"'
            )
        tag.album_artists = album_artists

    if metadata.cover is not None and not tag.has_picture:
        tag.set_cover(metadata.cover.data, metadata.cover.mime, metadata.cover.description)
        logger.debug("Cover art attached from MusicBrainz")


class TrackTagger:
    """
    Writes YouTube and MusicBrainz metadata into a downloaded file.

    Attributes:
        _session: aiohttp session used for thumbnail downloads.
        _resolver: MusicBrainz resolver, or None to skip enrichment.
    """

    def __init__(self, session: aiohttp.ClientSession, resolver: MetadataResolver | None = None) -> None:
        self._session = session
        self._resolver = resolver

    async def tag(
        self,
        path: Path,
        item: RemoteItem,
        performers: Sequence[str],
        title: str,
        scope: CancellationScope,
    ) -> None:
        """
        Tag `path` in place.

        Raises:
            RemoteAccessError: If the thumbnail download is refused with
                               403/429 (retried by the job). Other
                               thumbnail failures only skip the cover.
            TagError: If the file cannot be read or written.
            JobCancelled: If the run is cancelled during enrichment.
        """
        tag = await asyncio.to_thread(TagFile.open, path)

        tag.title = title
        tag.performers = list(performers)
        tag.fingerprint = item.video_id

        if self._resolver is not None:
            metadata = await self._resolver.resolve(
                performers, title, scope, want_cover=not tag.has_picture
            )
            if metadata is not None:
                merge_canonical(tag, metadata)

        if not tag.has_picture:
            thumbnail = item.best_thumbnail
            if thumbnail is not None:
                try:
                    data = await fetch_image(self._session, thumbnail.url)
                except RemoteAccessError as e:
                    if e.is_rate_limited:
                        raise
                    logger.warning(f"No cover art for {item.title}: {e.message}")
                else:
                    image, mime = await asyncio.to_thread(prepare_cover, data)
                    tag.set_cover(image, mime, PRIMARY_COVER_DESCRIPTION)
                    logger.debug(f"Cover art attached from YouTube ({thumbnail.width}x{thumbnail.height})")

        await asyncio.to_thread(tag.save)
