"""
Metadata resolution against MusicBrainz.

Given the performers and title of a downloaded track, find the release it
most likely belongs to and return album, album artists, release
identifiers and (optionally) the front cover.

Algorithm:
    1. Strip parenthetical suffixes from the title and every performer
       ("Song (Remix)" -> "Song").
    2. For each performer in order:
         a. search recordings by artist name + title
         b. if nothing is found, resolve the name to an artist MBID
            (name or alias search, see ranking.artist_rank_key) and
            search recordings by that MBID + title
       The first performer yielding any recording wins.
    3. Choose the recording (first result; see strict_recording_ties).
    4. Choose the release among the recording's releases
       (ranking.release_rank_key).
    5. Look up the release group for its title and artist credits, and
       fetch the cover if asked to.

Ties at step 2b or 4 are not errors: they are reported to the
ambiguous-matches log and the track simply gets no enrichment. Service
failures are logged and also end in "no enrichment"; resolve() never
raises for lookup problems.
"""

import asyncio
from typing import Sequence

from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.core.exceptions import CatalogError
from ytplaylist.core.logger import get_logger, log_ambiguous_match
from ytplaylist.library.artwork import prepare_cover
from ytplaylist.library.naming import format_identity
from ytplaylist.musicbrainz.client import MusicBrainzClient
from ytplaylist.musicbrainz.models import (
    CanonicalMetadata,
    CoverImage,
    RecordingCandidate,
    ReleaseCandidate,
)
from ytplaylist.musicbrainz.ranking import (
    artist_rank_key,
    dedupe_by_title,
    rank_unique,
    release_rank_key,
    strip_parenthetical,
)

logger = get_logger(__name__)


CATALOG_COVER_DESCRIPTION = "MusicBrainz"


class MetadataResolver:
    """
    Resolves (performers, title) to CanonicalMetadata.

    Attributes:
        _client: MusicBrainz client (shares the process-wide rate gate).
        _strict_recording_ties: If True, recordings sharing the top score
            make the lookup inconclusive, like artists and releases do.
            If False, the first recording in MusicBrainz order is used.
    """

    def __init__(self, client: MusicBrainzClient, strict_recording_ties: bool = False) -> None:
        self._client = client
        self._strict_recording_ties = strict_recording_ties

    async def resolve(
        self,
        artists: Sequence[str],
        title: str,
        scope: CancellationScope,
        want_cover: bool = True,
    ) -> CanonicalMetadata | None:
        """
        Resolve metadata for one track.

        Args:
            artists: Performers, in order of preference.
            title: Track title.
            scope: Run cancellation scope.
            want_cover: Fetch the front cover from the Cover Art Archive.

        Returns:
            CanonicalMetadata, or None when nothing conclusive was found.

        Raises:
            JobCancelled: If the run is cancelled during the lookup.
        """
        identity = format_identity(list(artists), title)
        query_title = strip_parenthetical(title)
        query_artists = [name for name in (strip_parenthetical(a) for a in artists) if name]
        if not query_title or not query_artists:
            logger.debug(f"Nothing to look up for {identity}")
            return None

        try:
            recording = await self._find_recording(query_artists, query_title, scope)
            if recording is None:
                logger.warning(f'No recording found for "{identity}"')
                return None

            release = self._choose_release(recording, identity)
            if release is None:
                return None

            album = release.release_group_title
            album_artists: tuple[str, ...] = ()
            if release.release_group_id:
                group = await self._client.get_release_group(release.release_group_id, scope)
                if group is not None:
                    album = group.title or album
                    album_artists = tuple(
                        credit.sort_name or credit.name for credit in group.artists
                    )
        except CatalogError as e:
            logger.error(f'MusicBrainz lookup failed for "{identity}": {e.message}')
            return None

        cover = await self._fetch_cover(release, scope) if want_cover else None

        logger.info(f'Matched "{identity}" to release "{release.title}" ({release.release_id})')
        return CanonicalMetadata(
            title=recording.title,
            performers=tuple(credit.name for credit in recording.artists),
            album=album,
            album_artists=album_artists,
            release_id=release.release_id,
            release_group_id=release.release_group_id,
            release_status=release.status,
            release_country=release.country,
            cover=cover,
        )

    async def _find_recording(
        self,
        artists: list[str],
        title: str,
        scope: CancellationScope
    ) -> RecordingCandidate | None:
        for artist in artists:
            recordings = await self._client.search_recordings(title, scope, artist=artist)
            if not recordings:
                artist_id = await self._resolve_artist(artist, scope)
                if artist_id is not None:
                    recordings = await self._client.search_recordings(
                        title, scope, artist_id=artist_id
                    )
            if recordings:
                return self._choose_recording(recordings, format_identity([artist], title))
        return None

    async def _resolve_artist(self, name: str, scope: CancellationScope) -> str | None:
        candidates = await self._client.search_artists(name, scope)
        result = rank_unique(candidates, artist_rank_key(name))
        if result.inconclusive:
            log_ambiguous_match(
                logger,
                kind="artist",
                query=name,
                candidates=[candidate.describe() for candidate in result.tied],
                message=f'Multiple artists found with name "{name}"',
            )
            return None
        return result.best.artist_id if result.best is not None else None

    def _choose_recording(
        self,
        recordings: list[RecordingCandidate],
        identity: str
    ) -> RecordingCandidate | None:
        result = rank_unique(recordings, lambda recording: -recording.score)
        if not result.inconclusive:
            return result.best

        if self._strict_recording_ties:
            log_ambiguous_match(
                logger,
                kind="recording",
                query=identity,
                candidates=[recording.describe() for recording in result.tied],
                message=f'Multiple recordings found for song "{identity}"',
            )
            return None

        logger.debug(
            f'{len(result.tied)} recordings share the top score for "{identity}", '
            f"using {result.tied[0].recording_id}"
        )
        return result.tied[0]

    def _choose_release(
        self,
        recording: RecordingCandidate,
        identity: str
    ) -> ReleaseCandidate | None:
        releases = dedupe_by_title(recording.releases)
        if not releases:
            logger.warning(f'Recording for "{identity}" is not on any release')
            return None

        result = rank_unique(releases, release_rank_key)
        if result.inconclusive:
            log_ambiguous_match(
                logger,
                kind="release",
                query=identity,
                candidates=[release.describe() for release in result.tied],
                message=f'Multiple releases found for song "{identity}"',
            )
            return None
        return result.best

    async def _fetch_cover(
        self,
        release: ReleaseCandidate,
        scope: CancellationScope
    ) -> CoverImage | None:
        try:
            data = await self._client.fetch_front_cover(release.release_id, scope)
        except CatalogError as e:
            logger.warning(f"Cover art unavailable for release {release.release_id}: {e.message}")
            return None
        if not data:
            logger.debug(f"No cover art for release {release.release_id}")
            return None
        image, mime = await asyncio.to_thread(prepare_cover, data)
        return CoverImage(data=image, mime=mime, description=CATALOG_COVER_DESCRIPTION)
