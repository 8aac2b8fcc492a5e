"""
Data models for MusicBrainz search results.

Candidates are transient: they live for the duration of one resolution
and are never persisted. Each model knows how to build itself from the
JSON returned by the MusicBrainz web service (ws/2, fmt=json) and how to
print itself for the ambiguous-match report.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ArtistCandidate:
    """
    An artist returned by an artist search.

    Attributes:
        artist_id: MusicBrainz artist id (MBID).
        name: Display name.
        score: Relevance score assigned by MusicBrainz (0-100).
        sort_name: Sort name ("Beatles, The").
        aliases: Alternative names.
        disambiguation: Free-text hint ("US rapper").
    """
    artist_id: str
    name: str
    score: int = 0
    sort_name: str = ""
    aliases: tuple[str, ...] = ()
    disambiguation: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ArtistCandidate":
        return cls(
            artist_id=data["id"],
            name=data.get("name") or "",
            score=int(data.get("score") or 0),
            sort_name=data.get("sort-name") or "",
            aliases=tuple(
                alias["name"] for alias in data.get("aliases") or [] if alias.get("name")
            ),
            disambiguation=data.get("disambiguation") or "",
        )

    def describe(self) -> str:
        text = f"{self.name} (score {self.score}) {self.artist_id}"
        if self.disambiguation:
            text += f" [{self.disambiguation}]"
        if self.aliases:
            text += f" aliases: {', '.join(self.aliases)}"
        return text


@dataclass(frozen=True)
class Medium:
    """One disc (or other medium) of a release."""
    format: str = ""
    track_count: int = 0


@dataclass(frozen=True)
class ArtistCredit:
    """One credited artist of a recording or release group."""
    name: str
    artist_id: str = ""
    sort_name: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ArtistCredit":
        artist = data.get("artist") or {}
        return cls(
            name=data.get("name") or artist.get("name") or "",
            artist_id=artist.get("id") or "",
            sort_name=artist.get("sort-name") or "",
        )


@dataclass(frozen=True)
class ReleaseCandidate:
    """
    A release attached to a recording search result.

    Attributes:
        release_id: Release MBID.
        title: Release title.
        status: "Official", "Promotion", "Bootleg", ... or None.
        country: ISO country code or None.
        date: Release date string as given.
        media: Discs of the release, empty when MusicBrainz has no
               track listing.
        release_group_id: Release group MBID.
        release_group_title: Release group title (the album name).
    """
    release_id: str
    title: str
    status: str | None = None
    country: str | None = None
    date: str = ""
    media: tuple[Medium, ...] = ()
    release_group_id: str = ""
    release_group_title: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ReleaseCandidate":
        group = data.get("release-group") or {}
        return cls(
            release_id=data["id"],
            title=data.get("title") or "",
            status=data.get("status"),
            country=data.get("country"),
            date=data.get("date") or "",
            media=tuple(
                Medium(
                    format=medium.get("format") or "",
                    track_count=int(medium.get("track-count") or 0),
                )
                for medium in data.get("media") or []
            ),
            release_group_id=group.get("id") or "",
            release_group_title=group.get("title") or "",
        )

    @property
    def disc_count(self) -> int:
        return len(self.media)

    @property
    def track_count(self) -> int:
        return sum(medium.track_count for medium in self.media)

    def describe(self) -> str:
        media = " + ".join(
            f"{medium.format or '?'} ({medium.track_count})" for medium in self.media
        ) or "no media"
        return (
            f"{self.title} [{self.status or 'no status'}] {self.date or '????'} "
            f"{self.country or '--'} {media} {self.release_id}"
        )


@dataclass(frozen=True)
class RecordingCandidate:
    """
    A recording returned by a recording search.

    Attributes:
        recording_id: Recording MBID.
        title: Recording title.
        score: Relevance score assigned by MusicBrainz (0-100).
        artists: Credited artists.
        releases: Releases the recording appears on.
    """
    recording_id: str
    title: str
    score: int = 0
    artists: tuple[ArtistCredit, ...] = ()
    releases: tuple[ReleaseCandidate, ...] = ()

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "RecordingCandidate":
        return cls(
            recording_id=data["id"],
            title=data.get("title") or "",
            score=int(data.get("score") or 0),
            artists=tuple(ArtistCredit.from_json(c) for c in data.get("artist-credit") or []),
            releases=tuple(ReleaseCandidate.from_json(r) for r in data.get("releases") or []),
        )

    def describe(self) -> str:
        artists = " & ".join(credit.name for credit in self.artists)
        return f"{artists} - {self.title} (score {self.score}) {self.recording_id}"


@dataclass(frozen=True)
class ReleaseGroupDetail:
    """Release group lookup result (title and album artist credits)."""
    release_group_id: str
    title: str
    artists: tuple[ArtistCredit, ...] = ()

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ReleaseGroupDetail":
        return cls(
            release_group_id=data["id"],
            title=data.get("title") or "",
            artists=tuple(ArtistCredit.from_json(c) for c in data.get("artist-credit") or []),
        )


@dataclass(frozen=True)
class CoverImage:
    """
    An image ready to embed.

    Attributes:
        data: Image bytes.
        mime: MIME type of `data`.
        description: Provenance marker ("YouTube", "MusicBrainz").
    """
    data: bytes
    mime: str
    description: str


@dataclass(frozen=True)
class CanonicalMetadata:
    """
    Best-effort release record resolved for one (artists, title) pair.

    `title` and `performers` describe the matched recording and are kept
    for logging; the file's own title and performers always come from
    its name.
    """
    title: str
    performers: tuple[str, ...]
    album: str
    album_artists: tuple[str, ...]
    release_id: str
    release_group_id: str
    release_status: str | None = None
    release_country: str | None = None
    cover: CoverImage | None = None
