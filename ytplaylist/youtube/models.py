"""
Data models for YouTube playlists and their entries.

Models are built from yt-dlp info dictionaries, the flat ones returned
for playlist entries (extract_flat) as well as the full ones returned for
single videos.
"""

from dataclasses import dataclass, field
from typing import Any


WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
PLAYLIST_URL = "https://www.youtube.com/playlist?list={playlist_id}"


@dataclass(frozen=True)
class Thumbnail:
    url: str
    width: int = 0
    height: int = 0

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class PlaylistInfo:
    """
    A resolved playlist reference.

    Attributes:
        playlist_id: YouTube playlist id ("PL...", "OLAK5uy_...", ...).
        title: Playlist title as shown on YouTube.
        url: Canonical playlist URL.
    """
    playlist_id: str
    title: str
    url: str


@dataclass(frozen=True)
class RemoteItem:
    """
    Immutable representation of one playlist entry.

    Attributes:
        video_id: YouTube video id (11 characters). Stored in the
                  downloaded file's tag and used as its fingerprint.
        title: Video title as uploaded.
        author: Channel name ("Artist - Topic" for auto-generated channels).
        thumbnails: Every thumbnail size yt-dlp reported.
        available: False for private/deleted entries, which show up in
                   the playlist but cannot be downloaded.

    Class Methods:
        from_ytdlp_entry: Create from a yt-dlp (flat) entry dictionary.
    """
    video_id: str
    title: str
    author: str
    thumbnails: tuple[Thumbnail, ...] = ()
    available: bool = True

    @classmethod
    def from_ytdlp_entry(cls, entry: dict[str, Any]) -> "RemoteItem":
        """
        Build a RemoteItem from a yt-dlp entry.

        Flat playlist entries carry 'channel' (or 'uploader' on older
        extractors) only for videos that can be watched; private and
        deleted ones come back without a channel.
        """
        author = entry.get("channel") or entry.get("uploader") or ""
        thumbnails = tuple(
            Thumbnail(
                url=thumb["url"],
                width=thumb.get("width") or 0,
                height=thumb.get("height") or 0,
            )
            for thumb in entry.get("thumbnails") or []
            if thumb.get("url")
        )
        return cls(
            video_id=entry["id"],
            title=entry.get("title") or "",
            author=author,
            thumbnails=thumbnails,
            available=bool(author),
        )

    @property
    def url(self) -> str:
        return WATCH_URL.format(video_id=self.video_id)

    @property
    def best_thumbnail(self) -> Thumbnail | None:
        """The thumbnail with the largest area (first one wins on ties)."""
        if not self.thumbnails:
            return None
        return max(self.thumbnails, key=lambda thumb: thumb.area)


@dataclass(frozen=True)
class AudioVariant:
    """
    One downloadable audio-only format from a video's manifest.

    Attributes:
        format_id: yt-dlp format selector for this stream.
        ext: Container extension ("webm", "m4a").
        abr: Average bitrate in kbit/s (0 if unknown).
        acodec: Audio codec name.
    """
    format_id: str
    ext: str = ""
    abr: float = 0.0
    acodec: str = ""

    @classmethod
    def from_ytdlp_format(cls, fmt: dict[str, Any]) -> "AudioVariant":
        return cls(
            format_id=str(fmt["format_id"]),
            ext=fmt.get("ext") or "",
            abr=float(fmt.get("abr") or fmt.get("tbr") or 0.0),
            acodec=fmt.get("acodec") or "",
        )


@dataclass
class AudioManifest:
    video_id: str
    variants: list[AudioVariant] = field(default_factory=list)

    def best(self) -> AudioVariant | None:
        """Highest-bitrate variant."""
        if not self.variants:
            return None
        return max(self.variants, key=lambda variant: variant.abr)
