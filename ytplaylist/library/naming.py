"""
Filename contract for the music directory.

Every synced file is named "<artists> - <title>.mp3", where multiple
artists are joined with "&". The name is the ground truth for a file's
identity: the scanner parses it back and rewrites the embedded title and
performers whenever they disagree. Building and parsing therefore have
to round-trip:

    parse_filename(stem(build_filename(artist, title)))
        == (split_artists(sanitized artist), sanitized title)

Examples:
    build_filename("Simon & Garfunkel", "The Boxer")
        -> "Simon & Garfunkel - The Boxer.mp3"
    parse_filename("Simon & Garfunkel - The Boxer")
        -> ParsedName(artists=["Simon", "Garfunkel"], title="The Boxer")
    parse_filename("Artist - Song - Live")
        -> ParsedName(artists=["Artist"], title="Song - Live", anomalous=True)
"""

import re
from dataclasses import dataclass


SEPARATOR = " - "
ARTIST_DELIMITER = "&"
AUDIO_EXTENSION = "mp3"

# Characters that are invalid in filenames on at least one common platform
_INVALID_CHARS_PATTERN = re.compile(r'[<>:/\\|?*\x00-\x1f]')


@dataclass(frozen=True)
class ParsedName:
    """
    Identity recovered from a filename stem.

    Attributes:
        artists: Performer names, in filename order.
        title: Track title.
        anomalous: True when the stem contained more than one separator
                   and everything after the first one was taken as title.
    """
    artists: list[str]
    title: str
    anomalous: bool = False


def split_artists(text: str) -> list[str]:
    """Split "A & B" into ["A", "B"], trimming and dropping empty parts."""
    return [part.strip() for part in text.split(ARTIST_DELIMITER) if part.strip()]


def parse_filename(stem: str) -> ParsedName | None:
    """
    Parse "<A1 & A2> - <Title>" into artists and title.

    Returns:
        ParsedName, or None when the stem has no usable separator and the
        identity cannot be recovered.
    """
    parts = [part.strip() for part in stem.split(SEPARATOR) if part.strip()]
    if len(parts) < 2:
        return None

    artists = split_artists(parts[0])
    if not artists:
        return None

    if len(parts) == 2:
        return ParsedName(artists=artists, title=parts[1])
    return ParsedName(artists=artists, title=SEPARATOR.join(parts[1:]), anomalous=True)


def sanitize_component(text: str, is_artist: bool = False) -> str:
    """
    Make one half of the filename safe for every filesystem.

    Double quotes become single quotes, other invalid characters become
    "_". In the artist half the separator itself is neutralized so the
    parser can never split an artist name.
    """
    text = text.replace('"', "'")
    text = _INVALID_CHARS_PATTERN.sub("_", text)
    if is_artist:
        text = text.replace(SEPARATOR, " _ ")
    text = " ".join(text.split())
    # Windows strips trailing dots
    text = text.rstrip(". ")
    return text or "Unknown"


def build_filename(artist: str, title: str, extension: str = AUDIO_EXTENSION) -> str:
    """Return "<artist> - <title>.<extension>" with both halves sanitized."""
    safe_artist = sanitize_component(artist, is_artist=True)
    if not split_artists(safe_artist):
        safe_artist = "Unknown"
    safe_title = sanitize_component(title)
    return f"{safe_artist}{SEPARATOR}{safe_title}.{extension}"


def format_identity(artists: list[str], title: str) -> str:
    """Human-readable "A & B - Title" used in log messages."""
    return f"{f' {ARTIST_DELIMITER} '.join(artists)}{SEPARATOR}{title}"
