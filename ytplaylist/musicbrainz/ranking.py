"""
Deterministic ranking of MusicBrainz candidates.

Candidates are ordered with a stable multi-key sort, then the top of the
ordering is scanned for ties. A tie on the full key means the search was
inconclusive: the caller logs every tied candidate and applies no
metadata rather than guess.

Artist key (ascending):
    1. relevance score, highest first
    2. exact (case-sensitive) name match first
    3. case-insensitive alias match first

Release key (ascending, after de-duplicating by title):
    1. status "Official" first
    2. releases with a track listing first
    3. fewer discs first
    4. more tracks first, compared only between single-disc releases
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Generic, Hashable, Iterable, Sequence, TypeVar

from ytplaylist.musicbrainz.models import ArtistCandidate, ReleaseCandidate


T = TypeVar("T")

OFFICIAL_STATUS = "official"

_PARENTHETICAL_PATTERN = re.compile(r"\s*\(.*$", re.DOTALL)


@dataclass(frozen=True)
class RankResult(Generic[T]):
    """
    Attributes:
        best: The single top-ranked candidate, or None if empty or tied.
        tied: Every candidate sharing the top key (one element if unique).
    """
    best: T | None
    tied: list[T] = field(default_factory=list)

    @property
    def inconclusive(self) -> bool:
        return len(self.tied) > 1


def rank_unique(candidates: Sequence[T], key: Callable[[T], Hashable]) -> RankResult[T]:
    """
    Sort `candidates` by `key` and return the unique best one.

    Example:
        rank_unique([a, b], key=lambda c: -c.score)
        # RankResult(best=a, tied=[a]) if a scores higher
        # RankResult(best=None, tied=[a, b]) if they score the same
    """
    if not candidates:
        return RankResult(best=None, tied=[])

    ranked = sorted(candidates, key=key)
    top_key = key(ranked[0])
    tied = [candidate for candidate in ranked if key(candidate) == top_key]
    if len(tied) > 1:
        return RankResult(best=None, tied=tied)
    return RankResult(best=ranked[0], tied=tied)


def strip_parenthetical(text: str) -> str:
    """
    Cut at the first "(" and trim.

    "Song (Remastered 2011)" -> "Song"
    """
    return _PARENTHETICAL_PATTERN.sub("", text).strip()


def artist_rank_key(query: str) -> Callable[[ArtistCandidate], tuple]:
    """Build the artist ordering key for a search on `query`."""
    folded = query.casefold()

    def key(candidate: ArtistCandidate) -> tuple:
        alias_match = any(alias.casefold() == folded for alias in candidate.aliases)
        return (-candidate.score, candidate.name != query, not alias_match)

    return key


def release_rank_key(release: ReleaseCandidate) -> tuple:
    """Ordering key for releases of one recording."""
    is_official = (release.status or "").casefold() == OFFICIAL_STATUS
    has_media = release.disc_count > 0
    # Track count only decides between single-disc releases; the disc
    # count component is already equal when this one is compared.
    tracks = -release.track_count if release.disc_count == 1 else 0
    return (not is_official, not has_media, release.disc_count, tracks)


def dedupe_by_title(releases: Iterable[ReleaseCandidate]) -> list[ReleaseCandidate]:
    """Keep the first release of every distinct title."""
    seen: set[str] = set()
    unique = []
    for release in releases:
        if release.title in seen:
            continue
        seen.add(release.title)
        unique.append(release)
    return unique
