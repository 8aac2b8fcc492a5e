"""
MusicBrainz enrichment: rate-limited client, candidate ranking, and the
resolver that turns (performers, title) into release metadata.
"""

from ytplaylist.musicbrainz.client import MusicBrainzClient
from ytplaylist.musicbrainz.models import CanonicalMetadata, CoverImage
from ytplaylist.musicbrainz.rate_limiter import RateLimiter
from ytplaylist.musicbrainz.resolver import MetadataResolver

__all__ = [
    "MusicBrainzClient",
    "CanonicalMetadata",
    "CoverImage",
    "RateLimiter",
    "MetadataResolver",
]
