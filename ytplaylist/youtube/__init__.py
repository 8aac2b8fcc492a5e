"""
YouTube access: playlist listing, audio manifests, and audio extraction.
"""

from ytplaylist.youtube.client import YouTubeCatalog, classify_status, extract_playlist_id
from ytplaylist.youtube.extractor import AudioExtractor
from ytplaylist.youtube.models import (
    AudioManifest,
    AudioVariant,
    PlaylistInfo,
    RemoteItem,
    Thumbnail,
)

__all__ = [
    "YouTubeCatalog",
    "AudioExtractor",
    "classify_status",
    "extract_playlist_id",
    "AudioManifest",
    "AudioVariant",
    "PlaylistInfo",
    "RemoteItem",
    "Thumbnail",
]
