"""Test configuration and fixtures"""

import asyncio
import tempfile
from pathlib import Path

import pytest

from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.library.tags import TagFile
from ytplaylist.youtube.models import (
    AudioManifest,
    AudioVariant,
    PlaylistInfo,
    RemoteItem,
    Thumbnail,
)

# An MPEG frame header followed by silence; enough for mutagen's ID3 code
STUB_AUDIO = b"\xff\xfb\x90\x00" + b"\x00" * 413


def write_track(
    directory: Path,
    name: str,
    fingerprint: str | None = None,
    title: str | None = None,
    performers: list[str] | None = None,
    id3v1: bool = False,
) -> Path:
    """Create a stub mp3 file with the given tags."""
    path = directory / name
    data = STUB_AUDIO
    if id3v1:
        data += b"TAG" + b"\x00" * 124 + b"\xff"
    path.write_bytes(data)

    if fingerprint is not None or title is not None or performers is not None:
        tag = TagFile.open(path)
        if fingerprint is not None:
            tag.fingerprint = fingerprint
        if title is not None:
            tag.title = title
        if performers is not None:
            tag.performers = performers
        tag.save()
    return path


def make_item(
    video_id: str,
    title: str = "Song",
    author: str = "Artist",
    available: bool = True,
    thumbnails: tuple[Thumbnail, ...] = (),
) -> RemoteItem:
    return RemoteItem(
        video_id=video_id,
        title=title,
        author=author if available else "",
        thumbnails=thumbnails,
        available=available,
    )


class FakeCatalog:
    """
    Stand-in for YouTubeCatalog.

    Attributes:
        pages: Pages yielded by stream_pages().
        list_error: Raised after the last page, if set.
        manifest_errors: video_id -> exceptions raised by successive
                         get_audio_manifest() calls.
    """

    def __init__(self, pages=(), list_error=None, manifest_errors=None):
        self.pages = [list(page) for page in pages]
        self.list_error = list_error
        self.manifest_errors = {key: list(value) for key, value in (manifest_errors or {}).items()}
        self.manifest_calls: list[str] = []

    async def resolve_playlist(self, reference):
        return PlaylistInfo(
            playlist_id=reference,
            title="Test Playlist",
            url=f"https://www.youtube.com/playlist?list={reference}",
        )

    async def stream_pages(self, playlist_url, scope):
        for page in self.pages:
            # Let other tasks run between pages, like a real network fetch
            await asyncio.sleep(0)
            if scope.cancelled:
                return
            yield page
        if self.list_error is not None:
            raise self.list_error

    async def get_audio_manifest(self, video_id):
        self.manifest_calls.append(video_id)
        errors = self.manifest_errors.get(video_id)
        if errors:
            raise errors.pop(0)
        return AudioManifest(
            video_id=video_id,
            variants=[
                AudioVariant(format_id="140", ext="m4a", abr=128.0, acodec="mp4a.40.2"),
                AudioVariant(format_id="251", ext="webm", abr=160.0, acodec="opus"),
            ],
        )


class FakeExtractor:
    """Writes a stub mp3 instead of running yt-dlp."""

    def __init__(self, error=None):
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def extract(self, source_url, target, format_id):
        self.calls.append((source_url, format_id))
        if self.error is not None:
            raise self.error
        target.write_bytes(STUB_AUDIO)
        return target


class FakeTagger:
    """Writes title, performers and fingerprint like TrackTagger, without any network."""

    def __init__(self, on_tag=None):
        self.on_tag = on_tag
        self.calls: list[tuple[str, list[str], str]] = []

    async def tag(self, path, item, performers, title, scope):
        self.calls.append((item.video_id, list(performers), title))
        if self.on_tag is not None:
            self.on_tag()
        tag = TagFile.open(path)
        tag.title = title
        tag.performers = list(performers)
        tag.fingerprint = item.video_id
        tag.save()


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def scope():
    return CancellationScope()


@pytest.fixture
def music_dir(temp_dir):
    """Destination directory of a sync"""
    path = temp_dir / "music"
    path.mkdir()
    return path
