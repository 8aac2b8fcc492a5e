"""Tests for tagging of downloaded files"""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from ytplaylist.core.exceptions import RemoteAccessError
from ytplaylist.library.tags import TagFile
from ytplaylist.musicbrainz.models import CanonicalMetadata, CoverImage
from ytplaylist.sync.tagging import TrackTagger, merge_canonical, normalize_remote_metadata
from ytplaylist.youtube.models import Thumbnail

from conftest import make_item, write_track


def canonical(cover=None, album="Album", album_artists=("Artist",)):
    return CanonicalMetadata(
        title="Song",
        performers=("Artist",),
        album=album,
        album_artists=album_artists,
        release_id="r1",
        release_group_id="rg1",
        release_status="Official",
        release_country="GB",
        cover=cover,
    )


class FakeResolver:
    def __init__(self, metadata=None):
        self.metadata = metadata
        self.calls = []

    async def resolve(self, artists, title, scope, want_cover=True):
        self.calls.append((list(artists), title, want_cover))
        return self.metadata


class TestNormalizeRemoteMetadata:
    """Test title/author cleanup"""

    def test_author_prefix_removed(self):
        item = make_item("v", title="Queen - Bohemian Rhapsody", author="Queen")
        assert normalize_remote_metadata(item) == ("Queen", "Bohemian Rhapsody")

    def test_prefix_is_case_insensitive(self):
        item = make_item("v", title="QUEEN - Bohemian Rhapsody", author="Queen")
        assert normalize_remote_metadata(item) == ("Queen", "Bohemian Rhapsody")

    def test_topic_suffix_removed(self):
        item = make_item("v", title="Bohemian Rhapsody", author="Queen - Topic")
        assert normalize_remote_metadata(item) == ("Queen", "Bohemian Rhapsody")

    def test_other_titles_unchanged(self):
        item = make_item("v", title="Other - Song", author="Queen")
        assert normalize_remote_metadata(item) == ("Queen", "Other - Song")


class TestMergeCanonical:
    """Test applying MusicBrainz metadata to a tag"""

    def test_fields_written(self, temp_dir):
        tag = TagFile.open(write_track(temp_dir, "Artist - Song.mp3"))

        merge_canonical(tag, canonical())

        assert tag.album == "Album"
        assert tag.album_artists == ["Artist"]
        assert tag.release_id == "r1"
        assert tag.release_group_id == "rg1"
        assert tag.release_status == "Official"
        assert tag.release_country == "GB"

    def test_changed_album_is_logged(self, temp_dir, caplog):
        tag = TagFile.open(write_track(temp_dir, "Artist - Song.mp3"))
        tag.album = "Old Album"

        with caplog.at_level(logging.INFO):
            merge_canonical(tag, canonical())

        assert 'Album fixed: "Old Album" --> "Album"' in caplog.text

    def test_existing_picture_kept(self, temp_dir):
        tag = TagFile.open(write_track(temp_dir, "Artist - Song.mp3"))
        tag.set_cover(b"existing", "image/jpeg", "YouTube")

        merge_canonical(tag, canonical(cover=CoverImage(b"new", "image/jpeg", "MusicBrainz")))

        assert tag.pictures[0].data == b"existing"


class TestTrackTagger:
    """Test the full tagging sequence"""

    @pytest.mark.asyncio
    async def test_youtube_fields_without_resolver(self, temp_dir, scope):
        path = write_track(temp_dir, "Artist - Song.mp3")
        item = make_item("vid1", title="Song", author="Artist")

        await TrackTagger(session=None).tag(path, item, ["Artist"], "Song", scope)

        tag = TagFile.open(path)
        assert tag.title == "Song"
        assert tag.performers == ["Artist"]
        assert tag.fingerprint == "vid1"
        assert not tag.has_picture

    @pytest.mark.asyncio
    async def test_musicbrainz_cover_preferred(self, temp_dir, scope):
        path = write_track(temp_dir, "Artist - Song.mp3")
        item = make_item("vid1", thumbnails=(Thumbnail("https://i.ytimg.com/vi/vid1/hq.jpg", 480, 360),))
        resolver = FakeResolver(canonical(cover=CoverImage(b"mb-cover", "image/jpeg", "MusicBrainz")))

        with patch("ytplaylist.sync.tagging.fetch_image", new=AsyncMock()) as fetch:
            await TrackTagger(session=None, resolver=resolver).tag(path, item, ["Artist"], "Song", scope)

        fetch.assert_not_called()
        assert resolver.calls == [(["Artist"], "Song", True)]
        tag = TagFile.open(path)
        assert tag.picture_description == "MusicBrainz"
        assert tag.album == "Album"

    @pytest.mark.asyncio
    async def test_thumbnail_fallback(self, temp_dir, scope):
        path = write_track(temp_dir, "Artist - Song.mp3")
        item = make_item("vid1", thumbnails=(
            Thumbnail("https://i.ytimg.com/vi/vid1/default.jpg", 120, 90),
            Thumbnail("https://i.ytimg.com/vi/vid1/maxres.jpg", 1280, 720),
        ))

        with patch("ytplaylist.sync.tagging.fetch_image", new=AsyncMock(return_value=b"thumb")) as fetch, \
                patch("ytplaylist.sync.tagging.prepare_cover", return_value=(b"jpeg", "image/jpeg")):
            await TrackTagger(session=None, resolver=FakeResolver(None)).tag(
                path, item, ["Artist"], "Song", scope
            )

        fetch.assert_awaited_once_with(None, "https://i.ytimg.com/vi/vid1/maxres.jpg")
        tag = TagFile.open(path)
        assert tag.pictures[0].data == b"jpeg"
        assert tag.picture_description == "YouTube"

    @pytest.mark.asyncio
    async def test_missing_thumbnail_leaves_file_without_cover(self, temp_dir, scope, caplog):
        path = write_track(temp_dir, "Artist - Song.mp3")
        item = make_item("vid1", thumbnails=(Thumbnail("https://i.ytimg.com/vi/vid1/maxres.jpg", 1280, 720),))
        not_found = RemoteAccessError("Image request failed with HTTP 404", status_code=404)

        with patch("ytplaylist.sync.tagging.fetch_image", new=AsyncMock(side_effect=not_found)), \
                caplog.at_level(logging.WARNING):
            await TrackTagger(session=None).tag(path, item, ["Artist"], "Song", scope)

        tag = TagFile.open(path)
        assert tag.fingerprint == "vid1"
        assert tag.title == "Song"
        assert not tag.has_picture
        assert "No cover art for Song" in caplog.text

    @pytest.mark.asyncio
    async def test_refused_thumbnail_is_raised(self, temp_dir, scope):
        path = write_track(temp_dir, "Artist - Song.mp3")
        item = make_item("vid1", thumbnails=(Thumbnail("https://i.ytimg.com/vi/vid1/maxres.jpg", 1280, 720),))
        refused = RemoteAccessError("Image request failed with HTTP 429", status_code=429)

        with patch("ytplaylist.sync.tagging.fetch_image", new=AsyncMock(side_effect=refused)):
            with pytest.raises(RemoteAccessError):
                await TrackTagger(session=None).tag(path, item, ["Artist"], "Song", scope)
