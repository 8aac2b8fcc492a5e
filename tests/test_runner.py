"""End-to-end tests for a sync run with fake YouTube access"""

import logging
from dataclasses import replace
from unittest.mock import patch

import pytest

from ytplaylist.core.config import Config
from ytplaylist.library.tags import TagFile
from ytplaylist.sync.runner import sync_playlist

from conftest import FakeCatalog, FakeExtractor, make_item, write_track


@pytest.fixture
def config():
    base = Config()
    return replace(base, catalog=replace(base.catalog, enabled=False))


def run_with(catalog, extractor):
    return (
        patch("ytplaylist.sync.runner.YouTubeCatalog", return_value=catalog),
        patch("ytplaylist.sync.runner.AudioExtractor", return_value=extractor),
    )


class TestSyncPlaylist:
    """Scan, download, reconcile"""

    @pytest.mark.asyncio
    async def test_full_sync(self, music_dir, scope, config, caplog):
        keep = write_track(music_dir, "Kept - Song.mp3", fingerprint="keep", title="Song", performers=["Kept"])
        gone = write_track(music_dir, "Gone - Song.mp3", fingerprint="gone", title="Song", performers=["Gone"])
        stray = write_track(music_dir, "Stray - Song.mp3")
        catalog = FakeCatalog(pages=[[
            make_item("keep", title="Song", author="Kept"),
            make_item("new1", title="New Artist - Fresh", author="New Artist"),
        ]])
        extractor = FakeExtractor()
        questions = []

        def confirm(question):
            questions.append(question)
            return True

        catalog_patch, extractor_patch = run_with(catalog, extractor)
        with catalog_patch, extractor_patch, caplog.at_level(logging.INFO):
            report = await sync_playlist("PLtest", music_dir, config, scope, confirm, show_progress=False)

        new_file = music_dir / "New Artist - Fresh.mp3"
        assert new_file.exists()
        tag = TagFile.open(new_file)
        assert tag.fingerprint == "new1"
        assert tag.title == "Fresh"
        assert tag.performers == ["New Artist"]

        assert keep.exists()
        assert not gone.exists()
        assert stray.exists()
        assert report.deleted == [gone]
        assert len(questions) == 1
        assert report.result.stats.downloaded == 1
        assert report.result.stats.skipped == 1
        assert "SYNC SUMMARY: Test Playlist" in caplog.text

    @pytest.mark.asyncio
    async def test_second_run_is_idempotent(self, music_dir, scope, config):
        catalog = FakeCatalog(pages=[[make_item("vid1", title="Song", author="Artist")]])
        extractor = FakeExtractor()

        catalog_patch, extractor_patch = run_with(catalog, extractor)
        with catalog_patch, extractor_patch:
            await sync_playlist("PLtest", music_dir, config, scope, lambda q: True, show_progress=False)
            report = await sync_playlist("PLtest", music_dir, config, scope, lambda q: True, show_progress=False)

        assert len(extractor.calls) == 1
        assert report.result.stats.skipped == 1
        assert report.scan.corrected_count == 0

    @pytest.mark.asyncio
    async def test_nothing_deleted_when_cancelled(self, music_dir, scope, config):
        gone = write_track(music_dir, "Gone - Song.mp3", fingerprint="gone")
        catalog = FakeCatalog(pages=[[make_item("vid1")]])
        scope.cancel()

        catalog_patch, extractor_patch = run_with(catalog, FakeExtractor())
        with catalog_patch, extractor_patch:
            report = await sync_playlist("PLtest", music_dir, config, scope, lambda q: True, show_progress=False)

        assert gone.exists()
        assert report.deleted == []
        assert report.result.cancelled

    @pytest.mark.asyncio
    async def test_interrupt_at_prompt_marks_run_cancelled(self, music_dir, scope, config):
        gone = write_track(music_dir, "Gone - Song.mp3", fingerprint="gone")
        catalog = FakeCatalog(pages=[[make_item("vid1")]])

        def interrupt_then_accept(question):
            scope.cancel("Interrupted by user")
            return True

        catalog_patch, extractor_patch = run_with(catalog, FakeExtractor())
        with catalog_patch, extractor_patch:
            report = await sync_playlist(
                "PLtest", music_dir, config, scope, interrupt_then_accept, show_progress=False
            )

        assert gone.exists()
        assert report.deleted == []
        assert report.result.cancelled
