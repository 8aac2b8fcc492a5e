"""Tests for the download job state machine"""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from ytplaylist.core.exceptions import ExtractionError, RemoteAccessError, TagError
from ytplaylist.library.tags import TagFile
from ytplaylist.sync.job import DownloadJob, JobState
from ytplaylist.sync.tagging import TrackTagger
from ytplaylist.youtube.models import AudioManifest, Thumbnail

from conftest import FakeCatalog, FakeExtractor, FakeTagger, make_item


def forbidden():
    return RemoteAccessError("HTTP Error 403: Forbidden", status_code=403)


def make_job(item, music_dir, scope, catalog=None, extractor=None, tagger=None):
    return DownloadJob(
        item,
        music_dir,
        catalog or FakeCatalog(),
        extractor or FakeExtractor(),
        tagger or FakeTagger(),
        scope,
        max_attempts=4,
        retry_backoff=0,
    )


def failure_records(caplog):
    return [r for r in caplog.records if hasattr(r, "download_failed_title")]


class TestDownloadJob:
    """Test state transitions, retries and cancellation"""

    @pytest.mark.asyncio
    async def test_success(self, music_dir, scope):
        item = make_item("vid1", title="Song", author="Artist")
        extractor = FakeExtractor()
        job = make_job(item, music_dir, scope, extractor=extractor)

        state = await job.run()

        assert state is JobState.DONE
        assert job.history == [
            JobState.PENDING, JobState.DOWNLOADING, JobState.TAGGING, JobState.DONE
        ]
        assert job.output_path == music_dir / "Artist - Song.mp3"
        assert TagFile.open(job.output_path).fingerprint == "vid1"
        # Highest bitrate audio-only variant
        assert extractor.calls == [(item.url, "251")]

    @pytest.mark.asyncio
    async def test_identity_comes_from_filename(self, music_dir, scope):
        item = make_item("vid1", title="Song (Live)", author="Artist & Friend - Topic")
        tagger = FakeTagger()
        job = make_job(item, music_dir, scope, tagger=tagger)

        await job.run()

        assert job.output_path.name == "Artist & Friend - Song (Live).mp3"
        assert tagger.calls == [("vid1", ["Artist", "Friend"], "Song (Live)")]

    @pytest.mark.asyncio
    async def test_recovers_after_three_refusals(self, music_dir, scope, caplog):
        catalog = FakeCatalog(manifest_errors={"vid1": [forbidden(), forbidden(), forbidden()]})
        job = make_job(make_item("vid1"), music_dir, scope, catalog=catalog)

        with caplog.at_level(logging.DEBUG):
            state = await job.run()

        assert state is JobState.DONE
        assert job.attempts == 4
        assert job.history.count(JobState.RETRYING) == 3
        assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []

    @pytest.mark.asyncio
    async def test_fails_after_four_refusals(self, music_dir, scope, caplog):
        catalog = FakeCatalog(manifest_errors={"vid1": [forbidden() for _ in range(4)]})
        job = make_job(make_item("vid1", title="Song"), music_dir, scope, catalog=catalog)

        with caplog.at_level(logging.DEBUG):
            state = await job.run()

        assert state is JobState.FAILED
        assert job.attempts == 4
        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert errors[0].getMessage() == "Failed to download Song: HTTP 403 (Forbidden)"
        assert len(failure_records(caplog)) == 1
        assert list(music_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_rate_limited_download_is_retried(self, music_dir, scope):
        class FlakyExtractor(FakeExtractor):
            async def extract(self, source_url, target, format_id):
                if not self.calls:
                    self.calls.append((source_url, format_id))
                    raise RemoteAccessError("Too many requests", status_code=429)
                return await super().extract(source_url, target, format_id)

        job = make_job(make_item("vid1"), music_dir, scope, extractor=FlakyExtractor())

        assert await job.run() is JobState.DONE
        assert job.attempts == 2

    @pytest.mark.asyncio
    async def test_other_errors_fail_immediately(self, music_dir, scope, caplog):
        extractor = FakeExtractor(error=ExtractionError(
            "yt-dlp exited with code 1",
            details={"stderr": "ERROR: Video unavailable"},
            exit_code=1,
        ))
        job = make_job(make_item("vid1", title="Song"), music_dir, scope, extractor=extractor)

        with caplog.at_level(logging.ERROR):
            state = await job.run()

        assert state is JobState.FAILED
        assert job.attempts == 1
        assert JobState.RETRYING not in job.history
        records = failure_records(caplog)
        assert len(records) == 1
        assert "Video unavailable" in records[0].download_failed_reason

    @pytest.mark.asyncio
    async def test_tag_error_fails(self, music_dir, scope):
        def broken():
            raise TagError("Cannot write tags")

        job = make_job(make_item("vid1"), music_dir, scope, tagger=FakeTagger(on_tag=broken))

        assert await job.run() is JobState.FAILED
        assert list(music_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, music_dir, scope, caplog):
        scope.cancel()
        catalog = FakeCatalog()
        job = make_job(make_item("vid1"), music_dir, scope, catalog=catalog)

        with caplog.at_level(logging.DEBUG):
            state = await job.run()

        assert state is JobState.CANCELLED
        assert catalog.manifest_calls == []
        assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []

    @pytest.mark.asyncio
    async def test_cancelled_during_tagging(self, music_dir, scope, caplog):
        job = make_job(make_item("vid1"), music_dir, scope, tagger=FakeTagger(on_tag=scope.cancel))

        with caplog.at_level(logging.DEBUG):
            state = await job.run()

        assert state is JobState.CANCELLED
        assert list(music_dir.iterdir()) == []
        assert failure_records(caplog) == []

    @pytest.mark.asyncio
    async def test_cancelled_while_retrying(self, music_dir, scope, caplog):
        def refuse_and_cancel():
            scope.cancel()
            return forbidden()

        class CancellingCatalog(FakeCatalog):
            async def get_audio_manifest(self, video_id):
                self.manifest_calls.append(video_id)
                raise refuse_and_cancel()

        catalog = CancellingCatalog()
        job = make_job(make_item("vid1"), music_dir, scope, catalog=catalog)

        with caplog.at_level(logging.DEBUG):
            state = await job.run()

        assert state is JobState.CANCELLED
        assert catalog.manifest_calls == ["vid1"]
        assert failure_records(caplog) == []

    @pytest.mark.asyncio
    async def test_no_audio_format(self, music_dir, scope):
        class EmptyCatalog(FakeCatalog):
            async def get_audio_manifest(self, video_id):
                return AudioManifest(video_id=video_id)

        job = make_job(make_item("vid1"), music_dir, scope, catalog=EmptyCatalog())

        assert await job.run() is JobState.FAILED

    @pytest.mark.asyncio
    async def test_broken_thumbnail_still_saves_track(self, music_dir, scope, caplog):
        item = make_item("vid1", title="Song", author="Artist", thumbnails=(
            Thumbnail("https://i.ytimg.com/vi/vid1/maxres.jpg", 1280, 720),
        ))
        not_found = RemoteAccessError("Image request failed with HTTP 404", status_code=404)
        job = make_job(item, music_dir, scope, tagger=TrackTagger(session=None))

        with patch("ytplaylist.sync.tagging.fetch_image", new=AsyncMock(side_effect=not_found)), \
                caplog.at_level(logging.DEBUG):
            state = await job.run()

        assert state is JobState.DONE
        tag = TagFile.open(music_dir / "Artist - Song.mp3")
        assert tag.fingerprint == "vid1"
        assert not tag.has_picture
        assert failure_records(caplog) == []
