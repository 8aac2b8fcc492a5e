"""
Download job: one playlist entry from YouTube to a tagged file on disk.

State machine:

    PENDING -> DOWNLOADING -> TAGGING -> DONE
                   ^             |
                   |             v   (403 / 429)
                   +-------- RETRYING
                                 |
                                 v   (budget exhausted, or any other error)
                               FAILED

    CANCELLED is entered from any state once the run is cancelled.

Every transition first checks the run's CancellationScope, so a
cancelled job stops at its next step, is never retried, and is never
reported as a failure.

Files are produced in a private temporary directory and moved into the
music directory only once fully tagged: the library never contains a
half-written file, and an interrupted job leaves nothing behind.
"""

import asyncio
import shutil
import tempfile
from enum import Enum
from pathlib import Path

from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.core.exceptions import (
    DownloadError,
    ExtractionError,
    JobCancelled,
    RemoteAccessError,
    YtPlaylistError,
)
from ytplaylist.core.logger import get_logger, log_download_failure
from ytplaylist.library.naming import build_filename, parse_filename
from ytplaylist.sync.tagging import TrackTagger, normalize_remote_metadata
from ytplaylist.youtube.client import YouTubeCatalog
from ytplaylist.youtube.extractor import AudioExtractor
from ytplaylist.youtube.models import RemoteItem

logger = get_logger(__name__)


MAX_ATTEMPTS = 4
RETRY_BACKOFF = 1.0  # seconds


class JobState(Enum):
    PENDING = "pending"
    DOWNLOADING = "downloading"
    TAGGING = "tagging"
    RETRYING = "retrying"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


def describe_failure(error: Exception) -> str:
    """Root-cause text for the failure log."""
    if isinstance(error, RemoteAccessError):
        return error.describe_status()
    if isinstance(error, ExtractionError):
        stderr = error.details.get("stderr")
        return f"{error.message} ({stderr})" if stderr else error.message
    if isinstance(error, YtPlaylistError):
        return error.message
    return f"{type(error).__name__}: {error}"


class DownloadJob:
    """
    Processes one RemoteItem.

    Attributes:
        item: The playlist entry.
        destination: Music directory the final file is moved into.
        state: Current JobState.
        history: Every state entered, in order (PENDING first).
        output_path: Final file path once DONE.
        attempts: Number of download attempts started.
    """

    def __init__(
        self,
        item: RemoteItem,
        destination: Path,
        catalog: YouTubeCatalog,
        extractor: AudioExtractor,
        tagger: TrackTagger,
        scope: CancellationScope,
        max_attempts: int = MAX_ATTEMPTS,
        retry_backoff: float = RETRY_BACKOFF,
    ) -> None:
        self.item = item
        self.destination = destination
        self._catalog = catalog
        self._extractor = extractor
        self._tagger = tagger
        self._scope = scope
        self._max_attempts = max_attempts
        self._retry_backoff = retry_backoff

        self.state = JobState.PENDING
        self.history: list[JobState] = [JobState.PENDING]
        self.output_path: Path | None = None
        self.attempts = 0

        artist, title = normalize_remote_metadata(item)
        self.filename = build_filename(artist, title)
        parsed = parse_filename(Path(self.filename).stem)
        # build_filename always yields "<artist> - <title>"
        assert parsed is not None
        self.performers = parsed.artists
        self.title = parsed.title

    def _set_state(self, state: JobState) -> None:
        self.state = state
        self.history.append(state)

    def _transition(self, state: JobState) -> None:
        self._scope.raise_if_cancelled()
        self._set_state(state)

    def _fail(self, reason: str) -> None:
        self._set_state(JobState.FAILED)
        log_download_failure(
            logger,
            title=self.title,
            artist=" & ".join(self.performers),
            url=self.item.url,
            reason=reason,
        )

    async def run(self) -> JobState:
        """
        Run the job to a terminal state (DONE, FAILED or CANCELLED).

        Never raises for item-level problems; the returned state says
        what happened.
        """
        last_error: RemoteAccessError | None = None
        try:
            for attempt in range(1, self._max_attempts + 1):
                if attempt > 1:
                    self._transition(JobState.RETRYING)
                    await self._scope.sleep(self._retry_backoff)
                try:
                    await self._attempt()
                    return self.state
                except RemoteAccessError as e:
                    if not e.is_rate_limited:
                        raise
                    last_error = e
                    logger.debug(
                        f"{self.title}: {e.describe_status()} "
                        f"(attempt {attempt}/{self._max_attempts})"
                    )

            assert last_error is not None
            self._scope.raise_if_cancelled()
            self._fail(describe_failure(last_error))

        except JobCancelled:
            self._set_state(JobState.CANCELLED)
        except Exception as e:
            if self._scope.cancelled:
                # e.g. yt-dlp killed by the same Ctrl+C
                self._set_state(JobState.CANCELLED)
            else:
                logger.debug(f"{self.title} failed", exc_info=True)
                self._fail(describe_failure(e))

        return self.state

    async def _attempt(self) -> None:
        self.attempts += 1
        self._transition(JobState.DOWNLOADING)
        logger.info(f"Downloading {self.filename[:-4]}")

        manifest = await self._catalog.get_audio_manifest(self.item.video_id)
        variant = manifest.best()
        if variant is None:
            raise DownloadError(
                "No audio-only format available",
                details={"video_id": self.item.video_id}
            )

        work_dir = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix="ytplaylist-"))
        try:
            temp_file = work_dir / "audio.mp3"
            await self._extractor.extract(self.item.url, temp_file, variant.format_id)

            self._transition(JobState.TAGGING)
            await self._tagger.tag(temp_file, self.item, self.performers, self.title, self._scope)

            # Last check before the file becomes visible in the library
            self._scope.raise_if_cancelled()
            target = self.destination / self.filename
            await asyncio.to_thread(shutil.move, str(temp_file), str(target))
            self.output_path = target
        finally:
            await asyncio.to_thread(shutil.rmtree, work_dir, True)

        self._set_state(JobState.DONE)
