"""
Concurrent sync pipeline.

One fetch task walks the playlist page by page. Every entry's video id is
recorded into the online set; entries not yet on disk are put on an
unbounded queue. N worker tasks take entries off the queue and hand them
to a processing coroutine (normally a DownloadJob).

    fetch ──> queue ──> worker 1 ──> process(item)
                   └──> worker 2 ──> process(item)

The fetch task closes the queue with one sentinel per worker when it
finishes, successfully or not. run() returns once the fetch task and all
workers have ended.

The online set is complete only if the fetch task reached the end of the
playlist without error or cancellation: SyncResult.fetch_completed.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Mapping

from tqdm import tqdm

from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.core.exceptions import YtPlaylistError
from ytplaylist.core.logger import get_logger
from ytplaylist.sync.job import JobState
from ytplaylist.youtube.client import YouTubeCatalog
from ytplaylist.youtube.models import RemoteItem

logger = get_logger(__name__)


DEFAULT_WORKERS = 2

# Queue sentinel
_CLOSED = object()

ProcessItem = Callable[[RemoteItem], Awaitable[JobState]]


@dataclass
class SyncStats:
    """Counters for one pipeline run."""
    observed: int = 0
    skipped: int = 0
    unavailable: int = 0
    queued: int = 0
    downloaded: int = 0
    failed: int = 0
    cancelled: int = 0

    @property
    def processed(self) -> int:
        return self.downloaded + self.failed + self.cancelled

    @property
    def success_rate(self) -> float:
        attempted = self.downloaded + self.failed
        if attempted == 0:
            return 100.0
        return round(self.downloaded / attempted * 100, 1)


@dataclass
class SyncResult:
    """
    Outcome of a pipeline run.

    Attributes:
        online_ids: Every video id observed in the playlist.
        fetch_completed: True if the whole playlist was listed.
        cancelled: True if the run was cancelled.
        stats: Counters.
    """
    online_ids: set[str] = field(default_factory=set)
    fetch_completed: bool = False
    cancelled: bool = False
    stats: SyncStats = field(default_factory=SyncStats)


class SyncPipeline:
    """
    Fetch task + worker pool over an unbounded queue.

    Attributes:
        _catalog: Remote playlist source.
        _process: Coroutine run for each queued item; returns the job's
                  terminal state.
        _scope: Run cancellation scope.
        _workers: Number of worker tasks.
        _show_progress: Show a tqdm progress bar.
    """

    def __init__(
        self,
        catalog: YouTubeCatalog,
        process: ProcessItem,
        scope: CancellationScope,
        workers: int = DEFAULT_WORKERS,
        show_progress: bool = True,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._catalog = catalog
        self._process = process
        self._scope = scope
        self._workers = workers
        self._show_progress = show_progress

    async def run(self, playlist_url: str, index: Mapping[str, Path]) -> SyncResult:
        """
        Sync the playlist against the on-disk index.

        Args:
            playlist_url: Canonical playlist URL.
            index: fingerprint -> path of the files already on disk.

        Returns:
            SyncResult. Never raises for fetch or item failures.
        """
        result = SyncResult()
        queue: asyncio.Queue = asyncio.Queue()

        progress = tqdm(
            total=0,
            desc="Downloading",
            unit="track",
            leave=False,
            disable=not self._show_progress,
        )
        try:
            fetch_task = asyncio.create_task(
                self._fetch(playlist_url, index, queue, result, progress)
            )
            worker_tasks = [
                asyncio.create_task(self._worker(queue, result.stats, progress))
                for _ in range(self._workers)
            ]
            outcomes = await asyncio.gather(fetch_task, *worker_tasks)
        finally:
            progress.close()

        result.fetch_completed = outcomes[0]
        result.cancelled = self._scope.cancelled
        return result

    async def _fetch(
        self,
        playlist_url: str,
        index: Mapping[str, Path],
        queue: asyncio.Queue,
        result: SyncResult,
        progress: tqdm,
    ) -> bool:
        stats = result.stats
        completed = False
        try:
            async for page in self._catalog.stream_pages(playlist_url, self._scope):
                for item in page:
                    # The same video may appear twice in a playlist
                    if item.video_id in result.online_ids:
                        continue
                    result.online_ids.add(item.video_id)
                    stats.observed += 1

                    if item.video_id in index:
                        stats.skipped += 1
                        continue
                    if not item.available:
                        stats.unavailable += 1
                        logger.warning(f"Skipping unavailable video {item.url}")
                        continue

                    queue.put_nowait(item)
                    stats.queued += 1
                    progress.total += 1
                    progress.refresh()

            completed = not self._scope.cancelled
            if completed:
                logger.info(
                    f"Playlist listed: {stats.observed} videos, "
                    f"{stats.skipped} already downloaded, {stats.queued} to download"
                )
        except YtPlaylistError as e:
            logger.error(f"Failed to list playlist: {e.message}")
        except Exception:
            logger.exception("Unexpected error while listing playlist")
        finally:
            for _ in range(self._workers):
                queue.put_nowait(_CLOSED)

        return completed

    async def _worker(self, queue: asyncio.Queue, stats: SyncStats, progress: tqdm) -> None:
        while True:
            item = await queue.get()
            if item is _CLOSED:
                return

            if self._scope.cancelled:
                stats.cancelled += 1
                progress.update(1)
                continue

            try:
                state = await self._process(item)
            except Exception:
                logger.exception(f"Unexpected error while processing {item.url}")
                state = JobState.FAILED

            if state is JobState.DONE:
                stats.downloaded += 1
            elif state is JobState.CANCELLED:
                stats.cancelled += 1
            else:
                stats.failed += 1
            progress.update(1)
