"""
One complete sync run: scan, list and download, reconcile, report.

Steps:
    1. Scan the destination and build the on-disk index
    2. Resolve the playlist reference
    3. Run the pipeline (downloads + MusicBrainz enrichment)
    4. Offer to delete files whose video left the playlist
    5. Log the run statistics

Every network service is created here and torn down when the run ends;
the rest of the package receives them as constructor arguments.
"""

import asyncio
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from pathlib import Path

import aiohttp

from ytplaylist.core.cache import ResponseCache
from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.core.config import Config
from ytplaylist.core.exceptions import CacheError
from ytplaylist.core.logger import Colors, format_summary_line, get_logger
from ytplaylist.library.scanner import ScanResult, scan_library
from ytplaylist.musicbrainz.client import MusicBrainzClient, build_user_agent
from ytplaylist.musicbrainz.rate_limiter import RateLimiter
from ytplaylist.musicbrainz.resolver import MetadataResolver
from ytplaylist.sync.job import DownloadJob, JobState
from ytplaylist.sync.pipeline import SyncPipeline, SyncResult
from ytplaylist.sync.reconcile import Confirm, ReconciliationFinalizer
from ytplaylist.sync.tagging import TrackTagger
from ytplaylist.youtube.client import YouTubeCatalog
from ytplaylist.youtube.extractor import AudioExtractor
from ytplaylist.youtube.models import PlaylistInfo, RemoteItem

logger = get_logger(__name__)


HTTP_TIMEOUT = 60  # seconds, per request


@dataclass
class SyncReport:
    """Everything one run did."""
    playlist: PlaylistInfo
    scan: ScanResult
    result: SyncResult
    deleted: list[Path] = field(default_factory=list)


async def _open_resolver(
    config: Config,
    session: aiohttp.ClientSession,
    stack: AsyncExitStack
) -> MetadataResolver | None:
    catalog = config.catalog
    if not catalog.enabled:
        logger.info("MusicBrainz enrichment disabled")
        return None

    cache = None
    try:
        cache = ResponseCache(catalog.cache_path, ttl_days=catalog.cache_ttl_days)
        stack.callback(cache.close)
        cache.purge_expired()
    except CacheError as e:
        logger.warning(f"{e.message}, continuing without response cache")

    client = MusicBrainzClient(
        session,
        RateLimiter(catalog.rate_limit_interval),
        cache=cache,
        user_agent=build_user_agent(catalog.contact),
        search_limit=catalog.search_limit,
        max_attempts=catalog.max_attempts,
        retry_backoff=catalog.retry_backoff,
    )
    return MetadataResolver(client, strict_recording_ties=catalog.strict_recording_ties)


async def sync_playlist(
    reference: str,
    destination: Path,
    config: Config,
    scope: CancellationScope,
    confirm: Confirm,
    auto_confirm: bool = False,
    show_progress: bool = True,
) -> SyncReport:
    """
    Synchronize `destination` with the playlist `reference`.

    Args:
        reference: Playlist id or URL.
        destination: Music directory (created if missing).
        config: Application configuration.
        scope: Cancellation scope, set by the caller on Ctrl+C.
        confirm: Asked before deleting files.
        auto_confirm: Delete without asking.
        show_progress: Show the download progress bar.

    Raises:
        ValueError: If `reference` isn't a playlist.
        RemoteAccessError: If the playlist cannot be opened.
    """
    destination.mkdir(parents=True, exist_ok=True)

    scan = await asyncio.to_thread(scan_library, destination)

    catalog = YouTubeCatalog(
        cookie_file=config.download.cookie_file,
        page_size=config.download.page_size,
    )
    playlist = await catalog.resolve_playlist(reference)
    logger.info(f'Syncing playlist "{playlist.title}" ({playlist.playlist_id})')

    extractor = AudioExtractor(cookie_file=config.download.cookie_file)
    timeout = aiohttp.ClientTimeout(total=HTTP_TIMEOUT)

    async with AsyncExitStack() as stack:
        session = await stack.enter_async_context(aiohttp.ClientSession(timeout=timeout))
        resolver = await _open_resolver(config, session, stack)
        tagger = TrackTagger(session, resolver)

        async def process(item: RemoteItem) -> JobState:
            job = DownloadJob(
                item,
                destination,
                catalog,
                extractor,
                tagger,
                scope,
                max_attempts=config.download.max_attempts,
                retry_backoff=config.download.retry_backoff,
            )
            return await job.run()

        pipeline = SyncPipeline(
            catalog,
            process,
            scope,
            workers=config.download.workers,
            show_progress=show_progress,
        )
        result = await pipeline.run(playlist.url, scan.index)

    finalizer = ReconciliationFinalizer(confirm, auto_confirm=auto_confirm)
    deleted = await asyncio.to_thread(finalizer.run, scan.index, result, scope)
    # Ctrl+C at the deletion prompt
    result.cancelled = result.cancelled or scope.cancelled

    report = SyncReport(playlist=playlist, scan=scan, result=result, deleted=deleted)
    log_summary(report)
    return report


def log_summary(report: SyncReport) -> None:
    """Log the end-of-run statistics block."""
    stats = report.result.stats
    scan = report.scan

    logger.info("=" * 60)
    logger.info(f"SYNC SUMMARY: {report.playlist.title}")
    logger.info("=" * 60)
    logger.info(format_summary_line("In playlist:", stats.observed))
    logger.info(format_summary_line("Already on disk:", stats.skipped))
    logger.info(format_summary_line("Downloaded:", stats.downloaded, Colors.GREEN))
    if stats.failed:
        logger.info(format_summary_line("Failed:", stats.failed, Colors.RED))
    if stats.unavailable:
        logger.info(format_summary_line("Unavailable:", stats.unavailable, Colors.YELLOW))
    if stats.cancelled:
        logger.info(format_summary_line("Cancelled:", stats.cancelled, Colors.YELLOW))
    if scan.corrected_count:
        logger.info(format_summary_line("Tags fixed:", scan.corrected_count))
    if scan.unexpected:
        logger.info(format_summary_line("Unexpected files:", len(scan.unexpected), Colors.YELLOW))
    if report.deleted:
        logger.info(format_summary_line("Deleted:", len(report.deleted)))
    if stats.downloaded or stats.failed:
        logger.info(format_summary_line("Success rate:", f"{stats.success_rate}%"))
    if not report.result.fetch_completed:
        logger.info(format_summary_line("Playlist listing:", "incomplete", Colors.YELLOW))
    logger.info("=" * 60)
