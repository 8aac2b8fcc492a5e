"""
ytplaylist: Keep a local MP3 directory in sync with a YouTube playlist.

Each run compares the playlist with the files already on disk, downloads
what is missing, tags it with metadata from YouTube and MusicBrainz, and
offers to delete the files whose video left the playlist.

Architecture:
    library/      Files on disk
        - Filename contract "<Artist1 & Artist2> - <Title>.mp3"
        - ID3 tags (the video id is stored as the file's fingerprint)
        - Scanner building the fingerprint -> path index

    youtube/      Remote catalog
        - Paged playlist listing and audio manifests (yt-dlp API)
        - Audio extraction to MP3 (yt-dlp + FFmpeg subprocess)

    musicbrainz/  Metadata enrichment
        - Rate-limited, cached client (1 request/second)
        - Artist / recording / release ranking with tie detection
        - Album, album artists, release ids and front cover

    sync/         One run
        - Download job state machine with retries and cancellation
        - Fetch task + worker pool pipeline
        - Reconciliation of removed videos

    core/         Configuration, logging, exceptions, cancellation, cache
    cli.py        Command-line interface

Usage:
    Command Line:
        ytplaylist -p "https://www.youtube.com/playlist?list=PL..." -o ~/Music/MyPlaylist

    Python API:
        import asyncio
        from ytplaylist.core import CancellationScope, load_config, setup_logging
        from ytplaylist.sync import sync_playlist

        config = load_config()
        setup_logging(destination / "logs")
        report = asyncio.run(sync_playlist(
            "PL...", destination, config, CancellationScope(), confirm=lambda q: True
        ))

Dependencies:
    - yt-dlp: Playlist listing and audio download
    - mutagen: ID3 tags
    - aiohttp: MusicBrainz and thumbnail HTTP
    - asyncio-throttle: MusicBrainz rate limit
    - Pillow: Cover art normalization
    - click / rich-click: CLI
    - tqdm: Progress bar
    - pyyaml: Configuration file parsing
"""

__version__ = "0.1.0"
__author__ = "ytplaylist"
__license__ = "MIT"

# Convenience imports for common usage
from ytplaylist.core import (
    CancellationScope,
    Config,
    ConfigError,
    YtPlaylistError,
    load_config,
    setup_logging,
)
from ytplaylist.sync import SyncReport, sync_playlist

__all__ = [
    "__version__",
    "CancellationScope",
    "Config",
    "ConfigError",
    "YtPlaylistError",
    "load_config",
    "setup_logging",
    "SyncReport",
    "sync_playlist",
]
