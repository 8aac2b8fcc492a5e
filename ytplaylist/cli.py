"""
Command-line interface for ytplaylist.

This module implements the CLI using Click; rich-click is used for the
help and error colours.

Usage:
    # Sync a playlist into a directory (created if missing)
    ytplaylist -p "https://www.youtube.com/playlist?list=PL..." -o ~/Music/MyPlaylist

    # Playlist id instead of URL, 4 parallel downloads, no questions asked
    ytplaylist -p PL... -o ~/Music/MyPlaylist -w 4 --yes

    # Skip MusicBrainz (YouTube title, artist and thumbnail only)
    ytplaylist -p PL... -o ~/Music/MyPlaylist --no-metadata

Configuration:
    config.yaml in the current directory (or --config <path>) is optional;
    command-line options override it. See config.example.yaml.

Exit codes:
    0    Sync finished (individual download failures are listed in the
         download_failures log, they don't change the exit code)
    1    Configuration error
    2    Invalid command-line usage
    3    Playlist could not be opened
    4    Other error
    130  Interrupted (Ctrl+C)
"""

import asyncio
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "cli": [
        {
            "name": "Sync",
            "options": ["--playlist", "--output"],
        },
        {
            "name": "Download Options",
            "options": ["--workers", "--cookie-file", "--no-metadata"],
        },
        {
            "name": "Behavior",
            "options": ["--config", "--yes", "--no-progress"],
        },
        {
            "name": "Info",
            "options": ["--version", "--help"],
        },
    ],
}

from ytplaylist import __version__
from ytplaylist.core import (
    CancellationScope,
    Config,
    ConfigError,
    RemoteAccessError,
    YtPlaylistError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from ytplaylist.sync import SyncReport, sync_playlist
from ytplaylist.youtube import extract_playlist_id

logger = get_logger(__name__)


EXIT_CONFIG_ERROR = 1
EXIT_PLAYLIST_ERROR = 3
EXIT_ERROR = 4
EXIT_INTERRUPTED = 130


@click.command()
@click.option(
    "-p", "--playlist",
    type=str,
    help="YouTube playlist URL or id",
)
@click.option(
    "-o", "--output",
    type=click.Path(file_okay=False, path_type=Path),
    help="Music directory to keep in sync (created if missing)",
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration file (default: ./config.yaml if present)",
)
@click.option(
    "-w", "--workers",
    type=click.IntRange(min=1),
    help="Parallel downloads [default: 2]",
)
@click.option(
    "--cookie-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="cookies.txt for age-restricted or members-only videos",
)
@click.option(
    "--no-metadata",
    is_flag=True,
    help="Don't look up album metadata on MusicBrainz",
)
@click.option(
    "-y", "--yes",
    is_flag=True,
    help="Delete files removed from the playlist without asking",
)
@click.option(
    "--no-progress",
    is_flag=True,
    help="Hide the progress bar",
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit",
)
@click.pass_context
def cli(
    ctx: click.Context,
    playlist: Optional[str],
    output: Optional[Path],
    config_path: Optional[Path],
    workers: Optional[int],
    cookie_file: Optional[Path],
    no_metadata: bool,
    yes: bool,
    no_progress: bool,
    version: bool
) -> None:
    """
    ytplaylist: Keep a local MP3 directory in sync with a YouTube playlist.

    New videos are downloaded as "Artist - Title.mp3" and tagged with
    YouTube and MusicBrainz metadata. Files whose video left the playlist
    are listed and deleted after confirmation.

    \b
    USAGE:
        ytplaylist -p "https://www.youtube.com/playlist?list=..." -o ~/Music/Playlist
        ytplaylist -p PL... -o ~/Music/Playlist --yes --no-progress
    """
    if version:
        click.echo(f"ytplaylist {__version__}")
        ctx.exit(0)

    if not playlist:
        raise click.UsageError("Missing option -p/--playlist")
    if not output:
        raise click.UsageError("Missing option -o/--output")

    try:
        extract_playlist_id(playlist)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="-p/--playlist") from e

    _run_sync(
        reference=playlist,
        destination=output.expanduser(),
        config_path=config_path,
        workers=workers,
        cookie_file=cookie_file,
        no_metadata=no_metadata,
        auto_confirm=yes,
        show_progress=not no_progress,
    )


def _apply_overrides(
    config: Config,
    workers: Optional[int],
    cookie_file: Optional[Path],
    no_metadata: bool
) -> Config:
    """Command-line options take precedence over config.yaml."""
    download = config.download
    if workers is not None:
        download = replace(download, workers=workers)
    if cookie_file is not None:
        download = replace(download, cookie_file=cookie_file)

    catalog = config.catalog
    if no_metadata:
        catalog = replace(catalog, enabled=False)

    return replace(config, download=download, catalog=catalog)


def _confirm(question: str) -> bool:
    return click.confirm(question, default=True)


async def _sync_with_signals(
    reference: str,
    destination: Path,
    config: Config,
    auto_confirm: bool,
    show_progress: bool
) -> SyncReport:
    """Run the sync with Ctrl+C mapped to cooperative cancellation."""
    scope = CancellationScope()
    loop = asyncio.get_running_loop()

    def on_interrupt() -> None:
        if not scope.cancelled:
            logger.warning("Interrupted, stopping after the current steps...")
        scope.cancel("Interrupted by user")

    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    except NotImplementedError:
        # Windows: Ctrl+C arrives as KeyboardInterrupt instead
        pass

    try:
        return await sync_playlist(
            reference,
            destination,
            config,
            scope,
            confirm=_confirm,
            auto_confirm=auto_confirm,
            show_progress=show_progress,
        )
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass


def _run_sync(
    reference: str,
    destination: Path,
    config_path: Optional[Path],
    workers: Optional[int],
    cookie_file: Optional[Path],
    no_metadata: bool,
    auto_confirm: bool,
    show_progress: bool
) -> None:
    """Load configuration, set up logging, run the sync, map errors to exit codes."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    config = _apply_overrides(config, workers, cookie_file, no_metadata)
    log_dir = config.output.log_directory or destination / "logs"

    try:
        setup_logging(log_dir)
        logger.info(f"ytplaylist {__version__}")

        report = asyncio.run(
            _sync_with_signals(reference, destination, config, auto_confirm, show_progress)
        )
        if report.result.cancelled:
            click.echo("\nInterrupted by user", err=True)
            sys.exit(EXIT_INTERRUPTED)

        logger.info("ytplaylist completed successfully")

    except RemoteAccessError as e:
        click.echo(f"Cannot open playlist: {e.message}", err=True)
        logger.error(f"Cannot open playlist: {e.message}", exc_info=True)
        sys.exit(EXIT_PLAYLIST_ERROR)

    except YtPlaylistError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(EXIT_ERROR)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(EXIT_INTERRUPTED)

    except OSError as e:
        click.echo(f"Error: {e}", err=True)
        logger.exception("File system error")
        sys.exit(EXIT_ERROR)

    finally:
        shutdown_logging()


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `ytplaylist` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
