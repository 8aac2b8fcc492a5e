"""
Core infrastructure for ytplaylist.

Configuration, exceptions, logging, cooperative cancellation, and the
on-disk response cache shared by the rest of the package.
"""

from ytplaylist.core.cache import ResponseCache
from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.core.config import (
    CatalogConfig,
    Config,
    DownloadConfig,
    OutputConfig,
    load_config,
)
from ytplaylist.core.exceptions import (
    CacheError,
    CatalogError,
    ConfigError,
    DownloadError,
    ExtractionError,
    JobCancelled,
    RemoteAccessError,
    TagError,
    YtPlaylistError,
)
from ytplaylist.core.logger import (
    get_logger,
    log_ambiguous_match,
    log_download_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "CatalogConfig",
    "DownloadConfig",
    "OutputConfig",
    "load_config",
    # Exceptions
    "YtPlaylistError",
    "ConfigError",
    "RemoteAccessError",
    "DownloadError",
    "ExtractionError",
    "TagError",
    "CatalogError",
    "CacheError",
    "JobCancelled",
    # Logging
    "setup_logging",
    "get_logger",
    "log_download_failure",
    "log_ambiguous_match",
    "shutdown_logging",
    # Runtime
    "CancellationScope",
    "ResponseCache",
]
