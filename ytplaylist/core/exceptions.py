"""
Exception classes for ytplaylist.

This module defines all custom exceptions used throughout the application.
Each exception is designed to provide clear, actionable error messages
and to distinguish between the failure modes the sync pipeline reacts to
differently (retry, abandon the item, degrade to no enrichment, abort).

Exception Hierarchy:
    YtPlaylistError (base)
        ConfigError - Configuration file issues
        RemoteAccessError - YouTube access issues (HTTP status aware)
        DownloadError - Audio download issues
            ExtractionError - yt-dlp process exited with a nonzero status
        TagError - Reading/writing embedded tags
        CatalogError - MusicBrainz / Cover Art Archive issues
        CacheError - On-disk response cache issues

    JobCancelled is deliberately NOT part of the hierarchy: a cancelled
    job is not a failure and must never be logged as one.
"""

from http import HTTPStatus


class YtPlaylistError(Exception):
    """
    Base exception for all ytplaylist errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (video id, URL, ...).

    Example:
        try:
            ...
        except YtPlaylistError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(YtPlaylistError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that stops the run before anything touches
    the destination directory.

    Common causes:
        - explicit --config path does not exist
        - config.yaml has invalid YAML syntax
        - invalid field values (e.g. zero workers)
    """
    pass


class RemoteAccessError(YtPlaylistError):
    """
    Raised when YouTube (or its CDN) refuses or fails a request.

    The HTTP status code is kept when it can be recovered, because the
    download job retries forbidden/rate-limited failures and treats
    everything else as fatal for the item.

    Attributes:
        status_code: HTTP status code if known, else None.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = None
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code

    @property
    def is_rate_limited(self) -> bool:
        """True for 403 Forbidden and 429 Too Many Requests."""
        return self.status_code in (HTTPStatus.FORBIDDEN, HTTPStatus.TOO_MANY_REQUESTS)

    def describe_status(self) -> str:
        """Return e.g. 'HTTP 403 (Forbidden)', or the message if no status is known."""
        if self.status_code is None:
            return self.message
        try:
            phrase = HTTPStatus(self.status_code).phrase
        except ValueError:
            return f"HTTP {self.status_code}"
        return f"HTTP {self.status_code} ({phrase})"


class DownloadError(YtPlaylistError):
    """
    Raised when audio for a playlist item cannot be obtained.

    NON-CRITICAL: the item is abandoned, the rest of the playlist continues.

    Common causes:
        - no audio-only format in the manifest
        - downloaded file missing after extraction
    """
    pass


class ExtractionError(DownloadError):
    """
    Raised when the yt-dlp extraction process exits with a nonzero status.

    Attributes:
        exit_code: The process exit status.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        exit_code: int | None = None
    ) -> None:
        super().__init__(message, details)
        self.exit_code = exit_code


class TagError(YtPlaylistError):
    """
    Raised when embedded tags cannot be read or written.

    During a scan the file is skipped; during a download job the item fails.
    """
    pass


class CatalogError(YtPlaylistError):
    """
    Raised by the MusicBrainz client when a request cannot be completed.

    The resolver never lets this escape: it logs the error and degrades
    to "no enrichment".

    Attributes:
        status_code: HTTP status code if a response was received.
        transient: True if retrying later could succeed (5xx, timeouts).
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = None,
        transient: bool = False
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.transient = transient


class CacheError(YtPlaylistError):
    """Raised when the on-disk response cache cannot be opened or written."""
    pass


class JobCancelled(Exception):
    """
    Raised at a state transition once the run has been cancelled.

    Not a YtPlaylistError: catching YtPlaylistError must never swallow it.
    """
    pass
