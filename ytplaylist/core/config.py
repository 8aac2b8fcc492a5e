"""
Configuration management for ytplaylist.

This module handles loading, validating, and providing access to the
optional config.yaml file. Every setting has a default, so the tool runs
without any configuration file; the playlist and destination always come
from the command line.

Configuration File Location:
    config.yaml in the current working directory, or an explicit path
    given with --config (which then must exist).

Example config.yaml:
    download:
      workers: 2              # parallel download jobs (YouTube is rate-sensitive)
      max_attempts: 4         # retry budget for 403/429 failures
      retry_backoff: 1.0      # seconds between attempts
      cookie_file: null       # optional cookies.txt passed to yt-dlp
      page_size: 100          # playlist entries fetched per page

    catalog:
      enabled: true                 # MusicBrainz enrichment
      rate_limit_interval: 1.0      # seconds between MusicBrainz requests
      max_attempts: 4
      retry_backoff: 4.0
      search_limit: 2
      cache_path: "~/.cache/ytplaylist/musicbrainz.db"
      cache_ttl_days: 30
      contact: "https://github.com/ytplaylist/ytplaylist"
      strict_recording_ties: false

    output:
      log_directory: null     # defaults to <destination>/logs
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ytplaylist.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_CACHE_PATH = Path("~/.cache/ytplaylist/musicbrainz.db").expanduser()
DEFAULT_CONTACT = "https://github.com/ytplaylist/ytplaylist"


@dataclass(frozen=True)
class DownloadConfig:
    """
    Download behavior configuration.

    Attributes:
        workers: Number of concurrent download jobs. Keep this small:
                 YouTube answers bursts with 403s.
        max_attempts: Attempts per item before giving up on 403/429.
        retry_backoff: Fixed delay in seconds between attempts.
        cookie_file: Optional cookies.txt handed to yt-dlp.
        page_size: Playlist entries pulled from yt-dlp per page.
    """
    workers: int = 2
    max_attempts: int = 4
    retry_backoff: float = 1.0
    cookie_file: Path | None = None
    page_size: int = 100


@dataclass(frozen=True)
class CatalogConfig:
    """
    MusicBrainz enrichment configuration.

    Attributes:
        enabled: Resolve album/release metadata from MusicBrainz.
        rate_limit_interval: Minimum seconds between two requests,
                             process-wide. MusicBrainz blocks clients
                             exceeding one request per second.
        max_attempts: Attempts per request on transient service errors.
        retry_backoff: Fixed delay in seconds between those attempts.
        search_limit: Results requested per search.
        cache_path: sqlite file for cached responses.
        cache_ttl_days: Age after which a cached response is refetched.
        contact: Contact URL or e-mail sent in the User-Agent header.
        strict_recording_ties: Treat equally scored recordings as an
                               inconclusive match instead of taking the first.
    """
    enabled: bool = True
    rate_limit_interval: float = 1.0
    max_attempts: int = 4
    retry_backoff: float = 4.0
    search_limit: int = 2
    cache_path: Path = DEFAULT_CACHE_PATH
    cache_ttl_days: int = 30
    contact: str = DEFAULT_CONTACT
    strict_recording_ties: bool = False


@dataclass(frozen=True)
class OutputConfig:
    """
    Output configuration.

    Attributes:
        log_directory: Where per-run log files go. None means
                       <destination>/logs.
    """
    log_directory: Path | None = None


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config(); treat as immutable. Use
    dataclasses.replace() to apply command-line overrides.
    """
    download: DownloadConfig = field(default_factory=DownloadConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in the current working
                     directory and falls back to defaults when absent.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit file is missing, the YAML is invalid,
                     or a value is out of range.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        if explicit:
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        return Config()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file is a valid "all defaults" configuration
    if raw_config is None:
        return Config()

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return Config(
        download=_parse_download_config(_section(raw_config, "download")),
        catalog=_parse_catalog_config(_section(raw_config, "catalog")),
        output=_parse_output_config(_section(raw_config, "output")),
    )


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _positive_int(section: dict[str, Any], key: str, prefix: str, default: int) -> int:
    value = section.get(key)
    if value is None:
        return default
    # bool is an int subclass; reject `workers: true`
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(
            f"'{prefix}.{key}' must be a positive integer",
            details={"field": f"{prefix}.{key}", "value": value}
        )
    return value


def _non_negative_float(section: dict[str, Any], key: str, prefix: str, default: float) -> float:
    value = section.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(
            f"'{prefix}.{key}' must be a non-negative number",
            details={"field": f"{prefix}.{key}", "value": value}
        )
    return float(value)


def _bool(section: dict[str, Any], key: str, prefix: str, default: bool) -> bool:
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(
            f"'{prefix}.{key}' must be true or false",
            details={"field": f"{prefix}.{key}", "value": value}
        )
    return value


def _path(section: dict[str, Any], key: str, prefix: str) -> Path | None:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{prefix}.{key}' must be a non-empty string path or null",
            details={"field": f"{prefix}.{key}"}
        )
    return Path(value.strip()).expanduser().resolve()


def _parse_download_config(section: dict[str, Any]) -> DownloadConfig:
    """
    Parse and validate the download section.

    Raises:
        ConfigError: On invalid values, or if cookie_file doesn't exist.
    """
    cookie_file = _path(section, "cookie_file", "download")
    if cookie_file is not None and not cookie_file.exists():
        raise ConfigError(
            f"Cookie file not found: {cookie_file}",
            details={"field": "download.cookie_file", "path": str(cookie_file)}
        )

    return DownloadConfig(
        workers=_positive_int(section, "workers", "download", 2),
        max_attempts=_positive_int(section, "max_attempts", "download", 4),
        retry_backoff=_non_negative_float(section, "retry_backoff", "download", 1.0),
        cookie_file=cookie_file,
        page_size=_positive_int(section, "page_size", "download", 100),
    )


def _parse_catalog_config(section: dict[str, Any]) -> CatalogConfig:
    """Parse and validate the catalog (MusicBrainz) section."""
    contact = section.get("contact", DEFAULT_CONTACT)
    if not isinstance(contact, str) or not contact.strip():
        raise ConfigError(
            "'catalog.contact' must be a non-empty string",
            details={"field": "catalog.contact"}
        )

    return CatalogConfig(
        enabled=_bool(section, "enabled", "catalog", True),
        rate_limit_interval=_non_negative_float(section, "rate_limit_interval", "catalog", 1.0),
        max_attempts=_positive_int(section, "max_attempts", "catalog", 4),
        retry_backoff=_non_negative_float(section, "retry_backoff", "catalog", 4.0),
        search_limit=_positive_int(section, "search_limit", "catalog", 2),
        cache_path=_path(section, "cache_path", "catalog") or DEFAULT_CACHE_PATH,
        cache_ttl_days=_positive_int(section, "cache_ttl_days", "catalog", 30),
        contact=contact.strip(),
        strict_recording_ties=_bool(section, "strict_recording_ties", "catalog", False),
    )


def _parse_output_config(section: dict[str, Any]) -> OutputConfig:
    return OutputConfig(log_directory=_path(section, "log_directory", "output"))
