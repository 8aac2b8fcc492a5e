"""
Local library scanner.

Walks the destination directory once per run and builds the on-disk
index (video id -> file) the sync pipeline and the reconciliation step
work from.

Rules:
    - The filename is the ground truth for identity. When the embedded
      title or performers disagree with "<artists> - <title>.mp3", the
      tags are rewritten (and saved only if something changed).
    - The embedded fingerprint (video id) is the ground truth for
      reconciliation. Files without one are reported as unexpected and
      left out of the index, so they are never matched and never deleted.
    - Files whose name can't be parsed are skipped untouched.

No network access happens here.
"""

from dataclasses import dataclass, field
from pathlib import Path

from ytplaylist.core.exceptions import TagError
from ytplaylist.core.logger import get_logger
from ytplaylist.library.naming import AUDIO_EXTENSION, format_identity, parse_filename
from ytplaylist.library.tags import TagFile

logger = get_logger(__name__)


@dataclass
class LocalEntry:
    """
    One audio file found on disk.

    Attributes:
        path: Location of the file.
        fingerprint: Stored video id, "" when absent.
        artists: Performers parsed from the filename.
        title: Title parsed from the filename.
        corrected: True if the scan rewrote this file's tags.
    """
    path: Path
    fingerprint: str
    artists: list[str]
    title: str
    corrected: bool = False


@dataclass
class ScanResult:
    """
    Outcome of a library scan.

    Attributes:
        entries: Every parsed file, indexed or not.
        index: fingerprint -> path (the on-disk index). Keys are unique.
        unexpected: Files without a fingerprint.
        duplicates: Files whose fingerprint was already indexed.
        invalid: Files skipped because the name or tag couldn't be read.
    """
    entries: list[LocalEntry] = field(default_factory=list)
    index: dict[str, Path] = field(default_factory=dict)
    unexpected: list[Path] = field(default_factory=list)
    duplicates: list[Path] = field(default_factory=list)
    invalid: list[Path] = field(default_factory=list)

    @property
    def corrected_count(self) -> int:
        return sum(1 for entry in self.entries if entry.corrected)


def iter_audio_files(directory: Path) -> list[Path]:
    """Audio files directly inside `directory`, sorted by name."""
    return sorted(
        path for path in directory.glob(f"*.{AUDIO_EXTENSION}")
        if path.is_file() and not path.name.startswith(".")
    )


def reconcile_entry_tags(tag: TagFile, artists: list[str], title: str) -> bool:
    """
    Overwrite tag performers/title with the filename-derived values.

    Returns:
        True if anything changed.
    """
    modified = False

    if tag.performers != artists:
        logger.info(f'Artists fixed: "{" & ".join(tag.performers)}" --> "{" & ".join(artists)}"')
        tag.performers = artists
        modified = True

    if tag.title != title:
        logger.info(f'Title fixed: "{tag.title}" --> "{title}"')
        tag.title = title
        modified = True

    return modified


def scan_library(directory: Path) -> ScanResult:
    """
    Scan `directory` and build the on-disk index.

    Args:
        directory: The destination directory of the sync.

    Returns:
        ScanResult with the index and the files excluded from it.

    Side Effects:
        May rewrite title/performer tags of files whose name disagrees
        with them.
    """
    result = ScanResult()

    for path in iter_audio_files(directory):
        parsed = parse_filename(path.stem)
        if parsed is None:
            logger.warning(f'Invalid filename "{path.name}"')
            result.invalid.append(path)
            continue

        if parsed.anomalous:
            logger.info(f'Unusual filename "{path.name}", reading title as "{parsed.title}"')

        try:
            tag = TagFile.open(path)
            corrected = reconcile_entry_tags(tag, parsed.artists, parsed.title)
            if corrected:
                tag.save()
        except TagError as e:
            logger.error(f"Skipping {path.name}: {e.message}")
            result.invalid.append(path)
            continue

        entry = LocalEntry(
            path=path,
            fingerprint=tag.fingerprint,
            artists=parsed.artists,
            title=parsed.title,
            corrected=corrected,
        )
        result.entries.append(entry)

        if not entry.fingerprint:
            logger.warning(f'Unexpected file "{path.name}"')
            result.unexpected.append(path)
            continue

        existing = result.index.get(entry.fingerprint)
        if existing is not None:
            logger.warning(
                f'"{path.name}" has the same video id ({entry.fingerprint}) as '
                f'"{existing.name}", ignoring it'
            )
            result.duplicates.append(path)
            continue

        result.index[entry.fingerprint] = path
        logger.debug(f"Indexed {format_identity(entry.artists, entry.title)} [{entry.fingerprint}]")

    logger.info(
        f"Found {len(result.index)} synced file(s) in {directory}"
        + (f", {len(result.unexpected)} without video id" if result.unexpected else "")
    )
    return result
