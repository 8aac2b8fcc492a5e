"""
Reconciliation finalizer: removes local files whose video left the playlist.

A file is stale when its fingerprint is in the on-disk index and not in
the online set. Files without a fingerprint never enter the index, so
they are never candidates. Nothing is deleted unless the whole playlist
was listed and the run wasn't cancelled.
"""

from pathlib import Path
from typing import Callable, Iterable, MutableMapping

from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.core.logger import get_logger
from ytplaylist.sync.pipeline import SyncResult

logger = get_logger(__name__)


DELETE_PROMPT = "Do you want to delete the files above?"

Confirm = Callable[[str], bool]


def find_stale_files(index: MutableMapping[str, Path], online_ids: Iterable[str]) -> list[tuple[str, Path]]:
    """(fingerprint, path) pairs of indexed files absent from the playlist, sorted by path."""
    online = set(online_ids)
    return sorted(
        ((fingerprint, path) for fingerprint, path in index.items() if fingerprint not in online),
        key=lambda pair: pair[1],
    )


class ReconciliationFinalizer:
    """
    Deletes stale files after user confirmation.

    Attributes:
        _confirm: Asked once with DELETE_PROMPT; True means delete.
        _auto_confirm: Skip the question.
    """

    def __init__(self, confirm: Confirm, auto_confirm: bool = False) -> None:
        self._confirm = confirm
        self._auto_confirm = auto_confirm

    def run(
        self,
        index: MutableMapping[str, Path],
        result: SyncResult,
        scope: CancellationScope | None = None
    ) -> list[Path]:
        """
        Delete the stale files.

        Args:
            index: On-disk index; deleted files are removed from it.
            result: The pipeline's result.
            scope: Checked again once the question is answered; Ctrl+C at
                   the prompt only sets it.

        Returns:
            Paths actually deleted.
        """
        if result.cancelled:
            logger.warning("Run cancelled, not looking for removed videos")
            return []
        if not result.fetch_completed:
            logger.warning("Playlist was not fully listed, not looking for removed videos")
            return []

        stale = find_stale_files(index, result.online_ids)
        if not stale:
            return []

        for _, path in stale:
            logger.warning(f'Music file "{path.stem}" shouldn\'t be here')

        if not self._auto_confirm and not self._confirm(DELETE_PROMPT):
            logger.info("Keeping the files")
            return []

        if scope is not None and scope.cancelled:
            logger.warning("Run cancelled, keeping the files")
            return []

        deleted = []
        for fingerprint, path in stale:
            try:
                path.unlink()
            except FileNotFoundError:
                logger.debug(f"{path.name} already gone")
            except OSError as e:
                logger.error(f"Cannot delete {path.name}: {e}")
                continue
            del index[fingerprint]
            deleted.append(path)
            logger.info(f"Deleted {path.name}")

        return deleted
