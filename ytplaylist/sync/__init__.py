"""
Playlist synchronization: download jobs, the fetch/worker pipeline,
tagging of new files, and removal of files that left the playlist.
"""

from ytplaylist.sync.job import DownloadJob, JobState
from ytplaylist.sync.pipeline import SyncPipeline, SyncResult, SyncStats
from ytplaylist.sync.reconcile import ReconciliationFinalizer, find_stale_files
from ytplaylist.sync.runner import SyncReport, sync_playlist
from ytplaylist.sync.tagging import TrackTagger, normalize_remote_metadata

__all__ = [
    "DownloadJob",
    "JobState",
    "SyncPipeline",
    "SyncResult",
    "SyncStats",
    "ReconciliationFinalizer",
    "find_stale_files",
    "SyncReport",
    "sync_playlist",
    "TrackTagger",
    "normalize_remote_metadata",
]
