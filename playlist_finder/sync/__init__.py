"""
Library synchronization for playlist-finder.

    - SyncOrchestrator: runs a sync (user, listing, contents) and reports progress
    - PaginatedCollector: pages through the user's playlists
    - SequentialContentLoader: loads playlist contents one at a time
    - SnapshotCache: persisted playlist snapshots with quota handling
    - SyncState / SyncProgress: per-run state and its observable counters

Usage:
    from playlist_finder.sync import SnapshotCache, SyncOrchestrator

    cache = SnapshotCache(SnapshotStore(db_path, quota_bytes))
    state = SyncOrchestrator(cache, config.sync).begin_sync(token)
"""

from playlist_finder.sync.cache import CacheWriteStatus, SnapshotCache
from playlist_finder.sync.collector import PaginatedCollector
from playlist_finder.sync.loader import LoadOutcome, SequentialContentLoader
from playlist_finder.sync.orchestrator import SyncOrchestrator
from playlist_finder.sync.state import LoadStatus, SyncPhase, SyncProgress, SyncState

__all__ = [
    "SyncOrchestrator",
    "PaginatedCollector",
    "SequentialContentLoader",
    "LoadOutcome",
    "SnapshotCache",
    "CacheWriteStatus",
    "SyncState",
    "SyncProgress",
    "SyncPhase",
    "LoadStatus",
]
