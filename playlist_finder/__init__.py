"""
playlist-finder: Search every playlist of a Spotify library for a track.

Large libraries are slow to read: the Web API is paginated and strictly
rate limited, so a full sync is hundreds of sequential requests. This
package syncs the library once, keeps every playlist version it has seen
in a local snapshot cache, and makes repeat syncs of unchanged playlists
cost no network calls at all.

Architecture:
    spotify/    - spotipy wrapper, OAuth, rate-limited request executor
    sync/       - listing, sequential content loading, snapshot cache,
                  orchestration of sync runs
    playback/   - play-and-verify command sequence, device choice
    search.py   - substring search over live and remembered playlists
    core/       - configuration, SQLite snapshot store, logging, progress
    cli.py      - command-line interface

Usage:
    Command Line:
        playlist-finder sync
        playlist-finder search "harder better"
        playlist-finder play 37i9dQZF1DXcBWIGoYBM5M 4 spotify:track:...

    Python API:
        from playlist_finder.core import load_config, SnapshotStore
        from playlist_finder.sync import SnapshotCache, SyncOrchestrator
        from playlist_finder.search import gather_containers, search

        config = load_config()
        cache = SnapshotCache(SnapshotStore(config.output.cache_path, config.cache.quota_bytes))
        state = SyncOrchestrator(cache, config.sync).begin_sync(token)
        matches = search(gather_containers(state, cache), "harder better")

Dependencies:
    - spotipy: Spotify API client and OAuth
    - requests: transport errors surfaced through spotipy
    - rich-click: CLI
    - rich: tables and progress bars
    - tqdm: progress-safe console logging
    - pyyaml: configuration file parsing
"""

__version__ = "0.1.0"
__author__ = "playlist-finder"
__license__ = "MIT"

# Convenience imports for common usage
from playlist_finder.core import (
    Config,
    ConfigError,
    DatabaseError,
    PlaylistFinderError,
    SnapshotStore,
    SpotifyError,
    get_logger,
    load_config,
    setup_logging,
)
from playlist_finder.search import SearchMatch, gather_containers, search
from playlist_finder.sync import SnapshotCache, SyncOrchestrator

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "SnapshotStore",
    "setup_logging",
    "get_logger",
    # Exceptions
    "PlaylistFinderError",
    "ConfigError",
    "DatabaseError",
    "SpotifyError",
    # Sync and search
    "SnapshotCache",
    "SyncOrchestrator",
    "SearchMatch",
    "gather_containers",
    "search",
]
