"""
Core module for playlist-finder.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - database: Thread-safe SQLite snapshot store with a byte quota
    - logger: Logging system with multiple outputs
    - progress: Rich progress bar for library syncs

Usage:
    from playlist_finder.core import (
        Config, load_config,
        SnapshotStore,
        setup_logging, get_logger,
        PlaylistFinderError, ConfigError, DatabaseError
    )
"""

from playlist_finder.core.config import (
    CacheConfig,
    Config,
    OutputConfig,
    PlaybackConfig,
    SpotifyConfig,
    SyncConfig,
    load_config,
)
from playlist_finder.core.database import SnapshotStore
from playlist_finder.core.exceptions import (
    ConfigError,
    DatabaseError,
    PlaylistFinderError,
    SpotifyError,
    StorageQuotaError,
    SyncCancelled,
)
from playlist_finder.core.logger import (
    get_logger,
    log_load_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "OutputConfig",
    "SyncConfig",
    "CacheConfig",
    "PlaybackConfig",
    "load_config",
    # Database
    "SnapshotStore",
    # Exceptions
    "PlaylistFinderError",
    "ConfigError",
    "DatabaseError",
    "StorageQuotaError",
    "SpotifyError",
    "SyncCancelled",
    # Logger
    "setup_logging",
    "get_logger",
    "log_load_failure",
    "shutdown_logging",
]
