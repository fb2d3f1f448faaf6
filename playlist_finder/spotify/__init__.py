"""
Spotify integration module for playlist-finder.

This module provides everything that talks to the Spotify Web API:
    - SpotifyCatalog: spotipy wrapper returning frozen models
    - CredentialProvider: OAuth token acquisition and refresh
    - RequestExecutor: throttling-absorbing, error-classifying call wrapper
    - Models for playlists, tracks, devices and playback state

Usage:
    from playlist_finder.spotify import RequestExecutor, SpotifyCatalog

    executor = RequestExecutor(cooldown_seconds=30)
    catalog = SpotifyCatalog(token)
    user = executor.execute(catalog.current_user)
"""

from playlist_finder.spotify.client import CredentialProvider, SpotifyCatalog
from playlist_finder.spotify.executor import RequestExecutor
from playlist_finder.spotify.models import (
    CacheEntry,
    ContainerContents,
    ContainerDescriptor,
    ContentItem,
    Device,
    ListingPage,
    LiveContainer,
    PlaybackState,
    RememberedContainer,
    SearchableContainer,
)

__all__ = [
    # Client
    "SpotifyCatalog",
    "CredentialProvider",
    "RequestExecutor",
    # Models
    "ContainerDescriptor",
    "ContentItem",
    "ContainerContents",
    "ListingPage",
    "CacheEntry",
    "LiveContainer",
    "RememberedContainer",
    "SearchableContainer",
    "Device",
    "PlaybackState",
]
