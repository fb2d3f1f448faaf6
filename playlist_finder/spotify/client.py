"""
Spotify Web API access for playlist-finder.

SpotifyCatalog is a thin wrapper around spotipy that turns JSON responses
into the frozen models of playlist_finder.spotify.models. It performs no
retries and no error translation of its own: spotipy is built with
retries disabled and every call is meant to go through RequestExecutor,
which owns the throttling and error policy.

CredentialProvider owns the OAuth lifecycle (browser login, token cache,
refresh) so the sync engine only ever sees an opaque bearer token.

Usage:
    provider = CredentialProvider(config.spotify, config.output.token_cache_path)
    catalog = SpotifyCatalog(provider.current())
    executor = RequestExecutor()

    page = executor.execute(catalog.list_containers_page, None, 50)
"""

from pathlib import Path
from typing import Any

import requests
import spotipy
from spotipy.cache_handler import CacheFileHandler
from spotipy.oauth2 import SpotifyOAuth

from playlist_finder.core.config import SpotifyConfig
from playlist_finder.core.exceptions import SpotifyError
from playlist_finder.core.logger import get_logger
from playlist_finder.spotify.models import (
    ContainerContents,
    Device,
    ListingPage,
    PlaybackState,
)


logger = get_logger(__name__)


OAUTH_SCOPES = " ".join([
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-private",
    "user-read-playback-state",
    "user-modify-playback-state",
])

# Only the fields a search needs; keeps one playlist fetch to one small response
CONTENTS_FIELDS = "snapshot_id,tracks.items(track(uri,name,artists(name),album(name)))"

ADD_ITEMS_BATCH_SIZE = 100  # Spotify's limit per add-items request

API_PREFIX = "https://api.spotify.com/v1/"


class SpotifyCatalog:
    """
    Catalog and player operations bound to one bearer credential.

    Exceptions from spotipy (SpotifyException) and from the transport
    (requests.RequestException) propagate unchanged. Every HTTP error
    arrives with its real status: the session is a plain requests.Session,
    so urllib3 never turns a 5xx into spotipy's "Max Retries" 429.
    """

    def __init__(
        self,
        credential: str,
        requests_timeout: int = 10,
        api_prefix: str = API_PREFIX
    ) -> None:
        self.credential = credential
        self._spotify = spotipy.Spotify(
            auth=credential,
            requests_session=requests.Session(),
            requests_timeout=requests_timeout,
        )
        self._spotify.prefix = api_prefix

    # =========================================================================
    # Library Operations
    # =========================================================================

    def current_user(self) -> dict[str, Any]:
        """Return the profile of the authenticated user (id, display_name)."""
        return self._spotify.current_user()

    def list_containers_page(self, cursor: str | None, limit: int = 50) -> ListingPage:
        """
        Fetch one page of the current user's playlists.

        Args:
            cursor: None for the first page, otherwise the 'next' locator
                    returned by the previous page.
            limit: Page size for the first page (max 50). Subsequent pages
                   inherit it from the cursor.
        """
        if cursor is None:
            data = self._spotify.current_user_playlists(limit=limit, offset=0)
        else:
            data = self._spotify.next({"next": cursor})
        return ListingPage.from_spotify_api(data or {})

    def get_container_contents(self, container_id: str) -> ContainerContents:
        """Fetch the tracks of one playlist in a single request."""
        data = self._spotify.playlist(container_id, fields=CONTENTS_FIELDS)
        return ContainerContents.from_spotify_api(container_id, data or {})

    def create_playlist(self, user_id: str, name: str, description: str = "") -> str:
        """Create a private playlist for user_id and return its id."""
        result = self._spotify.user_playlist_create(
            user_id, name, public=False, description=description
        )
        return result["id"]

    def add_items(self, playlist_id: str, uris: list[str]) -> None:
        """Append up to ADD_ITEMS_BATCH_SIZE track uris to a playlist."""
        if len(uris) > ADD_ITEMS_BATCH_SIZE:
            raise ValueError(f"At most {ADD_ITEMS_BATCH_SIZE} items per request")
        self._spotify.playlist_add_items(playlist_id, uris)

    # =========================================================================
    # Player Operations
    # =========================================================================

    def devices(self) -> list[Device]:
        data = self._spotify.devices() or {}
        return [Device.from_spotify_api(d) for d in data.get("devices", [])]

    def current_playback(self) -> PlaybackState:
        """Return what is playing now; an idle player yields track_uri=None."""
        return PlaybackState.from_spotify_api(self._spotify.current_playback())

    def play(
        self,
        device_id: str | None,
        context_uri: str,
        position: int | None = None,
        track_uri: str | None = None
    ) -> None:
        """
        Start playback of a playlist at a track.

        Exactly one of position or track_uri selects the starting track.
        """
        if (position is None) == (track_uri is None):
            raise ValueError("Pass exactly one of position or track_uri")

        offset = {"position": position} if track_uri is None else {"uri": track_uri}
        self._spotify.start_playback(
            device_id=device_id, context_uri=context_uri, offset=offset
        )


class CredentialProvider:
    """
    Hands out bearer tokens backed by spotipy's OAuth manager.

    The first call may open a browser for the authorization code flow;
    afterwards the token lives in a cache file next to the snapshot store.
    """

    def __init__(self, spotify_config: SpotifyConfig, cache_path: Path) -> None:
        self._cache = CacheFileHandler(cache_path=str(cache_path))
        self._oauth = SpotifyOAuth(
            client_id=spotify_config.client_id,
            client_secret=spotify_config.client_secret,
            redirect_uri=spotify_config.redirect_uri,
            scope=OAUTH_SCOPES,
            cache_handler=self._cache,
            open_browser=True,
        )

    def current(self) -> str:
        """Return a valid access token, logging in or refreshing as needed."""
        try:
            return self._oauth.get_access_token(as_dict=False)
        except spotipy.SpotifyOauthError as e:
            raise SpotifyError(
                f"Spotify authentication failed: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e

    def refresh(self) -> str:
        """
        Force a new access token after the API rejected the current one.

        Falls back to a full login if there is no refresh token.
        """
        cached = self._cache.get_cached_token()
        if not cached or not cached.get("refresh_token"):
            logger.debug("No refresh token cached, starting a new login")
            return self.current()

        try:
            token_info = self._oauth.refresh_access_token(cached["refresh_token"])
        except spotipy.SpotifyOauthError as e:
            raise SpotifyError(
                f"Failed to refresh Spotify token: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e
        logger.debug("Spotify access token refreshed")
        return token_info["access_token"]
