"""Test configuration and fixtures"""

import tempfile
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable

import pytest
from spotipy.exceptions import SpotifyException

from playlist_finder.core.database import SnapshotStore
from playlist_finder.spotify.models import (
    ContainerContents,
    ContainerDescriptor,
    ContentItem,
    Device,
    ListingPage,
    PlaybackState,
)
from playlist_finder.sync.cache import SnapshotCache


def spotify_exception(status: int, msg: str = "error") -> SpotifyException:
    """Build the exception spotipy raises for an HTTP error status."""
    return SpotifyException(status, -1, msg)


class RecordingSleep:
    """Stand-in for time.sleep that records the requested waits."""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self.hook: Callable[[], None] | None = None

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.hook is not None:
            self.hook()


class FakeCatalog:
    """
    Scripted stand-in for SpotifyCatalog.

    Each method records its call in `calls` and then answers from
    `script[method]` if anything is queued there (exceptions are raised,
    callables are invoked), otherwise from the fake library below.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple, dict]] = []
        self.script: dict[str, list[Any]] = defaultdict(list)

        self.user = {"id": "me", "display_name": "Me"}
        self.pages: dict[str | None, ListingPage] = {None: ListingPage(0, 0, ())}
        self.contents: dict[str, ContainerContents] = {}
        self.device_list: list[Device] = []
        self.playing: list[str | None] = []
        self.created: list[str] = []
        self.added: list[tuple[str, list[str]]] = []

    def set_library(self, descriptors: list[ContainerDescriptor | None], page_size: int = 50) -> None:
        """Split descriptors into cursor-linked listing pages."""
        total = len(descriptors)
        self.pages = {}
        starts = list(range(0, total, page_size)) or [0]
        for n, start in enumerate(starts):
            cursor = None if n == 0 else f"page:{n}"
            next_cursor = f"page:{n + 1}" if n + 1 < len(starts) else None
            self.pages[cursor] = ListingPage(
                total=total,
                offset=start,
                descriptors=tuple(descriptors[start:start + page_size]),
                next_cursor=next_cursor,
            )

    def calls_to(self, method: str) -> list[tuple[tuple, dict]]:
        return [(args, kwargs) for name, args, kwargs in self.calls if name == method]

    def _answer(self, method: str, args: tuple, kwargs: dict, default: Callable[[], Any]) -> Any:
        self.calls.append((method, args, kwargs))
        queue = self.script[method]
        result = queue.pop(0) if queue else default()
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            return result()
        return result

    def current_user(self) -> dict[str, Any]:
        return self._answer("current_user", (), {}, lambda: self.user)

    def list_containers_page(self, cursor, limit=50):
        return self._answer(
            "list_containers_page", (cursor, limit), {}, lambda: self.pages[cursor]
        )

    def get_container_contents(self, container_id):
        return self._answer(
            "get_container_contents", (container_id,), {},
            lambda: self.contents[container_id]
        )

    def devices(self):
        return self._answer("devices", (), {}, lambda: list(self.device_list))

    def current_playback(self):
        def default():
            track_uri = self.playing.pop(0) if self.playing else None
            return PlaybackState(track_uri=track_uri)
        return self._answer("current_playback", (), {}, default)

    def play(self, device_id, context_uri, position=None, track_uri=None):
        return self._answer(
            "play", (device_id, context_uri),
            {"position": position, "track_uri": track_uri},
            lambda: None
        )

    def create_playlist(self, user_id, name, description=""):
        def default():
            self.created.append(name)
            return f"new{len(self.created)}"
        return self._answer("create_playlist", (user_id, name), {"description": description}, default)

    def add_items(self, playlist_id, uris):
        def default():
            self.added.append((playlist_id, list(uris)))
        return self._answer("add_items", (playlist_id, uris), {}, default)


def make_items(count: int, prefix: str = "Song") -> tuple[ContentItem, ...]:
    return tuple(
        ContentItem(
            title=f"{prefix} {i}",
            uri=f"spotify:track:{prefix.lower()}{i}",
            artist_names=("Artist",),
            album_name="Album",
        )
        for i in range(count)
    )


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def store(temp_dir):
    """Snapshot store with the default 5 MiB quota"""
    snapshot_store = SnapshotStore(temp_dir / "cache.db", quota_bytes=5 * 1024 * 1024)
    yield snapshot_store
    snapshot_store.close()


@pytest.fixture
def cache(store):
    return SnapshotCache(store, current_user_id="me")


@pytest.fixture
def make_descriptor():
    """Factory for playlist descriptors: make_descriptor(1) -> id 'pl1', version 'v1'"""
    def factory(n: int, version: str = "v1", owner_id: str = "me", name: str | None = None):
        return ContainerDescriptor(
            id=f"pl{n}",
            version_id=version,
            name=name or f"Playlist {n}",
            owner_id=owner_id,
            contents_uri=f"https://api.spotify.com/v1/playlists/pl{n}/tracks",
            external_uri=f"https://open.spotify.com/playlist/pl{n}",
            uri=f"spotify:playlist:pl{n}",
        )
    return factory


@pytest.fixture
def make_contents():
    """Factory for playlist contents: make_contents('pl1', 'v1', 3)"""
    def factory(container_id: str, version_id: str = "v1", count: int = 3, prefix: str = "Song"):
        return ContainerContents(
            container_id=container_id,
            version_id=version_id,
            items=make_items(count, prefix),
        )
    return factory


@pytest.fixture
def library(catalog, make_descriptor, make_contents):
    """
    Populate the fake catalog with `count` playlists and return their descriptors.

    Playlist n has n+1 tracks, so playlist contents are distinguishable.
    """
    def factory(count: int, page_size: int = 50, version: str = "v1"):
        descriptors = [make_descriptor(n, version) for n in range(count)]
        for n, descriptor in enumerate(descriptors):
            catalog.contents[descriptor.id] = make_contents(descriptor.id, version, n + 1)
        catalog.set_library(descriptors, page_size)
        return descriptors
    return factory
