"""
Data models for Spotify entities.

This module defines immutable dataclasses for the objects the sync engine
moves around: playlist descriptors, playlist contents, listing pages,
cached snapshots, devices and playback state.

Design Decisions:
    - All dataclasses are frozen (immutable); sequences are tuples
    - A playlist's contents are bound to one (container_id, version_id) pair;
      a new snapshot_id means a wholly new ContainerContents
    - "Live" and "remembered" playlists are distinct types, decided once
      when they are built (LiveContainer / RememberedContainer)

Usage:
    from playlist_finder.spotify.models import ContainerDescriptor, ContentItem

    descriptor = ContainerDescriptor.from_spotify_api(playlist_json)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union


@dataclass(frozen=True)
class ContainerDescriptor:
    """
    Metadata of one playlist as returned by a listing page.

    Attributes:
        id: Stable Spotify playlist ID.
        version_id: Spotify snapshot_id; changes whenever contents change.
        name: Playlist name.
        owner_id: Spotify user ID of the owner.
        contents_uri: API locator of the playlist's tracks.
        external_uri: User-facing link (open.spotify.com).
        uri: Playable context identity, e.g. "spotify:playlist:<id>".
    """
    id: str
    version_id: str
    name: str
    owner_id: str
    contents_uri: str = ""
    external_uri: str = ""
    uri: str = ""

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "ContainerDescriptor":
        """
        Build a descriptor from a simplified playlist object.

        Example input (abridged):
            {
                "id": "37i9dQZF1DXcBWIGoYBM5M",
                "snapshot_id": "MTY4...",
                "name": "Today's Top Hits",
                "owner": {"id": "spotify"},
                "tracks": {"href": "https://api.spotify.com/v1/playlists/.../tracks"},
                "external_urls": {"spotify": "https://open.spotify.com/playlist/..."},
                "uri": "spotify:playlist:37i9dQZF1DXcBWIGoYBM5M"
            }
        """
        playlist_id = data["id"]
        return cls(
            id=playlist_id,
            version_id=data.get("snapshot_id") or "",
            name=data.get("name") or "",
            owner_id=(data.get("owner") or {}).get("id") or "",
            contents_uri=(data.get("tracks") or {}).get("href") or "",
            external_uri=(data.get("external_urls") or {}).get("spotify") or "",
            uri=data.get("uri") or f"spotify:playlist:{playlist_id}",
        )


@dataclass(frozen=True)
class ContentItem:
    """
    One track inside a playlist.

    Attributes:
        title: Track name.
        uri: Playable track identity, e.g. "spotify:track:<id>".
        artist_names: Artist names in credit order.
        album_name: Album name.
    """
    title: str
    uri: str
    artist_names: tuple[str, ...] = field(default_factory=tuple)
    album_name: str = ""

    @classmethod
    def from_spotify_api(cls, track_data: dict[str, Any]) -> "ContentItem":
        """Build an item from the 'track' object of a playlist item."""
        return cls(
            title=track_data.get("name") or "",
            uri=track_data.get("uri") or "",
            artist_names=tuple(
                artist.get("name") or ""
                for artist in (track_data.get("artists") or [])
            ),
            album_name=(track_data.get("album") or {}).get("name") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "uri": self.uri,
            "artist_names": list(self.artist_names),
            "album_name": self.album_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentItem":
        return cls(
            title=data.get("title", ""),
            uri=data.get("uri", ""),
            artist_names=tuple(data.get("artist_names", ())),
            album_name=data.get("album_name", ""),
        )


@dataclass(frozen=True)
class ContainerContents:
    """
    The ordered tracks of one playlist version.

    Produced once per (container_id, version_id) and never mutated.
    An empty items tuple is a legitimate, successfully loaded playlist.
    """
    container_id: str
    version_id: str
    items: tuple[ContentItem, ...] = field(default_factory=tuple)

    @classmethod
    def from_spotify_api(cls, container_id: str, data: dict[str, Any]) -> "ContainerContents":
        """
        Build contents from a playlist object fetched with a fields filter.

        Playlist items whose 'track' is null (removed or local-only tracks)
        are skipped, matching what a user can actually play.
        """
        items = (data.get("tracks") or {}).get("items") or []
        return cls(
            container_id=container_id,
            version_id=data.get("snapshot_id") or "",
            items=tuple(
                ContentItem.from_spotify_api(item["track"])
                for item in items
                if item and item.get("track")
            ),
        )

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class ListingPage:
    """
    One page of the current user's playlist listing.

    Attributes:
        total: Total number of playlists upstream (only trusted on page one).
        offset: Position of the first descriptor of this page.
        descriptors: Descriptors in page order; None marks a null upstream item.
        next_cursor: Locator of the next page, or None on the last page.
    """
    total: int
    offset: int
    descriptors: tuple[ContainerDescriptor | None, ...]
    next_cursor: str | None = None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "ListingPage":
        return cls(
            total=int(data.get("total") or 0),
            offset=int(data.get("offset") or 0),
            descriptors=tuple(
                ContainerDescriptor.from_spotify_api(item) if item else None
                for item in (data.get("items") or [])
            ),
            next_cursor=data.get("next"),
        )

    @property
    def is_last(self) -> bool:
        return self.next_cursor is None


@dataclass(frozen=True)
class CacheEntry:
    """
    A persisted playlist snapshot.

    Keyed uniquely by (container_id, version_id). name and owner_id are
    kept so a remembered snapshot can be shown and evicted by owner
    without the live descriptor.
    """
    container_id: str
    version_id: str
    contents: ContainerContents
    stored_at: datetime
    name: str = ""
    owner_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "container_id": self.container_id,
            "version_id": self.version_id,
            "stored_at": self.stored_at.isoformat(),
            "name": self.name,
            "owner_id": self.owner_id,
            "items": [item.to_dict() for item in self.contents.items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        container_id = data["container_id"]
        version_id = data["version_id"]
        return cls(
            container_id=container_id,
            version_id=version_id,
            contents=ContainerContents(
                container_id=container_id,
                version_id=version_id,
                items=tuple(ContentItem.from_dict(item) for item in data.get("items", [])),
            ),
            stored_at=datetime.fromisoformat(data["stored_at"]),
            name=data.get("name", ""),
            owner_id=data.get("owner_id", ""),
        )

    @classmethod
    def create(
        cls,
        contents: ContainerContents,
        name: str = "",
        owner_id: str = ""
    ) -> "CacheEntry":
        return cls(
            container_id=contents.container_id,
            version_id=contents.version_id,
            contents=contents,
            stored_at=datetime.now(timezone.utc),
            name=name,
            owner_id=owner_id,
        )


@dataclass(frozen=True)
class LiveContainer:
    """A playlist loaded by the current sync run."""
    descriptor: ContainerDescriptor
    contents: ContainerContents

    is_remembered = False

    @property
    def container_id(self) -> str:
        return self.descriptor.id

    @property
    def version_id(self) -> str:
        return self.contents.version_id

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def owner_id(self) -> str:
        return self.descriptor.owner_id

    @property
    def items(self) -> tuple[ContentItem, ...]:
        return self.contents.items


@dataclass(frozen=True)
class RememberedContainer:
    """A playlist snapshot recalled from the cache, possibly an old version."""
    entry: CacheEntry

    is_remembered = True

    @property
    def container_id(self) -> str:
        return self.entry.container_id

    @property
    def version_id(self) -> str:
        return self.entry.version_id

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def owner_id(self) -> str:
        return self.entry.owner_id

    @property
    def items(self) -> tuple[ContentItem, ...]:
        return self.entry.contents.items

    @property
    def stored_at(self) -> datetime:
        return self.entry.stored_at


SearchableContainer = Union[LiveContainer, RememberedContainer]


@dataclass(frozen=True)
class Device:
    """A Spotify Connect playback device."""
    id: str
    name: str
    is_active: bool = False
    type: str = ""

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Device":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            is_active=bool(data.get("is_active")),
            type=data.get("type") or "",
        )


@dataclass(frozen=True)
class PlaybackState:
    """What the player reports as currently playing."""
    track_uri: str | None
    context_uri: str | None = None
    is_playing: bool = False

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any] | None) -> "PlaybackState":
        if not data:
            return cls(track_uri=None)
        return cls(
            track_uri=(data.get("item") or {}).get("uri"),
            context_uri=(data.get("context") or {}).get("uri"),
            is_playing=bool(data.get("is_playing")),
        )
