"""
Track search across live and remembered playlists.

Matching is a plain case-insensitive substring test over
"<title> <artists> <album>"; there is no ranking and no fuzzy matching.
Remembered snapshots (older versions kept in the snapshot cache) are
searched too, after the live playlists, so a track removed from a
playlist can still be found and the old version restored.
"""

from dataclasses import dataclass

from playlist_finder.core.logger import get_logger
from playlist_finder.spotify.client import ADD_ITEMS_BATCH_SIZE, SpotifyCatalog
from playlist_finder.spotify.executor import RequestExecutor
from playlist_finder.spotify.models import (
    ContentItem,
    RememberedContainer,
    SearchableContainer,
)
from playlist_finder.sync.cache import SnapshotCache
from playlist_finder.sync.state import SyncState


logger = get_logger(__name__)


@dataclass(frozen=True)
class SearchMatch:
    """
    One matching track.

    Attributes:
        container: The live or remembered playlist containing the track.
        item: The matching track.
        position: Index of the track within the playlist, as needed by
                  play-by-position.
    """
    container: SearchableContainer
    item: ContentItem
    position: int


def searchable_text(item: ContentItem) -> str:
    return f"{item.title} {' '.join(item.artist_names)} {item.album_name}".lower()


def gather_containers(
    state: SyncState,
    cache: SnapshotCache | None = None
) -> list[SearchableContainer]:
    """
    Collect everything a search should look at.

    Live playlists come first, in listing order. Remembered snapshots
    follow, except those identical to a live playlist (same id and same
    snapshot id), which would otherwise show every match twice.
    """
    live = state.live_containers()
    containers: list[SearchableContainer] = list(live)
    if cache is None:
        return containers

    live_keys = {(c.container_id, c.version_id) for c in live}
    containers.extend(
        remembered for remembered in cache.remembered()
        if (remembered.container_id, remembered.version_id) not in live_keys
    )
    return containers


def search(containers: list[SearchableContainer], query: str) -> list[SearchMatch]:
    """
    Find tracks whose title, artists or album contain `query`.

    An empty or blank query matches nothing.
    """
    term = query.strip().lower()
    if not term:
        return []

    return [
        SearchMatch(container=container, item=item, position=position)
        for container in containers
        for position, item in enumerate(container.items)
        if term in searchable_text(item)
    ]


def restore_remembered(
    executor: RequestExecutor,
    catalog: SpotifyCatalog,
    remembered: RememberedContainer,
    user_id: str
) -> str:
    """
    Save a remembered snapshot as a new private playlist.

    Returns:
        The id of the created playlist.

    Raises:
        SpotifyError: If creating the playlist or adding tracks fails.
    """
    stored = remembered.entry.stored_at.strftime("%Y-%m-%d %H:%M")
    name = f"{remembered.name or remembered.container_id} (remembered {stored})"
    playlist_id = executor.execute(
        catalog.create_playlist,
        user_id,
        name,
        description=f"Restored copy of snapshot {remembered.version_id}",
    )

    uris = [item.uri for item in remembered.items if item.uri]
    for start in range(0, len(uris), ADD_ITEMS_BATCH_SIZE):
        executor.execute(catalog.add_items, playlist_id, uris[start:start + ADD_ITEMS_BATCH_SIZE])

    logger.info(f"Restored '{remembered.name}' as {playlist_id} ({len(uris)} tracks)")
    return playlist_id
