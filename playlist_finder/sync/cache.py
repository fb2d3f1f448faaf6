"""
Persistent snapshot cache keyed by (playlist id, snapshot id).

The cache sits on top of SnapshotStore and adds idempotent writes and
the quota policy below. put() never raises.

Quota Policy:
    1. Write the record.
    2. On StorageQuotaError, evict every entry owned by current_user_id;
       the running sync re-derives those.
    3. Retry the write exactly once.
    4. If that fails too, log a cache-pressure warning and drop the write.
"""

from dataclasses import replace
from enum import Enum

from playlist_finder.core.database import SnapshotStore
from playlist_finder.core.exceptions import DatabaseError, StorageQuotaError
from playlist_finder.core.logger import get_logger
from playlist_finder.spotify.models import (
    CacheEntry,
    ContainerContents,
    RememberedContainer,
)


logger = get_logger(__name__)


class CacheWriteStatus(Enum):
    STORED = "stored"
    DUPLICATE = "duplicate"
    STORED_AFTER_EVICTION = "stored_after_eviction"
    DROPPED = "dropped"


class SnapshotCache:
    """
    Get/put/evict access to persisted playlist snapshots.

    Attributes:
        current_user_id: Owner whose entries are sacrificed under quota
            pressure. Set by the orchestrator once the user is known.
    """

    def __init__(self, store: SnapshotStore, current_user_id: str | None = None) -> None:
        self._store = store
        self.current_user_id = current_user_id

    def get(self, container_id: str, version_id: str) -> ContainerContents | None:
        """Pure lookup. Storage errors read as a miss."""
        try:
            record = self._store.get_record(container_id)
        except DatabaseError as e:
            logger.warning(f"Snapshot cache read failed for {container_id}: {e}")
            return None

        if not record or version_id not in record:
            return None
        return CacheEntry.from_dict(record[version_id]).contents

    def put(
        self,
        container_id: str,
        version_id: str,
        contents: ContainerContents,
        owner_id: str = "",
        name: str = ""
    ) -> CacheWriteStatus:
        """
        Persist one snapshot. Writing an existing key is a no-op.

        Returns:
            How the write ended. DROPPED means the snapshot was not saved;
            the caller should surface a cache-pressure advisory.
        """
        try:
            record = self._store.get_record(container_id) or {}
            if version_id in record:
                return CacheWriteStatus.DUPLICATE

            if (contents.container_id, contents.version_id) != (container_id, version_id):
                contents = replace(contents, container_id=container_id, version_id=version_id)
            entry = CacheEntry.create(contents, name=name, owner_id=owner_id)
            record[version_id] = entry.to_dict()

            try:
                self._store.set_record(container_id, owner_id, record)
                return CacheWriteStatus.STORED
            except StorageQuotaError:
                logger.info(
                    f"Snapshot cache full, evicting entries owned by {self.current_user_id}"
                )

            if self.current_user_id is not None:
                self.evict_all_for(self.current_user_id)

            # Eviction may have removed this container's own older versions
            retry_record = self._store.get_record(container_id) or {}
            retry_record[version_id] = record[version_id]
            self._store.set_record(container_id, owner_id, retry_record)
            return CacheWriteStatus.STORED_AFTER_EVICTION

        except DatabaseError as e:
            logger.warning(
                f"Snapshot of '{name or container_id}' not cached: {e}",
                extra={"container_id": container_id}
            )
            return CacheWriteStatus.DROPPED

    def evict_all_for(self, owner_id: str) -> int:
        """Remove every snapshot of playlists owned by owner_id."""
        removed = self._store.delete_records_for_owner(owner_id)
        logger.debug(f"Evicted {removed} snapshot(s) owned by {owner_id}")
        return removed

    def invalidate(self, container_id: str) -> bool:
        """Drop every cached version of one playlist."""
        return self._store.delete_record(container_id)

    def remembered(self) -> list[RememberedContainer]:
        """All cached snapshots, oldest record first."""
        return [
            RememberedContainer(entry=CacheEntry.from_dict(entry))
            for _, _, record in self._store.all_records()
            for entry in record.values()
        ]
