"""
Sequential loading of playlist contents.

load_next() advances the sync by exactly one descriptor; only one fetch
is ever in flight. For each descriptor the loader tries, in order:

    1. The previous run's contents, if the snapshot id is unchanged (CARRIED)
    2. The persistent snapshot cache (CACHED)
    3. One network fetch through RequestExecutor (FETCHED), written
       through to the cache

A fetch that fails for any reason other than authorization marks the
playlist FAILED and moves on, so one broken playlist never blocks the
rest of the library. Listing failures, by contrast, halt the sync (see
collector.py).
"""

from dataclasses import replace
from enum import Enum
from typing import Callable

from playlist_finder.core.exceptions import SpotifyError, SyncCancelled
from playlist_finder.core.logger import (
    format_cache_pressure_message,
    get_logger,
    log_load_failure,
)
from playlist_finder.spotify.client import SpotifyCatalog
from playlist_finder.spotify.executor import RequestExecutor
from playlist_finder.spotify.models import ContainerContents, ContainerDescriptor
from playlist_finder.sync.cache import CacheWriteStatus, SnapshotCache
from playlist_finder.sync.state import SyncState


logger = get_logger(__name__)


class LoadOutcome(Enum):
    EXHAUSTED = "exhausted"
    SKIPPED = "skipped"
    CARRIED = "carried"
    CACHED = "cached"
    FETCHED = "fetched"
    FAILED = "failed"


class SequentialContentLoader:
    """
    Loads the contents of the descriptor at state.next_to_load_index.

    The index is advanced only after a terminal result: throttling is
    resolved inside the executor before load_next() returns, and an
    authorization failure propagates without advancing so the caller can
    refresh the credential and resume at the same descriptor.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        catalog: SpotifyCatalog,
        cache: SnapshotCache
    ) -> None:
        self._executor = executor
        self._catalog = catalog
        self._cache = cache

    def load_next(
        self,
        state: SyncState,
        is_current: Callable[[], bool] = lambda: True
    ) -> LoadOutcome:
        """
        Load one descriptor's contents into state.

        Args:
            state: The run's SyncState.
            is_current: Returns False once the run has been superseded.

        Returns:
            What happened to the descriptor, or EXHAUSTED when every
            descriptor has been handled.

        Raises:
            SpotifyError: If the credential was rejected (is_auth_error).
            SyncCancelled: If the run was superseded before or during the
                           fetch. Nothing is written to state.
        """
        if not is_current():
            raise SyncCancelled("Sync run superseded")

        index = state.next_to_load_index
        if index >= len(state.descriptors):
            state.load_complete = True
            return LoadOutcome.EXHAUSTED

        descriptor = state.descriptors[index]
        if descriptor is None:
            logger.debug(f"Skipping empty listing slot {index}")
            state.advance()
            return LoadOutcome.SKIPPED

        carried = state.carried.get(descriptor.id)
        if carried is not None and carried.version_id == descriptor.version_id:
            state.materialize(descriptor, carried)
            state.advance()
            return LoadOutcome.CARRIED

        cached = self._cache.get(descriptor.id, descriptor.version_id)
        if cached is not None:
            logger.debug(f"Cache hit: {descriptor.name} @ {descriptor.version_id}")
            state.materialize(descriptor, cached)
            state.advance()
            return LoadOutcome.CACHED

        try:
            contents = self._executor.execute(
                self._catalog.get_container_contents, descriptor.id
            )
        except SpotifyError as e:
            if e.is_auth_error:
                raise
            if not is_current():
                raise SyncCancelled("Sync run superseded") from e
            state.mark_failed(descriptor)
            log_load_failure(
                logger,
                container_name=descriptor.name,
                owner_id=descriptor.owner_id,
                external_url=descriptor.external_uri,
                reason=self._failure_reason(e),
            )
            state.advance()
            return LoadOutcome.FAILED

        if not is_current():
            raise SyncCancelled("Sync run superseded")

        if not contents.version_id:
            contents = replace(contents, version_id=descriptor.version_id)

        state.materialize(descriptor, contents)
        self._persist(state, descriptor, contents)
        state.advance()
        logger.debug(f"Fetched {descriptor.name}: {len(contents)} tracks")
        return LoadOutcome.FETCHED

    def _persist(
        self,
        state: SyncState,
        descriptor: ContainerDescriptor,
        contents: ContainerContents
    ) -> None:
        if state.persistence_suspended:
            return

        status = self._cache.put(
            descriptor.id,
            contents.version_id,
            contents,
            owner_id=descriptor.owner_id,
            name=descriptor.name,
        )
        if status is CacheWriteStatus.DROPPED:
            logger.warning(format_cache_pressure_message(descriptor.name))
            state.cache_advisories.append(
                f"Snapshot cache is full: '{descriptor.name}' and later playlists "
                f"were not saved during this sync"
            )
            state.persistence_suspended = True

    @staticmethod
    def _failure_reason(error: SpotifyError) -> str:
        if error.http_status is not None:
            return f"HTTP {error.http_status}"
        return error.message
