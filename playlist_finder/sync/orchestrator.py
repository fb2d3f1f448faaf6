"""
Sync orchestration: one run = identify user, list playlists, load contents.

The orchestrator owns the current SyncState and wires the executor,
collector, loader and cache together. Each run gets a generation number;
a resync bumps the generation, so the old run's checks start failing and
it stops at its next step without touching the new state.

Phases:
    IDLE     -> no run started yet
    LISTING  -> paging through /me/playlists (stays here if listing halts)
    LOADING  -> loading contents one playlist at a time
    DONE     -> every listed playlist is loaded or marked failed

Usage:
    orchestrator = SyncOrchestrator(cache, config.sync)
    orchestrator.on_progress = progress_bar.refresh
    state = orchestrator.begin_sync(token)

    # Later, after playlists changed upstream
    state = orchestrator.resync(token)   # unchanged playlists cost no calls
"""

import threading
import time
from typing import Callable

from playlist_finder.core.config import SyncConfig
from playlist_finder.core.exceptions import PlaylistFinderError, SyncCancelled
from playlist_finder.core.logger import get_logger
from playlist_finder.spotify.client import SpotifyCatalog
from playlist_finder.spotify.executor import RequestExecutor
from playlist_finder.sync.cache import SnapshotCache
from playlist_finder.sync.collector import PaginatedCollector
from playlist_finder.sync.loader import LoadOutcome, SequentialContentLoader
from playlist_finder.sync.state import LoadStatus, SyncPhase, SyncProgress, SyncState


logger = get_logger(__name__)


class SyncOrchestrator:
    """
    Drives sync runs and exposes their progress.

    Attributes:
        on_progress: Optional callback receiving a SyncProgress after every
                     page and every loaded playlist of the current run.
        last_error: Exception that ended the most recent background run.
    """

    def __init__(
        self,
        cache: SnapshotCache,
        sync_config: SyncConfig = SyncConfig(),
        catalog_factory: Callable[[str], SpotifyCatalog] = SpotifyCatalog,
        sleep: Callable[[float], None] = time.sleep,
        max_throttle_retries: int | None = None
    ) -> None:
        self._cache = cache
        self._config = sync_config
        self._catalog_factory = catalog_factory
        self._sleep = sleep
        self._max_throttle_retries = max_throttle_retries

        self._lock = threading.Lock()
        # Serializes load_next between the run loop and load_content_for
        self._load_lock = threading.RLock()
        self._generation = 0
        self._state = SyncState()
        self._loader: SequentialContentLoader | None = None

        self.on_progress: Callable[[SyncProgress], None] | None = None
        self.last_error: BaseException | None = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def progress(self) -> SyncProgress:
        return self._state.progress()

    # =========================================================================
    # Inbound Operations
    # =========================================================================

    def begin_sync(self, credential: str) -> SyncState:
        """
        Start a fresh run from empty state and drive it to completion.

        Returns:
            The run's SyncState. Check state.phase: DONE on success,
            LISTING with listing_error set if listing halted, or whatever
            phase it reached if a newer run superseded it.

        Raises:
            SpotifyError: If the credential was rejected. Refresh it and
                          call resync().
        """
        state = self._new_run(carried={})
        return self._run(state, credential)

    def resync(self, credential: str) -> SyncState:
        """
        Discard the current run and start over.

        Contents loaded by the discarded run are carried over: a playlist
        whose snapshot id has not changed is taken from them without
        touching the network or the snapshot store.
        """
        previous = self._state
        carried = dict(previous.carried)
        carried.update(
            (container_id, contents)
            for container_id, contents in list(previous.contents.items())
            if previous.load_status.get(container_id) is LoadStatus.LOADED
        )
        state = self._new_run(carried=carried)
        logger.info(f"Resync started (run {state.generation}, {len(carried)} playlists carried)")
        return self._run(state, credential)

    def start_in_background(self, credential: str) -> threading.Thread:
        """
        Run begin_sync() on a daemon thread.

        Errors ending the run are logged and kept in last_error.
        """
        def target() -> None:
            try:
                self.begin_sync(credential)
            except PlaylistFinderError as e:
                self.last_error = e
                logger.error(f"Background sync failed: {e}")

        thread = threading.Thread(target=target, name="playlist-sync", daemon=True)
        thread.start()
        return thread

    def load_content_for(self, index: int) -> LoadOutcome:
        """
        Drive the loader of the current run until descriptor `index` is handled.

        Descriptors before `index` are loaded first; the load order never
        skips ahead. Safe to call while a background run is loading: both
        take turns on the same loader, one descriptor at a time. An index
        that was already handled returns SKIPPED.
        """
        with self._lock:
            loader, state = self._loader, self._state
        if loader is None:
            raise PlaylistFinderError("No sync has been started")

        is_current = self._is_current_for(state)
        outcome = LoadOutcome.SKIPPED
        while True:
            with self._load_lock:
                if not is_current() or state.next_to_load_index > index:
                    return outcome
                outcome = loader.load_next(state, is_current)
            self._notify(state)
            if outcome is LoadOutcome.EXHAUSTED:
                return outcome

    # =========================================================================
    # Run Internals
    # =========================================================================

    def _new_run(self, carried: dict) -> SyncState:
        with self._lock:
            self._generation += 1
            self._state = SyncState(generation=self._generation, carried=carried)
            self._loader = None
            return self._state

    def _is_current_for(self, state: SyncState) -> Callable[[], bool]:
        return lambda: self._generation == state.generation

    def _notify(self, state: SyncState) -> None:
        if self.on_progress is not None and self._generation == state.generation:
            self.on_progress(state.progress())

    def _run(self, state: SyncState, credential: str) -> SyncState:
        is_current = self._is_current_for(state)
        catalog = self._catalog_factory(credential)
        executor = RequestExecutor(
            cooldown_seconds=self._config.throttle_cooldown_seconds,
            max_throttle_retries=self._max_throttle_retries,
            sleep=self._sleep,
            should_abort=lambda: not is_current(),
        )
        loader = SequentialContentLoader(executor, catalog, self._cache)

        try:
            user = executor.execute(catalog.current_user)
            if not is_current():
                return state
            self._cache.current_user_id = user["id"]
            logger.info(f"Syncing library of {user.get('display_name') or user['id']}")

            state.phase = SyncPhase.LISTING
            self._notify(state)

            collector = PaginatedCollector(
                executor, catalog, state,
                page_size=self._config.page_size,
                is_current=is_current,
            )
            for _ in collector.collect():
                self._notify(state)

            if not is_current():
                return state

            if collector.halted:
                state.listing_error = str(collector.error)
                self._notify(state)
                return state

            with self._lock:
                if is_current():
                    self._loader = loader
            state.phase = SyncPhase.LOADING
            self._notify(state)

            while is_current():
                with self._load_lock:
                    outcome = loader.load_next(state, is_current)
                if outcome is LoadOutcome.EXHAUSTED:
                    break
                self._notify(state)

            if not is_current():
                return state

            state.phase = SyncPhase.DONE
            self._notify(state)
            logger.info(
                f"Sync complete: {state.containers_loaded} loaded, "
                f"{state.containers_failed} failed"
            )

        except SyncCancelled:
            logger.debug(f"Run {state.generation} superseded, stopping")

        return state
