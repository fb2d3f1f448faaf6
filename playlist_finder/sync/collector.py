"""
Paginated listing of the current user's playlists.

The collector walks /me/playlists page by page, following each page's
'next' locator, and writes every descriptor into SyncState at its upstream
position (page offset + index in page). The first page's total pre-sizes
the descriptor list, so the final order always matches upstream order.

Failure Policy:
    - Throttling never reaches the collector (RequestExecutor absorbs it).
    - Authorization failures propagate to the caller.
    - Any other failure halts listing: the collector records the
      error and stops. There is no partial resume; a resync starts again
      from the first page.
"""

from typing import Callable, Iterator

from playlist_finder.core.config import DEFAULT_PAGE_SIZE
from playlist_finder.core.exceptions import SpotifyError
from playlist_finder.core.logger import get_logger
from playlist_finder.spotify.client import SpotifyCatalog
from playlist_finder.spotify.executor import RequestExecutor
from playlist_finder.spotify.models import ListingPage
from playlist_finder.sync.state import SyncState


logger = get_logger(__name__)


class PaginatedCollector:
    """
    Stream listing pages into a SyncState.

    Attributes:
        halted: True if listing stopped on a non-retryable failure.
        error: The failure that halted listing, if any.

    Example:
        collector = PaginatedCollector(executor, catalog, state)
        for page in collector.collect():
            on_progress(state.progress())
        if collector.halted:
            ...
    """

    def __init__(
        self,
        executor: RequestExecutor,
        catalog: SpotifyCatalog,
        state: SyncState,
        page_size: int = DEFAULT_PAGE_SIZE,
        is_current: Callable[[], bool] = lambda: True
    ) -> None:
        self._executor = executor
        self._catalog = catalog
        self._state = state
        self._page_size = page_size
        self._is_current = is_current
        self.halted = False
        self.error: SpotifyError | None = None

    def collect(self) -> Iterator[ListingPage]:
        """
        Fetch pages until one carries no next locator, yielding each.

        Descriptors are already placed in the state when a page is yielded.
        Stops early, without raising, if the run is superseded or a page
        fetch fails with anything but an authorization error.

        Raises:
            SpotifyError: If the credential was rejected (is_auth_error).
        """
        state = self._state
        cursor: str | None = None
        first_page = True

        while True:
            if not self._is_current():
                logger.debug("Listing of a superseded run stopped")
                return

            try:
                page = self._executor.execute(
                    self._catalog.list_containers_page, cursor, self._page_size
                )
            except SpotifyError as e:
                if e.is_auth_error:
                    raise
                self.halted = True
                self.error = e
                logger.error(f"Playlist listing halted: {e}")
                return

            if not self._is_current():
                logger.debug("Discarding listing page of a superseded run")
                return

            if first_page:
                state.presize(page.total)
                first_page = False

            for i, descriptor in enumerate(page.descriptors):
                state.place(page.offset + i, descriptor)

            state.cursor = page.next_cursor
            logger.debug(
                f"Listed {len(page.descriptors)} playlists at offset {page.offset} "
                f"({state.descriptors_listed}/{len(state.descriptors)})"
            )
            yield page

            if page.is_last:
                state.listing_complete = True
                logger.info(f"Listing complete: {state.descriptors_listed} playlists")
                return

            cursor = page.next_cursor
