"""Test the paginated playlist collector"""

import pytest

from playlist_finder.core.exceptions import SpotifyError
from playlist_finder.spotify.executor import RequestExecutor
from playlist_finder.spotify.models import ListingPage
from playlist_finder.sync.collector import PaginatedCollector
from playlist_finder.sync.state import SyncState

from conftest import spotify_exception


@pytest.fixture
def executor(sleep):
    return RequestExecutor(cooldown_seconds=30, sleep=sleep)


class TestPaginatedCollector:
    """Test page walking, positional placement and halting"""

    def test_single_page_completes_listing(self, executor, catalog, library):
        """total=3 in one page with no next cursor: complete after one page"""
        descriptors = library(3)
        state = SyncState()

        pages = list(PaginatedCollector(executor, catalog, state).collect())

        assert len(pages) == 1
        assert state.listing_complete
        assert state.cursor is None
        assert state.descriptors == descriptors
        assert len(catalog.calls_to("list_containers_page")) == 1

    def test_descriptors_land_at_their_offsets(self, executor, catalog, library):
        """total=5 over three pages keeps upstream order"""
        descriptors = library(5, page_size=2)
        state = SyncState()

        pages = list(PaginatedCollector(executor, catalog, state, page_size=2).collect())

        assert [p.offset for p in pages] == [0, 2, 4]
        assert state.descriptors == descriptors
        assert state.listing_complete
        cursors = [args[0] for args, _ in catalog.calls_to("list_containers_page")]
        assert cursors == [None, "page:1", "page:2"]

    def test_first_page_total_presizes_state(self, executor, catalog, library):
        library(5, page_size=2)
        state = SyncState()
        collector = PaginatedCollector(executor, catalog, state, page_size=2).collect()

        next(collector)

        assert len(state.descriptors) == 5
        assert state.descriptors_listed == 2
        assert state.descriptors[2:] == [None, None, None]
        assert not state.listing_complete

    def test_growing_library_extends_descriptors(self, executor, catalog, make_descriptor):
        """A later page beyond the first page's total grows the list"""
        catalog.pages = {
            None: ListingPage(2, 0, (make_descriptor(0), make_descriptor(1)), "page:1"),
            "page:1": ListingPage(3, 2, (make_descriptor(2),), None),
        }
        state = SyncState()

        list(PaginatedCollector(executor, catalog, state).collect())

        assert [d.id for d in state.descriptors] == ["pl0", "pl1", "pl2"]

    def test_null_items_stay_pending(self, executor, catalog, make_descriptor):
        catalog.pages = {None: ListingPage(3, 0, (make_descriptor(0), None, make_descriptor(2)), None)}
        state = SyncState()

        list(PaginatedCollector(executor, catalog, state).collect())

        assert state.descriptors[1] is None
        assert state.descriptors_listed == 2
        assert state.listing_complete

    def test_throttled_page_is_transparent(self, executor, catalog, library, sleep):
        descriptors = library(3)
        catalog.script["list_containers_page"].append(spotify_exception(429))
        state = SyncState()

        list(PaginatedCollector(executor, catalog, state).collect())

        assert state.descriptors == descriptors
        assert sleep.calls == [30]
        assert len(catalog.calls_to("list_containers_page")) == 2

    def test_failure_halts_listing(self, executor, catalog, library):
        """A non-auth failure stops listing and keeps what was listed"""
        library(5, page_size=2)
        catalog.script["list_containers_page"] = [catalog.pages[None], spotify_exception(500)]
        state = SyncState()
        collector = PaginatedCollector(executor, catalog, state, page_size=2)

        pages = list(collector.collect())

        assert len(pages) == 1
        assert collector.halted
        assert collector.error.http_status == 500
        assert not state.listing_complete
        assert state.descriptors_listed == 2

    def test_unauthorized_propagates(self, executor, catalog, library):
        library(3)
        catalog.script["list_containers_page"].append(spotify_exception(401))
        collector = PaginatedCollector(executor, catalog, SyncState())

        with pytest.raises(SpotifyError) as exc_info:
            list(collector.collect())

        assert exc_info.value.is_auth_error
        assert not collector.halted

    def test_superseded_run_stops_without_writing(self, executor, catalog, library):
        library(3)
        state = SyncState()

        pages = list(PaginatedCollector(executor, catalog, state, is_current=lambda: False).collect())

        assert pages == []
        assert state.descriptors == []
        assert catalog.calls_to("list_containers_page") == []

    def test_no_next_page_request_once_superseded(self, executor, catalog, library):
        """A run superseded between pages does not ask for the next page"""
        library(5, page_size=2)
        current = [True]
        state = SyncState()
        collector = PaginatedCollector(
            executor, catalog, state, page_size=2, is_current=lambda: current[0]
        ).collect()

        next(collector)
        current[0] = False
        remaining = list(collector)

        assert remaining == []
        assert len(catalog.calls_to("list_containers_page")) == 1
