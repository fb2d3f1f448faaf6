"""Test sync orchestration across runs"""

import threading

import pytest

from playlist_finder.core.config import SyncConfig
from playlist_finder.core.exceptions import PlaylistFinderError, SpotifyError
from playlist_finder.sync.loader import LoadOutcome
from playlist_finder.sync.orchestrator import SyncOrchestrator
from playlist_finder.sync.state import SyncPhase

from conftest import spotify_exception


@pytest.fixture
def make_orchestrator(cache, catalog, sleep):
    def factory(**kwargs):
        return SyncOrchestrator(
            cache,
            SyncConfig(throttle_cooldown_seconds=30, page_size=2),
            catalog_factory=lambda token: catalog,
            sleep=sleep,
            **kwargs
        )
    return factory


class TestSyncOrchestrator:
    """Test full runs, resyncs and the generation guard"""

    def test_begin_sync_runs_to_done(self, make_orchestrator, catalog, cache, library):
        descriptors = library(5, page_size=2)
        orchestrator = make_orchestrator()

        state = orchestrator.begin_sync("token")

        assert state.phase is SyncPhase.DONE
        assert state.listing_complete and state.load_complete
        assert [c.container_id for c in state.live_containers()] == [d.id for d in descriptors]
        assert cache.current_user_id == "me"
        progress = orchestrator.progress
        assert progress.descriptors_total == 5
        assert progress.containers_loaded == 5

    def test_second_sync_of_unchanged_library_fetches_nothing(
        self, make_orchestrator, catalog, library
    ):
        """Unchanged playlists cost zero content calls on a later run"""
        library(4, page_size=2)
        make_orchestrator().begin_sync("token")
        fetched_first = len(catalog.calls_to("get_container_contents"))

        state = make_orchestrator().begin_sync("token")

        assert fetched_first == 4
        assert len(catalog.calls_to("get_container_contents")) == 4
        assert state.containers_loaded == 4

    def test_resync_carries_unchanged_and_refetches_changed(
        self, make_orchestrator, catalog, cache, library, make_descriptor, make_contents
    ):
        library(3)
        orchestrator = make_orchestrator()
        orchestrator.begin_sync("token")
        cache.invalidate("pl0")

        changed = make_descriptor(1, version="v2")
        catalog.contents["pl1"] = make_contents("pl1", "v2", 7)
        descriptors = [make_descriptor(0), changed, make_descriptor(2)]
        catalog.set_library(descriptors)
        catalog.calls.clear()

        state = orchestrator.resync("token")

        fetched = [args[0] for args, _ in catalog.calls_to("get_container_contents")]
        assert fetched == ["pl1"]
        assert state.loaded_versions == {"pl0": "v1", "pl1": "v2", "pl2": "v1"}
        assert state.generation == 2

    def test_listing_halt_stays_in_listing(self, make_orchestrator, catalog, library):
        library(5, page_size=2)
        catalog.script["list_containers_page"] = [catalog.pages[None], spotify_exception(503)]
        orchestrator = make_orchestrator()

        state = orchestrator.begin_sync("token")

        assert state.phase is SyncPhase.LISTING
        assert state.listing_error is not None
        assert not state.listing_complete
        assert orchestrator.progress.descriptors_listed == 2
        assert catalog.calls_to("get_container_contents") == []

    def test_content_failure_does_not_stop_run(self, make_orchestrator, catalog, library):
        descriptors = library(3)
        catalog.script["get_container_contents"] = [spotify_exception(500)]

        state = make_orchestrator().begin_sync("token")

        assert state.phase is SyncPhase.DONE
        assert state.containers_loaded == len(descriptors) - 1
        assert state.containers_failed == 1

    def test_unauthorized_propagates(self, make_orchestrator, catalog, library):
        library(2)
        catalog.script["current_user"].append(spotify_exception(401))

        with pytest.raises(SpotifyError) as exc_info:
            make_orchestrator().begin_sync("token")

        assert exc_info.value.is_auth_error

    def test_progress_callback(self, make_orchestrator, library):
        library(3)
        orchestrator = make_orchestrator()
        snapshots = []
        orchestrator.on_progress = snapshots.append

        orchestrator.begin_sync("token")

        assert snapshots[-1].load_complete
        assert snapshots[-1].containers_loaded == 3
        loaded_counts = [s.containers_loaded for s in snapshots]
        assert loaded_counts == sorted(loaded_counts)

    def test_stale_run_cannot_touch_new_state(self, make_orchestrator, catalog, library):
        """A resync during a run wins; the old run's late result is ignored"""
        library(3)
        orchestrator = make_orchestrator()
        runs = []

        def resync_then_answer():
            runs.append(orchestrator.resync("token"))
            return catalog.contents["pl0"]

        catalog.script["get_container_contents"] = [resync_then_answer]

        old_state = orchestrator.begin_sync("token")

        new_state = runs[0]
        assert orchestrator.state is new_state
        assert new_state.phase is SyncPhase.DONE
        assert new_state.containers_loaded == 3
        assert old_state.generation < new_state.generation
        assert old_state.contents == {}
        assert old_state.phase is SyncPhase.LOADING
        fetched = [args[0] for args, _ in catalog.calls_to("get_container_contents")]
        assert fetched == ["pl0", "pl0", "pl1", "pl2"]

    def test_resync_during_listing_stops_old_requests(self, make_orchestrator, catalog, library):
        """The superseded run issues no further listing or content requests"""
        library(5, page_size=2)
        orchestrator = make_orchestrator()
        runs = []

        def resync_after_first_page(progress):
            if not runs and progress.descriptors_listed == 2 and not progress.listing_complete:
                runs.append(None)
                runs[0] = orchestrator.resync("token")

        orchestrator.on_progress = resync_after_first_page

        old_state = orchestrator.begin_sync("token")

        assert runs[0].phase is SyncPhase.DONE
        assert old_state.phase is SyncPhase.LISTING
        cursors = [args[0] for args, _ in catalog.calls_to("list_containers_page")]
        assert cursors == [None, None, "page:1", "page:2"]
        assert len(catalog.calls_to("get_container_contents")) == 5

    def test_resync_during_cooldown_abandons_old_retry(
        self, make_orchestrator, catalog, library, sleep
    ):
        library(2)
        orchestrator = make_orchestrator()
        runs = []

        def resync_once():
            sleep.hook = None
            runs.append(orchestrator.resync("token"))

        sleep.hook = resync_once
        catalog.script["get_container_contents"] = [spotify_exception(429)]

        old_state = orchestrator.begin_sync("token")

        assert runs[0].phase is SyncPhase.DONE
        assert old_state.contents == {}
        assert sleep.calls == [30]

    def test_background_sync(self, make_orchestrator, library):
        library(2)
        orchestrator = make_orchestrator()

        thread = orchestrator.start_in_background("token")
        thread.join(timeout=10)

        assert not thread.is_alive()
        assert orchestrator.state.phase is SyncPhase.DONE
        assert orchestrator.last_error is None

    def test_background_sync_records_error(self, make_orchestrator, catalog, library):
        library(2)
        catalog.script["current_user"].append(spotify_exception(401))
        orchestrator = make_orchestrator()

        orchestrator.start_in_background("token").join(timeout=10)

        assert isinstance(orchestrator.last_error, SpotifyError)


class TestLoadContentFor:
    """Test explicitly driven loading"""

    def test_requires_a_run(self, make_orchestrator):
        with pytest.raises(PlaylistFinderError):
            make_orchestrator().load_content_for(0)

    def test_already_loaded_index_is_skipped(self, make_orchestrator, catalog, library):
        library(2)
        orchestrator = make_orchestrator()
        orchestrator.begin_sync("token")
        catalog.calls.clear()

        assert orchestrator.load_content_for(1) is LoadOutcome.SKIPPED
        assert orchestrator.load_content_for(5) is LoadOutcome.EXHAUSTED
        assert catalog.calls_to("get_container_contents") == []

    def test_concurrent_with_background_run_loads_each_once(
        self, make_orchestrator, catalog, library
    ):
        """Explicit loading and the background run take turns, in order"""
        descriptors = library(6)
        orchestrator = make_orchestrator()
        fetch_started = threading.Event()
        release_fetch = threading.Event()

        def slow_second_fetch():
            fetch_started.set()
            release_fetch.wait(timeout=5)
            return catalog.contents["pl1"]

        catalog.script["get_container_contents"] = [
            lambda: catalog.contents["pl0"], slow_second_fetch
        ]

        background = orchestrator.start_in_background("token")
        assert fetch_started.wait(timeout=5)
        explicit = threading.Thread(target=orchestrator.load_content_for, args=(4,))
        explicit.start()
        explicit.join(timeout=0.2)
        release_fetch.set()
        explicit.join(timeout=10)
        background.join(timeout=10)

        fetched = [args[0] for args, _ in catalog.calls_to("get_container_contents")]
        assert fetched == [d.id for d in descriptors]
        state = orchestrator.state
        assert state.phase is SyncPhase.DONE
        assert state.next_to_load_index == len(descriptors)
        assert state.containers_loaded == len(descriptors)
