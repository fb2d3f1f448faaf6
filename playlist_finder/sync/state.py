"""
Per-run state of a library sync.

A SyncState belongs to exactly one sync run, identified by its generation
number. A resync never mutates the old state: the orchestrator builds a
brand-new SyncState with a higher generation and lets any late writes of
the old run bounce off the generation check.
"""

from dataclasses import dataclass, field
from enum import Enum

from playlist_finder.spotify.models import (
    ContainerContents,
    ContainerDescriptor,
    LiveContainer,
)


class SyncPhase(Enum):
    IDLE = "idle"
    LISTING = "listing"
    LOADING = "loading"
    DONE = "done"


class LoadStatus(Enum):
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncProgress:
    """Observable counters for progress display."""
    descriptors_total: int
    descriptors_listed: int
    containers_loaded: int
    containers_failed: int
    listing_complete: bool
    load_complete: bool


@dataclass
class SyncState:
    """
    Mutable accumulation of one sync run.

    Attributes:
        generation: Run token; writes from a different generation are ignored.
        descriptors: Listing result in upstream order. None marks a slot
            that is pre-sized but not (yet) filled, or a null upstream item.
        contents: Materialized contents by container id.
        loaded_versions: Version id currently materialized, by container id.
        load_status: LOADED or FAILED by container id. A FAILED container is
            distinct from a LOADED one with zero tracks.
        carried: Contents materialized by the previous run, consulted before
            the persistent cache when a descriptor's version is unchanged.
        cursor: Locator of the next listing page; None once listing is over.
        listing_complete: True once a page without a next locator arrived.
        listing_error: Message of the failure that halted listing, if any.
        next_to_load_index: Index of the next descriptor to load. Only grows.
        cache_advisories: User-facing cache pressure messages.
        persistence_suspended: Set after a dropped cache write; the rest of
            the run does not attempt to persist.
    """
    generation: int = 0
    descriptors: list[ContainerDescriptor | None] = field(default_factory=list)
    contents: dict[str, ContainerContents] = field(default_factory=dict)
    loaded_versions: dict[str, str] = field(default_factory=dict)
    load_status: dict[str, LoadStatus] = field(default_factory=dict)
    carried: dict[str, ContainerContents] = field(default_factory=dict)
    cursor: str | None = None
    listing_complete: bool = False
    listing_error: str | None = None
    next_to_load_index: int = 0
    phase: SyncPhase = SyncPhase.IDLE
    load_complete: bool = False
    cache_advisories: list[str] = field(default_factory=list)
    persistence_suspended: bool = False

    # =========================================================================
    # Listing
    # =========================================================================

    def presize(self, total: int) -> None:
        """Reserve positional slots for the announced number of descriptors."""
        if total > len(self.descriptors):
            self.descriptors.extend([None] * (total - len(self.descriptors)))

    def place(self, position: int, descriptor: ContainerDescriptor | None) -> None:
        """Write a descriptor at its upstream position, growing if needed."""
        if position >= len(self.descriptors):
            self.descriptors.extend([None] * (position + 1 - len(self.descriptors)))
        if descriptor is not None:
            self.descriptors[position] = descriptor

    # =========================================================================
    # Loading
    # =========================================================================

    def advance(self) -> None:
        self.next_to_load_index += 1

    def materialize(self, descriptor: ContainerDescriptor, contents: ContainerContents) -> None:
        self.contents[descriptor.id] = contents
        self.loaded_versions[descriptor.id] = contents.version_id
        self.load_status[descriptor.id] = LoadStatus.LOADED

    def mark_failed(self, descriptor: ContainerDescriptor) -> None:
        self.load_status[descriptor.id] = LoadStatus.FAILED

    def live_containers(self) -> list[LiveContainer]:
        """Loaded containers in listing order."""
        return [
            LiveContainer(descriptor=descriptor, contents=self.contents[descriptor.id])
            for descriptor in self.descriptors
            if descriptor is not None and descriptor.id in self.contents
        ]

    # =========================================================================
    # Progress
    # =========================================================================

    @property
    def descriptors_listed(self) -> int:
        return sum(1 for d in self.descriptors if d is not None)

    @property
    def containers_loaded(self) -> int:
        return sum(1 for s in self.load_status.values() if s is LoadStatus.LOADED)

    @property
    def containers_failed(self) -> int:
        return sum(1 for s in self.load_status.values() if s is LoadStatus.FAILED)

    def progress(self) -> SyncProgress:
        return SyncProgress(
            descriptors_total=len(self.descriptors),
            descriptors_listed=self.descriptors_listed,
            containers_loaded=self.containers_loaded,
            containers_failed=self.containers_failed,
            listing_complete=self.listing_complete,
            load_complete=self.load_complete,
        )
