"""
Progress display for a library sync using the Rich library.

A sync has two phases with different meaningful counters, so the bar
switches its status text when listing completes:

    Listing         120/743 playlists          ━━━━━━━━━━━━━━━━━  16%
    Loading         ✓ 512  ✗ 3                 ━━━━━━━━━━━━━━━━━  69%

Usage:
    from playlist_finder.core.progress import SyncProgressBar

    with SyncProgressBar() as bar:
        orchestrator.on_progress = bar.refresh
        orchestrator.begin_sync(token)
"""

from typing import TYPE_CHECKING, Optional

from rich import get_console
from rich.console import JustifyMethod, OverflowMethod
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
)
from rich.style import StyleType
from rich.text import Text
from rich.theme import Theme

if TYPE_CHECKING:
    from playlist_finder.sync.state import SyncProgress


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(30,215,96)",  # Spotify green
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(30,215,96)",
    "progress.percentage": "white",
})


class SizedTextColumn(ProgressColumn):
    """
    Fixed-width text column; longer text is truncated with the given overflow.
    """

    def __init__(
        self,
        text_format: str,
        style: StyleType = "none",
        justify: JustifyMethod = "left",
        overflow: Optional[OverflowMethod] = None,
        width: int = 20,
    ) -> None:
        self.text_format = text_format
        self.style = style
        self.justify: JustifyMethod = justify
        self.overflow: Optional[OverflowMethod] = overflow
        self.width = width
        super().__init__()

    def render(self, task: Task) -> Text:
        text = Text.from_markup(
            self.text_format.format(task=task), style=self.style, justify=self.justify
        )
        text.truncate(max_width=self.width, overflow=self.overflow, pad=True)
        return text


class SyncProgressBar:
    """
    Progress bar fed with SyncProgress snapshots.

    While listing, the bar counts listed descriptors against the upstream
    total. Once listing completes it restarts and counts loaded plus failed
    playlists against the number of listed descriptors. A listing that
    halts leaves the bar stalled.
    """

    def __init__(self, status_width: int = 35) -> None:
        self.console = get_console()

        self.progress = Progress(
            SizedTextColumn(
                "[white]{task.description}",
                overflow="ellipsis",
                width=15,
            ),
            SizedTextColumn(
                "{task.fields[status]}",
                width=status_width,
                style="white",
            ),
            BarColumn(bar_width=40, finished_style="green"),
            "[progress.percentage]{task.percentage:>3.0f}%",
            console=self.console,
            transient=False,
            refresh_per_second=10,
        )

        self.task_id: Optional[TaskID] = None
        self.phase = "Listing"
        self._started = False

    def __enter__(self) -> "SyncProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not self._started:
            self.console.push_theme(PROGRESS_THEME)
            self.progress.start()
            self.task_id = self.progress.add_task(
                description=self.phase, total=None, status="connecting..."
            )
            self._started = True

    def stop(self) -> None:
        if self._started:
            self.progress.stop()
            self.console.pop_theme()
            self._started = False

    def refresh(self, snapshot: "SyncProgress") -> None:
        """Redraw the bar from a SyncProgress snapshot."""
        if self.task_id is None:
            return

        if not snapshot.listing_complete:
            self.progress.update(
                self.task_id,
                description="Listing",
                total=snapshot.descriptors_total or None,
                completed=snapshot.descriptors_listed,
                status=f"{snapshot.descriptors_listed}/{snapshot.descriptors_total} playlists",
            )
            return

        if self.phase != "Loading":
            self.phase = "Loading"
            self.progress.reset(self.task_id, total=snapshot.descriptors_listed)

        done = snapshot.containers_loaded + snapshot.containers_failed
        self.progress.update(
            self.task_id,
            description="Loading",
            total=snapshot.descriptors_listed,
            completed=done,
            status=(
                f"[green]✓ {snapshot.containers_loaded}[/green]  "
                f"[red]✗ {snapshot.containers_failed}[/red]"
            ),
        )
