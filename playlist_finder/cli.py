"""
Command-line interface for playlist-finder.

This module implements the CLI using Click, with rich-click for help
formatting and rich for tables and progress.

Commands:
    playlist-finder sync                                Sync the library into the snapshot cache
    playlist-finder search QUERY                        Sync, then search every playlist
    playlist-finder search QUERY --no-remembered        Ignore remembered snapshots
    playlist-finder play PLAYLIST_ID POSITION TRACK_URI Play a track within a playlist
    playlist-finder devices                             List playback devices
    playlist-finder remembered                          List cached snapshots
    playlist-finder restore PLAYLIST_ID VERSION_ID      Save a snapshot as a new playlist

Options:
    --config <path>                                     Config file (default: ./config.yaml)

Exit Codes:
    0    success
    1    configuration error
    2    snapshot store error
    3    Spotify error (including a halted listing)
    4    other playlist-finder error
    130  interrupted
"""

import sys
from pathlib import Path
from typing import Callable, Optional, TypeVar

import rich_click as click
from rich.console import Console
from rich.table import Table

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.MAX_WIDTH = 100

from playlist_finder import __version__
from playlist_finder.core import (
    Config,
    ConfigError,
    DatabaseError,
    PlaylistFinderError,
    SnapshotStore,
    SpotifyError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from playlist_finder.core.progress import SyncProgressBar
from playlist_finder.playback import PlaybackOutcome, PlaybackSequencer, choose_device
from playlist_finder.search import gather_containers, restore_remembered, search
from playlist_finder.spotify import CredentialProvider, RequestExecutor, SpotifyCatalog
from playlist_finder.sync import SnapshotCache, SyncOrchestrator, SyncPhase, SyncState

logger = get_logger(__name__)

console = Console()

T = TypeVar("T")


class Session:
    """Everything a command needs, built once from the configuration."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.store = SnapshotStore(config.output.cache_path, config.cache.quota_bytes)
        self.cache = SnapshotCache(self.store)
        self.credentials = CredentialProvider(config.spotify, config.output.token_cache_path)

    def executor(self) -> RequestExecutor:
        return RequestExecutor(cooldown_seconds=self.config.sync.throttle_cooldown_seconds)

    def with_credential(self, operation: Callable[[str], T]) -> T:
        """
        Run operation(token), resubmitting once with a refreshed token
        if Spotify rejects the first one.
        """
        try:
            return operation(self.credentials.current())
        except SpotifyError as e:
            if not e.is_auth_error:
                raise
            logger.info("Access token rejected, refreshing and retrying")
        return operation(self.credentials.refresh())

    def close(self) -> None:
        self.store.close()


@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], version: bool) -> None:
    """
    playlist-finder: search every playlist of your Spotify library.

    Syncs all your playlists (slowly, Spotify rate limits are strict),
    keeps every version it has seen in a local snapshot cache, and finds
    which playlists contain a track.

    \b
    BASIC USAGE:
        playlist-finder sync                    # First sync (can take a while)
        playlist-finder search "bohemian"       # Find tracks
        playlist-finder play <id> 12 spotify:track:...
    """
    if version:
        click.echo(f"playlist-finder {__version__}")
        ctx.exit(0)

    ctx.obj = {"config_path": config_path}

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("sync")
@click.pass_context
def sync_command(ctx: click.Context) -> None:
    """Sync every playlist into the snapshot cache."""
    def action(session: Session) -> None:
        state = _run_sync(session)
        _report_sync(state)
        if state.phase is not SyncPhase.DONE:
            sys.exit(3)

    _run_command(ctx, action)


@cli.command("search")
@click.argument("query")
@click.option(
    "--no-remembered",
    is_flag=True,
    help="Only search the current version of each playlist"
)
@click.pass_context
def search_command(ctx: click.Context, query: str, no_remembered: bool) -> None:
    """Sync, then list every track matching QUERY."""
    def action(session: Session) -> None:
        state = _run_sync(session)
        if state.phase is not SyncPhase.DONE:
            _report_sync(state)

        containers = gather_containers(state, None if no_remembered else session.cache)
        matches = search(containers, query)

        if not matches:
            console.print(f"No tracks match [bold]{query}[/bold]")
            return

        table = Table(title=f"{len(matches)} match(es) for '{query}'")
        table.add_column("Playlist")
        table.add_column("Playlist ID", style="dim")
        table.add_column("#", justify="right")
        table.add_column("Title")
        table.add_column("Artists")
        table.add_column("Album")
        table.add_column("Track URI", style="dim")
        for match in matches:
            playlist = match.container.name
            if match.container.is_remembered:
                stored = match.container.stored_at.strftime("%Y-%m-%d")
                playlist = f"{playlist} [yellow](remembered {stored})[/yellow]"
            table.add_row(
                playlist,
                match.container.container_id,
                str(match.position),
                match.item.title,
                ", ".join(match.item.artist_names),
                match.item.album_name,
                match.item.uri,
            )
        console.print(table)

    _run_command(ctx, action)


@cli.command("play")
@click.argument("playlist_id")
@click.argument("position", type=click.IntRange(min=0))
@click.argument("track_uri")
@click.option(
    "--device", "device_id",
    default=None,
    metavar="<device-id>",
    help="Device to play on (default: configured, then active device)"
)
@click.pass_context
def play_command(
    ctx: click.Context,
    playlist_id: str,
    position: int,
    track_uri: str,
    device_id: Optional[str]
) -> None:
    """Play TRACK_URI, found at POSITION of PLAYLIST_ID."""
    def action(session: Session) -> None:
        playback = session.config.playback

        def play(token: str) -> PlaybackOutcome | None:
            catalog = SpotifyCatalog(token)
            executor = session.executor()
            device = choose_device(
                executor.execute(catalog.devices), device_id or playback.device_id
            )
            if device is None:
                return None
            sequencer = PlaybackSequencer(
                executor,
                catalog,
                settle_delay=playback.settle_delay_seconds,
                retry_delay=playback.retry_delay_seconds,
            )
            logger.info(f"Playing on {device.name}")
            return sequencer.play(device.id, f"spotify:playlist:{playlist_id}", track_uri, position)

        outcome = session.with_credential(play)
        if outcome is None:
            click.echo("No playback device available. Open Spotify on a device first.", err=True)
            sys.exit(3)
        if outcome is PlaybackOutcome.CONFIRMED:
            console.print("[green]Playing[/green]")
        else:
            console.print("[yellow]Playback could not be confirmed[/yellow]")

    _run_command(ctx, action)


@cli.command("devices")
@click.pass_context
def devices_command(ctx: click.Context) -> None:
    """List available playback devices."""
    def action(session: Session) -> None:
        devices = session.with_credential(
            lambda token: session.executor().execute(SpotifyCatalog(token).devices)
        )
        table = Table(title="Devices")
        table.add_column("ID", style="dim")
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Active")
        for device in devices:
            table.add_row(device.id, device.name, device.type, "●" if device.is_active else "")
        console.print(table)

    _run_command(ctx, action)


@cli.command("remembered")
@click.pass_context
def remembered_command(ctx: click.Context) -> None:
    """List playlist snapshots kept in the cache."""
    def action(session: Session) -> None:
        table = Table(title="Remembered playlists")
        table.add_column("Playlist")
        table.add_column("Playlist ID", style="dim")
        table.add_column("Version ID", style="dim")
        table.add_column("Owner")
        table.add_column("Tracks", justify="right")
        table.add_column("Remembered at")
        for remembered in session.cache.remembered():
            table.add_row(
                remembered.name,
                remembered.container_id,
                remembered.version_id,
                remembered.owner_id,
                str(len(remembered.items)),
                remembered.stored_at.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)
        console.print(f"Snapshot store: {session.store.used_bytes()} / {session.store.quota_bytes} bytes")

    _run_command(ctx, action)


@cli.command("restore")
@click.argument("playlist_id")
@click.argument("version_id")
@click.pass_context
def restore_command(ctx: click.Context, playlist_id: str, version_id: str) -> None:
    """Save remembered snapshot VERSION_ID of PLAYLIST_ID as a new playlist."""
    def action(session: Session) -> None:
        remembered = next(
            (
                r for r in session.cache.remembered()
                if r.container_id == playlist_id and r.version_id == version_id
            ),
            None,
        )
        if remembered is None:
            click.echo(f"No remembered snapshot {version_id} of {playlist_id}", err=True)
            sys.exit(4)

        def restore(token: str) -> str:
            catalog = SpotifyCatalog(token)
            executor = session.executor()
            user = executor.execute(catalog.current_user)
            return restore_remembered(executor, catalog, remembered, user["id"])

        new_id = session.with_credential(restore)
        console.print(f"[green]Saved copy[/green] as https://open.spotify.com/playlist/{new_id}")

    _run_command(ctx, action)


# =============================================================================
# Helpers
# =============================================================================

def _run_sync(session: Session) -> SyncState:
    """
    Run a full sync with a progress bar.

    A rejected token is refreshed once and the sync resubmitted as a
    resync, so playlists already loaded are not fetched again.
    """
    orchestrator = SyncOrchestrator(session.cache, session.config.sync)

    with SyncProgressBar() as bar:
        orchestrator.on_progress = bar.refresh
        try:
            state = orchestrator.begin_sync(session.credentials.current())
        except SpotifyError as e:
            if not e.is_auth_error:
                raise
            logger.info("Access token rejected, refreshing and resyncing")
            state = orchestrator.resync(session.credentials.refresh())

    for advisory in state.cache_advisories:
        logger.warning(advisory)
    return state


def _report_sync(state: SyncState) -> None:
    progress = state.progress()
    if state.listing_error is not None:
        click.echo(
            f"Listing halted after {progress.descriptors_listed}/{progress.descriptors_total} "
            f"playlists: {state.listing_error}. Run the command again to restart it.",
            err=True
        )
        return

    logger.info("=" * 60)
    logger.info("SYNC SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Playlists listed:  {progress.descriptors_listed}")
    logger.info(f"Loaded:            {progress.containers_loaded}")
    logger.info(f"Failed:            {progress.containers_failed}")
    logger.info("=" * 60)


def _run_command(ctx: click.Context, action: Callable[[Session], None]) -> None:
    """
    Build a session and run a command, mapping errors to exit codes.

    Raises:
        SystemExit: On fatal errors (with appropriate exit code).
    """
    session: Session | None = None

    try:
        config = load_config(ctx.obj["config_path"])

        config.output.directory.mkdir(parents=True, exist_ok=True)
        setup_logging(config.output.directory)
        logger.debug(f"playlist-finder {__version__} starting")

        session = Session(config)
        action(session)

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except DatabaseError as e:
        click.echo(f"Snapshot store error: {e.message}", err=True)
        logger.error(f"Snapshot store error: {e.message}", exc_info=True)
        sys.exit(2)

    except SpotifyError as e:
        click.echo(f"Spotify error: {e.message}", err=True)
        if e.is_auth_error:
            click.echo("Check your client_id, client_secret and redirect_uri in config.yaml", err=True)
        logger.error(f"Spotify error: {e.message}", exc_info=True)
        sys.exit(3)

    except PlaylistFinderError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    finally:
        if session is not None:
            session.close()
        shutdown_logging()


def main() -> None:
    """Entry point for the `playlist-finder` console script."""
    cli()


if __name__ == "__main__":
    main()
