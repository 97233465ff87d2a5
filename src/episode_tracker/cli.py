"""Command-line interface for episode-tracker.

Commands:
  track / untrack          # Start or stop tracking a TMDB show
  episode / season         # Toggle watched state
  complete / watching / drop
  refresh                  # Re-fetch season episode counts
  list / show / stats      # Read-only views
  watchlist add|remove|list
  check-config
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from .adapters import TMDBAdapter
from .config_provider import ConfigProvider, get_default_config_provider
from .errors import TrackerError
from .progress import ShowProgress, WatchStatus
from .queries import ProgressQuery, StatsQuery
from .repository import ProgressStore, WatchlistStore
from .tracker import ProgressTracker
from .workflows import TrackingWorkflow

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class AppContext:
    """Wires config, stores and the tracker together for one CLI run."""

    def __init__(
        self,
        config: ConfigProvider,
        tmdb_client=None,
        user_id: Optional[str] = None,
        strict: bool = False,
    ):
        self.config = config
        self.user_id = user_id or config.get_user_id()
        self.strict = strict
        self._tmdb_client = tmdb_client
        self._store: Optional[ProgressStore] = None
        self._watchlist: Optional[WatchlistStore] = None
        self._workflow: Optional[TrackingWorkflow] = None

    @property
    def store(self) -> ProgressStore:
        if self._store is None:
            self._store = ProgressStore(self.config.get_database_path())
        return self._store

    @property
    def watchlist(self) -> WatchlistStore:
        if self._watchlist is None:
            self._watchlist = WatchlistStore(self.config.get_database_path())
        return self._watchlist

    def provider(self) -> Optional[TMDBAdapter]:
        if self._tmdb_client is None and self.config.get_tmdb_api_key():
            self._tmdb_client = self.config.get_tmdb_client()
        if self._tmdb_client is None:
            logger.debug("No TMDB key configured, running without a metadata provider")
            return None
        return TMDBAdapter(self._tmdb_client)

    @property
    def workflow(self) -> TrackingWorkflow:
        if self._workflow is None:
            tracker = ProgressTracker(
                provider=self.provider(),
                store=self.store,
                user_id=self.user_id,
                default_episode_count=self.config.get_default_episode_count(),
            )
            self._workflow = TrackingWorkflow(tracker, self.store, watchlist=self.watchlist, strict=self.strict)
        return self._workflow


def _fail(message: str) -> None:
    click.echo(f"✗ {message}", err=True)
    sys.exit(1)


def _bookmark(progress: ShowProgress) -> str:
    return f"S{progress.current_season}E{progress.current_episode}"


def _print_progress(progress: ShowProgress) -> None:
    click.echo(
        f"  {progress.show_summary.title}: {progress.status.value}, at {_bookmark(progress)} "
        f"({progress.watched_episodes} episodes watched)"
    )
    if progress.degraded_seasons:
        seasons = ", ".join(str(n) for n in progress.degraded_seasons)
        click.echo(f"  ⚠️  Estimated episode counts for season(s) {seasons}; run 'refresh' to fix")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Path to settings.toml")
@click.option("--user", "user_id", help="User whose progress to read and write")
@click.option("--strict", is_flag=True, help="Fail instead of overwriting concurrent changes")
@click.pass_context
def main(ctx, verbose: bool, config_path: Optional[Path], user_id: Optional[str], strict: bool):
    """
    Track watch progress through TV shows, episode by episode.

    Configure the TMDB key in ~/.config/episode-tracker/settings.toml or .env
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    ctx.ensure_object(dict)
    try:
        config = ctx.obj.get("config") or get_default_config_provider(config_path)
    except (OSError, ValueError) as e:
        _fail(f"Configuration error: {e}")
    ctx.obj["app"] = AppContext(
        config,
        tmdb_client=ctx.obj.get("tmdb_client"),
        user_id=user_id,
        strict=strict,
    )


def _run(ctx, action):
    """Run an action against the app context, turning domain errors into exit 1."""
    app: AppContext = ctx.obj["app"]
    try:
        return action(app)
    except TrackerError as e:
        _fail(str(e))
    except ValueError as e:
        _fail(f"Configuration error: {e}")


# ============================================================
# Tracking commands
# ============================================================

@main.command()
@click.argument("show_id", type=int)
@click.pass_context
def track(ctx, show_id: int):
    """Start tracking a show (fetches its seasons from TMDB)."""
    result = _run(ctx, lambda app: app.workflow.start_tracking(show_id))
    progress = result.progress
    click.echo(f"✓ Tracking {progress.show_summary.title} ({len(progress.seasons)} seasons)")
    if result.removed_from_watchlist:
        click.echo("  Removed from watchlist")
    _print_progress(progress)


@main.command()
@click.argument("show_id", type=int)
@click.pass_context
def untrack(ctx, show_id: int):
    """Stop tracking a show and forget its progress."""
    removed = _run(ctx, lambda app: app.workflow.stop_tracking(show_id))
    if removed:
        click.echo(f"✓ Stopped tracking show {show_id}")
    else:
        click.echo(f"Show {show_id} was not tracked")


@main.command()
@click.argument("show_id", type=int)
@click.argument("season", type=int)
@click.argument("episode", type=int)
@click.pass_context
def episode(ctx, show_id: int, season: int, episode: int):
    """Toggle one episode between watched and unwatched."""
    progress = _run(ctx, lambda app: app.workflow.toggle_episode(show_id, season, episode))
    state = "watched" if episode in progress.seasons[season].episodes_watched else "unwatched"
    click.echo(f"✓ S{season}E{episode} {state}")
    _print_progress(progress)


@main.command()
@click.argument("show_id", type=int)
@click.argument("season", type=int)
@click.pass_context
def season(ctx, show_id: int, season: int):
    """Mark a whole season watched, or clear it if already complete."""
    progress = _run(ctx, lambda app: app.workflow.toggle_season(show_id, season))
    state = "watched" if progress.seasons[season].is_complete else "cleared"
    click.echo(f"✓ Season {season} {state}")
    _print_progress(progress)


@main.command()
@click.argument("show_id", type=int)
@click.pass_context
def complete(ctx, show_id: int):
    """Mark every episode watched and the show completed."""
    progress = _run(ctx, lambda app: app.workflow.mark_completed(show_id))
    click.echo(f"✓ {progress.show_summary.title} completed")
    _print_progress(progress)


@main.command()
@click.argument("show_id", type=int)
@click.pass_context
def watching(ctx, show_id: int):
    """Move a show back to watching."""
    progress = _run(ctx, lambda app: app.workflow.mark_watching(show_id))
    click.echo(f"✓ {progress.show_summary.title} is back to watching")
    _print_progress(progress)


@main.command()
@click.argument("show_id", type=int)
@click.pass_context
def drop(ctx, show_id: int):
    """Drop a show, keeping its watch history."""
    progress = _run(ctx, lambda app: app.workflow.mark_dropped(show_id))
    click.echo(f"✓ {progress.show_summary.title} dropped")


@main.command()
@click.argument("show_id", type=int)
@click.pass_context
def refresh(ctx, show_id: int):
    """Re-fetch episode counts for every season of a show."""
    result = _run(ctx, lambda app: app.workflow.refresh(show_id))
    click.echo(f"🔄 Refreshed {len(result.refreshed_seasons)} season(s)")
    if result.reconciled_seasons:
        click.echo(f"  Confirmed estimated seasons: {', '.join(map(str, result.reconciled_seasons))}")
    if result.clamped_seasons:
        click.echo(
            f"  ⚠️  Kept watched episodes beyond TMDB's count in: "
            f"{', '.join(map(str, result.clamped_seasons))}"
        )
    if result.failed_seasons:
        click.echo(f"\n❌ FAILED ({len(result.failed_seasons)}):")
        for number, error in result.failed_seasons.items():
            click.echo(f"  - Season {number}: {error}")
    _print_progress(result.progress)


# ============================================================
# Read-only views
# ============================================================

@main.command("list")
@click.option(
    "--status",
    type=click.Choice(["active", "watching", "completed", "dropped", "all"]),
    default="active",
    help="Which shows to list",
)
@click.pass_context
def list_shows(ctx, status: str):
    """List tracked shows, most recently watched first."""
    def load(app: AppContext):
        query = ProgressQuery(app.store, app.user_id)
        if status == "active":
            return query.tracked()
        if status == "all":
            return query.tracked(include_dropped=True)
        return query.by_status(WatchStatus(status))

    rows = _run(ctx, load)
    click.echo(f"\n📺 Tracked shows ({len(rows)})\n")
    if not rows:
        click.echo("  No shows found")
        return

    click.echo(f"  {'ID':<8} {'Title':<36} {'Status':<10} {'At':<8} {'Progress'}")
    click.echo(f"  {'-'*8} {'-'*36} {'-'*10} {'-'*8} {'-'*12}")
    for row in rows:
        title = row.title[:34] + ".." if len(row.title) > 36 else row.title
        progress = f"{row.overall.watched}/{row.overall.total} ({row.overall.percentage}%)"
        flag = " ⚠️" if row.degraded_seasons else ""
        click.echo(f"  {row.show_id:<8} {title:<36} {row.status.value:<10} {row.bookmark:<8} {progress}{flag}")


@main.command()
@click.argument("show_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show(ctx, show_id: int, as_json: bool):
    """Show per-season progress for one show."""
    detail = _run(ctx, lambda app: ProgressQuery(app.store, app.user_id).show_detail(show_id))
    if detail is None:
        _fail(f"Show {show_id} is not being tracked")

    if as_json:
        output = dict(detail)
        output["overall"] = {
            "watched": detail["overall"].watched,
            "total": detail["overall"].total,
            "percentage": detail["overall"].percentage,
        }
        click.echo(json.dumps(output, indent=2, default=str))
        return

    overall = detail["overall"]
    click.echo(f"\n📺 {detail['title']} ({detail['show_id']})")
    click.echo(f"   Status: {detail['status']}, at {detail['bookmark']}")
    click.echo(f"   Progress: {overall.watched}/{overall.total} episodes ({overall.percentage}%)")
    if detail["last_watched"]:
        click.echo(f"   Last watched: {detail['last_watched']:%Y-%m-%d %H:%M}")

    click.echo("\n   Seasons:")
    for s in detail["seasons"]:
        mark = "✓" if s["complete"] else " "
        estimate = " (estimated)" if s["degraded"] else ""
        click.echo(f"     {mark} Season {s['season']:2}: {len(s['watched'])}/{s['total_episodes']}{estimate}")

    if detail["problems"]:
        click.echo(f"\n❌ PROBLEMS ({len(detail['problems'])}):")
        for problem in detail["problems"]:
            click.echo(f"  - {problem}")


@main.command()
@click.pass_context
def stats(ctx):
    """Totals across every tracked show."""
    result = _run(ctx, lambda app: StatsQuery(app.store, app.user_id, watchlist=app.watchlist).get_stats())
    click.echo("\n📊 Statistics:")
    click.echo(f"   Tracked:   {result.tracked}")
    click.echo(f"   Watching:  {result.watching}")
    click.echo(f"   Completed: {result.completed}")
    click.echo(f"   Dropped:   {result.dropped}")
    click.echo(f"   Episodes:  {result.episodes_watched}")
    click.echo(f"   Watchlist: {result.watchlist}")


@main.command("check-config")
@click.pass_context
def check_config(ctx):
    """Validate settings.toml and environment."""
    app: AppContext = ctx.obj["app"]
    valid, errors = app.config.validate()
    click.echo(f"User: {app.user_id}")
    if valid:
        click.echo("✓ Configuration OK")
        return
    for error in errors:
        click.echo(f"✗ {error}", err=True)
    sys.exit(1)


# ============================================================
# Watchlist
# ============================================================

@main.group()
def watchlist():
    """Manage shows saved for later."""
    pass


@watchlist.command("add")
@click.argument("show_id", type=int)
@click.option("--title", help="Display title (fetched from TMDB when omitted)")
@click.pass_context
def watchlist_add(ctx, show_id: int, title: Optional[str]):
    """Save a show for later."""
    def add(app: AppContext):
        poster_path = None
        name = title
        if name is None:
            provider = app.provider()
            if provider is not None:
                summary = provider.get_show_summary(show_id)
                name, poster_path = summary.title, summary.poster_path
        if app.store.get_record(app.user_id, show_id) is not None:
            click.echo(f"  Note: show {show_id} is already being tracked")
        return app.watchlist.add(app.user_id, show_id, title=name, poster_path=poster_path)

    item = _run(ctx, add)
    click.echo(f"✓ Added {item.title or show_id} to watchlist")


@watchlist.command("remove")
@click.argument("show_id", type=int)
@click.pass_context
def watchlist_remove(ctx, show_id: int):
    """Remove a show from the watchlist."""
    removed = _run(ctx, lambda app: app.watchlist.remove(app.user_id, show_id))
    if removed:
        click.echo(f"✓ Removed show {show_id} from watchlist")
    else:
        click.echo(f"Show {show_id} was not on the watchlist")


@watchlist.command("list")
@click.pass_context
def watchlist_list(ctx):
    """List the watchlist, leaving out shows already tracked."""
    def load(app: AppContext):
        tracked = app.store.tracked_show_ids(app.user_id)
        return app.watchlist.list(app.user_id, exclude=tracked)

    items = _run(ctx, load)
    click.echo(f"\n📋 Watchlist ({len(items)})\n")
    if not items:
        click.echo("  Nothing saved")
        return
    for item in items:
        click.echo(f"  {item.show_id:<8} {item.title or '(untitled)'}")


if __name__ == "__main__":
    main()
