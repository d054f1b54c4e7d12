"""
Command-line interface for Tourney Calendar Sync.
"""

import logging
import signal
import threading
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tourney_calendar_sync.config import load_config
from tourney_calendar_sync.models import DEFAULT_CONFIG
from tourney_calendar_sync.models import CalendarSyncError
from tourney_calendar_sync.models import SyncConfig
from tourney_calendar_sync.remote import ADAPTERS
from tourney_calendar_sync.store import SyncStateStore
from tourney_calendar_sync.sync import CalendarSynchronizer
from tourney_calendar_sync.sync import SourceRun

# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Keep remote calendars in step with standardized tournament events.",
)

console = Console()


# ---------------------------------------------------------------------------
# Global state shared across subcommands
# ---------------------------------------------------------------------------


@dataclass
class _State:
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG)
    state_file: Path | None = None
    verbose: bool = False


state = _State()


@app.callback()
def _global(
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help=f"Config file path (default: {DEFAULT_CONFIG})"),
    ] = DEFAULT_CONFIG,
    state_file: Annotated[
        Path | None,
        typer.Option("--state-file", help="Sync state JSON path (overrides config)"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose debug output"),
    ] = False,
) -> None:
    state.config_path = config
    state.state_file = state_file
    state.verbose = verbose
    _setup_logging(verbose)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False, console=console)],
    )


def _build_config(
    adapter: str | None = None,
    dry_run: bool = False,
    no_checkpoint: bool = False,
    yes: bool = False,
) -> SyncConfig:
    try:
        cfg = load_config(state.config_path)
    except CalendarSyncError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None

    if state.state_file is not None:
        cfg.state_file = state.state_file
    if adapter:
        cfg.adapter = adapter
    cfg.dry_run = dry_run
    cfg.checkpoint = cfg.checkpoint and not no_checkpoint
    cfg.verbose = state.verbose
    cfg.yes = yes
    return cfg


def _check_sources(cfg: SyncConfig, sources: list[str] | None) -> None:
    if not cfg.sources:
        console.print(
            f"[bold red]Error:[/] No [cyan]\\[source:<id>][/] sections in {state.config_path}"
        )
        raise typer.Exit(1)
    unknown = [s for s in sources or [] if s not in cfg.sources]
    if unknown:
        console.print(f"[bold red]Error:[/] Unknown source(s): {', '.join(unknown)}")
        raise typer.Exit(1)


def _print_run(run: SourceRun, dry_run: bool = False) -> None:
    if run.error is not None:
        console.print(
            Panel(
                Text(run.error, style="bold red"),
                title=f"[bold]{run.source_id}[/bold] — failed",
                expand=False,
            )
        )
        return

    results = Table.grid(padding=(0, 2))
    results.add_column(style="bold")
    results.add_column(justify="right")

    if run.repair is not None:
        results.add_row("Repaired", str(run.repair.repaired))
        results.add_row("Unverified", str(run.repair.unverified))
        results.add_row("Tracked", str(run.repair.total))

    if run.stats is not None:
        stats = run.stats
        results.add_row("Created", str(stats.created))
        results.add_row("Updated", str(stats.updated))
        results.add_row("Unchanged", str(stats.unchanged))
        results.add_row("Deleted", str(stats.deleted))
        if stats.invalid:
            results.add_row("Invalid", Text(str(stats.invalid), style="yellow"))
        failed_val = Text(str(stats.failed))
        if stats.failed == 0:
            failed_val.append(" ✓", style="green")
        else:
            failed_val.stylize("bold red")
        results.add_row("Failed", failed_val)

    title = f"[bold]{run.source_id}[/bold]"
    if dry_run:
        title += " [magenta](dry run)[/magenta]"
    if run.stats is not None and run.stats.cancelled:
        title += " [yellow](cancelled)[/yellow]"
    console.print(Panel(results, title=title, expand=False))

    if run.stats is not None:
        for failure in run.stats.failures:
            console.print(
                f"  [red]✗[/] {failure.action} [cyan]{failure.event_id}[/]: {failure.error}"
            )


def _finish(runs: list[SourceRun]) -> None:
    if any(run.stats is not None and run.stats.cancelled for run in runs):
        console.print("[yellow]Interrupted by user[/]")
        raise typer.Exit(130)
    if not all(run.ok for run in runs):
        raise typer.Exit(1)


_SOURCES = Annotated[
    list[str] | None,
    typer.Argument(help="Source ids to process (default: every configured source)"),
]
_DRY_RUN = Annotated[bool, typer.Option("--dry-run", "-n", help="Preview changes without applying")]
_YES = Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")]
_ADAPTER = Annotated[
    str | None,
    typer.Option("--adapter", "-a", help="Remote calendar adapter (overrides config)"),
]


# ---------------------------------------------------------------------------
# Subcommand: sync
# ---------------------------------------------------------------------------


@app.command()
def sync(
    sources: _SOURCES = None,
    adapter: _ADAPTER = None,
    dry_run: _DRY_RUN = False,
    no_checkpoint: Annotated[
        bool,
        typer.Option(
            "--no-checkpoint",
            help="Persist state once at the end of the pass instead of after every change",
        ),
    ] = False,
    repair: Annotated[
        bool, typer.Option("--repair", help="Verify sync state against the calendar first")
    ] = False,
) -> None:
    """Reconcile each source's calendar with its current events."""
    cfg = _build_config(adapter=adapter, dry_run=dry_run, no_checkpoint=no_checkpoint)
    _check_sources(cfg, sources)

    # Ctrl-C stops the pass between events instead of in the middle of one.
    cancel = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        runs = CalendarSynchronizer(cfg).run(sources, repair_first=repair, cancel=cancel)
    except Exception as e:
        console.print_exception()
        console.print(f"[bold red]Unexpected error:[/] {e}")
        raise typer.Exit(1) from e
    finally:
        signal.signal(signal.SIGINT, previous)

    for run in runs:
        _print_run(run, dry_run=cfg.dry_run)
    _finish(runs)


# ---------------------------------------------------------------------------
# Subcommand: repair
# ---------------------------------------------------------------------------


@app.command()
def repair(sources: _SOURCES = None, adapter: _ADAPTER = None) -> None:
    """Drop state records whose calendar entry no longer exists.

    Records are only removed when the calendar confirms the entry is gone;
    lookups that fail for any other reason leave the record alone.
    """
    cfg = _build_config(adapter=adapter)
    _check_sources(cfg, sources)
    runs = CalendarSynchronizer(cfg).repair(sources)
    for run in runs:
        _print_run(run)
    _finish(runs)


# ---------------------------------------------------------------------------
# Subcommand: clear
# ---------------------------------------------------------------------------


@app.command()
def clear(
    sources: _SOURCES = None,
    adapter: _ADAPTER = None,
    dry_run: _DRY_RUN = False,
    yes: _YES = False,
) -> None:
    """Remove every synced entry from the calendars without re-syncing."""
    cfg = _build_config(adapter=adapter, dry_run=dry_run, yes=yes)
    _check_sources(cfg, sources)
    targets = sources or sorted(cfg.sources)

    if not cfg.yes and not cfg.dry_run:
        console.print(
            Panel(
                Text(f"CLEAR synced events for: {', '.join(targets)}", style="bold red"),
                title="[bold]Tourney Calendar Sync[/bold]",
            )
        )
        typer.confirm("Proceed?", abort=True)

    runs = CalendarSynchronizer(cfg).clear(targets)
    for run in runs:
        _print_run(run, dry_run=cfg.dry_run)
    _finish(runs)


# ---------------------------------------------------------------------------
# Subcommand: status
# ---------------------------------------------------------------------------


@app.command()
def status() -> None:
    """Show configuration and sync state summary."""
    cfg = _build_config()
    config_exists = state.config_path.exists()
    state_exists = cfg.state_file.exists()

    cfg_info = Text()
    cfg_info.append("  Config:   ", style="bold")
    cfg_info.append(str(state.config_path) + " ")
    cfg_info.append(
        "✓" if config_exists else "(not found)", style="green" if config_exists else "red"
    )
    cfg_info.append("\n  State:    ", style="bold")
    cfg_info.append(str(cfg.state_file) + " ")
    cfg_info.append(
        "✓" if state_exists else "(not found)", style="green" if state_exists else "yellow"
    )
    cfg_info.append("\n  Adapter:  ", style="bold")
    cfg_info.append(cfg.adapter)
    console.print(Panel(cfg_info, title="[bold]Tourney Calendar Sync — Status[/bold]"))

    if not state_exists:
        console.print(
            "[yellow]No sync state yet — run[/] [cyan]tourney-calendar-sync sync[/] "
            "[yellow]to create it.[/]"
        )
        return

    try:
        sync_state = SyncStateStore(cfg.state_file).load()
    except CalendarSyncError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Source")
    table.add_column("Calendar", overflow="fold")
    table.add_column("Tracked", justify="right")
    table.add_column("Events", justify="right")
    table.add_column("Last update")
    for source_id, source_state in sorted(sync_state.sources.items()):
        label = source_id
        if source_id in cfg.sources:
            label += " [green](configured)[/green]"
        table.add_row(
            label,
            source_state.remote_collection_id or "—",
            str(len(source_state.records)),
            str(source_state.stats.total_events),
            source_state.stats.last_update or "—",
        )
    console.print(table)
    console.print(f"[dim]Schema {sync_state.version}, last sync {sync_state.last_sync or '—'}[/dim]")


# ---------------------------------------------------------------------------
# Subcommand: adapters
# ---------------------------------------------------------------------------


@app.command()
def adapters() -> None:
    """List the remote calendar adapters that can be configured."""
    for name in sorted(ADAPTERS):
        console.print(f"  [cyan]{name}[/]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    app()
