"""Command-line interface for the tracker."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer

from .config import MonitorSettings
from .errors import TrackerError
from .paths import get_db_path
from .reporting import format_duration, slot_lines
from .tracker import Tracker, open_tracker

app = typer.Typer(help="Local-first task timer.")

logger = logging.getLogger(__name__)

DB_OPTION_HELP = "Location of the time tracking SQLite database."


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@contextmanager
def _tracker(db_path: Optional[Path]) -> Iterator[Tracker]:
    try:
        with open_tracker(db_path or get_db_path()) as tracker:
            yield tracker
    except TrackerError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def start(
    task_name: str = typer.Argument(..., help="Name of the task to track."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Start tracking a task, stopping whatever was running."""
    with _tracker(db_path) as tracker:
        previous = tracker.timer.active_slot()
        slot = tracker.start_timer(task_name)
    if previous is not None:
        typer.echo(f"Stopped '{previous.task_name}'.")
    typer.echo(f"Started '{slot.task_name}' at {slot.start_time:%H:%M:%S} (slot #{slot.id}).")


@app.command()
def stop(
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Stop the running timer, if any."""
    with _tracker(db_path) as tracker:
        slot = tracker.stop_timer()
    if slot is None:
        typer.echo("No timer running.")
        return
    typer.echo(
        f"Stopped '{slot.task_name}' after {format_duration(slot.duration_seconds)}."
    )


@app.command()
def status(
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Show what is being tracked right now."""
    with _tracker(db_path) as tracker:
        current = tracker.status()
    if not current.is_running:
        typer.echo("Not tracking.")
        return
    typer.echo(
        f"Tracking '{current.task_name}' for {format_duration(current.elapsed_seconds)}."
    )


@app.command()
def slots(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to list. Defaults to today.",
    ),
    all_slots: bool = typer.Option(
        False, "--all", help="List every recorded slot, newest first. Overrides --date."
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """List the time slots of a day, or the whole history with --all."""
    with _tracker(db_path) as tracker:
        listed = tracker.all_time_slots() if all_slots else tracker.time_slots_for(date)
    if not listed:
        scope = "" if all_slots else " for the selected day"
        typer.echo(f"No time slots recorded{scope}.")
        return
    for line in slot_lines(listed, with_date=all_slots):
        typer.echo(line)


@app.command()
def summary(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Print per-task totals for a specific day."""
    from .parsing import parse_date
    from .reporting import SummaryPrinter

    with _tracker(db_path) as tracker:
        SummaryPrinter(tracker).print_daily_summary(parse_date(date))


@app.command()
def edit(
    slot_id: int = typer.Argument(..., help="Id of the time slot to edit."),
    task_name: str = typer.Option(..., "--task", help="New task name."),
    start_time: str = typer.Option(..., "--start", help="Start time (RFC3339)."),
    end_time: Optional[str] = typer.Option(
        None, "--end", help="End time (RFC3339). Omit to leave the slot running."
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Overwrite a time slot's task name and times."""
    with _tracker(db_path) as tracker:
        slot = tracker.update_time_slot(slot_id, task_name, start_time, end_time)
    typer.echo(f"Updated slot #{slot.id} ({format_duration(slot.duration_seconds)}).")


@app.command()
def delete(
    slot_id: int = typer.Argument(..., help="Id of the time slot to delete."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Permanently remove a time slot."""
    with _tracker(db_path) as tracker:
        tracker.delete_time_slot(slot_id)
    typer.echo(f"Deleted slot #{slot_id}.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the dashboard."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the dashboard."
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
    long_session_hours: float = typer.Option(
        2.0,
        "--long-session",
        min=0.1,
        help="Hours of continuous tracking before a desktop alert.",
    ),
    notify_minutes: float = typer.Option(
        5.0,
        "--notify-interval",
        min=0.1,
        help="Minutes between long-session checks.",
    ),
    tray: bool = typer.Option(True, "--tray/--no-tray", help="Show a system tray icon."),
    notifications: bool = typer.Option(
        True, "--notifications/--no-notifications", help="Send long-session alerts."
    ),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Automatically launch the dashboard in your default browser.",
    ),
) -> None:
    """Start the local dashboard with the tray and notification monitors."""
    from .server_runner import run_dashboard

    settings = MonitorSettings.from_intervals(
        notify_minutes=notify_minutes,
        long_session_hours=long_session_hours,
    )
    try:
        run_dashboard(
            host=host,
            port=port,
            db_path=db_path or get_db_path(),
            settings=settings,
            open_browser=open_browser,
            enable_tray=tray,
            enable_notifications=notifications,
        )
    except TrackerError as exc:
        logger.error("Could not start the dashboard: %s", exc)
        raise typer.Exit(code=1) from exc
