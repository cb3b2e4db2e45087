# src/mpvstate/cli.py
"""
mpv-state Command Line Interface (CLI).

This module implements the terminal interface using `typer` and `rich`.

Commands
--------
- **play**: run mpv under state persistence. The previous session's
  playlist, position, tracks and audio delay are restored, and the state
  file is rewritten whenever playback stops.
- **show**: render a state file as a table without starting mpv.

Usage
-----
    # Resume (or start) a session
    $ mpvstate play --state-file ~/.local/state/jazz.json ~/media/jazz/*.mkv

    # With MPVSTATE_STATE_FILE set and a playlist already saved
    $ mpvstate play

    # Inspect what would be restored
    $ mpvstate show ~/.local/state/jazz.json
"""

from __future__ import annotations

import time
import traceback
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from mpvstate.core.contracts.snapshot import Snapshot
from mpvstate.core.settings import load_settings
from mpvstate.core.store import SnapshotStore
from mpvstate.host.ipc import MpvIpcError
from mpvstate.runner import NothingToPlayError, SessionOutcome, run_session

# Export .env entries to the process environment so the mpv child sees them too;
# Settings reads the .env files itself.
load_dotenv()

app = typer.Typer(
    help="mpv-state: store and restore mpv playback state in a JSON file.",
    rich_markup_mode="markdown",
)
console = Console()


# --------------------------------------------------------------------------- #
# Helpers: Rendering
# --------------------------------------------------------------------------- #


def _format_seconds(value: float | None) -> str:
    if value is None:
        return "-"
    minutes, seconds = divmod(float(value), 60.0)
    hours, minutes = divmod(int(minutes), 60)
    return f"{hours:d}:{minutes:02d}:{seconds:06.3f}"


def _render_snapshot(snapshot: Snapshot, *, title: str) -> None:
    """Render the snapshot's fields and playlist as rich tables."""
    fields = Table(title=title, show_header=False, box=None, pad_edge=False)
    fields.add_column("key", style="bold cyan")
    fields.add_column("value")

    pos = snapshot.playlist_pos
    fields.add_row("playlist-pos", "-" if pos is None else str(pos))
    fields.add_row("time-pos", _format_seconds(snapshot.time_pos))
    for name in ("vid", "aid", "sid"):
        value = getattr(snapshot, name)
        fields.add_row(name, "-" if value is None else str(value))
    fields.add_row(
        "audio-delay", "-" if snapshot.audio_delay is None else f"{snapshot.audio_delay:+.3f}s"
    )
    fields.add_row("reason", snapshot.reason or "-")

    stats = snapshot.statistics
    fields.add_row("start-time", _format_timestamp(stats.start_time))
    fields.add_row("stop-time", _format_timestamp(stats.stop_time))
    fields.add_row("start-position", _format_seconds(stats.start_position))
    console.print(fields)

    if snapshot.playlist is None:
        console.print("[dim]No saved playlist; command-line files are used.[/dim]")
        return

    playlist = Table(title="Playlist", show_lines=False)
    playlist.add_column("#", justify="right", style="dim")
    playlist.add_column("Entry")
    current = snapshot.playlist_pos if snapshot.playlist_pos is not None else 0
    for index, entry in enumerate(snapshot.playlist):
        marker = "[bold green]▶[/bold green] " if index == current else "  "
        playlist.add_row(str(index), f"{marker}{escape(entry)}")
    console.print(playlist)


def _format_timestamp(value: float | None) -> str:
    if value is None:
        return "-"
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(value))


def _render_outcome(outcome: SessionOutcome, state_file: Path) -> None:
    if not outcome.persisted:
        console.print(
            Panel(
                f"{state_file} could not be read, so it was left untouched.",
                title="State not saved",
                border_style="red",
            )
        )
    else:
        console.print(
            Panel(
                f"Saved {outcome.saved} time(s) to: [link=file://{state_file}]{state_file}[/link]",
                title="State",
                border_style="green",
            )
        )
    _render_snapshot(outcome.snapshot, title="Final session state")


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def play(
    files: Annotated[
        list[str] | None,
        typer.Argument(
            help="Files or URLs to play when the state file has no saved playlist.",
        ),
    ] = None,
    state_file: Annotated[
        Path | None,
        typer.Option(
            "--state-file",
            "-s",
            help="JSON state file (default: MPVSTATE_STATE_FILE).",
        ),
    ] = None,
    trace_dir: Annotated[
        Path | None,
        typer.Option(
            "--trace-dir",
            help="Write session traces to this directory (default: MPVSTATE_TRACE_DIR).",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show full error tracebacks for debugging.",
        ),
    ] = False,
) -> None:
    """
    Play under state persistence (restore, then record).

    Properties in the state file take precedence over the command line: when
    it holds a playlist, the FILES arguments are ignored.
    """
    cfg = load_settings()
    resolved_state = state_file if state_file is not None else cfg.state_file
    if resolved_state is None:
        raise typer.BadParameter(
            "no state file given; pass --state-file or set MPVSTATE_STATE_FILE",
            param_hint="--state-file",
        )
    resolved_trace = trace_dir if trace_dir is not None else cfg.trace_dir

    console.print(
        Panel.fit(
            f"[bold cyan]mpv-state[/bold cyan]\nState file: [u]{resolved_state}[/u]",
            border_style="cyan",
        )
    )

    try:
        outcome = run_session(
            files or [],
            state_file=resolved_state,
            trace_dir=resolved_trace,
            config=cfg,
        )
    except NothingToPlayError as e:
        console.print(f"[bold yellow]Nothing to play:[/bold yellow] {e}")
        raise typer.Exit(code=1) from e
    except (MpvIpcError, OSError) as e:
        console.print(f"\n[bold red]❌ Player Error:[/bold red] {e}")
        if verbose:
            traceback.print_exc()
        raise typer.Exit(code=1) from e

    _render_outcome(outcome, resolved_state)


@app.command()  # type: ignore[misc]
def show(
    state_file: Annotated[
        Path,
        typer.Argument(
            dir_okay=False,
            help="JSON state file to inspect.",
        ),
    ],
) -> None:
    """
    Show what the next session would restore from STATE_FILE.
    """
    loaded = SnapshotStore.for_path(state_file).load()
    if loaded.is_err():
        console.print(f"[bold red]❌ Unreadable state file:[/bold red] {loaded.unwrap_err()}")
        raise typer.Exit(code=1)

    snapshot = loaded.unwrap()
    if snapshot is None:
        console.print(f"[bold yellow]No snapshot at {state_file}[/bold yellow]")
        raise typer.Exit(code=1)

    _render_snapshot(snapshot, title=str(state_file))


if __name__ == "__main__":
    app()
