"""
Trace Replay Command Line Interface (CLI).

This module implements the terminal interface using `typer` and `rich`.

Features
--------
- **Inspect**: Summarize a trace (browser, time range, pages, snapshots).
- **Render**: Reconstruct one DOM snapshot to HTML, printed or written to a file.
- **Serve**: Run the HTTP viewer backend with uvicorn.

Usage
-----
    $ tracereplay inspect traces/login.zip
    $ tracereplay render traces/login.zip page@3 before@call@12 -o before.html
    $ tracereplay serve --port 9323
"""

from __future__ import annotations

import traceback
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from tracereplay import __version__
from tracereplay.core.errors import TraceReplayError
from tracereplay.core.settings import load_settings
from tracereplay.core.trace.model import TraceModel, load_trace

load_dotenv()

app = typer.Typer(
    help="Trace Replay: inspect recorded browser traces and replay their DOM snapshots.",
    rich_markup_mode="markdown",
)
console = Console()


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _load(trace: str, verbose: bool = False) -> TraceModel:
    """Load a trace behind a spinner; exit with code 1 on failure."""
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"[cyan]Loading {trace}...", total=None)
            return load_trace(trace, trace_root=load_settings().trace_root)
    except (TraceReplayError, ValueError) as e:
        console.print(f"\n[bold red]❌ Load Error:[/bold red] {e}")
        if verbose:
            traceback.print_exc()
        raise typer.Exit(code=1) from e


def _format_time(value: float | None) -> str:
    return "-" if value is None else f"{value:.1f} ms"


def _summary_table(model: TraceModel) -> Table:
    context = model.context
    table = Table(title="Trace Summary", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Browser", context.browser_name or "-")
    table.add_row("Schema version", str(model.version) if model.version is not None else "current")
    table.add_row("Start", _format_time(context.start_time))
    table.add_row("End", _format_time(context.end_time))
    table.add_row("Pages", str(len(context.pages)))
    table.add_row("Actions", str(sum(len(page.actions) for page in context.pages)))
    table.add_row("Events", str(sum(len(page.events) for page in context.pages)))
    table.add_row("Snapshots", str(model.storage.snapshot_count()))
    table.add_row("Resources", str(len(context.resources)))
    table.add_row("Skipped lines", str(model.skipped_lines))
    return table


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def inspect(
    trace: Annotated[str, typer.Argument(help="Trace archive path, directory or URL.")],
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show full error tracebacks for debugging."),
    ] = False,
) -> None:
    """
    Load a trace and print a summary of what it recorded.
    """
    console.print(
        Panel.fit(
            f"[bold cyan]Trace Replay {__version__}[/bold cyan]\nInspecting: [u]{trace}[/u]",
            border_style="cyan",
        )
    )
    model = _load(trace, verbose)
    console.print(_summary_table(model))

    frames = model.storage.frame_ids()
    if frames:
        console.print("\n[bold dim]Snapshot frames:[/bold dim]")
        for frame_id in frames:
            names = [r.snapshot_name for r in model.storage.snapshots(frame_id)]
            console.print(f" [cyan]{frame_id}[/cyan]: {', '.join(names)}")


@app.command()  # type: ignore[misc]
def render(
    trace: Annotated[str, typer.Argument(help="Trace archive path, directory or URL.")],
    frame: Annotated[str, typer.Argument(help="Frame id or page id.")],
    name: Annotated[str, typer.Argument(help="Snapshot name, e.g. 'before@call@12'.")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the HTML here instead of stdout."),
    ] = None,
) -> None:
    """
    Reconstruct one DOM snapshot and emit its HTML.
    """
    model = _load(trace)
    try:
        rendered = model.storage.snapshot_by_name(frame, name).render()
    except TraceReplayError as e:
        console.print(f"[bold red]❌ Render Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if output is None:
        # Raw print: rich markup must not touch the document.
        typer.echo(rendered.html)
        return
    output.write_text(rendered.html, encoding="utf-8")
    console.print(
        Panel(
            f"Saved to: [link=file://{output}]{output}[/link]",
            title="Snapshot",
            border_style="green",
        )
    )


@app.command()  # type: ignore[misc]
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Bind port.")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Auto-reload on code changes.")] = False,
) -> None:
    """
    Run the trace viewer HTTP backend.
    """
    from tracereplay.api.server import main

    main(host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
