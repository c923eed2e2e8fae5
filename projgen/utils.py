"""Shared utility functions for projgen.

Provides JSON and file I/O helpers, duration formatting and
Rich-based console output used by the CLI and the collaborators.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# JSON / file I/O
# ---------------------------------------------------------------------------


async def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> None:
    """Save data as pretty-printed JSON.

    Parent directories are created automatically and the write runs in a
    worker thread so the event loop is not blocked.
    """
    content = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    await asyncio.to_thread(write_text, Path(path), content)


def write_text(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write text content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


async def write_bytes(path: str | Path, content: bytes) -> Path:
    """Write ``content`` to ``path`` in a worker thread; returns the path."""
    target = Path(path)

    def _write() -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    await asyncio.to_thread(_write)
    return target


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


STATE_COLORS: dict[str, str] = {
    "pending": "dim",
    "running": "bright_cyan",
    "completed": "bright_green",
    "failed": "bright_red",
    "cancelled": "bright_yellow",
}


def print_workflow_header(kind: str, target: str) -> None:
    """Print a full-width rule announcing a workflow."""
    console.print()
    console.print(
        Rule(f"[bold bright_cyan] {kind.upper()} [/bold bright_cyan] {target}", style="bright_cyan")
    )
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def state_markup(state: str) -> str:
    """Wrap a workflow state in its Rich colour markup."""
    color = STATE_COLORS.get(state, "white")
    return f"[{color}]{state}[/{color}]"


def create_progress() -> Progress:
    """Create a Rich progress bar configured for workflow stages.

    Returns:
        A ``Progress`` instance suitable for use as a context manager.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    )
