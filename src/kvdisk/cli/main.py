"""
CLI for inspecting and maintaining storage directories.

Commands:
    kvdisk stats ROOT - Show entry counts and sizes
    kvdisk sweep ROOT - Delete expired entries and evict over budget
    kvdisk clear ROOT - Delete a storage directory
    kvdisk key KEY - Print the file name a key is stored under
    kvdisk config - Show current configuration
    kvdisk version - Print version
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from kvdisk import __version__
from kvdisk.codec import BytesCodec
from kvdisk.config import Settings, StorageConfig, clear_settings_cache, get_settings
from kvdisk.exceptions import EnumerationError
from kvdisk.hashing import file_name
from kvdisk.logging import setup_logging
from kvdisk.storage.disk import DiskStorage
from kvdisk.storage.scanner import ExpiryScanner
from kvdisk.types import EvictionOrder, SizeAccounting

app = typer.Typer(
    name="kvdisk",
    help="kvdisk - inspect and maintain disk cache directories",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except ValueError:
        return None


def _require_settings() -> Settings:
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'kvdisk config' to see what's wrong."
        )
        raise typer.Exit(1)
    setup_logging(settings.LOG_LEVEL)
    return settings


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def _format_expiry(expiry_ns: int) -> str:
    return datetime.fromtimestamp(expiry_ns / 1_000_000_000, tz=timezone.utc).isoformat(
        timespec="seconds"
    )


@app.command()
def stats(
    root: Annotated[Path, typer.Argument(help="Storage directory")],
    logical_size: Annotated[
        bool,
        typer.Option("--logical-size", help="Count payload length instead of allocated blocks"),
    ] = False,
    show_files: Annotated[
        bool, typer.Option("--files", "-f", help="List every entry")
    ] = False,
) -> None:
    """Show how many entries a storage holds and how much space they take."""
    _require_settings()
    accounting = SizeAccounting.LOGICAL if logical_size else SizeAccounting.ALLOCATED

    try:
        scan = ExpiryScanner(root, accounting).scan()
    except EnumerationError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    expired_size = sum(f.size for f in scan.expired)

    table = Table(title=str(root), show_header=True)
    table.add_column("", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("Size", justify="right", style="green")
    table.add_row("Live", str(len(scan.live)), _format_size(scan.live_size))
    table.add_row("Expired", str(len(scan.expired)), _format_size(expired_size))
    table.add_row(
        "Total",
        str(len(scan.live) + len(scan.expired)),
        _format_size(scan.live_size + expired_size),
    )
    console.print(table)

    if show_files:
        files = Table(show_header=True)
        files.add_column("File", style="cyan")
        files.add_column("Expires")
        files.add_column("Size", justify="right", style="green")
        files.add_column("State")
        for state, entries in (("live", scan.live), ("expired", scan.expired)):
            for scanned in sorted(entries, key=lambda f: f.expiry_ns):
                files.add_row(
                    scanned.path.name,
                    _format_expiry(scanned.expiry_ns),
                    _format_size(scanned.size),
                    state if state == "live" else f"[yellow]{state}[/yellow]",
                )
        console.print(files)


@app.command()
def sweep(
    root: Annotated[Path, typer.Argument(help="Storage directory")],
    max_size: Annotated[
        Optional[int],
        typer.Option("--max-size", "-m", help="Size budget in bytes (0 = unbounded)"),
    ] = None,
    oldest_first: Annotated[
        bool,
        typer.Option("--oldest-first", help="Evict the oldest expiry markers first"),
    ] = False,
    logical_size: Annotated[
        bool,
        typer.Option("--logical-size", help="Count payload length instead of allocated blocks"),
    ] = False,
) -> None:
    """Delete expired entries, then evict live ones while over budget."""
    settings = _require_settings()
    config = StorageConfig(
        name=root.name or "storage",
        root=root,
        max_size=max_size if max_size is not None else settings.MAX_SIZE,
        eviction_order=EvictionOrder.OLDEST_FIRST if oldest_first else settings.EVICTION_ORDER,
        size_accounting=SizeAccounting.LOGICAL if logical_size else settings.SIZE_ACCOUNTING,
        read_workers=1,
    )

    with DiskStorage(config, BytesCodec()) as storage:
        outcome = storage.clear_expired().result()

    if outcome.error is not None:
        error_console.print(f"[red]Error:[/red] {outcome.error}")
        raise typer.Exit(1)

    console.print(
        f"Removed [bold]{outcome.removed - outcome.evicted}[/bold] expired and "
        f"[bold]{outcome.evicted}[/bold] evicted entries from {root}"
    )


@app.command()
def clear(
    root: Annotated[Path, typer.Argument(help="Storage directory")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Delete a storage directory and every entry in it."""
    _require_settings()
    if not yes:
        typer.confirm(f"Delete {root} and all its entries?", abort=True)

    config = StorageConfig(name=root.name or "storage", root=root, read_workers=1)
    with DiskStorage(config, BytesCodec()) as storage:
        outcome = storage.clear().result()

    if outcome.error is not None:
        error_console.print(f"[red]Error:[/red] {outcome.error}")
        raise typer.Exit(1)
    console.print(f"Cleared {root}")


@app.command()
def key(
    value: Annotated[str, typer.Argument(help="Cache key")],
    root: Annotated[
        Optional[Path], typer.Option("--root", "-r", help="Print the full path under this root")
    ] = None,
) -> None:
    """Print the file name a key is stored under."""
    name = file_name(value)
    console.print(str(root / name) if root is not None else name)


@app.command()
def config() -> None:
    """Show current configuration."""
    console.print()
    console.print("[bold]kvdisk Configuration[/bold]")
    console.print()

    settings = _get_settings_safe()
    if settings is None:
        error_console.print("[red]Configuration is invalid or incomplete.[/red]")
        error_console.print()
        error_console.print("Check MAX_SIZE (>= 0), READ_WORKERS (1-64) and the enum settings")
        error_console.print("PROTECTION_LEVEL, EVICTION_ORDER and SIZE_ACCOUNTING.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for setting, value in settings.redacted_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(setting, display_value)

    console.print(table)
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"kvdisk version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
