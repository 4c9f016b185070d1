"""Cache maintenance commands.

Every command builds a ``CacheRuntime`` from settings and works on its durable
store. The commands only make sense against a shared backend, so they refuse
to run when the durable tier is in-process memory.

Usage:
    rayhar stats
    rayhar sweep --format json
    rayhar invalidate dashboard_top
    rayhar clear --yes
"""

from __future__ import annotations

import json
from dataclasses import asdict

import typer
from rich.console import Console
from rich.table import Table

from rayhar.cache.errors import StorageError
from rayhar.cache.keys import CacheKeys
from rayhar.cache.runtime import CacheRuntime
from rayhar.config import settings
from rayhar.observability.logging import configure_logging

console = Console()

FORMAT_OPTION = typer.Option("text", "--format", "-f", help="Output format: text, json")


def _runtime() -> CacheRuntime:
    configure_logging(json_format=settings.log_json, level=settings.log_level)
    return CacheRuntime(config=settings)


def _shared_runtime() -> CacheRuntime:
    runtime = _runtime()
    if runtime.config.durable_backend != "redis":
        console.print(
            "[red]Durable backend is in-process memory:[/red] "
            "set RAYHAR_DURABLE_BACKEND=redis to maintain a shared cache"
        )
        raise typer.Exit(code=1)
    return runtime


def stats(output_format: str = FORMAT_OPTION) -> None:
    """Show entry counts and sizes per cache tier."""
    snapshot = _shared_runtime().stats()

    if output_format == "json":
        typer.echo(json.dumps(asdict(snapshot), indent=2))
        return

    table = Table(title=f"Cache entries ({snapshot.prefix}*)")
    table.add_column("Tier", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Valid", justify="right", style="green")
    table.add_column("Expired", justify="right", style="yellow")
    table.add_column("Size (KB)", justify="right")
    for tier in snapshot.tiers:
        table.add_row(
            tier.tier,
            str(tier.total_entries),
            str(tier.valid_entries),
            str(tier.expired_entries),
            f"{tier.total_size_kb:.2f}",
        )
    console.print(table)


def sweep(output_format: str = FORMAT_OPTION) -> None:
    """Remove expired and corrupt entries from every tier."""
    runtime = _shared_runtime()
    try:
        report = runtime.janitor.sweep_now()
    except StorageError as e:
        console.print(f"[red]Sweep failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    if output_format == "json":
        typer.echo(json.dumps(asdict(report) | {"removed": report.removed}))
        return
    console.print(
        f"[green]Swept {report.scanned} entries:[/green] "
        f"{report.expired} expired, {report.corrupt} corrupt removed"
    )


def invalidate(
    pattern: str = typer.Argument(..., help="Substring of the key text after the prefix"),
) -> None:
    """Remove every entry whose key contains PATTERN."""
    if not pattern:
        console.print("[red]Pattern must not be empty[/red] (use 'rayhar clear')")
        raise typer.Exit(code=2)

    deleted = _shared_runtime().invalidator.invalidate_pattern(pattern)
    console.print(f"[green]Invalidated {deleted} entries[/green] matching '{pattern}'")


def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Remove every managed cache entry."""
    if not yes:
        typer.confirm(f"Remove all {CacheKeys.PREFIX}* entries?", abort=True)

    runtime = _shared_runtime()
    try:
        cleared = runtime.invalidator.clear_all()
    except StorageError as e:
        console.print(f"[red]Clear failed:[/red] {e}")
        raise typer.Exit(code=1) from e
    console.print(f"[green]Cleared {cleared} cache entries[/green]")
