"""CLI commands for the Rayhar cache.

Provides command-line interface using Typer, operating on the configured
durable backend (Redis in deployed environments):
- rayhar stats: Show entry counts and sizes per tier
- rayhar sweep: Remove expired and corrupt entries
- rayhar invalidate: Remove entries whose key text contains a pattern
- rayhar clear: Remove every managed entry

Usage:
    rayhar --help
    rayhar stats --format json
    rayhar sweep
    rayhar invalidate customers
    rayhar clear --yes
"""

import typer

from rayhar.cli.cache_cmd import clear, invalidate, stats, sweep

# Main CLI application
app = typer.Typer(
    name="rayhar",
    help="Rayhar dashboard cache maintenance",
    no_args_is_help=True,
)

app.command("stats")(stats)
app.command("sweep")(sweep)
app.command("invalidate")(invalidate)
app.command("clear")(clear)


@app.callback()
def callback() -> None:
    """Rayhar dashboard cache maintenance."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
