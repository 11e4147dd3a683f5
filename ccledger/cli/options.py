from pathlib import Path

import typer
from rich.console import Console

from ccledger import __version__
from ccledger.theme import AVAILABLE_THEMES


def _version_callback(value: bool | None):
    """Display the CLI version when the eager flag is provided."""
    if value:
        console = Console()
        console.print(f"v{__version__}")
        raise typer.Exit(0)


VERSION_OPTION = typer.Option(
    False,
    "--version",
    "-v",
    is_flag=True,
    is_eager=True,
    callback=_version_callback,
    help="Show ccledger version",
)

PATH_OPTION = typer.Option(
    None,
    "--path",
    "-p",
    help=(
        "Directory containing Claude Code logs. Repeatable. "
        "Defaults to ~/.config/claude/projects and ~/.claude/projects."
    ),
)

TIMEZONE_OPTION = typer.Option(
    None,
    "--timezone",
    "-z",
    help="IANA timezone for day and month buckets (default: system local time).",
)

OFFLINE_OPTION = typer.Option(
    None,
    "--offline/--online",
    help="Use only the embedded price table, never fetch remote pricing.",
    show_default=False,
)

SINCE_OPTION = typer.Option(
    None,
    "--since",
    "-s",
    help="Only count usage on or after this date (YYYY-MM-DD or ISO-8601).",
)

UNTIL_OPTION = typer.Option(
    None,
    "--until",
    "-u",
    help="Only count usage on or before this date (YYYY-MM-DD or ISO-8601).",
)

DETAIL_OPTION = typer.Option(
    False,
    "--detail",
    "-d",
    help="Display per-model breakdown rows",
)

THEME_OPTION = typer.Option(
    "dracura",
    "--theme",
    help=f"Select output colour theme. Available: {', '.join(AVAILABLE_THEMES)}.",
    show_default=True,
    case_sensitive=False,
)

TOP_OPTION = typer.Option(
    None,
    "--top",
    help="Number of most recent sessions to display.",
    min=1,
)

BLOCK_HOURS_OPTION = typer.Option(
    None,
    "--block-hours",
    help="Length of a billing block in hours.",
)

ACTIVE_OPTION = typer.Option(
    False,
    "--active",
    "-a",
    help="Show only the billing block that is currently open.",
)

JSON_OPTION = typer.Option(
    False,
    "--json",
    "-j",
    help="Export report as json",
)
