"""``modelrepo check``: verify every committed model's stored package."""

from __future__ import annotations

import typer
from rich.table import Table

from modelrepo.cli._common import console, open_repository


def check_cmd(
    ctx: typer.Context,
    download: bool = typer.Option(
        False,
        "--download",
        help="Fetch each package and verify it against its manifest.",
    ),
) -> None:
    """Check that every model location holds a valid package."""
    repo = open_repository(ctx)
    issues = repo.check_locations(download=download)
    if not issues:
        console.print("[bold green]All model locations are valid.[/bold green]")
        return

    table = Table(title="Location Issues")
    table.add_column("Model", style="cyan")
    table.add_column("Location")
    table.add_column("Problem", style="red")
    for issue in issues:
        table.add_row(str(issue.identity), issue.location or "", issue.reason)
    console.print(table)
    raise typer.Exit(code=1)
