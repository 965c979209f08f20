"""``modelrepo list`` and ``modelrepo show``: read committed models."""

from __future__ import annotations

import json

import typer
from rich.table import Table

from modelrepo.cli._common import console, fail, open_repository, parse_identity
from modelrepo.core.errors import ModelRepoError
from modelrepo.models.record import DEFAULT_FIELDS, ArtifactRecord


def _parse_fields(fields: str | None) -> set[str] | None:
    if not fields:
        return None
    return {f.strip() for f in fields.split(",") if f.strip()}


def _render_records(records: list[ArtifactRecord]) -> Table:
    table = Table(title="Model Repository")
    table.add_column("Model", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Location")
    table.add_column("Ready", justify="center")
    table.add_column("Message")
    ordered = sorted(
        records,
        key=lambda r: (r.identity.name, r.identity.version.as_tuple()),
    )
    for record in ordered:
        ready = {True: "[green]Yes[/green]", False: "[red]No[/red]"}.get(
            record.production_ready, "[dim]-[/dim]"
        )
        table.add_row(
            record.identity.name,
            str(record.identity.version),
            record.location or "",
            ready,
            record.message or "",
        )
    return table


def list_cmd(
    ctx: typer.Context,
    fields: str = typer.Option(
        None,
        "--fields",
        "-f",
        help=f"Comma-separated fields to show ({', '.join(sorted(DEFAULT_FIELDS))}).",
    ),
    max_versions: int = typer.Option(
        1, "--max-versions", help="Maximum number of message versions per model."
    ),
    production_ready_only: bool = typer.Option(
        False,
        "--production-ready-only",
        help="Only list models whose latest production_ready flag is set.",
    ),
) -> None:
    """List committed models."""
    repo = open_repository(ctx)
    try:
        records = repo.list(
            fields=_parse_fields(fields),
            max_versions=max_versions,
            production_ready_only=production_ready_only,
        )
    except ModelRepoError as exc:
        fail(exc)

    if not records:
        console.print("[dim]No models deployed.[/dim]")
        return
    console.print(_render_records(records))


def show_cmd(
    ctx: typer.Context,
    artifact: str = typer.Argument(..., help="Versioned artifact identity."),
    max_versions: int = typer.Option(
        1, "--max-versions", help="Maximum number of messages to show."
    ),
) -> None:
    """Show one committed model, including its container."""
    identity = parse_identity(artifact)
    repo = open_repository(ctx)
    try:
        record = repo.get(identity, max_versions=max_versions)
    except ModelRepoError as exc:
        fail(exc)

    console.print(f"[bold cyan]{record.identity}[/bold cyan]")
    console.print(f"[bold]Location:[/bold]         {record.location}")
    console.print(f"[bold]Production ready:[/bold] {record.production_ready}")
    for cell in record.messages:
        console.print(f"[bold]Message:[/bold] [{cell.written_at.isoformat()}] {cell.value}")
    console.print_json(json.dumps(record.container))
