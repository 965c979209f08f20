"""``modelrepo set-ready`` and ``modelrepo delete``: amend or remove models."""

from __future__ import annotations

import typer

from modelrepo.cli._common import console, fail, open_repository, parse_identity
from modelrepo.core.errors import ModelRepoError


def set_ready_cmd(
    ctx: typer.Context,
    artifact: str = typer.Argument(..., help="Versioned artifact identity."),
    ready: bool = typer.Option(
        True,
        "--ready/--not-ready",
        help="Whether the model is production ready.",
    ),
    message: str = typer.Option(
        None, "--message", "-m", help="Update message recorded with the change."
    ),
) -> None:
    """Set the production-ready flag of a deployed model."""
    identity = parse_identity(artifact)
    repo = open_repository(ctx)
    try:
        repo.set_production_ready(identity, ready, message)
    except ModelRepoError as exc:
        fail(exc)
    state = "[green]production ready[/green]" if ready else "[yellow]not production ready[/yellow]"
    console.print(f"{identity} is now {state}.")


def delete_cmd(
    ctx: typer.Context,
    artifact: str = typer.Argument(..., help="Versioned artifact identity."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Remove a model's record from the repository."""
    identity = parse_identity(artifact)
    if not yes:
        typer.confirm(f"Delete model {identity}?", abort=True)
    repo = open_repository(ctx)
    try:
        repo.delete(identity)
    except ModelRepoError as exc:
        fail(exc)
    console.print(f"[green]Deleted {identity}.[/green]")
