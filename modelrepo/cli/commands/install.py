"""``modelrepo init`` / ``upgrade`` / ``drop``: repository table lifecycle."""

from __future__ import annotations

import typer
from rich.panel import Panel

from modelrepo.cli._common import console, fail, get_config
from modelrepo.core.errors import ModelRepoError
from modelrepo.core.repository import ModelRepository


def init_cmd(
    ctx: typer.Context,
    base_uri: str = typer.Argument(
        None,
        help="Base storage URI for uploaded packages (defaults to the configured artifact base).",
    ),
) -> None:
    """Install the model repository table, or upgrade an existing one."""
    config = get_config(ctx)
    store = ModelRepository.store_from_config(config)
    uri = base_uri or config.base_uri
    try:
        ModelRepository.install(store, uri, config.layout)
        repo = ModelRepository.open(store)
    except ModelRepoError as exc:
        fail(exc)

    console.print(
        Panel(
            "\n".join([
                "[bold green]Model repository ready.[/bold green]",
                "",
                f"[bold]Table:[/bold]    {store.table_name}",
                f"[bold]Database:[/bold] {store.db_path}",
                f"[bold]Base URI:[/bold] {repo.base_uri}",
                f"[bold]Layout:[/bold]   {repo.layout.layout_id}",
            ]),
            title="[bold]modelrepo[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )


def upgrade_cmd(ctx: typer.Context) -> None:
    """Upgrade the repository table to the configured layout version."""
    config = get_config(ctx)
    store = ModelRepository.store_from_config(config)
    try:
        ModelRepository.upgrade(store, config.layout)
    except ModelRepoError as exc:
        fail(exc)
    console.print(f"[green]Repository at layout {config.layout.layout_id}.[/green]")


def drop_cmd(
    ctx: typer.Context,
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not ask for confirmation."
    ),
) -> None:
    """Delete the model repository table and its metadata."""
    config = get_config(ctx)
    if not yes:
        typer.confirm(
            f"Delete model repository table '{config.table_name}'?", abort=True
        )
    store = ModelRepository.store_from_config(config)
    try:
        ModelRepository.drop(store)
    except ModelRepoError as exc:
        fail(exc)
    console.print(f"[green]Deleted model repository '{config.table_name}'.[/green]")
