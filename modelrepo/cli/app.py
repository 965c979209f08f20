"""Main Typer application: imports and registers all CLI commands.

Entry point: ``modelrepo`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from modelrepo.cli.commands.check import check_cmd
from modelrepo.cli.commands.deploy import deploy_cmd
from modelrepo.cli.commands.install import drop_cmd, init_cmd, upgrade_cmd
from modelrepo.cli.commands.list_cmd import list_cmd, show_cmd
from modelrepo.cli.commands.update import delete_cmd, set_ready_cmd
from modelrepo.config import RepoConfig

app = typer.Typer(
    name="modelrepo",
    help="modelrepo: a versioned registry of immutable model artifacts.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    db: Path = typer.Option(
        None, "--db", help="Path to the repository SQLite database."
    ),
    table: str = typer.Option(
        None, "--table", help="Name of the model repository table."
    ),
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."
    ),
) -> None:
    """Resolve configuration once and configure logging."""
    overrides = {
        key: value
        for key, value in {"db_path": db, "table_name": table, "log_level": log_level}.items()
        if value is not None
    }
    config = RepoConfig(**overrides)
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    ctx.obj = config


# Register subcommands
app.command(name="init", help="Install (or upgrade) the model repository.")(init_cmd)
app.command(name="upgrade", help="Upgrade the repository layout.")(upgrade_cmd)
app.command(name="drop", help="Delete the model repository.")(drop_cmd)
app.command(name="deploy", help="Deploy a new model version.")(deploy_cmd)
app.command(name="list", help="List committed models.")(list_cmd)
app.command(name="show", help="Show one committed model.")(show_cmd)
app.command(name="set-ready", help="Set a model's production-ready flag.")(set_ready_cmd)
app.command(name="delete", help="Remove a model from the repository.")(delete_cmd)
app.command(name="check", help="Check stored model locations.")(check_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
