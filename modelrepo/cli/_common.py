"""Helpers shared by CLI commands: config lookup, repository opening, errors."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console

from modelrepo.config import RepoConfig
from modelrepo.core.errors import ModelRepoError
from modelrepo.core.repository import ModelRepository
from modelrepo.models.identity import ArtifactIdentity

console = Console()


def get_config(ctx: typer.Context) -> RepoConfig:
    """Return the ``RepoConfig`` built by the app callback."""
    config = ctx.obj
    if not isinstance(config, RepoConfig):
        config = RepoConfig()
        ctx.obj = config
    return config


def open_repository(ctx: typer.Context) -> ModelRepository:
    try:
        return ModelRepository.from_config(get_config(ctx))
    except ModelRepoError as exc:
        fail(exc)


def parse_identity(text: str) -> ArtifactIdentity:
    try:
        return ArtifactIdentity.parse(text)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def fail(exc: Exception) -> NoReturn:
    """Print a repository error and exit with status 1."""
    console.print(f"[bold red]{type(exc).__name__}:[/bold red] {exc}")
    raise typer.Exit(code=1)
