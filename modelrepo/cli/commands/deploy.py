"""``modelrepo deploy ARTIFACT [FILE]``: publish a new model version.

Either packages ``FILE`` with its ``--deps`` and uploads it, or, with
``--existing-artifact``, reuses the package of an already deployed
version. Without an explicit version in ``ARTIFACT`` the next patch
version is used.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.panel import Panel

from modelrepo.cli._common import console, fail, open_repository, parse_identity
from modelrepo.core.errors import ModelRepoError


def _split_deps(deps: str) -> list[Path]:
    return [Path(part) for part in deps.split(":") if part]


def deploy_cmd(
    ctx: typer.Context,
    artifact: str = typer.Argument(
        ...,
        help="Artifact identity: <group>.<artifact>[-<major.minor.patch>].",
    ),
    artifact_file: Path = typer.Argument(
        None,
        help="Primary artifact file to package (omit with --existing-artifact).",
    ),
    deps: str = typer.Option(
        "",
        "--deps",
        "-d",
        help="Colon-separated list of dependency files.",
    ),
    existing_artifact: str = typer.Option(
        None,
        "--existing-artifact",
        "-e",
        help="Versioned identity whose package this deployment reuses.",
    ),
    container_file: Path = typer.Option(
        ...,
        "--model-container",
        "-c",
        help="JSON file with the model container (training/scoring configuration).",
    ),
    production_ready: bool = typer.Option(
        False,
        "--production-ready",
        help="Mark the deployed model as production ready.",
    ),
    message: str = typer.Option(
        None,
        "--message",
        "-m",
        help="Update message for this deployment.",
    ),
) -> None:
    """Deploy a model to the repository."""
    identity = parse_identity(artifact)
    try:
        container = json.loads(container_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(f"Unreadable model container: {exc}") from exc

    repo = open_repository(ctx)
    try:
        if existing_artifact:
            if artifact_file is not None or deps:
                raise typer.BadParameter(
                    "--existing-artifact can not be combined with an artifact file or --deps."
                )
            result = repo.deploy_from_existing(
                identity,
                parse_identity(existing_artifact),
                container,
                production_ready=production_ready,
                message=message,
            )
        else:
            if artifact_file is None:
                raise typer.BadParameter(
                    "An artifact file is required unless --existing-artifact is given."
                )
            result = repo.deploy(
                identity,
                artifact_file,
                _split_deps(deps),
                container,
                production_ready=production_ready,
                message=message,
            )
    except ModelRepoError as exc:
        fail(exc)

    console.print(
        Panel(
            "\n".join([
                "[bold green]Model deployed![/bold green]",
                "",
                f"[bold]Artifact:[/bold]         {result.identity}",
                f"[bold]Location:[/bold]         {result.location}",
                f"[bold]Mode:[/bold]             {result.mode.value}",
                f"[bold]Production ready:[/bold] {result.production_ready}",
            ]),
            title="[bold]modelrepo deploy[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
    # Plain identity for scripting
    console.print(str(result.identity))
