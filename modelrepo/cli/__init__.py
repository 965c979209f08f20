"""modelrepo CLI: Typer-based command-line interface.

Provides the ``modelrepo`` command with subcommands for installing a
repository, deploying models, listing and inspecting them, updating
production readiness, and checking stored locations.

All output uses Rich for formatted terminal display.
"""
