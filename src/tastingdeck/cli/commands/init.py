"""Implementation of the `tastingdeck init` command."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import typer
from rich.console import Console

from tastingdeck.cli.package_session import resolve_config, state_path
from tastingdeck.core.project import (
    PackageState,
    package_state_exists,
    save_package_state,
    suggest_package_code,
)
from tastingdeck.core.slides import Package

console = Console()


def init_command(
    ctx: typer.Context,
    name: str | None = typer.Argument(
        None,
        help="Package name (defaults to the current folder name).",
    ),
    code: str | None = typer.Option(
        None,
        "--code",
        help="Join code for participants (derived from the name when omitted).",
    ),
    description: str | None = typer.Option(
        None,
        "--description",
        help="Short description shown to hosts.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing package state file.",
    ),
) -> None:
    """Initialize a new tasting package in the current directory."""
    config = resolve_config(ctx)
    path = state_path(config)
    package_name = name or Path.cwd().name

    if package_state_exists(path) and not force:
        console.print(f"[bold red]{path} already exists. Use --force to overwrite.[/]")
        raise typer.Exit(code=1)

    package_code = (code or suggest_package_code(package_name)).upper()
    state = PackageState(
        package=Package(code=package_code, name=package_name, description=description),
        created_at=datetime.now(timezone.utc),
    )
    save_package_state(state, path)

    console.print(
        f"[bold green]Initialized tasting package '{package_name}' ({package_code}) at "
        f"{path.resolve()}[/]"
    )
