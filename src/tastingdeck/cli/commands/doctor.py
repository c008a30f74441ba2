"""Doctor command: report stored position problems."""

from __future__ import annotations

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tastingdeck.cli.package_session import open_store, resolve_config
from tastingdeck.core.maintenance import detect_position_issues
from tastingdeck.core.slides import find_wine

console = Console()


def doctor_command(ctx: typer.Context) -> None:
    """Check every wine for duplicate, non-positive or temporary positions."""
    state = open_store(resolve_config(ctx), console).load()
    issues = detect_position_issues(state.slides)
    if not issues:
        console.print(
            Panel.fit(
                "[bold green]No position problems found.[/]",
                title="tastingdeck",
                border_style="green",
            )
        )
        return

    table = Table(title="Position problems", box=box.ROUNDED, header_style="bold")
    table.add_column("Wine")
    table.add_column("Kind")
    table.add_column("Details")
    for issue in issues:
        wine = find_wine(state.wines, issue.wine_id)
        table.add_row(wine.name if wine else issue.wine_id, issue.kind.value, issue.describe())
    console.print(table)
    console.print("[dim]Run [bold]tastingdeck normalize[/] to renumber affected wines.[/]")
    raise typer.Exit(code=1)
