"""Drag-and-drop reorder command."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.panel import Panel

from tastingdeck.cli.package_session import (
    open_session,
    resolve_config,
    resolve_slide,
    run_async,
    updates_table,
    wine_slides_table,
)
from tastingdeck.core.slides import find_wine

console = Console()


def drop_command(
    ctx: typer.Context,
    active_ref: str = typer.Argument(..., help="Slide being dragged."),
    over_ref: str = typer.Argument(..., help="Slide it is dropped onto."),
) -> None:
    """Place a slide where another slide of the same wine currently sits."""
    config = resolve_config(ctx)

    async def _drop() -> None:
        session = await open_session(config, console)
        active = resolve_slide(session, active_ref, console)
        over = resolve_slide(session, over_ref, console)
        updates = await session.drop_slide(active.id, over.id)
        console.print(
            Panel.fit(
                f"[bold green]Dropped slide[/]\n"
                f"ID: [bold]{active.id}[/]\n"
                f"Onto: [bold]{over.id}[/]",
                title="tastingdeck",
                border_style="green",
            )
        )
        console.print(updates_table(session, updates))
        wine = find_wine(session.wines, active.wine_id)
        if wine is not None:
            console.print(wine_slides_table(session, wine, title="Updated slide order"))

    run_async(_drop())
