"""Batch position editing: `tastingdeck set-position`."""

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
)
from tastingdeck.core.positions import position_diff
from tastingdeck.core.reorder import check_unique_positions

console = Console()


def set_position_command(
    ctx: typer.Context,
    slide_ref: str = typer.Argument(..., help="Slide id (or unique id prefix)."),
    position: int = typer.Argument(..., help="New stored position value."),
    save: bool = typer.Option(
        False,
        "--save",
        help="Persist the change. Without it the edit is only checked and previewed.",
    ),
) -> None:
    """Set a slide's raw position, checking for clashes inside its wine."""
    if position < 1:
        console.print("[bold red]position must be at least 1.[/]")
        raise typer.Exit(code=1)
    config = resolve_config(ctx)

    async def _set() -> None:
        session = await open_session(config, console)
        slide = resolve_slide(session, slide_ref, console)
        session.set_local_position(slide.id, position)
        if not save:
            check_unique_positions(session.local_slides, session.wines)
            console.print("[yellow]Preview only. Rerun with --save to persist.[/]")
            preview = position_diff(session.slides, session.local_slides)
            console.print(updates_table(session, preview))
            return
        updates = await session.save_order()
        console.print(
            Panel.fit(
                f"[bold green]Saved slide order[/]\n"
                f"Slides updated: [bold]{len(updates)}[/]",
                title="tastingdeck",
                border_style="green",
            )
        )
        console.print(updates_table(session, updates))

    run_async(_set())
