"""Move command implementation."""

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
from tastingdeck.core.reorder import MoveDirection
from tastingdeck.core.slides import find_wine

console = Console()


def move_command(
    ctx: typer.Context,
    slide_ref: str = typer.Argument(..., help="Slide id (or unique id prefix) to move."),
    direction: MoveDirection = typer.Argument(..., help="Move one step up or down."),
    within_section: bool = typer.Option(
        False,
        "--within-section",
        help="Stop at the edge of the slide's section instead of crossing into the next one.",
    ),
) -> None:
    """Move a slide one step inside its wine and save immediately."""
    config = resolve_config(ctx)

    async def _move() -> None:
        session = await open_session(config, console)
        session.rules = session.rules.model_copy(update={"within_section": within_section})
        slide = resolve_slide(session, slide_ref, console)
        updates = await session.move_slide(slide.id, direction)
        console.print(
            Panel.fit(
                f"[bold green]Moved slide {direction.value}[/]\n"
                f"ID: [bold]{slide.id}[/]\n"
                f"Title: [bold]{slide.title or '-'}[/]",
                title="tastingdeck",
                border_style="green",
            )
        )
        console.print(updates_table(session, updates))
        wine = find_wine(session.wines, slide.wine_id)
        if wine is not None:
            console.print(wine_slides_table(session, wine, title="Updated slide order"))

    run_async(_move())
