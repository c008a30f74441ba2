"""Remove command implementation."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.panel import Panel

from tastingdeck.cli.package_session import (
    open_session,
    resolve_config,
    resolve_slide,
    run_async,
    wine_slides_table,
)
from tastingdeck.core.slides import find_wine

console = Console()


def remove_command(
    ctx: typer.Context,
    slide_ref: str = typer.Argument(..., help="Slide id (or unique id prefix) to remove."),
) -> None:
    """Remove a slide from the package."""
    config = resolve_config(ctx)

    async def _remove() -> None:
        session = await open_session(config, console)
        slide = resolve_slide(session, slide_ref, console)
        await session.delete_slide(slide.id)
        console.print(
            Panel.fit(
                f"[bold green]Removed slide[/]\n"
                f"ID: [bold]{slide.id}[/]\n"
                f"Previous position: [bold]{slide.position}[/]",
                title="tastingdeck",
                border_style="green",
            )
        )
        wine = find_wine(session.wines, slide.wine_id)
        if wine is not None:
            console.print(wine_slides_table(session, wine, title="Updated slide order"))

    run_async(_remove())
