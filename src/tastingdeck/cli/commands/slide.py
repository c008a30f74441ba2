"""Slide command group."""

from __future__ import annotations

from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel

from tastingdeck.cli.package_session import (
    open_session,
    resolve_config,
    resolve_wine,
    run_async,
    wine_slides_table,
)
from tastingdeck.core.editor import EditorSession
from tastingdeck.core.slides import SectionType, Slide, SlideType, Wine

slide_app = typer.Typer(help="Create slides inside a wine.")
console = Console()


@slide_app.command("add")
def slide_add_command(
    ctx: typer.Context,
    wine_ref: str = typer.Argument(..., help="Wine id, position or name."),
    slide_type: SlideType = typer.Argument(..., help="Kind of slide to create."),
    title: str = typer.Option("", "--title", "-t", help="Slide title."),
    description: str | None = typer.Option(None, "--description", help="Slide body text."),
    section: SectionType | None = typer.Option(
        None,
        "--section",
        help="Authoring section (left empty, the proportional split decides).",
    ),
    welcome: bool = typer.Option(
        False,
        "--welcome",
        help="Mark an intro interlude as the wine's welcome slide.",
    ),
    package_intro: bool = typer.Option(
        False,
        "--package-intro",
        help="Mark the slide as the package introduction that opens the tasting.",
    ),
) -> None:
    """Append a slide to the end of a wine."""
    config = resolve_config(ctx)
    payload: dict[str, Any] = {"title": title}
    if description:
        payload["description"] = description
    if welcome:
        payload["is_welcome"] = True
    if package_intro:
        payload["is_package_intro"] = True

    async def _add() -> None:
        session = await open_session(config, console)
        wine = resolve_wine(session, wine_ref, console)
        slide = await session.add_slide(wine.id, slide_type, payload, section_type=section)
        _render_added(session, wine, slide)

    run_async(_add())


@slide_app.command("template")
def slide_template_command(
    ctx: typer.Context,
    wine_ref: str = typer.Argument(..., help="Wine id, position or name."),
    template_id: str = typer.Argument(..., help="Template id (see `tastingdeck templates`)."),
) -> None:
    """Append a slide built from a template."""
    config = resolve_config(ctx)

    async def _add() -> None:
        session = await open_session(config, console)
        wine = resolve_wine(session, wine_ref, console)
        try:
            slide = await session.add_from_template(wine.id, template_id)
        except ValueError as exc:
            console.print(f"[bold red]{exc}[/]")
            raise typer.Exit(code=1) from exc
        _render_added(session, wine, slide)

    run_async(_add())


def _render_added(session: EditorSession, wine: Wine, slide: Slide) -> None:
    console.print(
        Panel.fit(
            f"[bold green]Added slide[/]\n"
            f"ID: [bold]{slide.id}[/]\n"
            f"Type: [bold]{slide.type}[/]\n"
            f"Position: [bold]{slide.position}[/]",
            title="tastingdeck",
            border_style="green",
        )
    )
    console.print(wine_slides_table(session, wine))
