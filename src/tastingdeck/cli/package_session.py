"""CLI helpers for opening the local package and rendering its slides."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from tastingdeck.core.config import GlobalConfig, load_global_config
from tastingdeck.core.editor import EditorSession
from tastingdeck.core.positions import PositionUpdate
from tastingdeck.core.project import package_state_exists
from tastingdeck.core.reorder import ReorderRules
from tastingdeck.core.slides import Slide, Wine, is_package_intro, is_welcome_slide
from tastingdeck.core.store import LocalSlideStore

T = TypeVar("T")


def resolve_config(ctx: typer.Context | None) -> GlobalConfig:
    if ctx is not None and ctx.obj and isinstance(ctx.obj.get("config"), GlobalConfig):
        return ctx.obj["config"]
    return load_global_config()


def state_path(config: GlobalConfig) -> Path:
    return Path(config.default_state_file)


def run_async(coroutine: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coroutine)


def open_store(config: GlobalConfig, console: Console) -> LocalSlideStore:
    """Return the store for ./tasting.json, exiting when no package exists."""
    path = state_path(config)
    if not package_state_exists(path):
        console.print(f"[bold red]{path} not found. Run `tastingdeck init` first.[/]")
        raise typer.Exit(code=1)
    return LocalSlideStore(path)


async def open_session(
    config: GlobalConfig,
    console: Console,
    *,
    rules: ReorderRules | None = None,
) -> EditorSession:
    store = open_store(config, console)
    session = EditorSession(store, store.load().package.code, config=config)
    if rules is not None:
        session.rules = rules
    await session.load()
    return session


def resolve_wine(session: EditorSession, reference: str, console: Console) -> Wine:
    """Find a wine by id (or unique id prefix), 1-based position or name."""
    for wine in session.wines:
        if wine.id == reference:
            return wine
    prefixed = [wine for wine in session.wines if wine.id.startswith(reference)]
    if len(prefixed) == 1 and not reference.isdigit():
        return prefixed[0]
    if reference.isdigit():
        match = next((wine for wine in session.wines if wine.position == int(reference)), None)
        if match is not None:
            return match
    named = [wine for wine in session.wines if wine.name.lower() == reference.lower()]
    if len(named) == 1:
        return named[0]
    console.print(f"[bold red]Wine '{reference}' was not found in this package.[/]")
    raise typer.Exit(code=1)


def resolve_slide(session: EditorSession, reference: str, console: Console) -> Slide:
    """Find a slide by full id or by a unique id prefix."""
    matches = [slide for slide in session.local_slides if slide.id.startswith(reference)]
    exact = [slide for slide in matches if slide.id == reference]
    if exact:
        return exact[0]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        console.print(f"[bold red]Slide '{reference}' was not found in this package.[/]")
    else:
        console.print(f"[bold red]Slide prefix '{reference}' matches {len(matches)} slides.[/]")
    raise typer.Exit(code=1)


def short_id(slide_id: str) -> str:
    return slide_id[:8]


def wine_slides_table(session: EditorSession, wine: Wine, *, title: str | None = None) -> Table:
    table = Table(
        title=title or f"{wine.position}. {wine.name}",
        box=box.ROUNDED,
        header_style="bold",
    )
    table.add_column("Pos", justify="right")
    table.add_column("Section")
    table.add_column("Type")
    table.add_column("ID")
    table.add_column("Title")
    legacy = session.rules.legacy_title_match
    for slide in session.wine_slides(wine.id):
        if is_package_intro(slide):
            table.add_row(
                str(slide.position),
                "[magenta]package intro[/]",
                slide.type,
                short_id(slide.id),
                slide.title or "-",
            )
    for section, slides in session.grouped_sections(wine.id).items():
        for slide in slides:
            welcome = is_welcome_slide(slide, legacy_title_match=legacy)
            marker = " [green](welcome)[/]" if welcome else ""
            table.add_row(
                str(slide.position),
                section.label,
                slide.type,
                short_id(slide.id),
                f"{slide.title or '-'}{marker}",
            )
    if not session.wine_slides(wine.id):
        table.add_row("-", "-", "-", "-", "[dim](no slides yet)[/]")
    return table


def updates_table(session: EditorSession, updates: list[PositionUpdate]) -> Table:
    table = Table(title="Position updates", box=box.ROUNDED, header_style="bold")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Position", justify="right")
    titles = {slide.id: slide.title for slide in session.local_slides}
    for update in updates:
        table.add_row(
            short_id(update.slide_id),
            titles.get(update.slide_id) or "-",
            str(update.position),
        )
    if not updates:
        table.add_row("-", "[dim](nothing changed)[/]", "-")
    return table
