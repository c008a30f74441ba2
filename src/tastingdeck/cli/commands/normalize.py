"""Normalize command: renumber wines in their rendered order."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.panel import Panel

from tastingdeck.cli.package_session import (
    open_session,
    resolve_config,
    resolve_wine,
    run_async,
    updates_table,
)

console = Console()


def normalize_command(
    ctx: typer.Context,
    wine_ref: str | None = typer.Argument(
        None,
        help="Wine id, position or name (all wines when omitted).",
    ),
) -> None:
    """Rewrite positions as 10, 20, 30... following the editor's order."""
    config = resolve_config(ctx)

    async def _normalize() -> None:
        session = await open_session(config, console)
        wines = [resolve_wine(session, wine_ref, console)] if wine_ref else list(session.wines)
        total = 0
        for wine in wines:
            updates = await session.normalize_wine(wine.id)
            total += len(updates)
            if updates:
                console.print(updates_table(session, updates))
        console.print(
            Panel.fit(
                f"[bold green]Normalized {len(wines)} wine(s)[/]\n"
                f"Slides renumbered: [bold]{total}[/]",
                title="tastingdeck",
                border_style="green",
            )
        )

    run_async(_normalize())
