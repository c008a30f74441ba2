"""Wine command group."""

from __future__ import annotations

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tastingdeck.cli.package_session import (
    open_session,
    resolve_config,
    resolve_wine,
    run_async,
    short_id,
    wine_slides_table,
)
from tastingdeck.core.editor import EditorSession

wine_app = typer.Typer(
    help="Add, remove and list the wines of the package.",
    invoke_without_command=True,
)
console = Console()


@wine_app.callback()
def wine_callback(ctx: typer.Context) -> None:
    """List wines when no subcommand is provided."""
    if ctx.invoked_subcommand is not None:
        return
    wine_list_command(ctx)


@wine_app.command("add")
def wine_add_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Wine name shown to participants."),
    description: str | None = typer.Option(None, "--description", help="Tasting notes."),
    no_welcome: bool = typer.Option(
        False,
        "--no-welcome",
        help="Do not create the welcome slide that normally opens the wine.",
    ),
) -> None:
    """Append a wine to the package."""
    config = resolve_config(ctx)

    async def _add() -> None:
        session = await open_session(config, console)
        wine = await session.create_wine(name, description, with_welcome=not no_welcome)
        console.print(
            Panel.fit(
                f"[bold green]Added wine[/]\n"
                f"Name: [bold]{wine.name}[/]\n"
                f"Position: [bold]{wine.position}[/]\n"
                f"ID: [bold]{wine.id}[/]",
                title="tastingdeck",
                border_style="green",
            )
        )
        console.print(wine_slides_table(session, wine))

    run_async(_add())


@wine_app.command("remove")
def wine_remove_command(
    ctx: typer.Context,
    wine_ref: str = typer.Argument(..., help="Wine id, position or name."),
) -> None:
    """Remove a wine and all of its slides."""
    config = resolve_config(ctx)

    async def _remove() -> None:
        session = await open_session(config, console)
        wine = resolve_wine(session, wine_ref, console)
        removed = len(session.wine_slides(wine.id))
        await session.delete_wine(wine.id)
        console.print(
            Panel.fit(
                f"[bold green]Removed wine[/]\n"
                f"Name: [bold]{wine.name}[/]\n"
                f"Slides removed: [bold]{removed}[/]",
                title="tastingdeck",
                border_style="green",
            )
        )
        console.print(_wines_table(session))

    run_async(_remove())


@wine_app.command("edit")
def wine_edit_command(
    ctx: typer.Context,
    wine_ref: str = typer.Argument(..., help="Wine id, position or name."),
    name: str | None = typer.Option(None, "--name", help="New wine name."),
    description: str | None = typer.Option(None, "--description", help="New tasting notes."),
) -> None:
    """Rename a wine or change its description."""
    changes = {
        key: value
        for key, value in (("name", name), ("description", description))
        if value is not None
    }
    if not changes:
        console.print("[yellow]Nothing to change. Pass --name or --description.[/]")
        raise typer.Exit(code=1)
    config = resolve_config(ctx)

    async def _edit() -> None:
        session = await open_session(config, console)
        wine = resolve_wine(session, wine_ref, console)
        await session.update_wine(wine.id, **changes)
        console.print(_wines_table(session))

    run_async(_edit())


@wine_app.command("list")
def wine_list_command(ctx: typer.Context) -> None:
    """List wines in package order."""
    config = resolve_config(ctx)

    async def _list() -> None:
        session = await open_session(config, console)
        console.print(_wines_table(session))

    run_async(_list())


def _wines_table(session: EditorSession) -> Table:
    table = Table(title="Wines", box=box.ROUNDED, header_style="bold")
    table.add_column("Position", justify="right")
    table.add_column("Name")
    table.add_column("Slides", justify="right")
    table.add_column("ID")
    for wine in session.wines:
        table.add_row(
            str(wine.position),
            wine.name,
            str(len(session.wine_slides(wine.id))),
            short_id(wine.id),
        )
    if not session.wines:
        table.add_row("-", "[dim](no wines yet)[/]", "-", "-")
    return table
