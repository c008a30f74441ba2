"""Main Typer application definition."""

from __future__ import annotations

import typer
from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tastingdeck.cli.commands.doctor import doctor_command
from tastingdeck.cli.commands.drop import drop_command
from tastingdeck.cli.commands.init import init_command
from tastingdeck.cli.commands.move import move_command
from tastingdeck.cli.commands.normalize import normalize_command
from tastingdeck.cli.commands.play import answer_command, play_command
from tastingdeck.cli.commands.remove import remove_command
from tastingdeck.cli.commands.set_position import set_position_command
from tastingdeck.cli.commands.slide import slide_app
from tastingdeck.cli.commands.templates import templates_command
from tastingdeck.cli.commands.wine import wine_app
from tastingdeck.cli.errors import render_cli_error
from tastingdeck.cli.package_session import state_path
from tastingdeck.core.config import GlobalConfig, load_global_config
from tastingdeck.core.project import PackageState, load_package_state, package_state_exists
from tastingdeck.core.sections import group_by_stored_section
from tastingdeck.core.slides import wine_slides
from tastingdeck.utils.logger import configure_logging

console = Console()
app = typer.Typer(
    help="Build and reorder the slides of a guided wine tasting.",
    invoke_without_command=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Emit logs in a JSON-friendly format."
    ),
) -> None:
    """Configure the runtime environment for all commands."""
    load_dotenv()
    configure_logging(verbose=verbose, json_output=json_output)
    ctx.obj = ctx.obj or {}
    ctx.obj["config"] = load_global_config()
    if ctx.resilient_parsing or ctx.invoked_subcommand is not None:
        return
    config: GlobalConfig = ctx.obj["config"]
    path = state_path(config)
    if not package_state_exists(path):
        console.print(ctx.get_help())
        raise typer.Exit()

    _render_package_summary(load_package_state(path), config)
    console.print("[dim]Use [bold]tastingdeck --help[/] for help.[/]")
    raise typer.Exit()


app.command("init")(init_command)
app.add_typer(wine_app, name="wine")
app.add_typer(slide_app, name="slide")
app.command("remove")(remove_command)
app.command("move")(move_command)
app.command("drop")(drop_command)
app.command("set-position")(set_position_command)
app.command("doctor")(doctor_command)
app.command("normalize")(normalize_command)
app.command("play")(play_command)
app.command("answer")(answer_command)
app.command("templates")(templates_command)


def _render_package_summary(state: PackageState, config: GlobalConfig) -> None:
    details = Table.grid(padding=(0, 1))
    details.add_column(style="bold cyan")
    details.add_column()
    details.add_row("Name", state.package.name)
    details.add_row("Code", state.package.code)
    details.add_row("Path", str(state_path(config).resolve()))
    console.print(Panel(details, title="Current package", border_style="cyan", box=box.ROUNDED))

    wines_table = Table(title="Wines", box=box.ROUNDED, header_style="bold")
    wines_table.add_column("Position", justify="right")
    wines_table.add_column("Name")
    for section_label in ("Intro", "Deep Dive", "Ending"):
        wines_table.add_column(section_label, justify="right")
    for wine in sorted(state.wines, key=lambda item: item.position):
        groups = group_by_stored_section(
            wine_slides(state.slides, wine.id),
            split=config.section_split,
            legacy_title_match=config.legacy_welcome_title_match,
        )
        wines_table.add_row(
            str(wine.position),
            wine.name,
            *(str(len(slides)) for slides in groups.values()),
        )
    if not state.wines:
        wines_table.add_row("-", "[dim](no wines yet)[/]", "-", "-", "-")
    console.print(wines_table)


def run() -> None:
    """CLI entrypoint used by console scripts."""
    try:
        app()
    except typer.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt as exc:
        render_cli_error(exc, console=console)
        raise SystemExit(130) from None
    except Exception as exc:
        render_cli_error(exc, console=console)
        raise SystemExit(1) from None
