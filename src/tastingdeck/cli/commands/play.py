"""Play command: walk the participant traversal of the package."""

from __future__ import annotations

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from tastingdeck.cli.package_session import open_store, resolve_config, run_async, short_id
from tastingdeck.core.interfaces import AnalyticsSummary
from tastingdeck.core.playback import NavigationEvent, NavigationKind, PlaybackSession

console = Console()


def play_command(
    ctx: typer.Context,
    session_id: str | None = typer.Option(
        None,
        "--session",
        help="Tasting session id used to look up a participant's answers.",
    ),
    participant_id: str | None = typer.Option(
        None,
        "--participant",
        help="Participant whose completion summary is shown at the end.",
    ),
) -> None:
    """Print the order participants see, with the transitions between slides."""
    config = resolve_config(ctx)
    store = open_store(config, console)
    state = store.load()

    transitions: dict[int, NavigationEvent] = {}
    finished: list[PlaybackSession] = []
    player = PlaybackSession.for_package(
        state.wines,
        state.slides,
        config=config,
        on_transition=lambda event: transitions.setdefault(event.from_index, event),
        on_complete=finished.append,
    )
    if not player.sequence:
        console.print("[yellow]Nothing to play yet. Add wines and slides first.[/]")
        return

    while not player.finished:
        event = player.go_next()
        if event.kind is NavigationKind.SECTION_TRANSITION:
            player.finish_section_transition()

    table = Table(
        title=f"Tasting order: {state.package.name}",
        box=box.ROUNDED,
        header_style="bold",
    )
    table.add_column("#", justify="right")
    table.add_column("Wine")
    table.add_column("Section")
    table.add_column("Type")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Then")
    for index, entry in enumerate(player.sequence):
        table.add_row(
            str(index + 1),
            "[magenta]package[/]" if entry.is_package_intro else entry.wine.name,
            entry.section.label if entry.section else "Package intro",
            entry.slide.type,
            short_id(entry.slide.id),
            entry.slide.title or "-",
            _describe(transitions.get(index)),
        )
    console.print(table)

    if finished and session_id and participant_id:
        summary = run_async(store.fetch_participant_analytics(session_id, participant_id))
        console.print(_summary_table(summary))


def _describe(event: NavigationEvent | None) -> str:
    if event is None:
        return ""
    if event.kind is NavigationKind.WINE_TRANSITION:
        return f"[cyan]wine transition to {event.wine_name} ({event.delay_seconds:g}s)[/]"
    if event.kind is NavigationKind.SECTION_TRANSITION and event.to_section is not None:
        return f"[green]section transition to {event.to_section.label}[/]"
    return ""


def _summary_table(summary: AnalyticsSummary) -> Table:
    table = Table(
        title=f"Answers from {summary.participant_id}",
        box=box.ROUNDED,
        header_style="bold",
    )
    table.add_column("Wine")
    table.add_column("Answered", justify="right")
    for wine in summary.wines:
        table.add_row(wine.wine_name, f"{wine.answered}/{wine.total_questions}")
    table.add_row("[bold]Total[/]", f"[bold]{summary.answered}/{summary.total_questions}[/]")
    return table


def answer_command(
    ctx: typer.Context,
    slide_ref: str = typer.Argument(..., help="Question slide id (or unique id prefix)."),
    answer: str = typer.Argument(..., help="The participant's answer."),
    session_id: str = typer.Option(..., "--session", help="Tasting session id."),
    participant_id: str = typer.Option(..., "--participant", help="Participant id."),
) -> None:
    """Record a participant's answer to a slide."""
    store = open_store(resolve_config(ctx), console)
    matches = [slide for slide in store.load().slides if slide.id.startswith(slide_ref)]
    if len(matches) != 1:
        console.print(f"[bold red]Slide '{slide_ref}' did not match exactly one slide.[/]")
        raise typer.Exit(code=1)
    record = run_async(store.record_response(session_id, participant_id, matches[0].id, answer))
    console.print(
        f"[bold green]Recorded answer for {short_id(record.slide_id)} "
        f"from {record.participant_id}.[/]"
    )
