"""List the built-in slide templates."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.table import Table

from tastingdeck.core.templates import SLIDE_TEMPLATES

console = Console()


def templates_command() -> None:
    """Show templates usable with `tastingdeck slide template`."""
    table = Table(title="Slide templates", box=box.ROUNDED, header_style="bold")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Section")
    for template in SLIDE_TEMPLATES:
        table.add_row(
            template.id,
            template.name,
            template.type.value,
            template.section_type.label,
        )
    console.print(table)
