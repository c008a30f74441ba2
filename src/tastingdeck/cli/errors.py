"""Shared CLI error rendering helpers."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel

from tastingdeck.core.errors import (
    EditorStateError,
    PersistenceError,
    PositionInvariantError,
    SlideValidationError,
    TastingDeckError,
)


@dataclass(frozen=True)
class ErrorInfo:
    title: str
    summary: str
    hint: str = ""


def render_cli_error(
    exc: BaseException,
    *,
    console: Console,
    action: str | None = None,
) -> None:
    """Render a friendly TUI panel for a command failure."""
    info = _classify_error(exc)

    lines: list[str] = []
    if action:
        lines.append(f"[bold]{action}[/]")
        lines.append("")
    lines.append(f"[bold red]{info.title}[/]")
    lines.append(info.summary)
    if info.hint:
        lines.append(f"[dim]{info.hint}[/]")
    cause = getattr(exc, "cause", None)
    if cause is not None:
        lines.append(f"[dim]Details: {_normalize_text(str(cause))}[/]")

    console.print(
        Panel.fit(
            "\n".join(lines),
            title="tastingdeck",
            border_style="red",
        )
    )


def _classify_error(exc: BaseException) -> ErrorInfo:
    if isinstance(exc, KeyboardInterrupt):
        return ErrorInfo("Command cancelled", "The command was cancelled before it finished.")
    if isinstance(exc, SlideValidationError):
        return ErrorInfo("Action refused", exc.reason)
    if isinstance(exc, PersistenceError):
        return ErrorInfo(
            "Could not save",
            f"{exc.operation} failed before the package file was updated.",
            "Run `tastingdeck doctor` to inspect the stored positions.",
        )
    if isinstance(exc, PositionInvariantError):
        return ErrorInfo(
            "Position invariant broken",
            _normalize_text(str(exc)),
            "Run `tastingdeck normalize` to renumber the affected wine.",
        )
    if isinstance(exc, EditorStateError):
        return ErrorInfo("Editor busy", _normalize_text(str(exc)))
    if isinstance(exc, FileNotFoundError):
        return ErrorInfo(
            "Package not found",
            _normalize_text(str(exc)),
            "Run `tastingdeck init` to create a package in this directory.",
        )
    if isinstance(exc, (TastingDeckError, ValidationError)):
        return ErrorInfo("Command failed", _normalize_text(str(exc)))
    return ErrorInfo(
        "Command failed",
        "An unexpected error occurred while running this command.",
        "Try again. If the issue persists, rerun with --verbose for more context.",
    )


def _normalize_text(text: str) -> str:
    collapsed = " ".join(text.split())
    if len(collapsed) <= 240:
        return collapsed
    return f"{collapsed[:237]}..."
