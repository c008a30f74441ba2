"""Error taxonomy for editor and playback operations."""

from __future__ import annotations


class TastingDeckError(Exception):
    """Base class for every error raised by tastingdeck."""


class SlideValidationError(TastingDeckError, ValueError):
    """A local check refused an action before any store call was made."""

    title = "Action refused"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class WelcomeSlideDeleteError(SlideValidationError):
    def __init__(self, slide_id: str, wine_name: str) -> None:
        super().__init__(
            f"Slide '{slide_id}' is the only welcome slide of '{wine_name}'. "
            "Every wine needs a welcome slide; add another one before deleting it."
        )
        self.slide_id = slide_id
        self.wine_name = wine_name


class WelcomeSlidePinnedError(SlideValidationError):
    def __init__(self, slide_id: str, detail: str) -> None:
        super().__init__(
            f"Cannot move welcome slide: {detail} "
            "The welcome slide always opens the intro section of its wine."
        )
        self.slide_id = slide_id


class SectionBoundaryError(SlideValidationError):
    def __init__(self, slide_id: str, direction: str, scope: str) -> None:
        edge = "first" if direction == "up" else "last"
        super().__init__(
            f"Slide '{slide_id}' is already the {edge} slide of {scope} "
            f"and cannot move {direction}."
        )
        self.slide_id = slide_id
        self.direction = direction
        self.scope = scope


class PositionConflictError(SlideValidationError):
    """Two slides of the same wine share a position."""

    def __init__(self, wine_name: str, conflicts: dict[int, list[str]]) -> None:
        details = "; ".join(
            f"position {position}: {', '.join(slide_ids)}"
            for position, slide_ids in sorted(conflicts.items())
        )
        super().__init__(
            f"Position conflict in wine '{wine_name}' ({details}). "
            "Nothing was saved; fix the duplicate positions and try again."
        )
        self.wine_name = wine_name
        self.conflicts = conflicts


class PositionInvariantError(TastingDeckError, RuntimeError):
    """Renumbering produced duplicate positions. Indicates a bug; nothing is persisted."""


class PersistenceError(TastingDeckError):
    """A call to the slide store failed."""

    title = "Could not save"

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        message = f"{operation} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.operation = operation
        self.cause = cause


class EditorStateError(TastingDeckError):
    """The editor is not in a state that allows the requested operation."""


class SlideNotFoundError(TastingDeckError, LookupError):
    def __init__(self, slide_id: str) -> None:
        super().__init__(f"Slide '{slide_id}' was not found.")
        self.slide_id = slide_id


class WineNotFoundError(TastingDeckError, LookupError):
    def __init__(self, wine_id: str) -> None:
        super().__init__(f"Wine '{wine_id}' was not found.")
        self.wine_id = wine_id


class PackageNotFoundError(TastingDeckError, LookupError):
    def __init__(self, package_code: str) -> None:
        super().__init__(f"Package '{package_code}' was not found.")
        self.package_code = package_code


class NavigationError(TastingDeckError):
    """A playback navigation request is not possible right now."""
