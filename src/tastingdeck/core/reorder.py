"""Pure reorder computations for the slides of a wine.

Every function here takes the current slide list and returns a new one; none
of them talk to a store. :mod:`tastingdeck.core.editor` applies the results
optimistically and persists the diff.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from tastingdeck.core.config import SectionSplit
from tastingdeck.core.errors import (
    PositionConflictError,
    SectionBoundaryError,
    SlideNotFoundError,
    SlideValidationError,
    WelcomeSlidePinnedError,
)
from tastingdeck.core.positions import (
    POSITION_STEP,
    PositionUpdate,
    find_duplicate_positions,
    position_diff,
    renumber,
)
from tastingdeck.core.sections import resolve_stored_sections
from tastingdeck.core.slides import (
    Slide,
    Wine,
    find_slide,
    find_wine,
    is_package_intro,
    is_welcome_slide,
    wine_slides,
)


class MoveDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class ReorderRules(BaseModel):
    """Knobs for reorder validation."""

    step: int = POSITION_STEP
    split: SectionSplit = Field(default_factory=SectionSplit)
    legacy_title_match: bool = True
    # Up/down stops at section edges instead of crossing into the next section.
    within_section: bool = False


DEFAULT_RULES = ReorderRules()


class ReorderResult(BaseModel):
    """Outcome of one reorder: the full new slide list and the minimal diff."""

    wine_id: str
    slide_id: str
    from_index: int
    to_index: int
    slides: list[Slide]
    updates: list[PositionUpdate] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.updates)


def move_slide(
    slides: list[Slide],
    slide_id: str,
    direction: MoveDirection | str,
    rules: ReorderRules = DEFAULT_RULES,
) -> ReorderResult:
    """Move a slide one step up or down inside its wine."""
    direction = MoveDirection(direction)
    moving = _require_slide(slides, slide_id)
    if is_package_intro(moving):
        raise SlideValidationError(
            "The package introduction always opens the tasting and cannot be reordered."
        )
    owned = _owned_slides(slides, moving.wine_id)
    from_index = _index_of(owned, slide_id)
    sections = resolve_stored_sections(owned, rules.split)
    section = sections[slide_id]

    if direction is MoveDirection.DOWN and _is_pinned_welcome(owned, moving, rules):
        raise WelcomeSlidePinnedError(
            slide_id, "it would leave the first position of the intro section."
        )

    scope = owned
    if rules.within_section:
        scope = [slide for slide in owned if sections[slide.id] == section]
    scope_index = _index_of(scope, slide_id)
    neighbor_index = scope_index - 1 if direction is MoveDirection.UP else scope_index + 1
    if neighbor_index < 0 or neighbor_index >= len(scope):
        raise SectionBoundaryError(
            slide_id,
            direction.value,
            f"the {section.label} section" if rules.within_section else "its wine",
        )
    to_index = _index_of(owned, scope[neighbor_index].id)
    return _reorder(slides, moving, owned, from_index, to_index, rules)


def drop_slide(
    slides: list[Slide],
    active_id: str,
    over_id: str,
    rules: ReorderRules = DEFAULT_RULES,
) -> ReorderResult:
    """Move ``active_id`` to the slot currently held by ``over_id`` (drag and drop)."""
    moving = _require_slide(slides, active_id)
    target = _require_slide(slides, over_id)
    if moving.wine_id != target.wine_id:
        raise SlideValidationError("Slides can only be reordered within the same wine.")
    if is_package_intro(moving) or is_package_intro(target):
        raise SlideValidationError(
            "The package introduction always opens the tasting and cannot be reordered."
        )
    owned = _owned_slides(slides, moving.wine_id)
    from_index = _index_of(owned, active_id)
    to_index = _index_of(owned, over_id)
    return _reorder(slides, moving, owned, from_index, to_index, rules)


def reorder_wine(
    slides: list[Slide],
    wine_id: str,
    ordered_ids: list[str],
    rules: ReorderRules = DEFAULT_RULES,
) -> tuple[list[Slide], list[PositionUpdate]]:
    """Renumber a wine to match ``ordered_ids`` exactly.

    ``ordered_ids`` must name every slide of the wine once, package intro
    slides included.
    """
    current = wine_slides(slides, wine_id)
    by_id = {slide.id: slide for slide in current}
    if sorted(ordered_ids) != sorted(by_id):
        raise SlideValidationError(
            f"The new order for wine '{wine_id}' must list each of its {len(by_id)} slides once."
        )
    renumbered = renumber([by_id[slide_id] for slide_id in ordered_ids], step=rules.step)
    updates = position_diff(current, renumbered)
    return _merge(slides, renumbered), updates


def check_unique_positions(slides: list[Slide], wines: list[Wine]) -> None:
    """Raise :class:`PositionConflictError` naming the first wine with duplicate positions."""
    conflicts = find_duplicate_positions(slides)
    if not conflicts:
        return
    ordered_wines = sorted(wines, key=lambda wine: wine.position)
    known = [wine.id for wine in ordered_wines if wine.id in conflicts]
    wine_id = known[0] if known else sorted(conflicts)[0]
    wine = find_wine(wines, wine_id)
    raise PositionConflictError(wine.name if wine else wine_id, conflicts[wine_id])


def _reorder(
    slides: list[Slide],
    moving: Slide,
    owned: list[Slide],
    from_index: int,
    to_index: int,
    rules: ReorderRules,
) -> ReorderResult:
    new_owned = list(owned)
    new_owned.insert(to_index, new_owned.pop(from_index))
    _check_welcome_pin(owned, new_owned, moving, rules)

    full = wine_slides(slides, moving.wine_id)
    intros = [slide for slide in full if is_package_intro(slide)]
    renumbered = renumber(intros + new_owned, step=rules.step)
    return ReorderResult(
        wine_id=moving.wine_id,
        slide_id=moving.id,
        from_index=from_index,
        to_index=to_index,
        slides=_merge(slides, renumbered),
        updates=position_diff(full, renumbered),
    )


def _check_welcome_pin(
    before: list[Slide],
    after: list[Slide],
    moving: Slide,
    rules: ReorderRules,
) -> None:
    if not before or not is_welcome_slide(before[0], legacy_title_match=rules.legacy_title_match):
        return
    if after[0].id == before[0].id:
        return
    if before[0].id == moving.id:
        detail = "it would leave the first position of the intro section."
    else:
        detail = f"'{moving.id}' cannot be placed above welcome slide '{before[0].id}'."
    raise WelcomeSlidePinnedError(before[0].id, detail)


def _is_pinned_welcome(owned: list[Slide], slide: Slide, rules: ReorderRules) -> bool:
    return (
        bool(owned)
        and owned[0].id == slide.id
        and is_welcome_slide(slide, legacy_title_match=rules.legacy_title_match)
    )


def _owned_slides(slides: list[Slide], wine_id: str) -> list[Slide]:
    return [slide for slide in wine_slides(slides, wine_id) if not is_package_intro(slide)]


def _merge(slides: list[Slide], replacements: list[Slide]) -> list[Slide]:
    by_id = {slide.id: slide for slide in replacements}
    return [by_id.get(slide.id, slide) for slide in slides]


def _require_slide(slides: list[Slide], slide_id: str) -> Slide:
    slide = find_slide(slides, slide_id)
    if slide is None:
        raise SlideNotFoundError(slide_id)
    return slide


def _index_of(slides: list[Slide], slide_id: str) -> int:
    return next(index for index, slide in enumerate(slides) if slide.id == slide_id)
