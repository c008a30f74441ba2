"""Gap-based position allocation for the slides of one wine.

Positions are only meaningful inside a wine. New slides go to the next
multiple of ``step`` above the current maximum; reorders compute the full new
order first and then renumber the whole wine as ``(index + 1) * step``.
Swapping two positions in place is never done because the intermediate state
holds a duplicate that the store's uniqueness check rejects.
"""

from __future__ import annotations

from collections import defaultdict
import math

from pydantic import BaseModel

from tastingdeck.core.errors import PositionInvariantError
from tastingdeck.core.slides import Slide

POSITION_BASE = 10
POSITION_STEP = 10
# Repair tooling parks slides above this value while it shuffles positions.
TEMPORARY_POSITION_FLOOR = 100_000


class PositionUpdate(BaseModel):
    """One entry of a reorder diff."""

    slide_id: str
    position: int


def next_position(
    wine_slides: list[Slide],
    *,
    base: int = POSITION_BASE,
    step: int = POSITION_STEP,
) -> int:
    """Return the position for a slide appended to ``wine_slides``."""
    if not wine_slides:
        return base
    highest = max(slide.position for slide in wine_slides)
    return math.ceil((highest + 1) / step) * step


def renumber(ordered_slides: list[Slide], *, step: int = POSITION_STEP) -> list[Slide]:
    """Return copies of ``ordered_slides`` with positions ``step, 2*step, ...``.

    Raises :class:`PositionInvariantError` if the result holds duplicates
    within a wine, which can only happen when the input mixes a slide twice.
    """
    renumbered = [
        slide.model_copy(update={"position": (index + 1) * step})
        for index, slide in enumerate(ordered_slides)
    ]
    ids = [slide.id for slide in renumbered]
    if len(set(ids)) != len(ids):
        raise PositionInvariantError("Renumbering received the same slide more than once.")
    duplicates = find_duplicate_positions(renumbered)
    if duplicates:
        raise PositionInvariantError(f"Renumbering produced duplicate positions: {duplicates}")
    return renumbered


def position_diff(before: list[Slide], after: list[Slide]) -> list[PositionUpdate]:
    """Return updates for every slide whose position differs between the two lists."""
    previous = {slide.id: slide.position for slide in before}
    return [
        PositionUpdate(slide_id=slide.id, position=slide.position)
        for slide in after
        if previous.get(slide.id) != slide.position
    ]


def apply_updates(slides: list[Slide], updates: list[PositionUpdate]) -> list[Slide]:
    """Return ``slides`` with the positions from ``updates`` applied to copies."""
    if not updates:
        return list(slides)
    by_id = {update.slide_id: update.position for update in updates}
    return [
        slide.model_copy(update={"position": by_id[slide.id]}) if slide.id in by_id else slide
        for slide in slides
    ]


def find_duplicate_positions(slides: list[Slide]) -> dict[str, dict[int, list[str]]]:
    """Map wine id -> position -> slide ids for every position used more than once."""
    buckets: dict[str, dict[int, list[str]]] = defaultdict(lambda: defaultdict(list))
    for slide in slides:
        buckets[slide.wine_id][slide.position].append(slide.id)
    conflicts: dict[str, dict[int, list[str]]] = {}
    for wine_id, positions in buckets.items():
        clashing = {position: ids for position, ids in positions.items() if len(ids) > 1}
        if clashing:
            conflicts[wine_id] = clashing
    return conflicts
