"""Section assignment for the slides of a wine.

Two groupings exist:

* authoring (:func:`group_by_stored_section`) trusts each slide's stored
  ``section_type`` and only derives a section for slides that have none;
* playback (:func:`classify_proportional`) ignores stored metadata and splits
  every wine the same way, so progress accounting is consistent across wines.

Both render a wine as intro -> deep dive -> ending, ascending position inside
each section.
"""

from __future__ import annotations

from fractions import Fraction
import math
from typing import NamedTuple

from tastingdeck.core.config import DEFAULT_SECTION_SPLIT, SectionSplit
from tastingdeck.core.slides import (
    SECTION_ORDER,
    SectionType,
    Slide,
    is_package_intro,
    is_welcome_slide,
    sort_by_position,
)


class SectionCounts(NamedTuple):
    intro: int
    deep_dive: int
    ending: int


def section_counts(total: int, split: SectionSplit = DEFAULT_SECTION_SPLIT) -> SectionCounts:
    """Return how many of ``total`` slides fall in each section.

    ``intro = ceil(total * split.intro)`` and ``deep_dive = ceil(total *
    split.deep_dive)``, each clipped to what is left so ``ending`` is never
    negative. Shares are evaluated as exact fractions, so 15 slides split
    6/6/3 and 35 split 14/14/7. Float arithmetic gives 7/7/1 and 15/15/5 for
    those totals, because ``15 * 0.4`` evaluates to ``6.000000000000001`` and
    rounds up. Older players that compute the share in floats will disagree
    at these sizes.
    """
    if total <= 0:
        return SectionCounts(0, 0, 0)
    intro = min(total, _ceil_share(total, split.intro))
    deep_dive = min(total - intro, _ceil_share(total, split.deep_dive))
    return SectionCounts(intro, deep_dive, total - intro - deep_dive)


def classify_proportional(
    wine_slides: list[Slide],
    split: SectionSplit = DEFAULT_SECTION_SPLIT,
) -> dict[str, SectionType]:
    """Assign sections by rank: first slides are intro, then deep dive, then ending."""
    ordered = sort_by_position(wine_slides)
    counts = section_counts(len(ordered), split)
    sections: dict[str, SectionType] = {}
    for index, slide in enumerate(ordered):
        if index < counts.intro:
            sections[slide.id] = SectionType.INTRO
        elif index < counts.intro + counts.deep_dive:
            sections[slide.id] = SectionType.DEEP_DIVE
        else:
            sections[slide.id] = SectionType.ENDING
    return sections


def resolve_stored_sections(
    wine_slides: list[Slide],
    split: SectionSplit = DEFAULT_SECTION_SPLIT,
) -> dict[str, SectionType]:
    """Return each slide's authoring section.

    Stored ``section_type`` wins; slides without one take the section the
    proportional split gives them within the wine.
    """
    derived: dict[str, SectionType] | None = None
    sections: dict[str, SectionType] = {}
    for slide in wine_slides:
        if slide.section_type is not None:
            sections[slide.id] = SectionType(slide.section_type)
            continue
        if derived is None:
            derived = classify_proportional(wine_slides, split)
        sections[slide.id] = derived[slide.id]
    return sections


def group_by_stored_section(
    wine_slides: list[Slide],
    *,
    split: SectionSplit = DEFAULT_SECTION_SPLIT,
    legacy_title_match: bool = True,
) -> dict[SectionType, list[Slide]]:
    """Group one wine's slides for the editor.

    Package intro slides are left out: they are stored against the first wine
    but do not belong to its sections. Welcome slides lead the intro section.
    """
    owned = [slide for slide in wine_slides if not is_package_intro(slide)]
    sections = resolve_stored_sections(owned, split)
    groups: dict[SectionType, list[Slide]] = {section: [] for section in SECTION_ORDER}
    for slide in sort_by_position(owned):
        groups[sections[slide.id]].append(slide)
    groups[SectionType.INTRO].sort(
        key=lambda slide: (
            not is_welcome_slide(slide, legacy_title_match=legacy_title_match),
            slide.position,
            slide.id,
        )
    )
    return groups


def group_proportional(
    wine_slides: list[Slide],
    split: SectionSplit = DEFAULT_SECTION_SPLIT,
) -> dict[SectionType, list[Slide]]:
    """Group one wine's slides using the playback split."""
    sections = classify_proportional(wine_slides, split)
    groups: dict[SectionType, list[Slide]] = {section: [] for section in SECTION_ORDER}
    for slide in sort_by_position(wine_slides):
        groups[sections[slide.id]].append(slide)
    return groups


def flatten_sections(groups: dict[SectionType, list[Slide]]) -> list[Slide]:
    """Concatenate grouped slides in intro -> deep dive -> ending order."""
    return [slide for section in SECTION_ORDER for slide in groups.get(section, [])]


def _ceil_share(total: int, share: float) -> int:
    return math.ceil(Fraction(str(share)) * total)
