"""Position repair helpers used by `tastingdeck doctor` and `tastingdeck normalize`."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from tastingdeck.core.positions import (
    TEMPORARY_POSITION_FLOOR,
    PositionUpdate,
    find_duplicate_positions,
)
from tastingdeck.core.reorder import DEFAULT_RULES, ReorderRules, reorder_wine
from tastingdeck.core.sections import flatten_sections, group_by_stored_section
from tastingdeck.core.slides import Slide, is_package_intro, wine_slides


class IssueKind(str, Enum):
    DUPLICATE = "duplicate"
    NON_POSITIVE = "non_positive"
    TEMPORARY = "temporary"


class PositionIssue(BaseModel):
    wine_id: str
    kind: IssueKind
    position: int
    slide_ids: list[str]

    def describe(self) -> str:
        ids = ", ".join(self.slide_ids)
        if self.kind is IssueKind.DUPLICATE:
            return f"position {self.position} is shared by {ids}"
        if self.kind is IssueKind.NON_POSITIVE:
            return f"{ids} has non-positive position {self.position}"
        return f"{ids} is parked at temporary position {self.position}"


def detect_position_issues(slides: list[Slide]) -> list[PositionIssue]:
    """List every position problem, grouped by wine and sorted for stable output."""
    issues: list[PositionIssue] = []
    for wine_id, positions in find_duplicate_positions(slides).items():
        for position, slide_ids in positions.items():
            issues.append(
                PositionIssue(
                    wine_id=wine_id,
                    kind=IssueKind.DUPLICATE,
                    position=position,
                    slide_ids=sorted(slide_ids),
                )
            )
    for slide in slides:
        if slide.position <= 0:
            kind = IssueKind.NON_POSITIVE
        elif slide.position >= TEMPORARY_POSITION_FLOOR:
            kind = IssueKind.TEMPORARY
        else:
            continue
        issues.append(
            PositionIssue(
                wine_id=slide.wine_id,
                kind=kind,
                position=slide.position,
                slide_ids=[slide.id],
            )
        )
    return sorted(issues, key=lambda issue: (issue.wine_id, issue.position, issue.kind.value))


def rendered_wine_order(slides: list[Slide], wine_id: str, rules: ReorderRules) -> list[str]:
    """Slide ids of a wine as the editor shows them, package intro first."""
    current = wine_slides(slides, wine_id)
    intros = [slide.id for slide in current if is_package_intro(slide)]
    groups = group_by_stored_section(
        current, split=rules.split, legacy_title_match=rules.legacy_title_match
    )
    return intros + [slide.id for slide in flatten_sections(groups)]


def normalize_wine(
    slides: list[Slide],
    wine_id: str,
    rules: ReorderRules = DEFAULT_RULES,
) -> tuple[list[Slide], list[PositionUpdate]]:
    """Renumber a wine in rendered order (welcome, then sections, then position)."""
    return reorder_wine(slides, wine_id, rendered_wine_order(slides, wine_id, rules), rules)
