"""Participant traversal of a package: slide sequence, navigation and progress."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
import logging
from typing import Any

from pydantic import BaseModel

from tastingdeck.core.config import DEFAULT_SECTION_SPLIT, GlobalConfig, SectionSplit
from tastingdeck.core.errors import NavigationError
from tastingdeck.core.sections import group_proportional
from tastingdeck.core.slides import (
    SECTION_ORDER,
    SectionType,
    Slide,
    SlideType,
    Wine,
    is_package_intro,
    wine_slides,
)

logger = logging.getLogger(__name__)

_LEGACY_INTRO_TITLES = ("welcome", "your wine tasting")


class SequencedSlide(BaseModel):
    """A slide placed in the traversal, with the wine and section it plays under."""

    slide: Slide
    wine: Wine | None = None
    section: SectionType | None = None
    index_in_wine: int | None = None
    package_intro: bool = False

    @property
    def wine_id(self) -> str | None:
        return self.wine.id if self.wine else None

    @property
    def is_package_intro(self) -> bool:
        return self.package_intro


class NavigationKind(str, Enum):
    ADVANCE = "advance"
    WINE_TRANSITION = "wine_transition"
    SECTION_TRANSITION = "section_transition"
    BACK = "back"
    JUMP = "jump"
    COMPLETE = "complete"


class NavigationEvent(BaseModel):
    kind: NavigationKind
    from_index: int
    to_index: int
    delay_seconds: float = 0.0
    wine_name: str | None = None
    from_section: SectionType | None = None
    to_section: SectionType | None = None


class SectionProgress(BaseModel):
    section: SectionType
    progress: float = 0.0
    is_active: bool = False
    is_completed: bool = False

    @property
    def name(self) -> str:
        return self.section.label


def build_sequence(
    wines: list[Wine],
    slides: list[Slide],
    split: SectionSplit = DEFAULT_SECTION_SPLIT,
    *,
    legacy_intro_match: bool = True,
) -> list[SequencedSlide]:
    """Order a package for playback.

    Package intro slides come first. Each wine then follows in position order,
    split by the proportional classifier into intro, deep dive and ending.
    Stored transition slides are skipped; playback emits its own transitions.
    """
    ordered_wines = sorted(wines, key=lambda wine: wine.position)
    wine_rank = {wine.id: wine.position for wine in ordered_wines}
    wines_by_id = {wine.id: wine for wine in ordered_wines}
    navigable = [slide for slide in slides if slide.type != SlideType.TRANSITION]

    intros = sorted(
        (slide for slide in navigable if is_package_intro(slide)),
        key=lambda slide: (wine_rank.get(slide.wine_id, 0), slide.position, slide.id),
    )
    if not intros and legacy_intro_match and ordered_wines:
        legacy = _legacy_package_intro(navigable, ordered_wines[0])
        if legacy is not None:
            logger.debug("Treating slide %s as the package intro by title", legacy.id)
            intros = [legacy]

    intro_ids = {slide.id for slide in intros}
    # The package intro plays under the wine it is stored against, outside its sections.
    sequence = [
        SequencedSlide(slide=slide, wine=wines_by_id.get(slide.wine_id), package_intro=True)
        for slide in intros
    ]
    content = [slide for slide in navigable if slide.id not in intro_ids]

    for wine in ordered_wines:
        groups = group_proportional(wine_slides(content, wine.id), split)
        ordered = [(section, slide) for section in SECTION_ORDER for slide in groups[section]]
        sequence.extend(
            SequencedSlide(slide=slide, wine=wine, section=section, index_in_wine=index)
            for index, (section, slide) in enumerate(ordered)
        )

    orphans = [slide.id for slide in content if slide.wine_id not in wine_rank]
    if orphans:
        logger.debug("Skipping %d slides without a known wine: %s", len(orphans), orphans)
    return sequence


def _legacy_package_intro(slides: list[Slide], first_wine: Wine) -> Slide | None:
    # Older packages stored the package welcome as the first slide of wine #1,
    # either titled as a welcome or parked at position 1 ahead of the gap numbering.
    candidates = wine_slides(slides, first_wine.id)
    if not candidates:
        return None
    first = candidates[0]
    if first.type != SlideType.INTERLUDE or first.payload.is_welcome:
        return None
    title = first.title.lower()
    if first.position == 1 or any(marker in title for marker in _LEGACY_INTRO_TITLES):
        return first
    return None


class PlaybackSession:
    """Drives one participant through a built sequence.

    A slide counts as completed once the participant leaves it going forward.
    Stepping back drops the slide being left from the completed set; jumping
    leaves completion alone.
    """

    def __init__(
        self,
        sequence: list[SequencedSlide],
        *,
        config: GlobalConfig | None = None,
        on_complete: Callable[[PlaybackSession], None] | None = None,
        on_transition: Callable[[NavigationEvent], None] | None = None,
        on_answer: Callable[[str, Any], None] | None = None,
    ) -> None:
        self.sequence = sequence
        self.config = config or GlobalConfig()
        self.on_complete = on_complete
        self.on_transition = on_transition
        self.on_answer = on_answer
        self.current_index = 0
        self.completed: set[int] = set()
        self.answers: dict[str, Any] = {}
        self.pending_transition: NavigationEvent | None = None
        self.finished = False

    @classmethod
    def for_package(
        cls,
        wines: list[Wine],
        slides: list[Slide],
        *,
        config: GlobalConfig | None = None,
        **callbacks: Any,
    ) -> PlaybackSession:
        config = config or GlobalConfig()
        sequence = build_sequence(
            wines,
            slides,
            config.section_split,
            legacy_intro_match=config.legacy_welcome_title_match,
        )
        return cls(sequence, config=config, **callbacks)

    @property
    def current(self) -> SequencedSlide | None:
        if not self.sequence:
            return None
        return self.sequence[self.current_index]

    def go_next(self) -> NavigationEvent:
        """Advance one slide, reporting any wine or section transition."""
        if self.pending_transition is not None:
            raise NavigationError("Finish the section transition before moving on.")
        if self.finished:
            raise NavigationError("The tasting is already complete.")
        index = self.current_index
        if index >= len(self.sequence) - 1:
            return self._complete(index)

        current, upcoming = self.sequence[index], self.sequence[index + 1]
        if current.wine_id != upcoming.wine_id:
            event = NavigationEvent(
                kind=NavigationKind.WINE_TRANSITION,
                from_index=index,
                to_index=index + 1,
                delay_seconds=self.config.wine_transition_seconds,
                wine_name=upcoming.wine.name if upcoming.wine else None,
                from_section=current.section,
                to_section=upcoming.section,
            )
            self._advance(index)
            self._notify(event)
            return event

        if (
            not current.is_package_intro
            and current.section != upcoming.section
            and self._is_last_of_section(index)
        ):
            event = NavigationEvent(
                kind=NavigationKind.SECTION_TRANSITION,
                from_index=index,
                to_index=index + 1,
                wine_name=current.wine.name if current.wine else None,
                from_section=current.section,
                to_section=upcoming.section,
            )
            self.pending_transition = event
            self._notify(event)
            return event

        event = NavigationEvent(
            kind=NavigationKind.ADVANCE,
            from_index=index,
            to_index=index + 1,
            delay_seconds=self.config.advance_debounce_seconds,
        )
        self._advance(index)
        return event

    def finish_section_transition(self) -> NavigationEvent:
        """Called once the section transition has played; moves to the next slide."""
        event = self.pending_transition
        if event is None:
            raise NavigationError("No section transition is playing.")
        self.pending_transition = None
        self._advance(event.from_index)
        return event

    def go_previous(self) -> NavigationEvent | None:
        """Step back one slide immediately. Returns None on the first slide."""
        self.pending_transition = None
        if self.current_index == 0 or not self.sequence:
            return None
        self.finished = False
        from_index = self.current_index
        self.completed.discard(from_index)
        self.current_index -= 1
        return NavigationEvent(
            kind=NavigationKind.BACK, from_index=from_index, to_index=self.current_index
        )

    def jump_to(self, index: int) -> NavigationEvent:
        if not 0 <= index < len(self.sequence):
            raise NavigationError(f"Slide index {index} is outside 0..{len(self.sequence) - 1}.")
        self.pending_transition = None
        self.finished = False
        from_index = self.current_index
        self.current_index = index
        return NavigationEvent(kind=NavigationKind.JUMP, from_index=from_index, to_index=index)

    def record_answer(self, slide_id: str, answer: Any) -> None:
        self.answers[slide_id] = answer
        if self.on_answer is not None:
            self.on_answer(slide_id, answer)

    def section_progress(self) -> list[SectionProgress]:
        """Progress of each section of the wine currently being tasted."""
        current = self.current
        if current is None or current.wine is None or current.is_package_intro:
            return [SectionProgress(section=section) for section in SECTION_ORDER]

        wine_indexes = [
            index
            for index, entry in enumerate(self.sequence)
            if entry.wine_id == current.wine_id and not entry.is_package_intro
        ]
        position = self.current_index
        wine_done = wine_indexes[-1] in self.completed

        progress: list[SectionProgress] = []
        for section in SECTION_ORDER:
            indexes = [i for i in wine_indexes if self.sequence[i].section == section]
            if not indexes:
                progress.append(
                    SectionProgress(
                        section=section,
                        progress=100.0 if wine_done else 0.0,
                        is_completed=wine_done,
                    )
                )
                continue
            first, last = indexes[0], indexes[-1]
            is_active = first <= position <= last
            # Reaching the last slide is not enough; it has to be left going forward.
            is_completed = position > last or last in self.completed
            if is_completed:
                value = 100.0
            elif is_active:
                value = min(95.0, (position - first) / len(indexes) * 100)
            else:
                value = 0.0
            progress.append(
                SectionProgress(
                    section=section,
                    progress=value,
                    is_active=is_active,
                    is_completed=is_completed,
                )
            )
        return progress

    def overall_progress(self) -> float:
        if not self.sequence:
            return 100.0 if self.finished else 0.0
        return round(len(self.completed) / len(self.sequence) * 100, 1)

    def _is_last_of_section(self, index: int) -> bool:
        entry = self.sequence[index]
        same_section = [
            i
            for i, other in enumerate(self.sequence)
            if other.wine_id == entry.wine_id
            and other.section == entry.section
            and not other.is_package_intro
        ]
        return bool(same_section) and same_section[-1] == index

    def _advance(self, from_index: int) -> None:
        self.completed.add(from_index)
        self.current_index = from_index + 1

    def _complete(self, index: int) -> NavigationEvent:
        if self.sequence:
            self.completed.add(index)
        self.finished = True
        event = NavigationEvent(kind=NavigationKind.COMPLETE, from_index=index, to_index=index)
        if self.on_complete is not None:
            self.on_complete(self)
        return event

    def _notify(self, event: NavigationEvent) -> None:
        if self.on_transition is not None:
            self.on_transition(event)
