"""File-backed slide store used by the CLI and tests."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any

from tastingdeck.core.errors import PackageNotFoundError, SlideNotFoundError, WineNotFoundError
from tastingdeck.core.interfaces import (
    AnalyticsProvider,
    AnalyticsSummary,
    SlideStore,
    WineAnalytics,
)
from tastingdeck.core.positions import PositionUpdate, apply_updates, find_duplicate_positions
from tastingdeck.core.project import (
    PACKAGE_STATE_FILE,
    PackageState,
    ResponseRecord,
    load_package_state,
    new_id,
    save_package_state,
)
from tastingdeck.core.slides import (
    EditorData,
    Slide,
    SlideType,
    Wine,
    find_slide,
    find_wine,
    parse_slide,
    wine_slides,
)

logger = logging.getLogger(__name__)


class LocalSlideStore(SlideStore, AnalyticsProvider):
    """Persist a single package to a JSON (or legacy YAML) state file.

    Every write loads the file, validates the change against a copy and only
    then saves, so a rejected call leaves the file untouched.
    """

    def __init__(self, path: Path = PACKAGE_STATE_FILE) -> None:
        self.path = path

    def load(self) -> PackageState:
        return load_package_state(self.path)

    def save(self, state: PackageState) -> None:
        save_package_state(state, self.path)

    async def fetch_editor_data(self, package_code: str) -> EditorData:
        state = self.load()
        if package_code and state.package.code.upper() != package_code.upper():
            raise PackageNotFoundError(package_code)
        return EditorData(package=state.package, wines=state.wines, slides=state.slides)

    async def create_slide(self, slide_data: dict[str, Any]) -> Slide:
        state = self.load()
        slide = parse_slide({**slide_data, "id": new_id()})
        if find_wine(state.wines, slide.wine_id) is None:
            raise WineNotFoundError(slide.wine_id)
        self._check_positions([*state.slides, slide])
        state.slides.append(slide)
        self.save(state)
        logger.debug("Created slide %s in wine %s at %s", slide.id, slide.wine_id, slide.position)
        return slide

    async def update_slide(self, slide_id: str, changes: dict[str, Any]) -> Slide:
        state = self.load()
        current = find_slide(state.slides, slide_id)
        if current is None:
            raise SlideNotFoundError(slide_id)
        merged = current.model_dump(mode="json")
        payload_changes = changes.get("payload")
        merged.update({key: value for key, value in changes.items() if key != "payload"})
        if isinstance(payload_changes, dict):
            merged["payload"] = {**merged.get("payload", {}), **payload_changes}
        merged["id"] = slide_id
        updated = parse_slide(merged)
        slides = [updated if slide.id == slide_id else slide for slide in state.slides]
        self._check_positions(slides)
        state.slides = slides
        self.save(state)
        logger.debug("Updated slide %s (%s)", slide_id, ", ".join(sorted(changes)))
        return updated

    async def delete_slide(self, slide_id: str) -> None:
        state = self.load()
        if find_slide(state.slides, slide_id) is None:
            raise SlideNotFoundError(slide_id)
        state.slides = [slide for slide in state.slides if slide.id != slide_id]
        state.responses = [record for record in state.responses if record.slide_id != slide_id]
        self.save(state)
        logger.debug("Deleted slide %s", slide_id)

    async def reorder_slides(self, updates: list[PositionUpdate]) -> None:
        if not updates:
            return
        state = self.load()
        known_ids = {slide.id for slide in state.slides}
        missing = [update.slide_id for update in updates if update.slide_id not in known_ids]
        if missing:
            raise SlideNotFoundError(missing[0])
        slides = apply_updates(state.slides, updates)
        self._check_positions(slides)
        state.slides = slides
        self.save(state)
        logger.debug("Reordered %d slides", len(updates))

    async def create_wine(self, wine_data: dict[str, Any]) -> Wine:
        state = self.load()
        wine = Wine.model_validate({**wine_data, "id": new_id()})
        if any(existing.position == wine.position for existing in state.wines):
            raise ValueError(f"Wine position {wine.position} is already taken.")
        state.wines.append(wine)
        self.save(state)
        logger.debug("Created wine %s at position %s", wine.id, wine.position)
        return wine

    async def update_wine(self, wine_id: str, changes: dict[str, Any]) -> Wine:
        state = self.load()
        current = find_wine(state.wines, wine_id)
        if current is None:
            raise WineNotFoundError(wine_id)
        updated = Wine.model_validate({**current.model_dump(), **changes, "id": wine_id})
        state.wines = [updated if wine.id == wine_id else wine for wine in state.wines]
        self.save(state)
        return updated

    async def delete_wine(self, wine_id: str) -> None:
        state = self.load()
        if find_wine(state.wines, wine_id) is None:
            raise WineNotFoundError(wine_id)
        removed = {slide.id for slide in state.slides if slide.wine_id == wine_id}
        state.wines = [wine for wine in state.wines if wine.id != wine_id]
        state.slides = [slide for slide in state.slides if slide.wine_id != wine_id]
        state.responses = [record for record in state.responses if record.slide_id not in removed]
        self.save(state)
        logger.debug("Deleted wine %s with %d slides", wine_id, len(removed))

    async def record_response(
        self,
        session_id: str,
        participant_id: str,
        slide_id: str,
        answer: Any,
    ) -> ResponseRecord:
        """Store or replace a participant's answer to a slide."""
        state = self.load()
        if find_slide(state.slides, slide_id) is None:
            raise SlideNotFoundError(slide_id)
        record = ResponseRecord(
            session_id=session_id,
            participant_id=participant_id,
            slide_id=slide_id,
            answer=answer,
            answered_at=datetime.now(timezone.utc),
        )
        state.responses = [
            existing
            for existing in state.responses
            if not (
                existing.participant_id == participant_id
                and existing.session_id == session_id
                and existing.slide_id == slide_id
            )
        ]
        state.responses.append(record)
        self.save(state)
        return record

    async def fetch_participant_analytics(
        self, session_id: str, participant_id: str
    ) -> AnalyticsSummary:
        state = self.load()
        answered_ids = {
            record.slide_id
            for record in state.responses
            if record.session_id == session_id and record.participant_id == participant_id
        }
        wines: list[WineAnalytics] = []
        for wine in sorted(state.wines, key=lambda item: item.position):
            questions = [
                slide
                for slide in wine_slides(state.slides, wine.id)
                if slide.type == SlideType.QUESTION
            ]
            wines.append(
                WineAnalytics(
                    wine_id=wine.id,
                    wine_name=wine.name,
                    answered=sum(1 for slide in questions if slide.id in answered_ids),
                    total_questions=len(questions),
                )
            )
        return AnalyticsSummary(
            session_id=session_id,
            participant_id=participant_id,
            answered=sum(wine.answered for wine in wines),
            total_questions=sum(wine.total_questions for wine in wines),
            wines=wines,
        )

    @staticmethod
    def _check_positions(slides: list[Slide]) -> None:
        conflicts = find_duplicate_positions(slides)
        if conflicts:
            raise ValueError(f"Duplicate slide positions rejected by store: {conflicts}")
