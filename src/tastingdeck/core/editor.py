"""Editor session: local slide state kept in step with a :class:`SlideStore`.

``slides`` is the last state known to be persisted; ``local_slides`` is the
working copy. Reorders are applied to ``local_slides`` first and their diff is
sent to the store straight away. Reorders are never batched into a later save:
each one is computed from the current local list, so two moves issued back to
back compose even while the first call is still in flight.
Store calls for reorders go out one at a time; a reorder queued behind one
that failed is dropped rather than applied to the reloaded state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from enum import Enum
import logging
from typing import Any, TypeVar

from tastingdeck.core.config import GlobalConfig
from tastingdeck.core.errors import (
    EditorStateError,
    PersistenceError,
    SlideNotFoundError,
    SlideValidationError,
    WelcomeSlideDeleteError,
    WineNotFoundError,
)
from tastingdeck.core.interfaces import SlideStore
from tastingdeck.core.maintenance import normalize_wine
from tastingdeck.core.positions import (
    PositionUpdate,
    apply_updates,
    next_position,
    position_diff,
)
from tastingdeck.core.reorder import (
    MoveDirection,
    ReorderResult,
    ReorderRules,
    check_unique_positions,
    drop_slide,
    move_slide,
)
from tastingdeck.core.sections import flatten_sections, group_by_stored_section
from tastingdeck.core.slides import (
    Package,
    SectionType,
    Slide,
    SlideType,
    Wine,
    find_slide,
    find_wine,
    is_welcome_slide,
    parse_slide,
    wine_slides,
)
from tastingdeck.core.templates import WELCOME_TEMPLATE_ID, instantiate_template

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EditorState(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    DIRTY = "dirty"
    SAVING = "saving"


class EditorSession:
    """Editing state for one package."""

    def __init__(
        self,
        store: SlideStore,
        package_code: str,
        *,
        config: GlobalConfig | None = None,
    ) -> None:
        self.store = store
        self.package_code = package_code
        self.config = config or GlobalConfig()
        self.rules = ReorderRules(
            step=self.config.position_step,
            split=self.config.section_split,
            legacy_title_match=self.config.legacy_welcome_title_match,
        )
        self.state = EditorState.UNLOADED
        self.package: Package | None = None
        self.wines: list[Wine] = []
        self.slides: list[Slide] = []
        self.local_slides: list[Slide] = []
        self.needs_reconcile = False
        self._reorder_lock = asyncio.Lock()
        self._reorder_generation = 0

    # -- loading -----------------------------------------------------------

    async def load(self) -> None:
        """Fetch the package and reset local state to match the store."""
        if self.state is EditorState.SAVING:
            raise EditorStateError("Cannot reload while a save is in flight.")
        data = await self._call("Loading package", self.store.fetch_editor_data(self.package_code))
        self.package = data.package
        self.wines = sorted(data.wines, key=lambda wine: wine.position)
        self.slides = list(data.slides)
        self.local_slides = list(data.slides)
        self.needs_reconcile = False
        self._reorder_generation += 1
        self.state = EditorState.LOADED
        logger.debug(
            "Loaded package %s: %d wines, %d slides",
            self.package.code,
            len(self.wines),
            len(self.slides),
        )

    async def reload(self) -> None:
        """Discard local edits and refetch from the store."""
        await self.load()

    # -- read helpers ------------------------------------------------------

    def wine_slides(self, wine_id: str) -> list[Slide]:
        return wine_slides(self.local_slides, wine_id)

    def grouped_sections(self, wine_id: str) -> dict[SectionType, list[Slide]]:
        """Authoring grouping of a wine, driven by stored section metadata."""
        return group_by_stored_section(
            self.wine_slides(wine_id),
            split=self.rules.split,
            legacy_title_match=self.rules.legacy_title_match,
        )

    def rendered_order(self, wine_id: str) -> list[Slide]:
        return flatten_sections(self.grouped_sections(wine_id))

    def pending_changes(self) -> list[str]:
        """Ids of slides whose local copy differs from the synced one."""
        synced = {slide.id: slide for slide in self.slides}
        local = {slide.id: slide for slide in self.local_slides}
        changed = [
            slide_id
            for slide_id, slide in local.items()
            if slide_id not in synced or synced[slide_id] != slide
        ]
        changed.extend(slide_id for slide_id in synced if slide_id not in local)
        return changed

    def welcome_slides(self, wine_id: str) -> list[Slide]:
        return [
            slide
            for slide in self.wine_slides(wine_id)
            if is_welcome_slide(slide, legacy_title_match=self.rules.legacy_title_match)
        ]

    # -- reordering --------------------------------------------------------

    async def move_slide(
        self, slide_id: str, direction: MoveDirection | str
    ) -> list[PositionUpdate]:
        """Move a slide one step and persist the resulting diff immediately."""
        self._require_reorderable()
        result = move_slide(self.local_slides, slide_id, direction, self.rules)
        return await self._commit_reorder(result)

    async def drop_slide(self, active_id: str, over_id: str) -> list[PositionUpdate]:
        """Drag-and-drop: place ``active_id`` where ``over_id`` is and persist."""
        self._require_reorderable()
        result = drop_slide(self.local_slides, active_id, over_id, self.rules)
        return await self._commit_reorder(result)

    async def normalize_wine(self, wine_id: str) -> list[PositionUpdate]:
        """Renumber a wine in its rendered order and persist the diff."""
        self._require_reorderable()
        self._require_wine(wine_id)
        slides, updates = normalize_wine(self.local_slides, wine_id, self.rules)
        return await self._commit_positions(wine_id, slides, updates)

    async def _commit_reorder(self, result: ReorderResult) -> list[PositionUpdate]:
        return await self._commit_positions(result.wine_id, result.slides, result.updates)

    async def _commit_positions(
        self,
        wine_id: str,
        slides: list[Slide],
        updates: list[PositionUpdate],
    ) -> list[PositionUpdate]:
        if not updates:
            return []
        self.local_slides = slides
        # Diffs are built on the local list, so each one assumes every earlier
        # reorder landed. They reach the store one at a time, in issue order.
        generation = self._reorder_generation
        async with self._reorder_lock:
            if generation != self._reorder_generation:
                logger.warning("Discarding reorder of wine %s queued behind a rollback", wine_id)
                raise EditorStateError(
                    "An earlier reorder failed and was rolled back; this move was discarded."
                )
            try:
                await self.store.reorder_slides(updates)
            except Exception as exc:
                logger.warning("Reordering wine %s failed; rolling back", wine_id)
                self._reorder_generation += 1
                self.local_slides = list(self.slides)
                self.needs_reconcile = True
                await self._reconcile()
                raise PersistenceError("Reordering slides", exc) from exc
            self.slides = apply_updates(self.slides, updates)
            self._refresh_state()
        logger.debug("Persisted %d position updates for wine %s", len(updates), wine_id)
        return updates

    async def _reconcile(self) -> None:
        try:
            await self.load()
        except PersistenceError:
            logger.warning("Reload after failed reorder also failed; reorders stay blocked")

    def set_local_position(self, slide_id: str, position: int) -> None:
        """Edit a position in the working copy only; persisted by :meth:`save_order`."""
        self._require_loaded()
        if find_slide(self.local_slides, slide_id) is None:
            raise SlideNotFoundError(slide_id)
        self.local_slides = [
            slide.model_copy(update={"position": position}) if slide.id == slide_id else slide
            for slide in self.local_slides
        ]
        self._refresh_state()

    async def save_order(self) -> list[PositionUpdate]:
        """Submit every local position edit in one atomic store call.

        Duplicate positions inside a wine abort the save before the store is
        contacted. Resubmitting unchanged state sends nothing.
        """
        self._require_loaded()
        if self.state is EditorState.SAVING:
            raise EditorStateError("A save is already in progress.")
        if self._reorder_lock.locked():
            raise EditorStateError("Wait for the pending reorder to finish before saving.")
        check_unique_positions(self.local_slides, self.wines)
        updates = position_diff(self.slides, self.local_slides)
        if not updates:
            self._refresh_state()
            return []
        self.state = EditorState.SAVING
        try:
            await self.store.reorder_slides(updates)
        except Exception as exc:
            self.state = EditorState.DIRTY
            logger.warning("Saving slide order failed; local edits kept")
            raise PersistenceError("Saving slide order", exc) from exc
        self.slides = apply_updates(self.slides, updates)
        self.state = EditorState.LOADED
        self._refresh_state()
        return updates

    # -- slides ------------------------------------------------------------

    async def add_slide(
        self,
        wine_id: str,
        slide_type: SlideType | str,
        payload: dict[str, Any] | None = None,
        *,
        section_type: SectionType | str | None = None,
    ) -> Slide:
        """Create a slide at the end of a wine."""
        self._require_loaded()
        self._require_wine(wine_id)
        position = next_position(
            self.wine_slides(wine_id),
            base=self.config.position_base,
            step=self.config.position_step,
        )
        data = {
            "wine_id": wine_id,
            "position": position,
            "type": SlideType(slide_type).value,
            "section_type": SectionType(section_type).value if section_type else None,
            "payload": payload or {},
        }
        slide = await self._call("Creating slide", self.store.create_slide(data))
        self.slides.append(slide)
        self.local_slides.append(slide)
        return slide

    async def add_from_template(self, wine_id: str, template_id: str) -> Slide:
        wine = self._require_wine(wine_id)
        data = instantiate_template(template_id, wine.name)
        return await self.add_slide(
            wine_id,
            data["type"],
            data["payload"],
            section_type=data["section_type"],
        )

    async def update_slide(self, slide_id: str, **changes: Any) -> Slide:
        """Edit slide content optimistically; reverted if the store rejects it."""
        self._require_loaded()
        if "position" in changes:
            raise SlideValidationError(
                "Positions change through move, drop or save-order, not content edits."
            )
        current = find_slide(self.local_slides, slide_id)
        if current is None:
            raise SlideNotFoundError(slide_id)
        merged = current.model_dump(mode="json")
        payload_changes = changes.get("payload")
        merged.update({key: value for key, value in changes.items() if key != "payload"})
        if isinstance(payload_changes, dict):
            merged["payload"] = {**merged["payload"], **payload_changes}
        candidate = parse_slide(merged)
        self._check_keeps_welcome(current, candidate)

        self._replace_local(candidate)
        try:
            updated = await self.store.update_slide(slide_id, changes)
        except Exception as exc:
            self._replace_local(current)
            logger.warning("Updating slide %s failed; change reverted", slide_id)
            raise PersistenceError("Updating slide", exc) from exc
        self._replace_local(updated)
        self.slides = [updated if slide.id == slide_id else slide for slide in self.slides]
        self._refresh_state()
        return updated

    async def delete_slide(self, slide_id: str) -> None:
        """Delete a slide unless it is its wine's only welcome slide."""
        self._require_loaded()
        target = find_slide(self.local_slides, slide_id)
        if target is None:
            raise SlideNotFoundError(slide_id)
        if is_welcome_slide(target, legacy_title_match=self.rules.legacy_title_match):
            if len(self.welcome_slides(target.wine_id)) <= 1:
                wine = find_wine(self.wines, target.wine_id)
                raise WelcomeSlideDeleteError(slide_id, wine.name if wine else target.wine_id)

        previous = self.local_slides
        self.local_slides = [slide for slide in previous if slide.id != slide_id]
        try:
            await self.store.delete_slide(slide_id)
        except Exception as exc:
            self.local_slides = previous
            logger.warning("Deleting slide %s failed; slide restored", slide_id)
            raise PersistenceError("Deleting slide", exc) from exc
        self.slides = [slide for slide in self.slides if slide.id != slide_id]
        self._refresh_state()

    # -- wines -------------------------------------------------------------

    async def create_wine(
        self,
        name: str,
        description: str | None = None,
        *,
        with_welcome: bool = True,
    ) -> Wine:
        """Append a wine to the package, by default with its welcome slide."""
        self._require_loaded()
        position = max((wine.position for wine in self.wines), default=0) + 1
        wine = await self._call(
            "Creating wine",
            self.store.create_wine({"name": name, "description": description, "position": position}),
        )
        self.wines.append(wine)
        if with_welcome:
            await self.add_from_template(wine.id, WELCOME_TEMPLATE_ID)
        return wine

    async def update_wine(self, wine_id: str, **changes: Any) -> Wine:
        self._require_loaded()
        current = self._require_wine(wine_id)
        if "position" in changes:
            raise SlideValidationError("Wine positions are managed by the package.")
        self.wines = [
            current.model_copy(update=changes) if wine.id == wine_id else wine
            for wine in self.wines
        ]
        try:
            updated = await self.store.update_wine(wine_id, changes)
        except Exception as exc:
            self.wines = [current if wine.id == wine_id else wine for wine in self.wines]
            logger.warning("Updating wine %s failed; change reverted", wine_id)
            raise PersistenceError("Updating wine", exc) from exc
        self.wines = [updated if wine.id == wine_id else wine for wine in self.wines]
        return updated

    async def delete_wine(self, wine_id: str) -> None:
        """Delete a wine with its slides and close the gap in wine positions."""
        self._require_loaded()
        self._require_wine(wine_id)
        previous_wines, previous_local = self.wines, self.local_slides
        self.wines = [wine for wine in self.wines if wine.id != wine_id]
        self.local_slides = [slide for slide in self.local_slides if slide.wine_id != wine_id]
        try:
            await self.store.delete_wine(wine_id)
        except Exception as exc:
            self.wines, self.local_slides = previous_wines, previous_local
            raise PersistenceError("Deleting wine", exc) from exc
        self.slides = [slide for slide in self.slides if slide.wine_id != wine_id]

        # Ascending order: each wine moves into a slot that is already free.
        for index, wine in enumerate(sorted(self.wines, key=lambda item: item.position), start=1):
            if wine.position == index:
                continue
            updated = await self._call(
                "Renumbering wines", self.store.update_wine(wine.id, {"position": index})
            )
            self.wines = [updated if item.id == wine.id else item for item in self.wines]
        self.wines.sort(key=lambda wine: wine.position)
        self._refresh_state()

    # -- internals ---------------------------------------------------------

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except Exception as exc:
            logger.warning("%s failed: %s", operation, exc)
            raise PersistenceError(operation, exc) from exc

    def _check_keeps_welcome(self, current: Slide, candidate: Slide) -> None:
        legacy = self.rules.legacy_title_match
        if not is_welcome_slide(current, legacy_title_match=legacy):
            return
        if is_welcome_slide(candidate, legacy_title_match=legacy):
            return
        if len(self.welcome_slides(current.wine_id)) <= 1:
            raise SlideValidationError(
                f"Slide '{current.id}' is the only welcome slide of its wine; it must stay an "
                "intro interlude marked as welcome."
            )

    def _replace_local(self, replacement: Slide) -> None:
        self.local_slides = [
            replacement if slide.id == replacement.id else slide for slide in self.local_slides
        ]

    def _require_loaded(self) -> None:
        if self.state is EditorState.UNLOADED:
            raise EditorStateError("The editor has not loaded a package yet.")

    def _require_reorderable(self) -> None:
        self._require_loaded()
        if self.needs_reconcile:
            raise EditorStateError(
                "A previous reorder failed and the package could not be reloaded; reload first."
            )
        if self.state is EditorState.SAVING:
            raise EditorStateError("Wait for the current save to finish before reordering.")

    def _require_wine(self, wine_id: str) -> Wine:
        wine = find_wine(self.wines, wine_id)
        if wine is None:
            raise WineNotFoundError(wine_id)
        return wine

    def _refresh_state(self) -> None:
        if self.state in (EditorState.UNLOADED, EditorState.SAVING):
            return
        self.state = EditorState.DIRTY if self.pending_changes() else EditorState.LOADED
