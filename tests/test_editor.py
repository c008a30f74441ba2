from __future__ import annotations

import asyncio
from typing import Any

import pytest

from tastingdeck.core.editor import EditorSession, EditorState
from tastingdeck.core.errors import (
    EditorStateError,
    PersistenceError,
    PositionConflictError,
    SlideValidationError,
    WelcomeSlideDeleteError,
)
from tastingdeck.core.interfaces import SlideStore
from tastingdeck.core.positions import PositionUpdate, apply_updates, find_duplicate_positions
from tastingdeck.core.slides import (
    EditorData,
    Package,
    Slide,
    Wine,
    build_slide,
    find_slide,
    parse_slide,
    wine_slides,
)


class FakeSlideStore(SlideStore):
    """In-memory store that records calls and can be told to fail or stall."""

    def __init__(self, wines: list[Wine], slides: list[Slide]) -> None:
        self.package = Package(code="AUTUMN", name="Autumn Reds")
        self.wines = list(wines)
        self.slides = list(slides)
        self.calls: list[tuple[str, Any]] = []
        self.failing: set[str] = set()
        self.fail_once: set[str] = set()
        self.gate: asyncio.Event | None = None
        self._next_id = 0

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_once:
            self.fail_once.discard(operation)
            raise RuntimeError(f"{operation}: connection reset")
        if operation in self.failing:
            raise RuntimeError(f"{operation}: connection reset")

    async def fetch_editor_data(self, package_code: str) -> EditorData:
        self.calls.append(("fetch", package_code))
        self._maybe_fail("fetch")
        return EditorData(package=self.package, wines=self.wines, slides=self.slides)

    async def create_slide(self, slide_data: dict[str, Any]) -> Slide:
        self.calls.append(("create_slide", slide_data))
        self._maybe_fail("create_slide")
        self._next_id += 1
        slide = parse_slide({**slide_data, "id": f"new-{self._next_id}"})
        self.slides.append(slide)
        return slide

    async def update_slide(self, slide_id: str, changes: dict[str, Any]) -> Slide:
        self.calls.append(("update_slide", slide_id))
        self._maybe_fail("update_slide")
        current = find_slide(self.slides, slide_id)
        assert current is not None
        merged = current.model_dump(mode="json")
        merged["payload"] = {**merged["payload"], **changes.get("payload", {})}
        updated = parse_slide(merged)
        self.slides = [updated if slide.id == slide_id else slide for slide in self.slides]
        return updated

    async def delete_slide(self, slide_id: str) -> None:
        self.calls.append(("delete_slide", slide_id))
        self._maybe_fail("delete_slide")
        self.slides = [slide for slide in self.slides if slide.id != slide_id]

    async def reorder_slides(self, updates: list[PositionUpdate]) -> None:
        self.calls.append(("reorder", list(updates)))
        if self.gate is not None:
            await self.gate.wait()
        self._maybe_fail("reorder")
        self.slides = apply_updates(self.slides, updates)

    async def create_wine(self, wine_data: dict[str, Any]) -> Wine:
        self.calls.append(("create_wine", wine_data))
        self._next_id += 1
        wine = Wine.model_validate({**wine_data, "id": f"wine-{self._next_id}"})
        self.wines.append(wine)
        return wine

    async def update_wine(self, wine_id: str, changes: dict[str, Any]) -> Wine:
        self.calls.append(("update_wine", (wine_id, changes)))
        self._maybe_fail("update_wine")
        current = next(wine for wine in self.wines if wine.id == wine_id)
        updated = current.model_copy(update=changes)
        self.wines = [updated if wine.id == wine_id else wine for wine in self.wines]
        return updated

    async def delete_wine(self, wine_id: str) -> None:
        self.calls.append(("delete_wine", wine_id))
        self.wines = [wine for wine in self.wines if wine.id != wine_id]
        self.slides = [slide for slide in self.slides if slide.wine_id != wine_id]

    def calls_named(self, name: str) -> list[Any]:
        return [args for call, args in self.calls if call == name]


def _slide(
    slide_id: str,
    position: int,
    *,
    wine_id: str = "w1",
    welcome: bool = False,
    section: str | None = None,
) -> Slide:
    if welcome:
        return build_slide(
            slide_id=slide_id,
            wine_id=wine_id,
            position=position,
            slide_type="interlude",
            section_type="intro",
            payload={"title": "Welcome to Barolo", "is_welcome": True},
        )
    return build_slide(
        slide_id=slide_id,
        wine_id=wine_id,
        position=position,
        slide_type="question",
        section_type=section,
        payload={"title": f"Question {slide_id}"},
    )


def _seed_store() -> FakeSlideStore:
    wines = [
        Wine(id="w1", name="Barolo 2016", position=1),
        Wine(id="w2", name="Chianti Classico", position=2),
    ]
    slides = [
        _slide("welcome", 10, welcome=True),
        _slide("a", 20),
        _slide("b", 30),
        _slide("c", 40),
        _slide("w2-welcome", 10, wine_id="w2", welcome=True),
    ]
    return FakeSlideStore(wines, slides)


async def _loaded(store: FakeSlideStore) -> EditorSession:
    session = EditorSession(store, "AUTUMN")
    await session.load()
    return session


def _order(session: EditorSession, wine_id: str = "w1") -> list[str]:
    return [slide.id for slide in session.wine_slides(wine_id)]


@pytest.mark.asyncio
async def test_load_populates_synced_and_local_state() -> None:
    store = _seed_store()

    session = await _loaded(store)

    assert session.state is EditorState.LOADED
    assert session.package is not None and session.package.code == "AUTUMN"
    assert [wine.id for wine in session.wines] == ["w1", "w2"]
    assert session.local_slides == session.slides


@pytest.mark.asyncio
async def test_operations_require_a_loaded_session() -> None:
    session = EditorSession(_seed_store(), "AUTUMN")

    with pytest.raises(EditorStateError):
        await session.move_slide("a", "down")


@pytest.mark.asyncio
async def test_deleting_only_welcome_slide_is_refused_without_store_call() -> None:
    store = _seed_store()
    session = await _loaded(store)

    with pytest.raises(WelcomeSlideDeleteError, match="Barolo 2016"):
        await session.delete_slide("welcome")

    assert len(session.wine_slides("w1")) == 4
    assert store.calls_named("delete_slide") == []


@pytest.mark.asyncio
async def test_deleting_a_second_welcome_slide_is_allowed() -> None:
    store = _seed_store()
    store.slides.append(_slide("welcome-2", 50, welcome=True))
    session = await _loaded(store)

    await session.delete_slide("welcome-2")

    assert store.calls_named("delete_slide") == ["welcome-2"]
    assert "welcome-2" not in _order(session)


@pytest.mark.asyncio
async def test_failed_delete_restores_the_slide() -> None:
    store = _seed_store()
    store.failing.add("delete_slide")
    session = await _loaded(store)

    with pytest.raises(PersistenceError):
        await session.delete_slide("b")

    assert _order(session) == ["welcome", "a", "b", "c"]


@pytest.mark.asyncio
async def test_move_persists_diff_immediately() -> None:
    store = _seed_store()
    session = await _loaded(store)

    updates = await session.move_slide("c", "up")

    assert updates == [
        PositionUpdate(slide_id="c", position=30),
        PositionUpdate(slide_id="b", position=40),
    ]
    assert store.calls_named("reorder") == [updates]
    assert _order(session) == ["welcome", "a", "c", "b"]
    assert session.slides == session.local_slides
    assert session.state is EditorState.LOADED


@pytest.mark.asyncio
async def test_back_to_back_reorders_compose_while_first_is_in_flight() -> None:
    store = _seed_store()
    store.gate = asyncio.Event()
    session = await _loaded(store)

    first = asyncio.create_task(session.move_slide("c", "up"))
    await asyncio.sleep(0)
    second = asyncio.create_task(session.move_slide("c", "up"))
    await asyncio.sleep(0)
    store.gate.set()
    first_updates, second_updates = await asyncio.gather(first, second)

    assert first_updates == [
        PositionUpdate(slide_id="c", position=30),
        PositionUpdate(slide_id="b", position=40),
    ]
    assert second_updates == [
        PositionUpdate(slide_id="c", position=20),
        PositionUpdate(slide_id="a", position=30),
    ]
    assert store.calls_named("reorder") == [first_updates, second_updates]
    assert _order(session) == ["welcome", "c", "a", "b"]
    assert [slide.id for slide in wine_slides(store.slides, "w1")] == ["welcome", "c", "a", "b"]
    assert session.state is EditorState.LOADED


@pytest.mark.asyncio
async def test_failed_reorder_rolls_back_and_reloads() -> None:
    store = _seed_store()
    store.failing.add("reorder")
    session = await _loaded(store)

    with pytest.raises(PersistenceError):
        await session.move_slide("c", "up")

    assert _order(session) == ["welcome", "a", "b", "c"]
    assert len(store.calls_named("fetch")) == 2
    assert session.needs_reconcile is False
    assert session.state is EditorState.LOADED


@pytest.mark.asyncio
async def test_reorder_queued_behind_a_failed_one_is_discarded() -> None:
    store = _seed_store()
    store.gate = asyncio.Event()
    store.fail_once.add("reorder")
    session = await _loaded(store)

    first = asyncio.create_task(session.move_slide("c", "up"))
    await asyncio.sleep(0)
    second = asyncio.create_task(session.move_slide("c", "up"))
    await asyncio.sleep(0)
    store.gate.set()
    first_result, second_result = await asyncio.gather(first, second, return_exceptions=True)

    assert isinstance(first_result, PersistenceError)
    assert isinstance(second_result, EditorStateError)
    assert len(store.calls_named("reorder")) == 1
    assert find_duplicate_positions(store.slides) == {}
    assert _order(session) == ["welcome", "a", "b", "c"]
    assert session.slides == session.local_slides
    assert session.state is EditorState.LOADED

    await session.move_slide("c", "up")
    assert [slide.id for slide in wine_slides(store.slides, "w1")] == ["welcome", "a", "c", "b"]


@pytest.mark.asyncio
async def test_save_order_waits_for_pending_reorder() -> None:
    store = _seed_store()
    store.gate = asyncio.Event()
    session = await _loaded(store)

    move = asyncio.create_task(session.move_slide("c", "up"))
    await asyncio.sleep(0)

    with pytest.raises(EditorStateError):
        await session.save_order()

    store.gate.set()
    await move
    assert len(store.calls_named("reorder")) == 1


@pytest.mark.asyncio
async def test_reorders_blocked_until_reconciled() -> None:
    store = _seed_store()
    session = await _loaded(store)
    store.failing.update({"reorder", "fetch"})

    with pytest.raises(PersistenceError):
        await session.move_slide("c", "up")
    assert session.needs_reconcile is True

    with pytest.raises(EditorStateError):
        await session.move_slide("b", "up")

    store.failing.clear()
    await session.reload()
    assert session.needs_reconcile is False
    await session.move_slide("b", "up")
    assert _order(session) == ["welcome", "b", "a", "c"]


@pytest.mark.asyncio
async def test_move_refusal_leaves_store_untouched() -> None:
    store = _seed_store()
    session = await _loaded(store)

    with pytest.raises(SlideValidationError):
        await session.move_slide("a", "up")

    assert store.calls_named("reorder") == []
    assert session.state is EditorState.LOADED


@pytest.mark.asyncio
async def test_drop_persists_array_move() -> None:
    store = _seed_store()
    session = await _loaded(store)

    await session.drop_slide("a", "c")

    assert _order(session) == ["welcome", "b", "c", "a"]
    assert [slide.id for slide in wine_slides(store.slides, "w1")] == ["welcome", "b", "c", "a"]


@pytest.mark.asyncio
async def test_save_order_rejects_duplicate_positions_before_store_call() -> None:
    store = _seed_store()
    session = await _loaded(store)
    session.set_local_position("c", 20)

    with pytest.raises(PositionConflictError, match="Barolo 2016"):
        await session.save_order()

    assert store.calls_named("reorder") == []
    assert session.state is EditorState.DIRTY


@pytest.mark.asyncio
async def test_save_order_sends_one_batch_and_is_idempotent() -> None:
    store = _seed_store()
    session = await _loaded(store)
    session.set_local_position("c", 15)
    session.set_local_position("a", 45)
    assert session.state is EditorState.DIRTY

    updates = await session.save_order()
    again = await session.save_order()

    assert {update.slide_id: update.position for update in updates} == {"c": 15, "a": 45}
    assert again == []
    assert len(store.calls_named("reorder")) == 1
    assert session.state is EditorState.LOADED


@pytest.mark.asyncio
async def test_second_save_while_first_in_flight_is_rejected() -> None:
    store = _seed_store()
    store.gate = asyncio.Event()
    session = await _loaded(store)
    session.set_local_position("c", 15)

    first = asyncio.create_task(session.save_order())
    await asyncio.sleep(0)
    assert session.state is EditorState.SAVING

    with pytest.raises(EditorStateError):
        await session.save_order()

    store.gate.set()
    await first
    assert len(store.calls_named("reorder")) == 1


@pytest.mark.asyncio
async def test_failed_save_keeps_local_edits() -> None:
    store = _seed_store()
    store.failing.add("reorder")
    session = await _loaded(store)
    session.set_local_position("c", 15)

    with pytest.raises(PersistenceError):
        await session.save_order()

    assert session.state is EditorState.DIRTY
    assert session.pending_changes() == ["c"]


@pytest.mark.asyncio
async def test_add_slide_appends_after_highest_position() -> None:
    store = _seed_store()
    session = await _loaded(store)

    slide = await session.add_slide("w1", "question", {"title": "Finish?"}, section_type="ending")

    assert slide.position == 50
    assert store.calls_named("create_slide")[0]["section_type"] == "ending"
    assert _order(session)[-1] == slide.id


@pytest.mark.asyncio
async def test_create_wine_adds_welcome_slide() -> None:
    store = _seed_store()
    session = await _loaded(store)

    wine = await session.create_wine("Brunello di Montalcino")

    assert wine.position == 3
    [welcome] = session.wine_slides(wine.id)
    assert welcome.position == 10
    assert welcome.payload.is_welcome is True
    assert welcome.title == "Welcome to Brunello di Montalcino"


@pytest.mark.asyncio
async def test_update_slide_reverts_on_failure() -> None:
    store = _seed_store()
    store.failing.add("update_slide")
    session = await _loaded(store)

    with pytest.raises(PersistenceError):
        await session.update_slide("a", payload={"title": "Renamed"})

    assert find_slide(session.local_slides, "a").title == "Question a"


@pytest.mark.asyncio
async def test_update_wine_persists_new_name() -> None:
    store = _seed_store()
    session = await _loaded(store)

    updated = await session.update_wine("w1", name="Barbaresco 2017")

    assert updated.name == "Barbaresco 2017"
    assert session.wines[0].name == "Barbaresco 2017"
    assert store.calls_named("update_wine") == [("w1", {"name": "Barbaresco 2017"})]


@pytest.mark.asyncio
async def test_update_wine_reverts_on_failure() -> None:
    store = _seed_store()
    store.failing.add("update_wine")
    session = await _loaded(store)

    with pytest.raises(PersistenceError):
        await session.update_wine("w1", name="Barbaresco 2017")

    assert session.wines[0].name == "Barolo 2016"
    assert store.wines[0].name == "Barolo 2016"


@pytest.mark.asyncio
async def test_update_wine_refuses_position_changes() -> None:
    store = _seed_store()
    session = await _loaded(store)

    with pytest.raises(SlideValidationError):
        await session.update_wine("w1", position=2)

    assert store.calls_named("update_wine") == []


@pytest.mark.asyncio
async def test_update_slide_cannot_unmark_only_welcome() -> None:
    store = _seed_store()
    session = await _loaded(store)

    with pytest.raises(SlideValidationError, match="only welcome slide"):
        await session.update_slide("welcome", payload={"is_welcome": False, "title": "Hello"})

    assert store.calls_named("update_slide") == []


@pytest.mark.asyncio
async def test_update_slide_rejects_position_changes() -> None:
    session = await _loaded(_seed_store())

    with pytest.raises(SlideValidationError):
        await session.update_slide("a", position=99)


@pytest.mark.asyncio
async def test_delete_wine_closes_position_gap() -> None:
    store = _seed_store()
    store.wines.append(Wine(id="w3", name="Amarone", position=3))
    session = await _loaded(store)

    await session.delete_wine("w1")

    assert [(wine.id, wine.position) for wine in session.wines] == [("w2", 1), ("w3", 2)]
    assert session.wine_slides("w1") == []
    assert store.calls_named("update_wine") == [("w2", {"position": 1}), ("w3", {"position": 2})]


@pytest.mark.asyncio
async def test_normalize_wine_renumbers_in_rendered_order() -> None:
    store = _seed_store()
    store.slides = [
        _slide("welcome", 35, welcome=True),
        _slide("end", 5, section="ending"),
        _slide("deep", 12, section="deep_dive"),
        _slide("intro", 40, section="intro"),
    ]
    session = await _loaded(store)

    await session.normalize_wine("w1")

    assert [(slide.id, slide.position) for slide in session.wine_slides("w1")] == [
        ("welcome", 10),
        ("intro", 20),
        ("deep", 30),
        ("end", 40),
    ]
