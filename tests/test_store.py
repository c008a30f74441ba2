from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path

import pytest
import yaml

from tastingdeck.core.errors import PackageNotFoundError, SlideNotFoundError
from tastingdeck.core.positions import PositionUpdate
from tastingdeck.core.project import (
    PackageState,
    load_package_state,
    save_package_state,
    suggest_package_code,
)
from tastingdeck.core.slides import Package, Wine, build_slide
from tastingdeck.core.store import LocalSlideStore


def _seed_state(path: Path) -> LocalSlideStore:
    state = PackageState(
        package=Package(code="AUTUMN", name="Autumn Reds"),
        created_at=datetime.now(timezone.utc),
        wines=[Wine(id="w1", name="Barolo 2016", position=1)],
        slides=[
            build_slide(slide_id="s1", wine_id="w1", position=10, slide_type="question"),
            build_slide(slide_id="s2", wine_id="w1", position=20, slide_type="question"),
        ],
    )
    save_package_state(state, path)
    return LocalSlideStore(path)


@pytest.mark.asyncio
async def test_fetch_editor_data_checks_package_code(tmp_path: Path) -> None:
    store = _seed_state(tmp_path / "tasting.json")

    data = await store.fetch_editor_data("autumn")

    assert [slide.id for slide in data.slides] == ["s1", "s2"]
    with pytest.raises(PackageNotFoundError):
        await store.fetch_editor_data("SPRING")


@pytest.mark.asyncio
async def test_reorder_is_all_or_nothing(tmp_path: Path) -> None:
    path = tmp_path / "tasting.json"
    store = _seed_state(path)
    before = path.read_text(encoding="utf-8")

    with pytest.raises(ValueError, match="Duplicate"):
        await store.reorder_slides([PositionUpdate(slide_id="s1", position=20)])
    with pytest.raises(SlideNotFoundError):
        await store.reorder_slides([PositionUpdate(slide_id="missing", position=30)])

    assert path.read_text(encoding="utf-8") == before


@pytest.mark.asyncio
async def test_reorder_applies_full_diff(tmp_path: Path) -> None:
    store = _seed_state(tmp_path / "tasting.json")

    await store.reorder_slides(
        [PositionUpdate(slide_id="s1", position=20), PositionUpdate(slide_id="s2", position=10)]
    )

    positions = {slide.id: slide.position for slide in store.load().slides}
    assert positions == {"s1": 20, "s2": 10}


@pytest.mark.asyncio
async def test_create_slide_assigns_id_and_rejects_duplicate_position(tmp_path: Path) -> None:
    store = _seed_state(tmp_path / "tasting.json")

    slide = await store.create_slide(
        {"wine_id": "w1", "position": 30, "type": "media", "payload": {"title": "Label"}}
    )

    assert slide.id not in {"s1", "s2"}
    assert slide.type == "media"
    with pytest.raises(ValueError):
        await store.create_slide({"wine_id": "w1", "position": 30, "type": "question"})


@pytest.mark.asyncio
async def test_update_slide_merges_payload(tmp_path: Path) -> None:
    store = _seed_state(tmp_path / "tasting.json")

    updated = await store.update_slide("s1", {"payload": {"title": "Aroma?"}})

    assert updated.title == "Aroma?"
    assert updated.position == 10


@pytest.mark.asyncio
async def test_analytics_count_answered_questions(tmp_path: Path) -> None:
    store = _seed_state(tmp_path / "tasting.json")
    await store.record_response("session-1", "alice", "s1", "cherry")
    await store.record_response("session-1", "alice", "s1", "plum")
    await store.record_response("session-1", "bob", "s2", 7)

    summary = await store.fetch_participant_analytics("session-1", "alice")

    assert summary.answered == 1
    assert summary.total_questions == 2
    assert summary.wines[0].wine_name == "Barolo 2016"
    assert len(store.load().responses) == 2


def test_legacy_yaml_state_is_migrated_and_repaired(tmp_path: Path) -> None:
    legacy = tmp_path / "tasting.yaml"
    legacy.write_text(
        yaml.safe_dump(
            {
                "package": {"code": "OLD", "name": "Old Package"},
                "created_at": "2024-01-01T00:00:00+00:00",
                "wines": [{"id": "w1", "name": "Barolo"}],
                "slides": [
                    {"id": "a", "wine_id": "w1", "type": "question", "section_type": "tasting"},
                    {"id": "a", "wine_id": "w1", "type": "question", "position": 50},
                ],
            }
        ),
        encoding="utf-8",
    )

    state = load_package_state(tmp_path / "tasting.json")

    assert not legacy.exists()
    assert (tmp_path / "tasting.json").exists()
    assert state.wines[0].position == 1
    assert state.slides[0].position == 10
    assert state.slides[0].section_type == "deep_dive"
    assert len({slide.id for slide in state.slides}) == 2
    saved = json.loads((tmp_path / "tasting.json").read_text(encoding="utf-8"))
    assert saved["package"]["code"] == "OLD"


@pytest.mark.parametrize(
    ("name", "expected"),
    [("Autumn Reds", "AR"), ("Barolo", "BAROLO"), ("Côtes du Rhône Night", "CDRN"), ("!!!", "TASTE")],
)
def test_suggest_package_code(name: str, expected: str) -> None:
    assert suggest_package_code(name) == expected
