from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from tastingdeck.cli.errors import render_cli_error
from tastingdeck.cli.main import app
from tastingdeck.core.config import CONFIG_PATH_ENV
from tastingdeck.core.errors import (
    PersistenceError,
    WelcomeSlideDeleteError,
    WelcomeSlidePinnedError,
)
from tastingdeck.core.project import PackageState, load_package_state, save_package_state
from tastingdeck.core.slides import Package, Wine, build_slide, wine_slides

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_package(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(CONFIG_PATH_ENV, str(tmp_path / "no-config.toml"))
    return tmp_path


def _seed_package() -> None:
    state = PackageState(
        package=Package(code="AUTUMN", name="Autumn Reds"),
        created_at=datetime.now(timezone.utc),
        wines=[Wine(id="w1", name="Barolo 2016", position=1)],
        slides=[
            build_slide(
                slide_id="welcome",
                wine_id="w1",
                position=10,
                slide_type="interlude",
                section_type="intro",
                payload={"title": "Welcome to Barolo 2016", "is_welcome": True},
            ),
            build_slide(
                slide_id="q-intro",
                wine_id="w1",
                position=20,
                slide_type="question",
                section_type="intro",
                payload={"title": "Colour?"},
            ),
            build_slide(
                slide_id="q-deep",
                wine_id="w1",
                position=30,
                slide_type="question",
                section_type="deep_dive",
                payload={"title": "Aroma?"},
            ),
        ],
    )
    save_package_state(state, Path("tasting.json"))


def _order() -> list[tuple[str, int]]:
    state = load_package_state(Path("tasting.json"))
    return [(slide.id, slide.position) for slide in wine_slides(state.slides, "w1")]


def test_init_creates_package_once() -> None:
    result = runner.invoke(app, ["init", "Autumn Reds"])
    assert result.exit_code == 0
    assert load_package_state(Path("tasting.json")).package.code == "AR"

    again = runner.invoke(app, ["init", "Autumn Reds"])
    assert again.exit_code == 1
    assert "already exists" in again.output


def test_wine_add_creates_welcome_slide() -> None:
    runner.invoke(app, ["init", "Autumn Reds"])

    result = runner.invoke(app, ["wine", "add", "Barolo 2016"])

    assert result.exit_code == 0
    state = load_package_state(Path("tasting.json"))
    [wine] = state.wines
    [welcome] = state.slides
    assert welcome.wine_id == wine.id
    assert welcome.payload.is_welcome is True
    listing = runner.invoke(app, ["wine", "list"])
    assert "Barolo 2016" in listing.output


def test_wine_edit_renames_wine() -> None:
    _seed_package()

    result = runner.invoke(app, ["wine", "edit", "1", "--name", "Barbaresco 2017"])

    assert result.exit_code == 0
    [wine] = load_package_state(Path("tasting.json")).wines
    assert wine.name == "Barbaresco 2017"
    assert runner.invoke(app, ["wine", "edit", "1"]).exit_code == 1


def test_slide_template_appends_after_welcome() -> None:
    _seed_package()

    result = runner.invoke(app, ["slide", "template", "1", "finish-length"])

    assert result.exit_code == 0
    assert _order()[-1][1] == 40


def test_move_up_persists_new_order() -> None:
    _seed_package()

    result = runner.invoke(app, ["move", "q-deep", "up"])

    assert result.exit_code == 0
    assert _order() == [("welcome", 10), ("q-deep", 20), ("q-intro", 30)]


def test_move_within_section_is_refused_at_edge() -> None:
    _seed_package()

    result = runner.invoke(app, ["move", "q-deep", "up", "--within-section"])

    assert result.exit_code == 1
    assert _order() == [("welcome", 10), ("q-intro", 20), ("q-deep", 30)]


def test_move_welcome_down_is_refused() -> None:
    _seed_package()

    result = runner.invoke(app, ["move", "welcome", "down"])

    assert isinstance(result.exception, WelcomeSlidePinnedError)
    assert _order()[0] == ("welcome", 10)


def test_drop_reorders_like_drag_and_drop() -> None:
    _seed_package()

    result = runner.invoke(app, ["drop", "q-deep", "q-intro"])

    assert result.exit_code == 0
    assert [slide_id for slide_id, _ in _order()] == ["welcome", "q-deep", "q-intro"]


def test_remove_refuses_only_welcome_slide() -> None:
    _seed_package()

    result = runner.invoke(app, ["remove", "welcome"])

    assert isinstance(result.exception, WelcomeSlideDeleteError)
    assert len(_order()) == 3


def test_set_position_previews_unless_saved() -> None:
    _seed_package()

    preview = runner.invoke(app, ["set-position", "q-deep", "15"])
    assert preview.exit_code == 0
    assert _order()[-1] == ("q-deep", 30)

    saved = runner.invoke(app, ["set-position", "q-deep", "15", "--save"])
    assert saved.exit_code == 0
    assert _order() == [("welcome", 10), ("q-deep", 15), ("q-intro", 20)]


def test_doctor_and_normalize_repair_duplicates() -> None:
    _seed_package()
    state = load_package_state(Path("tasting.json"))
    state.slides = [
        slide.model_copy(update={"position": 20}) if slide.id == "q-deep" else slide
        for slide in state.slides
    ]
    save_package_state(state, Path("tasting.json"))

    doctor = runner.invoke(app, ["doctor"])
    assert doctor.exit_code == 1
    assert "Position problems" in doctor.output

    normalize = runner.invoke(app, ["normalize"])
    assert normalize.exit_code == 0
    assert _order() == [("welcome", 10), ("q-intro", 20), ("q-deep", 30)]
    assert runner.invoke(app, ["doctor"]).exit_code == 0


def test_play_lists_traversal() -> None:
    _seed_package()

    result = runner.invoke(app, ["play"])

    assert result.exit_code == 0
    assert "Tasting order" in result.output


def test_bare_invocation_prints_summary() -> None:
    _seed_package()

    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert "Current package" in result.output


def test_templates_command_lists_catalogue() -> None:
    result = runner.invoke(app, ["templates"])

    assert result.exit_code == 0
    assert "aroma-intensity" in result.output


def test_render_cli_error_maps_validation_and_persistence_errors() -> None:
    console = Console(record=True, width=200)

    render_cli_error(WelcomeSlidePinnedError("welcome", "it would move."), console=console)
    render_cli_error(PersistenceError("Reordering slides", RuntimeError("boom")), console=console)

    output = console.export_text()
    assert "Action refused" in output
    assert "Could not save" in output
    assert "boom" in output
