from __future__ import annotations

from pathlib import Path

import pytest

from tastingdeck.core.config import (
    CONFIG_PATH_ENV,
    GlobalConfig,
    SectionSplit,
    load_global_config,
    save_global_config,
)


def test_missing_config_returns_defaults(tmp_path: Path) -> None:
    config = load_global_config(tmp_path / "missing.toml")

    assert config.position_step == 10
    assert config.section_split == SectionSplit(intro=0.4, deep_dive=0.4)
    assert config.wine_transition_seconds == 2.5


def test_config_round_trips_through_toml(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    config = GlobalConfig(
        default_state_file="cellar/tasting.json",
        position_step=100,
        section_split=SectionSplit(intro=0.3, deep_dive=0.5),
        legacy_welcome_title_match=False,
    )

    save_global_config(config, path)

    assert load_global_config(path) == config


def test_env_var_points_at_alternate_config(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "alt.toml"
    path.write_text("position_base = 100\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_PATH_ENV, str(path))

    assert load_global_config().position_base == 100
