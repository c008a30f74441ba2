"""Global user configuration helpers."""

from __future__ import annotations

import os
from pathlib import Path
import tomllib

from pydantic import BaseModel, Field, model_validator

CONFIG_PATH_ENV = "TASTINGDECK_CONFIG"
GLOBAL_CONFIG_PATH = Path.home() / ".tastingdeck" / "config.toml"


class SectionSplit(BaseModel):
    """Share of a wine's slides placed in intro and deep dive; ending takes the rest."""

    intro: float = Field(default=0.4, ge=0.0, le=1.0)
    deep_dive: float = Field(default=0.4, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_total(self) -> SectionSplit:
        if self.intro + self.deep_dive > 1.0:
            raise ValueError("intro and deep_dive shares cannot add up to more than 1.0")
        return self


DEFAULT_SECTION_SPLIT = SectionSplit()


class GlobalConfig(BaseModel):
    """User-level configuration stored in ~/.tastingdeck/config.toml."""

    default_state_file: str = "tasting.json"
    position_base: int = Field(default=10, ge=1)
    position_step: int = Field(default=10, ge=1)
    section_split: SectionSplit = Field(default_factory=SectionSplit)
    wine_transition_seconds: float = Field(default=2.5, ge=0.0)
    advance_debounce_seconds: float = Field(default=0.15, ge=0.0)
    legacy_welcome_title_match: bool = True


def resolve_config_path(path: Path | None = None) -> Path:
    """Pick the config path: explicit argument, then $TASTINGDECK_CONFIG, then the default."""
    if path is not None:
        return path
    override = os.environ.get(CONFIG_PATH_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return GLOBAL_CONFIG_PATH


def load_global_config(path: Path | None = None) -> GlobalConfig:
    """Load global config from TOML, returning defaults when missing."""
    config_path = resolve_config_path(path)
    if not config_path.exists():
        return GlobalConfig()

    contents = config_path.read_text(encoding="utf-8")
    data = tomllib.loads(contents)
    return GlobalConfig.model_validate(data)


def save_global_config(config: GlobalConfig, path: Path | None = None) -> None:
    """Persist global config to TOML."""
    config_path = resolve_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    lines = [
        f'default_state_file = "{_escape_toml_string(config.default_state_file)}"',
        f"position_base = {config.position_base}",
        f"position_step = {config.position_step}",
        f"wine_transition_seconds = {config.wine_transition_seconds}",
        f"advance_debounce_seconds = {config.advance_debounce_seconds}",
        f"legacy_welcome_title_match = {str(config.legacy_welcome_title_match).lower()}",
        "",
        "[section_split]",
        f"intro = {config.section_split.intro}",
        f"deep_dive = {config.section_split.deep_dive}",
    ]
    config_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _escape_toml_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')
