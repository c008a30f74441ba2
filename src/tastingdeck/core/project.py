"""Local package state file helpers."""

from __future__ import annotations

from datetime import datetime
import json
from pathlib import Path
import re
from typing import Any
import unicodedata
import uuid

from pydantic import BaseModel, Field, field_validator
import yaml

from tastingdeck.core.slides import Package, Slide, Wine

PACKAGE_STATE_FILE = Path("tasting.json")
LEGACY_PACKAGE_STATE_FILE = Path("tasting.yaml")
PACKAGE_STATE_SCHEMA_VERSION = 1
_CODE_TOKEN_PATTERN = re.compile(r"[a-zA-Z0-9]+")
_CODE_LENGTH = 6


def new_id() -> str:
    """Return a fresh store identifier."""
    return str(uuid.uuid4())


def suggest_package_code(name: str) -> str:
    """Derive a short upper-case join code from a package name."""
    normalized = _ascii_normalize(name)
    tokens = [token.upper() for token in _CODE_TOKEN_PATTERN.findall(normalized)]
    if not tokens:
        return "TASTE"
    if len(tokens) == 1:
        return tokens[0][:_CODE_LENGTH]
    return "".join(token[0] for token in tokens)[:_CODE_LENGTH]


class ResponseRecord(BaseModel):
    """A participant's answer to a question slide."""

    session_id: str
    participant_id: str
    slide_id: str
    answer: Any = None
    answered_at: datetime | None = None


class PackageState(BaseModel):
    """State file model stored in ./tasting.json."""

    schema_version: int = Field(default=PACKAGE_STATE_SCHEMA_VERSION, ge=1)
    package: Package
    created_at: datetime
    wines: list[Wine] = Field(default_factory=list)
    slides: list[Slide] = Field(default_factory=list)
    responses: list[ResponseRecord] = Field(default_factory=list)

    @field_validator("wines", mode="before")
    @classmethod
    def fill_wine_positions(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        for index, wine in enumerate(value, start=1):
            if isinstance(wine, dict) and wine.get("position") in (None, ""):
                wine["position"] = index
        return value


def load_package_state(path: Path = PACKAGE_STATE_FILE) -> PackageState:
    """Load local package state from disk."""
    source_path = _resolve_package_state_path(path)
    raw_data = _load_state_payload(source_path)
    data = raw_data if raw_data is not None else {}
    slides = data.get("slides")
    if isinstance(slides, list):
        seen_ids: set[str] = set()
        for index, slide in enumerate(slides, start=1):
            if not isinstance(slide, dict):
                continue
            if slide.get("position") in (None, ""):
                slide["position"] = index * 10
            raw_id = slide.get("id")
            if raw_id in (None, "") or str(raw_id) in seen_ids:
                slide["id"] = new_id()
            seen_ids.add(str(slide["id"]))
    state = PackageState.model_validate(data)
    _migrate_package_state(path=path, source_path=source_path, state=state)
    return state


def save_package_state(state: PackageState, path: Path = PACKAGE_STATE_FILE) -> None:
    """Write local package state to disk."""
    serialized = state.model_dump(mode="json")
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(serialized, indent=2) + "\n", encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(serialized, sort_keys=False), encoding="utf-8")
    legacy_path = _legacy_package_state_path(path)
    if path.suffix.lower() == ".json" and legacy_path.exists():
        legacy_path.unlink()


def package_state_exists(path: Path = PACKAGE_STATE_FILE) -> bool:
    return path.exists() or _legacy_package_state_path(path).exists()


def _resolve_package_state_path(path: Path) -> Path:
    if path.exists():
        return path
    legacy_path = _legacy_package_state_path(path)
    if legacy_path.exists():
        return legacy_path
    return path


def _legacy_package_state_path(path: Path) -> Path:
    return path.with_name(LEGACY_PACKAGE_STATE_FILE.name)


def _load_state_payload(path: Path) -> Any:
    raw_text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(raw_text)
    return yaml.safe_load(raw_text)


def _migrate_package_state(*, path: Path, source_path: Path, state: PackageState) -> None:
    if source_path == path or path.suffix.lower() != ".json":
        return
    save_package_state(state, path)
    if source_path.exists():
        source_path.unlink()


def _ascii_normalize(value: str) -> str:
    return unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
