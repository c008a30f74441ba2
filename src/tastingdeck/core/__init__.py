"""Core primitives for tastingdeck."""

from tastingdeck.core.config import GLOBAL_CONFIG_PATH, GlobalConfig, SectionSplit, load_global_config
from tastingdeck.core.errors import (
    PersistenceError,
    PositionConflictError,
    SlideValidationError,
    TastingDeckError,
)
from tastingdeck.core.positions import POSITION_STEP, PositionUpdate, next_position, renumber
from tastingdeck.core.project import PACKAGE_STATE_FILE, PackageState
from tastingdeck.core.reorder import MoveDirection, ReorderRules, drop_slide, move_slide
from tastingdeck.core.sections import classify_proportional, group_by_stored_section

__all__ = [
    "GLOBAL_CONFIG_PATH",
    "PACKAGE_STATE_FILE",
    "POSITION_STEP",
    "GlobalConfig",
    "MoveDirection",
    "PackageState",
    "PersistenceError",
    "PositionConflictError",
    "PositionUpdate",
    "ReorderRules",
    "SectionSplit",
    "SlideValidationError",
    "TastingDeckError",
    "classify_proportional",
    "drop_slide",
    "group_by_stored_section",
    "load_global_config",
    "move_slide",
    "next_position",
    "renumber",
]
