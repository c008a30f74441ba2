"""Tastingdeck: slide sequencing and playback for guided wine tastings."""

__version__ = "0.1.0"

from tastingdeck.core.editor import EditorSession, EditorState
from tastingdeck.core.interfaces import AnalyticsProvider, SlideStore
from tastingdeck.core.playback import PlaybackSession, build_sequence
from tastingdeck.core.slides import SectionType, Slide, SlideType, Wine
from tastingdeck.core.store import LocalSlideStore

__all__ = [
    "AnalyticsProvider",
    "EditorSession",
    "EditorState",
    "LocalSlideStore",
    "PlaybackSession",
    "SectionType",
    "Slide",
    "SlideStore",
    "SlideType",
    "Wine",
    "build_sequence",
]
