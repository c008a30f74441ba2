"""Abstract interfaces for the package store and analytics backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from tastingdeck.core.positions import PositionUpdate
from tastingdeck.core.slides import EditorData, Slide, Wine


class WineAnalytics(BaseModel):
    wine_id: str
    wine_name: str
    answered: int = 0
    total_questions: int = 0


class AnalyticsSummary(BaseModel):
    """Fixed-shape analytics payload shown on the completion view."""

    session_id: str
    participant_id: str
    answered: int = 0
    total_questions: int = 0
    wines: list[WineAnalytics] = Field(default_factory=list)
    extra: dict[str, Any] = Field(default_factory=dict)


class SlideStore(ABC):
    """Interface for wherever packages, wines and slides are persisted."""

    @abstractmethod
    async def fetch_editor_data(self, package_code: str) -> EditorData:
        """Load a package with all of its wines and slides."""

    @abstractmethod
    async def create_slide(self, slide_data: dict[str, Any]) -> Slide:
        """Persist a new slide; the store assigns its id."""

    @abstractmethod
    async def update_slide(self, slide_id: str, changes: dict[str, Any]) -> Slide:
        """Apply a partial update to a slide."""

    @abstractmethod
    async def delete_slide(self, slide_id: str) -> None:
        """Delete a slide."""

    @abstractmethod
    async def reorder_slides(self, updates: list[PositionUpdate]) -> None:
        """Apply position updates atomically: all of them or none."""

    @abstractmethod
    async def create_wine(self, wine_data: dict[str, Any]) -> Wine:
        """Persist a new wine; the store assigns its id."""

    @abstractmethod
    async def update_wine(self, wine_id: str, changes: dict[str, Any]) -> Wine:
        """Apply a partial update to a wine."""

    @abstractmethod
    async def delete_wine(self, wine_id: str) -> None:
        """Delete a wine and, with it, its slides."""


class AnalyticsProvider(ABC):
    """Interface for the service that summarises a participant's tasting."""

    @abstractmethod
    async def fetch_participant_analytics(
        self, session_id: str, participant_id: str
    ) -> AnalyticsSummary:
        """Return the participant's summary for the completion view."""
