"""Package, wine and slide models plus the welcome/package-intro predicates."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

_LEGACY_SECTION_ALIASES = {
    "tasting": "deep_dive",
    "deep dive": "deep_dive",
    "deepdive": "deep_dive",
    "conclusion": "ending",
}


class SlideType(str, Enum):
    INTERLUDE = "interlude"
    QUESTION = "question"
    VIDEO_MESSAGE = "video_message"
    AUDIO_MESSAGE = "audio_message"
    MEDIA = "media"
    # Legacy rows only; playback synthesizes its own transitions.
    TRANSITION = "transition"


class SectionType(str, Enum):
    INTRO = "intro"
    DEEP_DIVE = "deep_dive"
    ENDING = "ending"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


SECTION_ORDER: tuple[SectionType, ...] = (
    SectionType.INTRO,
    SectionType.DEEP_DIVE,
    SectionType.ENDING,
)


class SlidePayload(BaseModel):
    """Fields shared by every payload. Unknown keys are kept for round-tripping."""

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    description: str | None = None
    is_package_intro: bool = False


class InterludePayload(SlidePayload):
    title: str = ""
    wine_name: str | None = None
    wine_image: str | None = None
    is_welcome: bool = False


class QuestionOption(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    text: str
    value: str | None = None
    description: str | None = None


class QuestionPayload(SlidePayload):
    question_type: str = "multiple_choice"
    options: list[QuestionOption] = Field(default_factory=list)
    allow_multiple: bool = False
    scale_min: int | None = None
    scale_max: int | None = None
    scale_labels: list[str] = Field(default_factory=list)
    time_limit: int | None = None
    points: int | None = None


class VideoMessagePayload(SlidePayload):
    video_url: str | None = None
    video_public_id: str | None = None
    poster_url: str | None = None
    duration: int | None = None
    autoplay: bool = False
    show_controls: bool = True


class AudioMessagePayload(SlidePayload):
    audio_url: str | None = None
    audio_public_id: str | None = None
    duration: int | None = None
    autoplay: bool = False
    show_controls: bool = True


class MediaItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: str
    alt_text: str | None = None


class MediaPayload(SlidePayload):
    image_url: str | None = None
    alt_text: str | None = None
    gallery: list[MediaItem] = Field(default_factory=list)


class TransitionPayload(SlidePayload):
    title: str = ""
    duration: int = 2000
    show_continue_button: bool = False
    animation_type: str = "wine_glass_fill"


class _SlideBase(BaseModel):
    """Fields shared by every slide variant."""

    id: str
    wine_id: str
    position: int
    section_type: SectionType | None = None

    @field_validator("section_type", mode="before")
    @classmethod
    def normalize_section_type(cls, value: Any) -> Any:
        if value is None or isinstance(value, SectionType):
            return value
        text = str(value).strip().lower()
        if not text:
            return None
        text = _LEGACY_SECTION_ALIASES.get(text, text)
        if text in {section.value for section in SectionType}:
            return text
        # Unrecognized authoring metadata lands in the middle section.
        return SectionType.DEEP_DIVE.value

    @field_validator("position", mode="before")
    @classmethod
    def normalize_position(cls, value: Any) -> int:
        if value in (None, ""):
            return 0
        return int(value)

    @property
    def title(self) -> str:
        payload = getattr(self, "payload", None)
        return (getattr(payload, "title", None) or "").strip()


class InterludeSlide(_SlideBase):
    type: Literal["interlude"] = "interlude"
    payload: InterludePayload = Field(default_factory=InterludePayload)


class QuestionSlide(_SlideBase):
    type: Literal["question"] = "question"
    payload: QuestionPayload = Field(default_factory=QuestionPayload)


class VideoMessageSlide(_SlideBase):
    type: Literal["video_message"] = "video_message"
    payload: VideoMessagePayload = Field(default_factory=VideoMessagePayload)


class AudioMessageSlide(_SlideBase):
    type: Literal["audio_message"] = "audio_message"
    payload: AudioMessagePayload = Field(default_factory=AudioMessagePayload)


class MediaSlide(_SlideBase):
    type: Literal["media"] = "media"
    payload: MediaPayload = Field(default_factory=MediaPayload)


class TransitionSlide(_SlideBase):
    type: Literal["transition"] = "transition"
    payload: TransitionPayload = Field(default_factory=TransitionPayload)


Slide = Annotated[
    Union[
        InterludeSlide,
        QuestionSlide,
        VideoMessageSlide,
        AudioMessageSlide,
        MediaSlide,
        TransitionSlide,
    ],
    Field(discriminator="type"),
]

SLIDE_ADAPTER: TypeAdapter[Slide] = TypeAdapter(Slide)


def parse_slide(data: dict[str, Any]) -> Slide:
    """Validate raw slide data into the variant matching its ``type``."""
    return SLIDE_ADAPTER.validate_python(data)


def build_slide(
    *,
    slide_id: str,
    wine_id: str,
    position: int,
    slide_type: SlideType | str,
    payload: dict[str, Any] | None = None,
    section_type: SectionType | str | None = None,
) -> Slide:
    """Create a slide variant from loose arguments."""
    return parse_slide(
        {
            "id": slide_id,
            "wine_id": wine_id,
            "position": position,
            "type": SlideType(slide_type).value,
            "section_type": section_type,
            "payload": payload or {},
        }
    )


class Wine(BaseModel):
    """A wine of a package. Owns its slides."""

    id: str
    name: str
    description: str | None = None
    position: int = Field(default=1, ge=1)


class Package(BaseModel):
    code: str
    name: str
    description: str | None = None


class EditorData(BaseModel):
    """Everything the editor needs for one package."""

    package: Package
    wines: list[Wine] = Field(default_factory=list)
    slides: list[Slide] = Field(default_factory=list)


def is_welcome_slide(slide: Slide, *, legacy_title_match: bool = True) -> bool:
    """Return True for the pinned interlude that opens a wine's intro section.

    ``payload.is_welcome`` is authoritative. Slides authored before the flag
    existed are recognised by a "welcome" title when ``legacy_title_match``
    is enabled.
    """
    if slide.type != SlideType.INTERLUDE or slide.section_type != SectionType.INTRO:
        return False
    if slide.payload.is_welcome:
        return True
    return legacy_title_match and "welcome" in slide.title.lower()


def is_package_intro(slide: Slide) -> bool:
    return slide.payload.is_package_intro


def sort_by_position(slides: list[Slide]) -> list[Slide]:
    """Sort slides by position, using the id to break ties deterministically."""
    return sorted(slides, key=lambda slide: (slide.position, slide.id))


def wine_slides(slides: list[Slide], wine_id: str) -> list[Slide]:
    """Return the slides of one wine ordered by position."""
    return sort_by_position([slide for slide in slides if slide.wine_id == wine_id])


def find_slide(slides: list[Slide], slide_id: str) -> Slide | None:
    return next((slide for slide in slides if slide.id == slide_id), None)


def find_wine(wines: list[Wine], wine_id: str) -> Wine | None:
    return next((wine for wine in wines if wine.id == wine_id), None)
