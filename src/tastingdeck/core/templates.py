"""Built-in slide templates for the quick builder."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from tastingdeck.core.slides import SectionType, SlideType

WINE_NAME_PLACEHOLDER = "{Wine Name}"
WELCOME_TEMPLATE_ID = "welcome"


class SlideTemplate(BaseModel):
    id: str
    name: str
    type: SlideType
    section_type: SectionType
    payload: dict[str, Any]


def _scale(title: str, description: str, low: str, high: str) -> dict[str, Any]:
    return {
        "question_type": "scale",
        "title": title,
        "description": description,
        "scale_min": 1,
        "scale_max": 10,
        "scale_labels": [low, high],
    }


def _choice(title: str, description: str, options: list[str]) -> dict[str, Any]:
    return {
        "question_type": "multiple_choice",
        "title": title,
        "description": description,
        "options": [
            {"id": str(index), "text": option, "value": option.lower().replace(" ", "_")}
            for index, option in enumerate(options, start=1)
        ],
    }


SLIDE_TEMPLATES: tuple[SlideTemplate, ...] = (
    SlideTemplate(
        id=WELCOME_TEMPLATE_ID,
        name="Wine Introduction",
        type=SlideType.INTERLUDE,
        section_type=SectionType.INTRO,
        payload={
            "title": f"Welcome to {WINE_NAME_PLACEHOLDER}",
            "description": "Get ready to explore this exceptional wine.",
            "is_welcome": True,
        },
    ),
    SlideTemplate(
        id="visual-assessment",
        name="Visual Assessment",
        type=SlideType.QUESTION,
        section_type=SectionType.INTRO,
        payload=_choice(
            "How would you describe the wine's clarity and appearance?",
            "Hold your glass against a white background.",
            ["Crystal clear", "Slightly hazy", "Cloudy", "Opaque"],
        ),
    ),
    SlideTemplate(
        id="aroma-intensity",
        name="Aroma Intensity",
        type=SlideType.QUESTION,
        section_type=SectionType.DEEP_DIVE,
        payload=_scale(
            "How intense are the wine's aromas?",
            "Swirl, then take a few short sniffs.",
            "Very light",
            "Very intense",
        ),
    ),
    SlideTemplate(
        id="flavor-notes",
        name="Flavor Notes",
        type=SlideType.QUESTION,
        section_type=SectionType.DEEP_DIVE,
        payload={
            "question_type": "text",
            "title": "What primary flavors do you taste in this wine?",
            "description": "Fruit, earth, spice, oak: write whatever comes to mind.",
        },
    ),
    SlideTemplate(
        id="body-assessment",
        name="Body Assessment",
        type=SlideType.QUESTION,
        section_type=SectionType.DEEP_DIVE,
        payload=_choice(
            "How would you describe the body or weight of this wine?",
            "Think of skim milk versus whole milk.",
            ["Light", "Medium", "Full"],
        ),
    ),
    SlideTemplate(
        id="finish-length",
        name="Finish Length",
        type=SlideType.QUESTION,
        section_type=SectionType.ENDING,
        payload=_choice(
            "How long do the wine's flavors linger after swallowing?",
            "Count the seconds until the flavor fades.",
            ["Short", "Medium", "Long"],
        ),
    ),
    SlideTemplate(
        id="overall-impression",
        name="Overall Impression",
        type=SlideType.QUESTION,
        section_type=SectionType.ENDING,
        payload=_scale(
            "What is your overall impression of this wine?",
            "Rate it on a scale from 1 to 10.",
            "Not for me",
            "Outstanding",
        ),
    ),
    SlideTemplate(
        id="sommelier-video",
        name="Sommelier Video",
        type=SlideType.VIDEO_MESSAGE,
        section_type=SectionType.ENDING,
        payload={
            "title": "Expert Insights",
            "description": "Sommelier's professional tasting notes.",
            "autoplay": False,
            "show_controls": True,
        },
    ),
)


def get_template(template_id: str) -> SlideTemplate:
    template = next((item for item in SLIDE_TEMPLATES if item.id == template_id), None)
    if template is None:
        known = ", ".join(item.id for item in SLIDE_TEMPLATES)
        raise ValueError(f"Unknown slide template '{template_id}'. Available: {known}.")
    return template


def instantiate_template(template_id: str, wine_name: str) -> dict[str, Any]:
    """Return slide data (type, section, payload) for a template and wine."""
    template = get_template(template_id)
    return {
        "type": template.type.value,
        "section_type": template.section_type.value,
        "payload": _substitute(template.payload, wine_name),
    }


def _substitute(value: Any, wine_name: str) -> Any:
    if isinstance(value, str):
        return value.replace(WINE_NAME_PLACEHOLDER, wine_name)
    if isinstance(value, list):
        return [_substitute(item, wine_name) for item in value]
    if isinstance(value, dict):
        return {key: _substitute(item, wine_name) for key, item in value.items()}
    return value
