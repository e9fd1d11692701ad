# lessondeck/core/planning/plan_parser.py

"""Splits a markdown lesson plan into per-slide outlines."""

import logging
import re
from typing import List, Optional

from lessondeck.models.context import SlideOutline
from lessondeck.models.schema import SlideDescription

logger = logging.getLogger(__name__)

SLIDE_HEADER_RE = re.compile(
    r"^[ \t]*#{2,3}[ \t]*(?:Slide|Слайд)[ \t]*(\d+)[ \t]*:[ \t]*(.+?)[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
LESSON_TITLE_RE = re.compile(r"^#[ \t]+(.+?)[ \t]*$", re.MULTILINE)

_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_RE = re.compile(r"\*([^*]+)\*")
_DASH_BULLET_RE = re.compile(r"^[ \t]*-[ \t]+", re.MULTILINE)

FALLBACK_TITLE = "Lesson Overview"


def clean_title(title: str) -> str:
    title = title.replace("(", "").replace(")", "")
    return re.sub(r"\s+", " ", title).strip()


def clean_content(content: str) -> str:
    content = _BOLD_RE.sub(r"\1", content)
    content = _ITALIC_RE.sub(r"\1", content)
    content = _DASH_BULLET_RE.sub("• ", content)
    return content.strip()


def extract_lesson_title(plan_text: str) -> Optional[str]:
    match = LESSON_TITLE_RE.search(plan_text or "")
    return match.group(1).strip() if match else None


def parse_plan(plan_text: str) -> List[SlideOutline]:
    """Slide outlines in the plan's own order.

    Slides are introduced by ``## Slide N: Title`` or ``### Slide N: Title``
    headers and run until the next one. A plan without such headers becomes a
    single outline covering the whole text.
    """
    headers = list(SLIDE_HEADER_RE.finditer(plan_text))
    if not headers:
        logger.info("No slide headers found in plan; using it as a single slide")
        return [
            SlideOutline(
                title=extract_lesson_title(plan_text) or FALLBACK_TITLE,
                prompt=clean_content(plan_text),
            )
        ]

    outlines = []
    for idx, match in enumerate(headers):
        end = headers[idx + 1].start() if idx + 1 < len(headers) else len(plan_text)
        title = clean_title(match.group(2))
        body = clean_content(plan_text[match.end():end])
        outlines.append(SlideOutline(title=title, prompt=body or title))

    logger.info("Extracted %d slide outlines from plan", len(outlines))
    return outlines


def outlines_from_descriptions(descriptions: List[SlideDescription]) -> List[SlideOutline]:
    """One outline per description; the prompt is its title followed by its body."""
    return [
        SlideOutline(title=d.title.strip() or f"Slide {i}", prompt=d.as_prompt())
        for i, d in enumerate(descriptions, start=1)
    ]
