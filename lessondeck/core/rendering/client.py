# lessondeck/core/rendering/client.py

"""Adapter for the headless-browser rendering service.

The service receives self-contained slide markup plus capture options and
answers with the raw raster bytes of a single screenshot.
"""

from dataclasses import asdict, dataclass
from typing import Optional, Protocol
import logging
import re

import httpx

from lessondeck.core.exceptions import RenderingError
from lessondeck.core.infra.config import settings
from lessondeck.models.schema import RenderMetadata
from lessondeck.models.types import ThumbnailFormat

logger = logging.getLogger(__name__)

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_SELF_CLOSING_SCRIPT_RE = re.compile(r"<script\b[^>]*/>", re.IGNORECASE)
_HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)
_HEAD_OPEN_RE = re.compile(r"<head\b[^>]*>", re.IGNORECASE)
_HTML_OPEN_RE = re.compile(r"<html\b[^>]*>", re.IGNORECASE)
_BODY_OPEN_RE = re.compile(r"<body\b[^>]*>", re.IGNORECASE)
_PAGE_TAG_RE = re.compile(r"<(?:html|body)\b([^>]*)>", re.IGNORECASE)
# Rules whose selector list names only html and/or body.
_PAGE_RULE_RE = re.compile(
    r"(?<![\w.#:-])(?:html|body)(?:\s*,\s*(?:html|body))*\s*\{([^{}]*)\}", re.IGNORECASE
)
_TRANSPARENT_BG_RE = re.compile(
    r"background(?:-color)?\s*:\s*(?:(?:transparent|none)\b"
    r"|rgba\(\s*[\d.]+%?\s*,\s*[\d.]+%?\s*,\s*[\d.]+%?\s*,\s*(?:0*\.)?0+\s*\))",
    re.IGNORECASE,
)

CAPTURE_CSS = """
*, *::before, *::after {
  animation-duration: 0.1s !important;
  animation-delay: 0s !important;
  transition-duration: 0.1s !important;
  transition-delay: 0s !important;
}
body { margin: 0; }
"""


@dataclass(frozen=True)
class RenderOptions:
    width: int = 1600
    height: int = 1200
    format: str = "png"
    quality: int = 90
    background: str = "#ffffff"
    timeout_sec: float = 30.0

    @classmethod
    def from_settings(cls) -> "RenderOptions":
        return cls(
            width=settings.THUMBNAIL_WIDTH,
            height=settings.THUMBNAIL_HEIGHT,
            format=ThumbnailFormat(settings.THUMBNAIL_FORMAT.lower()).value,
            quality=settings.THUMBNAIL_QUALITY,
            background=settings.THUMBNAIL_BACKGROUND,
            timeout_sec=settings.RENDER_TIMEOUT_SEC,
        )


@dataclass(frozen=True)
class RenderedImage:
    image_bytes: bytes
    metadata: RenderMetadata


class RenderingClient(Protocol):
    """Rasterizes one slide. Raises ``RenderingError`` on failure."""

    async def render(self, markup: str, options: RenderOptions) -> RenderedImage: ...


def _page_background_is_transparent(markup: str) -> bool:
    """True when the html or body element itself declares a see-through background."""
    for m in _PAGE_TAG_RE.finditer(markup):
        if _TRANSPARENT_BG_RE.search(m.group(1)):
            return True
    for m in _PAGE_RULE_RE.finditer(markup):
        if _TRANSPARENT_BG_RE.search(m.group(1)):
            return True
    return False


def prepare_markup_for_capture(markup: str, background: str) -> str:
    """Strip scripts and inject capture CSS so a static screenshot is deterministic.

    The fallback background goes in ahead of the slide's own styles so any
    opaque page background the slide sets still wins. A page background that
    is explicitly transparent is overridden.
    """
    cleaned = _SCRIPT_RE.sub("", markup)
    cleaned = _SELF_CLOSING_SCRIPT_RE.sub("", cleaned)

    fallback = f"<style data-capture-fallback>html, body {{ background-color: {background}; }}</style>"
    css = CAPTURE_CSS
    if _page_background_is_transparent(cleaned):
        css += f"html, body {{ background-color: {background} !important; }}\n"
    style = f"<style data-capture>{css}</style>"

    if _HEAD_CLOSE_RE.search(cleaned):
        cleaned = _HEAD_CLOSE_RE.sub(lambda m: style + m.group(0), cleaned, count=1)
    elif _BODY_OPEN_RE.search(cleaned):
        cleaned = _BODY_OPEN_RE.sub(lambda m: m.group(0) + style, cleaned, count=1)
    else:
        cleaned = style + cleaned

    for opener in (_HEAD_OPEN_RE, _HTML_OPEN_RE):
        if opener.search(cleaned):
            return opener.sub(lambda m: m.group(0) + fallback, cleaned, count=1)
    return fallback + cleaned


class HttpRenderingClient:
    """Posts prepared markup to ``RENDER_SERVICE_URL`` and returns the image bytes."""

    def __init__(
        self,
        base_url: str = settings.RENDER_SERVICE_URL,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None

    async def render(self, markup: str, options: RenderOptions) -> RenderedImage:
        opts = asdict(options)
        timeout = opts.pop("timeout_sec")
        payload = {
            "html": prepare_markup_for_capture(markup, options.background),
            "options": opts,
        }
        try:
            resp = await self._client.post(self.base_url, json=payload, timeout=timeout)
        except httpx.HTTPError as e:
            raise RenderingError(f"Rendering service request failed: {e}") from e

        if resp.status_code >= 400:
            raise RenderingError(
                f"Rendering service returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        if not resp.content:
            raise RenderingError("Rendering service returned an empty image")

        logger.debug("Rendered %d bytes (%s)", len(resp.content), options.format)
        return RenderedImage(
            image_bytes=resp.content,
            metadata=RenderMetadata(
                width=options.width,
                height=options.height,
                format=options.format,
                size_bytes=len(resp.content),
            ),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
