# lessondeck/core/pipeline/thumbnails.py

import logging
from typing import Callable, Dict, List, Optional

from lessondeck.core.infra.concurrency import run_concurrently
from lessondeck.core.infra.metrics import THUMBNAILS_RENDERED
from lessondeck.core.rendering.client import RenderingClient, RenderOptions
from lessondeck.models.schema import SlideTask, ThumbnailTask
from lessondeck.models.types import SlideStatus

logger = logging.getLogger(__name__)

ThumbnailCallback = Callable[[ThumbnailTask], None]


class ThumbnailRenderingStage:
    """Rasterizes every completed slide, concurrently and with per-slide isolation."""

    def __init__(
        self,
        rendering_client: RenderingClient,
        options: RenderOptions,
        max_concurrency: int = 8,
    ) -> None:
        self.rendering_client = rendering_client
        self.options = options
        self.max_concurrency = max_concurrency

    async def render_one(self, slide: SlideTask) -> ThumbnailTask:
        try:
            rendered = await self.rendering_client.render(slide.markup or "", self.options)
        except Exception as e:
            logger.warning("Thumbnail for slide %d failed: %s", slide.slide_number, e)
            THUMBNAILS_RENDERED.labels(outcome="failed").inc()
            return ThumbnailTask(
                slide_number=slide.slide_number,
                failed=True,
                error=str(e) or e.__class__.__name__,
            )

        THUMBNAILS_RENDERED.labels(outcome="rendered").inc()
        return ThumbnailTask(
            slide_number=slide.slide_number,
            image_bytes=rendered.image_bytes,
            render_metadata=rendered.metadata,
        )

    async def run(
        self,
        slides: List[SlideTask],
        on_rendered: Optional[ThumbnailCallback] = None,
    ) -> Dict[int, ThumbnailTask]:
        """One entry per completed slide, keyed and ordered by slide number."""
        targets = [s for s in slides if s.status is SlideStatus.COMPLETED]
        if not targets:
            return {}

        logger.info(
            "Rendering %d thumbnails (max concurrency %d)", len(targets), self.max_concurrency
        )

        def factory(slide: SlideTask):
            async def job() -> ThumbnailTask:
                thumb = await self.render_one(slide)
                if on_rendered is not None:
                    on_rendered(thumb)
                return thumb

            return job

        results = await run_concurrently(
            [factory(s) for s in targets], max_concurrency=self.max_concurrency
        )
        return {t.slide_number: t for t in sorted(results, key=lambda t: t.slide_number)}
