# lessondeck/core/generation/content_writer.py

from typing import Protocol
import logging

import openai
from langchain_core.runnables import Runnable

from lessondeck.core.exceptions import CollaboratorUnavailableError, ContentGenerationError
from lessondeck.core.generation.llm import make_llm
from lessondeck.core.generation.prompts import SLIDE_PROMPT, SOURCE_LABELS
from lessondeck.core.infra.config import settings
from lessondeck.core.infra.llm_callbacks import PrometheusLLMCallback
from lessondeck.models.schema import GeneratedSlide, SlidePromptContext

logger = logging.getLogger(__name__)

COLLABORATOR = "content generation"


class ContentGenerationClient(Protocol):
    """Produces the markup for a single slide.

    Implementations raise ``ContentGenerationError`` when one slide cannot be
    produced and ``CollaboratorUnavailableError`` when no slide can.
    """

    async def generate_slide(self, ctx: SlidePromptContext) -> GeneratedSlide: ...


def build_slide_chain(llm) -> Runnable:
    """Prompt context -> GeneratedSlide(Pydantic)"""
    return SLIDE_PROMPT | llm.with_structured_output(GeneratedSlide)


class LangChainContentClient:
    """Content generation backed by an OpenAI chat model through LangChain."""

    def __init__(
        self,
        model: str = settings.CONTENT_MODEL,
        temperature: float = settings.CONTENT_TEMPERATURE,
        api_key: str = settings.OPENAI_API_KEY,
        timeout: int = settings.CONTENT_TIMEOUT_SEC,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.api_key = api_key
        self.timeout = timeout

    async def generate_slide(self, ctx: SlidePromptContext) -> GeneratedSlide:
        if not self.api_key:
            raise CollaboratorUnavailableError(COLLABORATOR, "OPENAI_API_KEY is not configured")

        llm = make_llm(
            model=self.model,
            temperature=self.temperature,
            api_key=self.api_key,
            timeout=self.timeout,
        )
        chain = build_slide_chain(llm)

        logger.info(
            "Generating slide %d/%d '%s' (%s)",
            ctx.slide_number,
            ctx.total_slides,
            ctx.title,
            ctx.approach.value,
        )
        try:
            generated: GeneratedSlide = await chain.ainvoke(
                {
                    "topic": ctx.topic,
                    "age": ctx.age,
                    "lesson_title": ctx.lesson_title or ctx.topic,
                    "slide_number": ctx.slide_number,
                    "total_slides": ctx.total_slides,
                    "title": ctx.title,
                    "source": SOURCE_LABELS[ctx.approach.value],
                    "content": ctx.content,
                },
                config={"callbacks": [PrometheusLLMCallback("slide", ctx.slide_number)]},
            )
        # APITimeoutError subclasses APIConnectionError and must be matched first.
        except openai.APITimeoutError as e:
            raise ContentGenerationError(f"Timed out: {e}", slide_number=ctx.slide_number) from e
        except (openai.APIConnectionError, openai.AuthenticationError) as e:
            raise CollaboratorUnavailableError(COLLABORATOR, str(e)) from e
        except Exception as e:
            raise ContentGenerationError(str(e), slide_number=ctx.slide_number) from e

        if generated is None or not generated.html.strip():
            raise ContentGenerationError("Model returned empty markup", slide_number=ctx.slide_number)
        return generated
