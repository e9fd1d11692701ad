import logging

from langchain_community.cache import SQLiteCache
from langchain_core.globals import set_llm_cache
from langchain_openai import ChatOpenAI

from lessondeck.core.infra.config import settings

logger = logging.getLogger(__name__)


def configure_llm_cache(database_path: str | None = settings.LLM_CACHE_PATH) -> None:
    """Enable the LangChain SQLite cache when a path is configured."""
    if not database_path:
        return
    logger.info("Enabling LLM cache at %s", database_path)
    set_llm_cache(SQLiteCache(database_path=database_path))


def make_llm(
    model: str = settings.CONTENT_MODEL,
    temperature: float = settings.CONTENT_TEMPERATURE,
    api_key: str = settings.OPENAI_API_KEY,
    timeout: int = settings.CONTENT_TIMEOUT_SEC,
) -> ChatOpenAI:
    """Create a chat model instance for slide generation."""
    logger.debug("Creating LLM instance with model: %s, temperature: %s", model, temperature)
    return ChatOpenAI(
        model=model,
        api_key=api_key,
        temperature=temperature,
        timeout=timeout,
    )
