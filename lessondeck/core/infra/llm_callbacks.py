from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.outputs import LLMResult

from lessondeck.core.infra.metrics import LLM_ERRORS, observe_llm_usage

logger = logging.getLogger(__name__)


def _token_usage(response: LLMResult) -> Dict[str, int]:
    # OpenAI reports usage under llm_output["token_usage"]
    usage = (response.llm_output or {}).get("token_usage") or {}
    prompt = int(usage.get("prompt_tokens") or 0)
    completion = int(usage.get("completion_tokens") or 0)
    return {
        "prompt": prompt,
        "completion": completion,
        "total": int(usage.get("total_tokens") or prompt + completion),
    }


class PrometheusLLMCallback(BaseCallbackHandler):
    """Records token usage, latency and failures of content-generation calls."""

    def __init__(self, op: str, slide_number: Optional[int] = None) -> None:
        self.op = op
        self.slide_number = slide_number
        self._t0: Optional[float] = None

    def _elapsed(self) -> float:
        now = time.monotonic()
        return now - (self._t0 or now)

    def on_llm_start(self, *args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        self._t0 = time.monotonic()

    def on_chat_model_start(self, *args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        self._t0 = time.monotonic()

    def on_llm_end(self, response: LLMResult, *args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        latency = self._elapsed()
        usage = _token_usage(response)
        observe_llm_usage(self.op, usage, latency, slide_number=self.slide_number)
        logger.debug(
            "LLM %s (slide %s): %d tokens in %.2fs",
            self.op,
            self.slide_number,
            usage["total"],
            latency,
        )

    def on_llm_error(self, error: BaseException, *args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        LLM_ERRORS.labels(op=self.op, error=type(error).__name__).inc()
