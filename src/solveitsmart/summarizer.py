"""Condenses the first solution into a short reference summary."""
from __future__ import annotations

import logging

from .engines.base import EngineContext
from .generation import GenerationLoop
from .prompts import build_summary_prompt, log_prompt_metrics

logger = logging.getLogger(__name__)


class Summarizer:
    def __init__(self, loop: GenerationLoop | None = None) -> None:
        self._loop = loop or GenerationLoop()

    def summarize(self, context: EngineContext | None, raw_text: str) -> str:
        """Return the trimmed model output; empty when the engine produced nothing usable."""
        prompt = build_summary_prompt(raw_text)
        log_prompt_metrics(prompt, "Summary prompt")
        result = self._loop.run(context, prompt)
        summary = result.cleaned
        logger.info("Summary ready (%d chars)", len(summary))
        return summary
