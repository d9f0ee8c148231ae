"""Bounded step-wise generation against an engine context."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .engines.base import EngineContext
from .metrics import PeakRssSampler, RunMetrics

logger = logging.getLogger(__name__)

MAX_STEPS = 1000
NOT_READY_MESSAGE = "Model not ready."
FALLBACK_MESSAGE = (
    "Sorry, I couldn't process that. The input may be too large or too complex."
)
CODE_FENCE = "```"


@dataclass
class GenerationResult:
    text: str
    raw: str
    steps: int
    completed: bool
    degenerate: bool
    metrics: RunMetrics | None = None

    @property
    def cleaned(self) -> str:
        return self.raw.strip()


def is_degenerate(text: str) -> bool:
    cleaned = text.strip()
    return not cleaned or cleaned == CODE_FENCE


class GenerationLoop:
    def __init__(self, max_steps: int = MAX_STEPS) -> None:
        self.max_steps = max_steps

    def run(
        self,
        context: EngineContext | None,
        prompt: str,
        on_update: Callable[[str], None] | None = None,
    ) -> GenerationResult:
        """Drive one completion until the engine is done or the step cap is hit.

        ``on_update`` receives the accumulated text after every step.
        """
        if context is None:
            logger.warning("Generation requested without an engine context")
            return GenerationResult(
                text=NOT_READY_MESSAGE, raw="", steps=0, completed=False, degenerate=True
            )

        context.clear()
        context.reset_state()
        context.completion_init(prompt)

        accumulated = ""
        steps = 0
        with PeakRssSampler() as sampler:
            while not context.is_done and steps < self.max_steps:
                accumulated += context.completion_loop()
                steps += 1
                if on_update is not None:
                    on_update(accumulated)
            completed = bool(context.is_done)
            elapsed = sampler.elapsed_s
        if not completed:
            logger.warning("Max step count reached (%d) before the engine finished", steps)

        metrics = RunMetrics(
            steps=steps,
            chars=len(accumulated),
            elapsed_s=elapsed,
            ram_peak_mb=sampler.peak_mb,
            hit_step_cap=not completed,
        )
        logger.info(
            "Generation finished in %d steps, %d chars, %.2fs, ram peak %.1f MB",
            metrics.steps,
            metrics.chars,
            metrics.elapsed_s,
            metrics.ram_peak_mb,
        )

        degenerate = is_degenerate(accumulated)
        return GenerationResult(
            text=FALLBACK_MESSAGE if degenerate else accumulated.strip(),
            raw=accumulated,
            steps=steps,
            completed=completed,
            degenerate=degenerate,
            metrics=metrics,
        )
