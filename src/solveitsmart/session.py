"""Conversation state and the session that drives solve / follow-up flows."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .config import SessionLimits
from .engines.base import ContextFactory, EngineContext
from .events import EventBus
from .generation import FALLBACK_MESSAGE, GenerationLoop, GenerationResult, is_degenerate
from .prompts import (
    build_followup_prompt,
    build_solution_prompt,
    estimate_tokens,
    fits_prompt_budget,
    log_prompt_metrics,
    select_history_window,
)
from .summarizer import Summarizer

if TYPE_CHECKING:
    from .registry import Problem

logger = logging.getLogger(__name__)

STOP_PHRASES = ("stop", "enough", "thank you", "yes that's enough", "that's fine")

EMPTY_INPUT_MESSAGE = "Please enter a message."
STOP_MESSAGE = "Okay, I'll stop here."
TOO_LONG_MESSAGE = "Your message is too long. Please shorten it and try again."
CANNOT_PROCESS_MESSAGE = "Sorry, I can't process that. Please ask another question."
PROMPT_TOO_LONG_MESSAGE = "Prompt is too long! Choose another problem to analyze."
CONTEXT_UNAVAILABLE_MESSAGE = "Model context could not be created."
BUSY_MESSAGE = "Still working on the previous request. Please wait."


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    role: Role
    content: str


@dataclass
class ConversationState:
    history: list[Turn] = field(default_factory=list)
    first_assistant_response: str | None = None
    first_assistant_summary: str | None = None
    selected_technique: str | None = None

    def append(self, role: Role, content: str) -> Turn:
        turn = Turn(role=role, content=content)
        self.history.append(turn)
        if role is Role.ASSISTANT and self.first_assistant_response is None:
            self.first_assistant_response = content
        return turn

    def clear(self) -> None:
        self.history = []
        self.first_assistant_response = None
        self.first_assistant_summary = None
        self.selected_technique = None


def is_stop_intent(message: str) -> bool:
    lowered = message.lower()
    return any(phrase in lowered for phrase in STOP_PHRASES)


class SessionManager:
    """Owns one engine context and one conversation about a single problem.

    ``solve`` and ``continue_conversation`` are serialized by a lock: a call
    made while another flow is generating returns ``BUSY_MESSAGE`` instead of
    touching the engine. Progress is published on ``bus``.
    """

    def __init__(
        self,
        model_path: str,
        context_factory: ContextFactory,
        limits: SessionLimits | None = None,
        bus: EventBus | None = None,
        loop: GenerationLoop | None = None,
        summarizer: Summarizer | None = None,
    ) -> None:
        self.model_path = model_path
        self.limits = limits or SessionLimits()
        self.bus = bus or EventBus()
        self.state = ConversationState()
        self._factory = context_factory
        self._loop = loop or GenerationLoop(self.limits.max_steps)
        self._summarizer = summarizer or Summarizer(self._loop)
        self._context: EngineContext | None = None
        self._flow_lock = threading.Lock()
        self._init_lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._context is not None

    @property
    def history(self) -> tuple[Turn, ...]:
        return tuple(self.state.history)

    def ensure_ready(self) -> bool:
        with self._init_lock:
            if self._context is not None:
                return True
            try:
                self._context = self._factory(self.model_path)
            except Exception:  # noqa: BLE001
                logger.exception("Failed to initialize engine context from %s", self.model_path)
                self._context = None
                self.bus.ready(False)
                return False
            logger.info("Engine context initialized from %s", self.model_path)
            self.bus.ready(True)
            return True

    def reset_chat(self) -> None:
        with self._flow_lock:
            self.state.clear()
            self.bus.reset()

    def force_reset(self) -> None:
        """Clear the conversation and the engine's generation state for a new problem."""
        self.ensure_ready()
        with self._flow_lock:
            self.state.clear()
            self.bus.reset()
            if self._context is None:
                logger.warning("Tried to reset engine context, but none exists")
                return
            self._context.clear()
            self._context.reset_state()
            logger.info("Context and history reset for new problem")

    def close(self) -> None:
        with self._flow_lock:
            context, self._context = self._context, None
            if context is not None and hasattr(context, "close"):
                context.close()
            self.bus.ready(False)

    def solve(
        self,
        problem: str,
        technique: str,
        figure_description: str | None = None,
        final_answer: str | None = None,
        solution: str | None = None,
    ) -> str:
        if not self._flow_lock.acquire(blocking=False):
            return self._reply(BUSY_MESSAGE)
        try:
            if not self.ensure_ready():
                return self._reply(CONTEXT_UNAVAILABLE_MESSAGE)
            self.state.selected_technique = technique
            prompt = build_solution_prompt(
                technique=technique,
                problem=problem,
                figure_description=figure_description,
                solution=solution,
                final_answer=final_answer,
            )
            log_prompt_metrics(prompt, "Solution prompt")
            if not fits_prompt_budget(prompt, limit=self.limits.max_prompt_chars):
                logger.warning("Solution prompt too long (%d chars)", len(prompt))
                return self._reply(PROMPT_TOO_LONG_MESSAGE)

            result = self._generate(prompt)
            self.state.append(Role.USER, problem)
            if not result.degenerate:
                self.state.append(Role.ASSISTANT, result.cleaned)
            return result.text
        finally:
            self._flow_lock.release()

    def continue_conversation(self, user_message: str) -> str:
        """Answer a follow-up question within the scope of the first solution."""
        if not user_message.strip():
            logger.info("Ignored empty user message")
            return self._reply(EMPTY_INPUT_MESSAGE)
        if is_stop_intent(user_message):
            logger.info("Detected stop intent in input")
            return self._reply(STOP_MESSAGE)
        if len(user_message) > self.limits.max_user_input_chars:
            return self._reply(TOO_LONG_MESSAGE)

        if not self._flow_lock.acquire(blocking=False):
            return self._reply(BUSY_MESSAGE)
        try:
            if not self.ensure_ready():
                return self._reply(CONTEXT_UNAVAILABLE_MESSAGE)
            self.log_history("Before follow-up")
            logger.debug(
                "User input: %d chars, ~%d tokens", len(user_message), estimate_tokens(user_message)
            )

            pending = Turn(role=Role.USER, content=user_message)
            window = select_history_window(
                [*self.state.history, pending],
                max_tokens=self.limits.max_context_tokens,
                reserve=self.limits.token_reserve,
            )
            summary = self._first_summary(window)
            prompt = build_followup_prompt(summary, self.state.selected_technique, user_message)
            log_prompt_metrics(prompt, "Follow-up prompt")
            if not fits_prompt_budget(prompt, limit=self.limits.max_prompt_chars):
                logger.warning("Follow-up prompt too long (%d chars)", len(prompt))
                return self._reply(CANNOT_PROCESS_MESSAGE)

            result = self._generate(prompt)
            self.state.history.append(pending)
            if not result.degenerate and self.state.history[-1].content != result.cleaned:
                self.state.append(Role.ASSISTANT, result.cleaned)
            return result.text
        finally:
            self._flow_lock.release()

    def log_history(self, label: str = "Chat history") -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug("%s ---", label)
        for index, turn in enumerate(self.state.history):
            preview = turn.content.replace("\n", " ")[:200]
            logger.debug(
                "[%d] %s (~%d tokens): %s",
                index,
                turn.role.value.capitalize(),
                estimate_tokens(turn.content),
                preview,
            )
        logger.debug("%s --- end", label)

    def _first_summary(self, window: list[Turn]) -> str | None:
        if self.state.first_assistant_summary is not None:
            return self.state.first_assistant_summary
        first = self.state.first_assistant_response
        if first is None:
            first = next((t.content for t in window if t.role is Role.ASSISTANT), None)
        if first is None:
            return None
        self.state.first_assistant_response = first
        try:
            summary = self._summarizer.summarize(self._context, first)
        except Exception:  # noqa: BLE001
            logger.exception("Summary generation failed")
            return None
        if is_degenerate(summary):
            logger.warning("Summary came back empty; it will be retried on the next follow-up")
            return None
        self.state.first_assistant_summary = summary
        return summary

    def _generate(self, prompt: str) -> GenerationResult:
        self.bus.stream("")
        self.bus.generating(True)
        try:
            result = self._loop.run(self._context, prompt, on_update=self.bus.stream)
        except Exception:  # noqa: BLE001
            logger.exception("Generation failed")
            result = GenerationResult(
                text=FALLBACK_MESSAGE, raw="", steps=0, completed=False, degenerate=True
            )
        self.bus.response(result.text)
        self.bus.generating(False)
        return result

    def _reply(self, message: str) -> str:
        self.bus.response(message)
        return message


def open_problem(session: SessionManager, problem: "Problem") -> str:
    """Start a fresh conversation on ``problem`` and return the initial solution."""
    logger.info("Opening problem %s", problem.id)
    session.force_reset()
    return session.solve(
        problem.body,
        technique=problem.technique_label,
        figure_description=problem.figure_description,
        final_answer=problem.final_answer,
        solution=problem.solution,
    )
