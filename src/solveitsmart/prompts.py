"""Prompt builders."""
from __future__ import annotations

import logging
from typing import Sequence, TYPE_CHECKING

from .sanitizer import sanitize

if TYPE_CHECKING:
    from .session import Turn

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 1855
MAX_CONTEXT_TOKENS = 2048
TOKEN_RESERVE = 300
TURN_OVERHEAD_TOKENS = 4

NO_SUMMARY = "No summary available."
OUT_OF_SCOPE_REPLY = (
    "This question is outside the scope of this problem. "
    "Please ask about the solution or technique used."
)

SOLUTION_TEMPLATE = (
    "Solve the problem using the Polya-style technique: {technique}. "
    "Problem: {problem} {figure} "
    "Provided Solution: {solution} "
    "Rewrite the reasoning clearly in **no more than 8 steps**, preserving all original logic, "
    "numbers, and guesses. Do not break down or expand algebraic expressions unless absolutely "
    "necessary. Do not explain how to solve equations or do arithmetic. "
    "Use new lines for each step (e.g., 1. ..., 2. ...). "
    "Use only double dollar signs for math expressions (e.g., $$2^5 = 32$$). "
    'Never use a single dollar sign "$". '
    "Finish with the final answer: {final_answer} and nothing else."
)

FOLLOWUP_TEMPLATE = (
    "Continue the conversation focused only on the new user message. "
    "Be brief, clear, and to the point. Use a single-column format. "
    "Use only $$...$$ for math, never $...$. "
    "Do NOT use a single dollar sign ($) for math or currency. "
    "Do not solve the problem again or attempt any alternative solution, even if explicitly requested. "
    "Do not introduce new techniques. "
    "Do not use or mention techniques that were not used in the assistant summary. "
    'The assistant summary uses the Polya\'s technique(s): "{technique_line}". '
    "Do not repeat reasoning or sentences. Answer only based on the assistant summary. "
    'If the question is unrelated to the summary, reply: "{out_of_scope}" '
    "Assistant (summary):{summary} User (new): {user_message}. Assistant:"
)

SUMMARY_TEMPLATE = (
    "Summarize the following explanation in 5–7 plain sentences. "
    "Use only double dollar signs for math expressions like $$3 × 0.6 = 1.8$$. "
    'For prices, write as "3.5 dollars", never "$3.5". '
    'Do not use single dollar signs "$...$" under any condition. '
    "Be concise and preserve all numeric accuracy. "
    "End with a final sentence stating the answer clearly. "
    "Explanation to summarize: {explanation}"
)


def estimate_tokens(text: str) -> int:
    """Cheap word-count estimate of a turn's token cost."""
    return len(text.split()) + TURN_OVERHEAD_TOKENS


def estimate_prompt_tokens(prompt: str) -> int:
    return len(prompt) // 4


def select_history_window(
    history: Sequence["Turn"],
    max_tokens: int = MAX_CONTEXT_TOKENS,
    reserve: int = TOKEN_RESERVE,
) -> list["Turn"]:
    """Return the newest contiguous run of turns that fits the token budget.

    Turns are taken from the most recent backwards and the walk stops at the
    first turn that would overflow ``max_tokens - reserve``. The result keeps
    chronological order.
    """
    budget = max_tokens - reserve
    total = 0
    window: list["Turn"] = []
    for turn in reversed(history):
        cost = estimate_tokens(turn.content)
        if total + cost > budget:
            break
        window.append(turn)
        total += cost
    window.reverse()
    logger.debug(
        "History window: %d of %d turns, ~%d/%d tokens", len(window), len(history), total, budget
    )
    return window


def build_solution_prompt(
    technique: str,
    problem: str,
    figure_description: str | None = None,
    solution: str | None = None,
    final_answer: str | None = None,
) -> str:
    figure = f"Figure: {figure_description}" if figure_description is not None else ""
    return SOLUTION_TEMPLATE.format(
        technique=technique,
        problem=problem,
        figure=figure,
        solution=solution or "",
        final_answer=final_answer or "",
    )


def build_followup_prompt(summary: str | None, technique: str | None, user_message: str) -> str:
    technique_line = f"- {technique}" if technique is not None else ""
    return FOLLOWUP_TEMPLATE.format(
        technique_line=technique_line,
        out_of_scope=OUT_OF_SCOPE_REPLY,
        summary=sanitize(summary or NO_SUMMARY),
        user_message=sanitize(user_message),
    )


def build_summary_prompt(explanation: str) -> str:
    return SUMMARY_TEMPLATE.format(explanation=sanitize(explanation))


def fits_prompt_budget(prompt: str, limit: int = MAX_PROMPT_CHARS) -> bool:
    return len(prompt) <= limit


def log_prompt_metrics(prompt: str, label: str) -> int:
    """Log a prompt's size and return its character count."""
    length = len(prompt)
    logger.info("%s: %d chars, ~%d tokens", label, length, estimate_prompt_tokens(prompt))
    logger.debug("%s text:\n%s", label, prompt)
    return length
