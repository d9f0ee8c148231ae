"""Problem registry helpers."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Problem:
    id: str
    body: str
    techniques: list[str] = field(default_factory=list)
    figure: str | None = None
    image: str | None = None
    figure_description: str | None = None
    final_answer: str | None = None
    solution: str | None = None

    @property
    def technique_label(self) -> str:
        return ", ".join(self.techniques)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Problem":
        def pick(snake: str, camel: str) -> Any:
            return data.get(snake, data.get(camel))

        return cls(
            id=str(data["id"]),
            body=str(data["body"]),
            techniques=[str(t) for t in data.get("techniques") or []],
            figure=data.get("figure"),
            image=data.get("image"),
            figure_description=pick("figure_description", "figureDescription"),
            final_answer=pick("final_answer", "finalAnswer"),
            solution=data.get("solution"),
        )


class ProblemRegistry:
    def __init__(self, problems: list[Problem]):
        self._problems = problems

    def list(self) -> list[Problem]:
        return list(self._problems)

    def get(self, problem_id: str) -> Problem:
        for problem in self._problems:
            if problem.id == problem_id:
                return problem
        raise KeyError(f"Problem not found: {problem_id}")


def load_problems(path: str) -> ProblemRegistry:
    """Load problem records from a JSON list; a missing or malformed file yields an empty registry."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except FileNotFoundError:
        logger.error("Problem file not found: %s", path)
        return ProblemRegistry([])
    except json.JSONDecodeError:
        logger.exception("Failed to decode problem file %s", path)
        return ProblemRegistry([])

    problems: list[Problem] = []
    if isinstance(raw, list):
        for item in raw:
            try:
                problems.append(Problem.from_dict(item))
            except (KeyError, TypeError, AttributeError):
                logger.warning("Skipping malformed problem record: %r", item)
    logger.info("Loaded %d problems from %s", len(problems), path)
    return ProblemRegistry(problems)
