from __future__ import annotations

import pytest

from solveitsmart.config import SessionLimits
from solveitsmart.session import SessionManager


class FakeContext:
    """Engine context double that replays scripted replies in small fragments."""

    def __init__(self, *replies: str, fragment_size: int = 5, never_done: bool = False) -> None:
        self.replies = list(replies)
        self.fragment_size = fragment_size
        self.never_done = never_done
        self.calls: list[str] = []
        self.prompts: list[str] = []
        self.closed = False
        self._pending: list[str] = []
        self._done = True

    @property
    def is_done(self) -> bool:
        return self._done

    def clear(self) -> None:
        self.calls.append("clear")

    def reset_state(self) -> None:
        self.calls.append("reset_state")

    def completion_init(self, prompt: str) -> None:
        self.calls.append("completion_init")
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else ""
        size = self.fragment_size
        self._pending = [reply[i:i + size] for i in range(0, len(reply), size)]
        self._done = not self.never_done and not self._pending

    def completion_loop(self) -> str:
        self.calls.append("completion_loop")
        if self.never_done:
            return "a"
        fragment = self._pending.pop(0) if self._pending else ""
        if not self._pending:
            self._done = True
        return fragment

    def close(self) -> None:
        self.closed = True


class CountingSummarizer:
    def __init__(self, summary: str = "Short summary of the solution.") -> None:
        self.summary = summary
        self.calls: list[str] = []

    def summarize(self, context, raw_text: str) -> str:
        self.calls.append(raw_text)
        return self.summary


@pytest.fixture
def make_session():
    """Build a SessionManager around a given fake context, counting factory calls."""

    def _make(context: FakeContext, summarizer=None, limits: SessionLimits | None = None):
        created: list[str] = []

        def _factory(model_path: str) -> FakeContext:
            created.append(model_path)
            return context

        session = SessionManager("models/test", _factory, limits=limits, summarizer=summarizer)
        session.created = created
        return session

    return _make
