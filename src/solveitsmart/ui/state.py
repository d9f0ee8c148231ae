"""UI view state and the streaming driver that feeds it."""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterator

from ..events import EventKind, SessionEvent

if TYPE_CHECKING:
    from ..session import SessionManager

logger = logging.getLogger(__name__)

_DONE = object()


@dataclass
class ViewState:
    response_text: str = ""
    streaming_chunk: str = ""
    is_ready: bool = False
    is_generating: bool = False

    def apply(self, event: SessionEvent) -> None:
        if event.kind is EventKind.STREAM:
            self.streaming_chunk = event.text
        elif event.kind is EventKind.RESPONSE:
            self.response_text = event.text
            self.streaming_chunk = ""
        elif event.kind is EventKind.GENERATING:
            self.is_generating = event.flag
        elif event.kind is EventKind.READY:
            self.is_ready = event.flag
        elif event.kind is EventKind.RESET:
            self.response_text = ""
            self.streaming_chunk = ""

    @property
    def visible_text(self) -> str:
        return self.streaming_chunk if self.is_generating else self.response_text


def stream_flow(session: "SessionManager", flow: Callable[[], str]) -> Iterator[str]:
    """Run ``flow`` on a worker thread and yield what the view shows.

    A ``ViewState`` subscribed to ``session.bus`` tracks the flow; every
    non-empty streaming snapshot is yielded as it arrives, followed by the
    flow's return value once it finishes.
    """
    view = ViewState(is_ready=session.is_ready)
    updates: queue.Queue = queue.Queue()
    result: dict[str, str] = {}

    def _on_event(event: SessionEvent) -> None:
        view.apply(event)
        if event.kind is EventKind.STREAM and view.is_generating and view.visible_text:
            updates.put(view.visible_text)

    def _worker() -> None:
        try:
            result["text"] = flow()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Flow failed")
            result["text"] = f"[error] {exc}"
        finally:
            updates.put(_DONE)

    unsubscribe = session.bus.subscribe(_on_event)
    try:
        threading.Thread(target=_worker, daemon=True).start()
        while True:
            item = updates.get()
            if item is _DONE:
                break
            yield item
    finally:
        unsubscribe()
    yield result.get("text", view.response_text)
