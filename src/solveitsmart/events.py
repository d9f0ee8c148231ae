"""Session event publication."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    READY = "ready"
    GENERATING = "generating"
    STREAM = "stream"
    RESPONSE = "response"
    RESET = "reset"


@dataclass(frozen=True)
class SessionEvent:
    kind: EventKind
    text: str = ""
    flag: bool = False


Subscriber = Callable[[SessionEvent], None]


class EventBus:
    """Fan-out of session events to subscribers, called on the publishing thread."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, event: SessionEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:  # noqa: BLE001
                logger.exception("Subscriber failed on %s event", event.kind.value)

    def stream(self, text: str) -> None:
        self.publish(SessionEvent(EventKind.STREAM, text=text))

    def response(self, text: str) -> None:
        self.publish(SessionEvent(EventKind.RESPONSE, text=text))

    def ready(self, flag: bool) -> None:
        self.publish(SessionEvent(EventKind.READY, flag=flag))

    def generating(self, flag: bool) -> None:
        self.publish(SessionEvent(EventKind.GENERATING, flag=flag))

    def reset(self) -> None:
        self.publish(SessionEvent(EventKind.RESET))
