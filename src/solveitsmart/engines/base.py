"""Engine context protocol and device spec."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Protocol


@dataclass
class DeviceSpec:
    kind: Literal["cuda", "cpu"]
    gpu_index: int | None


class EngineInitError(RuntimeError):
    """Raised when an engine context cannot be created from a model path."""


class EngineContext(Protocol):
    """Step-wise completion handle owned by a single session.

    A completion is started with ``completion_init`` and advanced one fragment
    at a time with ``completion_loop`` until ``is_done`` turns true.
    """

    @property
    def is_done(self) -> bool:
        ...

    def clear(self) -> None:
        ...

    def reset_state(self) -> None:
        ...

    def completion_init(self, prompt: str) -> None:
        ...

    def completion_loop(self) -> str:
        ...


ContextFactory = Callable[[str], EngineContext]
