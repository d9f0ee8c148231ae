"""Per-run generation metrics."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass

import psutil


@dataclass
class RunMetrics:
    steps: int
    chars: int
    elapsed_s: float
    ram_peak_mb: float
    hit_step_cap: bool


class PeakRssSampler:
    """Samples this process' resident set size on a daemon thread."""

    def __init__(self, interval_ms: int = 50) -> None:
        self._interval = interval_ms / 1000.0
        self._peak = 0
        self._running = threading.Event()
        self._thread: threading.Thread | None = None
        self._started_at = 0.0

    def __enter__(self) -> "PeakRssSampler":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def start(self) -> None:
        self._started_at = time.perf_counter()
        self._sample(psutil.Process())
        self._running.set()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._running.clear()
        if self._thread:
            self._thread.join(timeout=1.0)
            self._thread = None

    @property
    def peak_mb(self) -> float:
        return self._peak / (1024 * 1024)

    @property
    def elapsed_s(self) -> float:
        return time.perf_counter() - self._started_at

    def _sample(self, proc: psutil.Process) -> None:
        rss = proc.memory_info().rss
        if rss > self._peak:
            self._peak = rss

    def _run(self) -> None:
        proc = psutil.Process()
        while self._running.is_set():
            self._sample(proc)
            time.sleep(self._interval)
