from __future__ import annotations

import time
from collections import deque
from typing import Deque, Optional


class FrameTimer:
    """Rolling per-frame processing time, checked against a frame budget."""

    def __init__(self, window: int = 30, budget_ms: float = 33.3) -> None:
        self.window = max(1, window)
        self.budget_ms = budget_ms
        self.durations: Deque[float] = deque(maxlen=self.window)
        self.frames = 0
        self.over_budget = 0
        self._started: Optional[float] = None

    def start(self) -> None:
        self._started = time.perf_counter()

    def stop(self) -> float:
        if self._started is None:
            return 0.0
        elapsed_ms = (time.perf_counter() - self._started) * 1000.0
        self._started = None
        self.durations.append(elapsed_ms)
        self.frames += 1
        if elapsed_ms > self.budget_ms:
            self.over_budget += 1
        return elapsed_ms

    def mean_ms(self) -> float:
        if not self.durations:
            return 0.0
        return float(sum(self.durations) / len(self.durations))

    def get_fps(self) -> float:
        mean = self.mean_ms()
        return 1000.0 / mean if mean > 0 else 0.0
