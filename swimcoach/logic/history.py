from __future__ import annotations

import time
from collections import deque
from typing import Any, Deque, Optional, Tuple

import numpy as np

from swimcoach.logic.geometry import LEFT_WRIST, RIGHT_WRIST, as_joint_array
from swimcoach.utils.structures import WristRange

MIN_FRAMES_FOR_MOVEMENT = 5
MIN_FRAMES_FOR_ALTERNATION = 8


class TemporalHistory:
    """Sliding window of recent joint sets for motion-over-time checks."""

    def __init__(self, capacity: int = 15) -> None:
        self.capacity = max(1, capacity)
        self.frames: Deque[Tuple[float, np.ndarray]] = deque(maxlen=self.capacity)

    def __len__(self) -> int:
        return len(self.frames)

    def add(self, landmarks: Any, timestamp: Optional[float] = None) -> None:
        stamp = time.time() if timestamp is None else float(timestamp)
        self.frames.append((stamp, as_joint_array(landmarks)))

    def clear(self) -> None:
        self.frames.clear()

    def _column(self, index: int, axis: int) -> np.ndarray:
        return np.array([joints[index][axis] for _, joints in self.frames], dtype=np.float64)

    def x_movement(self, index: int) -> float:
        """Total horizontal travel of one joint across the window."""
        if len(self.frames) < MIN_FRAMES_FOR_MOVEMENT:
            return 0.0
        return float(np.abs(np.diff(self._column(index, 0))).sum())

    def wrist_distance_range(self) -> WristRange:
        if len(self.frames) < MIN_FRAMES_FOR_MOVEMENT:
            return WristRange()
        dx = self._column(LEFT_WRIST, 0) - self._column(RIGHT_WRIST, 0)
        dy = self._column(LEFT_WRIST, 1) - self._column(RIGHT_WRIST, 1)
        distances = np.hypot(dx, dy)
        low, high = float(distances.min()), float(distances.max())
        return WristRange(min=low, max=high, range=high - low)

    def wrist_alternation_count(self) -> int:
        """Sign changes of left.y - right.y between consecutive frames."""
        if len(self.frames) < MIN_FRAMES_FOR_ALTERNATION:
            return 0
        signs = np.sign(self._column(LEFT_WRIST, 1) - self._column(RIGHT_WRIST, 1))
        flips = (signs[1:] * signs[:-1]) < 0
        return int(np.count_nonzero(flips))
