from __future__ import annotations

import math
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Set

from loguru import logger

from swimcoach.logic.motions import DEFAULT_HOLD_GOAL, MOTIONS, READY_POSE
from swimcoach.utils.structures import MotionDefinition, SessionEvent

MAX_SCORE = 20
STABILIZATION_WINDOW = 8
MIN_CONFIDENCE = 0.45
MIN_MILESTONE_STEP = 5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def hold_milestones(goal: float) -> List[float]:
    """Elapsed-second checkpoints for a hold goal: every ``max(5, goal/3)`` plus the goal."""
    step = max(MIN_MILESTONE_STEP, _round_half_up(goal / 3))
    marks: List[float] = []
    sec = step
    while sec <= goal:
        marks.append(sec)
        sec += step
    if goal not in marks:
        marks.append(goal)
    return marks


class PracticeSession:
    """Progress tracker for one practice attempt of a drill.

    Fed one classified frame at a time through :meth:`update`. Raw labels are
    smoothed by majority vote over the last few frames, nothing advances until
    the ready pose has been seen, and the drill completes either by holding
    the target posture for the hold goal or by repeating its step sequence.
    """

    def __init__(
        self,
        motion_id: int,
        hold_goal: Optional[float] = None,
        *,
        motions: Optional[Dict[int, MotionDefinition]] = None,
        stabilization_window: int = STABILIZATION_WINDOW,
        min_confidence: float = MIN_CONFIDENCE,
        default_hold_goal: float = DEFAULT_HOLD_GOAL,
    ) -> None:
        catalog = MOTIONS if motions is None else motions
        self.motion_id = motion_id
        self.motion: Optional[MotionDefinition] = catalog.get(motion_id)
        if self.motion is None:
            logger.warning("Practice session created for unknown motion {}", motion_id)
        if hold_goal is not None:
            self.hold_goal = float(hold_goal)
        elif self.motion is not None and self.motion.hold_goal is not None:
            self.hold_goal = float(self.motion.hold_goal)
        else:
            self.hold_goal = float(default_hold_goal)
        self.stabilization_window = max(1, stabilization_window)
        self.min_confidence = min_confidence
        self.reset()

    def reset(self) -> None:
        self.seq_idx = 0
        self.cycles_done = 0
        self.score = 0
        self.done = False
        self.last_step = ""
        self.current_label = ""
        self.confidence = 0.0
        self.hold_start: Optional[float] = None
        self.hold_sec = 0.0
        self.stable_history: Deque[str] = deque(maxlen=self.stabilization_window)
        self.ready_detected = False
        self.ready_announced = False
        self.fired_milestones: Set[float] = set()

    @property
    def hold_mode(self) -> bool:
        return bool(self.motion is not None and self.motion.hold_mode)

    @property
    def effective_hold_goal(self) -> Optional[float]:
        return self.hold_goal if self.hold_mode else None

    @property
    def expected(self) -> str:
        if self.motion is None or self.done:
            return ""
        if not self.ready_detected:
            return READY_POSE
        sequence = self.motion.sequence
        return sequence[self.seq_idx] if self.seq_idx < len(sequence) else ""

    @property
    def progress(self) -> float:
        if self.done:
            return 1.0
        if self.motion is None:
            return 0.0
        if self.hold_mode:
            return min(1.0, self.hold_sec / self.hold_goal) if self.hold_goal > 0 else 0.0
        return min(1.0, self.cycles_done / max(self.motion.target_cycles, 1))

    def _stable_label(self, label: str) -> Optional[str]:
        self.stable_history.append(label)
        counts: Dict[str, int] = {}
        for seen in self.stable_history:
            counts[seen] = counts.get(seen, 0) + 1
        # first-seen label wins a tie
        best, best_count = label, 0
        for candidate, count in counts.items():
            if count > best_count:
                best, best_count = candidate, count
        if best_count < len(self.stable_history) * 0.5:
            return None
        return best

    def update(self, label: Optional[str], confidence: float, now: float) -> List[SessionEvent]:
        """Feed one classified frame; returns the events it triggered."""
        self.current_label = label or ""
        self.confidence = float(confidence)
        if not label or self.done or self.motion is None:
            return []

        stable = self._stable_label(label)
        if stable is None or confidence < self.min_confidence:
            return []

        if stable == READY_POSE:
            if not self.ready_detected:
                self.ready_detected = True
                logger.debug("Ready pose detected for motion {}", self.motion_id)
            if self.hold_mode:
                self.hold_start = None
            return []
        if not self.ready_detected:
            return []

        events: List[SessionEvent] = []
        if not self.ready_announced:
            self.ready_announced = True
            events.append(SessionEvent(kind="ready", message="Ready! Start the motion", at=now))

        if self.hold_mode:
            if stable == self.motion.sequence[0]:
                events.extend(self._advance_hold(now))
            else:
                self.hold_start = None
                self.hold_sec = 0.0
            return events

        events.extend(self._advance_sequence(stable, now))
        return events

    def _advance_hold(self, now: float) -> List[SessionEvent]:
        if self.hold_start is None:
            self.hold_start = now
        self.hold_sec = now - self.hold_start
        goal = self.hold_goal

        events: List[SessionEvent] = []
        for mark in hold_milestones(goal):
            if self.hold_sec >= mark and mark not in self.fired_milestones:
                self.fired_milestones.add(mark)
                if mark >= goal:
                    events.append(SessionEvent(kind="goal", message=f"{mark:g}s reached!", at=now, value=mark))
                else:
                    events.append(SessionEvent(kind="milestone", message=f"{mark:g}s!", at=now, value=mark))

        if self.hold_sec >= goal:
            self.cycles_done = 1
            self.score = MAX_SCORE
            self.done = True
            logger.info("Motion {} hold goal of {:g}s reached", self.motion_id, goal)
        else:
            self.score = min(MAX_SCORE, int(math.floor(self.hold_sec / goal * MAX_SCORE)))
        return events

    def _advance_sequence(self, stable: str, now: float) -> List[SessionEvent]:
        sequence = self.motion.sequence
        if self.seq_idx >= len(sequence):
            return []
        if stable != sequence[self.seq_idx] or stable == self.last_step:
            return []
        self.last_step = stable
        self.seq_idx += 1
        if self.seq_idx < len(sequence):
            return []

        self.cycles_done += 1
        self.seq_idx = 0
        self.last_step = ""
        target = self.motion.target_cycles
        if self.cycles_done >= target:
            self.done = True
            self.score = MAX_SCORE
            logger.info("Motion {} completed {} cycles", self.motion_id, self.cycles_done)
            return [SessionEvent(kind="complete", message=f"{target} reps done!", at=now, value=float(target))]
        self.score = int(math.floor(self.cycles_done / target * MAX_SCORE))
        return [
            SessionEvent(
                kind="cycle",
                message=f"Rep {self.cycles_done} complete!",
                at=now,
                value=float(self.cycles_done),
            )
        ]

    def snapshot(self) -> Dict[str, Any]:
        return {
            "motion_id": self.motion_id,
            "expected": self.expected,
            "current_label": self.current_label,
            "confidence": self.confidence,
            "ready_detected": self.ready_detected,
            "seq_idx": self.seq_idx,
            "cycles_done": self.cycles_done,
            "target_cycles": self.motion.target_cycles if self.motion else 0,
            "score": self.score,
            "done": self.done,
            "hold_goal": self.effective_hold_goal,
            "hold_sec": self.hold_sec,
            "progress": self.progress,
        }
