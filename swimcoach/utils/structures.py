from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class Landmark:
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


@dataclass
class Prediction:
    label: Optional[str]
    confidence: float

    @classmethod
    def empty(cls) -> "Prediction":
        return cls(label=None, confidence=0.0)


@dataclass
class PostureCheck:
    name: str
    passed: bool
    message: str
    priority: int


@dataclass
class PostureEvaluation:
    checks: List[PostureCheck]
    overall_score: int
    summary_message: str
    all_passed: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReadinessResult:
    is_ready: bool
    message: str


@dataclass
class WristRange:
    min: float = 0.0
    max: float = 0.0
    range: float = 0.0


@dataclass
class SessionEvent:
    kind: str  # ready | milestone | goal | cycle | complete
    message: str
    at: float
    value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MotionDefinition:
    id: int
    name: str
    subtitle: str
    description: str
    guide: str
    posture: str  # seated | standing
    steps: Tuple[str, ...]
    sequence: Tuple[str, ...]
    target_cycles: int
    hold_mode: bool = False
    hold_goal: Optional[float] = None
    icon: str = ""

    def has_step(self, label: str) -> bool:
        return label in self.steps

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
