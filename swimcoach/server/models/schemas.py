from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LandmarkIn(BaseModel):
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = 1.0


class MotionResponse(BaseModel):
    id: int
    name: str
    subtitle: str
    description: str
    guide: str
    posture: str
    steps: List[str]
    sequence: List[str]
    target_cycles: int
    hold_mode: bool
    hold_goal: Optional[float] = None
    icon: str


class MotionListResponse(BaseModel):
    motions: List[MotionResponse]


class SampleCreate(BaseModel):
    step: str = Field(min_length=1)
    landmarks: List[LandmarkIn] = Field(min_length=33)


class SampleCountsResponse(BaseModel):
    motion_id: int
    counts: Dict[str, int]
    total_samples: int
    trained_classes: int


class ClassifierState(BaseModel):
    samples: Dict[str, List[List[float]]]


class MessageResponse(BaseModel):
    message: str


class StartPracticeRequest(BaseModel):
    motion_id: int = Field(ge=1)
    hold_goal: Optional[float] = Field(default=None, gt=0)


class PracticeStateResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    motion_id: int
    expected: str
    current_label: str
    confidence: float
    ready_detected: bool
    seq_idx: int
    cycles_done: int
    target_cycles: int
    score: int
    done: bool
    hold_goal: Optional[float] = None
    hold_sec: float
    progress: float


class FrameRequest(BaseModel):
    landmarks: List[LandmarkIn]
    timestamp: Optional[float] = None


class PredictionOut(BaseModel):
    label: Optional[str] = None
    confidence: float


class ReadinessOut(BaseModel):
    is_ready: bool
    message: str


class CheckOut(BaseModel):
    name: str
    passed: bool
    message: str
    priority: int


class EvaluationOut(BaseModel):
    checks: List[CheckOut]
    overall_score: int
    summary_message: str
    all_passed: bool


class EventOut(BaseModel):
    kind: str
    message: str
    at: float
    value: Optional[float] = None


class FrameResponse(BaseModel):
    prediction: PredictionOut
    readiness: ReadinessOut
    evaluation: EvaluationOut
    session: PracticeStateResponse
    events: List[EventOut]


class PracticeStopResponse(BaseModel):
    status: str
    recorded: bool = False


class PracticeHistoryResponse(BaseModel):
    sessions: List[dict]


class PracticeStatsResponse(BaseModel):
    total_sessions: int
    average_score: int
    perfect_sessions: int
