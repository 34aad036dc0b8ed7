from __future__ import annotations

import json
import os
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from swimcoach.logic.knn import ClassifierImportError
from swimcoach.logic.motions import MOTIONS
from swimcoach.server.database import SQLStore
from swimcoach.server.logging_utils import configure_logging
from swimcoach.server.models.schemas import (
    ClassifierState,
    FrameRequest,
    FrameResponse,
    MessageResponse,
    MotionListResponse,
    MotionResponse,
    PracticeHistoryResponse,
    PracticeStateResponse,
    PracticeStatsResponse,
    PracticeStopResponse,
    SampleCountsResponse,
    SampleCreate,
    StartPracticeRequest,
)
from swimcoach.server.session import (
    PracticeManager,
    PracticeNotRunningError,
    UnknownMotionError,
    UnknownStepError,
)
from swimcoach.utils.config import DEFAULT_RUNTIME_CONFIG, load_runtime_config

CONFIG_PATH_ENV = "SWIMCOACH_CONFIG"

app = FastAPI(title="Survival Swimming Trainer", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup() -> None:
    config = load_runtime_config(os.getenv(CONFIG_PATH_ENV, str(DEFAULT_RUNTIME_CONFIG)))
    configure_logging(config.log_level)


@lru_cache(maxsize=1)
def get_manager() -> PracticeManager:
    config = load_runtime_config(os.getenv(CONFIG_PATH_ENV, str(DEFAULT_RUNTIME_CONFIG)))
    store = SQLStore(config.database_url)
    return PracticeManager(store, runtime_config=config, recorder=store)


def _not_found(exc: Exception) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


@app.get("/api/motions", response_model=MotionListResponse)
async def list_motions() -> MotionListResponse:
    return MotionListResponse(motions=[MotionResponse(**motion.to_dict()) for motion in MOTIONS.values()])


@app.get("/api/motions/{motion_id}/samples", response_model=SampleCountsResponse)
async def read_samples(motion_id: int, manager: PracticeManager = Depends(get_manager)) -> SampleCountsResponse:
    try:
        return SampleCountsResponse(**manager.sample_counts(motion_id))
    except UnknownMotionError as exc:
        raise _not_found(exc) from exc


@app.post("/api/motions/{motion_id}/samples", response_model=SampleCountsResponse)
async def add_sample(
    motion_id: int,
    payload: SampleCreate,
    manager: PracticeManager = Depends(get_manager),
) -> SampleCountsResponse:
    landmarks = [lm.model_dump() for lm in payload.landmarks]
    try:
        counts = manager.add_sample(motion_id, payload.step, landmarks)
    except UnknownMotionError as exc:
        raise _not_found(exc) from exc
    except UnknownStepError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return SampleCountsResponse(**counts)


@app.delete("/api/motions/{motion_id}/samples", response_model=MessageResponse)
async def clear_samples(motion_id: int, manager: PracticeManager = Depends(get_manager)) -> MessageResponse:
    try:
        manager.clear_samples(motion_id)
    except UnknownMotionError as exc:
        raise _not_found(exc) from exc
    return MessageResponse(message="Training samples cleared")


@app.get("/api/motions/{motion_id}/classifier", response_model=ClassifierState)
async def export_classifier(motion_id: int, manager: PracticeManager = Depends(get_manager)) -> ClassifierState:
    try:
        return ClassifierState(samples=json.loads(manager.export_classifier(motion_id)))
    except UnknownMotionError as exc:
        raise _not_found(exc) from exc


@app.put("/api/motions/{motion_id}/classifier", response_model=SampleCountsResponse)
async def import_classifier(
    motion_id: int,
    payload: ClassifierState,
    manager: PracticeManager = Depends(get_manager),
) -> SampleCountsResponse:
    try:
        counts = manager.import_classifier(motion_id, json.dumps(payload.samples))
    except UnknownMotionError as exc:
        raise _not_found(exc) from exc
    except ClassifierImportError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return SampleCountsResponse(**counts)


@app.post("/api/practice/start", response_model=PracticeStateResponse)
async def start_practice(
    request: StartPracticeRequest,
    manager: PracticeManager = Depends(get_manager),
) -> PracticeStateResponse:
    try:
        session = manager.start(request.motion_id, request.hold_goal)
    except UnknownMotionError as exc:
        raise _not_found(exc) from exc
    return PracticeStateResponse(**session.snapshot())


@app.post("/api/practice/frame", response_model=FrameResponse)
async def practice_frame(payload: FrameRequest, manager: PracticeManager = Depends(get_manager)) -> FrameResponse:
    landmarks = [lm.model_dump() for lm in payload.landmarks]
    try:
        result = manager.process_frame(landmarks, payload.timestamp)
    except PracticeNotRunningError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return FrameResponse(**result)


@app.get("/api/practice/status", response_model=PracticeStateResponse)
async def practice_status(manager: PracticeManager = Depends(get_manager)) -> PracticeStateResponse:
    try:
        return PracticeStateResponse(**manager.status())
    except PracticeNotRunningError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@app.post("/api/practice/reset", response_model=PracticeStateResponse)
async def reset_practice(manager: PracticeManager = Depends(get_manager)) -> PracticeStateResponse:
    try:
        return PracticeStateResponse(**manager.reset())
    except PracticeNotRunningError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@app.post("/api/practice/stop", response_model=PracticeStopResponse)
async def stop_practice(manager: PracticeManager = Depends(get_manager)) -> PracticeStopResponse:
    try:
        recorded = manager.stop()
    except PracticeNotRunningError:
        return PracticeStopResponse(status="idle")
    return PracticeStopResponse(status="stopped", recorded=recorded)


@app.get("/api/practice/history", response_model=PracticeHistoryResponse)
async def practice_history(limit: int = 20, manager: PracticeManager = Depends(get_manager)) -> PracticeHistoryResponse:
    return PracticeHistoryResponse(sessions=manager.practice_history(limit))


@app.get("/api/practice/stats", response_model=PracticeStatsResponse)
async def practice_stats(manager: PracticeManager = Depends(get_manager)) -> PracticeStatsResponse:
    return PracticeStatsResponse(**manager.practice_stats())
