from __future__ import annotations

import datetime as dt
import threading
import time
from typing import Any, Dict, List, Optional

from loguru import logger

from swimcoach.logic.features import FEATURE_SIZE, extract_features
from swimcoach.logic.geometry import as_joint_array, has_full_pose
from swimcoach.logic.history import TemporalHistory
from swimcoach.logic.knn import KNNClassifier
from swimcoach.logic.motions import MOTIONS, get_motion
from swimcoach.logic.persistence import BlobStore, delete_classifier, load_classifier, save_classifier
from swimcoach.logic.rules import evaluate_posture, evaluate_ready_pose
from swimcoach.logic.session import PracticeSession
from swimcoach.server.database import SQLStore
from swimcoach.utils.config import RuntimeConfig
from swimcoach.utils.structures import MotionDefinition, Prediction


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class PracticeNotRunningError(RuntimeError):
    pass


class UnknownMotionError(LookupError):
    pass


class UnknownStepError(ValueError):
    pass


class PracticeManager:
    """Owns the per-motion classifiers and the active practice attempt.

    Every public method runs under one lock so frames, training samples and
    imports never interleave.
    """

    def __init__(
        self,
        store: BlobStore,
        runtime_config: Optional[RuntimeConfig] = None,
        recorder: Optional[SQLStore] = None,
    ) -> None:
        self.store = store
        self.config = runtime_config or RuntimeConfig()
        self.recorder = recorder
        self._lock = threading.RLock()
        self.classifiers: Dict[int, KNNClassifier] = {}
        for motion_id in MOTIONS:
            classifier = KNNClassifier(k=self.config.k, feature_size=FEATURE_SIZE)
            load_classifier(store, motion_id, classifier)
            self.classifiers[motion_id] = classifier
        self._session: Optional[PracticeSession] = None
        self._history = TemporalHistory(capacity=self.config.history_capacity)
        self._started_at: Optional[dt.datetime] = None

    @staticmethod
    def _motion(motion_id: int) -> MotionDefinition:
        motion = get_motion(motion_id)
        if motion is None:
            raise UnknownMotionError(f"Unknown motion {motion_id}")
        return motion

    def sample_counts(self, motion_id: int) -> Dict[str, Any]:
        motion = self._motion(motion_id)
        with self._lock:
            classifier = self.classifiers[motion_id]
            stored = classifier.sample_counts()
            counts = {step: stored.get(step, 0) for step in motion.steps}
            return {
                "motion_id": motion_id,
                "counts": counts,
                "total_samples": classifier.total_samples,
                "trained_classes": classifier.num_classes,
            }

    def add_sample(self, motion_id: int, step: str, landmarks: Any) -> Dict[str, Any]:
        motion = self._motion(motion_id)
        if not motion.has_step(step):
            raise UnknownStepError(f"Motion {motion_id} has no step '{step}'")
        features = extract_features(landmarks)
        with self._lock:
            classifier = self.classifiers[motion_id]
            classifier.add_sample(step, features)
            save_classifier(self.store, motion_id, classifier)
        return self.sample_counts(motion_id)

    def clear_samples(self, motion_id: int) -> None:
        self._motion(motion_id)
        with self._lock:
            self.classifiers[motion_id].clear()
            delete_classifier(self.store, motion_id)
        logger.info("Cleared training samples for motion {}", motion_id)

    def export_classifier(self, motion_id: int) -> str:
        self._motion(motion_id)
        with self._lock:
            return self.classifiers[motion_id].export()

    def import_classifier(self, motion_id: int, blob: str) -> Dict[str, Any]:
        self._motion(motion_id)
        with self._lock:
            classifier = self.classifiers[motion_id]
            classifier.import_state(blob)
            save_classifier(self.store, motion_id, classifier)
        return self.sample_counts(motion_id)

    def start(self, motion_id: int, hold_goal: Optional[float] = None) -> PracticeSession:
        self._motion(motion_id)
        with self._lock:
            self._session = PracticeSession(
                motion_id,
                hold_goal,
                stabilization_window=self.config.stabilization_window,
                min_confidence=self.config.min_confidence,
                default_hold_goal=self.config.default_hold_goal,
            )
            self._history.clear()
            self._started_at = _utcnow()
            logger.info("Practice started for motion {} hold_goal={}", motion_id, self._session.effective_hold_goal)
            return self._session

    def _require_session(self) -> PracticeSession:
        if self._session is None:
            raise PracticeNotRunningError("No active practice session")
        return self._session

    def process_frame(self, landmarks: Any, timestamp: Optional[float] = None) -> Dict[str, Any]:
        now = time.time() if timestamp is None else float(timestamp)
        with self._lock:
            session = self._require_session()
            prediction = Prediction.empty()
            joints = as_joint_array(landmarks)
            if has_full_pose(joints):
                classifier = self.classifiers[session.motion_id]
                if classifier.num_classes >= 2:
                    prediction = classifier.predict(extract_features(joints))
                self._history.add(joints, now)
            events = session.update(prediction.label, prediction.confidence, now)
            evaluation = evaluate_posture(session.motion_id, joints, self._history)
            readiness = evaluate_ready_pose(joints)
            for event in events:
                logger.info("Practice event {}: {}", event.kind, event.message)
            return {
                "prediction": {"label": prediction.label, "confidence": prediction.confidence},
                "readiness": {"is_ready": readiness.is_ready, "message": readiness.message},
                "evaluation": evaluation.to_dict(),
                "session": session.snapshot(),
                "events": [event.to_dict() for event in events],
            }

    def reset(self) -> Dict[str, Any]:
        with self._lock:
            session = self._require_session()
            session.reset()
            self._history.clear()
            return session.snapshot()

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return self._require_session().snapshot()

    def stop(self, record: bool = True) -> bool:
        """End the attempt; completed attempts are written to the practice history."""
        with self._lock:
            session = self._require_session()
            recorded = False
            if record and session.done and self.recorder is not None:
                self.recorder.record_practice(
                    motion_id=session.motion_id,
                    score=session.score,
                    cycles_done=session.cycles_done,
                    hold_sec=session.hold_sec,
                    completed=session.done,
                    started_at=self._started_at or _utcnow(),
                    ended_at=_utcnow(),
                )
                recorded = True
            logger.info(
                "Practice stopped for motion {} | score={} cycles={} done={}",
                session.motion_id,
                session.score,
                session.cycles_done,
                session.done,
            )
            self._session = None
            self._history.clear()
            self._started_at = None
            return recorded

    def practice_history(self, limit: int = 20) -> List[Dict[str, object]]:
        return self.recorder.list_practice(limit) if self.recorder is not None else []

    def practice_stats(self) -> Dict[str, int]:
        if self.recorder is None:
            return {"total_sessions": 0, "average_score": 0, "perfect_sessions": 0}
        return self.recorder.practice_stats()
