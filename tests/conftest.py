from __future__ import annotations

from typing import Dict, List, Tuple

import numpy as np
import pytest

from swimcoach.logic.geometry import NUM_LANDMARKS, POSE_LANDMARKS

# Upright subject facing the camera, arms relaxed; shoulder width is 0.2.
_BASE_POINTS: Dict[str, Tuple[float, float]] = {
    "nose": (0.50, 0.20),
    "left_shoulder": (0.60, 0.30),
    "right_shoulder": (0.40, 0.30),
    "left_elbow": (0.62, 0.42),
    "right_elbow": (0.38, 0.42),
    "left_wrist": (0.63, 0.55),
    "right_wrist": (0.37, 0.55),
    "left_hip": (0.57, 0.60),
    "right_hip": (0.43, 0.60),
    "left_knee": (0.57, 0.80),
    "right_knee": (0.43, 0.80),
    "left_ankle": (0.57, 0.95),
    "right_ankle": (0.43, 0.95),
}

# Landmarks without an explicit position follow the nearest modelled joint.
_FOLLOW = {
    "left_eye_inner": "nose",
    "left_eye": "nose",
    "left_eye_outer": "nose",
    "right_eye_inner": "nose",
    "right_eye": "nose",
    "right_eye_outer": "nose",
    "left_ear": "nose",
    "right_ear": "nose",
    "mouth_left": "nose",
    "mouth_right": "nose",
    "left_pinky": "left_wrist",
    "right_pinky": "right_wrist",
    "left_index": "left_wrist",
    "right_index": "right_wrist",
    "left_thumb": "left_wrist",
    "right_thumb": "right_wrist",
    "left_heel": "left_ankle",
    "right_heel": "right_ankle",
    "left_foot_index": "left_ankle",
    "right_foot_index": "right_ankle",
}


def make_pose(**overrides: Tuple[float, float]) -> np.ndarray:
    """Build a (33, 4) joint set from the base pose, moving the named joints."""
    points = dict(_BASE_POINTS)
    points.update(overrides)
    joints = np.zeros((NUM_LANDMARKS, 4), dtype=np.float64)
    joints[:, 3] = 1.0
    for name, idx in POSE_LANDMARKS.items():
        x, y = points[_FOLLOW.get(name, name)]
        joints[idx, 0] = x
        joints[idx, 1] = y
    return joints


def ready_pose() -> np.ndarray:
    return make_pose()


def help_pose() -> np.ndarray:
    return make_pose(
        left_elbow=(0.65, 0.45),
        right_elbow=(0.35, 0.45),
        left_wrist=(0.52, 0.40),
        right_wrist=(0.48, 0.40),
        left_knee=(0.57, 0.55),
        right_knee=(0.43, 0.55),
    )


def jellyfish_pose() -> np.ndarray:
    return make_pose(
        nose=(0.20, 0.60),
        left_shoulder=(0.40, 0.50),
        right_shoulder=(0.20, 0.50),
        left_elbow=(0.45, 0.65),
        right_elbow=(0.35, 0.65),
        left_wrist=(0.52, 0.78),
        right_wrist=(0.48, 0.78),
    )


def signal_pose(raised_x: float = 0.70) -> np.ndarray:
    return make_pose(left_elbow=(0.66, 0.18), left_wrist=(raised_x, 0.10))


def scull_pose(spread: bool) -> np.ndarray:
    if spread:
        return make_pose(left_wrist=(0.75, 0.50), right_wrist=(0.25, 0.50))
    return make_pose(left_wrist=(0.55, 0.50), right_wrist=(0.45, 0.50))


def paddle_pose(left_up: bool) -> np.ndarray:
    if left_up:
        return make_pose(left_wrist=(0.62, 0.15), right_wrist=(0.38, 0.60))
    return make_pose(left_wrist=(0.62, 0.60), right_wrist=(0.38, 0.15))


def star_pose() -> np.ndarray:
    return make_pose(
        left_elbow=(0.75, 0.30),
        right_elbow=(0.25, 0.30),
        left_wrist=(0.90, 0.30),
        right_wrist=(0.10, 0.30),
    )


def as_payload(joints: np.ndarray) -> List[Dict[str, float]]:
    return [{"x": float(x), "y": float(y), "z": float(z), "visibility": float(v)} for x, y, z, v in joints]


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'swimcoach-test.db'}"
