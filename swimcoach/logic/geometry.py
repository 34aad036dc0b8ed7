from __future__ import annotations

from typing import Any, Dict, Mapping

import numpy as np


NUM_LANDMARKS = 33
MIN_MAGNITUDE = 0.001

POSE_LANDMARKS = {
    "nose": 0,
    "left_eye_inner": 1,
    "left_eye": 2,
    "left_eye_outer": 3,
    "right_eye_inner": 4,
    "right_eye": 5,
    "right_eye_outer": 6,
    "left_ear": 7,
    "right_ear": 8,
    "mouth_left": 9,
    "mouth_right": 10,
    "left_shoulder": 11,
    "right_shoulder": 12,
    "left_elbow": 13,
    "right_elbow": 14,
    "left_wrist": 15,
    "right_wrist": 16,
    "left_pinky": 17,
    "right_pinky": 18,
    "left_index": 19,
    "right_index": 20,
    "left_thumb": 21,
    "right_thumb": 22,
    "left_hip": 23,
    "right_hip": 24,
    "left_knee": 25,
    "right_knee": 26,
    "left_ankle": 27,
    "right_ankle": 28,
    "left_heel": 29,
    "right_heel": 30,
    "left_foot_index": 31,
    "right_foot_index": 32,
}

NOSE = POSE_LANDMARKS["nose"]
LEFT_SHOULDER = POSE_LANDMARKS["left_shoulder"]
RIGHT_SHOULDER = POSE_LANDMARKS["right_shoulder"]
LEFT_ELBOW = POSE_LANDMARKS["left_elbow"]
RIGHT_ELBOW = POSE_LANDMARKS["right_elbow"]
LEFT_WRIST = POSE_LANDMARKS["left_wrist"]
RIGHT_WRIST = POSE_LANDMARKS["right_wrist"]
LEFT_HIP = POSE_LANDMARKS["left_hip"]
RIGHT_HIP = POSE_LANDMARKS["right_hip"]
LEFT_KNEE = POSE_LANDMARKS["left_knee"]
RIGHT_KNEE = POSE_LANDMARKS["right_knee"]


def _coerce_point(point: Any) -> list[float]:
    if isinstance(point, Mapping):
        z = point.get("z")
        visibility = point.get("visibility")
        return [
            float(point["x"]),
            float(point["y"]),
            float(z or 0.0),
            float(1.0 if visibility is None else visibility),
        ]
    if hasattr(point, "x") and hasattr(point, "y"):
        visibility = getattr(point, "visibility", 1.0)
        return [
            float(point.x),
            float(point.y),
            float(getattr(point, "z", 0.0) or 0.0),
            float(1.0 if visibility is None else visibility),
        ]
    values = [float(v) for v in point]
    if len(values) < 2:
        raise ValueError("Each landmark needs at least x and y")
    if len(values) == 2:
        values.append(0.0)
    if len(values) == 3:
        values.append(1.0)
    return values[:4]


def as_joint_array(landmarks: Any) -> np.ndarray:
    """Coerce a joint set into an ``(N, 4)`` float array of x, y, z, visibility.

    Accepts an existing array, nested sequences, ``{x, y, z, visibility}``
    mappings or objects exposing those attributes. Missing ``z`` becomes 0.0
    and missing visibility 1.0.
    """
    if isinstance(landmarks, np.ndarray):
        arr = np.asarray(landmarks, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] < 2:
            raise ValueError(f"Expected an (N, 2..4) landmark array, got shape {arr.shape}")
        if arr.shape[1] >= 4:
            return arr[:, :4].copy()
        out = np.zeros((arr.shape[0], 4), dtype=np.float64)
        out[:, 3] = 1.0
        out[:, : arr.shape[1]] = arr
        return out
    rows = [_coerce_point(p) for p in landmarks]
    if not rows:
        return np.zeros((0, 4), dtype=np.float64)
    return np.array(rows, dtype=np.float64)


def has_full_pose(landmarks: Any) -> bool:
    return landmarks is not None and len(landmarks) >= NUM_LANDMARKS


def get_landmarks_map(landmarks: np.ndarray) -> Dict[str, np.ndarray]:
    return {name: landmarks[idx] for name, idx in POSE_LANDMARKS.items()}


def distance_2d(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.hypot(a[0] - b[0], a[1] - b[1]))


def midpoint(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return (np.asarray(a[:3], dtype=np.float64) + np.asarray(b[:3], dtype=np.float64)) / 2.0


def angle_3pts(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    """Interior angle at ``b`` in degrees, measured in 3D."""
    ba = np.asarray(a[:3], dtype=np.float64) - np.asarray(b[:3], dtype=np.float64)
    bc = np.asarray(c[:3], dtype=np.float64) - np.asarray(b[:3], dtype=np.float64)
    mag_a = float(np.linalg.norm(ba)) or MIN_MAGNITUDE
    mag_c = float(np.linalg.norm(bc)) or MIN_MAGNITUDE
    cosine = np.clip(np.dot(ba, bc) / (mag_a * mag_c), -1.0, 1.0)
    return float(np.degrees(np.arccos(cosine)))


def torso_lean_degrees(shoulder_mid: np.ndarray, hip_mid: np.ndarray) -> float:
    # 0 when the torso is upright, 90 when horizontal
    dx = abs(float(shoulder_mid[0] - hip_mid[0]))
    dy = abs(float(shoulder_mid[1] - hip_mid[1]))
    return float(np.degrees(np.arctan2(dx, dy)))


def shoulder_width(landmarks: np.ndarray) -> float:
    """2D shoulder distance, the per-subject unit for every rule threshold."""
    return distance_2d(landmarks[LEFT_SHOULDER], landmarks[RIGHT_SHOULDER]) or MIN_MAGNITUDE

