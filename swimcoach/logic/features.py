from __future__ import annotations

from typing import Any, Tuple

import numpy as np

from swimcoach.logic.geometry import (
    LEFT_HIP,
    LEFT_SHOULDER,
    MIN_MAGNITUDE,
    NUM_LANDMARKS,
    RIGHT_HIP,
    RIGHT_SHOULDER,
    angle_3pts,
    as_joint_array,
    midpoint,
    torso_lean_degrees,
)

# vertex is the middle index of each triple
ANGLE_TRIPLES: Tuple[Tuple[int, int, int], ...] = (
    (23, 11, 13),
    (24, 12, 14),
    (11, 13, 15),
    (12, 14, 16),
    (13, 11, 23),
    (14, 12, 24),
    (11, 23, 25),
    (12, 24, 26),
)

DISTANCE_PAIRS: Tuple[Tuple[int, int], ...] = (
    (15, 16),
    (15, 23),
    (16, 24),
    (15, 0),
    (16, 0),
    (0, 23),
)

COORD_SIZE = NUM_LANDMARKS * 3
FEATURE_SIZE = COORD_SIZE + len(ANGLE_TRIPLES) + len(DISTANCE_PAIRS) + 1


def extract_features(landmarks: Any) -> np.ndarray:
    """Turn one joint set into the 114-value descriptor used by the classifier.

    Layout: 99 hip-centered coordinates scaled by shoulder width, 8 joint
    angles (degrees / 180), 6 distances in the scaled space and the torso lean
    (degrees / 90). Callers must pass at least 33 landmarks.
    """
    pts = as_joint_array(landmarks)[:NUM_LANDMARKS, :3]

    hip_center = midpoint(pts[LEFT_HIP], pts[RIGHT_HIP])
    scale = float(np.linalg.norm(pts[LEFT_SHOULDER] - pts[RIGHT_SHOULDER])) or MIN_MAGNITUDE
    scaled = (pts - hip_center) / scale

    angles = [angle_3pts(pts[a], pts[b], pts[c]) / 180.0 for a, b, c in ANGLE_TRIPLES]
    distances = [float(np.linalg.norm(scaled[a] - scaled[b])) for a, b in DISTANCE_PAIRS]

    shoulder_mid = midpoint(pts[LEFT_SHOULDER], pts[RIGHT_SHOULDER])
    lean = torso_lean_degrees(shoulder_mid, hip_center) / 90.0

    return np.concatenate(
        [
            scaled.reshape(-1),
            np.asarray(angles, dtype=np.float64),
            np.asarray(distances, dtype=np.float64),
            np.asarray([lean], dtype=np.float64),
        ]
    )
