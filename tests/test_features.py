import numpy as np
import pytest

from swimcoach.logic.features import ANGLE_TRIPLES, COORD_SIZE, DISTANCE_PAIRS, FEATURE_SIZE, extract_features
from swimcoach.logic.geometry import (
    LEFT_HIP,
    LEFT_SHOULDER,
    RIGHT_HIP,
    RIGHT_SHOULDER,
    angle_3pts,
    as_joint_array,
    torso_lean_degrees,
)
from swimcoach.utils.structures import Landmark

from conftest import jellyfish_pose, make_pose, ready_pose, star_pose

ANGLE_OFFSET = COORD_SIZE
DISTANCE_OFFSET = COORD_SIZE + len(ANGLE_TRIPLES)
LEAN_INDEX = FEATURE_SIZE - 1


def test_feature_vector_has_fixed_length():
    features = extract_features(ready_pose())
    assert FEATURE_SIZE == 114
    assert features.shape == (114,)
    assert np.all(np.isfinite(features))


def test_coordinates_are_hip_centered_and_shoulder_scaled():
    coords = extract_features(ready_pose())[:COORD_SIZE].reshape(33, 3)
    hip_center = (coords[LEFT_HIP] + coords[RIGHT_HIP]) / 2.0
    assert np.allclose(hip_center, 0.0)
    assert np.linalg.norm(coords[LEFT_SHOULDER] - coords[RIGHT_SHOULDER]) == pytest.approx(1.0)


def test_features_ignore_position_and_scale_of_subject():
    joints = ready_pose()
    moved = joints.copy()
    moved[:, :3] = joints[:, :3] * 2.5 + np.array([0.1, -0.2, 0.05])
    assert np.allclose(extract_features(joints), extract_features(moved))


def test_straight_arms_give_full_elbow_angles():
    features = extract_features(star_pose())
    left_elbow = ANGLE_TRIPLES.index((11, 13, 15))
    right_elbow = ANGLE_TRIPLES.index((12, 14, 16))
    assert features[ANGLE_OFFSET + left_elbow] == pytest.approx(1.0)
    assert features[ANGLE_OFFSET + right_elbow] == pytest.approx(1.0)


def test_wrist_gap_is_measured_in_shoulder_widths():
    features = extract_features(star_pose())
    wrists = DISTANCE_PAIRS.index((15, 16))
    # wrists are 0.8 apart, shoulders 0.2
    assert features[DISTANCE_OFFSET + wrists] == pytest.approx(4.0)


def test_torso_lean_is_zero_upright_and_grows_when_bent():
    assert extract_features(ready_pose())[LEAN_INDEX] == pytest.approx(0.0)
    bent = extract_features(jellyfish_pose())[LEAN_INDEX]
    assert bent == pytest.approx(np.degrees(np.arctan2(0.2, 0.1)) / 90.0)


def test_collapsed_shoulders_do_not_divide_by_zero():
    joints = make_pose(left_shoulder=(0.5, 0.3), right_shoulder=(0.5, 0.3))
    assert np.all(np.isfinite(extract_features(joints)))


def test_accepts_landmark_objects_and_mappings():
    joints = ready_pose()
    as_objects = [Landmark(x=x, y=y, z=z, visibility=v) for x, y, z, v in joints]
    as_dicts = [{"x": x, "y": y} for x, y, _, _ in joints]
    assert np.allclose(extract_features(as_objects), extract_features(joints))
    assert np.allclose(extract_features(as_dicts), extract_features(joints))


def test_as_joint_array_pads_missing_columns():
    arr = as_joint_array(np.array([[0.1, 0.2], [0.3, 0.4]]))
    assert arr.shape == (2, 4)
    assert arr[0].tolist() == [0.1, 0.2, 0.0, 1.0]
    with pytest.raises(ValueError):
        as_joint_array([[0.1]])


def test_angle_and_lean_helpers():
    assert angle_3pts(np.array([1.0, 0.0, 0.0]), np.zeros(3), np.array([0.0, 1.0, 0.0])) == pytest.approx(90.0)
    # coincident points fall back to the minimum magnitude instead of failing
    assert np.isfinite(angle_3pts(np.zeros(3), np.zeros(3), np.zeros(3)))
    assert torso_lean_degrees(np.array([0.5, 0.3]), np.array([0.5, 0.6])) == pytest.approx(0.0)
    assert torso_lean_degrees(np.array([0.8, 0.6]), np.array([0.5, 0.6])) == pytest.approx(90.0)
