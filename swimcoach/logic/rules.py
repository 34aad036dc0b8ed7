from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import numpy as np

from swimcoach.logic.geometry import (
    LEFT_WRIST,
    RIGHT_WRIST,
    angle_3pts,
    as_joint_array,
    distance_2d,
    get_landmarks_map,
    has_full_pose,
    midpoint,
    shoulder_width,
    torso_lean_degrees,
)
from swimcoach.logic.history import TemporalHistory
from swimcoach.utils.structures import PostureCheck, PostureEvaluation, ReadinessResult

RuleSet = Callable[[Dict[str, np.ndarray], float, Optional[TemporalHistory]], List[PostureCheck]]

# Thresholds are multiples of the subject's shoulder width unless noted.
HELP_WRIST_GAP = 0.5
HELP_CHEST_MARGIN = 0.3
HELP_ELBOW_MAX_DEG = 100.0
HELP_KNEE_MARGIN = 0.2
JELLYFISH_LEAN_MIN_DEG = 25.0
JELLYFISH_HAND_REACH = 0.8
SIGNAL_WAVE_TRAVEL = 0.6
SCULL_UPPER_MARGIN = 0.2
SCULL_LOWER_MARGIN = 0.3
SCULL_SYMMETRY = 0.25
SCULL_SPREAD_RANGE = 0.4
PADDLE_OFFSET = 0.2
PADDLE_PULL_MARGIN = 0.3
PADDLE_MIN_ALTERNATIONS = 1
BACK_FLOAT_SPREAD = 2.2
BACK_FLOAT_HEIGHT = 0.35
BACK_FLOAT_ELBOW_MIN_DEG = 140.0
READY_LEVEL_TOLERANCE = 0.15
READY_MIN_SHOULDER_WIDTH = 0.08  # absolute, normalized image units

NO_POSE_MESSAGE = "Cannot detect a pose"
UNKNOWN_MOTION_MESSAGE = "Unknown motion"

MOTION_RULES: Dict[int, RuleSet] = {}
SUCCESS_MESSAGES: Dict[int, str] = {}


def register_rules(motion_id: int, success_message: str) -> Callable[[RuleSet], RuleSet]:
    def decorator(func: RuleSet) -> RuleSet:
        MOTION_RULES[motion_id] = func
        SUCCESS_MESSAGES[motion_id] = success_message
        return func

    return decorator


def _check(name: str, passed: bool, ok: str, fix: str, priority: int) -> PostureCheck:
    return PostureCheck(name=name, passed=bool(passed), message=ok if passed else fix, priority=priority)


def _between(value: float, low: float, high: float) -> bool:
    return low < value < high


def _empty_result(message: str) -> PostureEvaluation:
    return PostureEvaluation(checks=[], overall_score=0, summary_message=message, all_passed=False)


def evaluate_posture(
    motion_id: int,
    landmarks: Any,
    history: Optional[TemporalHistory] = None,
) -> PostureEvaluation:
    """Score one frame against the geometric checkpoints of a drill.

    Returns a zero-score result with no checks when fewer than 33 landmarks are
    given or when no rule set is registered for ``motion_id``. History-based
    checks fail when ``history`` is None.
    """
    if not has_full_pose(landmarks):
        return _empty_result(NO_POSE_MESSAGE)
    rule_set = MOTION_RULES.get(motion_id)
    if rule_set is None:
        return _empty_result(UNKNOWN_MOTION_MESSAGE)
    joints = as_joint_array(landmarks)
    checks = rule_set(get_landmarks_map(joints), shoulder_width(joints), history)
    passed = sum(1 for check in checks if check.passed)
    all_passed = passed == len(checks)
    summary = SUCCESS_MESSAGES[motion_id] if all_passed else f"{passed}/{len(checks)} checks passed"
    return PostureEvaluation(
        checks=checks,
        overall_score=int(round(100 * passed / len(checks))),
        summary_message=summary,
        all_passed=all_passed,
    )


@register_rules(1, "Perfect HELP posture! Hold it")
def _help_posture(lm: Dict[str, np.ndarray], sw: float, history: Optional[TemporalHistory]) -> List[PostureCheck]:
    left_wrist, right_wrist = lm["left_wrist"], lm["right_wrist"]
    shoulder_mid = midpoint(lm["left_shoulder"], lm["right_shoulder"])
    hip_mid = midpoint(lm["left_hip"], lm["right_hip"])

    chest_top = shoulder_mid[1] - sw * HELP_CHEST_MARGIN
    chest_bottom = hip_mid[1] + sw * HELP_CHEST_MARGIN
    wrists_close = distance_2d(left_wrist, right_wrist) < sw * HELP_WRIST_GAP
    at_chest = _between(left_wrist[1], chest_top, chest_bottom) and _between(right_wrist[1], chest_top, chest_bottom)

    left_elbow = angle_3pts(lm["left_shoulder"], lm["left_elbow"], left_wrist)
    right_elbow = angle_3pts(lm["right_shoulder"], lm["right_elbow"], right_wrist)

    knee_mid = midpoint(lm["left_knee"], lm["right_knee"])
    return [
        _check(
            "arms_crossed",
            wrists_close and at_chest,
            "Arms are crossed in front of the chest",
            "Cross both arms in front of the chest",
            1,
        ),
        _check(
            "elbows_bent",
            left_elbow < HELP_ELBOW_MAX_DEG and right_elbow < HELP_ELBOW_MAX_DEG,
            "Arms are folded",
            "Fold the arms tighter against the chest",
            2,
        ),
        _check(
            "knees_raised",
            knee_mid[1] < hip_mid[1] + sw * HELP_KNEE_MARGIN,
            "Knees are pulled up",
            "Pull the knees up towards the chest",
            3,
        ),
    ]


@register_rules(2, "Jellyfish float complete! Hold it")
def _jellyfish_float(lm: Dict[str, np.ndarray], sw: float, history: Optional[TemporalHistory]) -> List[PostureCheck]:
    shoulder_mid = midpoint(lm["left_shoulder"], lm["right_shoulder"])
    hip_mid = midpoint(lm["left_hip"], lm["right_hip"])
    knee_mid = midpoint(lm["left_knee"], lm["right_knee"])
    reach = sw * JELLYFISH_HAND_REACH
    hands_on_knees = distance_2d(lm["left_wrist"], knee_mid) < reach and distance_2d(lm["right_wrist"], knee_mid) < reach
    return [
        _check(
            "torso_leaned",
            torso_lean_degrees(shoulder_mid, hip_mid) > JELLYFISH_LEAN_MIN_DEG,
            "Upper body is bent forward",
            "Bend the upper body further forward",
            1,
        ),
        _check(
            "head_down",
            lm["nose"][1] > shoulder_mid[1],
            "Head is tucked down",
            "Tuck the head down",
            2,
        ),
        _check(
            "hands_on_knees",
            hands_on_knees,
            "Both hands are around the knees",
            "Wrap both hands around the knees",
            3,
        ),
    ]


@register_rules(3, "Good! Wave widely to signal for help")
def _signal_for_help(lm: Dict[str, np.ndarray], sw: float, history: Optional[TemporalHistory]) -> List[PostureCheck]:
    nose_y = lm["nose"][1]
    shoulder_mid = midpoint(lm["left_shoulder"], lm["right_shoulder"])
    left_up = lm["left_wrist"][1] < nose_y
    right_up = lm["right_wrist"][1] < nose_y
    any_up = left_up or right_up
    one_up = left_up != right_up

    if one_up:
        lowered = lm["right_wrist"] if left_up else lm["left_wrist"]
        other_down = lowered[1] > shoulder_mid[1]
    else:
        other_down = False
    if other_down:
        other_message = "Only one arm is raised"
    elif any_up and not one_up:
        other_message = "Lower the other arm, raise only one"
    elif one_up:
        other_message = "Keep the other arm below the shoulder"
    else:
        other_message = "Raise one arm only"

    waving = False
    if history is not None and any_up:
        raised_idx = LEFT_WRIST if left_up else RIGHT_WRIST
        waving = history.x_movement(raised_idx) > sw * SIGNAL_WAVE_TRAVEL

    return [
        _check("arm_raised", any_up, "Arm is raised above the head", "Raise one arm high above the head", 1),
        PostureCheck(name="other_arm_down", passed=other_down, message=other_message, priority=2),
        _check("waving", waving, "Waving side to side", "Wave the raised arm widely side to side", 3),
    ]


@register_rules(4, "Good sculling! Keep the rhythm")
def _sculling(lm: Dict[str, np.ndarray], sw: float, history: Optional[TemporalHistory]) -> List[PostureCheck]:
    left_wrist, right_wrist = lm["left_wrist"], lm["right_wrist"]
    shoulder_mid = midpoint(lm["left_shoulder"], lm["right_shoulder"])
    hip_mid = midpoint(lm["left_hip"], lm["right_hip"])
    top = shoulder_mid[1] - sw * SCULL_UPPER_MARGIN
    bottom = hip_mid[1] + sw * SCULL_LOWER_MARGIN

    spread_motion = False
    if history is not None:
        spread_motion = history.wrist_distance_range().range > sw * SCULL_SPREAD_RANGE

    return [
        _check(
            "arm_height",
            _between(left_wrist[1], top, bottom) and _between(right_wrist[1], top, bottom),
            "Arms are at the right height",
            "Keep the arms between waist and chest height",
            1,
        ),
        _check(
            "arm_symmetry",
            abs(left_wrist[1] - right_wrist[1]) < sw * SCULL_SYMMETRY,
            "Both arms are level",
            "Keep both arms at the same height",
            2,
        ),
        _check(
            "spread_and_gather",
            spread_motion,
            "Nice sculling motion",
            "Keep sweeping the arms out and back in",
            3,
        ),
    ]


@register_rules(5, "Good dog paddle! Keep alternating")
def _dog_paddle(lm: Dict[str, np.ndarray], sw: float, history: Optional[TemporalHistory]) -> List[PostureCheck]:
    left_wrist, right_wrist = lm["left_wrist"], lm["right_wrist"]
    shoulder_mid = midpoint(lm["left_shoulder"], lm["right_shoulder"])
    hip_mid = midpoint(lm["left_hip"], lm["right_hip"])
    upper = left_wrist if left_wrist[1] < right_wrist[1] else right_wrist
    lower = left_wrist if left_wrist[1] > right_wrist[1] else right_wrist

    repeating = False
    if history is not None:
        repeating = history.wrist_alternation_count() >= PADDLE_MIN_ALTERNATIONS

    return [
        _check(
            "arms_alternating",
            abs(left_wrist[1] - right_wrist[1]) > sw * PADDLE_OFFSET,
            "Arms are alternating",
            "Move the arms up and down in turn",
            1,
        ),
        _check("reaching", upper[1] < shoulder_mid[1], "Reaching out well", "Reach the arm further up", 2),
        _check(
            "pulling",
            lower[1] > hip_mid[1] - sw * PADDLE_PULL_MARGIN,
            "Pulling down well",
            "Pull down as if pushing the water away",
            3,
        ),
        _check("repeating", repeating, "Alternating steadily", "Keep alternating the arms", 4),
    ]


@register_rules(6, "Star float complete! Hold it")
def _back_float(lm: Dict[str, np.ndarray], sw: float, history: Optional[TemporalHistory]) -> List[PostureCheck]:
    left_wrist, right_wrist = lm["left_wrist"], lm["right_wrist"]
    height_tolerance = sw * BACK_FLOAT_HEIGHT
    at_height = (
        abs(left_wrist[1] - lm["left_shoulder"][1]) < height_tolerance
        and abs(right_wrist[1] - lm["right_shoulder"][1]) < height_tolerance
    )
    left_elbow = angle_3pts(lm["left_shoulder"], lm["left_elbow"], left_wrist)
    right_elbow = angle_3pts(lm["right_shoulder"], lm["right_elbow"], right_wrist)
    return [
        _check(
            "arms_spread",
            distance_2d(left_wrist, right_wrist) > sw * BACK_FLOAT_SPREAD,
            "Arms are spread wide",
            "Spread the arms further out to the sides",
            1,
        ),
        _check("arm_height", at_height, "Arms are at shoulder height", "Bring the arms to shoulder height", 2),
        _check(
            "elbows_straight",
            left_elbow > BACK_FLOAT_ELBOW_MIN_DEG and right_elbow > BACK_FLOAT_ELBOW_MIN_DEG,
            "Elbows are straight",
            "Straighten the elbows",
            3,
        ),
    ]


def evaluate_ready_pose(landmarks: Any) -> ReadinessResult:
    """Check the shared starting posture: facing the camera, level, arms down."""
    if not has_full_pose(landmarks):
        return ReadinessResult(is_ready=False, message=NO_POSE_MESSAGE)
    joints = as_joint_array(landmarks)
    lm = get_landmarks_map(joints)
    sw = shoulder_width(joints)
    shoulder_mid = midpoint(lm["left_shoulder"], lm["right_shoulder"])

    level = abs(lm["left_shoulder"][1] - lm["right_shoulder"][1]) < sw * READY_LEVEL_TOLERANCE
    arms_down = lm["left_wrist"][1] > shoulder_mid[1] and lm["right_wrist"][1] > shoulder_mid[1]
    facing = sw > READY_MIN_SHOULDER_WIDTH

    if not facing:
        message = "Face the camera directly"
    elif not level:
        message = "Keep the shoulders level"
    elif not arms_down:
        message = "Relax both arms down"
    else:
        message = "Ready! Start the motion"
    return ReadinessResult(is_ready=bool(level and arms_down and facing), message=message)
