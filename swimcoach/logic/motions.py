"""Survival-swimming drills the trainer recognises.

Hold-mode drills complete by keeping one posture for ``hold_goal`` seconds;
the rest complete by repeating ``sequence`` ``target_cycles`` times. Every
drill starts from the shared ready pose.
"""
from __future__ import annotations

from typing import Dict, Optional

from swimcoach.utils.structures import MotionDefinition

READY_POSE = "ready_pose"
DEFAULT_HOLD_GOAL = 30.0

MOTIONS: Dict[int, MotionDefinition] = {
    1: MotionDefinition(
        id=1,
        name="HELP posture",
        subtitle="Heat escape lessening posture",
        description="Cross the arms and pull the knees up for 30 seconds",
        guide="Sit down, cross both arms over the chest and pull the knees up towards the chest.",
        posture="seated",
        steps=(READY_POSE, "help_pose"),
        sequence=("help_pose",),
        target_cycles=1,
        hold_mode=True,
        hold_goal=30,
        icon="fire",
    ),
    2: MotionDefinition(
        id=2,
        name="Jellyfish float",
        subtitle="Curled floating posture",
        description="Hold the curled floating posture for 20 seconds",
        guide="Stand up, bend the upper body forward, wrap both hands around the knees or shins and tuck the head down.",
        posture="standing",
        steps=(READY_POSE, "jellyfish_pose"),
        sequence=("jellyfish_pose",),
        target_cycles=1,
        hold_mode=True,
        hold_goal=20,
        icon="shrimp",
    ),
    3: MotionDefinition(
        id=3,
        name="Signal for help",
        subtitle="Rescue signal",
        description="Raise one arm and wave it side to side",
        guide="Raise one arm high above the head, then wave it widely left and right to signal for rescue.",
        posture="seated",
        steps=(READY_POSE, "arm_raise", "wave_left", "wave_right"),
        sequence=("arm_raise", "wave_left", "wave_right"),
        target_cycles=3,
        icon="sos",
    ),
    4: MotionDefinition(
        id=4,
        name="Sculling",
        subtitle="Treading water",
        description="Figure-eight arm strokes at waist height",
        guide="Keep both arms between waist and chest height and repeatedly sweep them outward and back in.",
        posture="seated",
        steps=(READY_POSE, "spread", "gather"),
        sequence=("spread", "gather"),
        target_cycles=8,
        icon="droplet",
    ),
    5: MotionDefinition(
        id=5,
        name="Dog paddle",
        subtitle="Reach and pull",
        description="Repeat reaching forward and pulling down",
        guide="Alternate the arms: reach one forward while pulling the other down, as if pushing water away.",
        posture="seated",
        steps=(READY_POSE, "reach", "pull"),
        sequence=("reach", "pull"),
        target_cycles=5,
        icon="swimmer",
    ),
    6: MotionDefinition(
        id=6,
        name="Back float",
        subtitle="Star float",
        description="Spread both arms wide for 15 seconds",
        guide="Stand up and spread both arms out to the sides at shoulder height, palms facing up.",
        posture="standing",
        steps=(READY_POSE, "star_spread"),
        sequence=("star_spread",),
        target_cycles=1,
        hold_mode=True,
        hold_goal=15,
        icon="wave",
    ),
}


def get_motion(motion_id: int) -> Optional[MotionDefinition]:
    return MOTIONS.get(motion_id)
