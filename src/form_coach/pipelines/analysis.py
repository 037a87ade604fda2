"""
Frame-sequence analysis.

Scans the full pose sequence with the exercise's rule list and collapses
repeated rule firings into one representative ``FormError`` per rule.
Also derives the sequence-level ROM, symmetry and landmark snapshots.

Only the first frame on which a rule fires is reported: once a rule has
matched, later frames are not checked for it, so a later and possibly
worse occurrence of the same error is never surfaced.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from .config import (
    HIP_FLEXION_RANGE,
    KNEE_FLEXION_RANGE,
    LANDMARK_SNAPSHOT_CONFIDENCE,
)
from .rules import ExerciseKind, get_rules
from .state import (
    FormError,
    Landmark,
    PoseFrame,
    PrimaryCause,
    ROMMetric,
    Severity,
    SymmetryMetric,
)
from ..utils.geometry import angle

logger = logging.getLogger(__name__)


NO_POSE_ERROR = FormError(
    id="no_pose_detected",
    description="No person detected in video",
    severity=Severity.MAJOR,
    frames=(0, 0),
    confidence=1.0,
    coaching_cue="Ensure full body is visible in frame with good lighting",
    primary_cause=PrimaryCause.CAMERA_ISSUE,
)


def count_frames_with_pose(frames: Sequence[PoseFrame]) -> int:
    return sum(1 for f in frames if f.poses)


def analyze_form_from_poses(
    frames: Sequence[PoseFrame],
    kind: Optional[ExerciseKind],
) -> list[FormError]:
    """Apply the rule list for *kind* to the pose sequence.

    Args:
        frames: Full ordered pose sequence.
        kind: Resolved exercise kind (None for an unsupported exercise).

    Returns:
        Errors in rule declaration order, at most one per rule id. If no
        frame contains a pose the result is exactly ``[no_pose_detected]``.
    """
    if count_frames_with_pose(frames) == 0:
        logger.info("No poses detected in %d frames", len(frames))
        return [NO_POSE_ERROR]

    errors: list[FormError] = []
    for rule in get_rules(kind):
        for frame in frames:
            if rule.matches(frame.primary_pose):
                logger.info(
                    "Rule '%s' triggered at frame %d", rule.error_id, frame.frame_number,
                )
                errors.append(rule.to_error(frame.frame_number))
                break

    return errors


# ============================================================================
# Sequence metrics
# ============================================================================

def _deviation_percent(measured: float, expected: tuple[float, float]) -> float:
    """How far *measured* falls outside *expected*, as a percent of the bound."""
    low, high = expected
    if measured < low:
        return round((low - measured) / low * 100.0, 1)
    if measured > high:
        return round((measured - high) / high * 100.0, 1)
    return 0.0


def assess_rom(
    frames: Sequence[PoseFrame],
    kind: Optional[ExerciseKind],
) -> Optional[list[ROMMetric]]:
    """Peak knee and hip flexion over the sequence (squat only).

    Flexion is ``180 - joint angle`` on the left side. Returns None when the
    exercise defines no ROM metric or the sequence is empty.
    """
    if not frames or kind is not ExerciseKind.SQUAT:
        return None

    max_knee_flexion = 0.0
    max_hip_flexion = 0.0

    for frame in frames:
        pose = frame.primary_pose
        if pose is None:
            continue

        hip = pose.get("left_hip")
        knee = pose.get("left_knee")
        ankle = pose.get("left_ankle")
        shoulder = pose.get("left_shoulder")

        if hip and knee and ankle:
            max_knee_flexion = max(max_knee_flexion, 180.0 - angle(hip, knee, ankle))
        if shoulder and hip and knee:
            max_hip_flexion = max(max_hip_flexion, 180.0 - angle(shoulder, hip, knee))

    knee_deg = float(round(max_knee_flexion))
    hip_deg = float(round(max_hip_flexion))
    return [
        ROMMetric(
            metric_name="knee_flexion_peak",
            measured_deg=knee_deg,
            expected_range=KNEE_FLEXION_RANGE,
            deviation_percent=_deviation_percent(knee_deg, KNEE_FLEXION_RANGE),
        ),
        ROMMetric(
            metric_name="hip_flexion_peak",
            measured_deg=hip_deg,
            expected_range=HIP_FLEXION_RANGE,
            deviation_percent=_deviation_percent(hip_deg, HIP_FLEXION_RANGE),
        ),
    ]


def assess_symmetry(frames: Sequence[PoseFrame]) -> Optional[list[SymmetryMetric]]:
    """Left/right knee angle asymmetry averaged over the sequence.

    Returns None when either side was never measurable.
    """
    left_angles: list[float] = []
    right_angles: list[float] = []

    for frame in frames:
        pose = frame.primary_pose
        if pose is None:
            continue

        l_hip, l_knee, l_ankle = pose.get("left_hip"), pose.get("left_knee"), pose.get("left_ankle")
        r_hip, r_knee, r_ankle = pose.get("right_hip"), pose.get("right_knee"), pose.get("right_ankle")

        if l_hip and l_knee and l_ankle:
            left_angles.append(angle(l_hip, l_knee, l_ankle))
        if r_hip and r_knee and r_ankle:
            right_angles.append(angle(r_hip, r_knee, r_ankle))

    if not left_angles or not right_angles:
        return None

    avg_left = float(np.mean(left_angles))
    avg_right = float(np.mean(right_angles))
    if avg_left == 0:
        return None

    asymmetry = abs(avg_left - avg_right)
    return [
        SymmetryMetric(
            metric_name="knee_flexion_symmetry",
            left_value=float(round(avg_left)),
            right_value=float(round(avg_right)),
            asymmetry_percent=round(asymmetry / avg_left * 100.0, 1),
        )
    ]


def extract_key_landmarks(frames: Sequence[PoseFrame]) -> list[Landmark]:
    """Confident joints from the primary pose of the middle frame."""
    if not frames:
        return []

    mid_frame = frames[len(frames) // 2]
    pose = mid_frame.primary_pose
    if pose is None:
        return []

    return [
        Landmark(
            landmark=kp.name,
            frame=mid_frame.frame_number,
            x=kp.x,
            y=kp.y,
            confidence=kp.confidence or 0.0,
        )
        for kp in pose.keypoints
        if (kp.confidence or 0.0) > LANDMARK_SNAPSHOT_CONFIDENCE
    ]
