"""
Exercise rule catalog.

Each supported exercise kind carries an ordered tuple of ``FormRule``
objects. A rule looks at the joints of one frame's primary pose only; if
any of its required joints is missing the rule does not apply to that
frame.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Optional

from .config import (
    BODY_LINE_MIN_DEG,
    ELBOW_FLARE_RATIO,
    FORWARD_LEAN_DEG,
    KNEE_OVER_TOE_OFFSET_PX,
    KNEE_VALGUS_OFFSET_PX,
    SPINE_DEVIATION_RATIO,
    SQUAT_BOTTOM_TOLERANCE_PX,
)
from .state import FormError, Joint, Pose, PrimaryCause, Severity
from ..utils.geometry import angle, distance, vertical_deviation


Joints = Mapping[str, Joint]


class ExerciseKind(str, Enum):
    SQUAT = "squat"
    DEADLIFT = "deadlift"
    BENCH = "bench"
    PUSH_UP = "push_up"
    LUNGE = "lunge"


# Name fragment -> kind, checked in order (first match wins).
_NAME_FRAGMENTS: tuple[tuple[str, ExerciseKind], ...] = (
    ("squat", ExerciseKind.SQUAT),
    ("deadlift", ExerciseKind.DEADLIFT),
    ("bench", ExerciseKind.BENCH),
    ("push", ExerciseKind.PUSH_UP),
    ("lunge", ExerciseKind.LUNGE),
)


def classify_exercise(exercise_name: Optional[str]) -> Optional[ExerciseKind]:
    """Resolve an exercise name to its rule kind, or None if unsupported."""
    if not exercise_name:
        return None
    name = exercise_name.lower()
    for fragment, kind in _NAME_FRAGMENTS:
        if fragment in name:
            return kind
    return None


@dataclass(frozen=True)
class FormRule:
    """A single-frame detection rule producing at most one ``FormError``."""
    error_id: str
    description: str
    severity: Severity
    confidence: float
    coaching_cue: str
    primary_cause: PrimaryCause
    required_joints: tuple[str, ...]
    predicate: Callable[[Joints], bool]

    def matches(self, pose: Optional[Pose]) -> bool:
        """True if every required joint is present and the predicate fires."""
        if pose is None:
            return False
        joints = {}
        for name in self.required_joints:
            joint = pose.get(name)
            if joint is None:
                return False
            joints[name] = joint
        return bool(self.predicate(joints))

    def to_error(self, frame_number: int) -> FormError:
        return FormError(
            id=self.error_id,
            description=self.description,
            severity=self.severity,
            frames=(frame_number, frame_number),
            confidence=self.confidence,
            coaching_cue=self.coaching_cue,
            primary_cause=self.primary_cause,
        )


# ============================================================================
# Derived quantities
# ============================================================================

def _avg_y(j: Joints, left: str, right: str) -> float:
    return (j[left].y + j[right].y) / 2.0


def _squat_bottom_position(j: Joints) -> bool:
    # Image y grows downward: hips at or below knee height minus tolerance.
    avg_hip_y = _avg_y(j, "left_hip", "right_hip")
    avg_knee_y = _avg_y(j, "left_knee", "right_knee")
    return avg_hip_y >= avg_knee_y - SQUAT_BOTTOM_TOLERANCE_PX


def _knee_ankle_offset_exceeds(j: Joints, threshold: float) -> bool:
    left = abs(j["left_knee"].x - j["left_ankle"].x)
    right = abs(j["right_knee"].x - j["right_ankle"].x)
    return left > threshold or right > threshold


# ============================================================================
# Predicates
# ============================================================================

def _knee_valgus(j: Joints) -> bool:
    return _squat_bottom_position(j) and _knee_ankle_offset_exceeds(j, KNEE_VALGUS_OFFSET_PX)


def _forward_lean(j: Joints) -> bool:
    if not _squat_bottom_position(j) or _knee_ankle_offset_exceeds(j, KNEE_VALGUS_OFFSET_PX):
        return False
    left = vertical_deviation(j["left_shoulder"], j["left_hip"])
    right = vertical_deviation(j["right_shoulder"], j["right_hip"])
    return left > FORWARD_LEAN_DEG or right > FORWARD_LEAN_DEG


def _rounded_back(j: Joints) -> bool:
    avg_shoulder_y = _avg_y(j, "left_shoulder", "right_shoulder")
    avg_hip_y = _avg_y(j, "left_hip", "right_hip")
    avg_knee_y = _avg_y(j, "left_knee", "right_knee")

    # Hips between shoulders and knees; either vertical order is accepted.
    low, high = sorted((avg_shoulder_y, avg_knee_y))
    if not (low < avg_hip_y < high):
        return False

    dx = abs(j["left_shoulder"].x - j["left_hip"].x)
    if dx == 0:
        # Perfectly vertical spine segment
        return False
    spine_ratio = abs(avg_shoulder_y - avg_hip_y) / dx
    return spine_ratio < SPINE_DEVIATION_RATIO


def _scapula_protraction(j: Joints) -> bool:
    shoulder_width = distance(j["left_shoulder"], j["right_shoulder"])
    elbow_width = distance(j["left_elbow"], j["right_elbow"])
    return elbow_width > shoulder_width * ELBOW_FLARE_RATIO


def _sagging_hips(j: Joints) -> bool:
    return angle(j["left_shoulder"], j["left_hip"], j["left_ankle"]) < BODY_LINE_MIN_DEG


def _knee_over_toe(j: Joints) -> bool:
    return _knee_ankle_offset_exceeds(j, KNEE_OVER_TOE_OFFSET_PX)


# ============================================================================
# Catalog
# ============================================================================

_LOWER_BODY = (
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
)
_SHOULDERS = ("left_shoulder", "right_shoulder")

RULE_CATALOG: dict[ExerciseKind, tuple[FormRule, ...]] = {
    ExerciseKind.SQUAT: (
        FormRule(
            error_id="knee_valgus",
            description="Knees tracking inward during descent",
            severity=Severity.MODERATE,
            confidence=0.75,
            coaching_cue="Push knees out to track over toes, engage glutes",
            primary_cause=PrimaryCause.STRENGTH,
            required_joints=_LOWER_BODY,
            predicate=_knee_valgus,
        ),
        FormRule(
            error_id="forward_lean",
            description="Excessive forward trunk lean",
            severity=Severity.MINOR,
            confidence=0.65,
            coaching_cue="Keep chest up, may indicate ankle mobility limitation",
            primary_cause=PrimaryCause.MOBILITY,
            required_joints=_LOWER_BODY + _SHOULDERS,
            predicate=_forward_lean,
        ),
    ),
    ExerciseKind.DEADLIFT: (
        FormRule(
            error_id="rounded_back",
            description="Lumbar flexion during pull",
            severity=Severity.MAJOR,
            confidence=0.8,
            coaching_cue="Brace harder, reduce load, work on hip hinge pattern",
            primary_cause=PrimaryCause.SETUP,
            required_joints=_SHOULDERS + ("left_hip", "right_hip", "left_knee", "right_knee"),
            predicate=_rounded_back,
        ),
    ),
    ExerciseKind.BENCH: (
        FormRule(
            error_id="scapula_protraction",
            description="Shoulder blades not retracted",
            severity=Severity.MODERATE,
            confidence=0.7,
            coaching_cue="Pull shoulder blades down and together before unracking",
            primary_cause=PrimaryCause.SETUP,
            required_joints=_SHOULDERS + ("left_elbow", "right_elbow"),
            predicate=_scapula_protraction,
        ),
    ),
    ExerciseKind.PUSH_UP: (
        FormRule(
            error_id="sagging_hips",
            description="Hips sagging, core not engaged",
            severity=Severity.MODERATE,
            confidence=0.8,
            coaching_cue="Brace your core and maintain a straight line from head to heels",
            primary_cause=PrimaryCause.STRENGTH,
            required_joints=("left_shoulder", "left_hip", "left_ankle"),
            predicate=_sagging_hips,
        ),
    ),
    ExerciseKind.LUNGE: (
        FormRule(
            error_id="knee_over_toe",
            description="Front knee traveling too far forward",
            severity=Severity.MODERATE,
            confidence=0.75,
            coaching_cue="Keep front knee over ankle, increase stride length",
            primary_cause=PrimaryCause.SETUP,
            required_joints=("left_knee", "right_knee", "left_ankle", "right_ankle"),
            predicate=_knee_over_toe,
        ),
    ),
}


def get_rules(kind: Optional[ExerciseKind]) -> tuple[FormRule, ...]:
    """Ordered rules for *kind*; an unsupported exercise has none."""
    if kind is None:
        return ()
    return RULE_CATALOG[kind]
