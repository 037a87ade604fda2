"""
Data model for the form analysis pipeline.

Pydantic models for pose input, recording metadata and the immutable
``FormAnalysis`` report produced once per analysis.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import MIN_JOINT_CONFIDENCE


# ============================================================================
# Vocabularies
# ============================================================================

class Severity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


class PrimaryCause(str, Enum):
    SETUP = "setup"
    MOBILITY = "mobility"
    STRENGTH = "strength"
    COORDINATION = "coordination"
    EQUIPMENT_MISUSE = "equipment_misuse"
    CAMERA_ISSUE = "camera_issue"


class QualityFlag(str, Enum):
    LOW_DETECTION_RATE = "low_detection_rate"
    LOW_CONFIDENCE = "low_confidence"
    LIGHTING_LOW = "lighting_low"
    SUBOPTIMAL_ANGLE = "suboptimal_angle"
    LOW_FRAMERATE = "low_framerate"
    OCCLUDED_JOINTS = "occluded_joints"
    SINGLE_ANGLE = "single_angle"


class RecommendedAction(str, Enum):
    """Ordinal: proceed < proceed_with_cues < regress_and_retest < stop_and_seek_physio."""
    PROCEED = "proceed"
    PROCEED_WITH_CUES = "proceed_with_cues"
    REGRESS_AND_RETEST = "regress_and_retest"
    # Reserved: no current rule produces this tier.
    STOP_AND_SEEK_PHYSIO = "stop_and_seek_physio"

    @property
    def rank(self) -> int:
        return list(RecommendedAction).index(self)

    def __lt__(self, other):
        if not isinstance(other, RecommendedAction):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, RecommendedAction):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, RecommendedAction):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, RecommendedAction):
            return NotImplemented
        return self.rank >= other.rank


# ============================================================================
# Pose input
# ============================================================================

class Joint(BaseModel):
    """A single named keypoint in image pixel coordinates."""
    name: str
    x: float
    y: float
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class Pose(BaseModel):
    """One detected body in one frame."""
    keypoints: list[Joint] = Field(default_factory=list)
    score: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    def get(self, name: str, min_confidence: float = MIN_JOINT_CONFIDENCE) -> Optional[Joint]:
        """Return the joint called *name*, or None if absent or too uncertain.

        A joint without a confidence value is accepted as-is.
        """
        for kp in self.keypoints:
            if kp.name == name:
                if kp.confidence is not None and kp.confidence < min_confidence:
                    return None
                return kp
        return None


class PoseFrame(BaseModel):
    frame_number: int = Field(ge=0)
    timestamp_s: float = Field(ge=0.0)
    poses: list[Pose] = Field(default_factory=list)

    @property
    def primary_pose(self) -> Optional[Pose]:
        """The first detected pose; the engine only ever looks at this one."""
        return self.poses[0] if self.poses else None


# ============================================================================
# Recording metadata
# ============================================================================

class RecordingConditions(BaseModel):
    lighting: Optional[bool] = None
    background: Optional[bool] = None
    equipment_visible: Optional[bool] = None


class VideoMetadata(BaseModel):
    """Declared recording metadata supplied alongside the video."""
    video_id: str = ""
    exercise_id: Optional[str] = None
    camera_angle: str = Field(description="e.g. 'sagittal_left', 'sagittal_right', 'frontal', 'overhead'")
    frame_rate: Optional[float] = None
    resolution: Optional[str] = None
    recording_conditions: Optional[RecordingConditions] = None
    anthropometrics: Optional[dict[str, float]] = None
    equipment_setup: Optional[dict[str, Any]] = None
    consent_confirmed: bool = False


# ============================================================================
# Report components
# ============================================================================

class FormError(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable error code, unique within one analysis")
    description: str
    severity: Severity
    frames: tuple[int, int] = Field(description="Inclusive [start, end] frame range")
    confidence: float = Field(ge=0.0, le=1.0)
    coaching_cue: str
    primary_cause: PrimaryCause

    @model_validator(mode="after")
    def _check_frame_range(self):
        start, end = self.frames
        if start < 0 or start > end:
            raise ValueError(f"Invalid frame range {self.frames}")
        return self


class Landmark(BaseModel):
    landmark: str
    frame: int
    x: float
    y: float
    confidence: float = 0.0


class ROMMetric(BaseModel):
    metric_name: str
    measured_deg: float
    expected_range: tuple[float, float]
    deviation_percent: float = 0.0


class SymmetryMetric(BaseModel):
    metric_name: str
    left_value: float
    right_value: float
    asymmetry_percent: float


class ExerciseVariation(BaseModel):
    name: str
    reason: str


class ExerciseSubstitutions(BaseModel):
    regressions: list[ExerciseVariation] = Field(default_factory=list)
    progressions: list[ExerciseVariation] = Field(default_factory=list)


class TimestampedCue(BaseModel):
    time_s: str = Field(description="HH:MM:SS")
    cue: str


class FormAnalysis(BaseModel):
    """The analysis report. Immutable once produced."""
    model_config = ConfigDict(frozen=True)

    form_analysis_summary: str
    overall_confidence: float = Field(ge=0.3, le=1.0)
    key_landmarks_detected: list[Landmark] = Field(default_factory=list)
    errors: list[FormError] = Field(default_factory=list)
    range_of_motion_metrics: Optional[list[ROMMetric]] = None
    symmetry_metrics: Optional[list[SymmetryMetric]] = None
    recommended_action: RecommendedAction
    exercise_substitutions: ExerciseSubstitutions
    visual_overlay_instructions: list[str] = Field(default_factory=list)
    video_quality_flags: list[QualityFlag] = Field(default_factory=list)
    timestamped_coaching_queue: list[TimestampedCue] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_error_ids(self):
        ids = [e.id for e in self.errors]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate error ids in report: {ids}")
        return self
