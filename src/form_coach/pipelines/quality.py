"""
Quality & confidence assessment.

Two interchangeable strategies produce quality flags and an overall
confidence scalar:

- ``PoseQualityAssessor``: driven by the detected pose sequence.
- ``MetadataQualityAssessor``: driven by the declared recording metadata,
  used when no pose sequence is available.

Both clamp the confidence to [CONFIDENCE_FLOOR, CONFIDENCE_CEILING].
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np
from pydantic import BaseModel, Field

from .config import (
    BASE_CONFIDENCE,
    CONFIDENCE_CEILING,
    CONFIDENCE_FLOOR,
    METADATA_FLAG_PENALTY,
    MIN_DETECTION_RATE,
    MIN_FRAME_RATE,
    MIN_MEAN_POSE_SCORE,
    NO_ANTHROPOMETRICS_PENALTY,
    NO_EQUIPMENT_SETUP_PENALTY,
    POSE_FLAG_PENALTY,
    SINGLE_CAMERA_ANGLES,
    SUPPORTED_CAMERA_ANGLES,
)
from .state import PoseFrame, QualityFlag, VideoMetadata

logger = logging.getLogger(__name__)


class QualityAssessment(BaseModel):
    flags: list[QualityFlag] = Field(default_factory=list)
    confidence: float = Field(ge=CONFIDENCE_FLOOR, le=CONFIDENCE_CEILING)


def clamp_confidence(value: float) -> float:
    return float(max(CONFIDENCE_FLOOR, min(CONFIDENCE_CEILING, value)))


class QualityAssessor(ABC):
    """Base class for quality assessment strategies."""

    @abstractmethod
    def assess(
        self,
        frames: Optional[Sequence[PoseFrame]],
        metadata: VideoMetadata,
    ) -> QualityAssessment:
        """
        Compute quality flags and overall confidence.

        Args:
            frames: Pose sequence, or None when pose analysis was not run
            metadata: Declared recording metadata

        Returns:
            QualityAssessment with flags in emission order
        """
        pass


# ============================================================================
# Pose-driven
# ============================================================================

def detection_rate(frames: Sequence[PoseFrame]) -> float:
    """Fraction of frames with at least one detected pose (0 when empty)."""
    if not frames:
        return 0.0
    return sum(1 for f in frames if f.poses) / len(frames)


def mean_pose_score(frames: Sequence[PoseFrame]) -> float:
    """Mean primary-pose score; frames without a pose count as 0."""
    if not frames:
        return 0.0
    scores = [
        (f.primary_pose.score or 0.0) if f.primary_pose is not None else 0.0
        for f in frames
    ]
    return float(np.mean(scores))


class PoseQualityAssessor(QualityAssessor):

    def assess(self, frames, metadata):
        frames = frames or []
        rate = detection_rate(frames)
        avg_score = mean_pose_score(frames)

        flags: list[QualityFlag] = []
        if rate < MIN_DETECTION_RATE:
            flags.append(QualityFlag.LOW_DETECTION_RATE)
        if avg_score < MIN_MEAN_POSE_SCORE:
            flags.append(QualityFlag.LOW_CONFIDENCE)

        confidence = BASE_CONFIDENCE - POSE_FLAG_PENALTY * len(flags)
        confidence *= rate
        confidence = clamp_confidence(confidence)

        logger.info(
            "Pose quality: detection_rate=%.2f mean_score=%.2f flags=%s confidence=%.2f",
            rate, avg_score, [f.value for f in flags], confidence,
        )
        return QualityAssessment(flags=flags, confidence=confidence)


# ============================================================================
# Metadata-driven
# ============================================================================

class MetadataQualityAssessor(QualityAssessor):

    def assess(self, frames, metadata):
        conditions = metadata.recording_conditions
        flags: list[QualityFlag] = []

        if not (conditions and conditions.lighting):
            flags.append(QualityFlag.LIGHTING_LOW)

        if metadata.camera_angle and metadata.camera_angle not in SUPPORTED_CAMERA_ANGLES:
            flags.append(QualityFlag.SUBOPTIMAL_ANGLE)

        if not metadata.frame_rate or metadata.frame_rate < MIN_FRAME_RATE:
            flags.append(QualityFlag.LOW_FRAMERATE)

        if not (conditions and conditions.equipment_visible):
            flags.append(QualityFlag.OCCLUDED_JOINTS)

        if metadata.camera_angle in SINGLE_CAMERA_ANGLES:
            flags.append(QualityFlag.SINGLE_ANGLE)

        confidence = BASE_CONFIDENCE - METADATA_FLAG_PENALTY * len(flags)
        if not metadata.anthropometrics:
            confidence -= NO_ANTHROPOMETRICS_PENALTY
        if not metadata.equipment_setup:
            confidence -= NO_EQUIPMENT_SETUP_PENALTY
        confidence = clamp_confidence(confidence)

        logger.info(
            "Metadata quality: flags=%s confidence=%.2f",
            [f.value for f in flags], confidence,
        )
        return QualityAssessment(flags=flags, confidence=confidence)


def select_quality_assessor(frames: Optional[Sequence[PoseFrame]]) -> QualityAssessor:
    """Pose-driven when a pose sequence is available, metadata-driven otherwise."""
    if frames is not None:
        return PoseQualityAssessor()
    return MetadataQualityAssessor()
