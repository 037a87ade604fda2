"""Tests for the pose-driven and metadata-driven quality assessors."""

import pytest

from form_coach.pipelines.quality import (
    MetadataQualityAssessor,
    PoseQualityAssessor,
    clamp_confidence,
    detection_rate,
    mean_pose_score,
    select_quality_assessor,
)
from form_coach.pipelines.state import QualityFlag, RecordingConditions, VideoMetadata


# ============================================================================
# Test: Pose-driven assessment
# ============================================================================

class TestPoseQuality:

    def test_clean_sequence(self, pose_factory, frames_factory, layouts, metadata):
        frames = frames_factory([pose_factory(layouts["standing"], score=0.9)] * 10)
        result = PoseQualityAssessor().assess(frames, metadata)
        assert result.flags == []
        assert result.confidence == pytest.approx(0.85)

    def test_detection_rate_scales_confidence(self, pose_factory, frames_factory, layouts, metadata):
        pose = pose_factory(layouts["standing"], score=0.9)
        frames = frames_factory([pose] * 8 + [None] * 2)

        assert detection_rate(frames) == pytest.approx(0.8)
        result = PoseQualityAssessor().assess(frames, metadata)
        assert result.flags == []
        assert result.confidence == pytest.approx(0.85 * 0.8)

    def test_sparse_detection_flags(self, pose_factory, frames_factory, layouts, metadata):
        pose = pose_factory(layouts["standing"], score=0.9)
        frames = frames_factory([pose, None, pose, None])

        assert mean_pose_score(frames) == pytest.approx(0.45)
        result = PoseQualityAssessor().assess(frames, metadata)
        assert result.flags == [QualityFlag.LOW_DETECTION_RATE, QualityFlag.LOW_CONFIDENCE]
        assert result.confidence == pytest.approx(0.3)

    def test_low_scores_only(self, pose_factory, frames_factory, layouts, metadata):
        frames = frames_factory([pose_factory(layouts["standing"], score=0.2)] * 5)
        result = PoseQualityAssessor().assess(frames, metadata)
        assert result.flags == [QualityFlag.LOW_CONFIDENCE]
        assert result.confidence == pytest.approx(0.7)

    def test_empty_sequence_is_floored(self, metadata):
        result = PoseQualityAssessor().assess([], metadata)
        assert detection_rate([]) == 0.0
        assert result.flags == [QualityFlag.LOW_DETECTION_RATE, QualityFlag.LOW_CONFIDENCE]
        assert result.confidence == pytest.approx(0.3)


# ============================================================================
# Test: Metadata-driven assessment
# ============================================================================

class TestMetadataQuality:

    def test_well_documented_recording(self):
        metadata = VideoMetadata(
            camera_angle="sagittal_left",
            frame_rate=60,
            recording_conditions=RecordingConditions(lighting=True, equipment_visible=True),
            anthropometrics={"height_cm": 180.0},
            equipment_setup={"bar": "olympic"},
            consent_confirmed=True,
        )
        result = MetadataQualityAssessor().assess(None, metadata)
        assert result.flags == [QualityFlag.SINGLE_ANGLE]
        assert result.confidence == pytest.approx(0.75)

    def test_flag_order_and_floor(self):
        metadata = VideoMetadata(camera_angle="diagonal", consent_confirmed=True)
        result = MetadataQualityAssessor().assess(None, metadata)
        assert result.flags == [
            QualityFlag.LIGHTING_LOW,
            QualityFlag.SUBOPTIMAL_ANGLE,
            QualityFlag.LOW_FRAMERATE,
            QualityFlag.OCCLUDED_JOINTS,
        ]
        assert result.confidence == pytest.approx(0.3)

    def test_overhead_is_suboptimal_single_angle(self):
        metadata = VideoMetadata(
            camera_angle="overhead",
            frame_rate=30,
            recording_conditions=RecordingConditions(lighting=True, equipment_visible=True),
        )
        result = MetadataQualityAssessor().assess(None, metadata)
        assert result.flags == [QualityFlag.SUBOPTIMAL_ANGLE, QualityFlag.SINGLE_ANGLE]
        assert result.confidence == pytest.approx(0.85 - 0.2 - 0.1 - 0.05)

    def test_low_frame_rate(self):
        metadata = VideoMetadata(
            camera_angle="frontal",
            frame_rate=24,
            recording_conditions=RecordingConditions(lighting=True, equipment_visible=True),
        )
        flags = MetadataQualityAssessor().assess(None, metadata).flags
        assert QualityFlag.LOW_FRAMERATE in flags


# ============================================================================
# Test: Strategy selection / clamping
# ============================================================================

class TestSelection:

    def test_pose_strategy_when_frames_present(self):
        assert isinstance(select_quality_assessor([]), PoseQualityAssessor)

    def test_metadata_strategy_without_frames(self):
        assert isinstance(select_quality_assessor(None), MetadataQualityAssessor)

    @pytest.mark.parametrize("raw, expected", [(-1.0, 0.3), (0.1, 0.3), (0.55, 0.55), (1.7, 1.0)])
    def test_clamp(self, raw, expected):
        assert clamp_confidence(raw) == pytest.approx(expected)
