"""Shared fixtures: synthetic poses, frame sequences and recording metadata."""

from typing import Optional

import pytest

from form_coach.pipelines.state import (
    Joint,
    Pose,
    PoseFrame,
    RecordingConditions,
    VideoMetadata,
)


# ============================================================================
# Joint layouts (image pixels, y grows downward)
# ============================================================================

# Standing tall: hips well above knees, knees over ankles, upright torso.
STANDING = {
    "left_shoulder": (100, 100), "right_shoulder": (200, 100),
    "left_elbow": (90, 200), "right_elbow": (210, 200),
    "left_hip": (100, 200), "right_hip": (200, 200),
    "left_knee": (100, 300), "right_knee": (200, 300),
    "left_ankle": (100, 400), "right_ankle": (200, 400),
}

# Bottom of a squat with the left knee 60 px inside the ankle line.
VALGUS_SQUAT = {
    "left_shoulder": (100, 100), "right_shoulder": (200, 100),
    "left_hip": (100, 300), "right_hip": (200, 300),
    "left_knee": (160, 310), "right_knee": (200, 310),
    "left_ankle": (100, 400), "right_ankle": (200, 400),
}

# Bottom of a squat, knees over ankles, shoulder→hip heading of 135 degrees.
LEANING_SQUAT = {
    "left_shoulder": (200, 200), "right_shoulder": (300, 200),
    "left_hip": (100, 300), "right_hip": (200, 300),
    "left_knee": (100, 310), "right_knee": (200, 310),
    "left_ankle": (100, 400), "right_ankle": (200, 400),
}


def make_pose(joints: dict, confidence: Optional[float] = 1.0, score: Optional[float] = 0.9) -> Pose:
    return Pose(
        keypoints=[
            Joint(name=name, x=float(x), y=float(y), confidence=confidence)
            for name, (x, y) in joints.items()
        ],
        score=score,
    )


def make_frames(poses: list[Optional[Pose]], sample_rate: int = 30) -> list[PoseFrame]:
    """One PoseFrame per entry; None means no person detected."""
    return [
        PoseFrame(
            frame_number=i,
            timestamp_s=i / sample_rate,
            poses=[pose] if pose is not None else [],
        )
        for i, pose in enumerate(poses)
    ]


@pytest.fixture
def pose_factory():
    return make_pose


@pytest.fixture
def frames_factory():
    return make_frames


@pytest.fixture
def layouts():
    return {
        "standing": STANDING,
        "valgus_squat": VALGUS_SQUAT,
        "leaning_squat": LEANING_SQUAT,
    }


@pytest.fixture
def metadata():
    return VideoMetadata(
        video_id="test-video",
        exercise_id="squat",
        camera_angle="sagittal_right",
        frame_rate=30,
        resolution="1920x1080",
        recording_conditions=RecordingConditions(
            lighting=True, background=True, equipment_visible=True,
        ),
        consent_confirmed=True,
    )
