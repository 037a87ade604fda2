"""
Pose extraction: pose sources and fixed-rate video sampling.
"""

from .pose_source import (
    MediaPipePoseSource,
    PoseSource,
    landmarks_to_pose,
    pose_source_session,
)
from .video import OpenCVVideoSource, VideoSource, sample_pose_frames, sample_timestamps

__all__ = [
    "MediaPipePoseSource",
    "PoseSource",
    "landmarks_to_pose",
    "pose_source_session",
    "OpenCVVideoSource",
    "VideoSource",
    "sample_pose_frames",
    "sample_timestamps",
]
