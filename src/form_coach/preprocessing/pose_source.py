"""
Pose sources for exercise video analysis.

A pose source turns one video frame into zero or more ``Pose`` objects.
The engine receives an explicitly constructed source and never creates
one itself; the caller owns its lifecycle (``initialize`` / ``dispose``),
typically through ``pose_source_session``.

``MediaPipePoseSource`` wraps the MediaPipe Tasks Pose Landmarker and
reports keypoints in image pixel coordinates under COCO-style joint names.
"""

import os
import logging
import warnings
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional

# Suppress TensorFlow/MediaPipe C++ warnings before imports
os.environ.setdefault('TF_CPP_MIN_LOG_LEVEL', '3')
os.environ.setdefault('GLOG_minloglevel', '3')

import cv2
import numpy as np

from ..pipelines.config import (
    POSE_MIN_DETECTION_CONFIDENCE,
    POSE_MIN_TRACKING_CONFIDENCE,
    POSE_MODEL_PATH,
)
from ..pipelines.errors import PoseBackendInitError, PoseSourceNotInitializedError
from ..pipelines.state import Joint, Pose

# Suppress Python warnings
warnings.filterwarnings('ignore', category=UserWarning, module='mediapipe')
warnings.filterwarnings('ignore', category=UserWarning, module='google')

logger = logging.getLogger(__name__)

# MediaPipe 33-landmark index -> joint name used by the rule catalog
MEDIAPIPE_JOINT_NAMES: dict[int, str] = {
    0: "nose",
    2: "left_eye",
    5: "right_eye",
    7: "left_ear",
    8: "right_ear",
    11: "left_shoulder",
    12: "right_shoulder",
    13: "left_elbow",
    14: "right_elbow",
    15: "left_wrist",
    16: "right_wrist",
    23: "left_hip",
    24: "right_hip",
    25: "left_knee",
    26: "right_knee",
    27: "left_ankle",
    28: "right_ankle",
    29: "left_heel",
    30: "right_heel",
    31: "left_foot_index",
    32: "right_foot_index",
}


@contextmanager
def suppress_stderr():
    """Context manager to temporarily suppress stderr output."""
    null_fd = os.open(os.devnull, os.O_RDWR)
    save_stderr = os.dup(2)
    os.dup2(null_fd, 2)
    try:
        yield
    finally:
        os.dup2(save_stderr, 2)
        os.close(null_fd)
        os.close(save_stderr)


class PoseSource(ABC):
    """Base class for pose estimation backends."""

    @abstractmethod
    def initialize(self) -> None:
        """
        Prepare the backend. Idempotent.

        Raises:
            PoseBackendInitError: If the model backend cannot be prepared
        """
        pass

    @abstractmethod
    def estimate(self, frame: np.ndarray) -> List[Pose]:
        """
        Detect poses in one frame.

        Args:
            frame: BGR image as produced by OpenCV

        Returns:
            Detected poses, primary pose first (may be empty)
        """
        pass

    @abstractmethod
    def dispose(self) -> None:
        """Release backend resources; ``initialize`` must be called again before reuse."""
        pass


@contextmanager
def pose_source_session(source: PoseSource) -> Iterator[PoseSource]:
    """Initialize *source* for the duration of the block and always dispose it."""
    source.initialize()
    try:
        yield source
    finally:
        source.dispose()


class MediaPipePoseSource(PoseSource):
    """
    Pose source backed by the MediaPipe Pose Landmarker (IMAGE mode).

    Keypoint confidence is the landmark visibility; the pose score is the
    mean visibility of the named joints.
    """

    def __init__(
        self,
        model_path: str = POSE_MODEL_PATH,
        min_detection_confidence: float = POSE_MIN_DETECTION_CONFIDENCE,
        min_tracking_confidence: float = POSE_MIN_TRACKING_CONFIDENCE,
        num_poses: int = 1,
    ):
        self.model_path = model_path
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self.num_poses = num_poses
        self._landmarker = None

    @property
    def initialized(self) -> bool:
        return self._landmarker is not None

    def initialize(self) -> None:
        if self._landmarker is not None:
            return

        try:
            from mediapipe.tasks import python
            from mediapipe.tasks.python import vision

            # Initialize with stderr suppression to hide TFLite C++ warnings
            with suppress_stderr():
                base_options = python.BaseOptions(
                    model_asset_path=self.model_path,
                    delegate=python.BaseOptions.Delegate.CPU  # pip package only supports CPU
                )
                options = vision.PoseLandmarkerOptions(
                    base_options=base_options,
                    running_mode=vision.RunningMode.IMAGE,
                    num_poses=self.num_poses,
                    min_pose_detection_confidence=self.min_detection_confidence,
                    min_tracking_confidence=self.min_tracking_confidence,
                )
                self._landmarker = vision.PoseLandmarker.create_from_options(options)
        except Exception as e:
            logger.error(f"Failed to initialize MediaPipe PoseLandmarker: {e}")
            logger.error(f"Please download the model file to: {self.model_path}")
            raise PoseBackendInitError() from e

        logger.info(f"MediaPipe PoseLandmarker ready ({self.model_path})")

    def estimate(self, frame: np.ndarray) -> List[Pose]:
        if self._landmarker is None:
            raise PoseSourceNotInitializedError()

        import mediapipe as mp

        height, width = frame.shape[:2]

        # Convert to RGB for MediaPipe
        image = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=image)

        detection_result = self._landmarker.detect(mp_image)

        return [
            landmarks_to_pose(landmarks, width, height)
            for landmarks in (detection_result.pose_landmarks or [])
        ]

    def dispose(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.info("MediaPipe PoseLandmarker disposed")


def landmarks_to_pose(landmarks, width: int, height: int) -> Pose:
    """Convert one set of normalized MediaPipe landmarks to a pixel-space ``Pose``.

    Args:
        landmarks: Sequence of landmarks with ``.x``, ``.y`` in [0, 1] and ``.visibility``
        width: Frame width in pixels
        height: Frame height in pixels

    Returns:
        Pose with named keypoints and mean visibility as score
    """
    keypoints = []
    for idx, name in MEDIAPIPE_JOINT_NAMES.items():
        if idx >= len(landmarks):
            continue
        lm = landmarks[idx]
        visibility: Optional[float] = getattr(lm, "visibility", None)
        if visibility is not None:
            visibility = float(np.clip(visibility, 0.0, 1.0))
        keypoints.append(Joint(
            name=name,
            x=float(lm.x) * width,
            y=float(lm.y) * height,
            confidence=visibility,
        ))

    confidences = [kp.confidence for kp in keypoints if kp.confidence is not None]
    score = float(np.mean(confidences)) if confidences else None
    return Pose(keypoints=keypoints, score=score)
