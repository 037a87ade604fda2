"""
Video input and fixed-rate pose sampling.

The sampler seeks a video to ``0, 1/30, 2/30, ...`` strictly in order and
runs the pose source on each sampled instant, producing a contiguous
``PoseFrame`` sequence numbered from 0. Frames are pulled one at a time
because every seek moves the same underlying cursor.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

import cv2
import numpy as np

from ..pipelines.config import SAMPLE_RATE
from ..pipelines.errors import AnalysisCancelledError, VideoSourceError
from ..pipelines.state import PoseFrame
from .pose_source import PoseSource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class VideoSource(ABC):
    """Seekable video with known duration (seconds) and dimensions."""

    @property
    @abstractmethod
    def duration(self) -> float:
        pass

    @property
    @abstractmethod
    def width(self) -> int:
        pass

    @property
    @abstractmethod
    def height(self) -> int:
        pass

    @abstractmethod
    def read_at(self, timestamp_s: float) -> Optional[np.ndarray]:
        """
        Seek to *timestamp_s* and return the frame shown at that instant.

        Returns:
            BGR image, or None if no frame could be decoded there
        """
        pass


class OpenCVVideoSource(VideoSource):
    """
    Video file opened with OpenCV. Use as a context manager or call ``close``.
    """

    def __init__(self, video_path: str):
        self.video_path = video_path
        self._cap = cv2.VideoCapture(video_path)
        if not self._cap.isOpened():
            raise VideoSourceError(f"Could not open video: {video_path}")

        fps = self._cap.get(cv2.CAP_PROP_FPS)
        if not fps:
            fps = 30.0  # Default fallback
        frame_count = self._cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0
        self._fps = float(fps)
        self._duration = float(frame_count) / self._fps
        self._width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self._height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

        logger.info(
            f"Opened {video_path}: {self._width}x{self._height} "
            f"@ {self._fps:.2f} fps, {self._duration:.2f}s"
        )

    @property
    def fps(self) -> float:
        """Native frame rate of the file (not the sampling rate)."""
        return self._fps

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def read_at(self, timestamp_s: float) -> Optional[np.ndarray]:
        # cv2 seeks synchronously; the next read returns the settled frame.
        self._cap.set(cv2.CAP_PROP_POS_MSEC, timestamp_s * 1000.0)
        ret, frame = self._cap.read()
        if not ret:
            return None
        return frame

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def sample_timestamps(duration: float, sample_rate: int = SAMPLE_RATE) -> List[float]:
    """Sampling instants ``n / sample_rate`` for ``n < floor(duration * sample_rate)``."""
    if duration <= 0:
        return []
    total = int(np.floor(duration * sample_rate))
    return [n / sample_rate for n in range(total)]


def sample_pose_frames(
    video: VideoSource,
    pose_source: PoseSource,
    sample_rate: int = SAMPLE_RATE,
    progress_callback: Optional[ProgressCallback] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> List[PoseFrame]:
    """Run *pose_source* over *video* at a fixed sampling rate.

    A frame whose decode or pose estimation fails is recorded with no poses;
    there are no retries.

    Args:
        video: Seekable video source.
        pose_source: Initialized pose source.
        sample_rate: Samples per second.
        progress_callback: Called with the completed fraction (0-1] after
            each frame. Errors raised by the callback are logged and ignored.
        should_cancel: Optional cooperative cancel check, polled between frames.

    Returns:
        PoseFrame list numbered contiguously from 0, in timestamp order.

    Raises:
        AnalysisCancelledError: If *should_cancel* returns True.
    """
    timestamps = sample_timestamps(video.duration, sample_rate)
    total = len(timestamps)
    logger.info("Sampling %d frames at %d Hz", total, sample_rate)

    frames: List[PoseFrame] = []
    failed = 0

    for frame_number, timestamp_s in enumerate(timestamps):
        if should_cancel is not None and should_cancel():
            raise AnalysisCancelledError(
                f"Analysis cancelled at frame {frame_number} of {total}"
            )

        poses = []
        try:
            image = video.read_at(timestamp_s)
            if image is not None:
                poses = pose_source.estimate(image)
            else:
                logger.warning("No frame decoded at %.3fs (frame %d)", timestamp_s, frame_number)
        except Exception as exc:
            failed += 1
            logger.warning("Pose estimation failed at frame %d: %s", frame_number, exc)
            poses = []

        frames.append(PoseFrame(
            frame_number=frame_number,
            timestamp_s=timestamp_s,
            poses=poses,
        ))

        if progress_callback is not None:
            try:
                progress_callback((frame_number + 1) / total)
            except Exception as exc:
                logger.warning("Progress callback raised, ignoring: %s", exc)

    if failed:
        logger.info("%d / %d frames had estimation failures", failed, total)
    return frames
