"""
Configuration constants for the Form Coach analysis engine.

Centralizes sampling parameters, rule thresholds, quality thresholds and
environment variable loading for the pose backend.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent
_ENV_PATH = PROJECT_ROOT / ".env"
load_dotenv(_ENV_PATH)

DEFAULT_POSE_BACKEND_CONFIG = PROJECT_ROOT / "config" / "pose_backend.yaml"

# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------
# Fixed regardless of the source video frame rate.
SAMPLE_RATE: int = 30

# ---------------------------------------------------------------------------
# Joint acceptance
# ---------------------------------------------------------------------------
MIN_JOINT_CONFIDENCE: float = 0.3      # Joints below this are treated as missing
LANDMARK_SNAPSHOT_CONFIDENCE: float = 0.5

# ---------------------------------------------------------------------------
# Rule thresholds (pixels / degrees)
# ---------------------------------------------------------------------------
SQUAT_BOTTOM_TOLERANCE_PX: float = 20.0
KNEE_VALGUS_OFFSET_PX: float = 50.0
FORWARD_LEAN_DEG: float = 30.0
SPINE_DEVIATION_RATIO: float = 0.5
ELBOW_FLARE_RATIO: float = 1.5
BODY_LINE_MIN_DEG: float = 160.0
KNEE_OVER_TOE_OFFSET_PX: float = 50.0

# ---------------------------------------------------------------------------
# ROM expected ranges (degrees)
# ---------------------------------------------------------------------------
KNEE_FLEXION_RANGE: tuple[float, float] = (90.0, 135.0)
HIP_FLEXION_RANGE: tuple[float, float] = (90.0, 120.0)

# ---------------------------------------------------------------------------
# Quality & confidence
# ---------------------------------------------------------------------------
MIN_DETECTION_RATE: float = 0.7
MIN_MEAN_POSE_SCORE: float = 0.5
BASE_CONFIDENCE: float = 0.85
POSE_FLAG_PENALTY: float = 0.15
METADATA_FLAG_PENALTY: float = 0.1
NO_ANTHROPOMETRICS_PENALTY: float = 0.1
NO_EQUIPMENT_SETUP_PENALTY: float = 0.05
CONFIDENCE_FLOOR: float = 0.3
CONFIDENCE_CEILING: float = 1.0
MIN_FRAME_RATE: float = 30.0

SUPPORTED_CAMERA_ANGLES: tuple[str, ...] = ("sagittal_left", "sagittal_right", "frontal")
SINGLE_CAMERA_ANGLES: tuple[str, ...] = (
    "sagittal_left",
    "sagittal_right",
    "frontal",
    "overhead",
)

# ---------------------------------------------------------------------------
# Coaching
# ---------------------------------------------------------------------------
MAX_CUED_ERRORS: int = 3
MAX_SUBSTITUTIONS: int = 2
SETUP_CUE_TIMESTAMP: str = "00:00:05"
EXERCISE_CUE_TIMESTAMP: str = "00:00:15"

# ---------------------------------------------------------------------------
# Pose backend (MediaPipe Pose Landmarker)
# ---------------------------------------------------------------------------
# Download from: https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_full/float16/latest/pose_landmarker_full.task
POSE_MODEL_PATH: str = os.environ.get(
    "POSE_MODEL_PATH",
    str(PROJECT_ROOT / "models" / "pose_landmarker_full.task"),
)
POSE_MIN_DETECTION_CONFIDENCE: float = float(
    os.environ.get("POSE_MIN_DETECTION_CONFIDENCE", "0.3")
)
POSE_MIN_TRACKING_CONFIDENCE: float = float(
    os.environ.get("POSE_MIN_TRACKING_CONFIDENCE", "0.3")
)

LOG_LEVEL: str = os.environ.get("FORM_COACH_LOG_LEVEL", "INFO")
