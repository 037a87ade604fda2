"""
Analyze a recorded exercise video from the command line.

    form-coach-analyze --video squat.mp4 --exercise squat \
        --camera-angle sagittal_right --consent --out report.json

Pose backend options come from a YAML file (``--config``, defaults to
``config/pose_backend.yaml`` when present) and fall back to the
environment defaults in ``form_coach.pipelines.config``.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from tqdm import tqdm

from ..pipelines.config import (
    DEFAULT_POSE_BACKEND_CONFIG,
    LOG_LEVEL,
    POSE_MIN_DETECTION_CONFIDENCE,
    POSE_MIN_TRACKING_CONFIDENCE,
    POSE_MODEL_PATH,
)
from ..pipelines.engine import FormAnalysisEngine, check_preconditions
from ..pipelines.errors import FormAnalysisError
from ..pipelines.state import RecordingConditions, VideoMetadata
from ..preprocessing import MediaPipePoseSource, OpenCVVideoSource, pose_source_session
from ..utils.io_utils import load_config, save_report

logger = logging.getLogger(__name__)


def build_pose_source(config_path=None) -> MediaPipePoseSource:
    """Create the MediaPipe source from YAML overrides on top of env defaults."""
    path = Path(config_path) if config_path else DEFAULT_POSE_BACKEND_CONFIG
    config = {}
    if config_path or path.exists():
        config = load_config(path).get("pose_backend", {})

    return MediaPipePoseSource(
        model_path=config.get("model_path", POSE_MODEL_PATH),
        min_detection_confidence=float(
            config.get("min_detection_confidence", POSE_MIN_DETECTION_CONFIDENCE)
        ),
        min_tracking_confidence=float(
            config.get("min_tracking_confidence", POSE_MIN_TRACKING_CONFIDENCE)
        ),
        num_poses=int(config.get("num_poses", 1)),
    )


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Strength-training form analysis")
    ap.add_argument("--video", required=True)
    ap.add_argument("--exercise", required=True, help="Exercise name or library id")
    ap.add_argument(
        "--camera-angle",
        default="sagittal_right",
        help="sagittal_left | sagittal_right | frontal | overhead",
    )
    ap.add_argument("--consent", action="store_true",
                    help="Confirm consent to analyze this video (required).")
    ap.add_argument("--lighting", action="store_true", help="Declare good lighting.")
    ap.add_argument("--equipment-visible", action="store_true")
    ap.add_argument("--config", default=None, help="Pose backend YAML config")
    ap.add_argument("--out", default="form_analysis.json")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s")
    args = parse_args(argv)

    metadata = VideoMetadata(
        video_id=Path(args.video).stem,
        exercise_id=args.exercise,
        camera_angle=args.camera_angle,
        recording_conditions=RecordingConditions(
            lighting=args.lighting,
            equipment_visible=args.equipment_visible,
        ),
        consent_confirmed=args.consent,
    )

    try:
        # Nothing is opened or loaded until consent and exercise are confirmed.
        check_preconditions(metadata, args.exercise)

        with OpenCVVideoSource(args.video) as video:
            metadata = metadata.model_copy(update={
                "frame_rate": video.fps,
                "resolution": f"{video.width}x{video.height}",
            })

            source = build_pose_source(args.config)
            with pose_source_session(source), tqdm(total=100, desc="Analyzing", unit="%") as bar:
                def on_progress(fraction: float) -> None:
                    bar.n = round(fraction * 100)
                    bar.refresh()

                report = FormAnalysisEngine(source).analyze(
                    video, metadata, args.exercise, progress_callback=on_progress,
                )
    except FormAnalysisError as exc:
        logger.error(str(exc))
        return 1

    result = report.model_dump(mode="json")
    save_report(result, args.out)

    print("\n✅ Analysis complete")
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
