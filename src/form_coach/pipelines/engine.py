"""
Form analysis engine entry points.

    analyze_pose_frames    pre-computed pose sequence -> FormAnalysis
    analyze_metadata_only  recording metadata only    -> FormAnalysis
    FormAnalysisEngine     video + injected pose source -> FormAnalysis

Preconditions (consent, exercise selection) are checked before any frame
is read. Each call is independent; nothing is cached between analyses.
"""

import logging
from typing import Callable, Optional, Sequence

from .analysis import (
    analyze_form_from_poses,
    assess_rom,
    assess_symmetry,
    count_frames_with_pose,
    extract_key_landmarks,
)
from .assembler import assemble_report
from .config import SAMPLE_RATE
from .errors import (
    ConsentRequiredError,
    ExerciseNotIdentifiedError,
    FrameSequenceError,
    PoseBackendInitError,
)
from .quality import MetadataQualityAssessor, select_quality_assessor
from .rules import ExerciseKind, classify_exercise
from .state import FormAnalysis, FormError, PoseFrame, PrimaryCause, Severity, VideoMetadata
from ..agents.coaching_agent import CoachingAgent
from ..agents.exercise_library import Exercise, find_exercise
from ..preprocessing.pose_source import PoseSource
from ..preprocessing.video import ProgressCallback, VideoSource, sample_pose_frames

logger = logging.getLogger(__name__)


UNKNOWN_EXERCISE_ERROR = FormError(
    id="unknown_exercise",
    description="Exercise not identified in library",
    severity=Severity.MODERATE,
    frames=(0, 0),
    confidence=0.9,
    coaching_cue="Ensure exercise is registered in system",
    primary_cause=PrimaryCause.CAMERA_ISSUE,
)


def resolve_library_entry(
    exercise: Optional[str],
    kind: Optional[ExerciseKind],
) -> Optional[Exercise]:
    """Library entry for *exercise*, falling back to the entry of its rule kind.

    Variants such as "Goblet Squat" classify as a squat without matching a
    library name; they get the squat entry.
    """
    entry = find_exercise(exercise_name=exercise) if exercise else None
    if entry is None and kind is not None:
        entry = find_exercise(exercise_id=kind.value)
    return entry


def check_consent(metadata: VideoMetadata) -> None:
    if not metadata.consent_confirmed:
        raise ConsentRequiredError()


def check_preconditions(metadata: VideoMetadata, exercise: Optional[str]) -> None:
    """Fail fast on missing consent or missing exercise selection."""
    check_consent(metadata)
    if not exercise or not exercise.strip():
        raise ExerciseNotIdentifiedError()


def _validate_frames(frames: Sequence[PoseFrame]) -> None:
    """Frame numbers must be 0, 1, 2, ... with non-decreasing timestamps."""
    prev_ts = -1.0
    for idx, frame in enumerate(frames):
        if frame.frame_number != idx:
            raise FrameSequenceError(
                f"Frame numbers must be contiguous from 0; "
                f"position {idx} has frame_number {frame.frame_number}."
            )
        if frame.timestamp_s < prev_ts:
            raise FrameSequenceError(
                f"Timestamps must be non-decreasing; frame {idx} goes back to "
                f"{frame.timestamp_s:.3f}s."
            )
        prev_ts = frame.timestamp_s


def analyze_pose_frames(
    frames: Sequence[PoseFrame],
    metadata: VideoMetadata,
    exercise: Optional[str],
    coaching_agent: Optional[CoachingAgent] = None,
) -> FormAnalysis:
    """Analyze a complete, pre-computed pose sequence.

    Args:
        frames: Ordered pose sequence, frame numbers contiguous from 0.
        metadata: Recording metadata (consent must be confirmed).
        exercise: Exercise name or library id, e.g. ``"Barbell Back Squat"``.
        coaching_agent: Optional agent to reuse across calls.

    Returns:
        The immutable analysis report.

    Raises:
        ConsentRequiredError: If consent was not confirmed.
        ExerciseNotIdentifiedError: If no exercise was given.
        FrameSequenceError: If the frame sequence is not contiguous and ordered.
    """
    check_preconditions(metadata, exercise)
    _validate_frames(frames)

    kind = classify_exercise(exercise)
    library_entry = resolve_library_entry(exercise, kind)
    logger.info(
        "Analyzing %d frames (%d with pose) for '%s' (kind=%s, library=%s)",
        len(frames), count_frames_with_pose(frames), exercise,
        kind.value if kind else None,
        library_entry.id if library_entry else None,
    )

    errors = analyze_form_from_poses(frames, kind)
    quality = select_quality_assessor(frames).assess(frames, metadata)

    agent = coaching_agent or CoachingAgent()
    coaching = agent.generate_feedback(
        errors=errors,
        exercise=library_entry,
        camera_angle=metadata.camera_angle,
    )

    report = assemble_report(
        errors=errors,
        quality=quality,
        coaching=coaching,
        key_landmarks=extract_key_landmarks(frames),
        rom_metrics=assess_rom(frames, kind),
        symmetry_metrics=assess_symmetry(frames),
    )
    logger.info(
        "Analysis complete: %d errors, action=%s, confidence=%.2f",
        len(report.errors), report.recommended_action.value, report.overall_confidence,
    )
    return report


def analyze_metadata_only(
    metadata: VideoMetadata,
    exercise: Optional[str] = None,
    coaching_agent: Optional[CoachingAgent] = None,
) -> FormAnalysis:
    """Metadata-driven analysis for when no pose sequence is available.

    No pose-based errors can be detected; an exercise missing from the
    library is reported as ``unknown_exercise``.

    Raises:
        ConsentRequiredError: If consent was not confirmed.
    """
    check_consent(metadata)

    library_entry = resolve_library_entry(exercise, classify_exercise(exercise))
    errors = [] if library_entry is not None else [UNKNOWN_EXERCISE_ERROR]

    quality = MetadataQualityAssessor().assess(None, metadata)

    agent = coaching_agent or CoachingAgent()
    coaching = agent.generate_feedback(
        errors=errors,
        exercise=library_entry,
        camera_angle=metadata.camera_angle,
    )

    return assemble_report(errors=errors, quality=quality, coaching=coaching)


class FormAnalysisEngine:
    """
    Video-driven analysis with an injected pose source.

    The caller owns the pose source lifecycle; ``analyze`` calls the
    idempotent ``initialize`` but never disposes the source.

    Example usage:
        source = MediaPipePoseSource()
        with pose_source_session(source), OpenCVVideoSource("squat.mp4") as video:
            report = FormAnalysisEngine(source).analyze(video, metadata, "squat")
    """

    def __init__(
        self,
        pose_source: PoseSource,
        sample_rate: int = SAMPLE_RATE,
        coaching_agent: Optional[CoachingAgent] = None,
    ):
        self.pose_source = pose_source
        self.sample_rate = sample_rate
        self.coaching_agent = coaching_agent or CoachingAgent()

    def analyze(
        self,
        video: VideoSource,
        metadata: VideoMetadata,
        exercise: Optional[str],
        progress_callback: Optional[ProgressCallback] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> FormAnalysis:
        """
        Sample the video, estimate poses and produce the report.

        Raises:
            ConsentRequiredError: Before any frame is read.
            ExerciseNotIdentifiedError: Before any frame is read.
            PoseBackendInitError: If the pose backend cannot be prepared.
            AnalysisCancelledError: If *should_cancel* fires between frames.
        """
        check_preconditions(metadata, exercise)

        try:
            self.pose_source.initialize()
        except PoseBackendInitError:
            raise
        except Exception as exc:
            raise PoseBackendInitError() from exc

        frames = sample_pose_frames(
            video,
            self.pose_source,
            sample_rate=self.sample_rate,
            progress_callback=progress_callback,
            should_cancel=should_cancel,
        )
        return analyze_pose_frames(frames, metadata, exercise, self.coaching_agent)
