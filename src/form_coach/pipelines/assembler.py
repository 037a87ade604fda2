"""
Report assembly: compose stage outputs into one immutable ``FormAnalysis``.
"""

from typing import Optional

from .quality import QualityAssessment
from .state import FormAnalysis, FormError, Landmark, ROMMetric, SymmetryMetric
from ..agents.coaching_agent import CoachingResponse


def assemble_report(
    errors: list[FormError],
    quality: QualityAssessment,
    coaching: CoachingResponse,
    key_landmarks: Optional[list[Landmark]] = None,
    rom_metrics: Optional[list[ROMMetric]] = None,
    symmetry_metrics: Optional[list[SymmetryMetric]] = None,
) -> FormAnalysis:
    return FormAnalysis(
        form_analysis_summary=coaching.form_analysis_summary,
        overall_confidence=quality.confidence,
        key_landmarks_detected=list(key_landmarks or []),
        errors=list(errors),
        range_of_motion_metrics=rom_metrics,
        symmetry_metrics=symmetry_metrics,
        recommended_action=coaching.recommended_action,
        exercise_substitutions=coaching.exercise_substitutions,
        visual_overlay_instructions=coaching.visual_overlay_instructions,
        video_quality_flags=quality.flags,
        timestamped_coaching_queue=coaching.timestamped_coaching_queue,
    )
