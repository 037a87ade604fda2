"""
State definitions for the Coaching Agent using LangGraph.

This module defines the Pydantic models for state that flows through the agent graph.
"""

from typing import Optional
from pydantic import BaseModel, Field

from ..pipelines.state import (
    ExerciseSubstitutions,
    FormError,
    RecommendedAction,
    TimestampedCue,
)
from .exercise_library import Exercise


# ============================================================================
# Input Models
# ============================================================================

class CoachingInput(BaseModel):
    """Input data from the frame-sequence analyzer."""
    errors: list[FormError] = Field(
        default_factory=list,
        description="Detected form errors in rule declaration order",
    )
    exercise: Optional[Exercise] = Field(
        default=None,
        description="Library entry for the exercise, None if not identified",
    )
    camera_angle: str = Field(default="", description="Declared camera angle")


# ============================================================================
# State Model (flows through LangGraph)
# ============================================================================

class CoachingState(BaseModel):
    """
    State that flows through the LangGraph coaching agent.

    Each node fills in one part of the coaching output.
    """
    # Input data
    input: CoachingInput

    recommended_action: Optional[RecommendedAction] = None
    substitutions: Optional[ExerciseSubstitutions] = None
    coaching_queue: list[TimestampedCue] = Field(default_factory=list)
    overlays: list[str] = Field(default_factory=list)
    summary: str = ""

    # Final output
    final_response: Optional[dict] = None

    class Config:
        """Pydantic config for LangGraph compatibility."""
        arbitrary_types_allowed = True
