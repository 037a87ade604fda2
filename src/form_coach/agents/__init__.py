"""
Agents module for Form Coach.

This module contains the coaching agent that turns detected form errors
into a recommended action, substitutions and coaching output.
"""

from .coaching_agent import CoachingAgent, CoachingResponse
from .state import CoachingState, CoachingInput
from .exercise_library import Exercise, get_exercise, find_exercise

__all__ = [
    "CoachingAgent",
    "CoachingResponse",
    "CoachingState",
    "CoachingInput",
    "Exercise",
    "get_exercise",
    "find_exercise",
]
