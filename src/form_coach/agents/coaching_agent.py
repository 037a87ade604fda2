"""
Coaching Agent for Form Coach - LangGraph Implementation.

This agent uses LangGraph to run a stateful, fully deterministic workflow that:
1. Decides the recommended action from the error severities
2. Builds exercise substitutions (regressions / progressions)
3. Builds the timestamped coaching cue queue
4. Selects visual overlay instructions
5. Writes the summary text
6. Formats the final response
"""

from langgraph.graph import StateGraph, START, END
from pydantic import BaseModel, Field

from .state import CoachingState, CoachingInput
from .exercise_library import Exercise
from ..pipelines.config import (
    EXERCISE_CUE_TIMESTAMP,
    MAX_CUED_ERRORS,
    MAX_SUBSTITUTIONS,
    SAMPLE_RATE,
    SETUP_CUE_TIMESTAMP,
)
from ..pipelines.state import (
    ExerciseSubstitutions,
    ExerciseVariation,
    FormError,
    PrimaryCause,
    RecommendedAction,
    Severity,
    TimestampedCue,
)


SUCCESS_SUMMARY = "Excellent form! Continue with current progression."
SETUP_CUE = "Check setup position and alignment"

GENERIC_REGRESSIONS = [
    ExerciseVariation(name="Bodyweight variation", reason="Learn pattern without load"),
    ExerciseVariation(name="Assisted variation", reason="Reduce difficulty"),
]
GENERIC_PROGRESSIONS = [
    ExerciseVariation(name="Loaded variation", reason="Add resistance"),
    ExerciseVariation(name="Advanced variation", reason="Increase difficulty"),
]
REDUCED_ROM_REGRESSION = ExerciseVariation(
    name="Reduced ROM variation",
    reason="Work within pain-free range while improving mobility",
)
LIGHTER_LOAD_REGRESSION = ExerciseVariation(
    name="Lighter load variation",
    reason="Build strength foundation with submaximal loads",
)


# ============================================================================
# Pydantic Models for Structured Output
# ============================================================================

class CoachingResponse(BaseModel):
    """Structured coaching output merged into the analysis report."""
    recommended_action: RecommendedAction
    exercise_substitutions: ExerciseSubstitutions
    timestamped_coaching_queue: list[TimestampedCue] = Field(default_factory=list)
    visual_overlay_instructions: list[str] = Field(default_factory=list)
    form_analysis_summary: str


# ============================================================================
# Pure helpers
# ============================================================================

def format_timestamp(frame_number: int, sample_rate: int = SAMPLE_RATE) -> str:
    """Render a frame index as ``00:MM:SS`` (hours are always 00)."""
    seconds = frame_number // sample_rate
    minutes, secs = divmod(seconds, 60)
    return f"00:{minutes:02d}:{secs:02d}"


def determine_recommended_action(errors: list[FormError]) -> RecommendedAction:
    """Severity policy, first matching tier wins."""
    has_major = any(e.severity == Severity.MAJOR for e in errors)
    moderate_count = sum(1 for e in errors if e.severity == Severity.MODERATE)
    minor_count = sum(1 for e in errors if e.severity == Severity.MINOR)

    if has_major:
        return RecommendedAction.REGRESS_AND_RETEST
    if moderate_count >= 3:
        return RecommendedAction.REGRESS_AND_RETEST
    if moderate_count >= 1 or minor_count >= 2:
        return RecommendedAction.PROCEED_WITH_CUES
    return RecommendedAction.PROCEED


def generate_substitutions(
    exercise: Exercise | None,
    errors: list[FormError],
) -> ExerciseSubstitutions:
    if exercise is None:
        return ExerciseSubstitutions(
            regressions=[v.model_copy() for v in GENERIC_REGRESSIONS],
            progressions=[v.model_copy() for v in GENERIC_PROGRESSIONS],
        )

    # Copies: the library entry is never mutated.
    regressions = [v.model_copy() for v in exercise.regressions]
    progressions = [v.model_copy() for v in exercise.progressions]

    if any(e.primary_cause == PrimaryCause.MOBILITY for e in errors) and len(regressions) < 2:
        regressions.append(REDUCED_ROM_REGRESSION.model_copy())

    if any(e.primary_cause == PrimaryCause.STRENGTH for e in errors) and len(regressions) < 2:
        regressions.append(LIGHTER_LOAD_REGRESSION.model_copy())

    return ExerciseSubstitutions(
        regressions=regressions[:MAX_SUBSTITUTIONS],
        progressions=progressions[:MAX_SUBSTITUTIONS],
    )


def generate_timestamped_cues(
    errors: list[FormError],
    exercise: Exercise | None,
) -> list[TimestampedCue]:
    cues = [TimestampedCue(time_s=SETUP_CUE_TIMESTAMP, cue=SETUP_CUE)]

    for error in errors[:MAX_CUED_ERRORS]:
        cues.append(TimestampedCue(
            time_s=format_timestamp(error.frames[0]),
            cue=error.coaching_cue,
        ))

    if exercise is not None and exercise.cues:
        cues.append(TimestampedCue(time_s=EXERCISE_CUE_TIMESTAMP, cue=exercise.cues[0]))

    return cues


def generate_visual_overlays(errors: list[FormError], camera_angle: str) -> list[str]:
    overlays: list[str] = []
    camera_angle = camera_angle or ""

    if "sagittal" in camera_angle:
        overlays.append("Draw vertical plumb line at mid-foot")
        overlays.append("Highlight knee tracking path")
        overlays.append("Show spine angle relative to vertical")

    if "frontal" in camera_angle:
        overlays.append("Draw vertical centerline")
        overlays.append("Mark shoulder and hip symmetry")

    for error in errors:
        if error.id == "knee_valgus":
            overlays.append("Highlight knee position relative to toe line")
        if error.id == "rounded_back":
            overlays.append("Trace spine curvature, highlight excessive flexion")

    return overlays


def generate_summary(errors: list[FormError]) -> str:
    if not errors:
        return SUCCESS_SUMMARY

    major = sum(1 for e in errors if e.severity == Severity.MAJOR)
    moderate = sum(1 for e in errors if e.severity == Severity.MODERATE)
    minor = sum(1 for e in errors if e.severity == Severity.MINOR)

    if major > 0:
        return (
            f"Unsafe form detected ({major} major issues). "
            "Regress to lighter load or modified variation immediately."
        )

    if moderate >= 2:
        return (
            f"Form needs improvement ({moderate} moderate, {minor} minor issues). "
            "Apply coaching cues and consider regression."
        )

    return (
        f"Form acceptable with cues ({moderate} moderate, {minor} minor issues). "
        "Focus on primary corrections."
    )


# ============================================================================
# Graph Nodes
# ============================================================================

def decide_action_node(state: CoachingState) -> dict:
    """
    Node 1: Map the error set to a recommended action.
    """
    return {"recommended_action": determine_recommended_action(state.input.errors)}


def substitutions_node(state: CoachingState) -> dict:
    """
    Node 2: Regressions and progressions, adjusted for error causes.
    """
    return {
        "substitutions": generate_substitutions(state.input.exercise, state.input.errors)
    }


def coaching_cues_node(state: CoachingState) -> dict:
    """
    Node 3: Timestamped coaching queue.
    """
    return {
        "coaching_queue": generate_timestamped_cues(state.input.errors, state.input.exercise)
    }


def overlays_node(state: CoachingState) -> dict:
    """
    Node 4: Overlay instructions for the camera angle and detected errors.
    """
    return {
        "overlays": generate_visual_overlays(state.input.errors, state.input.camera_angle)
    }


def summary_node(state: CoachingState) -> dict:
    """
    Node 5: Summary text.
    """
    return {"summary": generate_summary(state.input.errors)}


def format_response_node(state: CoachingState) -> dict:
    """
    Node 6: Format the final response combining all components.
    """
    response = CoachingResponse(
        recommended_action=state.recommended_action,
        exercise_substitutions=state.substitutions,
        timestamped_coaching_queue=state.coaching_queue,
        visual_overlay_instructions=state.overlays,
        form_analysis_summary=state.summary,
    )
    return {"final_response": response.model_dump()}


# ============================================================================
# Build the Graph
# ============================================================================

def build_coaching_graph():
    """Build and return the compiled coaching agent graph."""

    graph = StateGraph(CoachingState)

    graph.add_node("decide_action", decide_action_node)
    graph.add_node("substitutions", substitutions_node)
    graph.add_node("coaching_cues", coaching_cues_node)
    graph.add_node("overlays", overlays_node)
    graph.add_node("summary", summary_node)
    graph.add_node("format_response", format_response_node)

    # START → decide_action → substitutions → coaching_cues → overlays → summary → format_response → END
    graph.add_edge(START, "decide_action")
    graph.add_edge("decide_action", "substitutions")
    graph.add_edge("substitutions", "coaching_cues")
    graph.add_edge("coaching_cues", "overlays")
    graph.add_edge("overlays", "summary")
    graph.add_edge("summary", "format_response")
    graph.add_edge("format_response", END)

    return graph.compile()


# ============================================================================
# Main Agent Class
# ============================================================================

class CoachingAgent:
    """
    LangGraph-based Coaching Agent.

    Turns the detected error list into a recommended action, substitutions,
    a coaching cue queue, overlay instructions and a summary. Holds no
    per-analysis state; one instance can serve any number of analyses.

    Example usage:
        agent = CoachingAgent()
        response = agent.generate_feedback(
            errors=errors,
            exercise=get_exercise(exercise_id="squat"),
            camera_angle="sagittal_right",
        )
    """

    def __init__(self):
        """Initialize the coaching agent with compiled graph."""
        self.graph = build_coaching_graph()

    def generate_feedback(
        self,
        errors: list[FormError],
        exercise: Exercise | None = None,
        camera_angle: str = "",
    ) -> CoachingResponse:
        """
        Generate the coaching output for one analysis.

        Args:
            errors: Detected form errors (rule declaration order)
            exercise: Library entry, or None when the exercise is not identified
            camera_angle: Declared camera angle

        Returns:
            CoachingResponse with all coaching components
        """
        initial_state = CoachingState(
            input=CoachingInput(
                errors=list(errors),
                exercise=exercise,
                camera_angle=camera_angle,
            ),
        )

        result = self.graph.invoke(initial_state)

        return CoachingResponse(**result["final_response"])
