"""
Exercise library for the Coaching Agent.

Per-exercise coaching cues, regressions and progressions used to build
substitutions and the timestamped coaching queue.
"""

from typing import Optional

from pydantic import BaseModel, Field

from ..pipelines.state import ExerciseVariation


class Exercise(BaseModel):
    id: str
    name: str
    primary_muscles: list[str] = Field(default_factory=list)
    secondary_muscles: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    cues: list[str] = Field(default_factory=list)
    regressions: list[ExerciseVariation] = Field(default_factory=list)
    progressions: list[ExerciseVariation] = Field(default_factory=list)


def _v(name: str, reason: str) -> ExerciseVariation:
    return ExerciseVariation(name=name, reason=reason)


EXERCISE_LIBRARY: dict[str, Exercise] = {
    ex.id: ex
    for ex in (
        Exercise(
            id="squat",
            name="Barbell Back Squat",
            primary_muscles=["quadriceps", "glutes"],
            secondary_muscles=["hamstrings", "core", "erectors"],
            equipment=["barbell", "rack"],
            cues=[
                "Brace core before descent",
                "Break at hips and knees simultaneously",
                "Keep chest up and neutral spine",
                "Drive through midfoot",
                "Full hip extension at top",
            ],
            regressions=[
                _v("Goblet Squat", "Easier loading, teaches upright posture"),
                _v("Box Squat", "Reduced range of motion, builds confidence"),
            ],
            progressions=[
                _v("Front Squat", "Increased quad emphasis, core demand"),
                _v("Paused Squat", "Builds strength out of the hole"),
            ],
        ),
        Exercise(
            id="deadlift",
            name="Conventional Deadlift",
            primary_muscles=["hamstrings", "glutes", "erectors"],
            secondary_muscles=["lats", "traps", "grip"],
            equipment=["barbell"],
            cues=[
                "Hinge at hips to grip bar",
                "Pull slack out of bar",
                "Brace hard and drive floor away",
                "Keep bar close to body",
                "Full hip lockout at top",
            ],
            regressions=[
                _v("Romanian Deadlift", "Reduced range, hip hinge focus"),
                _v("Trap Bar Deadlift", "More upright, easier to learn"),
            ],
            progressions=[
                _v("Deficit Deadlift", "Increased range of motion"),
                _v("Sumo Deadlift", "Different leverage, quad emphasis"),
            ],
        ),
        Exercise(
            id="bench",
            name="Barbell Bench Press",
            primary_muscles=["pectorals", "triceps"],
            secondary_muscles=["anterior deltoids", "serratus"],
            equipment=["barbell", "bench"],
            cues=[
                "Retract scapulae and maintain",
                "Arc bar path to mid-chest",
                "Touch chest with control",
                "Drive feet into ground",
                "Press bar up and slightly back",
            ],
            regressions=[
                _v("Dumbbell Bench Press", "Unilateral control, reduced load"),
                _v("Incline Bench Press", "Reduced ROM, shoulder-friendly"),
            ],
            progressions=[
                _v("Close Grip Bench", "Increased triceps emphasis"),
                _v("Paused Bench", "Eliminates stretch reflex"),
            ],
        ),
        Exercise(
            id="push_up",
            name="Push-Up",
            primary_muscles=["pectorals", "triceps"],
            secondary_muscles=["anterior deltoids", "core"],
            equipment=["bodyweight"],
            cues=[
                "Hands just outside shoulder width",
                "Squeeze glutes and brace core",
                "Lower chest to floor with control",
                "Elbows at roughly 45 degrees",
            ],
            regressions=[
                _v("Incline Push-Up", "Reduced load, same body line"),
            ],
            progressions=[
                _v("Decline Push-Up", "Increased load on upper chest"),
                _v("Weighted Push-Up", "Added resistance"),
            ],
        ),
        Exercise(
            id="lunge",
            name="Walking Lunge",
            primary_muscles=["quadriceps", "glutes"],
            secondary_muscles=["hamstrings", "adductors", "core"],
            equipment=["bodyweight", "dumbbells"],
            cues=[
                "Long stride, torso upright",
                "Front shin close to vertical",
                "Lower back knee toward floor",
                "Drive through front heel",
            ],
            regressions=[
                _v("Split Squat", "Static stance, easier balance"),
            ],
            progressions=[
                _v("Rear-Foot Elevated Split Squat", "Greater range and load on front leg"),
                _v("Dumbbell Walking Lunge", "Added resistance"),
            ],
        ),
        Exercise(
            id="row",
            name="Dumbbell Row",
            primary_muscles=["lats", "rhomboids"],
            secondary_muscles=["traps", "biceps", "rear delts"],
            equipment=["dumbbells", "bench"],
            cues=[
                "Hinge at hips, flat back",
                "Pull elbow to hip pocket",
                "Squeeze at top for 1 second",
                "Control eccentric",
                "Minimize torso rotation",
            ],
            regressions=[
                _v("Chest-Supported Row", "Eliminates lower back fatigue"),
                _v("Inverted Row", "Bodyweight alternative"),
            ],
            progressions=[
                _v("Barbell Row", "Heavier loading potential"),
                _v("Single-Arm Cable Row", "Constant tension"),
            ],
        ),
        Exercise(
            id="plank",
            name="Front Plank",
            primary_muscles=["core", "abs"],
            secondary_muscles=["shoulders", "glutes"],
            equipment=["bodyweight"],
            cues=[
                "Elbows under shoulders",
                "Squeeze glutes hard",
                "Neutral spine, dont sag",
                "Breathe steadily",
                "Body forms straight line",
            ],
            regressions=[
                _v("Incline Plank", "Reduced load on core"),
                _v("Knee Plank", "Shortened lever arm"),
            ],
            progressions=[
                _v("RKC Plank", "Max tension technique"),
                _v("Weighted Plank", "Added resistance"),
            ],
        ),
    )
}

# Name to ID mapping for lookup by name
EXERCISE_NAME_TO_ID: dict[str, str] = {
    ex.name.lower(): id_ for id_, ex in EXERCISE_LIBRARY.items()
}


def get_exercise(exercise_id: Optional[str] = None,
                 exercise_name: Optional[str] = None) -> Exercise:
    """
    Get a library exercise by ID or name.

    Args:
        exercise_id: Exercise ID (e.g. "squat")
        exercise_name: Exercise name (case-insensitive, partial match allowed)

    Returns:
        A copy of the library entry, safe to modify

    Raises:
        ValueError: If exercise not found
    """
    if exercise_id is not None and exercise_id in EXERCISE_LIBRARY:
        return EXERCISE_LIBRARY[exercise_id].model_copy(deep=True)

    if exercise_name is not None:
        name_lower = exercise_name.lower()
        # Try exact match first
        if name_lower in EXERCISE_NAME_TO_ID:
            return EXERCISE_LIBRARY[EXERCISE_NAME_TO_ID[name_lower]].model_copy(deep=True)
        if name_lower in EXERCISE_LIBRARY:
            return EXERCISE_LIBRARY[name_lower].model_copy(deep=True)
        # Try partial match
        for stored_name, id_ in EXERCISE_NAME_TO_ID.items():
            if name_lower in stored_name or stored_name in name_lower:
                return EXERCISE_LIBRARY[id_].model_copy(deep=True)
        raise ValueError(f"Exercise '{exercise_name}' not found")

    if exercise_id is not None:
        raise ValueError(f"Exercise ID '{exercise_id}' not found")
    raise ValueError("Must provide either exercise_id or exercise_name")


def find_exercise(exercise_id: Optional[str] = None,
                  exercise_name: Optional[str] = None) -> Optional[Exercise]:
    """Like ``get_exercise`` but returns None when nothing matches."""
    try:
        return get_exercise(exercise_id, exercise_name)
    except ValueError:
        return None
