"""Tests for the exercise rule catalog and frame-sequence analysis.

Covers:
  - Exercise name classification
  - Each catalog rule on synthetic poses (fires / does not fire)
  - Missing or low-confidence joints
  - Sequence-level error collapsing and the no-pose sentinel
  - ROM, symmetry and landmark snapshots
"""

import pytest
from pydantic import ValidationError

from form_coach.pipelines.analysis import (
    NO_POSE_ERROR,
    analyze_form_from_poses,
    assess_rom,
    assess_symmetry,
    extract_key_landmarks,
)
from form_coach.pipelines.rules import (
    RULE_CATALOG,
    ExerciseKind,
    classify_exercise,
    get_rules,
)
from form_coach.pipelines.state import FormError, PoseFrame, PrimaryCause, Severity


def _rule(kind, error_id):
    return next(r for r in RULE_CATALOG[kind] if r.error_id == error_id)


# ============================================================================
# Test: Exercise classification
# ============================================================================

class TestClassifyExercise:

    @pytest.mark.parametrize("name, expected", [
        ("Barbell Back Squat", ExerciseKind.SQUAT),
        ("goblet squat", ExerciseKind.SQUAT),
        ("Romanian Deadlift", ExerciseKind.DEADLIFT),
        ("Barbell Bench Press", ExerciseKind.BENCH),
        ("Push-Up", ExerciseKind.PUSH_UP),
        ("Walking Lunge", ExerciseKind.LUNGE),
    ])
    def test_supported_names(self, name, expected):
        assert classify_exercise(name) is expected

    @pytest.mark.parametrize("name", ["Dumbbell Row", "Front Plank", "", None])
    def test_unsupported_names(self, name):
        assert classify_exercise(name) is None
        assert get_rules(classify_exercise(name)) == ()

    def test_squat_rule_order(self):
        ids = [r.error_id for r in get_rules(ExerciseKind.SQUAT)]
        assert ids == ["knee_valgus", "forward_lean"]


# ============================================================================
# Test: Individual rules
# ============================================================================

class TestSquatRules:

    def test_knee_valgus_fires_at_bottom(self, pose_factory, layouts):
        pose = pose_factory(layouts["valgus_squat"])
        assert _rule(ExerciseKind.SQUAT, "knee_valgus").matches(pose)

    def test_valgus_suppresses_forward_lean(self, pose_factory, layouts):
        pose = pose_factory(layouts["valgus_squat"])
        assert not _rule(ExerciseKind.SQUAT, "forward_lean").matches(pose)

    def test_forward_lean_fires(self, pose_factory, layouts):
        pose = pose_factory(layouts["leaning_squat"])
        assert _rule(ExerciseKind.SQUAT, "forward_lean").matches(pose)
        assert not _rule(ExerciseKind.SQUAT, "knee_valgus").matches(pose)

    def test_forward_lean_fires_for_upright_torso_at_depth(self, pose_factory, frames_factory):
        # Shoulders straight above the hips: segment heading is 90 degrees.
        pose = pose_factory({
            "left_shoulder": (100, 100), "right_shoulder": (200, 100),
            "left_hip": (100, 300), "right_hip": (200, 300),
            "left_knee": (100, 310), "right_knee": (200, 310),
            "left_ankle": (100, 400), "right_ankle": (200, 400),
        })
        assert _rule(ExerciseKind.SQUAT, "forward_lean").matches(pose)
        errors = analyze_form_from_poses(frames_factory([pose]), ExerciseKind.SQUAT)
        assert [e.id for e in errors] == ["forward_lean"]

    def test_standing_is_not_bottom_position(self, pose_factory, layouts):
        joints = dict(layouts["standing"])
        joints["left_knee"] = (170, 300)  # large knee offset, but not at depth
        pose = pose_factory(joints)
        assert not _rule(ExerciseKind.SQUAT, "knee_valgus").matches(pose)

    def test_bottom_tolerance_is_inclusive(self, pose_factory, layouts):
        joints = dict(layouts["valgus_squat"])
        # avg hip y 290 == avg knee y 310 - 20
        joints["left_hip"] = (100, 290)
        joints["right_hip"] = (200, 290)
        assert _rule(ExerciseKind.SQUAT, "knee_valgus").matches(pose_factory(joints))


class TestMissingJoints:

    def test_low_confidence_joint_skips_rule(self, pose_factory, layouts):
        pose = pose_factory(layouts["valgus_squat"])
        weak = pose.model_copy(update={
            "keypoints": [
                kp.model_copy(update={"confidence": 0.1}) if kp.name == "left_knee" else kp
                for kp in pose.keypoints
            ],
        })
        assert not _rule(ExerciseKind.SQUAT, "knee_valgus").matches(weak)

    def test_absent_joint_skips_rule(self, pose_factory, layouts):
        joints = {k: v for k, v in layouts["valgus_squat"].items() if k != "right_ankle"}
        assert not _rule(ExerciseKind.SQUAT, "knee_valgus").matches(pose_factory(joints))

    def test_joint_without_confidence_is_accepted(self, pose_factory, layouts):
        pose = pose_factory(layouts["valgus_squat"], confidence=None)
        assert _rule(ExerciseKind.SQUAT, "knee_valgus").matches(pose)

    def test_no_pose(self):
        assert not _rule(ExerciseKind.SQUAT, "knee_valgus").matches(None)


class TestDeadliftRules:

    def test_rounded_back_fires(self, pose_factory):
        pose = pose_factory({
            "left_shoulder": (300, 250), "right_shoulder": (320, 250),
            "left_hip": (100, 300), "right_hip": (120, 300),
            "left_knee": (110, 400), "right_knee": (130, 400),
        })
        assert _rule(ExerciseKind.DEADLIFT, "rounded_back").matches(pose)

    def test_vertical_spine_does_not_fire(self, pose_factory, layouts):
        assert not _rule(ExerciseKind.DEADLIFT, "rounded_back").matches(
            pose_factory(layouts["standing"])
        )

    def test_hips_outside_pull_range(self, pose_factory):
        pose = pose_factory({
            "left_shoulder": (300, 250), "right_shoulder": (320, 250),
            "left_hip": (100, 450), "right_hip": (120, 450),
            "left_knee": (110, 400), "right_knee": (130, 400),
        })
        assert not _rule(ExerciseKind.DEADLIFT, "rounded_back").matches(pose)

    def test_inverted_frame_still_checked(self, pose_factory):
        # Shoulders below knees, e.g. a flipped camera.
        pose = pose_factory({
            "left_shoulder": (300, 350), "right_shoulder": (320, 350),
            "left_hip": (100, 300), "right_hip": (120, 300),
            "left_knee": (110, 250), "right_knee": (130, 250),
        })
        assert _rule(ExerciseKind.DEADLIFT, "rounded_back").matches(pose)


class TestUpperBodyRules:

    def test_scapula_protraction_fires(self, pose_factory):
        pose = pose_factory({
            "left_shoulder": (100, 100), "right_shoulder": (200, 100),
            "left_elbow": (20, 150), "right_elbow": (280, 150),
        })
        assert _rule(ExerciseKind.BENCH, "scapula_protraction").matches(pose)

    def test_tucked_elbows_do_not_fire(self, pose_factory, layouts):
        assert not _rule(ExerciseKind.BENCH, "scapula_protraction").matches(
            pose_factory(layouts["standing"])
        )

    def test_sagging_hips_fires(self, pose_factory):
        pose = pose_factory({
            "left_shoulder": (0, 100), "left_hip": (100, 150), "left_ankle": (200, 100),
        })
        assert _rule(ExerciseKind.PUSH_UP, "sagging_hips").matches(pose)

    def test_straight_body_line(self, pose_factory):
        pose = pose_factory({
            "left_shoulder": (0, 100), "left_hip": (100, 100), "left_ankle": (200, 100),
        })
        assert not _rule(ExerciseKind.PUSH_UP, "sagging_hips").matches(pose)


class TestLungeRules:

    def test_knee_over_toe_fires(self, pose_factory):
        pose = pose_factory({
            "left_knee": (200, 300), "right_knee": (300, 300),
            "left_ankle": (100, 400), "right_ankle": (300, 400),
        })
        assert _rule(ExerciseKind.LUNGE, "knee_over_toe").matches(pose)

    def test_stacked_knees(self, pose_factory, layouts):
        assert not _rule(ExerciseKind.LUNGE, "knee_over_toe").matches(
            pose_factory(layouts["standing"])
        )


# ============================================================================
# Test: Sequence analysis
# ============================================================================

class TestAnalyzeFormFromPoses:

    def test_all_frames_empty_gives_no_pose_sentinel(self, frames_factory):
        frames = frames_factory([None] * 10)
        for kind in (ExerciseKind.SQUAT, None):
            assert analyze_form_from_poses(frames, kind) == [NO_POSE_ERROR]

    def test_empty_sequence_gives_no_pose_sentinel(self):
        errors = analyze_form_from_poses([], ExerciseKind.SQUAT)
        assert [e.id for e in errors] == ["no_pose_detected"]
        assert errors[0].severity is Severity.MAJOR
        assert errors[0].primary_cause is PrimaryCause.CAMERA_ISSUE
        assert errors[0].frames == (0, 0)

    def test_first_matching_frame_is_reported(self, pose_factory, frames_factory, layouts):
        standing = pose_factory(layouts["standing"])
        valgus = pose_factory(layouts["valgus_squat"])
        frames = frames_factory([standing, None, valgus, valgus, valgus])

        errors = analyze_form_from_poses(frames, ExerciseKind.SQUAT)
        assert len(errors) == 1
        assert errors[0].id == "knee_valgus"
        assert errors[0].frames == (2, 2)
        assert errors[0].confidence == pytest.approx(0.75)
        assert errors[0].severity is Severity.MODERATE
        assert errors[0].primary_cause is PrimaryCause.STRENGTH

    def test_one_error_per_rule_in_declaration_order(self, pose_factory, frames_factory, layouts):
        lean = pose_factory(layouts["leaning_squat"])
        valgus = pose_factory(layouts["valgus_squat"])
        frames = frames_factory([lean, lean, valgus, valgus])

        errors = analyze_form_from_poses(frames, ExerciseKind.SQUAT)
        assert [e.id for e in errors] == ["knee_valgus", "forward_lean"]
        assert errors[0].frames == (2, 2)
        assert errors[1].frames == (0, 0)
        assert len({e.id for e in errors}) == len(errors)

    def test_unsupported_exercise_has_no_errors(self, pose_factory, frames_factory, layouts):
        frames = frames_factory([pose_factory(layouts["valgus_squat"])] * 3)
        assert analyze_form_from_poses(frames, None) == []

    def test_clean_reps(self, pose_factory, frames_factory, layouts):
        frames = frames_factory([pose_factory(layouts["standing"])] * 5)
        for kind in ExerciseKind:
            assert analyze_form_from_poses(frames, kind) == []

    def test_only_primary_pose_is_examined(self, pose_factory, layouts):
        frame = PoseFrame(
            frame_number=0,
            timestamp_s=0.0,
            poses=[pose_factory(layouts["standing"]), pose_factory(layouts["valgus_squat"])],
        )
        assert analyze_form_from_poses([frame], ExerciseKind.SQUAT) == []


class TestFormErrorModel:

    def test_invalid_frame_range_rejected(self):
        with pytest.raises(ValidationError):
            FormError(
                id="x", description="x", severity=Severity.MINOR, frames=(5, 2),
                confidence=0.5, coaching_cue="x", primary_cause=PrimaryCause.SETUP,
            )

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            FormError(
                id="x", description="x", severity=Severity.MINOR, frames=(0, 0),
                confidence=1.5, coaching_cue="x", primary_cause=PrimaryCause.SETUP,
            )


# ============================================================================
# Test: ROM / symmetry / landmarks
# ============================================================================

_DEEP_SQUAT = {
    "left_shoulder": (100, 200),
    "left_hip": (100, 300),
    "left_knee": (200, 300),
    "left_ankle": (200, 400),
    "right_hip": (300, 300),
    "right_knee": (400, 300),
    "right_ankle": (500, 300),
}


class TestSequenceMetrics:

    def test_rom_for_squat(self, pose_factory, frames_factory):
        frames = frames_factory([pose_factory(_DEEP_SQUAT), None])
        metrics = assess_rom(frames, ExerciseKind.SQUAT)

        by_name = {m.metric_name: m for m in metrics}
        assert by_name["knee_flexion_peak"].measured_deg == pytest.approx(90.0)
        assert by_name["knee_flexion_peak"].expected_range == (90.0, 135.0)
        assert by_name["knee_flexion_peak"].deviation_percent == 0.0
        assert by_name["hip_flexion_peak"].measured_deg == pytest.approx(90.0)

    def test_rom_shallow_squat_deviation(self, pose_factory, frames_factory, layouts):
        frames = frames_factory([pose_factory(layouts["standing"])])
        knee = assess_rom(frames, ExerciseKind.SQUAT)[0]
        assert knee.measured_deg == pytest.approx(0.0)
        assert knee.deviation_percent == pytest.approx(100.0)

    def test_rom_only_for_squat(self, pose_factory, frames_factory):
        frames = frames_factory([pose_factory(_DEEP_SQUAT)])
        assert assess_rom(frames, ExerciseKind.LUNGE) is None
        assert assess_rom([], ExerciseKind.SQUAT) is None

    def test_symmetry(self, pose_factory, frames_factory):
        frames = frames_factory([pose_factory(_DEEP_SQUAT)] * 3)
        (metric,) = assess_symmetry(frames)
        assert metric.left_value == pytest.approx(90.0)
        assert metric.right_value == pytest.approx(180.0)
        assert metric.asymmetry_percent == pytest.approx(100.0)

    def test_symmetry_needs_both_sides(self, pose_factory, frames_factory):
        left_only = {k: v for k, v in _DEEP_SQUAT.items() if not k.startswith("right")}
        assert assess_symmetry(frames_factory([pose_factory(left_only)])) is None
        assert assess_symmetry(frames_factory([None, None])) is None

    def test_key_landmarks_from_middle_frame(self, pose_factory, frames_factory, layouts):
        confident = pose_factory(layouts["standing"], confidence=0.9)
        borderline = pose_factory({"nose": (150, 50)}, confidence=0.5)
        mid = confident.model_copy(
            update={"keypoints": confident.keypoints + borderline.keypoints}
        )
        frames = frames_factory([None, mid, None])

        landmarks = extract_key_landmarks(frames)
        assert {lm.landmark for lm in landmarks} == set(layouts["standing"])
        assert all(lm.frame == 1 for lm in landmarks)

    def test_key_landmarks_without_pose(self, frames_factory):
        assert extract_key_landmarks(frames_factory([None, None, None])) == []
        assert extract_key_landmarks([]) == []
