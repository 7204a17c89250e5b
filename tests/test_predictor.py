import math
import random

import pytest

from safezone.core.models import Subject, Timetable
from safezone.core.predictor import (
    AttendancePredictor,
    Status,
    calculate_overall_prediction,
    calculate_prediction,
    classes_needed,
    classes_needed_label,
    classify_status,
    distribute_absences,
    format_number,
    is_recoverable,
    recovery_message,
    safe_percentage,
    to_fixed,
)


class TestHelpers:

    def test_safe_percentage_guards_zero(self):
        assert safe_percentage(5, 0) == 0
        assert safe_percentage(3, 4) == 75

    @pytest.mark.parametrize("value,expected", [
        (64.28571428571429, "64.3"),
        (81.81818181818183, "81.8"),
        (12.25, "12.3"),
        (0.05, "0.1"),
        (75, "75.0"),
        (0, "0.0"),
        (-0.0, "0.0"),
        (-1.25, "-1.3"),
    ])
    def test_to_fixed(self, value, expected):
        assert to_fixed(value) == expected

    def test_to_fixed_non_finite(self):
        assert to_fixed(float('nan')) == "NaN"
        assert to_fixed(float('inf')) == "Infinity"

    @pytest.mark.parametrize("value,expected", [
        (75, "75"),
        (75.0, "75"),
        (81.8, "81.8"),
        (7.5, "7.5"),
    ])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected

    def test_classes_needed_can_be_negative(self):
        assert classes_needed(10, 28, 75) == 11
        assert classes_needed(40, 42, 75) == -8

    def test_recoverable_variants(self):
        assert is_recoverable(-3, 5)
        assert not is_recoverable(-3, 5, already_safe_counts=False)
        assert is_recoverable(5, 5, already_safe_counts=False)
        assert not is_recoverable(6, 5)

    @pytest.mark.parametrize("projected,can_recover,expected", [
        (80, False, Status.SAFE),
        (75, False, Status.SAFE),
        (72, True, Status.AT_RISK),
        (70, True, Status.AT_RISK),
        (72, False, Status.SHORTAGE),
        (69.9, True, Status.SHORTAGE),
    ])
    def test_classify_status(self, projected, can_recover, expected):
        assert classify_status(projected, 75, can_recover) == expected

    def test_classes_needed_label(self):
        assert classes_needed_label(1) == "1 class needed"
        assert classes_needed_label(4) == "4 classes needed"

    def test_recovery_message_for_recoverable_shortfall(self):
        message = recovery_message(Status.AT_RISK, True, 4, 0, 10, 72.0, 75)
        assert message == "Attend the next 4 consecutive classes to reach 75%"


class TestCalculatePrediction:

    def test_safe_with_slack(self, make_subject):
        subject = make_subject(attended=30, total_held=40, classes_per_week=3)
        result = calculate_prediction(subject, 5, 75)

        assert result.current_percentage == 75
        assert result.remaining_classes == 15
        assert result.projected_attended == 45
        assert result.projected_total == 55
        assert result.projected_percentage == pytest.approx(81.818, abs=1e-3)
        assert result.status == Status.SAFE
        assert result.max_absences_allowed == 3
        assert result.can_recover is True
        assert result.classes_needed_to_reach_goal == 12
        assert result.recovery_message == "You can miss up to 3 more classes and still maintain 75%"

    def test_shortage_when_recovery_impossible(self, make_subject):
        subject = make_subject(attended=10, total_held=20, classes_per_week=2)
        result = calculate_prediction(subject, 4, 75)

        assert result.current_percentage == 50
        assert result.remaining_classes == 8
        assert result.projected_total == 28
        assert result.projected_attended == 18
        assert result.projected_percentage == pytest.approx(64.2857, abs=1e-4)
        assert result.can_recover is False
        assert result.classes_needed_to_reach_goal is None
        assert result.max_absences_allowed == 0
        assert result.status == Status.SHORTAGE
        assert result.recovery_message == "Recovery not possible - projected final: 64.3%"

    def test_single_absence_allowed(self, make_subject):
        subject = make_subject(attended=30, total_held=40, classes_per_week=3)
        result = calculate_prediction(subject, 5, 80)

        assert result.max_absences_allowed == 1
        assert result.recovery_message == "You can miss 1 more class and still maintain 80%"

    def test_no_absences_allowed(self, make_subject):
        subject = make_subject(attended=30, total_held=40, classes_per_week=3)
        result = calculate_prediction(subject, 5, 81.8)

        assert result.status == Status.SAFE
        assert result.max_absences_allowed == 0
        assert result.recovery_message == (
            "Perfect! You must attend all remaining 15 classes to maintain 81.8%"
        )

    def test_float_threshold_renders_without_decimal(self, make_subject):
        subject = make_subject(attended=30, total_held=40, classes_per_week=3)
        result = calculate_prediction(subject, 5, 75.0)

        assert result.recovery_message.endswith("maintain 75%")

    def test_already_past_goal_keeps_negative_classes_needed(self, make_subject):
        subject = make_subject(attended=40, total_held=40, classes_per_week=1)
        result = calculate_prediction(subject, 2, 75)

        assert result.can_recover is True
        assert result.classes_needed_to_reach_goal == -8

    def test_absence_scenario(self, make_subject):
        subject = make_subject(attended=30, total_held=40, classes_per_week=3)
        result = calculate_prediction(subject, 5, 75, simulated_absences=5)

        assert result.after_absences.absences == 5
        assert result.after_absences.attended == 40
        assert result.after_absences.total == 55
        assert result.after_absences.percentage == pytest.approx(40 / 55 * 100)

    def test_absences_beyond_remaining_floor_at_current(self, make_subject):
        subject = make_subject(attended=30, total_held=40, classes_per_week=3)
        capped = calculate_prediction(subject, 5, 75, simulated_absences=15)
        beyond = calculate_prediction(subject, 5, 75, simulated_absences=40)

        assert beyond.after_absences.attended == 30
        assert beyond.after_absences.attended == capped.after_absences.attended
        assert beyond.after_absences.total == capped.after_absences.total
        assert beyond.after_absences.percentage == capped.after_absences.percentage

    def test_nothing_held_yet(self, make_subject):
        subject = make_subject(attended=0, total_held=0, classes_per_week=0)
        result = calculate_prediction(subject, 0, 75)

        assert result.current_percentage == 0
        assert result.projected_percentage == 0
        assert result.after_absences.percentage == 0
        assert result.status == Status.SHORTAGE
        assert result.classes_needed_to_reach_goal == 0
        assert result.recovery_message == "Attend the next 0 consecutive classes to reach 75%"

    def test_negative_weeks_are_not_clamped(self, make_subject):
        subject = make_subject(attended=30, total_held=40, classes_per_week=3)
        result = calculate_prediction(subject, -2, 75)

        assert result.remaining_classes == -6
        assert result.projected_total == 34

    def test_echoes_subject_identity(self, make_subject):
        subject = make_subject(attended=1, total_held=2, classes_per_week=1,
                               id='abc', name='Networks')
        data = calculate_prediction(subject, 1, 75).to_dict()

        assert data['subjectId'] == 'abc'
        assert data['subjectName'] == 'Networks'
        assert data['afterAbsences']['absences'] == 0
        assert 'classesNeededToReachGoal' in data

    def test_repeated_calls_are_identical(self, make_subject):
        subject = make_subject(attended=17, total_held=29, classes_per_week=2.5)
        first = calculate_prediction(subject, 7, 72.5, 3)
        second = calculate_prediction(subject, 7, 72.5, 3)

        assert first == second
        assert first.to_dict() == second.to_dict()


def _random_cases(count=300, seed=1234):
    rng = random.Random(seed)
    for _ in range(count):
        # A few fresh subjects with nothing held yet
        total_held = rng.choice([0, rng.randint(1, 120), rng.randint(1, 120)])
        attended = rng.randint(1, total_held) if total_held else 0
        yield (
            Subject(id='r', name='Random', attended=attended, total_held=total_held,
                    classes_per_week=rng.choice([0, 1, 2, 3, 4, 1.5])),
            # Negative when completed weeks overrun the term
            rng.randint(-4, 16),
            rng.choice([60, 65, 70, 75, 80, 85, 90]),
            rng.randint(0, 30),
        )


class TestPredictionProperties:

    def test_invariants_hold_across_random_inputs(self):
        for subject, weeks, minimum, absences in _random_cases():
            result = calculate_prediction(subject, weeks, minimum, absences)
            remaining = subject.classes_per_week * weeks

            assert result.projected_total == subject.total_held + remaining
            assert not math.isnan(result.projected_percentage)
            assert not math.isnan(result.after_absences.percentage)
            if result.projected_total == 0:
                assert result.projected_percentage == 0
            if weeks >= 0 and subject.attended > 0:
                assert result.projected_percentage != 0
                assert result.after_absences.percentage <= result.projected_percentage
            assert result.max_absences_allowed >= 0
            if result.projected_percentage >= minimum:
                assert result.status == Status.SAFE
            assert result.after_absences.attended >= subject.attended

    def test_zero_projected_total_gives_zero_percentage(self, make_subject):
        subject = make_subject(attended=0, total_held=0, classes_per_week=3)
        assert calculate_prediction(subject, 0, 75).projected_percentage == 0

    def test_absences_past_remaining_match_remaining(self):
        for subject, weeks, minimum, _ in _random_cases(count=100, seed=99):
            remaining = subject.classes_per_week * weeks
            at_limit = calculate_prediction(subject, weeks, minimum, remaining)
            past_limit = calculate_prediction(subject, weeks, minimum, remaining + 7)

            assert past_limit.after_absences.attended == at_limit.after_absences.attended
            assert past_limit.after_absences.total == at_limit.after_absences.total
            assert past_limit.after_absences.percentage == at_limit.after_absences.percentage


class TestOverallPrediction:

    def test_absence_shares_use_running_total(self):
        assert distribute_absences([4, 2], 3) == [3, 1]

    def test_absence_shares_depend_on_order(self):
        assert distribute_absences([1, 3], 4) == [4, 3]
        assert distribute_absences([3, 1], 4) == [4, 1]

    def test_zero_running_total_gets_no_absences(self):
        assert distribute_absences([0, 4], 2) == [0, 2]
        assert distribute_absences([0, 0], 5) == [0, 0]

    def test_aggregate_reproduces_running_total_split(self, make_subject):
        subjects = [
            make_subject(attended=8, total_held=10, classes_per_week=4, id='a'),
            make_subject(attended=5, total_held=10, classes_per_week=2, id='b'),
        ]
        overall = calculate_overall_prediction(subjects, 1, 75, simulated_absences=3)

        # A loses 3 of 4, B loses 1 of 2
        assert overall.after_absences_percentage == pytest.approx(15 / 26 * 100)
        assert overall.current_percentage == pytest.approx(65)
        assert overall.projected_percentage == pytest.approx(19 / 26 * 100)
        assert overall.total_attended == 13
        assert overall.total_held == 20
        assert overall.total_remaining == 6

    def test_aggregate_status_ignores_recoverability(self, make_subject):
        subjects = [
            make_subject(attended=8, total_held=10, classes_per_week=4, id='a'),
            make_subject(attended=5, total_held=10, classes_per_week=2, id='b'),
        ]
        overall = calculate_overall_prediction(subjects, 1, 75)

        # 73.1% projected: within five points of the goal
        assert overall.status == Status.AT_RISK

    def test_aggregate_shortage_and_safe(self, make_subject):
        low = [make_subject(attended=5, total_held=20, classes_per_week=1)]
        high = [make_subject(attended=20, total_held=20, classes_per_week=1)]

        assert calculate_overall_prediction(low, 2, 75).status == Status.SHORTAGE
        assert calculate_overall_prediction(high, 2, 75).status == Status.SAFE

    def test_no_subjects(self):
        overall = calculate_overall_prediction([], 5, 75, 3)

        assert overall.current_percentage == 0
        assert overall.projected_percentage == 0
        assert overall.after_absences_percentage == 0
        assert overall.total_remaining == 0
        assert overall.status == Status.SHORTAGE

    def test_to_dict_keys(self, make_subject):
        data = calculate_overall_prediction([make_subject(1, 2, 1)], 1, 75).to_dict()
        assert set(data) == {
            'currentPercentage', 'projectedPercentage', 'afterAbsencesPercentage',
            'status', 'totalAttended', 'totalHeld', 'totalRemaining',
        }


class TestAttendancePredictor:

    def test_uses_timetable_settings(self, timetable):
        predictor = AttendancePredictor(timetable)
        predictions = predictor.predict_all()

        assert predictor.remaining_weeks == 5
        assert predictor.min_attendance == 75
        assert [p.subject_id for p in predictions] == ['ds', 'phy', 'math']
        assert [p.status for p in predictions] == [Status.SAFE, Status.SHORTAGE, Status.SAFE]

    def test_overrides(self, timetable):
        predictor = AttendancePredictor(timetable, remaining_weeks=0, min_attendance=90)
        overall = predictor.overall()

        assert overall.total_remaining == 0
        assert overall.projected_percentage == pytest.approx(54 / 80 * 100)
        assert overall.status == Status.SHORTAGE

    def test_overall_matches_function(self, timetable):
        predictor = AttendancePredictor(timetable)
        expected = calculate_overall_prediction(timetable.subjects, 5, 75, 2)

        assert predictor.overall(2) == expected
        assert math.isclose(expected.projected_percentage, 89 / 115 * 100)

    def test_empty_timetable(self):
        predictor = AttendancePredictor(Timetable(id='empty'))
        assert predictor.predict_all() == []
