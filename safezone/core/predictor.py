"""
Attendance Predictor Module

Projects end-of-term attendance per subject and across a timetable,
simulates future absences, and works out how many classes are needed to
reach the minimum attendance (or how many can still be missed).

Every function here is pure: no I/O, no shared state, and no exceptions on
numeric input. Zero denominators yield 0% rather than an error.
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from .models import Subject, Timetable

logger = logging.getLogger(__name__)

# Projected percentages within this many points below the minimum are at-risk
AT_RISK_MARGIN = 5


class Status:
    """Attendance status constants."""
    SAFE = "safe"            # Projected at or above the minimum
    AT_RISK = "at-risk"      # Within AT_RISK_MARGIN below the minimum
    SHORTAGE = "shortage"    # Further below, or unrecoverable


STATUS_LABELS = {
    Status.SAFE: "Safe",
    Status.AT_RISK: "At Risk",
    Status.SHORTAGE: "Shortage",
}


def safe_percentage(part: float, whole: float) -> float:
    """Return ``part / whole * 100``, or 0 when ``whole`` is 0."""
    if whole == 0:
        return 0
    return (part / whole) * 100


def to_fixed(value: float, digits: int = 1) -> str:
    """
    Format a number with a fixed count of decimals.

    Ties round away from zero on the exact binary value, so 12.25 becomes
    "12.3" rather than Python's banker's "12.2".
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        value = 0.0

    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def format_number(value: float) -> str:
    """Render a number without a trailing ``.0`` for whole values (75.0 -> "75")."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def classes_needed(attended: float, projected_total: float, min_attendance: float) -> int:
    """
    Classes that must still be attended to finish the term at ``min_attendance``.

    Formula: x = ceil(min_attendance/100 × projected_total - attended)

    The result is negative when the student already has more attended
    classes than the term requires.
    """
    required_attended = (min_attendance / 100) * projected_total
    return math.ceil(required_attended - attended)


def is_recoverable(needed: int, remaining_classes: float, already_safe_counts: bool = True) -> bool:
    """
    Check whether ``needed`` classes fit into what is left of the term.

    Args:
        needed: Result of classes_needed(), unclamped
        remaining_classes: Classes still to be held this term
        already_safe_counts: Whether a negative ``needed`` (already past the
            goal) counts as recoverable. The predictor says yes; the
            recovery view says no, since there is nothing to recover.
    """
    if not already_safe_counts and needed < 0:
        return False
    return needed <= remaining_classes


def classify_status(projected_percentage: float, min_attendance: float,
                    can_recover: bool = True) -> str:
    """
    Classify a projected percentage.

    First match wins: safe at or above the minimum, at-risk when
    recoverable and within AT_RISK_MARGIN of it, otherwise shortage.
    """
    if projected_percentage >= min_attendance:
        return Status.SAFE
    if can_recover and projected_percentage >= min_attendance - AT_RISK_MARGIN:
        return Status.AT_RISK
    return Status.SHORTAGE


def classes_needed_label(count: int) -> str:
    """Short badge text for a recovery target."""
    if count == 1:
        return "1 class needed"
    return f"{count} classes needed"


@dataclass
class AbsenceScenario:
    """Projection after missing some of the remaining classes."""
    absences: float
    attended: float
    total: float
    percentage: float

    def to_dict(self) -> dict:
        return {
            'absences': self.absences,
            'attended': self.attended,
            'total': self.total,
            'percentage': self.percentage,
        }


@dataclass
class PredictionResult:
    """Prediction for a single subject."""
    subject_id: str
    subject_name: str
    current_attended: float
    current_total: float
    current_percentage: float
    remaining_classes: float
    projected_attended: float
    projected_total: float
    projected_percentage: float
    after_absences: AbsenceScenario
    status: str
    classes_needed_to_reach_goal: Optional[int]
    can_recover: bool
    recovery_message: str
    max_absences_allowed: int

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'subjectId': self.subject_id,
            'subjectName': self.subject_name,
            'currentAttended': self.current_attended,
            'currentTotal': self.current_total,
            'currentPercentage': self.current_percentage,
            'remainingClasses': self.remaining_classes,
            'projectedAttended': self.projected_attended,
            'projectedTotal': self.projected_total,
            'projectedPercentage': self.projected_percentage,
            'afterAbsences': self.after_absences.to_dict(),
            'status': self.status,
            'classesNeededToReachGoal': self.classes_needed_to_reach_goal,
            'canRecover': self.can_recover,
            'recoveryMessage': self.recovery_message,
            'maxAbsencesAllowed': self.max_absences_allowed,
        }


@dataclass
class OverallPrediction:
    """Prediction aggregated over every subject of a timetable."""
    current_percentage: float
    projected_percentage: float
    after_absences_percentage: float
    status: str
    total_attended: float
    total_held: float
    total_remaining: float

    def to_dict(self) -> dict:
        return {
            'currentPercentage': self.current_percentage,
            'projectedPercentage': self.projected_percentage,
            'afterAbsencesPercentage': self.after_absences_percentage,
            'status': self.status,
            'totalAttended': self.total_attended,
            'totalHeld': self.total_held,
            'totalRemaining': self.total_remaining,
        }


def recovery_message(status: str, can_recover: bool, needed: int, max_absences: int,
                     remaining_classes: float, projected_percentage: float,
                     min_attendance: float) -> str:
    """Build the advice line shown under a subject prediction."""
    goal = format_number(min_attendance)

    if status == Status.SAFE:
        if max_absences == 0:
            return (f"Perfect! You must attend all remaining "
                    f"{format_number(remaining_classes)} classes to maintain {goal}%")
        if max_absences == 1:
            return f"You can miss 1 more class and still maintain {goal}%"
        return f"You can miss up to {max_absences} more classes and still maintain {goal}%"

    if can_recover:
        return f"Attend the next {needed} consecutive classes to reach {goal}%"

    return f"Recovery not possible - projected final: {to_fixed(projected_percentage)}%"


def calculate_prediction(subject: Subject, remaining_weeks: float, min_attendance: float,
                         simulated_absences: float = 0) -> PredictionResult:
    """
    Predict end-of-term attendance for one subject.

    Args:
        subject: Subject snapshot with weighted counts
        remaining_weeks: Weeks left in the term (total - completed)
        min_attendance: Required percentage (0-100)
        simulated_absences: Future classes to assume missed

    Returns:
        PredictionResult
    """
    remaining_classes = subject.classes_per_week * remaining_weeks

    # Perfect attendance
    projected_attended = subject.attended + remaining_classes
    projected_total = subject.total_held + remaining_classes
    projected_percentage = safe_percentage(projected_attended, projected_total)

    # Missing more classes than remain cannot take attended below today's count
    attended_after_absences = subject.attended + max(0, remaining_classes - simulated_absences)
    total_after_absences = subject.total_held + remaining_classes
    percentage_after_absences = safe_percentage(attended_after_absences, total_after_absences)

    required_attended = (min_attendance / 100) * projected_total
    needed = classes_needed(subject.attended, projected_total, min_attendance)
    can_recover = is_recoverable(needed, remaining_classes)

    max_absences = max(0, math.floor(projected_attended - required_attended))

    current_percentage = safe_percentage(subject.attended, subject.total_held)
    status = classify_status(projected_percentage, min_attendance, can_recover)

    return PredictionResult(
        subject_id=subject.id,
        subject_name=subject.name,
        current_attended=subject.attended,
        current_total=subject.total_held,
        current_percentage=current_percentage,
        remaining_classes=remaining_classes,
        projected_attended=projected_attended,
        projected_total=projected_total,
        projected_percentage=projected_percentage,
        after_absences=AbsenceScenario(
            absences=simulated_absences,
            attended=attended_after_absences,
            total=total_after_absences,
            percentage=percentage_after_absences,
        ),
        status=status,
        classes_needed_to_reach_goal=needed if can_recover else None,
        can_recover=can_recover,
        recovery_message=recovery_message(
            status, can_recover, needed, max_absences,
            remaining_classes, projected_percentage, min_attendance,
        ),
        max_absences_allowed=max_absences,
    )


def distribute_absences(remaining_per_subject: List[float], simulated_absences: float) -> List[int]:
    """
    Split simulated absences across subjects by their share of remaining classes.

    Each share is taken against the running total of remaining classes up to
    and including that subject, not the final total, so earlier subjects get
    a larger share and the shares may add up to more than
    ``simulated_absences``. A zero running total gives a share of 0.
    """
    shares = []
    running_total = 0

    for remaining_classes in remaining_per_subject:
        running_total += remaining_classes
        if running_total == 0:
            shares.append(0)
            continue
        shares.append(math.floor((remaining_classes / running_total) * simulated_absences))

    return shares


def calculate_overall_prediction(subjects: List[Subject], remaining_weeks: float,
                                 min_attendance: float,
                                 simulated_absences: float = 0) -> OverallPrediction:
    """
    Predict attendance across all subjects.

    Totals are accumulated directly from the subjects rather than from
    per-subject predictions. The status ignores recoverability.
    """
    total_attended = 0
    total_held = 0
    total_projected_attended = 0
    total_projected_held = 0
    total_after_absences_attended = 0
    total_after_absences_held = 0

    remaining = [subject.classes_per_week * remaining_weeks for subject in subjects]
    shares = distribute_absences(remaining, simulated_absences)

    for subject, remaining_classes, subject_absences in zip(subjects, remaining, shares):
        total_attended += subject.attended
        total_held += subject.total_held

        total_projected_attended += subject.attended + remaining_classes
        total_projected_held += subject.total_held + remaining_classes

        total_after_absences_attended += subject.attended + max(0, remaining_classes - subject_absences)
        total_after_absences_held += subject.total_held + remaining_classes

    projected_percentage = safe_percentage(total_projected_attended, total_projected_held)

    return OverallPrediction(
        current_percentage=safe_percentage(total_attended, total_held),
        projected_percentage=projected_percentage,
        after_absences_percentage=safe_percentage(total_after_absences_attended,
                                                  total_after_absences_held),
        status=classify_status(projected_percentage, min_attendance),
        total_attended=total_attended,
        total_held=total_held,
        total_remaining=sum(remaining),
    )


class AttendancePredictor:
    """
    Predictor bound to a timetable.

    Usage:
        predictor = AttendancePredictor(timetable)
        predictions = predictor.predict_all(simulated_absences=2)
        overall = predictor.overall(simulated_absences=2)
    """

    def __init__(self, timetable: Timetable, remaining_weeks: float = None,
                 min_attendance: float = None):
        """Initialize with a timetable, optionally overriding its term settings."""
        self.timetable = timetable
        self.remaining_weeks = (
            timetable.remaining_weeks if remaining_weeks is None else remaining_weeks
        )
        self.min_attendance = (
            timetable.min_attendance if min_attendance is None else min_attendance
        )

    def predict(self, subject: Subject, simulated_absences: float = 0) -> PredictionResult:
        return calculate_prediction(subject, self.remaining_weeks, self.min_attendance,
                                    simulated_absences)

    def predict_all(self, simulated_absences: float = 0) -> List[PredictionResult]:
        """Predict every subject in timetable order."""
        logger.debug(
            "Predicting %d subjects (weeks=%s, min=%s, absences=%s)",
            len(self.timetable.subjects), self.remaining_weeks,
            self.min_attendance, simulated_absences,
        )
        return [self.predict(s, simulated_absences) for s in self.timetable.subjects]

    def overall(self, simulated_absences: float = 0) -> OverallPrediction:
        return calculate_overall_prediction(
            self.timetable.subjects, self.remaining_weeks,
            self.min_attendance, simulated_absences,
        )
