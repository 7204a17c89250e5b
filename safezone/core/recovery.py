"""
Recovery Calculator Module

Works out, per subject, how many consecutive classes bring attendance back
to the minimum and what the percentage looks like afterwards. Drives the
at-risk subjects view.
"""

import logging
from dataclasses import dataclass
from typing import List

from .models import Subject
from .predictor import classes_needed, is_recoverable, safe_percentage

logger = logging.getLogger(__name__)


@dataclass
class RecoveryInfo:
    """Recovery plan for a single subject."""
    subject_id: str
    subject_name: str
    current_percentage: float
    classes_needed: int
    can_recover: bool
    remaining_classes: float
    after_recovery_attended: float
    after_recovery_total: float
    after_recovery_percentage: float
    attended: float
    total_held: float

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'subjectId': self.subject_id,
            'subjectName': self.subject_name,
            'currentPercentage': self.current_percentage,
            'classesNeeded': self.classes_needed,
            'canRecover': self.can_recover,
            'remainingClasses': self.remaining_classes,
            'afterRecoveryAttended': self.after_recovery_attended,
            'afterRecoveryTotal': self.after_recovery_total,
            'afterRecoveryPercentage': self.after_recovery_percentage,
            'attended': self.attended,
            'totalHeld': self.total_held,
        }


class RecoveryCalculator:
    """
    Calculator for recovery plans.

    Usage:
        calc = RecoveryCalculator(min_attendance=75, remaining_weeks=6)
        at_risk = calc.analyze_all(subjects)
    """

    def __init__(self, min_attendance: float, remaining_weeks: float):
        self.min_attendance = min_attendance
        self.remaining_weeks = remaining_weeks

    def analyze_subject(self, subject: Subject) -> RecoveryInfo:
        """
        Build the recovery plan for one subject.

        A subject already past the goal is not recoverable here: there is
        nothing to recover, so it reports the perfect-attendance outcome.
        """
        remaining_classes = subject.classes_per_week * self.remaining_weeks
        current_percentage = safe_percentage(subject.attended, subject.total_held)

        projected_total = subject.total_held + remaining_classes
        needed = classes_needed(subject.attended, projected_total, self.min_attendance)
        can_recover = is_recoverable(needed, remaining_classes, already_safe_counts=False)

        extra = needed if can_recover else remaining_classes
        after_attended = subject.attended + extra
        after_total = subject.total_held + extra

        return RecoveryInfo(
            subject_id=subject.id,
            subject_name=subject.name,
            current_percentage=current_percentage,
            classes_needed=max(0, needed),
            can_recover=can_recover,
            remaining_classes=remaining_classes,
            after_recovery_attended=after_attended,
            after_recovery_total=after_total,
            after_recovery_percentage=safe_percentage(after_attended, after_total),
            attended=subject.attended,
            total_held=subject.total_held,
        )

    def analyze_all(self, subjects: List[Subject], only_at_risk: bool = True) -> List[RecoveryInfo]:
        """
        Analyze all subjects, most critical first.

        Args:
            subjects: Subject snapshots
            only_at_risk: Keep only subjects currently below the minimum

        Returns:
            RecoveryInfo list sorted by current percentage, ascending.
            Ties keep input order.
        """
        plans = [self.analyze_subject(s) for s in subjects]

        if only_at_risk:
            plans = [p for p in plans if p.current_percentage < self.min_attendance]

        logger.debug("%d of %d subjects in recovery view", len(plans), len(subjects))
        return sorted(plans, key=lambda p: p.current_percentage)
