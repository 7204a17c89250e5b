"""
Attendance accounting helpers.

Weighted marking of sessions, day-by-day trends and the dashboard summary.
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from .exceptions import DataError
from .models import ABSENT, NOT_CONDUCTED, PRESENT, DailyAttendanceRecord, Subject
from .predictor import safe_percentage


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves upward (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def apply_mark(subject: Subject, status: str) -> Subject:
    """
    Return the subject after one session is marked.

    Present and absent sessions count ``weight`` times; sessions that were
    not conducted are left out entirely.
    """
    weight = subject.weight

    if status == PRESENT:
        return subject.with_counts(subject.attended + weight, subject.total_held + weight)
    if status == ABSENT:
        return subject.with_counts(subject.attended, subject.total_held + weight)
    if status == NOT_CONDUCTED:
        return subject

    raise DataError(f"Unknown attendance status '{status}'")


def unweighted_counts(subject: Subject) -> Tuple[int, int]:
    """Session counts before weighting, as (attended, held)."""
    weight = subject.weight or 1
    return (
        round_half_up(subject.attended / weight),
        round_half_up(subject.total_held / weight),
    )


@dataclass
class DayTrend:
    """Attendance on a single day."""
    date: date
    label: str
    present: int
    absent: int
    total: int
    percentage: Optional[int]
    cumulative: Optional[int] = None

    def to_dict(self) -> dict:
        data = {
            'date': self.date.isoformat(),
            'label': self.label,
            'present': self.present,
            'absent': self.absent,
            'total': self.total,
            'percentage': self.percentage,
        }
        if self.cumulative is not None:
            data['cumulative'] = self.cumulative
        return data


def _day_label(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}"


def daily_trend(records: List[DailyAttendanceRecord], today: date, days: int = 14) -> List[DayTrend]:
    """
    Per-day attendance for the last ``days`` days ending with ``today``.

    Returns:
        DayTrend list, oldest first. ``percentage`` is None on days
        without held classes.
    """
    counts: Dict[date, Dict[str, int]] = {}
    for record in records:
        if record.status == NOT_CONDUCTED:
            continue
        day = counts.setdefault(record.date, {PRESENT: 0, ABSENT: 0})
        day[record.status] += 1

    trend = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        present = counts.get(day, {}).get(PRESENT, 0)
        absent = counts.get(day, {}).get(ABSENT, 0)
        total = present + absent

        trend.append(DayTrend(
            date=day,
            label=_day_label(day),
            present=present,
            absent=absent,
            total=total,
            percentage=round_half_up(present / total * 100) if total > 0 else None,
        ))

    return trend


def cumulative_trend(trend: List[DayTrend]) -> List[DayTrend]:
    """Fill in the running attendance percentage across ``trend``."""
    running_present = 0
    running_total = 0

    for day in trend:
        running_present += day.present
        running_total += day.total
        day.cumulative = (
            round_half_up(running_present / running_total * 100) if running_total > 0 else 0
        )

    return trend


def attendance_summary(subjects: List[Subject]) -> dict:
    """
    Overall counts plus a percentage bar per subject that has held classes.
    """
    total_attended = sum(s.attended for s in subjects)
    total_held = sum(s.total_held for s in subjects)

    bars = []
    for s in subjects:
        if s.total_held <= 0:
            continue
        sessions_attended, sessions_held = unweighted_counts(s)
        bars.append({
            'subjectId': s.id,
            'name': s.name,
            'attended': s.attended,
            'total': s.total_held,
            'sessionsAttended': sessions_attended,
            'sessionsHeld': sessions_held,
            'percentage': round_half_up(safe_percentage(s.attended, s.total_held)),
        })

    return {
        'totalAttended': total_attended,
        'totalHeld': total_held,
        'totalAbsent': total_held - total_attended,
        'overallPercentage': round_half_up(safe_percentage(total_attended, total_held)),
        'subjects': bars,
    }
