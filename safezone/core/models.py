"""
Snapshot models for timetable and attendance data.

These mirror the JSON the attendance backend returns. The backend uses
camelCase keys; the dataclasses use snake_case and convert on the way in
and out.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, List, Optional

from .exceptions import DataError


PRESENT = "present"
ABSENT = "absent"
NOT_CONDUCTED = "not-conducted"

MARK_STATUSES = (PRESENT, ABSENT, NOT_CONDUCTED)


def _require(data: Dict, key: str, kind: str):
    if key not in data or data[key] is None:
        raise DataError(f"{kind} is missing required field '{key}'")
    return data[key]


def _value(data: Dict, key: str, default):
    value = data.get(key)
    return default if value is None else value


@dataclass(frozen=True)
class Subject:
    """
    One tracked course or lab.

    ``attended`` and ``total_held`` are already weighted by ``weight``
    (labs typically count double).
    """
    id: str
    name: str
    type: str = "Lecture"
    classes_per_week: float = 0
    weight: float = 1.0
    attended: float = 0
    total_held: float = 0

    def to_dict(self) -> dict:
        """Convert to the backend's JSON shape."""
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'classesPerWeek': self.classes_per_week,
            'weight': self.weight,
            'attended': self.attended,
            'totalHeld': self.total_held,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Subject':
        """Create a subject from a backend payload."""
        return cls(
            id=str(_require(data, 'id', 'Subject')),
            name=_require(data, 'name', 'Subject'),
            type=data.get('type') or "Lecture",
            classes_per_week=data.get('classesPerWeek') or 0,
            weight=data.get('weight') or 1.0,
            attended=data.get('attended') or 0,
            total_held=data.get('totalHeld') or 0,
        )

    def with_counts(self, attended: float, total_held: float) -> 'Subject':
        """Return a copy with new attendance counts."""
        return replace(self, attended=attended, total_held=total_held)


@dataclass
class Timetable:
    """A student's timetable with term configuration."""
    id: str
    subjects: List[Subject] = field(default_factory=list)
    min_attendance: float = 75
    total_weeks: int = 16
    completed_weeks: int = 0
    user_batch: str = "All"

    @property
    def remaining_weeks(self) -> int:
        return self.total_weeks - self.completed_weeks

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'minAttendance': self.min_attendance,
            'totalWeeks': self.total_weeks,
            'completedWeeks': self.completed_weeks,
            'userBatch': self.user_batch,
            'subjects': [s.to_dict() for s in self.subjects],
        }

    @classmethod
    def from_dict(cls, data: dict, min_attendance: float = 75, total_weeks: int = 16,
                  user_batch: str = "All") -> 'Timetable':
        """
        Create a timetable from a backend payload.

        Missing or null term settings fall back to the given defaults.
        A minimum attendance of 0 is kept as is.
        """
        subjects = [Subject.from_dict(s) for s in data.get('subjects') or []]
        return cls(
            id=str(_require(data, 'id', 'Timetable')),
            subjects=subjects,
            min_attendance=_value(data, 'minAttendance', min_attendance),
            total_weeks=_value(data, 'totalWeeks', total_weeks),
            completed_weeks=_value(data, 'completedWeeks', 0),
            user_batch=data.get('userBatch') or user_batch,
        )


@dataclass(frozen=True)
class DailyAttendanceRecord:
    """A single marked class session."""
    id: str
    date: date
    subject_name: str
    status: str
    subject_type: str = ""
    time_start: str = ""
    time_end: str = ""

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'date': self.date.isoformat(),
            'timeStart': self.time_start,
            'timeEnd': self.time_end,
            'subjectName': self.subject_name,
            'subjectType': self.subject_type,
            'status': self.status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DailyAttendanceRecord':
        status = _require(data, 'status', 'Attendance record')
        if status not in MARK_STATUSES:
            raise DataError(f"Unknown attendance status '{status}'")

        return cls(
            id=str(_require(data, 'id', 'Attendance record')),
            date=parse_date(_require(data, 'date', 'Attendance record')),
            subject_name=data.get('subjectName', ''),
            status=status,
            subject_type=data.get('subjectType', ''),
            time_start=data.get('timeStart', ''),
            time_end=data.get('timeEnd', ''),
        )


def parse_date(value) -> date:
    """
    Parse an ISO date or timestamp into a calendar date.

    The backend sends midnight timestamps such as ``2026-01-05T00:00:00.000Z``.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise DataError(f"Invalid date '{value}'")


def find_subject(subjects: List[Subject], subject_id: str) -> Optional[Subject]:
    """Look up a subject by id."""
    for subject in subjects:
        if subject.id == subject_id:
            return subject
    return None
