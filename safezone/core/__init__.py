"""Core modules for Safezone."""

from .config import Config, load_config, save_config
from .models import Subject, Timetable, DailyAttendanceRecord
from .predictor import (
    AttendancePredictor,
    Status,
    calculate_prediction,
    calculate_overall_prediction,
)
from .recovery import RecoveryCalculator
from .client import BackendClient

__all__ = [
    "Config",
    "load_config",
    "save_config",
    "Subject",
    "Timetable",
    "DailyAttendanceRecord",
    "AttendancePredictor",
    "Status",
    "calculate_prediction",
    "calculate_overall_prediction",
    "RecoveryCalculator",
    "BackendClient",
]
