"""Safezone - attendance prediction and recovery planning."""

__version__ = "1.0.0"
