"""Web dashboard API for Safezone."""
