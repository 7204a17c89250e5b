"""Command-line interface for Safezone."""
