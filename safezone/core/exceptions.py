"""
Exceptions raised by Safezone's I/O layers.

The prediction engine itself never raises on numeric input; these cover
configuration, backend and payload-shape failures.
"""


class SafezoneError(Exception):
    """Base class for all Safezone errors."""


class ConfigError(SafezoneError):
    """Configuration is missing or incomplete."""


class DataError(SafezoneError):
    """A payload from the backend or cache has an unusable shape."""


class BackendError(SafezoneError):
    """The attendance backend could not be reached or returned an error."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
