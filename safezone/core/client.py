"""
Backend Client Module

Reads timetables and attendance records from the attendance backend and
caches them locally for the CLI and dashboard.
"""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

import requests

from .config import Config, Defaults, get_data_path
from .exceptions import BackendError, ConfigError, DataError
from .models import DailyAttendanceRecord, Timetable

logger = logging.getLogger(__name__)

TIMETABLE_CACHE = 'timetable.json'
RECORDS_CACHE = 'records.json'


def _timetable_from_dict(data: Dict, defaults: Defaults = None) -> Timetable:
    defaults = defaults or Defaults()
    return Timetable.from_dict(
        data,
        min_attendance=defaults.min_attendance,
        total_weeks=defaults.total_weeks,
        user_batch=defaults.user_batch,
    )


class BackendClient:
    """
    JSON client for the attendance backend.

    Usage:
        with BackendClient(config.backend.base_url) as client:
            timetable = client.fetch_timetable(config.user_id)
    """

    def __init__(self, base_url: str, timeout: float = 30.0, session: requests.Session = None):
        """Initialize client with the API base URL (e.g. .../api/v1)."""
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.session.close()

    def _post(self, path: str, payload: Dict) -> Dict:
        """
        POST a JSON body and return the decoded response.

        Raises:
            BackendError: On connection failure, non-2xx status or non-JSON body
        """
        url = f"{self.base_url}{path}"
        logger.debug("POST %s", url)

        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise BackendError(f"Could not reach backend at {url}: {e}") from e

        if not response.ok:
            message = f"Backend returned {response.status_code} for {path}"
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get('message') if isinstance(body, dict) else None
            if detail:
                message = f"{message}: {detail}"
            raise BackendError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"Backend sent invalid JSON for {path}") from e

    def fetch_timetable(self, user_id: str, defaults: Defaults = None) -> Optional[Timetable]:
        """
        Fetch the user's timetable with subjects.

        Args:
            user_id: Backend user id
            defaults: Term settings used where the backend sends none

        Returns:
            Timetable, or None if the user has not uploaded one
        """
        data = self._post('/timetable', {'userId': user_id})
        timetable = data.get('timetable')
        if not timetable:
            return None
        return _timetable_from_dict(timetable, defaults)

    def fetch_records(self, user_id: str) -> List[DailyAttendanceRecord]:
        """Fetch every marked session for the user."""
        data = self._post('/attendance/all', {'userId': user_id})
        return [DailyAttendanceRecord.from_dict(r) for r in data.get('records') or []]


def _save_cache(filename: str, key: str, payload) -> None:
    save_data = {
        'timestamp': datetime.now().isoformat(),
        key: payload,
    }

    filepath = get_data_path(filename)
    with open(filepath, 'w') as f:
        json.dump(save_data, f, indent=2)

    logger.info("Saved %s to %s", key, filepath)


def _load_cache(filename: str) -> Optional[Dict]:
    filepath = get_data_path(filename)
    if not filepath.exists():
        return None

    try:
        with open(filepath) as f:
            return json.load(f)
    except ValueError as e:
        raise DataError(f"Cache file {filepath} is corrupt: {e}") from e


def fetch_attendance(config: Config) -> Optional[Timetable]:
    """
    Fetch timetable and records from the backend and cache them.

    Args:
        config: Safezone configuration

    Returns:
        The fetched timetable (None if the user has none)
    """
    if not config.is_configured():
        raise ConfigError("No user id configured. Run 'safezone setup' first.")

    with BackendClient(config.backend.base_url, config.backend.timeout) as client:
        timetable = client.fetch_timetable(config.user_id, config.defaults)
        records = client.fetch_records(config.user_id)

    _save_cache(TIMETABLE_CACHE, 'timetable', timetable.to_dict() if timetable else None)
    _save_cache(RECORDS_CACHE, 'records', [r.to_dict() for r in records])

    return timetable


def load_cached_timetable(defaults: Defaults = None) -> Optional[Timetable]:
    """Load the timetable saved by the last fetch."""
    cached = _load_cache(TIMETABLE_CACHE)
    if not cached or not cached.get('timetable'):
        return None
    return _timetable_from_dict(cached['timetable'], defaults)


def load_cached_records() -> List[DailyAttendanceRecord]:
    """Load the attendance records saved by the last fetch."""
    cached = _load_cache(RECORDS_CACHE)
    if not cached:
        return []
    return [DailyAttendanceRecord.from_dict(r) for r in cached.get('records') or []]


def last_fetched() -> Optional[str]:
    """Timestamp of the last successful fetch."""
    cached = _load_cache(TIMETABLE_CACHE)
    return cached.get('timestamp') if cached else None
