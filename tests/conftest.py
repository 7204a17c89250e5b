import json

import pytest

from safezone.core import config
from safezone.core.models import Subject, Timetable


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the config and data directories at a temp dir."""
    monkeypatch.setattr(config, 'CONFIG_DIR', tmp_path)
    monkeypatch.setattr(config, 'CONFIG_FILE', tmp_path / 'config.yaml')
    monkeypatch.setattr(config, 'DATA_DIR', tmp_path / 'data')
    monkeypatch.delenv('SAFEZONE_USER_ID', raising=False)
    monkeypatch.delenv('SAFEZONE_BACKEND_URL', raising=False)
    return tmp_path


@pytest.fixture
def make_subject():
    def _make(attended, total_held, classes_per_week, **kwargs):
        kwargs.setdefault('id', 'sub-1')
        kwargs.setdefault('name', 'Data Structures')
        return Subject(
            attended=attended,
            total_held=total_held,
            classes_per_week=classes_per_week,
            **kwargs
        )
    return _make


@pytest.fixture
def timetable():
    """Term with 5 weeks left: one safe, one short, one below goal but recoverable."""
    return Timetable(
        id='tt-1',
        min_attendance=75,
        total_weeks=16,
        completed_weeks=11,
        subjects=[
            Subject(id='ds', name='Data Structures', classes_per_week=3,
                    attended=30, total_held=40),
            Subject(id='phy', name='Physics Lab', type='Lab', weight=2.0,
                    classes_per_week=2, attended=10, total_held=20),
            Subject(id='math', name='Maths', classes_per_week=2,
                    attended=14, total_held=20),
        ],
    )


@pytest.fixture
def write_cache(isolated_home):
    """Write timetable/records cache files like a completed fetch.

    The timetable may be a Timetable or a raw payload dict.
    """
    def _write(timetable=None, records=None):
        data_dir = isolated_home / 'data'
        data_dir.mkdir(exist_ok=True)
        if timetable is not None:
            if isinstance(timetable, Timetable):
                timetable = timetable.to_dict()
            payload = {'timestamp': '2026-01-14T09:00:00', 'timetable': timetable}
            (data_dir / 'timetable.json').write_text(json.dumps(payload))
        if records is not None:
            payload = {'timestamp': '2026-01-14T09:00:00', 'records': records}
            (data_dir / 'records.json').write_text(json.dumps(payload))
    return _write
