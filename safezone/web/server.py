"""
Safezone Web Server

Flask API server for the web dashboard.
"""

import logging
from datetime import date, datetime

from flask import Flask, jsonify, request
from flask_cors import CORS

from ..core.accounting import attendance_summary, cumulative_trend, daily_trend
from ..core.client import fetch_attendance, last_fetched, load_cached_records, load_cached_timetable
from ..core.config import Config, load_config
from ..core.exceptions import BackendError, ConfigError, SafezoneError
from ..core.models import find_subject
from ..core.predictor import AttendancePredictor
from ..core.recovery import RecoveryCalculator

logger = logging.getLogger(__name__)


class NoDataError(SafezoneError):
    """No timetable has been fetched yet."""


class BadRequestError(SafezoneError):
    """A query parameter could not be used."""


def _error(message: str, status: int):
    return jsonify({
        'success': False,
        'error': message
    }), status


def _int_arg(name: str, default: int) -> int:
    value = request.args.get(name)
    if value is None or value == '':
        return default

    try:
        number = int(value)
    except ValueError:
        raise BadRequestError(f"'{name}' must be an integer")

    if number < 0:
        raise BadRequestError(f"'{name}' must not be negative")
    return number


def _timetable(config: Config):
    timetable = load_cached_timetable(config.defaults)
    if timetable is None:
        raise NoDataError("No data available. POST /api/refresh to fetch.")
    return timetable


def create_app(config: Config = None) -> Flask:
    """
    Create Flask application.

    Args:
        config: Safezone configuration (loads default if None)

    Returns:
        Flask app instance
    """
    if config is None:
        config = load_config()

    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # Store config in app context
    app.config['SAFEZONE_CONFIG'] = config

    @app.errorhandler(SafezoneError)
    def handle_error(e):
        if isinstance(e, NoDataError):
            return _error(str(e), 404)
        if isinstance(e, (BadRequestError, ConfigError)):
            return _error(str(e), 400)
        if isinstance(e, BackendError):
            logger.error("Backend request failed: %s", e)
            return _error(str(e), 502)

        logger.error("Request failed: %s", e)
        return _error(str(e), 500)

    @app.route('/api/health')
    def health():
        """Health check endpoint."""
        return jsonify({
            'status': 'ok',
            'timestamp': datetime.now().isoformat(),
        })

    @app.route('/api/predictions')
    def get_predictions():
        """Per-subject and overall predictions for the cached timetable."""
        absences = _int_arg('absences', config.defaults.simulated_absences)
        timetable = _timetable(config)
        predictor = AttendancePredictor(timetable)

        return jsonify({
            'success': True,
            'remainingWeeks': predictor.remaining_weeks,
            'minAttendance': predictor.min_attendance,
            'simulatedAbsences': absences,
            'subjects': [p.to_dict() for p in predictor.predict_all(absences)],
            'overall': predictor.overall(absences).to_dict(),
            'lastFetched': last_fetched(),
        })

    @app.route('/api/predictions/<subject_id>')
    def get_subject_prediction(subject_id):
        """Prediction for a single subject."""
        absences = _int_arg('absences', config.defaults.simulated_absences)
        timetable = _timetable(config)

        subject = find_subject(timetable.subjects, subject_id)
        if subject is None:
            return _error(f"Unknown subject '{subject_id}'", 404)

        prediction = AttendancePredictor(timetable).predict(subject, absences)
        return jsonify({
            'success': True,
            'prediction': prediction.to_dict(),
        })

    @app.route('/api/recovery')
    def get_recovery():
        """Recovery plans, most critical first."""
        show_all = request.args.get('all', 'false').lower() == 'true'
        timetable = _timetable(config)

        calc = RecoveryCalculator(timetable.min_attendance, timetable.remaining_weeks)
        plans = calc.analyze_all(timetable.subjects, only_at_risk=not show_all)

        return jsonify({
            'success': True,
            'minAttendance': timetable.min_attendance,
            'subjects': [p.to_dict() for p in plans],
        })

    @app.route('/api/summary')
    def get_summary():
        """Dashboard totals and the recent attendance trend."""
        days = _int_arg('days', 14) or 14
        timetable = _timetable(config)
        trend = cumulative_trend(daily_trend(load_cached_records(), date.today(), days))

        return jsonify({
            'success': True,
            'summary': attendance_summary(timetable.subjects),
            'trend': [d.to_dict() for d in trend],
        })

    @app.route('/api/config')
    def get_config():
        """Get public configuration."""
        return jsonify({
            'backend': config.backend.base_url,
            'defaults': {
                'minAttendance': config.defaults.min_attendance,
                'totalWeeks': config.defaults.total_weeks,
                'simulatedAbsences': config.defaults.simulated_absences,
                'userBatch': config.defaults.user_batch,
            },
            'student': {
                'name': config.student_name,
                'userId': config.user_id,
            }
        })

    @app.route('/api/refresh', methods=['POST'])
    def refresh_data():
        """Fetch fresh data from the backend."""
        timetable = fetch_attendance(config)

        if timetable is None:
            return _error('No timetable found for this user', 404)

        return jsonify({
            'success': True,
            'message': f'Fetched {len(timetable.subjects)} subjects',
        })

    return app

