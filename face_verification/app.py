"""
Flask application for HTTP API.

Provides:
- GET /health: Service health check
- POST /verify: Verify detections against the roster
- GET /attendance/today: Today's attendance records
- GET /attendance/report: Present/absent report for a day
- GET /attendance/<person_id>: Records of one person
- DELETE /attendance: Clear attendance
"""

import time
from datetime import date
from typing import List

from flask import Flask, jsonify, request
from flask_cors import CORS

from .attendance import AttendanceRecorder
from .config import Config
from .events import send_attendance
from .logging_config import get_logger
from .models import Detection, StoredPerson
from .utils.timing import format_uptime
from .verifier import FaceVerifier

logger = get_logger(__name__)


def create_app(
    config: Config,
    verifier: FaceVerifier,
    roster: List[StoredPerson],
    recorder: AttendanceRecorder
) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Service configuration
        verifier: Initialized face verifier
        roster: Stored persons (shared, embeddings memoized in place)
        recorder: Attendance recorder

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    CORS(app)
    started_at = time.time()

    @app.route('/health')
    def health():
        """Health check endpoint."""
        return jsonify({
            'status': 'ok',
            'ready': verifier.is_ready,
            'rosterSize': len(roster),
            'threshold': verifier.threshold,
            'uptime': format_uptime(time.time() - started_at),
            'sourceId': config.source_id,
        })

    @app.route('/verify', methods=['POST'])
    async def verify():
        """Verify detections and optionally record attendance."""
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict) or not isinstance(payload.get('detections'), list):
            return jsonify({'error': 'Body must contain a "detections" list'}), 400

        try:
            detections = [Detection.from_dict(d) for d in payload['detections']]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            return jsonify({'error': f'Invalid detection: {e}'}), 400

        await verifier.verify(detections, roster)

        records = []
        if payload.get('record'):
            camera_id = str(payload.get('cameraId', config.source_id))
            camera_name = str(payload.get('cameraName', config.camera_name))
            for detection in detections:
                if detection.verified_person is None:
                    continue
                record, created = recorder.mark_attendance(
                    detection.verified_person, camera_id, camera_name
                )
                if created:
                    send_attendance(record, config)
                    records.append(record.to_dict())

        return jsonify({
            'detections': [d.to_dict() for d in detections],
            'records': records,
        })

    @app.route('/attendance/today')
    def attendance_today():
        return jsonify([r.to_dict() for r in recorder.get_today_attendance()])

    @app.route('/attendance/report')
    def attendance_report():
        """Present/absent status per roster member."""
        raw_day = request.args.get('date')
        try:
            day = date.fromisoformat(raw_day) if raw_day else date.today()
        except ValueError:
            return jsonify({'error': f'Invalid date: {raw_day}'}), 400

        return jsonify({
            'date': day.isoformat(),
            'attendance': recorder.get_day_report(roster, day),
        })

    @app.route('/attendance/<person_id>')
    def attendance_by_person(person_id: str):
        return jsonify([r.to_dict() for r in recorder.get_attendance_by_person(person_id)])

    @app.route('/attendance', methods=['DELETE'])
    def clear_attendance():
        recorder.clear()
        return jsonify({'status': 'cleared'})

    return app
