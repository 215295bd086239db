from flask import jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from medsearch.extensions import db
from medsearch.utils.time_util import utcnow


def health_check():
    """Reports service liveness and whether the database answers."""
    database = 'ok'
    try:
        db.session.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Health check database failure: {e}")
        database = 'unavailable'

    healthy = database == 'ok'
    return jsonify({
        'status': 'ok' if healthy else 'degraded',
        'database': database,
        'timestamp': utcnow().isoformat() + 'Z'
    }), 200 if healthy else 503
