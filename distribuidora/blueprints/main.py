"""Main blueprint with health check endpoints."""
from datetime import datetime, timezone
from flask import Blueprint, jsonify
from distribuidora.database import ping

main_bp = Blueprint('main', __name__, url_prefix='/api')


@main_bp.route('/health')
def health():
    """Liveness check; does not touch the database."""
    return jsonify({'ok': True, 'status': 'up', 'time': datetime.now(timezone.utc).isoformat()})


@main_bp.route('/health/db')
def health_db():
    """
    Health check endpoint that validates database connection.

    Returns:
        200: Healthy (DB connected)
        500: Unhealthy (DB error)
    """
    try:
        if ping():
            return jsonify({'ok': True, 'database': 'connected'}), 200
        return jsonify({'ok': False, 'database': 'error', 'error': 'Unexpected query result'}), 500
    except Exception as e:
        return jsonify({'ok': False, 'database': 'disconnected', 'error': str(e)}), 500
