# -*- coding: utf-8 -*-

import time

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from coursecart.infra.db import db

health_bp = Blueprint('health', __name__)


@health_bp.route('/healthz', methods=['GET', 'HEAD'])
def healthz():
    """Liveness check; does not touch dependencies."""
    return jsonify({
        'status': 'healthy',
        'service': 'coursecart',
        'timestamp': time.time()
    }), 200


@health_bp.route('/readyz', methods=['GET', 'HEAD'])
def readyz():
    """Readiness check: the database must answer."""
    try:
        db.session.execute(text('SELECT 1'))
        database_ok = True
    except SQLAlchemyError:
        db.session.rollback()
        database_ok = False

    return jsonify({
        'status': 'ready' if database_ok else 'not_ready',
        'service': 'coursecart',
        'timestamp': time.time(),
        'checks': {
            'database': database_ok
        }
    }), 200 if database_ok else 503
