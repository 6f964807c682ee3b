"""
Error Handling Middleware
Provides consistent JSON error responses for database failures and HTTP errors
"""
from flask import jsonify
from sqlalchemy.exc import OperationalError, ProgrammingError, IntegrityError
from werkzeug.exceptions import HTTPException

from coursecart.infra.db import db
from coursecart.infra.log import get_logger

logger = get_logger(__name__)


def register_error_handlers(app):
    """Register application-wide error handlers"""

    @app.errorhandler(OperationalError)
    def handle_operational_error(e):
        """Handle database operational errors (connection, table not found, etc.)"""
        db.session.rollback()
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)

        if 'does not exist' in error_msg or 'no such table' in error_msg:
            logger.error(f"Database table not found: {error_msg}")
            return jsonify({
                'error': 'database_not_initialized',
                'message': 'Storefront database schema is not initialized. Run the migrations and retry.'
            }), 503

        logger.error(f"Database operational error: {error_msg}")
        return jsonify({
            'error': 'database_error',
            'message': 'Database operation failed. Please try again later.'
        }), 503

    @app.errorhandler(ProgrammingError)
    def handle_programming_error(e):
        """Handle database programming errors (SQL syntax, schema issues)"""
        db.session.rollback()
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
        logger.error(f"Database programming error: {error_msg}")

        return jsonify({
            'error': 'database_schema_error',
            'message': 'Database schema issue detected. Please contact support.'
        }), 500

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        """Handle database integrity errors (foreign key, unique constraint)"""
        db.session.rollback()
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
        logger.error(f"Database integrity error: {error_msg}")

        if 'foreign key' in error_msg.lower():
            return jsonify({
                'error': 'invalid_reference',
                'message': 'Referenced entity does not exist'
            }), 400

        if 'unique' in error_msg.lower() or 'duplicate' in error_msg.lower():
            return jsonify({
                'error': 'duplicate_entry',
                'message': 'This entry already exists'
            }), 409

        return jsonify({
            'error': 'integrity_error',
            'message': 'Data integrity constraint violated'
        }), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        """Render werkzeug HTTP errors (404, 405, 413, ...) as JSON"""
        return jsonify({
            'error': e.name.lower().replace(' ', '_'),
            'message': e.description
        }), e.code
