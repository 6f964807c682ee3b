# -*- coding: utf-8 -*-
"""
Request context middleware.

Gives every request a request_id (taken from a valid UUID ``X-Request-ID``
header or freshly generated), keeps request metadata on ``flask.g`` for the
structured logger, and echoes the id and timing on the response.
"""

import uuid
import time
from typing import Optional
from flask import Flask, request, g, Response


class RequestContextMiddleware:
    """Middleware for managing request context and request_id propagation."""

    def __init__(self, app: Flask):
        self.app = app
        app.before_request(self._before_request)
        app.after_request(self._after_request)

    def _before_request(self):
        g.request_id = self._get_or_generate_request_id()
        g.request_start_time = time.time()

        g.request_method = request.method
        g.request_path = request.path
        g.request_remote_addr = request.remote_addr

        # Populated by routes that resolve a purchaser.
        g.purchaser_id = None

    def _after_request(self, response: Response) -> Response:
        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id

        if hasattr(g, 'request_start_time'):
            duration_ms = round((time.time() - g.request_start_time) * 1000, 2)
            response.headers['X-Response-Time'] = f"{duration_ms}ms"

        return response

    def _get_or_generate_request_id(self) -> str:
        request_id = request.headers.get('X-Request-ID')

        if request_id:
            try:
                uuid.UUID(request_id)
                return request_id
            except ValueError:
                pass

        return str(uuid.uuid4())


def get_request_id() -> Optional[str]:
    """Get current request_id from Flask g context."""
    return getattr(g, 'request_id', None)


def get_request_context() -> dict:
    """Get complete request context for logging."""
    context = {
        'request_id': getattr(g, 'request_id', None),
        'method': getattr(g, 'request_method', None),
        'path': getattr(g, 'request_path', None),
        'remote_addr': getattr(g, 'request_remote_addr', None),
    }

    if hasattr(g, 'request_start_time'):
        context['duration_ms'] = round(
            (time.time() - g.request_start_time) * 1000, 2)

    if getattr(g, 'purchaser_id', None):
        context['purchaser_id'] = g.purchaser_id

    return context


def set_purchaser_context(purchaser_id: Optional[str]):
    """Attach the authenticated purchaser to the current request."""
    if purchaser_id:
        g.purchaser_id = purchaser_id


def init_request_context(app: Flask):
    """Initialize request context middleware for Flask application."""
    return RequestContextMiddleware(app)
