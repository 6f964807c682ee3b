"""
Structured JSON logging for the coursecart service.

Provides structured logging with:
- JSON format output when enabled
- Request context integration (request_id, purchaser)
- Consistent log structure across the application
- Helpers for webhook, security and idempotency events

Logs include: timestamp, level, message, request_id, method, path, status,
duration_ms, and any keyword fields passed by the caller.
"""

import os
import json
import logging
import time
from datetime import datetime, timezone
from flask import Flask, has_request_context
from coursecart.services.request_context import get_request_context, get_request_id

QUIET_PATHS = ('/healthz', '/readyz', '/metrics')


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def __init__(self, json_enabled: bool = True):
        super().__init__()
        self.json_enabled = json_enabled

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON or plain text."""
        if not self.json_enabled:
            return super().format(record)

        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if has_request_context():
            log_entry.update(get_request_context())

        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class StructuredLogger:
    """Structured logger with request context integration."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log_with_context(self, level: int, message: str, exc_info: bool = False, **kwargs):
        extra_fields = kwargs.copy()

        if 'request_id' not in extra_fields and has_request_context():
            extra_fields['request_id'] = get_request_id()

        self.logger.log(level, message, exc_info=exc_info, extra={'extra_fields': extra_fields})

    def debug(self, message: str, **kwargs):
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log_with_context(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log error message with the active exception attached."""
        self._log_with_context(logging.ERROR, message, exc_info=True, **kwargs)

    def log_request_start(self, method: str, path: str, **kwargs):
        self.info(
            f"Request started: {method} {path}",
            event_type='request_start',
            method=method,
            path=path,
            **kwargs
        )

    def log_request_end(self, method: str, path: str, status_code: int, duration_ms: float, **kwargs):
        self.info(
            f"Request completed: {method} {path} - {status_code} ({duration_ms}ms)",
            event_type='request_end',
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
            **kwargs
        )

    def log_webhook_event(self, event_type: str, outcome: str, **kwargs):
        """Log the outcome of one webhook delivery."""
        level = logging.INFO if outcome in ('created', 'duplicate', 'ignored') else logging.WARNING
        self._log_with_context(
            level,
            f"Webhook {event_type}: {outcome}",
            event_type='webhook',
            webhook_event=event_type,
            outcome=outcome,
            **kwargs
        )

    def log_idempotency_event(self, event: str, **kwargs):
        self.info(
            f"Idempotency {event}",
            event_type='idempotency',
            idempotency_event=event,
            **kwargs
        )

    def log_security_event(self, event: str, severity: str = 'info', **kwargs):
        level_map = {
            'debug': logging.DEBUG,
            'info': logging.INFO,
            'warning': logging.WARNING,
            'error': logging.ERROR,
            'critical': logging.CRITICAL
        }
        level = level_map.get(severity.lower(), logging.INFO)

        self._log_with_context(
            level,
            f"Security event: {event}",
            event_type='security',
            security_event=event,
            severity=severity,
            **kwargs
        )


def get_logger(name: str) -> StructuredLogger:
    """Get structured logger instance."""
    return StructuredLogger(name)


def configure_logging(app: Flask):
    """Configure structured logging for Flask application."""
    json_enabled = os.environ.get('COURSECART_LOG_JSON', 'true').lower() == 'true'
    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()
    level = getattr(logging, log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(StructuredFormatter(json_enabled=json_enabled))
    root_logger.addHandler(console_handler)

    app.logger.setLevel(level)

    loggers_to_configure = [
        'coursecart.webhooks',
        'coursecart.fulfillment',
        'coursecart.checkout',
        'coursecart.cart',
        'coursecart.security',
    ]
    for logger_name in loggers_to_configure:
        logging.getLogger(logger_name).setLevel(level)

    get_logger('coursecart.config').info(
        "Logging configured",
        json_enabled=json_enabled,
        log_level=log_level,
        loggers_configured=loggers_to_configure
    )


class LoggingMiddleware:
    """Middleware for automatic request/response logging."""

    def __init__(self, app: Flask):
        self.app = app
        self.logger = get_logger('coursecart.requests')
        app.before_request(self._before_request)
        app.after_request(self._after_request)

    def _before_request(self):
        from flask import request

        if request.path in QUIET_PATHS:
            return

        self.logger.log_request_start(
            method=request.method,
            path=request.path,
            remote_addr=request.remote_addr,
            content_length=request.content_length
        )

    def _after_request(self, response):
        from flask import request, g

        if request.path in QUIET_PATHS:
            return response

        duration_ms = 0
        if hasattr(g, 'request_start_time'):
            duration_ms = round((time.time() - g.request_start_time) * 1000, 2)

        self.logger.log_request_end(
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            content_length=response.content_length
        )
        return response


def init_logging(app: Flask):
    """Initialize structured logging for Flask application."""
    configure_logging(app)
    LoggingMiddleware(app)

    get_logger('coursecart.startup').info(
        "Application starting",
        debug=app.debug,
        testing=app.testing
    )


def log_signature_failure(reason: str, **kwargs):
    """Log a webhook that failed signature verification."""
    get_logger('coursecart.security').log_security_event(
        f"webhook_signature_rejected: {reason}",
        severity='warning',
        violation_type='webhook_signature',
        reason=reason,
        **kwargs
    )


def log_idempotent_replay(payment_id: str, **kwargs):
    """Log a redelivered payment that already has an order."""
    get_logger('coursecart.fulfillment').log_idempotency_event(
        'replay',
        payment_id=payment_id,
        **kwargs
    )
