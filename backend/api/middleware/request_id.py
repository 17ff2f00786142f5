"""
Request ID middleware - X-Request-ID correlation for responses and logs.

Every request gets an id (the caller's X-Request-ID header, or a new
UUID). It is stored on g, echoed in the response header, embedded in error
envelopes, and attached to log records as `request_id`.
"""

import logging
import uuid

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = 'X-Request-ID'
MAX_REQUEST_ID_LENGTH = 128


class RequestIdLogFilter(logging.Filter):
    """Adds record.request_id ('-' outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = None
        if has_request_context():
            request_id = getattr(g, 'request_id', None)
        record.request_id = request_id or '-'
        return True


def setup_request_id_middleware(app: Flask) -> None:
    """
    Set up request ID middleware on Flask app.

    Args:
        app: Flask application instance
    """

    @app.before_request
    def inject_request_id():
        incoming = (request.headers.get(REQUEST_ID_HEADER) or '').strip()
        g.request_id = incoming[:MAX_REQUEST_ID_LENGTH] or str(uuid.uuid4())

    @app.after_request
    def add_request_id_header(response):
        if hasattr(g, 'request_id'):
            response.headers[REQUEST_ID_HEADER] = g.request_id
        return response

    log_filter = RequestIdLogFilter()
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdLogFilter) for f in handler.filters):
            handler.addFilter(log_filter)


def get_request_id() -> str:
    """Current request ID, or a fresh UUID outside a request."""
    if has_request_context() and hasattr(g, 'request_id'):
        return g.request_id
    return str(uuid.uuid4())
