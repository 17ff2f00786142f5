"""
Error envelope middleware - Standardize all error responses.

Provides consistent error response format:
{
    "error": {
        "code": "INVALID_PARAMS",
        "message": "Request body failed validation",
        "requestId": "uuid",
        "details": [...]          # validation errors only
    }
}
"""

import logging

from flask import Flask, g, jsonify
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from utils.normalize import ValidationError as InputValidationError


logger = logging.getLogger('api.middleware.error')


# Error codes reference
ERROR_CODES = {
    # Client errors (4xx)
    "BAD_REQUEST": 400,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,
    "UNSUPPORTED_MEDIA_TYPE": 415,

    # Contract errors
    "INVALID_PARAMS": 400,

    # Server errors (5xx)
    "INTERNAL_ERROR": 500,
    "SERVICE_UNAVAILABLE": 503,
}


def make_error_response(
    code: str,
    message: str,
    status_code: int = None,
    field: str = None,
    details=None,
):
    """
    Create a standardized error response.

    Returns:
        Tuple of (response, status_code)
    """
    request_id = getattr(g, 'request_id', None)

    if status_code is None:
        status_code = ERROR_CODES.get(code, 500)

    error = {
        "error": {
            "code": code,
            "message": message,
            "requestId": request_id,
        }
    }
    if field:
        error["error"]["field"] = field
    if details:
        error["error"]["details"] = details

    response = jsonify(error)
    if request_id:
        response.headers['X-Request-ID'] = request_id
    return response, status_code


def pydantic_error_details(error: PydanticValidationError):
    """JSON-safe subset of pydantic's error list."""
    return [
        {
            "field": ".".join(str(part) for part in item.get("loc", ())),
            "message": item.get("msg"),
            "type": item.get("type"),
        }
        for item in error.errors()
    ]


def setup_error_handlers(app: Flask) -> None:
    """
    Set up standardized error handlers on Flask app.

    Handles:
    - pydantic and input ValidationError -> 400 INVALID_PARAMS
    - HTTP exceptions (400, 404, 405, ...)
    - Unhandled Python exceptions -> 500 INTERNAL_ERROR
    """

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_error(error):
        return make_error_response(
            "INVALID_PARAMS",
            "Request body failed validation",
            details=pydantic_error_details(error),
        )

    @app.errorhandler(InputValidationError)
    def handle_input_error(error):
        return make_error_response("INVALID_PARAMS", str(error), field=error.field)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        # "Not Found" -> "NOT_FOUND"
        code = error.name.upper().replace(' ', '_')
        return make_error_response(code, error.description, status_code=error.code)

    @app.errorhandler(Exception)
    def handle_generic_error(error):
        logger.exception(
            "unhandled_error error_type=%s request_id=%s",
            type(error).__name__,
            getattr(g, 'request_id', None),
        )
        return make_error_response("INTERNAL_ERROR", "An unexpected error occurred")
