"""
Request logging middleware - sampled access log for /api routes.

Config keys (app.config, populated from the environment):
  - REQUEST_LOG_ENABLED (default: true)
  - REQUEST_LOG_SAMPLE_RATE (default: 0.0)
  - REQUEST_LOG_ENDPOINTS (path prefixes always logged; list or comma string)

Server errors (5xx) are always logged, at WARNING, regardless of sampling.
"""

import logging
import random
import time
from typing import List

from flask import Flask, g, request


logger = logging.getLogger("api.request")

API_PREFIX = "/api"


def _parse_watchlist(raw) -> List[str]:
    if not raw:
        return []
    items = raw if isinstance(raw, (list, tuple)) else str(raw).split(",")
    return [str(item).strip() for item in items if str(item).strip()]


def _sampled(path: str, watchlist: List[str], sample_rate: float) -> bool:
    if watchlist:
        return any(path.startswith(prefix) for prefix in watchlist)
    if sample_rate <= 0:
        return False
    return sample_rate >= 1 or random.random() <= sample_rate


def setup_request_logging_middleware(app: Flask) -> None:
    """Register before/after hooks that log sampled /api requests."""
    if not app.config.get("REQUEST_LOG_ENABLED", True):
        return
    try:
        sample_rate = float(app.config.get("REQUEST_LOG_SAMPLE_RATE", 0.0))
    except (TypeError, ValueError):
        sample_rate = 0.0
    watchlist = _parse_watchlist(app.config.get("REQUEST_LOG_ENDPOINTS"))

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()

    @app.after_request
    def _log_request(response):
        path = request.path
        if not path.startswith(API_PREFIX):
            return response

        server_error = response.status_code >= 500
        if not server_error and not _sampled(path, watchlist, sample_rate):
            return response

        started = getattr(g, "request_start", None)
        duration_ms = round((time.perf_counter() - started) * 1000, 2) if started else None

        logger.log(
            logging.WARNING if server_error else logging.INFO,
            "api_request path=%s endpoint=%s method=%s status=%s duration_ms=%s request_id=%s",
            path,
            request.endpoint,
            request.method,
            response.status_code,
            duration_ms,
            getattr(g, "request_id", None),
        )
        return response
