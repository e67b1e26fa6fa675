"""
Request tracking middleware.

Assigns every request an ID (honouring an incoming ``X-Request-ID``),
exposes it to log records and error envelopes, and logs one line per
request with its processing time.
"""

from contextvars import ContextVar
from typing import Callable, Optional
import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Return the ID of the request being handled, if any."""
    return _request_id.get()


class RequestIDLogFilter(logging.Filter):
    """Adds ``request_id`` to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag requests with an ID and log their outcome."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = _request_id.set(request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            _request_id.reset(token)

        processing_time_ms = (time.perf_counter() - start_time) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "%s %s -> %s (%.1fms) [%s]",
            request.method,
            request.url.path,
            response.status_code,
            processing_time_ms,
            request_id,
        )
        return response
