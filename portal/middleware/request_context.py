"""Request context middleware: one correlation id per request.

The id comes from the caller's X-Request-ID header when present (so a
gateway's id carries through) or is generated.  It is stored in a
ContextVar rather than a thread-local because concurrent requests share
the event loop thread; every log record emitted while the request runs
picks it up through _RequestContextFilter.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
# Longer inbound ids are replaced; they end up in every log line.
_MAX_INBOUND_ID_LENGTH = 128

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Attach the current request id to every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


root_logger = logging.getLogger()
if not any(isinstance(f, _RequestContextFilter) for f in root_logger.filters):
    root_logger.addFilter(_RequestContextFilter())


def _inbound_id(request: Request) -> str | None:
    value = request.headers.get(REQUEST_ID_HEADER)
    if not value or len(value) > _MAX_INBOUND_ID_LENGTH or not value.isprintable():
        return None
    return value


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, time the request, log one summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = _inbound_id(request) or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        start = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s -> %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = req_id
        return response
