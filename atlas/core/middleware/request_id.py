"""Request correlation: one id per request, echoed back and bound for logging."""

import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from atlas.core.logging import LOGGER_NAME, latency_bucket_ms, request_id_ctx_var

REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Accept the caller's x-request-id (or mint one), expose it on
    request.state and the logging context, and log request.complete.

    Server errors are logged at WARNING so they stand out next to the
    unhandled.exception record.
    """

    def __init__(self, app, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = request.headers.get(self.header_name) or uuid4().hex
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_ctx_var.reset(token)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[self.header_name] = rid

        status = getattr(response, "status_code", None)
        level = logging.WARNING if status is not None and status >= 500 else logging.INFO
        logging.getLogger(LOGGER_NAME).log(
            level,
            "request.complete",
            extra={
                "request_id": rid,
                "path": request.url.path,
                "method": request.method,
                "status": status,
                "latency_bucket": latency_bucket_ms(elapsed_ms),
            },
        )
        return response
