"""Request timing and tracing middleware for the BSR Estimator API."""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.services.logging_config import bind_request_id, reset_request_id

logger = logging.getLogger("bsr-api.middleware")

SKIP_LOG_PATHS = {"/health"}
REQUEST_ID_HEADER = "X-Request-ID"


def status_log_level(status_code: int) -> int:
    """5xx → ERROR (e.g. generator failure 502), 4xx → WARNING, else INFO."""
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Tags every response with X-Request-ID and X-Process-Time (ms).

    An incoming X-Request-ID is reused so a client can correlate its own
    calls; otherwise a uuid4 is generated. The id is bound to the logging
    context for the whole request, so costing-pass lines carry it too.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = bind_request_id(request_id)
        start_time = time.perf_counter()

        try:
            response: Response = await call_next(request)
        except Exception:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.exception(
                f"{request.method} {request.url.path} -> unhandled error",
                extra=self._fields(request, 500, duration_ms),
            )
            raise
        finally:
            reset_request_id(token)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if request.url.path not in SKIP_LOG_PATHS:
            logger.log(
                status_log_level(response.status_code),
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra=self._fields(request, response.status_code, duration_ms),
            )
        return response

    @staticmethod
    def _fields(request: Request, status_code: int, duration_ms: float) -> dict:
        return {
            "http_method": request.method,
            "http_path": request.url.path,
            "http_status": status_code,
            "request_id": request.state.request_id,
            "duration_ms": duration_ms,
        }
