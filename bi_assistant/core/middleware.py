"""Application middleware."""

import logging
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx: ContextVar[str | None] = ContextVar("user_id", default=None)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def get_logging_context() -> dict[str, str | None]:
    """Get the request_id and user_id of the current request."""
    return {
        "request_id": request_id_ctx.get(),
        "user_id": user_id_ctx.get(),
    }


def set_user_id(user_id: str | None) -> None:
    """Set the user_id in the logging context."""
    user_id_ctx.set(user_id)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, exposes it to logs and times the request.

    The ID is taken from the X-Request-ID header if present, otherwise a
    new UUID is generated. It is stored in request.state.request_id and
    echoed back in the response headers.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER, str(uuid4()))
        request_id_ctx.set(request_id)
        user_id_ctx.set(None)
        request.state.request_id = request_id

        start_time = time.perf_counter()
        logger.info(
            "Request started",
            extra={"method": request.method, "path": request.url.path},
        )

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Request completed",
            extra={
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
