"""Request correlation ID middleware.

The id is taken from the ``X-Request-ID`` or ``X-Correlation-ID`` request
header, or generated, stored in a context variable for log records and
echoed back in the ``X-Request-ID`` response header.
"""

import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar

from aiohttp import web

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

NO_REQUEST_ID = "no-request-id"


@web.middleware
async def correlation_id_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Attach a correlation id to the request context and response headers."""
    correlation_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or str(uuid.uuid4())
    )
    token = request_id_var.set(correlation_id)
    request["correlation_id"] = correlation_id
    try:
        response = await handler(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = correlation_id
    return response


def get_request_id() -> str:
    """Current request correlation id, or "no-request-id" outside a request."""
    request_id = request_id_var.get()
    return request_id if request_id else NO_REQUEST_ID
