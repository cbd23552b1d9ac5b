"""Request ID middleware — correlate every auth.* log line of one request.

Learn: A login touches several components (façade, authenticator,
resolver, session manager), each logging its own auth.* event. Binding
request_id, method and path into structlog's contextvars once, here,
ties those events together without threading an id through every call.

A caller-supplied X-Request-ID is reused only if it looks like an id
(letters, digits, '.', '_', '-', at most 128 chars). Anything else,
such as newlines or an email address, gets a fresh UUID, because the
value is echoed into logs and into the response header.
"""

import re
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._-]{1,128}")


def pick_request_id(incoming: str) -> str:
    """The caller's id if it is safe to echo, else a new UUID."""
    if incoming and REQUEST_ID_PATTERN.fullmatch(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a per-request id into the logging context and echo it back."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = pick_request_id(request.headers.get("X-Request-ID", ""))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
